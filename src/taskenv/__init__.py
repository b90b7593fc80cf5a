"""taskenv: a task runtime environment with overridable tasks."""

from taskenv.ambient import AmbientScope, default_scope
from taskenv.context import extend_environment, internal_task, task
from taskenv.environment import Environment, RunSuperFunction
from taskenv.errors import ErrorKind, TaskEnvError
from taskenv.models import Network, NetworkConfig, ResolvedConfig, RunArguments
from taskenv.tasks import TaskDefinition, TaskKind, TaskRegistry, TaskTable

__all__ = [
    "AmbientScope",
    "Environment",
    "ErrorKind",
    "Network",
    "NetworkConfig",
    "ResolvedConfig",
    "RunArguments",
    "RunSuperFunction",
    "TaskDefinition",
    "TaskEnvError",
    "TaskKind",
    "TaskRegistry",
    "TaskTable",
    "default_scope",
    "extend_environment",
    "internal_task",
    "task",
]
