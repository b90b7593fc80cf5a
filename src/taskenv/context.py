"""Process-wide registration context and the task DSL.

Plugin modules register tasks and environment extenders at import time
through the module-level ``task``, ``internal_task`` and
``extend_environment`` functions, which write to the current
``TaskEnvContext``. The CLI creates the context, imports the built-in
tasks and the configured plugins, then builds the environment from it.
"""

from __future__ import annotations

from typing import ClassVar

from taskenv.environment import Environment, EnvironmentExtender
from taskenv.errors import ErrorKind, TaskEnvError
from taskenv.tasks import TaskAction, TaskBuilder, TaskRegistry


class TaskEnvContext:
    """Registry, extenders and (once built) the environment of this process."""

    _instance: ClassVar[TaskEnvContext | None] = None

    def __init__(self) -> None:
        self.tasks = TaskRegistry()
        self.extenders: list[EnvironmentExtender] = []
        self.environment: Environment | None = None

    @classmethod
    def is_created(cls) -> bool:
        return cls._instance is not None

    @classmethod
    def create_context(cls) -> TaskEnvContext:
        """Create the process-wide context.

        Raises:
            TaskEnvError: ``CONTEXT_ALREADY_CREATED`` if one exists.
        """
        if cls._instance is not None:
            raise TaskEnvError(ErrorKind.CONTEXT_ALREADY_CREATED)
        cls._instance = cls()
        return cls._instance

    @classmethod
    def get_context(cls) -> TaskEnvContext:
        """Return the process-wide context.

        Raises:
            TaskEnvError: ``CONTEXT_NOT_CREATED`` if there is none.
        """
        if cls._instance is None:
            raise TaskEnvError(ErrorKind.CONTEXT_NOT_CREATED)
        return cls._instance

    @classmethod
    def delete_context(cls) -> None:
        """Drop the process-wide context."""
        if cls._instance is None:
            raise TaskEnvError(ErrorKind.CONTEXT_NOT_CREATED)
        cls._instance = None

    def set_environment(self, environment: Environment) -> None:
        self.environment = environment


def task(
    name: str, description: str | None = None, action: TaskAction | None = None
) -> TaskBuilder:
    """Declare (or override) a public task in the current context."""
    return TaskEnvContext.get_context().tasks.task(name, description, action)


def internal_task(
    name: str, description: str | None = None, action: TaskAction | None = None
) -> TaskBuilder:
    """Declare (or override) an internal task in the current context."""
    return TaskEnvContext.get_context().tasks.internal_task(name, description, action)


def extend_environment(extender: EnvironmentExtender) -> EnvironmentExtender:
    """Register *extender* to run on every environment built from the context.

    Returns *extender*, so it can be used as a decorator.
    """
    TaskEnvContext.get_context().extenders.append(extender)
    return extender
