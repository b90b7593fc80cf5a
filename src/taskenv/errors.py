"""Error taxonomy for the task runtime environment.

Every failure raised by ``taskenv`` is a ``TaskEnvError`` tagged with an
``ErrorKind``. Callers branch on ``error.kind`` and read structured
context from ``error.details`` instead of matching message strings.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict


class ErrorKind(StrEnum):
    """Machine-checkable kind of a ``TaskEnvError``."""

    # General
    CONTEXT_ALREADY_CREATED = "context_already_created"
    CONTEXT_NOT_CREATED = "context_not_created"
    UNSUPPORTED_PROVIDER_METHOD = "unsupported_provider_method"
    INVALID_ENVIRONMENT_MEMBER = "invalid_environment_member"

    # Network
    NETWORK_CONFIG_NOT_FOUND = "network_config_not_found"

    # Arguments
    UNRECOGNIZED_TASK = "unrecognized_task"
    MISSING_TASK_ARGUMENT = "missing_task_argument"
    INVALID_VALUE_FOR_TYPE = "invalid_value_for_type"
    UNRECOGNIZED_PARAM_NAME = "unrecognized_param_name"
    UNRECOGNIZED_POSITIONAL_ARG = "unrecognized_positional_arg"
    MISSING_PARAM_VALUE = "missing_param_value"

    # Task definitions
    PARAM_ALREADY_DEFINED = "param_already_defined"
    PARAM_CLASHES_WITH_GLOBAL_PARAM = "param_clashes_with_global_param"
    MANDATORY_PARAM_AFTER_OPTIONAL = "mandatory_param_after_optional"
    PARAM_AFTER_VARIADIC = "param_after_variadic"
    DEFAULT_IN_MANDATORY_PARAM = "default_in_mandatory_param"
    DEFAULT_VALUE_WRONG_TYPE = "default_value_wrong_type"
    INVALID_PARAM_NAME = "invalid_param_name"
    OVERRIDE_NO_MANDATORY_PARAMS = "override_no_mandatory_params"
    OVERRIDE_NO_POSITIONAL_PARAMS = "override_no_positional_params"
    ACTION_NOT_SET = "action_not_set"
    RUNSUPER_NOT_AVAILABLE = "runsuper_not_available"

    # Config
    CONFIG_NOT_FOUND = "config_not_found"
    INVALID_CONFIG = "invalid_config"
    PLUGIN_IMPORT_FAILED = "plugin_import_failed"


class ErrorDescriptor(BaseModel):
    """Static description of an error kind.

    Attributes:
        code: Numeric code, unique across all kinds.
        title: Short human-readable title.
        message: ``str.format`` template filled from the error details.
    """

    model_config = ConfigDict(frozen=True)

    code: int
    title: str
    message: str


ERRORS: dict[ErrorKind, ErrorDescriptor] = {
    ErrorKind.CONTEXT_ALREADY_CREATED: ErrorDescriptor(
        code=100,
        title="Task environment context already created",
        message="The task environment context was already created.",
    ),
    ErrorKind.CONTEXT_NOT_CREATED: ErrorDescriptor(
        code=101,
        title="Task environment context not created",
        message="The task environment context has not been created.",
    ),
    ErrorKind.UNSUPPORTED_PROVIDER_METHOD: ErrorDescriptor(
        code=102,
        title="Unsupported provider method",
        message="Method {method} is not supported by the provider of network {network}.",
    ),
    ErrorKind.INVALID_ENVIRONMENT_MEMBER: ErrorDescriptor(
        code=103,
        title="Invalid environment member",
        message="Cannot register environment member {name}: {reason}.",
    ),
    ErrorKind.NETWORK_CONFIG_NOT_FOUND: ErrorDescriptor(
        code=200,
        title="Network configuration not found",
        message="Network {network} doesn't exist.",
    ),
    ErrorKind.UNRECOGNIZED_TASK: ErrorDescriptor(
        code=300,
        title="Unrecognized task",
        message="Unrecognized task {task}.",
    ),
    ErrorKind.MISSING_TASK_ARGUMENT: ErrorDescriptor(
        code=301,
        title="Missing task argument",
        message="Missing task argument {param}.",
    ),
    ErrorKind.INVALID_VALUE_FOR_TYPE: ErrorDescriptor(
        code=302,
        title="Invalid argument type",
        message="Invalid value {value!r} for argument {name} of type {type}.",
    ),
    ErrorKind.UNRECOGNIZED_PARAM_NAME: ErrorDescriptor(
        code=303,
        title="Unrecognized param name",
        message="Unrecognized param {param}.",
    ),
    ErrorKind.UNRECOGNIZED_POSITIONAL_ARG: ErrorDescriptor(
        code=304,
        title="Unrecognized positional argument",
        message="Unrecognized positional argument {argument}.",
    ),
    ErrorKind.MISSING_PARAM_VALUE: ErrorDescriptor(
        code=305,
        title="Missing param value",
        message="Missing value for param {param}.",
    ),
    ErrorKind.PARAM_ALREADY_DEFINED: ErrorDescriptor(
        code=400,
        title="Param already defined",
        message="Could not set param {param} for task {task_name} because it is already defined.",
    ),
    ErrorKind.PARAM_CLASHES_WITH_GLOBAL_PARAM: ErrorDescriptor(
        code=401,
        title="Param clashes with a global param",
        message="Could not set param {param} for task {task_name} because it is a global run argument.",
    ),
    ErrorKind.MANDATORY_PARAM_AFTER_OPTIONAL: ErrorDescriptor(
        code=402,
        title="Mandatory positional param after optional one",
        message="Could not add mandatory param {param} to task {task_name} after an optional positional param.",
    ),
    ErrorKind.PARAM_AFTER_VARIADIC: ErrorDescriptor(
        code=403,
        title="Positional param after a variadic one",
        message="Could not set param {param} for task {task_name} after a variadic positional param.",
    ),
    ErrorKind.DEFAULT_IN_MANDATORY_PARAM: ErrorDescriptor(
        code=404,
        title="Default value in mandatory param",
        message="Mandatory param {param} of task {task_name} can't have a default value.",
    ),
    ErrorKind.DEFAULT_VALUE_WRONG_TYPE: ErrorDescriptor(
        code=405,
        title="Default value has the wrong type",
        message="Default value of param {param} of task {task_name} doesn't match its type.",
    ),
    ErrorKind.INVALID_PARAM_NAME: ErrorDescriptor(
        code=406,
        title="Invalid param name",
        message="Invalid param name {param} in task {task_name}; use snake_case.",
    ),
    ErrorKind.OVERRIDE_NO_MANDATORY_PARAMS: ErrorDescriptor(
        code=407,
        title="Overridden task with mandatory param",
        message="Redefinition of task {task_name} failed: overrides can't add mandatory param {param}.",
    ),
    ErrorKind.OVERRIDE_NO_POSITIONAL_PARAMS: ErrorDescriptor(
        code=408,
        title="Overridden task with positional param",
        message="Redefinition of task {task_name} failed: overrides can't add positional param {param}.",
    ),
    ErrorKind.ACTION_NOT_SET: ErrorDescriptor(
        code=409,
        title="Task action not set",
        message="No action set for task {task_name}.",
    ),
    ErrorKind.RUNSUPER_NOT_AVAILABLE: ErrorDescriptor(
        code=410,
        title="run_super not available",
        message="Tried to call run_super from a non-overridden definition of task {task_name}.",
    ),
    ErrorKind.CONFIG_NOT_FOUND: ErrorDescriptor(
        code=500,
        title="Config file not found",
        message="Config file not found: {path}.",
    ),
    ErrorKind.INVALID_CONFIG: ErrorDescriptor(
        code=501,
        title="Invalid config",
        message="Invalid config file {path}: {reason}",
    ),
    ErrorKind.PLUGIN_IMPORT_FAILED: ErrorDescriptor(
        code=502,
        title="Plugin import failed",
        message="Could not import plugin {plugin}: {reason}",
    ),
}


class TaskEnvError(Exception):
    """Task environment failure with structured detail fields.

    Attributes:
        kind: The error kind, suitable for branching.
        details: Structured context used to format the message.
        parent: The wrapped underlying exception, if any.
    """

    def __init__(
        self,
        kind: ErrorKind,
        details: dict[str, Any] | None = None,
        parent: BaseException | None = None,
    ) -> None:
        """Initialize with a kind, its details and an optional parent error.

        Args:
            kind: Which ``ErrorKind`` this error represents.
            details: Values referenced by the kind's message template.
            parent: Underlying exception being wrapped.
        """
        self.kind = kind
        self.details: dict[str, Any] = dict(details or {})
        self.parent = parent
        super().__init__(self.descriptor.message.format(**self.details))
        if parent is not None:
            self.__cause__ = parent

    @property
    def descriptor(self) -> ErrorDescriptor:
        """The static descriptor of this error's kind."""
        return ERRORS[self.kind]

    @property
    def code(self) -> str:
        """The printable error code, e.g. ``"TE302"``."""
        return f"TE{self.descriptor.code}"

    @classmethod
    def is_kind(cls, error: BaseException, kind: ErrorKind) -> bool:
        """Return whether *error* is a ``TaskEnvError`` of the given *kind*."""
        return isinstance(error, cls) and error.kind == kind
