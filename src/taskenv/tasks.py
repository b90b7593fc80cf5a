"""Task and parameter definitions, the definition DSL, and the task table.

Tasks are declared through mutable ``TaskBuilder`` objects collected by a
``TaskRegistry``. Declaring a name that already exists creates an
override builder that wraps the previous declaration. ``freeze()`` turns
the registry into a ``TaskTable``: an arena of immutable
``TaskDefinition`` records indexed by id, where every override points to
the id of the definition it wraps.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator, Mapping
from enum import StrEnum
import logging
import re
from typing import Any

from pydantic import BaseModel, ConfigDict, model_validator

from taskenv.argument_types import BOOLEAN, STRING, ArgumentType
from taskenv.errors import ErrorKind, TaskEnvError
from taskenv.models import GLOBAL_ARGUMENT_NAMES

logger = logging.getLogger(__name__)

TaskAction = Callable[..., Any]
"""``(task_arguments, environment, run_super) -> result``, sync or async."""

_PARAM_NAME_PATTERN = re.compile(r"^[a-z][a-z0-9_]*$")


class TaskKind(StrEnum):
    """Whether a definition is an original one or wraps a parent."""

    BASE = "base"
    OVERRIDE = "override"


class ParamDefinition(BaseModel):
    """A declared task parameter.

    Attributes:
        name: Parameter name (snake_case).
        type: Validator for supplied values.
        description: Help text.
        default_value: Used only when ``is_optional`` is true.
        is_optional: Whether the argument may be omitted.
        is_flag: Boolean switch with a ``False`` default.
        is_variadic: Positional parameter collecting a list of values.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str
    type: ArgumentType
    description: str | None = None
    default_value: Any = None
    is_optional: bool = False
    is_flag: bool = False
    is_variadic: bool = False


class TaskDefinition(BaseModel):
    """An immutable, registered task definition.

    Attributes:
        id: Index of this definition in its ``TaskTable`` arena.
        name: Task name.
        description: Help text.
        kind: ``BASE`` or ``OVERRIDE``.
        parent_id: Arena id of the wrapped definition (overrides only).
        param_definitions: Named parameters in declaration order.
        positional_param_definitions: Positional parameters, in order.
        action: The task body.
        is_internal: Hidden from ``help`` listings.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    id: int
    name: str
    description: str | None = None
    kind: TaskKind = TaskKind.BASE
    parent_id: int | None = None
    param_definitions: dict[str, ParamDefinition] = {}
    positional_param_definitions: tuple[ParamDefinition, ...] = ()
    action: TaskAction
    is_internal: bool = False

    @model_validator(mode="after")
    def _check_parent(self) -> TaskDefinition:
        """An override always wraps an earlier definition; a base wraps none."""
        if self.kind == TaskKind.OVERRIDE:
            if self.parent_id is None or not 0 <= self.parent_id < self.id:
                msg = f"Override {self.name!r} must wrap an earlier definition"
                raise ValueError(msg)
        elif self.parent_id is not None:
            msg = f"Base definition {self.name!r} can't have a parent"
            raise ValueError(msg)
        return self

    @property
    def is_override(self) -> bool:
        return self.kind == TaskKind.OVERRIDE


def _action_not_set(task_name: str) -> TaskAction:
    async def action(*_: Any) -> Any:
        raise TaskEnvError(ErrorKind.ACTION_NOT_SET, {"task_name": task_name})

    return action


class TaskBuilder:
    """Mutable declaration of a task, used while plugins register tasks.

    Methods return the builder so declarations can be chained.
    """

    def __init__(
        self,
        task_id: int,
        name: str,
        *,
        description: str | None = None,
        action: TaskAction | None = None,
        is_internal: bool = False,
        parent: TaskBuilder | None = None,
    ) -> None:
        self.id = task_id
        self.name = name
        self.description = description
        self.action = action
        self.is_internal = is_internal
        self.parent = parent
        self._params: dict[str, ParamDefinition] = {}
        self._positional: list[ParamDefinition] = []

    @property
    def is_override(self) -> bool:
        return self.parent is not None

    @property
    def param_definitions(self) -> dict[str, ParamDefinition]:
        """Effective named parameters, including the parent's."""
        inherited = self.parent.param_definitions if self.parent else {}
        return {**inherited, **self._params}

    @property
    def positional_param_definitions(self) -> list[ParamDefinition]:
        """Effective positional parameters; overrides inherit them unchanged."""
        if self.parent is not None:
            return self.parent.positional_param_definitions
        return list(self._positional)

    def effective_description(self) -> str | None:
        if self.description is None and self.parent is not None:
            return self.parent.effective_description()
        return self.description

    def effective_action(self) -> TaskAction:
        if self.action is not None:
            return self.action
        if self.parent is not None:
            return self.parent.effective_action()
        return _action_not_set(self.name)

    def set_description(self, description: str) -> TaskBuilder:
        self.description = description
        return self

    def set_action(self, action: TaskAction) -> TaskBuilder:
        self.action = action
        return self

    # -- named parameters --------------------------------------------------

    def add_param(
        self,
        name: str,
        description: str | None = None,
        default_value: Any = None,
        type: ArgumentType = STRING,
        is_optional: bool | None = None,
    ) -> TaskBuilder:
        """Declare a named parameter.

        When *is_optional* is omitted, the parameter is optional iff a
        default value is given.

        Raises:
            TaskEnvError: If the declaration breaks a definition rule.
        """
        optional = default_value is not None if is_optional is None else is_optional
        self._check_new_param(name, default_value, type, optional, is_variadic=False)
        if self.is_override and not optional:
            raise TaskEnvError(
                ErrorKind.OVERRIDE_NO_MANDATORY_PARAMS,
                {"param": name, "task_name": self.name},
            )
        self._params[name] = ParamDefinition(
            name=name,
            type=type,
            description=description,
            default_value=default_value,
            is_optional=optional,
        )
        return self

    def add_optional_param(
        self,
        name: str,
        description: str | None = None,
        default_value: Any = None,
        type: ArgumentType = STRING,
    ) -> TaskBuilder:
        return self.add_param(name, description, default_value, type, is_optional=True)

    def add_flag(self, name: str, description: str | None = None) -> TaskBuilder:
        self._check_new_param(name, False, BOOLEAN, True, is_variadic=False)
        self._params[name] = ParamDefinition(
            name=name,
            type=BOOLEAN,
            description=description,
            default_value=False,
            is_optional=True,
            is_flag=True,
        )
        return self

    # -- positional parameters ---------------------------------------------

    def add_positional_param(
        self,
        name: str,
        description: str | None = None,
        default_value: Any = None,
        type: ArgumentType = STRING,
        is_optional: bool | None = None,
    ) -> TaskBuilder:
        optional = default_value is not None if is_optional is None else is_optional
        self._add_positional(name, description, default_value, type, optional, False)
        return self

    def add_optional_positional_param(
        self,
        name: str,
        description: str | None = None,
        default_value: Any = None,
        type: ArgumentType = STRING,
    ) -> TaskBuilder:
        self._add_positional(name, description, default_value, type, True, False)
        return self

    def add_variadic_positional_param(
        self,
        name: str,
        description: str | None = None,
        default_value: list[Any] | None = None,
        type: ArgumentType = STRING,
        is_optional: bool | None = None,
    ) -> TaskBuilder:
        optional = default_value is not None if is_optional is None else is_optional
        self._add_positional(name, description, default_value, type, optional, True)
        return self

    def add_optional_variadic_positional_param(
        self,
        name: str,
        description: str | None = None,
        default_value: list[Any] | None = None,
        type: ArgumentType = STRING,
    ) -> TaskBuilder:
        if default_value is None:
            default_value = []
        self._add_positional(name, description, default_value, type, True, True)
        return self

    def _add_positional(
        self,
        name: str,
        description: str | None,
        default_value: Any,
        type: ArgumentType,
        is_optional: bool,
        is_variadic: bool,
    ) -> None:
        if self.is_override:
            raise TaskEnvError(
                ErrorKind.OVERRIDE_NO_POSITIONAL_PARAMS,
                {"param": name, "task_name": self.name},
            )
        self._check_new_param(
            name, default_value, type, is_optional, is_variadic=is_variadic
        )

        if self._positional:
            last = self._positional[-1]
            if last.is_variadic:
                raise TaskEnvError(
                    ErrorKind.PARAM_AFTER_VARIADIC,
                    {"param": name, "task_name": self.name},
                )
            if last.is_optional and not is_optional:
                raise TaskEnvError(
                    ErrorKind.MANDATORY_PARAM_AFTER_OPTIONAL,
                    {"param": name, "task_name": self.name},
                )

        self._positional.append(
            ParamDefinition(
                name=name,
                type=type,
                description=description,
                default_value=default_value,
                is_optional=is_optional,
                is_variadic=is_variadic,
            )
        )

    def _check_new_param(
        self,
        name: str,
        default_value: Any,
        type: ArgumentType,
        is_optional: bool,
        *,
        is_variadic: bool,
    ) -> None:
        details = {"param": name, "task_name": self.name}

        if not _PARAM_NAME_PATTERN.match(name):
            raise TaskEnvError(ErrorKind.INVALID_PARAM_NAME, details)
        if name in GLOBAL_ARGUMENT_NAMES:
            raise TaskEnvError(ErrorKind.PARAM_CLASHES_WITH_GLOBAL_PARAM, details)

        existing = set(self.param_definitions)
        existing.update(p.name for p in self.positional_param_definitions)
        if name in existing:
            raise TaskEnvError(ErrorKind.PARAM_ALREADY_DEFINED, details)

        if default_value is None:
            return
        if not is_optional:
            raise TaskEnvError(ErrorKind.DEFAULT_IN_MANDATORY_PARAM, details)

        values = default_value if is_variadic else [default_value]
        if is_variadic and not isinstance(default_value, (list, tuple)):
            raise TaskEnvError(ErrorKind.DEFAULT_VALUE_WRONG_TYPE, details)
        try:
            for value in values:
                type.validate(name, value)
        except TaskEnvError as exc:
            raise TaskEnvError(ErrorKind.DEFAULT_VALUE_WRONG_TYPE, details, exc) from exc

    def build(self) -> TaskDefinition:
        """Freeze this declaration into a ``TaskDefinition``."""
        return TaskDefinition(
            id=self.id,
            name=self.name,
            description=self.effective_description(),
            kind=TaskKind.OVERRIDE if self.is_override else TaskKind.BASE,
            parent_id=self.parent.id if self.parent is not None else None,
            param_definitions=self.param_definitions,
            positional_param_definitions=tuple(self.positional_param_definitions),
            action=self.effective_action(),
            is_internal=self.is_internal,
        )


class TaskRegistry:
    """Collects task declarations in registration order."""

    def __init__(self) -> None:
        self._builders: list[TaskBuilder] = []
        self._heads: dict[str, TaskBuilder] = {}

    def task(
        self,
        name: str,
        description: str | None = None,
        action: TaskAction | None = None,
    ) -> TaskBuilder:
        """Declare a public task, overriding any earlier one with that name."""
        return self._add(name, description, action, is_internal=False)

    def internal_task(
        self,
        name: str,
        description: str | None = None,
        action: TaskAction | None = None,
    ) -> TaskBuilder:
        """Declare a task hidden from the ``help`` listing."""
        return self._add(name, description, action, is_internal=True)

    def _add(
        self,
        name: str,
        description: str | None,
        action: TaskAction | None,
        *,
        is_internal: bool,
    ) -> TaskBuilder:
        parent = self._heads.get(name)
        builder = TaskBuilder(
            len(self._builders),
            name,
            description=description,
            action=action,
            is_internal=is_internal,
            parent=parent,
        )
        if parent is not None:
            logger.debug("Overriding task %s", name)
        self._builders.append(builder)
        self._heads[name] = builder
        return builder

    def __contains__(self, name: object) -> bool:
        return name in self._heads

    def __getitem__(self, name: str) -> TaskBuilder:
        return self._heads[name]

    def freeze(self) -> TaskTable:
        """Build the immutable task table from every declaration so far."""
        return TaskTable(builder.build() for builder in self._builders)


class TaskTable(Mapping[str, TaskDefinition]):
    """Arena of task definitions plus the name → newest definition mapping.

    Every override's ``parent_id`` refers to a lower arena index, so
    override chains are acyclic.
    """

    def __init__(self, definitions: Iterable[TaskDefinition] = ()) -> None:
        self._arena: tuple[TaskDefinition, ...] = tuple(definitions)
        self._heads: dict[str, TaskDefinition] = {}
        for index, definition in enumerate(self._arena):
            if definition.id != index:
                msg = f"Definition {definition.name!r} has id {definition.id}, expected {index}"
                raise ValueError(msg)
            if definition.parent_id is not None:
                parent = self._arena[definition.parent_id]
                if parent.name != definition.name:
                    msg = f"Override {definition.name!r} wraps a different task {parent.name!r}"
                    raise ValueError(msg)
            self._heads[definition.name] = definition

    def __getitem__(self, name: str) -> TaskDefinition:
        return self._heads[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._heads)

    def __len__(self) -> int:
        return len(self._heads)

    @property
    def definitions(self) -> tuple[TaskDefinition, ...]:
        """All definitions, overridden ones included, by id."""
        return self._arena

    def parent_of(self, definition: TaskDefinition) -> TaskDefinition | None:
        """Return the definition wrapped by *definition*, if any."""
        if definition.parent_id is None:
            return None
        return self._arena[definition.parent_id]

    def chain(self, name: str) -> list[TaskDefinition]:
        """Return the override chain of *name*, newest definition first."""
        chain: list[TaskDefinition] = []
        current: TaskDefinition | None = self._heads[name]
        while current is not None:
            chain.append(current)
            current = self.parent_of(current)
        return chain
