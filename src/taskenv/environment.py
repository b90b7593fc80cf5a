"""The task runtime environment.

``Environment`` binds a resolved config, the run arguments and a task
table together, selects the network, and runs tasks. Running a task
validates its arguments once, then executes its override chain from the
newest definition down, each level getting a ``run_super`` callable for
the definition it wraps. During every level the environment's members
and that ``run_super`` are visible through the ambient scope; both are
restored on every exit path.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping, Sequence
import inspect
import logging
from typing import Any, ClassVar

from taskenv.ambient import RUN_SUPER_SLOT, AmbientScope, default_scope
from taskenv.errors import ErrorKind, TaskEnvError
from taskenv.lazy import lazy_object
from taskenv.models import Network, ResolvedConfig, RunArguments
from taskenv.providers import ProviderFactory, create_provider
from taskenv.tasks import ParamDefinition, TaskDefinition, TaskTable

logger = logging.getLogger(__name__)

TaskArguments = dict[str, Any]
EnvironmentExtender = Callable[["Environment"], None]


class RunSuperFunction:
    """Callable running the definition wrapped by the current one.

    Attributes:
        task_name: Name of the task being run.
        is_defined: Whether there is a parent definition to run.
    """

    def __init__(
        self,
        task_name: str,
        runner: Callable[[TaskArguments], Any] | None,
        default_arguments: TaskArguments,
    ) -> None:
        self.task_name = task_name
        self.is_defined = runner is not None
        self._runner = runner
        self._default_arguments = default_arguments

    async def __call__(self, task_arguments: TaskArguments | None = None) -> Any:
        """Run the parent definition.

        Args:
            task_arguments: Replacement arguments; the current level's
                arguments when omitted.

        Raises:
            TaskEnvError: ``RUNSUPER_NOT_AVAILABLE`` when the current
                definition doesn't override anything.
        """
        if self._runner is None:
            raise TaskEnvError(
                ErrorKind.RUNSUPER_NOT_AVAILABLE, {"task_name": self.task_name}
            )
        if task_arguments is None:
            task_arguments = self._default_arguments
        return await self._runner(task_arguments)

    def __repr__(self) -> str:
        return f"RunSuperFunction({self.task_name!r}, is_defined={self.is_defined})"


class Environment:
    """Runtime environment handed to every task.

    Attributes:
        config: The resolved configuration.
        cli_arguments: Top-level run arguments.
        tasks: Task table, name to newest definition.
        network: Selected network, its config and the provider handle.
        provider: The lazy provider handle (``network.provider``).
    """

    EXPOSED_MEMBERS: ClassVar[tuple[str, ...]] = (
        "config",
        "cli_arguments",
        "tasks",
        "network",
        "provider",
        "run",
    )
    """Members projected into the ambient scope."""

    DEFAULT_EXCLUDED_MEMBERS: ClassVar[tuple[str, ...]] = (
        "inject_to_global",
        "_run_task_definition",
    )

    def __init__(
        self,
        config: ResolvedConfig,
        cli_arguments: RunArguments,
        tasks: TaskTable,
        extenders: Sequence[EnvironmentExtender] = (),
        *,
        provider_factory: ProviderFactory = create_provider,
        ambient_scope: AmbientScope | None = None,
    ) -> None:
        """Select the network, wrap the provider lazily, and run extenders.

        Extenders run in order, after everything else is set up.

        Args:
            config: The resolved configuration.
            cli_arguments: Top-level run arguments.
            tasks: Task table produced by ``TaskRegistry.freeze()``.
            extenders: Callables decorating the new environment.
            provider_factory: Builds the provider on first access.
            ambient_scope: Scope receiving injected members; the
                process-wide ``taskenv.ambient.default_scope`` by default.

        Raises:
            TaskEnvError: ``NETWORK_CONFIG_NOT_FOUND`` if the selected
                network isn't in ``config.networks``.
        """
        logger.debug("Creating task runtime environment")

        self.config = config
        self.cli_arguments = cli_arguments
        self.tasks = tasks
        self._extenders: tuple[EnvironmentExtender, ...] = tuple(extenders)
        self._extension_members: list[str] = []
        self._ambient = ambient_scope if ambient_scope is not None else default_scope

        network_name = (
            cli_arguments.network
            if cli_arguments.network is not None
            else config.default_network
        )
        network_config = config.networks.get(network_name)
        if network_config is None:
            raise TaskEnvError(
                ErrorKind.NETWORK_CONFIG_NOT_FOUND, {"network": network_name}
            )

        def build_provider() -> Any:
            logger.debug("Creating provider for network %s", network_name)
            return provider_factory(
                network_name, network_config, config.compiler_version, config.paths
            )

        provider = lazy_object(build_provider)
        self.network = Network(name=network_name, config=network_config, provider=provider)
        self.provider = provider

        for extender in self._extenders:
            extender(self)

    @property
    def ambient_scope(self) -> AmbientScope:
        return self._ambient

    def register_member(self, name: str, value: Any) -> None:
        """Attach a member that is also injected into the ambient scope.

        Meant for extenders adding fields to the environment.

        Raises:
            TaskEnvError: ``INVALID_ENVIRONMENT_MEMBER`` for private names,
                names of existing members or the ambient ``run_super`` slot.
        """
        reason = None
        if name.startswith("_") or not name.isidentifier():
            reason = "member names must be public identifiers"
        elif name == RUN_SUPER_SLOT:
            reason = "the name is reserved for run_super"
        elif name in self._member_names() or hasattr(type(self), name):
            reason = "the environment already has a member with that name"
        if reason is not None:
            raise TaskEnvError(
                ErrorKind.INVALID_ENVIRONMENT_MEMBER, {"name": name, "reason": reason}
            )

        setattr(self, name, value)
        self._extension_members.append(name)

    def _member_names(self) -> list[str]:
        return [*self.EXPOSED_MEMBERS, *self._extension_members]

    async def run(
        self, name: str, task_arguments: Mapping[str, Any] | None = None
    ) -> Any:
        """Run the task with the given name.

        Args:
            name: The task's name.
            task_arguments: Raw arguments; validated and defaulted first.

        Returns:
            The task's result.

        Raises:
            TaskEnvError: ``UNRECOGNIZED_TASK`` for unknown names, or an
                argument error if the arguments don't validate.
        """
        logger.debug("Running task %s", name)

        task_definition = self.tasks.get(name)
        if task_definition is None:
            raise TaskEnvError(ErrorKind.UNRECOGNIZED_TASK, {"task": name})

        parsed_arguments = self._parse_valid_task_arguments(
            task_definition, dict(task_arguments or {})
        )
        return await self._run_task_definition(task_definition, parsed_arguments)

    def inject_to_global(
        self, exclude: Iterable[str] = DEFAULT_EXCLUDED_MEMBERS
    ) -> Callable[[], None]:
        """Expose the environment's members through the ambient scope.

        Args:
            exclude: Member names that are not injected.

        Returns:
            A function restoring the previous ambient values. Only its
            first call has an effect.
        """
        excluded = set(exclude)
        scope = self._ambient
        previous_values: dict[str, Any] = {}

        for member in self._member_names():
            if member in excluded:
                continue
            previous_values[member] = scope.swap(member, getattr(self, member))

        restored = False

        def restore() -> None:
            nonlocal restored
            if restored:
                return
            restored = True
            for member in self._member_names():
                if member in excluded or member not in previous_values:
                    continue
                scope.restore(member, previous_values[member])

        return restore

    async def _run_task_definition(
        self, task_definition: TaskDefinition, task_arguments: TaskArguments
    ) -> Any:
        parent = self.tasks.parent_of(task_definition)

        if parent is not None:

            async def run_parent(arguments: TaskArguments) -> Any:
                logger.debug("Running %s's super", task_definition.name)
                return await self._run_task_definition(parent, arguments)

            run_super = RunSuperFunction(task_definition.name, run_parent, task_arguments)
        else:
            run_super = RunSuperFunction(task_definition.name, None, task_arguments)

        previous_run_super = self._ambient.swap(RUN_SUPER_SLOT, run_super)
        uninject_from_global = self.inject_to_global()

        try:
            result = task_definition.action(task_arguments, self, run_super)
            if inspect.isawaitable(result):
                result = await result
            return result
        finally:
            uninject_from_global()
            self._ambient.restore(RUN_SUPER_SLOT, previous_run_super)

    def _parse_valid_task_arguments(
        self, task_definition: TaskDefinition, task_arguments: TaskArguments
    ) -> TaskArguments:
        """Validate task arguments and fill in defaults of omitted optional ones.

        Every declared parameter is checked before failing, and the first
        error in declaration order (named before positional) is raised.
        Arguments that no parameter declares are kept as they are.

        Raises:
            TaskEnvError: ``MISSING_TASK_ARGUMENT`` or
                ``INVALID_VALUE_FOR_TYPE``.
        """
        all_param_definitions = [
            *task_definition.param_definitions.values(),
            *task_definition.positional_param_definitions,
        ]

        errors: list[TaskEnvError] = []
        values: TaskArguments = {}

        for param_definition in all_param_definitions:
            try:
                parsed = _parse_argument(
                    param_definition, task_arguments.get(param_definition.name)
                )
            except TaskEnvError as exc:
                errors.append(exc)
                continue
            if parsed is not None:
                values[param_definition.name] = parsed

        if errors:
            raise errors[0]

        return {**task_arguments, **values}


def _parse_argument(param_definition: ParamDefinition, value: Any) -> Any:
    name = param_definition.name

    if value is None:
        if param_definition.is_optional:
            return param_definition.default_value
        raise TaskEnvError(ErrorKind.MISSING_TASK_ARGUMENT, {"param": name})

    arg_type = param_definition.type
    try:
        if param_definition.is_variadic:
            if not isinstance(value, (list, tuple)):
                raise TaskEnvError(
                    ErrorKind.INVALID_VALUE_FOR_TYPE,
                    {"value": value, "name": name, "type": f"list[{arg_type.name}]"},
                )
            for item in value:
                arg_type.validate(name, item)
        else:
            arg_type.validate(name, value)
    except Exception as exc:
        if TaskEnvError.is_kind(exc, ErrorKind.INVALID_VALUE_FOR_TYPE):
            raise
        raise TaskEnvError(
            ErrorKind.INVALID_VALUE_FOR_TYPE,
            {"value": value, "name": name, "type": arg_type.name},
            exc,
        ) from exc

    return value
