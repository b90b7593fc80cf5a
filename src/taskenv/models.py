"""Core data models for the task runtime environment.

Frozen Pydantic models for the resolved configuration, the top-level run
arguments, and the selected network descriptor handed to tasks.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

LOCAL_NETWORK_NAME = "local"
DEFAULT_COMPILER_VERSION = "1.0.0"


class NetworkConfig(BaseModel):
    """Configuration of a single network entry.

    Unknown keys are kept so providers can read network-specific settings.

    Attributes:
        url: Endpoint of the network, ``None`` for in-process networks.
        chain_id: Optional numeric network identifier.
        timeout_seconds: Request timeout used by providers.
    """

    model_config = ConfigDict(frozen=True, extra="allow")

    url: str | None = None
    chain_id: int | None = None
    timeout_seconds: float = 20.0


class ProjectPaths(BaseModel):
    """Absolute project paths, resolved against the config file's directory."""

    model_config = ConfigDict(frozen=True)

    root: str = Field(default_factory=lambda: str(Path.cwd()))
    config: str | None = None
    sources: str = "sources"
    cache: str = "cache"
    artifacts: str = "artifacts"
    tests: str = "tests"


class ResolvedConfig(BaseModel):
    """Normalized project configuration.

    Attributes:
        default_network: Network used when no ``--network`` is given.
        networks: Network table keyed by name; always has ``"local"``.
        compiler_version: Version handed to the provider factory.
        paths: Project paths.
        plugins: Importable module names loaded with the config.
        log_level: Logging level string.
        log_file: Optional log file path.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    default_network: str = LOCAL_NETWORK_NAME
    networks: dict[str, NetworkConfig] = Field(
        default_factory=lambda: {LOCAL_NETWORK_NAME: NetworkConfig()}
    )
    compiler_version: str = DEFAULT_COMPILER_VERSION
    paths: ProjectPaths = Field(default_factory=ProjectPaths)
    plugins: list[str] = []
    log_level: str = "INFO"
    log_file: str | None = None

    @field_validator("networks")
    @classmethod
    def _ensure_local_network(
        cls, v: dict[str, NetworkConfig]
    ) -> dict[str, NetworkConfig]:
        """Add the in-process ``local`` network when the table lacks it."""
        if LOCAL_NETWORK_NAME not in v:
            return {LOCAL_NETWORK_NAME: NetworkConfig(), **v}
        return v


class RunArguments(BaseModel):
    """Top-level arguments of a run, parsed before any task executes.

    Attributes:
        network: Network name overriding ``ResolvedConfig.default_network``.
        config: Explicit config file path.
        verbose: Enable DEBUG logging.
        show_stack_traces: Print tracebacks for task errors.
    """

    model_config = ConfigDict(frozen=True)

    network: str | None = None
    config: str | None = None
    verbose: bool = False
    show_stack_traces: bool = False


GLOBAL_ARGUMENT_NAMES: frozenset[str] = frozenset(
    {*RunArguments.model_fields, "help", "version"}
)
"""Names reserved for run arguments; tasks can't declare params with them."""


class Network(BaseModel):
    """The network selected for an environment.

    Attributes:
        name: Selected network name.
        config: That network's configuration entry.
        provider: The lazy provider handle (same object as
            ``Environment.provider``).
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str
    config: NetworkConfig
    provider: Any
