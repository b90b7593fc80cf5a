"""Shared fixtures for the taskenv test suite."""

from __future__ import annotations

from collections.abc import Callable, Iterator, Sequence
from typing import Any
from unittest.mock import MagicMock

from hypothesis import HealthCheck, settings
import pytest
from taskenv.ambient import AmbientScope
from taskenv.context import TaskEnvContext
from taskenv.environment import Environment, EnvironmentExtender
from taskenv.models import NetworkConfig, ResolvedConfig, RunArguments
from taskenv.tasks import TaskRegistry

# Hypothesis builds its character cache on the first text draw of a cold run,
# which trips the input-generation timing health check; timing is not under test.
settings.register_profile("taskenv", suppress_health_check=[HealthCheck.too_slow])
settings.load_profile("taskenv")

# ---------------------------------------------------------------------------
# Factory functions
# ---------------------------------------------------------------------------


def make_config(**overrides: Any) -> ResolvedConfig:
    """Build a ResolvedConfig with a ``local`` and a ``dev`` network.

    Args:
        **overrides: Field values to override.

    Returns:
        A fully constructed ResolvedConfig instance.
    """
    defaults: dict[str, Any] = {
        "default_network": "local",
        "networks": {
            "local": NetworkConfig(),
            "dev": NetworkConfig(url="http://localhost:8545", chain_id=1337),
        },
        "compiler_version": "0.9.1",
    }
    defaults.update(overrides)
    return ResolvedConfig(**defaults)


async def return_args(args: dict[str, Any], env: Environment, run_super: Any) -> dict[str, Any]:
    """Task action returning the arguments it received."""
    return args


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def scope() -> AmbientScope:
    """A fresh ambient scope, isolated from the process-wide one."""
    return AmbientScope()


@pytest.fixture
def registry() -> TaskRegistry:
    """An empty task registry."""
    return TaskRegistry()


@pytest.fixture
def provider_factory() -> MagicMock:
    """Mock provider factory returning a MagicMock provider."""
    return MagicMock(name="provider_factory", return_value=MagicMock(name="provider"))


@pytest.fixture
def make_env(
    registry: TaskRegistry, scope: AmbientScope, provider_factory: MagicMock
) -> Callable[..., Environment]:
    """Factory building an Environment from the ``registry`` fixture.

    Keyword arguments override the config, run arguments, extenders,
    provider factory and ambient scope.
    """

    def _make(
        *,
        config: ResolvedConfig | None = None,
        arguments: RunArguments | None = None,
        extenders: Sequence[EnvironmentExtender] = (),
        factory: Any = None,
        ambient_scope: AmbientScope | None = None,
    ) -> Environment:
        return Environment(
            config if config is not None else make_config(),
            arguments if arguments is not None else RunArguments(),
            registry.freeze(),
            extenders,
            provider_factory=factory if factory is not None else provider_factory,
            ambient_scope=ambient_scope if ambient_scope is not None else scope,
        )

    return _make


@pytest.fixture
def context() -> Iterator[TaskEnvContext]:
    """A fresh process-wide context, deleted after the test."""
    if TaskEnvContext.is_created():
        TaskEnvContext.delete_context()
    ctx = TaskEnvContext.create_context()
    yield ctx
    if TaskEnvContext.is_created():
        TaskEnvContext.delete_context()
