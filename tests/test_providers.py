"""Tests for the default provider factory."""

from __future__ import annotations

import pytest
from taskenv.environment import Environment
from taskenv.errors import ErrorKind, TaskEnvError
from taskenv.models import NetworkConfig, ProjectPaths, RunArguments
from taskenv.providers import LocalProvider, Provider, create_provider
from taskenv.tasks import TaskRegistry

from tests.conftest import make_config


@pytest.fixture
def provider() -> Provider:
    return create_provider(
        "dev",
        NetworkConfig(url="http://localhost:8545", chain_id=1337),
        "0.9.1",
        ProjectPaths(root="/project"),
    )


@pytest.mark.unit
class TestLocalProvider:
    """LocalProvider answers introspection requests."""

    def test_factory_builds_local_provider(self, provider: Provider) -> None:
        assert isinstance(provider, LocalProvider)
        assert provider.network_name == "dev"
        assert provider.paths.root == "/project"

    @pytest.mark.parametrize(
        ("method", "expected"),
        [
            ("net_name", "dev"),
            ("net_chainId", 1337),
            ("net_url", "http://localhost:8545"),
            ("compiler_version", "0.9.1"),
        ],
    )
    async def test_supported_methods(
        self, provider: Provider, method: str, expected: object
    ) -> None:
        assert await provider.request(method) == expected

    async def test_unsupported_method(self, provider: Provider) -> None:
        with pytest.raises(TaskEnvError) as exc_info:
            await provider.request("eth_sendTransaction", ["0x00"])
        assert exc_info.value.kind == ErrorKind.UNSUPPORTED_PROVIDER_METHOD
        assert exc_info.value.details == {"method": "eth_sendTransaction", "network": "dev"}


@pytest.mark.unit
class TestEnvironmentDefaultProvider:
    """Environment uses create_provider when no factory is given."""

    async def test_environment_provider_is_lazy_local_provider(self) -> None:
        env = Environment(make_config(), RunArguments(network="dev"), TaskRegistry().freeze())
        assert await env.provider.request("net_name") == "dev"
        assert await env.network.provider.request("compiler_version") == "0.9.1"

    def test_environment_provider_passes_isinstance(self) -> None:
        env = Environment(make_config(), RunArguments(), TaskRegistry().freeze())
        assert isinstance(env.provider, Provider)
        assert isinstance(env.network.provider, LocalProvider)
