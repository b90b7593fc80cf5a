"""Network providers and the default provider factory.

A provider is the request/response object tasks use to talk to the
selected network. The environment never builds one eagerly: it hands a
``ProviderFactory`` to ``lazy_object`` and the factory runs on first use.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
import logging
from typing import Any

from taskenv.errors import ErrorKind, TaskEnvError
from taskenv.models import NetworkConfig, ProjectPaths

logger = logging.getLogger(__name__)


class Provider(ABC):
    """Request/response capability for a network."""

    @abstractmethod
    async def request(self, method: str, params: Sequence[Any] | None = None) -> Any:
        """Send a request and return its result.

        Args:
            method: Method name understood by the network.
            params: Positional request parameters.

        Returns:
            The method's result.
        """


ProviderFactory = Callable[[str, NetworkConfig, str, ProjectPaths], Provider]
"""``(network_name, network_config, compiler_version, paths) -> Provider``."""


class LocalProvider(Provider):
    """In-process provider that answers introspection requests.

    Attributes:
        network_name: Name of the network it was built for.
        network_config: That network's configuration.
        compiler_version: Compiler version from the resolved config.
        paths: Project paths from the resolved config.
    """

    def __init__(
        self,
        network_name: str,
        network_config: NetworkConfig,
        compiler_version: str,
        paths: ProjectPaths,
    ) -> None:
        self.network_name = network_name
        self.network_config = network_config
        self.compiler_version = compiler_version
        self.paths = paths
        self._methods: dict[str, Callable[[], Any]] = {
            "net_name": lambda: self.network_name,
            "net_chainId": lambda: self.network_config.chain_id,
            "net_url": lambda: self.network_config.url,
            "compiler_version": lambda: self.compiler_version,
        }

    async def request(self, method: str, params: Sequence[Any] | None = None) -> Any:
        handler = self._methods.get(method)
        if handler is None:
            raise TaskEnvError(
                ErrorKind.UNSUPPORTED_PROVIDER_METHOD,
                {"method": method, "network": self.network_name},
            )
        logger.debug("Provider %s handling %s", self.network_name, method)
        return handler()


def create_provider(
    network_name: str,
    network_config: NetworkConfig,
    compiler_version: str,
    paths: ProjectPaths,
) -> Provider:
    """Default ``ProviderFactory``.

    Args:
        network_name: Selected network name.
        network_config: Selected network's configuration entry.
        compiler_version: Compiler version from the resolved config.
        paths: Project paths from the resolved config.

    Returns:
        A ``LocalProvider`` for the network.
    """
    logger.debug("Creating local provider for network %s", network_name)
    return LocalProvider(network_name, network_config, compiler_version, paths)
