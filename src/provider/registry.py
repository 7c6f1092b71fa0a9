"""Adapter registry.

The registry is built once per process by ``build_registry`` and passed to
the loader and the reconciler. There is no module-level registration.
"""

from __future__ import annotations

import logging
import threading

from .apigateway_stage import ApiGatewayStageAdapter
from .appsync import AppsyncFunctionAdapter, AppsyncResolverAdapter
from .clients import AwsClients
from .config import Config
from .diff_suppress import SuppressionConfig
from .mq_configuration import MqConfigurationAdapter
from .resource import OperationTimeouts, ResourceAdapter
from .vpc_link import VpcLinkAdapter

logger = logging.getLogger(__name__)


class AdapterRegistry:
    """Maps resource kinds to their adapters."""

    def __init__(self) -> None:
        self._adapters: dict[str, ResourceAdapter] = {}

    def register(self, adapter: ResourceAdapter) -> None:
        """Register an adapter under its kind.

        Raises:
            ValueError: If the kind is already registered.
        """
        if adapter.kind in self._adapters:
            raise ValueError(f"Adapter already registered for kind '{adapter.kind}'")
        self._adapters[adapter.kind] = adapter

    def get(self, kind: str) -> ResourceAdapter:
        """Get the adapter for a kind.

        Raises:
            KeyError: If no adapter handles ``kind``.
        """
        adapter = self._adapters.get(kind)
        if adapter is None:
            raise KeyError(f"Unknown resource kind '{kind}'. Known kinds: {self.kinds()}")
        return adapter

    def kinds(self) -> list[str]:
        return sorted(self._adapters)

    def __contains__(self, kind: object) -> bool:
        return kind in self._adapters


def build_registry(
    config: Config,
    clients: AwsClients,
    cancel_event: threading.Event | None = None,
) -> AdapterRegistry:
    """Create the registry with every supported adapter.

    Clients are resolved lazily by ``AwsClients``, so this makes no AWS calls.
    """
    timeouts = OperationTimeouts(
        create_seconds=config.create_timeout_seconds,
        delete_seconds=config.delete_timeout_seconds,
        poll_interval_seconds=config.poll_interval_seconds,
    )
    common = {
        "timeouts": timeouts,
        "cancel_event": cancel_event,
        "suppression": SuppressionConfig.from_env(),
    }

    registry = AdapterRegistry()
    registry.register(
        VpcLinkAdapter(
            _LazyClient(clients, "apigatewayv2"),
            region=config.region,
            partition=config.partition,
            **common,
        )
    )
    registry.register(
        ApiGatewayStageAdapter(
            _LazyClient(clients, "apigatewayv2"),
            region=config.region,
            partition=config.partition,
            **common,
        )
    )
    registry.register(MqConfigurationAdapter(_LazyClient(clients, "mq"), **common))
    registry.register(AppsyncResolverAdapter(_LazyClient(clients, "appsync"), **common))
    registry.register(AppsyncFunctionAdapter(_LazyClient(clients, "appsync"), **common))

    logger.debug("Built adapter registry", extra={"kinds": registry.kinds()})
    return registry


class _LazyClient:
    """Defers boto3 client creation until the first API call."""

    def __init__(self, clients: AwsClients, service_name: str) -> None:
        self._clients = clients
        self._service_name = service_name

    def __getattr__(self, name: str):
        return getattr(self._clients.client(self._service_name), name)
