"""Provider registry: maps a connection kind to a client factory."""

from collections.abc import Callable

from protean.exceptions import ValidationError

from cashless.gateway.port import ProviderClient

# (connection, decrypted secret, timeout in seconds) -> client
ClientFactory = Callable[..., ProviderClient]


class ProviderRegistry:
    def __init__(self) -> None:
        self._factories: dict[str, ClientFactory] = {}

    def register(self, kind: str, factory: ClientFactory) -> None:
        self._factories[kind.strip().lower()] = factory

    def supports(self, kind: str | None) -> bool:
        return bool(kind) and kind.strip().lower() in self._factories

    def kinds(self) -> list[str]:
        return sorted(self._factories)

    def client_for(self, kind: str, connection, secret: str | None, timeout_seconds: float) -> ProviderClient:
        factory = self._factories.get((kind or "").strip().lower())
        if factory is None:
            raise ValidationError({"kind": [f"Unsupported provider kind: {kind}"]})
        return factory(connection, secret, timeout_seconds)


def default_registry(settings) -> ProviderRegistry:
    """Registry with every provider this service ships.

    The fake provider is only offered outside production.
    """
    from cashless.gateway.adyen import AdyenClient
    from cashless.gateway.fake_adapter import FakeProviderClient
    from cashless.gateway.stripe_terminal import StripeTerminalClient
    from cashless.gateway.sumup import SumUpClient

    registry = ProviderRegistry()
    registry.register(SumUpClient.kind, SumUpClient.from_connection)
    registry.register(AdyenClient.kind, AdyenClient.from_connection)
    registry.register(StripeTerminalClient.kind, StripeTerminalClient.from_connection)
    if not settings.is_production:
        registry.register(FakeProviderClient.kind, lambda connection, secret, timeout_seconds: FakeProviderClient())
    return registry
