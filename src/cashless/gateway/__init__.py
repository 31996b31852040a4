"""Provider registry factory.

Provides get_registry() / set_registry() to swap the set of providers:
- default_registry() with SumUp, Adyen, Stripe Terminal and, outside production, the fake provider
- any hand-built registry in tests

gateway_for() builds the connection-routing gateway for one tenant.
"""

from cashless.config import get_settings
from cashless.connection.resolver import ConnectionResolver
from cashless.connection.vault import CredentialVault
from cashless.gateway.integrations import IntegrationsCashlessGateway
from cashless.gateway.port import CashlessGateway
from cashless.gateway.registry import ProviderRegistry, default_registry

_current_registry: ProviderRegistry | None = None


def get_registry() -> ProviderRegistry:
    """Return the current provider registry. Defaults to default_registry()."""
    global _current_registry
    if _current_registry is None:
        _current_registry = default_registry(get_settings())
    return _current_registry


def set_registry(registry: ProviderRegistry) -> None:
    """Override the active provider registry (useful for tests)."""
    global _current_registry
    _current_registry = registry


def reset_registry() -> None:
    """Reset to default registry."""
    global _current_registry
    _current_registry = None


def gateway_for(tenant_id: str) -> CashlessGateway:
    settings = get_settings()
    return IntegrationsCashlessGateway(
        ConnectionResolver(CredentialVault.from_settings(settings)),
        get_registry(),
        tenant_id=tenant_id,
        default_kind=settings.default_provider,
        timeout_seconds=settings.provider_timeout_seconds,
    )
