"""Gateway adapter that routes through the workspace's integration connections.

Every call resolves the workspace's active connection of the chosen kind,
builds a client with the decrypted secret, makes one bounded request and drops
the client again. No secret outlives the call.
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

from protean.exceptions import ValidationError

from cashless.connection.resolver import ConnectionResolver
from cashless.exceptions import ProviderTimeoutError
from cashless.gateway.port import CashlessGateway, CashlessSession, ProviderClient, ProviderStatus
from cashless.gateway.registry import ProviderRegistry
from cashless.utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class IntegrationsCashlessGateway(CashlessGateway):
    def __init__(
        self,
        resolver: ConnectionResolver,
        registry: ProviderRegistry,
        *,
        tenant_id: str,
        default_kind: str = "sumup",
        timeout_seconds: float = 10.0,
    ) -> None:
        self.resolver = resolver
        self.registry = registry
        self.tenant_id = tenant_id
        self.default_kind = default_kind
        self.timeout_seconds = timeout_seconds

    def _select_kind(self, provider_hint: str | None) -> str:
        kind = (provider_hint or self.default_kind or "").strip().lower()
        if not self.registry.supports(kind):
            raise ValidationError({"provider_hint": [f"Unsupported provider kind: {kind or provider_hint}"]})
        return kind

    async def _call(
        self,
        workspace_id: str,
        kind: str,
        operation: str,
        call: Callable[[ProviderClient], Awaitable[T]],
    ) -> T:
        resolved = self.resolver.resolve_active_by_kind(self.tenant_id, workspace_id, kind)
        client = self.registry.client_for(kind, resolved.connection, resolved.secret, self.timeout_seconds)
        try:
            return await asyncio.wait_for(call(client), timeout=self.timeout_seconds)
        except TimeoutError:
            logger.warning(
                "Provider call timed out",
                provider=kind,
                operation=operation,
                timeout_seconds=self.timeout_seconds,
            )
            raise ProviderTimeoutError(
                f"{kind} did not answer {operation} within {self.timeout_seconds}s", provider=kind
            ) from None
        finally:
            await client.aclose()

    async def create_session(
        self,
        workspace_id: str,
        amount_cents: int,
        currency: str,
        reference: str,
        provider_hint: str | None = None,
    ) -> CashlessSession:
        kind = self._select_kind(provider_hint)
        return await self._call(
            workspace_id,
            kind,
            "create_session",
            lambda client: client.create_session(amount_cents, currency, reference),
        )

    async def get_status(self, workspace_id: str, provider_kind: str, provider_ref: str) -> ProviderStatus:
        kind = self._select_kind(provider_kind)
        return await self._call(workspace_id, kind, "get_status", lambda client: client.get_status(provider_ref))

    async def cancel_session(self, workspace_id: str, provider_kind: str, provider_ref: str) -> ProviderStatus:
        kind = self._select_kind(provider_kind)
        return await self._call(
            workspace_id, kind, "cancel_session", lambda client: client.cancel_session(provider_ref)
        )
