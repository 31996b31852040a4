"""Configurable fake provider for development and testing.

Simulates a payment provider without any external calls. Sessions start
``pending``; tests move them along with ``set_status`` and read ``calls`` to
check what the orchestration asked for.
"""

from uuid import uuid4

from cashless.attempt.action import CashlessAction, RedirectUrl
from cashless.exceptions import ProviderError
from cashless.gateway.port import CashlessSession, ProviderClient, ProviderStatus


class FakeProviderClient(ProviderClient):
    """Configurable fake provider client."""

    kind = "fake"
    supports_cancel = True

    def __init__(self, kind: str | None = None) -> None:
        if kind:
            self.kind = kind
        self.should_succeed: bool = True
        self.failure_reason: str = "Provider unavailable"
        self.failure_status: int | None = 503
        self.initial_status: str = "pending"
        self.action: CashlessAction | None = None
        self.statuses: dict[str, ProviderStatus] = {}
        self.calls: list[dict] = []

    def configure(
        self,
        should_succeed: bool,
        failure_reason: str = "Provider unavailable",
        failure_status: int | None = 503,
    ) -> None:
        """Configure provider behavior at runtime."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason
        self.failure_status = failure_status

    def set_status(self, provider_ref: str, status: str, **kwargs) -> None:
        """Set what the provider reports for a session on its next poll."""
        self.statuses[provider_ref] = ProviderStatus(status=status, **kwargs)

    def _fail_if_configured(self) -> None:
        if not self.should_succeed:
            raise ProviderError(self.failure_reason, provider=self.kind, status=self.failure_status)

    async def create_session(self, amount_cents: int, currency: str, reference: str) -> CashlessSession:
        self.calls.append(
            {"method": "create_session", "amount_cents": amount_cents, "currency": currency, "reference": reference}
        )
        self._fail_if_configured()

        provider_ref = f"fake_chk_{uuid4().hex[:12]}"
        self.statuses[provider_ref] = ProviderStatus(status=self.initial_status)
        return CashlessSession(
            provider_kind=self.kind,
            provider_ref=provider_ref,
            status=self.initial_status,
            action=self.action or RedirectUrl(f"https://pay.example.test/{provider_ref}"),
            raw={"id": provider_ref, "reference": reference},
        )

    async def get_status(self, provider_ref: str) -> ProviderStatus:
        self.calls.append({"method": "get_status", "provider_ref": provider_ref})
        self._fail_if_configured()
        return self.statuses.get(provider_ref, ProviderStatus(status="pending"))

    async def cancel_session(self, provider_ref: str) -> ProviderStatus:
        self.calls.append({"method": "cancel_session", "provider_ref": provider_ref})
        self._fail_if_configured()
        self.statuses[provider_ref] = ProviderStatus(status="cancelled")
        return self.statuses[provider_ref]

    async def check_connection(self) -> None:
        self.calls.append({"method": "check_connection"})
        self._fail_if_configured()
