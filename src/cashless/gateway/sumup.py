"""SumUp adapter: payment sessions are SumUp checkouts."""

from typing import Any

import httpx

from cashless.attempt.action import CashlessAction, RedirectUrl, TerminalAction
from cashless.exceptions import ProviderError
from cashless.gateway.http import HttpProviderClient, parse_timestamp
from cashless.gateway.port import CashlessSession, ProviderStatus

SUMUP_API_BASE = "https://api.sumup.com"

_STATUS_MAP = {
    "PENDING": "pending",
    "PAID": "paid",
    "FAILED": "failed",
    "EXPIRED": "expired",
    "CANCELLED": "cancelled",
}


def map_checkout_status(value: Any) -> str:
    return _STATUS_MAP.get(str(value or "").upper(), "pending")


class SumUpClient(HttpProviderClient):
    kind = "sumup"
    provider_name = "SumUp"
    supports_cancel = True

    def __init__(
        self,
        api_key: str,
        merchant_code: str,
        *,
        base_url: str = SUMUP_API_BASE,
        return_url: str | None = None,
        timeout_seconds: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not merchant_code:
            raise ProviderError("SumUp connection is missing merchant_code", provider=self.kind, retryable=False)
        super().__init__(
            base_url=base_url,
            headers={"Authorization": f"Bearer {api_key}"},
            timeout_seconds=timeout_seconds,
            transport=transport,
        )
        self.merchant_code = merchant_code
        self.return_url = return_url

    @classmethod
    def from_connection(cls, connection, secret: str | None, timeout_seconds: float) -> "SumUpClient":
        config = connection.config or {}
        return cls(
            secret or "",
            config.get("merchant_code") or config.get("merchantCode") or "",
            base_url=config.get("base_url", SUMUP_API_BASE),
            return_url=config.get("return_url"),
            timeout_seconds=timeout_seconds,
        )

    def _action_for(self, checkout: dict[str, Any]) -> CashlessAction:
        hosted = checkout.get("hosted_checkout_url")
        if hosted:
            return RedirectUrl(hosted)
        return TerminalAction("present_card")

    def _status_for(self, checkout: dict[str, Any]) -> ProviderStatus:
        status = map_checkout_status(checkout.get("status"))
        paid_at = None
        if status == "paid":
            successful = [
                t for t in checkout.get("transactions") or [] if str(t.get("status", "")).upper() == "SUCCESSFUL"
            ]
            paid_at = parse_timestamp(successful[0].get("timestamp")) if successful else None
        return ProviderStatus(
            status=status,
            raw=checkout,
            paid_at=paid_at,
            failure_reason="SumUp checkout failed" if status == "failed" else None,
        )

    async def create_session(self, amount_cents: int, currency: str, reference: str) -> CashlessSession:
        body: dict[str, Any] = {
            "checkout_reference": reference,
            "amount": round(amount_cents / 100, 2),
            "currency": currency.upper(),
            "merchant_code": self.merchant_code,
        }
        if self.return_url:
            body["return_url"] = self.return_url
            body["hosted_checkout"] = {"enabled": True}

        checkout = await self._request("POST", "/v0.1/checkouts", json=body, action="create checkout")
        if not checkout.get("id"):
            raise ProviderError("SumUp checkout reply has no id", provider=self.kind, retryable=False)

        return CashlessSession(
            provider_kind=self.kind,
            provider_ref=checkout["id"],
            status=map_checkout_status(checkout.get("status")),
            action=self._action_for(checkout),
            raw=checkout,
            expires_at=parse_timestamp(checkout.get("valid_until")),
        )

    async def get_status(self, provider_ref: str) -> ProviderStatus:
        checkout = await self._request("GET", f"/v0.1/checkouts/{provider_ref}", action="retrieve checkout")
        return self._status_for(checkout)

    async def cancel_session(self, provider_ref: str) -> ProviderStatus:
        checkout = await self._request("DELETE", f"/v0.1/checkouts/{provider_ref}", action="deactivate checkout")
        current = self._status_for(checkout) if checkout else ProviderStatus(status="cancelled")
        # SumUp reports a deactivated checkout as EXPIRED.
        if current.status in ("pending", "expired"):
            return ProviderStatus(status="cancelled", raw=checkout or None)
        return current

    async def check_connection(self) -> None:
        await self._request("GET", "/v0.1/me", action="read merchant profile")
