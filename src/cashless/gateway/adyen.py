"""Adyen adapter: payment sessions are Adyen pay-by-link links."""

from typing import Any

import httpx

from cashless.attempt.action import QrPayload, RedirectUrl
from cashless.exceptions import ProviderError
from cashless.gateway.http import HttpProviderClient, parse_timestamp
from cashless.gateway.port import CashlessSession, ProviderStatus

ADYEN_CHECKOUT_BASE = "https://checkout-test.adyen.com/v71"

_STATUS_MAP = {
    "active": "pending",
    "paymentpending": "authorized",
    "completed": "paid",
    "expired": "expired",
}


def map_link_status(value: Any) -> str:
    return _STATUS_MAP.get(str(value or "").lower(), "pending")


class AdyenClient(HttpProviderClient):
    kind = "adyen"
    provider_name = "Adyen"
    supports_cancel = True

    def __init__(
        self,
        api_key: str,
        merchant_account: str,
        *,
        base_url: str = ADYEN_CHECKOUT_BASE,
        return_url: str | None = None,
        qr: bool = False,
        timeout_seconds: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not merchant_account:
            raise ProviderError("Adyen connection is missing merchant_account", provider=self.kind, retryable=False)
        super().__init__(
            base_url=base_url,
            headers={"X-API-Key": api_key},
            timeout_seconds=timeout_seconds,
            transport=transport,
        )
        self.merchant_account = merchant_account
        self.return_url = return_url
        self.qr = qr

    @classmethod
    def from_connection(cls, connection, secret: str | None, timeout_seconds: float) -> "AdyenClient":
        config = connection.config or {}
        return cls(
            secret or "",
            config.get("merchant_account") or config.get("merchantAccount") or "",
            base_url=config.get("base_url", ADYEN_CHECKOUT_BASE),
            return_url=config.get("return_url"),
            qr=bool(config.get("qr")),
            timeout_seconds=timeout_seconds,
        )

    async def create_session(self, amount_cents: int, currency: str, reference: str) -> CashlessSession:
        body: dict[str, Any] = {
            "reference": reference,
            "amount": {"value": amount_cents, "currency": currency.upper()},
            "merchantAccount": self.merchant_account,
        }
        if self.return_url:
            body["returnUrl"] = self.return_url

        link = await self._request("POST", "/paymentLinks", json=body, action="create payment link")
        if not link.get("id") or not link.get("url"):
            raise ProviderError("Adyen payment link reply has no id or url", provider=self.kind, retryable=False)

        # A link shown as a QR code on the customer display is the same URL.
        action = QrPayload(link["url"]) if self.qr else RedirectUrl(link["url"])
        return CashlessSession(
            provider_kind=self.kind,
            provider_ref=link["id"],
            status=map_link_status(link.get("status")),
            action=action,
            raw=link,
            expires_at=parse_timestamp(link.get("expiresAt")),
        )

    async def get_status(self, provider_ref: str) -> ProviderStatus:
        link = await self._request("GET", f"/paymentLinks/{provider_ref}", action="retrieve payment link")
        return ProviderStatus(status=map_link_status(link.get("status")), raw=link)

    async def cancel_session(self, provider_ref: str) -> ProviderStatus:
        link = await self._request(
            "PATCH",
            f"/paymentLinks/{provider_ref}",
            json={"status": "expired"},
            action="expire payment link",
        )
        status = map_link_status(link.get("status"))
        if status in ("pending", "expired"):
            return ProviderStatus(status="cancelled", raw=link)
        return ProviderStatus(status=status, raw=link)

    async def check_connection(self) -> None:
        # Adyen has no cheap credential check on the checkout API; an unknown
        # link id answers 404 with valid credentials and 401/403 without.
        try:
            await self._request("GET", "/paymentLinks/PL00000000000000", action="check credentials")
        except ProviderError as exc:
            if exc.status != 404:
                raise
