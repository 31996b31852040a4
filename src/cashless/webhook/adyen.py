"""Adyen standard notifications for pay-by-link sessions.

Each notification item is signed on its own (HMAC-SHA256, hex key, base64
signature in ``additionalData.hmacSignature``). Adyen retries anything that is
not answered ``[accepted]``, so every outcome, failure included, is logged and
acknowledged; nothing propagates to the caller.
"""

import binascii
from typing import Any

from protean.exceptions import ObjectNotFoundError, ValidationError

from cashless.exceptions import IllegalTransitionError
from cashless.utils.logging import get_logger
from cashless.webhook.ingest import WebhookOutcome, apply_webhook_status
from cashless.webhook.signature import verify_adyen_signature

logger = get_logger(__name__)

PROVIDER_KIND = "adyen"
ACKNOWLEDGEMENT = "[accepted]"


def _mapping(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def signing_string(item: dict[str, Any]) -> str:
    amount = _mapping(item.get("amount"))
    return ":".join(
        str(part if part is not None else "")
        for part in (
            item.get("pspReference"),
            item.get("originalReference"),
            item.get("merchantAccountCode"),
            item.get("merchantReference"),
            amount.get("value"),
            amount.get("currency"),
            item.get("eventCode"),
            item.get("success"),
        )
    )


def map_event(event_code: str | None, success: bool) -> str | None:
    code = (event_code or "").upper()
    if code == "AUTHORISATION":
        return "authorized" if success else "failed"
    if not success:
        return None
    if code == "CAPTURE":
        return "paid"
    if code in ("CANCELLATION", "CANCEL_OR_REFUND"):
        return "cancelled"
    if code == "OFFER_CLOSED":
        return "expired"
    return None


def workspace_from_reference(merchant_reference: str | None) -> str | None:
    """Workspace id out of a ``pos:{workspace}:{register}:...`` reference."""
    parts = (merchant_reference or "").split(":")
    if len(parts) >= 3 and parts[0] == "pos" and parts[1]:
        return parts[1]
    return None


class AdyenWebhookService:
    def __init__(self, hmac_key: str | None, *, allow_unsigned: bool = False) -> None:
        self.hmac_key = hmac_key
        self.allow_unsigned = allow_unsigned

    @classmethod
    def from_settings(cls, settings) -> "AdyenWebhookService":
        return cls(settings.adyen_hmac_key, allow_unsigned=settings.allow_unsigned_webhooks)

    def _is_authentic(self, item: dict[str, Any]) -> bool:
        if not self.hmac_key:
            return self.allow_unsigned
        signature = _mapping(item.get("additionalData")).get("hmacSignature")
        try:
            return verify_adyen_signature(self.hmac_key, signing_string(item), signature)
        except (binascii.Error, ValueError):
            logger.error("ADYEN_HMAC_KEY is not a valid hex key")
            return False

    def handle_item(self, item: dict[str, Any]) -> WebhookOutcome:
        psp_reference = item.get("pspReference")
        if not self._is_authentic(item):
            logger.warning("Rejected Adyen notification item", psp_reference=psp_reference, reason="signature")
            return WebhookOutcome.ignored("signature")

        success = str(item.get("success", "")).lower() == "true"
        status = map_event(item.get("eventCode"), success)
        if status is None:
            return WebhookOutcome.ignored(f"unmapped event {item.get('eventCode')!r}")

        provider_ref = _mapping(item.get("additionalData")).get("paymentLinkId")
        workspace_id = workspace_from_reference(item.get("merchantReference"))
        if not provider_ref or not workspace_id:
            logger.warning(
                "Adyen notification has no payment link or workspace",
                psp_reference=psp_reference,
                merchant_reference=item.get("merchantReference"),
            )
            return WebhookOutcome.ignored("uncorrelated")

        return apply_webhook_status(
            workspace_id=workspace_id,
            provider_kind=PROVIDER_KIND,
            provider_ref=provider_ref,
            status=status,
            raw=item,
            failure_reason=item.get("reason") if status == "failed" else None,
        )

    def handle(self, body: dict[str, Any]) -> list[WebhookOutcome]:
        wrappers = _mapping(body).get("notificationItems")
        if not isinstance(wrappers, list):
            logger.warning("Adyen notification has no item list")
            return []

        outcomes = []
        for wrapper in wrappers:
            item = _mapping(wrapper).get("NotificationRequestItem")
            if not isinstance(item, dict):
                logger.warning("Malformed Adyen notification item", item_type=type(item).__name__)
                outcomes.append(WebhookOutcome.ignored("malformed"))
                continue
            try:
                outcome = self.handle_item(item)
            except (ObjectNotFoundError, ValidationError, IllegalTransitionError) as exc:
                logger.error(
                    "Adyen notification item failed",
                    psp_reference=item.get("pspReference"),
                    event_code=item.get("eventCode"),
                    error=str(exc),
                    error_type=type(exc).__name__,
                )
                outcome = WebhookOutcome.ignored(type(exc).__name__)
            outcomes.append(outcome)
        return outcomes
