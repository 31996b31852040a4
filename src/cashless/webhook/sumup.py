"""SumUp webhook ingestion.

The request is authenticated with an HMAC-SHA256 of the raw body carried in the
``x-sumup-signature`` header. Without a configured secret the request is refused
unless unsigned webhooks were explicitly allowed.

A payload naming an attempt that does not exist is a ``ObjectNotFoundError``
raised to the caller, so an operator sees the mismatch in SumUp's delivery log.
"""

import json

from protean.exceptions import ValidationError

from cashless.exceptions import WebhookSignatureError
from cashless.utils.logging import get_logger
from cashless.webhook.ingest import WebhookOutcome, apply_webhook_status
from cashless.webhook.signature import verify_hmac_signature
from cashless.webhook.vocabulary import extract_provider_ref, extract_status, extract_workspace_id, map_vendor_status

logger = get_logger(__name__)

PROVIDER_KIND = "sumup"


class SumUpWebhookService:
    def __init__(self, secret: str | None, *, allow_unsigned: bool = False) -> None:
        self.secret = secret
        self.allow_unsigned = allow_unsigned

    @classmethod
    def from_settings(cls, settings) -> "SumUpWebhookService":
        return cls(settings.sumup_webhook_secret, allow_unsigned=settings.allow_unsigned_webhooks)

    def verify(self, raw_body: bytes | None, signature: str | None) -> None:
        if not self.secret:
            if self.allow_unsigned:
                logger.warning("Accepting unsigned SumUp webhook", reason="no secret configured")
                return
            raise WebhookSignatureError({"signature": ["SumUp webhook secret is not configured"]})

        if not raw_body or not signature:
            raise WebhookSignatureError({"signature": ["Signature and raw body are required"]})
        if not verify_hmac_signature(self.secret, raw_body, signature):
            logger.warning("Rejected SumUp webhook", reason="signature mismatch")
            raise WebhookSignatureError({"signature": ["Invalid webhook signature"]})

    def handle(self, raw_body: bytes | None, signature: str | None) -> WebhookOutcome:
        self.verify(raw_body, signature)

        try:
            payload = json.loads(raw_body or b"{}")
        except ValueError:
            raise ValidationError({"body": ["Webhook body is not valid JSON"]}) from None
        if not isinstance(payload, dict):
            raise ValidationError({"body": ["Webhook body must be a JSON object"]})

        vendor_status = extract_status(payload)
        status = map_vendor_status(vendor_status)
        if status is None:
            logger.debug("Ignoring SumUp webhook", vendor_status=vendor_status)
            return WebhookOutcome.ignored(f"unmapped status {vendor_status!r}")

        provider_ref = extract_provider_ref(payload)
        workspace_id = extract_workspace_id(payload)
        if not provider_ref or not workspace_id:
            raise ValidationError({"body": ["Webhook payload has no checkout reference or workspace"]})

        outcome = apply_webhook_status(
            workspace_id=workspace_id,
            provider_kind=PROVIDER_KIND,
            provider_ref=provider_ref,
            status=status,
            raw=payload,
            failure_reason="SumUp reported the payment as failed" if status == "failed" else None,
        )
        logger.info(
            "SumUp webhook applied",
            attempt_id=outcome.attempt_id,
            provider_ref=provider_ref,
            status=status,
        )
        return outcome
