"""Stripe Terminal adapter: payment sessions are card-present PaymentIntents.

Two reader integrations are supported:

- ``sdk``: the POS drives the reader through the Stripe Terminal SDK and
  collects the intent itself, authenticated with a connection token.
- ``server_driven``: the intent is pushed to the connection's default reader
  from here and the reader prompts for the card on its own.

Either way the attempt is then followed by polling the PaymentIntent.
"""

from typing import Any

import stripe

from cashless.attempt.action import TerminalAction
from cashless.exceptions import ProviderError
from cashless.gateway.port import CashlessSession, ProviderClient, ProviderStatus
from cashless.utils.logging import get_logger

logger = get_logger(__name__)

TERMINAL_MODES = ("sdk", "server_driven")
CAPTURE_MODES = ("automatic", "manual")

_STATUS_MAP = {
    "succeeded": "paid",
    "requires_capture": "authorized",
    "canceled": "cancelled",
    "requires_payment_method": "failed",
}


def map_intent_status(value: Any) -> str:
    # processing, requires_action and requires_confirmation are all still in flight
    return _STATUS_MAP.get(str(value or "").lower(), "pending")


def _as_dict(obj: Any) -> dict[str, Any]:
    if obj is None:
        return {}
    if hasattr(obj, "to_dict"):
        return obj.to_dict()
    return dict(obj)


class StripeTerminalClient(ProviderClient):
    kind = "stripe_terminal"
    supports_cancel = True

    def __init__(
        self,
        secret_key: str,
        *,
        terminal_mode: str = "sdk",
        terminal_location_id: str | None = None,
        default_reader_id: str | None = None,
        capture_mode: str = "automatic",
        stripe_account_id: str | None = None,
        timeout_seconds: float = 10.0,
        max_network_retries: int = 0,
        stripe_client: stripe.StripeClient | None = None,
    ) -> None:
        if terminal_mode not in TERMINAL_MODES:
            raise ProviderError(
                f"Unknown Stripe Terminal mode: {terminal_mode!r}", provider=self.kind, retryable=False
            )
        if capture_mode not in CAPTURE_MODES:
            raise ProviderError(
                f"Unknown Stripe capture mode: {capture_mode!r}", provider=self.kind, retryable=False
            )
        if stripe_client is None:
            if not secret_key:
                raise ProviderError("Stripe Terminal connection has no secret key", provider=self.kind, retryable=False)
            self._http_client = stripe.HTTPXClient(timeout=timeout_seconds)
            stripe_client = stripe.StripeClient(
                secret_key,
                stripe_account=stripe_account_id,
                max_network_retries=max_network_retries,
                http_client=self._http_client,
            )
        else:
            self._http_client = None

        self.stripe = stripe_client
        self.terminal_mode = terminal_mode
        self.terminal_location_id = terminal_location_id
        self.default_reader_id = default_reader_id
        self.capture_mode = capture_mode

    @classmethod
    def from_connection(cls, connection, secret: str | None, timeout_seconds: float) -> "StripeTerminalClient":
        config = connection.config or {}
        return cls(
            secret or "",
            terminal_mode=config.get("terminal_mode") or config.get("terminalMode") or "sdk",
            terminal_location_id=config.get("terminal_location_id") or config.get("terminalLocationId"),
            default_reader_id=config.get("default_reader_id") or config.get("defaultReaderId"),
            capture_mode=config.get("capture_mode") or config.get("captureMode") or "automatic",
            stripe_account_id=config.get("stripe_account_id") or config.get("stripeAccountId"),
            timeout_seconds=timeout_seconds,
        )

    async def _call(self, action: str, method, *args, **kwargs) -> dict[str, Any]:
        try:
            result = await method(*args, **kwargs)
        except stripe.StripeError as exc:
            logger.warning(
                "Stripe Terminal call failed",
                action=action,
                upstream_status=exc.http_status,
                error_code=exc.code,
            )
            raise ProviderError(
                f"Stripe Terminal failed to {action}: {exc.user_message or type(exc).__name__}",
                provider=self.kind,
                status=exc.http_status,
            ) from exc
        return _as_dict(result)

    def _status_for(self, intent: dict[str, Any]) -> ProviderStatus:
        status = map_intent_status(intent.get("status"))
        failure_reason = None
        if status == "failed":
            last_error = intent.get("last_payment_error") or {}
            failure_reason = last_error.get("message") or "Card payment was not completed"
        return ProviderStatus(status=status, raw=intent, failure_reason=failure_reason)

    async def create_session(self, amount_cents: int, currency: str, reference: str) -> CashlessSession:
        if self.terminal_mode == "server_driven" and not self.default_reader_id:
            raise ProviderError(
                "Stripe Terminal server-driven mode needs a default_reader_id", provider=self.kind, retryable=False
            )

        intent = await self._call(
            "create payment intent",
            self.stripe.payment_intents.create_async,
            params={
                "amount": amount_cents,
                "currency": currency.lower(),
                "payment_method_types": ["card_present"],
                "capture_method": self.capture_mode,
                "metadata": {"reference": reference},
            },
        )
        if not intent.get("id"):
            raise ProviderError("Stripe PaymentIntent reply has no id", provider=self.kind, retryable=False)

        if self.terminal_mode == "server_driven":
            await self._call(
                "hand the payment intent to the reader",
                self.stripe.terminal.readers.process_payment_intent_async,
                self.default_reader_id,
                params={"payment_intent": intent["id"]},
            )
            action = TerminalAction("process_payment_intent")
        else:
            if not intent.get("client_secret"):
                raise ProviderError(
                    "Stripe PaymentIntent reply has no client secret", provider=self.kind, retryable=False
                )
            action = TerminalAction("collect_payment_method")

        return CashlessSession(
            provider_kind=self.kind,
            provider_ref=intent["id"],
            status=map_intent_status(intent.get("status")),
            action=action,
            raw=intent,
        )

    async def get_status(self, provider_ref: str) -> ProviderStatus:
        intent = await self._call(
            "retrieve payment intent", self.stripe.payment_intents.retrieve_async, provider_ref
        )
        return self._status_for(intent)

    async def cancel_session(self, provider_ref: str) -> ProviderStatus:
        intent = await self._call("cancel payment intent", self.stripe.payment_intents.cancel_async, provider_ref)
        return self._status_for(intent)

    async def create_connection_token(self, location_id: str | None = None) -> dict[str, Any]:
        """Mint a short-lived token the POS hands to the Stripe Terminal SDK."""
        location = location_id or self.terminal_location_id
        params = {"location": location} if location else {}
        token = await self._call(
            "create connection token", self.stripe.terminal.connection_tokens.create_async, params=params
        )
        return {"secret": token.get("secret"), "location_id": location}

    async def check_connection(self) -> None:
        await self._call("list terminal locations", self.stripe.terminal.locations.list_async, params={"limit": 1})

    async def aclose(self) -> None:
        if self._http_client is not None:
            await self._http_client.close_async()
