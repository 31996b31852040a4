"""Mail provider push notifications.

These endpoints share the webhook surface with the payment providers but carry
no payment state. They are answered in-band and only logged; mailbox sync runs
elsewhere.
"""

import base64
import binascii
import json
from typing import Any

from cashless.utils.logging import get_logger

logger = get_logger(__name__)


def graph_validation_response(validation_token: str | None) -> str | None:
    """The Microsoft Graph subscription handshake echoes the token back verbatim."""
    return validation_token or None


def record_graph_notifications(body: dict[str, Any] | None) -> int:
    value = body.get("value") if isinstance(body, dict) else None
    notifications = [n for n in value if isinstance(n, dict)] if isinstance(value, list) else []
    for notification in notifications:
        logger.info(
            "Microsoft Graph mail notification",
            subscription_id=notification.get("subscriptionId"),
            change_type=notification.get("changeType"),
            client_state_present=bool(notification.get("clientState")),
        )
    return len(notifications)


def decode_gmail_push(body: dict[str, Any] | None) -> dict[str, Any] | None:
    """Decode the base64 ``message.data`` of a Pub/Sub push envelope."""
    message = body.get("message") if isinstance(body, dict) else None
    data = message.get("data") if isinstance(message, dict) else None
    if not isinstance(data, str) or not data:
        return None
    try:
        decoded = json.loads(base64.urlsafe_b64decode(data + "=" * (-len(data) % 4)))
    except (binascii.Error, ValueError):
        logger.warning("Undecodable Gmail push message")
        return None
    return decoded if isinstance(decoded, dict) else None


def record_gmail_push(body: dict[str, Any] | None) -> dict[str, Any] | None:
    decoded = decode_gmail_push(body)
    if decoded is not None:
        logger.info(
            "Gmail push notification",
            email_address=decoded.get("emailAddress"),
            history_id=decoded.get("historyId"),
        )
    return decoded
