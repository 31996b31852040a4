"""Vendor vocabulary for webhook payloads.

Providers do not agree on field names or status words. These helpers pull the
correlation key and a status out of a payload under any of the names seen in
practice, and map the status to internal vocabulary.
"""

from typing import Any

PAID_WORDS = frozenset({"paid", "successful", "success"})
FAILED_WORDS = frozenset({"failed", "failure", "declined"})
CANCELLED_WORDS = frozenset({"cancelled", "canceled"})
EXPIRED_WORDS = frozenset({"expired"})

_VOCABULARY = (
    (PAID_WORDS, "paid"),
    (FAILED_WORDS, "failed"),
    (CANCELLED_WORDS, "cancelled"),
    (EXPIRED_WORDS, "expired"),
)

PROVIDER_REF_ALIASES = ("providerRef", "provider_ref", "checkoutId", "checkout_id", "id")
WORKSPACE_ALIASES = ("workspaceId", "workspace_id")
STATUS_ALIASES = ("status", "event", "type")
NESTED_KEYS = ("data", "payload")


def map_vendor_status(value: Any) -> str | None:
    """Internal status for a vendor word, or None when the word means nothing to us."""
    word = str(value or "").strip().lower()
    for words, status in _VOCABULARY:
        if word in words:
            return status
    return None


def _candidates(payload: dict[str, Any]) -> list[dict[str, Any]]:
    found = [payload]
    for key in NESTED_KEYS:
        nested = payload.get(key)
        if isinstance(nested, dict):
            found.append(nested)
    return found


def _first_value(payload: dict[str, Any], aliases: tuple[str, ...]) -> str | None:
    for candidate in _candidates(payload):
        for alias in aliases:
            value = candidate.get(alias)
            if value not in (None, ""):
                return str(value)
    return None


def extract_provider_ref(payload: dict[str, Any]) -> str | None:
    return _first_value(payload, PROVIDER_REF_ALIASES)


def extract_workspace_id(payload: dict[str, Any]) -> str | None:
    return _first_value(payload, WORKSPACE_ALIASES)


def extract_status(payload: dict[str, Any]) -> str | None:
    value = _first_value(payload, STATUS_ALIASES)
    return value.strip().lower() if value else None
