"""What the POS client has to do next to complete a payment.

A closed set of variants, stored on the attempt as a JSON object tagged by
``type``. Stored shapes are validated on the way back in, never trusted.
"""

from dataclasses import dataclass
from typing import Any, ClassVar

from protean.exceptions import ValidationError


@dataclass(frozen=True)
class NoAction:
    type: ClassVar[str] = "none"


@dataclass(frozen=True)
class RedirectUrl:
    url: str
    type: ClassVar[str] = "redirect_url"


@dataclass(frozen=True)
class QrPayload:
    payload: str
    type: ClassVar[str] = "qr_payload"


@dataclass(frozen=True)
class TerminalAction:
    instruction: str
    type: ClassVar[str] = "terminal_action"


CashlessAction = NoAction | RedirectUrl | QrPayload | TerminalAction

# type tag -> (variant class, name of its payload field)
_VARIANTS: dict[str, tuple[type, str | None]] = {
    NoAction.type: (NoAction, None),
    RedirectUrl.type: (RedirectUrl, "url"),
    QrPayload.type: (QrPayload, "payload"),
    TerminalAction.type: (TerminalAction, "instruction"),
}


def encode_action(action: CashlessAction | None) -> dict[str, Any]:
    if action is None:
        action = NoAction()
    if not isinstance(action, (NoAction, RedirectUrl, QrPayload, TerminalAction)):
        raise ValidationError({"action": [f"Unsupported action {type(action).__name__}"]})

    _, field_name = _VARIANTS[action.type]
    encoded: dict[str, Any] = {"type": action.type}
    if field_name is not None:
        encoded[field_name] = getattr(action, field_name)
    return encoded


def decode_action(data: dict[str, Any] | None) -> CashlessAction:
    if data is None:
        return NoAction()
    if not isinstance(data, dict):
        raise ValidationError({"action": ["Action must be an object"]})

    action_type = data.get("type")
    if action_type not in _VARIANTS:
        raise ValidationError({"action": [f"Unknown action type: {action_type!r}"]})

    cls, field_name = _VARIANTS[action_type]
    if field_name is None:
        return cls()

    value = data.get(field_name)
    if not isinstance(value, str) or not value:
        raise ValidationError({"action": [f"Action {action_type} requires a non-empty '{field_name}'"]})
    return cls(value)
