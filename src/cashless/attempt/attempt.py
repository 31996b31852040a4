"""PaymentAttempt aggregate: one try at collecting a cashless payment for a sale.

The attempt owns its transition legality. Every status change, whichever entry
point it comes from (start, client poll, provider webhook), goes through
``transition_to``; the ``mark_*`` helpers are thin wrappers around it.

State Machine:
    PENDING → AUTHORIZED → PAID
    PENDING/AUTHORIZED → PAID | FAILED | CANCELLED | EXPIRED

PAID, FAILED, CANCELLED and EXPIRED are terminal. Re-applying the current status
is always legal and only refreshes the mutable fields, which absorbs duplicate
deliveries of the same provider event.
"""

from datetime import UTC, datetime
from enum import Enum
from typing import Any

from protean.exceptions import ValidationError
from protean.fields import DateTime, Dict, Identifier, Integer, String

from cashless.attempt.action import CashlessAction, decode_action, encode_action
from cashless.domain import cashless
from cashless.exceptions import IllegalTransitionError
from cashless.gateway.port import ProviderStatus


class AttemptStatus(Enum):
    PENDING = "pending"
    AUTHORIZED = "authorized"
    PAID = "paid"
    FAILED = "failed"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


OPEN_STATUSES = frozenset({AttemptStatus.PENDING, AttemptStatus.AUTHORIZED})
TERMINAL_STATUSES = frozenset(
    {AttemptStatus.PAID, AttemptStatus.FAILED, AttemptStatus.CANCELLED, AttemptStatus.EXPIRED}
)

_VALID_TRANSITIONS = {
    AttemptStatus.PENDING: {
        AttemptStatus.AUTHORIZED,
        AttemptStatus.PAID,
        AttemptStatus.FAILED,
        AttemptStatus.CANCELLED,
        AttemptStatus.EXPIRED,
    },
    AttemptStatus.AUTHORIZED: {
        AttemptStatus.PAID,
        AttemptStatus.FAILED,
        AttemptStatus.CANCELLED,
        AttemptStatus.EXPIRED,
    },
    AttemptStatus.PAID: set(),  # Terminal
    AttemptStatus.FAILED: set(),  # Terminal
    AttemptStatus.CANCELLED: set(),  # Terminal
    AttemptStatus.EXPIRED: set(),  # Terminal
}

# Fields that never change once the attempt exists
IMMUTABLE_FIELDS = ("amount_cents", "currency", "provider_kind", "provider_ref", "idempotency_key")


def _utcnow() -> datetime:
    return datetime.now(UTC)


def can_transition(current: AttemptStatus, target: AttemptStatus) -> bool:
    return current == target or target in _VALID_TRANSITIONS[current]


def parse_status(value: "AttemptStatus | str") -> AttemptStatus:
    if isinstance(value, AttemptStatus):
        return value
    try:
        return AttemptStatus(str(value).strip().lower())
    except ValueError:
        raise ValidationError({"status": [f"Unknown payment attempt status: {value!r}"]}) from None


@cashless.aggregate
class PaymentAttempt:
    tenant_id = Identifier(required=True)
    workspace_id = Identifier(required=True)
    register_id = Identifier(required=True)
    sale_id = Identifier()
    amount_cents = Integer(required=True, min_value=1)
    currency = String(required=True, max_length=3)
    status = String(choices=AttemptStatus, default=AttemptStatus.PENDING.value)
    provider_kind = String(required=True, max_length=50)
    provider_ref = String(required=True, max_length=255)
    action = Dict()
    idempotency_key = String(required=True, max_length=255)
    failure_reason = String(max_length=500)
    paid_at = DateTime()
    expires_at = DateTime()
    raw_status = Dict()
    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def start(
        cls,
        *,
        tenant_id: str,
        workspace_id: str,
        register_id: str,
        amount_cents: int,
        currency: str,
        idempotency_key: str,
        provider_kind: str,
        provider_ref: str,
        status: "AttemptStatus | str" = AttemptStatus.PENDING,
        action: CashlessAction | None = None,
        sale_id: str | None = None,
        raw_status: dict[str, Any] | None = None,
        expires_at: datetime | None = None,
        now: datetime | None = None,
    ) -> "PaymentAttempt":
        """Create an attempt in the provider's reported initial status."""
        if isinstance(amount_cents, bool) or not isinstance(amount_cents, int) or amount_cents <= 0:
            raise ValidationError({"amount_cents": ["Amount must be a positive number of cents"]})
        if not provider_ref:
            raise ValidationError({"provider_ref": ["Provider reference is required"]})

        now = now or _utcnow()
        initial = parse_status(status)
        fields = {
            "tenant_id": tenant_id,
            "workspace_id": workspace_id,
            "register_id": register_id,
            "sale_id": sale_id,
            "amount_cents": amount_cents,
            "currency": currency.upper(),
            "status": initial.value,
            "provider_kind": provider_kind,
            "provider_ref": provider_ref,
            "action": encode_action(action),
            "idempotency_key": idempotency_key,
            "paid_at": now if initial == AttemptStatus.PAID else None,
            "expires_at": expires_at,
            "raw_status": raw_status or {},
            "created_at": now,
            "updated_at": now,
        }
        return cls(**{name: value for name, value in fields.items() if value is not None})

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    @property
    def current_status(self) -> AttemptStatus:
        return AttemptStatus(self.status)

    @property
    def is_open(self) -> bool:
        return self.current_status in OPEN_STATUSES

    @property
    def is_terminal(self) -> bool:
        return self.current_status in TERMINAL_STATUSES

    @property
    def next_action(self) -> CashlessAction:
        return decode_action(self.action)

    def is_stale(self, now: datetime, threshold_ms: int) -> bool:
        """True when the last recorded change is older than ``threshold_ms``."""
        if self.updated_at is None:
            return True
        return (now - self.updated_at).total_seconds() * 1000 > threshold_ms

    # -------------------------------------------------------------------
    # Transition primitive
    # -------------------------------------------------------------------
    def transition_to(
        self,
        target: "AttemptStatus | str",
        *,
        now: datetime | None = None,
        action: CashlessAction | None = None,
        raw_status: dict[str, Any] | None = None,
        failure_reason: str | None = None,
        paid_at: datetime | None = None,
    ) -> bool:
        """Move to ``target`` and refresh the mutable fields.

        Returns True when the status changed. Raises ``IllegalTransitionError``
        for an edge outside the state graph.
        """
        target = parse_status(target)
        current = self.current_status
        if not can_transition(current, target):
            raise IllegalTransitionError(str(self.id), current.value, target.value)

        now = now or _utcnow()
        changed = target != current
        if changed:
            self.status = target.value

        if action is not None:
            self.action = encode_action(action)
        if raw_status is not None:
            self.raw_status = raw_status

        if target == AttemptStatus.PAID:
            self.paid_at = self.paid_at or paid_at or now
            self.failure_reason = None
        elif target in TERMINAL_STATUSES and failure_reason:
            self.failure_reason = failure_reason[:500]

        self.updated_at = now
        return changed

    # -------------------------------------------------------------------
    # Convenience wrappers
    # -------------------------------------------------------------------
    def mark_paid(self, *, now=None, paid_at=None, raw_status=None) -> bool:
        return self.transition_to(AttemptStatus.PAID, now=now, paid_at=paid_at, raw_status=raw_status)

    def mark_failed(self, reason: str | None = None, *, now=None, raw_status=None) -> bool:
        return self.transition_to(
            AttemptStatus.FAILED,
            now=now,
            failure_reason=reason or "Payment failed",
            raw_status=raw_status,
        )

    def mark_cancelled(self, reason: str | None = None, *, now=None, raw_status=None) -> bool:
        return self.transition_to(AttemptStatus.CANCELLED, now=now, failure_reason=reason, raw_status=raw_status)

    def mark_expired(self, *, now=None, raw_status=None) -> bool:
        return self.transition_to(
            AttemptStatus.EXPIRED,
            now=now,
            failure_reason="Payment session expired",
            raw_status=raw_status,
        )

    def apply_provider_status(self, update: ProviderStatus, *, now=None) -> bool:
        return self.transition_to(
            update.status,
            now=now,
            action=update.action,
            raw_status=update.raw,
            failure_reason=update.failure_reason,
            paid_at=update.paid_at,
        )
