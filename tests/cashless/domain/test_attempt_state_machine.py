"""Tests for the PaymentAttempt transition graph."""

from datetime import UTC, datetime, timedelta

import pytest
from cashless.attempt.action import NoAction, RedirectUrl
from cashless.attempt.attempt import (
    OPEN_STATUSES,
    TERMINAL_STATUSES,
    AttemptStatus,
    PaymentAttempt,
    can_transition,
)
from cashless.exceptions import IllegalTransitionError
from cashless.gateway.port import ProviderStatus
from protean.exceptions import ValidationError

T0 = datetime(2026, 3, 2, 12, 0, 0, tzinfo=UTC)


def _make_attempt(status=AttemptStatus.PENDING, **overrides):
    defaults = {
        "tenant_id": "t1",
        "workspace_id": "w1",
        "register_id": "reg-1",
        "sale_id": "sale-1",
        "amount_cents": 2400,
        "currency": "EUR",
        "idempotency_key": "idem-1",
        "provider_kind": "sumup",
        "provider_ref": "ref-1",
        "status": status,
        "action": RedirectUrl("https://x"),
        "now": T0,
    }
    defaults.update(overrides)
    return PaymentAttempt.start(**defaults)


LEGAL_EDGES = [
    (AttemptStatus.PENDING, AttemptStatus.AUTHORIZED),
    (AttemptStatus.PENDING, AttemptStatus.PAID),
    (AttemptStatus.PENDING, AttemptStatus.FAILED),
    (AttemptStatus.PENDING, AttemptStatus.CANCELLED),
    (AttemptStatus.PENDING, AttemptStatus.EXPIRED),
    (AttemptStatus.AUTHORIZED, AttemptStatus.PAID),
    (AttemptStatus.AUTHORIZED, AttemptStatus.FAILED),
    (AttemptStatus.AUTHORIZED, AttemptStatus.CANCELLED),
    (AttemptStatus.AUTHORIZED, AttemptStatus.EXPIRED),
]

ILLEGAL_EDGES = [
    (current, target)
    for current in AttemptStatus
    for target in AttemptStatus
    if current != target and (current, target) not in LEGAL_EDGES
]


class TestTransitionTable:
    @pytest.mark.parametrize("current,target", LEGAL_EDGES)
    def test_legal_edges(self, current, target):
        assert can_transition(current, target) is True

    @pytest.mark.parametrize("current,target", ILLEGAL_EDGES)
    def test_illegal_edges(self, current, target):
        assert can_transition(current, target) is False

    @pytest.mark.parametrize("status", list(AttemptStatus))
    def test_same_status_is_always_legal(self, status):
        assert can_transition(status, status) is True

    def test_open_and_terminal_partition_the_statuses(self):
        assert OPEN_STATUSES | TERMINAL_STATUSES == set(AttemptStatus)
        assert not OPEN_STATUSES & TERMINAL_STATUSES


class TestTransitionTo:
    @pytest.mark.parametrize("current,target", LEGAL_EDGES)
    def test_legal_transition_changes_status(self, current, target):
        attempt = _make_attempt(status=current)
        changed = attempt.transition_to(target, now=T0 + timedelta(seconds=5))
        assert changed is True
        assert attempt.status == target.value
        assert attempt.updated_at == T0 + timedelta(seconds=5)

    @pytest.mark.parametrize("current,target", ILLEGAL_EDGES)
    def test_illegal_transition_raises_and_leaves_attempt_untouched(self, current, target):
        attempt = _make_attempt(status=current)
        before = (attempt.status, attempt.updated_at, attempt.failure_reason, attempt.paid_at)

        with pytest.raises(IllegalTransitionError) as exc_info:
            attempt.transition_to(target, now=T0 + timedelta(seconds=5), failure_reason="nope")

        assert exc_info.value.current == current.value
        assert exc_info.value.target == target.value
        assert (attempt.status, attempt.updated_at, attempt.failure_reason, attempt.paid_at) == before

    def test_same_status_is_a_no_op_that_refreshes_updated_at(self):
        attempt = _make_attempt()
        changed = attempt.transition_to(AttemptStatus.PENDING, now=T0 + timedelta(seconds=30))
        assert changed is False
        assert attempt.status == "pending"
        assert attempt.updated_at == T0 + timedelta(seconds=30)

    def test_same_terminal_status_is_a_no_op(self):
        attempt = _make_attempt()
        attempt.mark_paid(now=T0 + timedelta(seconds=1))
        paid_at = attempt.paid_at

        assert attempt.mark_paid(now=T0 + timedelta(seconds=9)) is False
        assert attempt.status == "paid"
        assert attempt.paid_at == paid_at

    def test_accepts_status_strings_case_insensitively(self):
        attempt = _make_attempt()
        attempt.transition_to("AUTHORIZED", now=T0)
        assert attempt.status == "authorized"

    def test_unknown_status_is_a_validation_error(self):
        attempt = _make_attempt()
        with pytest.raises(ValidationError) as exc_info:
            attempt.transition_to("refunded", now=T0)
        assert "status" in exc_info.value.messages

    def test_action_and_raw_status_are_refreshed(self):
        attempt = _make_attempt()
        attempt.transition_to(
            AttemptStatus.AUTHORIZED,
            now=T0,
            action=NoAction(),
            raw_status={"status": "AUTHORIZED"},
        )
        assert attempt.next_action == NoAction()
        assert attempt.raw_status == {"status": "AUTHORIZED"}

    def test_omitted_action_keeps_the_current_one(self):
        attempt = _make_attempt()
        attempt.transition_to(AttemptStatus.AUTHORIZED, now=T0)
        assert attempt.next_action == RedirectUrl("https://x")


class TestPaidTransition:
    def test_paid_sets_paid_at_to_now_by_default(self):
        attempt = _make_attempt()
        attempt.mark_paid(now=T0 + timedelta(seconds=3))
        assert attempt.paid_at == T0 + timedelta(seconds=3)

    def test_paid_prefers_provider_timestamp(self):
        attempt = _make_attempt()
        provider_paid_at = T0 + timedelta(seconds=1)
        attempt.mark_paid(now=T0 + timedelta(seconds=3), paid_at=provider_paid_at)
        assert attempt.paid_at == provider_paid_at

    def test_paid_clears_failure_reason(self):
        attempt = _make_attempt()
        attempt.failure_reason = "Card reader timeout"
        attempt.mark_paid(now=T0)
        assert attempt.failure_reason is None


class TestFailureReasons:
    def test_mark_failed_default_reason(self):
        attempt = _make_attempt()
        attempt.mark_failed(now=T0)
        assert attempt.status == "failed"
        assert attempt.failure_reason == "Payment failed"

    def test_mark_failed_with_reason(self):
        attempt = _make_attempt()
        attempt.mark_failed("Card declined", now=T0)
        assert attempt.failure_reason == "Card declined"

    def test_mark_expired_reason(self):
        attempt = _make_attempt()
        attempt.mark_expired(now=T0)
        assert attempt.status == "expired"
        assert attempt.failure_reason == "Payment session expired"

    def test_mark_cancelled(self):
        attempt = _make_attempt(status=AttemptStatus.AUTHORIZED)
        attempt.mark_cancelled("Customer walked away", now=T0)
        assert attempt.status == "cancelled"
        assert attempt.failure_reason == "Customer walked away"

    def test_failure_reason_is_truncated(self):
        attempt = _make_attempt()
        attempt.mark_failed("x" * 900, now=T0)
        assert len(attempt.failure_reason) == 500


class TestApplyProviderStatus:
    def test_applies_status_action_and_raw(self):
        attempt = _make_attempt()
        update = ProviderStatus(status="authorized", action=NoAction(), raw={"state": "auth"})
        assert attempt.apply_provider_status(update, now=T0) is True
        assert attempt.status == "authorized"
        assert attempt.raw_status == {"state": "auth"}

    def test_terminal_attempt_refuses_provider_regression(self):
        attempt = _make_attempt()
        attempt.mark_paid(now=T0)
        with pytest.raises(IllegalTransitionError):
            attempt.apply_provider_status(ProviderStatus(status="pending"), now=T0)
