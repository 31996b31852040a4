"""Applying a provider-reported status: command and handler.

The one path both asynchronous (webhook) and synchronous (client poll) updates
take into the attempt state machine. The attempt is found by its provider
correlation key, so the handler does not care which entry point sent it.
"""

from datetime import UTC, datetime

from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import DateTime, Dict, Identifier, String
from protean.utils.globals import current_domain

from cashless.attempt.action import decode_action
from cashless.attempt.attempt import AttemptStatus, PaymentAttempt
from cashless.domain import cashless
from cashless.exceptions import IllegalTransitionError
from cashless.utils.logging import get_logger

logger = get_logger(__name__)


@cashless.command(part_of="PaymentAttempt")
class ApplyProviderStatus:
    """Record what a payment provider says about one of its sessions."""

    workspace_id = Identifier(required=True)
    provider_kind = String(required=True, max_length=50)
    provider_ref = String(required=True, max_length=255)
    status = String(required=True, choices=AttemptStatus)
    action = Dict()
    raw_status = Dict()
    failure_reason = String(max_length=500)
    paid_at = DateTime()
    observed_at = DateTime()
    source = String(max_length=20, default="webhook")  # webhook, poll, cancel


def provider_status_command(**fields) -> ApplyProviderStatus:
    """Build an ``ApplyProviderStatus``, leaving out the fields the caller has no value for."""
    return ApplyProviderStatus(**{name: value for name, value in fields.items() if value is not None})


@cashless.command_handler(part_of=PaymentAttempt)
class ProviderStatusHandler:
    @handle(ApplyProviderStatus)
    def apply_provider_status(self, command):
        repo = current_domain.repository_for(PaymentAttempt)
        attempt = repo.find_by_provider_ref(command.workspace_id, command.provider_kind, command.provider_ref)
        if attempt is None:
            raise ObjectNotFoundError(
                f"No payment attempt for {command.provider_kind} session {command.provider_ref} "
                f"in workspace {command.workspace_id}"
            )

        previous = attempt.status
        try:
            changed = attempt.transition_to(
                command.status,
                now=command.observed_at or datetime.now(UTC),
                action=decode_action(command.action) if command.action else None,
                raw_status=command.raw_status or None,
                failure_reason=command.failure_reason,
                paid_at=command.paid_at,
            )
        except IllegalTransitionError:
            logger.error(
                "Illegal payment attempt transition",
                attempt_id=str(attempt.id),
                workspace_id=command.workspace_id,
                provider_kind=command.provider_kind,
                provider_ref=command.provider_ref,
                current_status=previous,
                target_status=command.status,
                source=command.source,
            )
            raise

        repo.save(attempt)

        if changed:
            logger.info(
                "Payment attempt transitioned",
                attempt_id=str(attempt.id),
                from_status=previous,
                to_status=attempt.status,
                source=command.source,
            )
        else:
            logger.debug(
                "Payment attempt status re-applied",
                attempt_id=str(attempt.id),
                status=attempt.status,
                source=command.source,
            )
        return str(attempt.id)
