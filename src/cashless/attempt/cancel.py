"""Cancel protocol: a cashier abandons an open attempt."""

from collections.abc import Callable
from datetime import UTC, datetime

from protean.utils.globals import current_domain

from cashless.attempt.action import NoAction, encode_action
from cashless.attempt.attempt import AttemptStatus, PaymentAttempt
from cashless.attempt.provider_status import provider_status_command
from cashless.attempt.status import AttemptStatusView
from cashless.context import RequestContext, require_context
from cashless.exceptions import ConflictError
from cashless.gateway.port import CashlessGateway
from cashless.utils.logging import get_logger

logger = get_logger(__name__)


async def cancel_cashless_payment(
    ctx: RequestContext,
    attempt_id: str,
    gateway: CashlessGateway,
    *,
    clock: Callable[[], datetime] = lambda: datetime.now(UTC),
) -> AttemptStatusView:
    ctx = require_context(ctx)
    repo = current_domain.repository_for(PaymentAttempt)
    attempt = repo.get_in_workspace(ctx.workspace_id, attempt_id)

    if attempt.current_status == AttemptStatus.CANCELLED:
        return AttemptStatusView.from_attempt(attempt)
    if attempt.is_terminal:
        raise ConflictError(
            f"Payment attempt is already {attempt.status}",
            attempt_id=str(attempt.id),
            status=attempt.status,
        )

    update = await gateway.cancel_session(ctx.workspace_id, attempt.provider_kind, attempt.provider_ref)
    # The provider may report the session already completed; its word wins.
    status = update.status if update.status != AttemptStatus.PENDING.value else AttemptStatus.CANCELLED.value

    current_domain.process(
        provider_status_command(
            workspace_id=ctx.workspace_id,
            provider_kind=attempt.provider_kind,
            provider_ref=attempt.provider_ref,
            status=status,
            action=encode_action(NoAction()),
            raw_status=update.raw,
            failure_reason=update.failure_reason or "Cancelled at the register",
            observed_at=clock(),
            source="cancel",
        ),
        asynchronous=False,
    )
    logger.info("Cashless payment cancel requested", attempt_id=str(attempt.id), resulting_status=status)
    return AttemptStatusView.from_attempt(repo.get_in_workspace(ctx.workspace_id, attempt_id))
