"""Status protocol: the client-visible read, refreshed from the provider when stale.

An open attempt (pending or authorized) that has not changed for longer than the
staleness threshold is refreshed from the provider before it is returned. This
heals attempts whose webhook never arrived while bounding provider traffic.
Terminal attempts are always served from storage.
"""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime

from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from cashless.attempt.action import CashlessAction, encode_action
from cashless.attempt.attempt import PaymentAttempt
from cashless.attempt.provider_status import provider_status_command
from cashless.config import DEFAULT_STALENESS_MS
from cashless.context import RequestContext, require_context
from cashless.exceptions import ConflictError, ProviderError
from cashless.gateway.port import CashlessGateway
from cashless.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class AttemptStatusView:
    attempt_id: str
    provider_kind: str
    provider_ref: str
    status: str
    action: CashlessAction
    paid_at: datetime | None
    failure_reason: str | None
    updated_at: datetime | None
    expires_at: datetime | None = None

    @classmethod
    def from_attempt(cls, attempt: PaymentAttempt) -> "AttemptStatusView":
        return cls(
            attempt_id=str(attempt.id),
            provider_kind=attempt.provider_kind,
            provider_ref=attempt.provider_ref,
            status=attempt.status,
            action=attempt.next_action,
            paid_at=attempt.paid_at,
            failure_reason=attempt.failure_reason,
            updated_at=attempt.updated_at,
            expires_at=attempt.expires_at,
        )


async def get_cashless_payment_status(
    ctx: RequestContext,
    attempt_id: str,
    gateway: CashlessGateway,
    *,
    staleness_ms: int = DEFAULT_STALENESS_MS,
    clock: Callable[[], datetime] = lambda: datetime.now(UTC),
) -> AttemptStatusView:
    ctx = require_context(ctx)
    repo = current_domain.repository_for(PaymentAttempt)
    attempt = repo.get_in_workspace(ctx.workspace_id, attempt_id)

    now = clock()
    if not (attempt.is_open and attempt.is_stale(now, staleness_ms)):
        return AttemptStatusView.from_attempt(attempt)

    try:
        update = await gateway.get_status(ctx.workspace_id, attempt.provider_kind, attempt.provider_ref)
    except ProviderError as exc:
        # The cached projection is still a valid answer; the next read retries.
        logger.warning(
            "Provider status refresh failed",
            attempt_id=str(attempt.id),
            provider_kind=attempt.provider_kind,
            provider=exc.provider,
            upstream_status=exc.status,
            retryable=exc.retryable,
            error=exc.message,
        )
        return AttemptStatusView.from_attempt(attempt)
    except (ObjectNotFoundError, ConflictError) as exc:
        # The workspace no longer has an active connection with a secret for this provider.
        logger.warning(
            "No usable connection for status refresh",
            attempt_id=str(attempt.id),
            provider_kind=attempt.provider_kind,
            error=str(exc),
        )
        return AttemptStatusView.from_attempt(attempt)

    current_domain.process(
        provider_status_command(
            workspace_id=ctx.workspace_id,
            provider_kind=attempt.provider_kind,
            provider_ref=attempt.provider_ref,
            status=update.status,
            action=encode_action(update.action) if update.action is not None else None,
            raw_status=update.raw,
            failure_reason=update.failure_reason,
            paid_at=update.paid_at,
            observed_at=now,
            source="poll",
        ),
        asynchronous=False,
    )
    return AttemptStatusView.from_attempt(repo.get_in_workspace(ctx.workspace_id, attempt_id))
