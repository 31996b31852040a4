"""Start-payment protocol: idempotent creation of an attempt and its provider session.

The first call for an idempotency key wins: a replay returns the stored attempt
as it is now, whatever the new request says. Two concurrent first calls for the
same key are not reconciled here. The loser gets a ``ConflictError`` and is
expected to read the attempt back by key, so one key never produces two
provider sessions.
"""

import hashlib
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime

from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from cashless.attempt.action import CashlessAction
from cashless.attempt.attempt import PaymentAttempt
from cashless.context import RequestContext, require_context
from cashless.exceptions import ConflictError
from cashless.gateway.port import CashlessGateway
from cashless.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class StartPaymentRequest:
    register_id: str
    amount_cents: int
    currency: str
    sale_id: str | None = None
    idempotency_key: str | None = None
    provider_hint: str | None = None
    reference: str | None = None


@dataclass(frozen=True)
class StartPaymentResult:
    attempt_id: str
    provider_kind: str
    provider_ref: str
    status: str
    action: CashlessAction
    expires_at: datetime | None = None
    replayed: bool = False

    @classmethod
    def from_attempt(cls, attempt: PaymentAttempt, replayed: bool = False) -> "StartPaymentResult":
        return cls(
            attempt_id=str(attempt.id),
            provider_kind=attempt.provider_kind,
            provider_ref=attempt.provider_ref,
            status=attempt.status,
            action=attempt.next_action,
            expires_at=attempt.expires_at,
            replayed=replayed,
        )


def validate_start_request(request: StartPaymentRequest) -> StartPaymentRequest:
    errors = {}
    if not (request.register_id or "").strip():
        errors["register_id"] = ["Register id is required"]
    amount = request.amount_cents
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        errors["amount_cents"] = ["Amount must be a positive number of cents"]
    currency = (request.currency or "").strip()
    if len(currency) != 3 or not currency.isalpha():
        errors["currency"] = ["Currency must be a three-letter ISO code"]
    if errors:
        raise ValidationError(errors)
    return request


def derive_reference(workspace_id: str, register_id: str, sale_id: str | None, amount_cents: int) -> str:
    return f"pos:{workspace_id}:{register_id}:{sale_id or '-'}:{amount_cents}"


def derive_idempotency_key(workspace_id: str, request: StartPaymentRequest) -> str:
    """Key for callers that sent none, so resubmitting the same intent still collides."""
    fingerprint = "|".join(
        [
            workspace_id,
            request.register_id,
            request.sale_id or "",
            str(request.amount_cents),
            request.currency.upper(),
            request.reference or "",
        ]
    )
    return "intent-" + hashlib.sha256(fingerprint.encode("utf-8")).hexdigest()[:32]


async def start_cashless_payment(
    ctx: RequestContext,
    request: StartPaymentRequest,
    gateway: CashlessGateway,
    *,
    clock: Callable[[], datetime] = lambda: datetime.now(UTC),
) -> StartPaymentResult:
    ctx = require_context(ctx)
    request = validate_start_request(request)
    repo = current_domain.repository_for(PaymentAttempt)

    idempotency_key = request.idempotency_key or derive_idempotency_key(ctx.workspace_id, request)
    existing = repo.find_by_idempotency_key(ctx.workspace_id, idempotency_key)
    if existing is not None:
        logger.info(
            "Cashless payment start replayed",
            attempt_id=str(existing.id),
            workspace_id=ctx.workspace_id,
            idempotency_key=idempotency_key,
        )
        return StartPaymentResult.from_attempt(existing, replayed=True)

    currency = request.currency.strip().upper()
    reference = request.reference or derive_reference(
        ctx.workspace_id, request.register_id, request.sale_id, request.amount_cents
    )
    session = await gateway.create_session(
        ctx.workspace_id,
        request.amount_cents,
        currency,
        reference,
        request.provider_hint,
    )

    attempt = PaymentAttempt.start(
        tenant_id=ctx.tenant_id,
        workspace_id=ctx.workspace_id,
        register_id=request.register_id,
        sale_id=request.sale_id,
        amount_cents=request.amount_cents,
        currency=currency,
        idempotency_key=idempotency_key,
        provider_kind=session.provider_kind,
        provider_ref=session.provider_ref,
        status=session.status,
        action=session.action,
        raw_status=session.raw,
        expires_at=session.expires_at,
        now=clock(),
    )

    try:
        repo.add_new(attempt)
    except ConflictError as exc:
        logger.warning(
            "Cashless payment start lost a creation race",
            workspace_id=ctx.workspace_id,
            idempotency_key=idempotency_key,
            provider_kind=session.provider_kind,
            provider_ref=session.provider_ref,
            conflict=exc.message,
        )
        raise

    logger.info(
        "Cashless payment attempt started",
        attempt_id=str(attempt.id),
        workspace_id=ctx.workspace_id,
        register_id=request.register_id,
        provider_kind=attempt.provider_kind,
        status=attempt.status,
        amount_cents=attempt.amount_cents,
        currency=attempt.currency,
    )
    return StartPaymentResult.from_attempt(attempt)
