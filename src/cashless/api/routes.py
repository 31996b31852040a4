"""FastAPI routes for POS cashless payments: start, status and cancel."""

from fastapi import APIRouter, Depends, Header, Response

from cashless.api.deps import get_payment_service, get_request_context
from cashless.api.schemas import AttemptStatusResponse, StartPaymentBody, StartPaymentResponse
from cashless.attempt.action import encode_action
from cashless.attempt.service import CashlessPaymentService
from cashless.attempt.start import StartPaymentRequest
from cashless.attempt.status import AttemptStatusView
from cashless.context import RequestContext

pos_router = APIRouter(prefix="/pos/payments/cashless", tags=["pos-cashless"])


def _status_response(view: AttemptStatusView) -> AttemptStatusResponse:
    return AttemptStatusResponse(
        attempt_id=view.attempt_id,
        provider_kind=view.provider_kind,
        provider_ref=view.provider_ref,
        status=view.status,
        action=encode_action(view.action),
        paid_at=view.paid_at,
        failure_reason=view.failure_reason,
        updated_at=view.updated_at,
    )


@pos_router.post("/start", status_code=201, response_model=StartPaymentResponse)
async def start_payment(
    body: StartPaymentBody,
    response: Response,
    idempotency_key: str | None = Header(default=None),
    ctx: RequestContext = Depends(get_request_context),
    service: CashlessPaymentService = Depends(get_payment_service),
) -> StartPaymentResponse:
    """Start a cashless payment for a sale, or replay the one already started for this key."""
    request = StartPaymentRequest(
        register_id=body.register_id,
        sale_id=body.sale_id,
        amount_cents=body.amount_cents,
        currency=body.currency,
        idempotency_key=body.idempotency_key or idempotency_key or ctx.request_id,
        provider_hint=body.provider_hint,
        reference=body.reference,
    )
    result = await service.start(ctx, request)
    if result.replayed:
        response.status_code = 200

    return StartPaymentResponse(
        attempt_id=result.attempt_id,
        provider_kind=result.provider_kind,
        provider_ref=result.provider_ref,
        status=result.status,
        action=encode_action(result.action),
        expires_at=result.expires_at,
    )


@pos_router.get("/{attempt_id}", response_model=AttemptStatusResponse)
async def get_payment_status(
    attempt_id: str,
    ctx: RequestContext = Depends(get_request_context),
    service: CashlessPaymentService = Depends(get_payment_service),
) -> AttemptStatusResponse:
    """Current status of an attempt, refreshed from the provider when stale."""
    return _status_response(await service.get_status(ctx, attempt_id))


@pos_router.post("/{attempt_id}/cancel", response_model=AttemptStatusResponse)
async def cancel_payment(
    attempt_id: str,
    ctx: RequestContext = Depends(get_request_context),
    service: CashlessPaymentService = Depends(get_payment_service),
) -> AttemptStatusResponse:
    """Abandon an open attempt at the register."""
    return _status_response(await service.cancel(ctx, attempt_id))
