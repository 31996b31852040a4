"""Cashless payment service: the protocols bound to one gateway and one clock."""

from collections.abc import Callable
from datetime import UTC, datetime

from cashless.attempt.cancel import cancel_cashless_payment
from cashless.attempt.start import StartPaymentRequest, StartPaymentResult, start_cashless_payment
from cashless.attempt.status import AttemptStatusView, get_cashless_payment_status
from cashless.config import DEFAULT_STALENESS_MS
from cashless.context import RequestContext
from cashless.gateway.port import CashlessGateway


def _utcnow() -> datetime:
    return datetime.now(UTC)


class CashlessPaymentService:
    def __init__(
        self,
        gateway: CashlessGateway,
        *,
        staleness_ms: int = DEFAULT_STALENESS_MS,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.gateway = gateway
        self.staleness_ms = staleness_ms
        self.clock = clock

    async def start(self, ctx: RequestContext, request: StartPaymentRequest) -> StartPaymentResult:
        return await start_cashless_payment(ctx, request, self.gateway, clock=self.clock)

    async def get_status(self, ctx: RequestContext, attempt_id: str) -> AttemptStatusView:
        return await get_cashless_payment_status(
            ctx,
            attempt_id,
            self.gateway,
            staleness_ms=self.staleness_ms,
            clock=self.clock,
        )

    async def cancel(self, ctx: RequestContext, attempt_id: str) -> AttemptStatusView:
        return await cancel_cashless_payment(ctx, attempt_id, self.gateway, clock=self.clock)
