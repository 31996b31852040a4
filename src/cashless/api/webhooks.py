"""FastAPI routes for provider-pushed webhooks."""

from fastapi import APIRouter, Header, Request
from fastapi.responses import PlainTextResponse, Response

from cashless.api.schemas import StatusResponse
from cashless.config import get_settings
from cashless.utils.logging import get_logger
from cashless.webhook.adyen import ACKNOWLEDGEMENT, AdyenWebhookService
from cashless.webhook.mail import graph_validation_response, record_gmail_push, record_graph_notifications
from cashless.webhook.sumup import SumUpWebhookService

logger = get_logger(__name__)

webhook_router = APIRouter(prefix="/integrations/webhooks", tags=["webhooks"])


async def _json_or_none(request: Request):
    try:
        return await request.json()
    except ValueError:
        logger.warning("Webhook body is not JSON", path=request.url.path)
        return None


@webhook_router.post("/sumup", response_model=StatusResponse)
async def sumup_webhook(
    request: Request,
    x_sumup_signature: str | None = Header(default=None),
) -> StatusResponse:
    """Signed SumUp checkout events. Unknown attempts surface as 404."""
    raw_body = await request.body()
    outcome = SumUpWebhookService.from_settings(get_settings()).handle(raw_body, x_sumup_signature)
    return StatusResponse(status="processed" if outcome.applied else "ignored")


@webhook_router.post("/adyen", response_class=PlainTextResponse)
async def adyen_webhook(request: Request) -> PlainTextResponse:
    """Adyen notifications, always acknowledged."""
    body = await _json_or_none(request)
    if isinstance(body, dict):
        AdyenWebhookService.from_settings(get_settings()).handle(body)
    return PlainTextResponse(ACKNOWLEDGEMENT)


@webhook_router.post("/microsoft-graph")
async def microsoft_graph_webhook(request: Request, validationToken: str | None = None) -> Response:  # noqa: N803
    """Graph subscription handshake and change notifications."""
    token = graph_validation_response(validationToken)
    if token is not None:
        return PlainTextResponse(token)

    body = await _json_or_none(request)
    record_graph_notifications(body if isinstance(body, dict) else None)
    return Response(status_code=202)


@webhook_router.post("/gmail", response_model=StatusResponse)
async def gmail_webhook(request: Request) -> StatusResponse:
    """Gmail Pub/Sub push, always acknowledged."""
    body = await _json_or_none(request)
    record_gmail_push(body if isinstance(body, dict) else None)
    return StatusResponse(status="ok")
