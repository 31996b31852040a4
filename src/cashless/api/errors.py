"""Mapping of the error taxonomy onto HTTP responses.

Every error body has the same shape: ``{"error": <type name>, "detail": ...}``.
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.integrations.fastapi import register_exception_handlers

from cashless.exceptions import (
    ConflictError,
    IllegalTransitionError,
    InvalidEnvelopeError,
    ProviderError,
    ProviderTimeoutError,
    WebhookSignatureError,
)
from cashless.utils.logging import get_logger

logger = get_logger(__name__)


def _detail(exc: Exception):
    return getattr(exc, "messages", None) or str(exc)


def _error(status_code: int, exc: Exception, detail) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": type(exc).__name__, "detail": detail})


async def _validation_error(request: Request, exc: ValidationError) -> JSONResponse:
    return _error(400, exc, _detail(exc))


async def _webhook_signature_error(request: Request, exc: WebhookSignatureError) -> JSONResponse:
    return _error(401, exc, _detail(exc))


async def _invalid_envelope_error(request: Request, exc: InvalidEnvelopeError) -> JSONResponse:
    logger.error("Stored credential is unusable", path=request.url.path, detail=_detail(exc))
    return _error(500, exc, "Stored credential could not be decrypted")


async def _not_found_error(request: Request, exc: ObjectNotFoundError) -> JSONResponse:
    return _error(404, exc, _detail(exc))


async def _conflict_error(request: Request, exc: ConflictError) -> JSONResponse:
    return _error(409, exc, exc.message)


async def _provider_error(request: Request, exc: ProviderError) -> JSONResponse:
    logger.warning(
        "Provider call failed",
        path=request.url.path,
        provider=exc.provider,
        upstream_status=exc.status,
        retryable=exc.retryable,
    )
    status_code = 504 if isinstance(exc, ProviderTimeoutError) else 502
    return _error(
        status_code,
        exc,
        {"message": exc.message, "provider": exc.provider, "retryable": exc.retryable},
    )


async def _illegal_transition_error(request: Request, exc: IllegalTransitionError) -> JSONResponse:
    logger.error(
        "Payment attempt invariant violated",
        path=request.url.path,
        attempt_id=exc.attempt_id,
        current_status=exc.current,
        target_status=exc.target,
    )
    return _error(500, exc, str(exc))


def register_error_handlers(app: FastAPI) -> None:
    """Install Protean's handlers, then the cashless mapping on top of them."""
    register_exception_handlers(app)
    app.add_exception_handler(ValidationError, _validation_error)
    app.add_exception_handler(WebhookSignatureError, _webhook_signature_error)
    app.add_exception_handler(InvalidEnvelopeError, _invalid_envelope_error)
    app.add_exception_handler(ObjectNotFoundError, _not_found_error)
    app.add_exception_handler(ConflictError, _conflict_error)
    app.add_exception_handler(ProviderError, _provider_error)
    app.add_exception_handler(IllegalTransitionError, _illegal_transition_error)
