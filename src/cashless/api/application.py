"""FastAPI application factory for the cashless context.

Assumes the cashless domain is already initialized; ``src/app.py`` does that
once per process before building the app.
"""

from contextlib import asynccontextmanager
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from cashless.api.connections import connection_router
from cashless.api.errors import register_error_handlers
from cashless.api.routes import pos_router
from cashless.api.webhooks import webhook_router
from cashless.config import get_settings
from cashless.connection.vault import CredentialVault
from cashless.domain import cashless
from cashless.gateway import get_registry
from cashless.utils.logging import add_context, clear_context, get_logger

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    # Refuse to start without a usable vault key
    CredentialVault.from_settings(settings)
    logger.info(
        "Cashless API starting",
        environment=settings.environment,
        providers=get_registry().kinds(),
        default_provider=settings.default_provider,
        unsigned_webhooks=settings.allow_unsigned_webhooks,
    )
    yield


async def request_context_middleware(request: Request, call_next):
    """Push the cashless domain context and bind the request's log context."""
    request_id = request.headers.get("x-request-id") or uuid4().hex
    request.state.request_id = request_id
    tenant_id = request.headers.get("x-tenant-id")
    add_context(
        request_id=request_id,
        tenant_id=tenant_id,
        workspace_id=request.headers.get("x-workspace-id") or tenant_id,
    )
    try:
        with cashless.domain_context():
            response = await call_next(request)
    finally:
        clear_context()
    response.headers["X-Request-Id"] = request_id
    return response


async def health():
    return JSONResponse(
        content={
            "status": "ok",
            "domains": {"cashless": {"name": cashless.name}},
            "providers": get_registry().kinds(),
        }
    )


def build_app() -> FastAPI:
    app = FastAPI(
        title="Cashless API",
        description="POS cashless payment orchestration",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.middleware("http")(request_context_middleware)

    app.include_router(pos_router)
    app.include_router(webhook_router)
    app.include_router(connection_router)
    register_error_handlers(app)

    app.add_api_route("/health", health, methods=["GET"])
    return app
