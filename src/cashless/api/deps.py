"""FastAPI dependencies: request scope and the services bound to it."""

from uuid import uuid4

from fastapi import Depends, Header, Request
from protean.exceptions import ValidationError

from cashless.attempt.service import CashlessPaymentService
from cashless.config import get_settings
from cashless.connection.resolver import ConnectionResolver
from cashless.connection.vault import CredentialVault
from cashless.context import RequestContext
from cashless.gateway import gateway_for


def get_request_context(
    request: Request,
    x_tenant_id: str | None = Header(default=None),
    x_workspace_id: str | None = Header(default=None),
    x_user_id: str | None = Header(default=None),
) -> RequestContext:
    if not x_tenant_id:
        raise ValidationError({"tenant_id": ["X-Tenant-Id header is required"]})

    request_id = getattr(request.state, "request_id", None) or uuid4().hex
    return RequestContext(
        tenant_id=x_tenant_id,
        workspace_id=x_workspace_id or x_tenant_id,
        user_id=x_user_id,
        request_id=request_id,
    )


def get_vault() -> CredentialVault:
    return CredentialVault.from_settings(get_settings())


def get_resolver(vault: CredentialVault = Depends(get_vault)) -> ConnectionResolver:
    return ConnectionResolver(vault)


def get_payment_service(ctx: RequestContext = Depends(get_request_context)) -> CashlessPaymentService:
    return CashlessPaymentService(gateway_for(ctx.tenant_id), staleness_ms=get_settings().staleness_ms)
