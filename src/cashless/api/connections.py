"""FastAPI routes for integration connections.

Secrets go in through these routes and never come back out: responses only say
whether one is stored.
"""

from fastapi import APIRouter, Depends
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from cashless.api.deps import get_request_context, get_resolver, get_vault
from cashless.api.schemas import (
    ConnectionResponse,
    ConnectionTestResponse,
    CreateConnectionBody,
    UpdateConnectionBody,
)
from cashless.config import get_settings
from cashless.connection.connection import IntegrationConnection
from cashless.connection.resolver import ConnectionResolver
from cashless.connection.vault import CredentialVault
from cashless.context import RequestContext
from cashless.exceptions import ProviderError
from cashless.gateway import get_registry
from cashless.utils.logging import get_logger

logger = get_logger(__name__)

connection_router = APIRouter(prefix="/integrations/connections", tags=["integrations"])


def _to_response(connection: IntegrationConnection) -> ConnectionResponse:
    return ConnectionResponse(
        id=str(connection.id),
        workspace_id=str(connection.workspace_id),
        kind=connection.kind,
        auth_method=connection.auth_method,
        status=connection.status,
        config=connection.config or {},
        has_secret=connection.has_secret,
        created_at=connection.created_at,
        updated_at=connection.updated_at,
    )


@connection_router.post("", status_code=201, response_model=ConnectionResponse)
async def create_connection(
    body: CreateConnectionBody,
    ctx: RequestContext = Depends(get_request_context),
    vault: CredentialVault = Depends(get_vault),
) -> ConnectionResponse:
    """Register a provider connection; the secret is stored encrypted."""
    connection = IntegrationConnection.register(
        tenant_id=ctx.tenant_id,
        workspace_id=body.workspace_id or ctx.workspace_id,
        kind=body.kind,
        auth_method=body.auth_method,
        status=body.status,
        config=body.config,
        secret_encrypted=vault.encrypt(body.secret) if body.secret else None,
    )
    current_domain.repository_for(IntegrationConnection).add(connection)
    logger.info(
        "Integration connection created",
        connection_id=str(connection.id),
        kind=connection.kind,
        workspace_id=str(connection.workspace_id),
        has_secret=connection.has_secret,
    )
    return _to_response(connection)


@connection_router.get("", response_model=list[ConnectionResponse])
async def list_connections(ctx: RequestContext = Depends(get_request_context)) -> list[ConnectionResponse]:
    """List the workspace's connections without their secrets."""
    repo = current_domain.repository_for(IntegrationConnection)
    return [_to_response(c) for c in repo.list_for_workspace(ctx.tenant_id, ctx.workspace_id)]


@connection_router.patch("/{connection_id}", response_model=ConnectionResponse)
async def update_connection(
    connection_id: str,
    body: UpdateConnectionBody,
    ctx: RequestContext = Depends(get_request_context),
    vault: CredentialVault = Depends(get_vault),
) -> ConnectionResponse:
    repo = current_domain.repository_for(IntegrationConnection)
    connection = repo.find_for_tenant(ctx.tenant_id, connection_id)
    if connection is None:
        raise ObjectNotFoundError(f"Integration connection {connection_id} not found")

    changes = body.model_dump(exclude_unset=True)
    if "secret" in changes:
        secret = changes.pop("secret")
        changes["secret_encrypted"] = vault.encrypt(secret) if secret else None
    connection.update(**changes)
    repo.add(connection)

    logger.info(
        "Integration connection updated",
        connection_id=str(connection.id),
        fields=sorted(changes),
    )
    return _to_response(connection)


@connection_router.post("/{connection_id}/test", response_model=ConnectionTestResponse)
async def test_connection(
    connection_id: str,
    ctx: RequestContext = Depends(get_request_context),
    resolver: ConnectionResolver = Depends(get_resolver),
) -> ConnectionTestResponse:
    """Check the stored credentials against the provider. Changes nothing."""
    resolved = resolver.resolve_by_id(ctx.tenant_id, connection_id)
    connection = resolved.connection
    client = None
    try:
        client = get_registry().client_for(
            connection.kind, connection, resolved.secret, get_settings().provider_timeout_seconds
        )
        await client.check_connection()
    except ProviderError as exc:
        logger.info(
            "Integration connection check failed",
            connection_id=connection_id,
            kind=connection.kind,
            upstream_status=exc.status,
        )
        return ConnectionTestResponse(ok=False, error=exc.message)
    finally:
        if client is not None:
            await client.aclose()
    return ConnectionTestResponse(ok=True)
