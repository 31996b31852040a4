"""IntegrationConnection aggregate: a workspace's link to one external provider.

Holds the provider kind, its non-secret configuration and the secret, which is
only ever stored as a credential-vault envelope.
"""

from datetime import UTC, datetime
from enum import Enum
from typing import Any

from protean.exceptions import ValidationError
from protean.fields import DateTime, Dict, Identifier, String, Text

from cashless.domain import cashless

_UNSET = object()


class ConnectionStatus(Enum):
    ACTIVE = "active"
    INVALID = "invalid"
    DISABLED = "disabled"


class AuthMethod(Enum):
    API_KEY = "api_key"
    OAUTH2 = "oauth2"
    NONE = "none"


@cashless.aggregate
class IntegrationConnection:
    tenant_id = Identifier(required=True)
    workspace_id = Identifier(required=True)
    kind = String(required=True, max_length=50)
    auth_method = String(choices=AuthMethod, default=AuthMethod.API_KEY.value)
    status = String(choices=ConnectionStatus, default=ConnectionStatus.ACTIVE.value)
    config = Dict()
    secret_encrypted = Text()
    created_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def register(
        cls,
        *,
        tenant_id: str,
        workspace_id: str,
        kind: str,
        auth_method: str = AuthMethod.API_KEY.value,
        config: dict[str, Any] | None = None,
        secret_encrypted: str | None = None,
        status: str = ConnectionStatus.ACTIVE.value,
    ) -> "IntegrationConnection":
        kind = (kind or "").strip().lower()
        if not kind:
            raise ValidationError({"kind": ["Connection kind is required"]})

        now = datetime.now(UTC)
        return cls(
            tenant_id=tenant_id,
            workspace_id=workspace_id,
            kind=kind,
            auth_method=auth_method,
            status=status,
            config=config or {},
            secret_encrypted=secret_encrypted,
            created_at=now,
            updated_at=now,
        )

    @property
    def has_secret(self) -> bool:
        return bool(self.secret_encrypted)

    @property
    def is_active(self) -> bool:
        return self.status == ConnectionStatus.ACTIVE.value

    def update(self, *, status=_UNSET, config=_UNSET, secret_encrypted=_UNSET) -> None:
        """Partial update; arguments left out keep their current value."""
        if status is not _UNSET and status is not None:
            self.status = status
        if config is not _UNSET:
            self.config = config or {}
        if secret_encrypted is not _UNSET:
            self.secret_encrypted = secret_encrypted
        self.updated_at = datetime.now(UTC)


@cashless.repository(part_of=IntegrationConnection)
class IntegrationConnectionRepository:
    def find_for_tenant(self, tenant_id: str, connection_id: str) -> IntegrationConnection | None:
        items = self._dao.query.filter(id=connection_id, tenant_id=tenant_id).all().items
        return items[0] if items else None

    def find_active_by_kind(self, tenant_id: str, workspace_id: str, kind: str) -> IntegrationConnection | None:
        items = (
            self._dao.query.filter(
                tenant_id=tenant_id,
                workspace_id=workspace_id,
                kind=kind,
                status=ConnectionStatus.ACTIVE.value,
            )
            .all()
            .items
        )
        return items[0] if items else None

    def list_for_workspace(self, tenant_id: str, workspace_id: str) -> list[IntegrationConnection]:
        return self._dao.query.filter(tenant_id=tenant_id, workspace_id=workspace_id).all().items
