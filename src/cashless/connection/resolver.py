"""Connection resolver: the only place a decrypted provider secret comes from.

Secrets are decrypted per call and handed back to the caller; nothing here keeps
them.
"""

from dataclasses import dataclass

from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from cashless.connection.connection import IntegrationConnection
from cashless.connection.vault import CredentialVault
from cashless.exceptions import ConflictError


@dataclass(frozen=True)
class ResolvedConnection:
    connection: IntegrationConnection
    secret: str | None

    def __repr__(self) -> str:
        return f"ResolvedConnection(connection={self.connection.id!s}, kind={self.connection.kind!r}, secret=***)"


class ConnectionResolver:
    def __init__(self, vault: CredentialVault) -> None:
        self.vault = vault

    def _repository(self):
        return current_domain.repository_for(IntegrationConnection)

    def resolve_by_id(self, tenant_id: str, connection_id: str) -> ResolvedConnection:
        connection = self._repository().find_for_tenant(tenant_id, connection_id)
        if connection is None:
            raise ObjectNotFoundError(f"Integration connection {connection_id} not found")

        secret = self.vault.decrypt(connection.secret_encrypted) if connection.has_secret else None
        return ResolvedConnection(connection=connection, secret=secret)

    def resolve_active_by_kind(self, tenant_id: str, workspace_id: str, kind: str) -> ResolvedConnection:
        connection = self._repository().find_active_by_kind(tenant_id, workspace_id, kind)
        if connection is None:
            raise ObjectNotFoundError(f"No active {kind} connection for workspace {workspace_id}")
        if not connection.has_secret:
            raise ConflictError(
                f"Active {kind} connection has no stored secret",
                connection_id=str(connection.id),
                workspace_id=workspace_id,
            )

        return ResolvedConnection(connection=connection, secret=self.vault.decrypt(connection.secret_encrypted))
