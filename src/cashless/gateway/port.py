"""Gateway ports (abstract interfaces).

Two seams keep the orchestration core provider-agnostic:

- ``CashlessGateway`` is what the start/status protocols call. It is scoped by
  workspace and knows nothing about credentials.
- ``ProviderClient`` is what each payment provider implements. A client is built
  for one integration connection with its decrypted secret already in hand.

``IntegrationsCashlessGateway`` bridges the two. New providers are added by
implementing ``ProviderClient`` and registering it; the state machine and the
protocols never change.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, ClassVar

from protean.exceptions import ValidationError

from cashless.attempt.action import CashlessAction, NoAction


@dataclass(frozen=True)
class CashlessSession:
    """A provider payment session as reported at creation time."""

    provider_kind: str
    provider_ref: str
    status: str
    action: CashlessAction = field(default_factory=NoAction)
    raw: dict[str, Any] | None = None
    expires_at: datetime | None = None


@dataclass(frozen=True)
class ProviderStatus:
    """A provider's current view of a session, already in internal vocabulary."""

    status: str
    action: CashlessAction | None = None
    raw: dict[str, Any] | None = None
    paid_at: datetime | None = None
    failure_reason: str | None = None


class CashlessGateway(ABC):
    """Workspace-scoped gateway the orchestration core depends on."""

    @abstractmethod
    async def create_session(
        self,
        workspace_id: str,
        amount_cents: int,
        currency: str,
        reference: str,
        provider_hint: str | None = None,
    ) -> CashlessSession:
        """Open a payment session with the provider selected for the workspace."""
        ...

    @abstractmethod
    async def get_status(self, workspace_id: str, provider_kind: str, provider_ref: str) -> ProviderStatus:
        """Ask the provider for the current status of a session."""
        ...

    async def cancel_session(self, workspace_id: str, provider_kind: str, provider_ref: str) -> ProviderStatus:
        """Cancel a session. Optional: gateways that cannot cancel refuse."""
        raise ValidationError({"provider_kind": [f"Provider {provider_kind} does not support cancellation"]})


class ProviderClient(ABC):
    """One payment provider's API, bound to a single connection's credentials."""

    kind: ClassVar[str]
    supports_cancel: ClassVar[bool] = False

    @abstractmethod
    async def create_session(self, amount_cents: int, currency: str, reference: str) -> CashlessSession:
        ...

    @abstractmethod
    async def get_status(self, provider_ref: str) -> ProviderStatus:
        ...

    async def cancel_session(self, provider_ref: str) -> ProviderStatus:
        raise ValidationError({"provider_kind": [f"Provider {self.kind} does not support cancellation"]})

    async def check_connection(self) -> None:
        """Check the credentials. Raises ``ProviderError`` when they do not work."""

    async def aclose(self) -> None:
        """Release network resources held by the client."""
