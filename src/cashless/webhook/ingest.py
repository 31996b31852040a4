"""Common tail of every payment webhook: hand the mapped status to the state machine."""

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from protean.utils.globals import current_domain

from cashless.attempt.provider_status import provider_status_command


@dataclass(frozen=True)
class WebhookOutcome:
    applied: bool
    attempt_id: str | None = None
    status: str | None = None
    reason: str | None = None

    @classmethod
    def ignored(cls, reason: str) -> "WebhookOutcome":
        return cls(applied=False, reason=reason)


def apply_webhook_status(
    *,
    workspace_id: str,
    provider_kind: str,
    provider_ref: str,
    status: str,
    raw: dict[str, Any] | None = None,
    failure_reason: str | None = None,
) -> WebhookOutcome:
    attempt_id = current_domain.process(
        provider_status_command(
            workspace_id=workspace_id,
            provider_kind=provider_kind,
            provider_ref=provider_ref,
            status=status,
            raw_status=raw,
            failure_reason=failure_reason,
            observed_at=datetime.now(UTC),
            source="webhook",
        ),
        asynchronous=False,
    )
    return WebhookOutcome(applied=True, attempt_id=attempt_id, status=status)
