"""Repository for the PaymentAttempt aggregate.

All reads are scoped by workspace. The two correlation keys,
``(workspace_id, idempotency_key)`` and ``(workspace_id, provider_kind, provider_ref)``,
are unique: inserting a second attempt on either key is a ``ConflictError``.
"""

from protean.exceptions import ObjectNotFoundError

from cashless.attempt.attempt import IMMUTABLE_FIELDS, PaymentAttempt
from cashless.domain import cashless
from cashless.exceptions import ConflictError, IllegalTransitionError


@cashless.repository(part_of=PaymentAttempt)
class PaymentAttemptRepository:
    def _first(self, **filters) -> PaymentAttempt | None:
        items = self._dao.query.filter(**filters).all().items
        return items[0] if items else None

    def find_in_workspace(self, workspace_id: str, attempt_id: str) -> PaymentAttempt | None:
        return self._first(id=attempt_id, workspace_id=workspace_id)

    def get_in_workspace(self, workspace_id: str, attempt_id: str) -> PaymentAttempt:
        attempt = self.find_in_workspace(workspace_id, attempt_id)
        if attempt is None:
            raise ObjectNotFoundError(f"Payment attempt {attempt_id} not found")
        return attempt

    def find_by_idempotency_key(self, workspace_id: str, idempotency_key: str) -> PaymentAttempt | None:
        return self._first(workspace_id=workspace_id, idempotency_key=idempotency_key)

    def find_by_provider_ref(self, workspace_id: str, provider_kind: str, provider_ref: str) -> PaymentAttempt | None:
        return self._first(workspace_id=workspace_id, provider_kind=provider_kind, provider_ref=provider_ref)

    def add_new(self, attempt: PaymentAttempt) -> PaymentAttempt:
        """Insert a fresh attempt, refusing duplicates on either correlation key."""
        if self.find_by_idempotency_key(attempt.workspace_id, attempt.idempotency_key) is not None:
            raise ConflictError(
                "A payment attempt already exists for this idempotency key",
                workspace_id=attempt.workspace_id,
                idempotency_key=attempt.idempotency_key,
            )
        if self.find_by_provider_ref(attempt.workspace_id, attempt.provider_kind, attempt.provider_ref) is not None:
            raise ConflictError(
                "A payment attempt already exists for this provider reference",
                workspace_id=attempt.workspace_id,
                provider_kind=attempt.provider_kind,
                provider_ref=attempt.provider_ref,
            )
        self.add(attempt)
        return attempt

    def save(self, attempt: PaymentAttempt) -> PaymentAttempt:
        """Write back an existing attempt after checking its immutable fields."""
        stored = self._dao.get(attempt.id)
        for field_name in IMMUTABLE_FIELDS:
            if getattr(stored, field_name) != getattr(attempt, field_name):
                raise IllegalTransitionError(
                    str(attempt.id),
                    f"{field_name}={getattr(stored, field_name)}",
                    f"{field_name}={getattr(attempt, field_name)}",
                )
        self.add(attempt)
        return attempt
