"""Free-tier usage counters (one document per user)."""

from datetime import datetime
from pathlib import Path

from adaptive_practice.models.usage import FreeTierUsage, UsageCheckResult
from adaptive_practice.storage.documents import DocumentStore, validate_user_id


class UsageStore:
    def __init__(self, root: Path, lock_timeout: float = 5.0):
        self._docs = DocumentStore(root / "usage", lock_timeout=lock_timeout)

    def get_usage(self, user_id: str) -> FreeTierUsage:
        validate_user_id(user_id)
        data = self._docs.read(user_id)
        if not data:
            return FreeTierUsage(user_id=user_id)
        return FreeTierUsage(**data)

    def check_and_increment(self, user_id: str, lifetime_limit: int) -> UsageCheckResult:
        """Conditionally consume one unit of free quota.

        The check and the increment happen under one exclusive lock, so two
        racing callers can never both take the last unit. A denial leaves
        the stored count untouched.
        """
        validate_user_id(user_id)
        with self._docs.transaction(user_id) as data:
            usage = FreeTierUsage(**data) if data else FreeTierUsage(user_id=user_id)
            allowed = usage.practice_count < lifetime_limit
            if allowed:
                usage.practice_count += 1
                usage.updated_at = datetime.now()
                data.update(usage.model_dump(mode="json"))
        return UsageCheckResult(
            allowed=allowed,
            count=usage.practice_count,
            limit=lifetime_limit,
            remaining=max(0, lifetime_limit - usage.practice_count),
        )

    def erase_user(self, user_id: str) -> bool:
        validate_user_id(user_id)
        return self._docs.delete(user_id)
