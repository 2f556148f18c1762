"""Subscription status mirror, written by billing sync and read by the usage gate."""

from datetime import datetime
from pathlib import Path

import structlog

from adaptive_practice.storage.documents import DocumentStore, validate_user_id

logger = structlog.get_logger()

# Statuses that grant premium access
PREMIUM_STATUSES = frozenset({"active", "trialing"})


class SubscriptionStore:
    def __init__(self, root: Path, lock_timeout: float = 5.0):
        self._docs = DocumentStore(root / "subscriptions", lock_timeout=lock_timeout)

    def set_status(
        self,
        user_id: str,
        status: str,
        current_period_end: datetime | None = None,
    ) -> None:
        validate_user_id(user_id)
        with self._docs.transaction(user_id) as data:
            data["status"] = status
            data["current_period_end"] = (
                current_period_end.isoformat() if current_period_end else None
            )
        logger.info("subscription_status_set", user_id=user_id, status=status)

    def is_premium(self, user_id: str) -> bool:
        validate_user_id(user_id)
        data = self._docs.read(user_id)
        if data.get("status") not in PREMIUM_STATUSES:
            return False
        period_end = data.get("current_period_end")
        return period_end is None or datetime.fromisoformat(period_end) > datetime.now()

    def erase_user(self, user_id: str) -> bool:
        validate_user_id(user_id)
        return self._docs.delete(user_id)
