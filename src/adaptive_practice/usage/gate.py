"""Free-tier usage gate with premium bypass."""

import asyncio
from typing import Protocol

import structlog

from adaptive_practice.errors import UsageStateAmbiguousError
from adaptive_practice.models.usage import UsageCheckResult
from adaptive_practice.storage.usage import UsageStore

logger = structlog.get_logger()


class SubscriptionStatus(Protocol):
    def is_premium(self, user_id: str) -> bool: ...


class UsageGate:
    """Lifetime quota check for session creation.

    Store failures propagate.

    Args:
        store: Usage counter store.
        subscriptions: Source of the premium flag.
        lifetime_limit: Free sessions allowed before upgrade is required.
        timeout_seconds: Request-level timeout for ``acquire``.
    """

    def __init__(
        self,
        store: UsageStore,
        subscriptions: SubscriptionStatus,
        lifetime_limit: int = 5,
        timeout_seconds: float = 10.0,
    ):
        self.store = store
        self.subscriptions = subscriptions
        self.lifetime_limit = lifetime_limit
        self.timeout_seconds = timeout_seconds

    def _premium_result(self, user_id: str) -> UsageCheckResult:
        count = self.store.get_usage(user_id).practice_count
        return UsageCheckResult(allowed=True, is_premium=True, count=count)

    def check_and_increment(
        self, user_id: str, lifetime_limit: int | None = None
    ) -> UsageCheckResult:
        """Consume one free unit, or report denial without mutating anything."""
        if self.subscriptions.is_premium(user_id):
            return self._premium_result(user_id)

        limit = self.lifetime_limit if lifetime_limit is None else lifetime_limit
        result = self.store.check_and_increment(user_id, limit)
        if result.allowed:
            logger.info(
                "free_usage_consumed",
                user_id=user_id,
                count=result.count,
                remaining=result.remaining,
            )
        else:
            logger.info("free_usage_denied", user_id=user_id, count=result.count, limit=limit)
        return result

    async def acquire(self, user_id: str) -> UsageCheckResult:
        """``check_and_increment`` under the request-level timeout.

        Raises:
            UsageStateAmbiguousError: Timed out; the increment may have committed.
        """
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(self.check_and_increment, user_id),
                timeout=self.timeout_seconds,
            )
        except TimeoutError as e:
            logger.error("free_usage_timeout", user_id=user_id)
            raise UsageStateAmbiguousError(
                f"usage check for {user_id} timed out; state unknown"
            ) from e

    def check_usage(self, user_id: str) -> UsageCheckResult:
        """Read-only view of the quota."""
        if self.subscriptions.is_premium(user_id):
            return self._premium_result(user_id)
        count = self.store.get_usage(user_id).practice_count
        return UsageCheckResult(
            allowed=count < self.lifetime_limit,
            count=count,
            limit=self.lifetime_limit,
            remaining=max(0, self.lifetime_limit - count),
        )
