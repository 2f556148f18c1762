"""Free-tier usage models."""

from datetime import datetime

from pydantic import BaseModel, Field


class FreeTierUsage(BaseModel):
    user_id: str
    practice_count: int = Field(default=0, ge=0)
    updated_at: datetime = Field(default_factory=datetime.now)


class UsageCheckResult(BaseModel):
    """Outcome of a usage check; remaining is None when unlimited."""

    allowed: bool
    is_premium: bool = False
    count: int = 0
    limit: int | None = None
    remaining: int | None = None

    @property
    def unlimited(self) -> bool:
        return self.is_premium
