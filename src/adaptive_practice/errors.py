"""Error taxonomy for the practice core.

Callers must be able to tell policy denials (out of free attempts) from
defects (store failures) from content-pool gaps (nothing to serve).
"""


class PracticeError(Exception):
    """Base class for all practice-core errors."""

    code: str = "internal_error"


class IdentityError(PracticeError):
    """Missing or malformed learner identity."""

    code = "identity_error"


class InvalidSkillPairError(PracticeError, ValueError):
    """Unknown skill area / question type / level, or a mismatched pair."""

    code = "invalid_skill_pair"


class StoreUnavailableError(PracticeError):
    """Backing store could not complete the operation; nothing was committed."""

    code = "store_unavailable"


class UsageStateAmbiguousError(PracticeError):
    """A usage increment timed out and may or may not have committed."""

    code = "usage_state_unknown"


class UsageLimitReachedError(PracticeError):
    """Free-tier lifetime quota exhausted for a non-premium learner."""

    code = "upgrade_required"

    def __init__(self, user_id: str, count: int, limit: int):
        super().__init__(f"free tier limit reached for {user_id}: {count}/{limit}")
        self.user_id = user_id
        self.count = count
        self.limit = limit


class NoContentAvailableError(PracticeError):
    """No question could be drawn for any selected skill area."""

    code = "no_content"


class AttemptNotFoundError(PracticeError, LookupError):
    code = "attempt_not_found"


class ContentGenerationError(PracticeError):
    """The content generator could not be reached at all."""

    code = "generation_failed"
