"""CEFR level state machine driven by graded attempt outcomes."""

import structlog
from pydantic import BaseModel, ConfigDict, Field

from adaptive_practice.models.level import Outcome, UserSkillLevel
from adaptive_practice.models.skills import CEFRLevel, QuestionType, SkillArea
from adaptive_practice.storage.levels import LevelStore

logger = structlog.get_logger()


class LevelPolicy(BaseModel):
    """Transition thresholds.

    Args:
        promotion_streak: Consecutive correct outcomes needed to move up.
        demotion_attempts: Attempts at a level after which an incorrect
            outcome moves the learner down.
    """

    model_config = ConfigDict(frozen=True)

    promotion_streak: int = Field(default=5, ge=1)
    demotion_attempts: int = Field(default=10, ge=1)


def apply_outcome(
    record: UserSkillLevel, outcome: Outcome, policy: LevelPolicy
) -> UserSkillLevel:
    """Pure transition: (level state, outcome) -> new level state.

    A1 never regresses and C2 never promotes; counters keep accumulating
    at either end.
    """
    level = record.cefr_level
    attempts = record.attempts_at_level + 1

    if outcome == Outcome.CORRECT:
        streak = record.correct_streak + 1
        if streak >= policy.promotion_streak and level != CEFRLevel.highest():
            level, attempts, streak = level.next(), 0, 0
    else:
        streak = 0
        if attempts >= policy.demotion_attempts and level != CEFRLevel.lowest():
            level, attempts, streak = level.previous(), 0, 0

    return record.model_copy(
        update={
            "cefr_level": level,
            "numeric_level": level.numeric,
            "attempts_at_level": attempts,
            "correct_streak": streak,
        }
    )


class LevelStateMachine:
    """Applies outcomes to stored level records, one atomic update per call."""

    def __init__(self, store: LevelStore, policy: LevelPolicy | None = None):
        self.store = store
        self.policy = policy or LevelPolicy()

    def advance(
        self,
        user_id: str,
        skill_area: SkillArea,
        question_type: QuestionType,
        outcome: Outcome,
    ) -> UserSkillLevel:
        previous, updated = self.store.update(
            user_id,
            skill_area,
            question_type,
            lambda current: apply_outcome(current, outcome, self.policy),
        )
        if updated.cefr_level != previous.cefr_level:
            logger.info(
                "level_changed",
                user_id=user_id,
                skill_area=skill_area.value,
                question_type=question_type.value,
                old_level=previous.cefr_level.value,
                new_level=updated.cefr_level.value,
            )
        else:
            logger.debug(
                "level_outcome_applied",
                user_id=user_id,
                skill_area=skill_area.value,
                question_type=question_type.value,
                outcome=outcome.value,
                correct_streak=updated.correct_streak,
                attempts_at_level=updated.attempts_at_level,
            )
        return updated
