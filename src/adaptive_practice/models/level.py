"""Per-(user, skill, question type) proficiency record."""

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field, model_validator

from adaptive_practice.models.skills import CEFRLevel, QuestionType, SkillArea


class Outcome(StrEnum):
    """Graded result of one attempt as seen by the level state machine."""

    CORRECT = "correct"
    INCORRECT = "incorrect"

    @classmethod
    def from_score(cls, score: float, pass_mark: float = 70.0) -> "Outcome":
        """Map a 0-100 grade onto correct/incorrect."""
        return cls.CORRECT if score >= pass_mark else cls.INCORRECT


class UserSkillLevel(BaseModel):
    user_id: str
    skill_area: SkillArea
    question_type: QuestionType
    cefr_level: CEFRLevel = CEFRLevel.A1
    numeric_level: int = 1
    attempts_at_level: int = Field(default=0, ge=0)
    correct_streak: int = Field(default=0, ge=0)
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)

    @model_validator(mode="after")
    def _sync_numeric_level(self) -> "UserSkillLevel":
        # numeric_level always follows cefr_level
        self.numeric_level = self.cefr_level.numeric
        return self

    @property
    def key(self) -> str:
        return f"{self.skill_area.value}|{self.question_type.value}"


class LevelSummary(BaseModel):
    """Public view of a level record."""

    skill_area: SkillArea
    question_type: QuestionType
    cefr_level: CEFRLevel
    numeric_level: int
    attempts_at_level: int
    correct_streak: int

    @classmethod
    def from_record(cls, record: UserSkillLevel) -> "LevelSummary":
        return cls(
            skill_area=record.skill_area,
            question_type=record.question_type,
            cefr_level=record.cefr_level,
            numeric_level=record.numeric_level,
            attempts_at_level=record.attempts_at_level,
            correct_streak=record.correct_streak,
        )
