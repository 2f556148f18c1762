"""Prompt inventory models."""

from pydantic import BaseModel, Field

from adaptive_practice.models.question import Question
from adaptive_practice.models.skills import CEFRLevel, QuestionType, SkillArea


class InventoryEntry(BaseModel):
    """Counts for one (skill, type, level) key; ``available`` excludes served questions."""

    skill_area: SkillArea
    question_type: QuestionType
    cefr_level: CEFRLevel
    total: int = Field(default=0, ge=0)
    available: int = Field(default=0, ge=0)
    served: int = 0
    answered: int = 0


class GenerationResult(BaseModel):
    """Partial-success result of a generation request.

    Per-item failures land in ``errors``; they never raise.
    """

    requested: int = 0
    generated: list[Question] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)

    @property
    def generated_count(self) -> int:
        return len(self.generated)

    def merge(self, other: "GenerationResult") -> "GenerationResult":
        return GenerationResult(
            requested=self.requested + other.requested,
            generated=self.generated + other.generated,
            errors=self.errors + other.errors,
        )
