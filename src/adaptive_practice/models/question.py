"""Question catalog, attempt and practice session models."""

import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, model_validator

from adaptive_practice.models.skills import CEFRLevel, QuestionType, SkillArea


class Question(BaseModel):
    """A leveled practice prompt."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    type: QuestionType
    skill_type: SkillArea | None = None
    cefr_level: CEFRLevel = CEFRLevel.A1
    prompt: str
    prep_seconds: int = 20
    min_seconds: int = 30
    max_seconds: int = 90
    image_url: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    is_published: bool = True
    times_served: int = 0
    times_used: int = 0
    created_at: datetime = Field(default_factory=datetime.now)

    @model_validator(mode="after")
    def _derive_skill_type(self) -> "Question":
        self.skill_type = self.type.skill_area
        return self


class SessionQuestion(BaseModel):
    question: Question
    skill_type: SkillArea


class PracticeSession(BaseModel):
    """Transient composition handed to the client; not persisted itself."""

    session_id: str = Field(
        default_factory=lambda: f"practice_{uuid.uuid4().hex}"
    )
    questions: list[SessionQuestion] = Field(default_factory=list)
    is_premium: bool = False
    remaining: int | None = None
    strategy: str = ""


class Attempt(BaseModel):
    """One answered question. Grading fields are filled asynchronously."""

    id: str
    session_id: str
    question_id: str
    user_id: str
    question_type: QuestionType
    skill_type: SkillArea | None = None
    prompt_text: str = ""
    response_ref: str | None = None
    transcript: str | None = None
    score: float | None = Field(default=None, ge=0, le=100)
    feedback: str | None = None
    attempted_at: datetime = Field(default_factory=datetime.now)
    level_applied: bool = False

    @model_validator(mode="after")
    def _derive_skill_type(self) -> "Attempt":
        self.skill_type = self.question_type.skill_area
        return self

    @property
    def is_graded(self) -> bool:
        return self.score is not None
