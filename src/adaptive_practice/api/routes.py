"""REST API routes for practice sessions, levels, usage and inventory."""

from datetime import datetime

import structlog
from fastapi import APIRouter, Header, HTTPException
from pydantic import BaseModel, Field

from adaptive_practice.errors import (
    AttemptNotFoundError,
    ContentGenerationError,
    IdentityError,
    InvalidSkillPairError,
    NoContentAvailableError,
    PracticeError,
    StoreUnavailableError,
    UsageLimitReachedError,
    UsageStateAmbiguousError,
)
from adaptive_practice.models.level import Outcome
from adaptive_practice.models.question import Attempt
from adaptive_practice.models.skills import QuestionType, validate_level, validate_pair
from adaptive_practice.service import get_service
from adaptive_practice.storage.documents import validate_user_id

logger = structlog.get_logger()
router = APIRouter(prefix="/api")

_STATUS_BY_ERROR: list[tuple[type[PracticeError], int]] = [
    (IdentityError, 401),
    (InvalidSkillPairError, 400),
    (UsageLimitReachedError, 402),
    (NoContentAvailableError, 404),
    (AttemptNotFoundError, 404),
    (ContentGenerationError, 502),
    (StoreUnavailableError, 503),
    (UsageStateAmbiguousError, 503),
]


def _http_error(error: PracticeError) -> HTTPException:
    status = next(
        (code for cls, code in _STATUS_BY_ERROR if isinstance(error, cls)), 500
    )
    if status >= 500:
        logger.error("request_failed", error_code=error.code, error=str(error))
    return HTTPException(status_code=status, detail={"error": error.code, "message": str(error)})


def _user(x_user_id: str | None) -> str:
    try:
        return validate_user_id(x_user_id)
    except IdentityError as e:
        raise _http_error(e) from e


class OutcomeRequest(BaseModel):
    outcome: Outcome | None = None
    score: float | None = Field(default=None, ge=0, le=100)


class AttemptRequest(BaseModel):
    id: str
    session_id: str
    question_id: str
    question_type: QuestionType
    prompt_text: str = ""
    response_ref: str | None = None
    transcript: str | None = None
    score: float | None = Field(default=None, ge=0, le=100)
    feedback: str | None = None
    attempted_at: datetime | None = None


class GradeRequest(BaseModel):
    score: float = Field(ge=0, le=100)
    transcript: str | None = None
    feedback: str | None = None


class GenerateRequest(BaseModel):
    skill_area: str
    question_type: str
    cefr_level: str
    count: int = Field(default=5, ge=1, le=20)


@router.post("/practice-session")
async def create_practice_session(x_user_id: str | None = Header(default=None)) -> dict:
    """Compose a practice session, consuming one unit of free quota."""
    user_id = _user(x_user_id)
    service = get_service()
    try:
        session = await service.compose_session(user_id)
    except PracticeError as e:
        raise _http_error(e) from e
    return session.model_dump(mode="json")


@router.get("/levels")
def get_all_levels(x_user_id: str | None = Header(default=None)) -> dict:
    user_id = _user(x_user_id)
    service = get_service()
    try:
        grouped = service.get_all_levels(user_id)
    except PracticeError as e:
        raise _http_error(e) from e
    return {
        skill: [s.model_dump(mode="json") for s in summaries]
        for skill, summaries in grouped.items()
    }


@router.get("/levels/{skill_area}/{question_type}")
def get_level(
    skill_area: str, question_type: str, x_user_id: str | None = Header(default=None)
) -> dict:
    user_id = _user(x_user_id)
    service = get_service()
    try:
        skill, qtype = validate_pair(skill_area, question_type)
        return service.get_level(user_id, skill, qtype).model_dump(mode="json")
    except PracticeError as e:
        raise _http_error(e) from e


@router.post("/levels/{skill_area}/{question_type}/outcome")
def record_outcome(
    skill_area: str,
    question_type: str,
    body: OutcomeRequest,
    x_user_id: str | None = Header(default=None),
) -> dict:
    """Apply one graded outcome (or a 0-100 score) to the learner's level."""
    user_id = _user(x_user_id)
    service = get_service()
    if body.outcome is None and body.score is None:
        raise HTTPException(status_code=400, detail="Either outcome or score is required")
    outcome = body.outcome or Outcome.from_score(body.score, service.pass_mark)
    try:
        skill, qtype = validate_pair(skill_area, question_type)
        return service.record_outcome(user_id, skill, qtype, outcome).model_dump(mode="json")
    except PracticeError as e:
        raise _http_error(e) from e


@router.get("/usage")
def check_usage(x_user_id: str | None = Header(default=None)) -> dict:
    user_id = _user(x_user_id)
    service = get_service()
    try:
        usage = service.check_usage(user_id)
    except PracticeError as e:
        raise _http_error(e) from e
    return {
        "allowed": usage.allowed,
        "is_premium": usage.is_premium,
        "remaining": "unlimited" if usage.unlimited else usage.remaining,
        "count": usage.count,
        "limit": usage.limit,
    }


@router.post("/attempts")
def submit_attempt(
    body: AttemptRequest, x_user_id: str | None = Header(default=None)
) -> dict:
    """Record an answered question. Resubmitting the same id is a no-op."""
    user_id = _user(x_user_id)
    service = get_service()
    fields = body.model_dump(exclude_none=True)
    try:
        attempt, created, level = service.submit_attempt(Attempt(user_id=user_id, **fields))
    except PracticeError as e:
        raise _http_error(e) from e
    return {
        "attempt": attempt.model_dump(mode="json"),
        "created": created,
        "level": level.model_dump(mode="json") if level else None,
    }


@router.post("/attempts/{attempt_id}/grade")
def grade_attempt(
    attempt_id: str, body: GradeRequest, x_user_id: str | None = Header(default=None)
) -> dict:
    user_id = _user(x_user_id)
    service = get_service()
    try:
        attempt, level = service.grade_attempt(
            user_id, attempt_id, body.score, transcript=body.transcript, feedback=body.feedback
        )
    except PracticeError as e:
        raise _http_error(e) from e
    return {
        "attempt": attempt.model_dump(mode="json"),
        "level": level.model_dump(mode="json") if level else None,
    }


@router.get("/inventory")
def get_inventory() -> dict:
    service = get_service()
    try:
        entries = service.get_inventory_snapshot()
    except PracticeError as e:
        raise _http_error(e) from e
    return {"inventory": [e.model_dump(mode="json") for e in entries]}


@router.post("/inventory/generate")
async def generate_inventory(body: GenerateRequest) -> dict:
    """Top up one (skill, type, level) key to ``count`` questions."""
    service = get_service()
    try:
        skill, qtype = validate_pair(body.skill_area, body.question_type)
        level = validate_level(body.cefr_level)
        result = await service.ensure_inventory(skill, qtype, level, body.count)
    except PracticeError as e:
        raise _http_error(e) from e
    return {
        "success": True,
        "generated": result.generated_count,
        "errors": result.errors,
    }


@router.get("/health")
async def health_check() -> dict:
    """Health check endpoint."""
    return {"status": "ok"}
