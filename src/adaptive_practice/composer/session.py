"""Practice session composition."""

import asyncio
import random
from datetime import datetime, timedelta

import structlog

from adaptive_practice.composer.weak_skills import WeakSkillDetector
from adaptive_practice.errors import (
    ContentGenerationError,
    NoContentAvailableError,
    StoreUnavailableError,
    UsageLimitReachedError,
)
from adaptive_practice.inventory.manager import PromptInventory
from adaptive_practice.models.question import PracticeSession, Question, SessionQuestion
from adaptive_practice.models.skills import (
    SKILL_QUESTION_TYPES,
    CEFRLevel,
    QuestionType,
    SkillArea,
)
from adaptive_practice.storage.attempts import AttemptStore
from adaptive_practice.storage.documents import validate_user_id
from adaptive_practice.storage.levels import LevelStore
from adaptive_practice.usage.gate import UsageGate

logger = structlog.get_logger()


class SessionComposer:
    """Builds a practice session of up to ``session_size`` questions.

    One question per selected skill: a random question type for the skill,
    the learner's level for that type, and a draw that avoids questions the
    learner saw for that skill recently. When the level has nothing fresh,
    the adjacent levels are tried (lower first), then an on-demand top-up at
    the level when enabled, then a repeat at the level. Otherwise the skill
    is skipped.

    Store calls run in worker threads so a held file lock never stalls the
    event loop.

    Args:
        gate: Free-tier usage gate, consulted once before any draw.
        detector: Picks the skill order.
        levels: Level store (read / get-or-create only).
        attempts: Attempt history for repeat avoidance.
        inventory: Question supply.
        session_size: Maximum questions per session.
        recent_window_days: Repeat-avoidance window.
        recent_attempt_limit: Most recent attempts considered for avoidance.
        candidate_window: Candidates drawn from per (type, level).
        lazy_top_up: Ask the inventory to generate when a draw finds nothing.
        top_up_min_count: Target count for an on-demand top-up.
        rng: Random source for type choice and draws.
    """

    def __init__(
        self,
        gate: UsageGate,
        detector: WeakSkillDetector,
        levels: LevelStore,
        attempts: AttemptStore,
        inventory: PromptInventory,
        session_size: int = 4,
        recent_window_days: int = 7,
        recent_attempt_limit: int = 20,
        candidate_window: int = 10,
        lazy_top_up: bool = True,
        top_up_min_count: int = 5,
        rng: random.Random | None = None,
    ):
        self.gate = gate
        self.detector = detector
        self.levels = levels
        self.attempts = attempts
        self.inventory = inventory
        self.session_size = session_size
        self.recent_window_days = recent_window_days
        self.recent_attempt_limit = recent_attempt_limit
        self.candidate_window = candidate_window
        self.lazy_top_up = lazy_top_up
        self.top_up_min_count = top_up_min_count
        self._rng = rng or random.Random()

    async def compose_session(self, user_id: str) -> PracticeSession:
        """Consume one unit of quota and assemble a session.

        Raises:
            IdentityError: Missing or malformed user id.
            UsageLimitReachedError: Free quota exhausted; nothing was drawn.
            NoContentAvailableError: No skill produced a question.
            StoreUnavailableError: Usage or level store failed.
            UsageStateAmbiguousError: Usage check timed out.
        """
        validate_user_id(user_id)

        usage = await self.gate.acquire(user_id)
        if not usage.allowed:
            raise UsageLimitReachedError(user_id, usage.count, usage.limit or 0)

        strategy, skills = await asyncio.to_thread(
            self.detector.skill_order, user_id, self.session_size
        )

        questions: list[SessionQuestion] = []
        for skill in skills[: self.session_size]:
            question = await self._pick_for_skill(user_id, skill)
            if question is None:
                logger.info("skill_skipped_no_content", user_id=user_id, skill_area=skill.value)
                continue
            questions.append(SessionQuestion(question=question, skill_type=skill))

        if not questions:
            logger.warning("session_no_content", user_id=user_id, strategy=strategy)
            raise NoContentAvailableError(f"no questions available for {user_id}")

        session = PracticeSession(
            questions=questions,
            is_premium=usage.is_premium,
            remaining=usage.remaining,
            strategy=strategy,
        )
        logger.info(
            "session_composed",
            user_id=user_id,
            session_id=session.session_id,
            strategy=strategy,
            count=len(questions),
            skills=[q.skill_type.value for q in questions],
        )
        return session

    def _exclusion_set(self, user_id: str, skill: SkillArea) -> set[str]:
        since = datetime.now() - timedelta(days=self.recent_window_days)
        try:
            return set(
                self.attempts.recent_question_ids(
                    user_id, skill, since, limit=self.recent_attempt_limit
                )
            )
        except StoreUnavailableError as e:
            logger.warning("recent_attempts_unavailable", user_id=user_id, error=str(e))
            return set()

    async def _draw(
        self, question_type: QuestionType, level: CEFRLevel, exclude: set[str] | tuple = ()
    ) -> Question | None:
        return await asyncio.to_thread(
            self.inventory.draw,
            question_type,
            level,
            exclude,
            window=self.candidate_window,
            rng=self._rng,
        )

    async def _pick_for_skill(self, user_id: str, skill: SkillArea) -> Question | None:
        question_type = self._rng.choice(SKILL_QUESTION_TYPES[skill])
        record = await asyncio.to_thread(self.levels.get_or_create, user_id, skill, question_type)
        level = record.cefr_level
        exclude = await asyncio.to_thread(self._exclusion_set, user_id, skill)

        question = await self._draw(question_type, level, exclude)
        if question is not None:
            return question

        for neighbour in level.adjacent():
            question = await self._draw(question_type, neighbour, exclude)
            if question is not None:
                logger.info(
                    "draw_adjacent_level",
                    user_id=user_id,
                    question_type=question_type.value,
                    level=level.value,
                    drawn_level=neighbour.value,
                )
                return question

        if self.lazy_top_up and self.inventory.can_generate:
            try:
                await self.inventory.ensure_inventory(
                    skill, question_type, level, self.top_up_min_count
                )
            except ContentGenerationError as e:
                logger.warning("lazy_top_up_failed", question_type=question_type.value, error=str(e))
            else:
                question = await self._draw(question_type, level, exclude)
                if question is not None:
                    return question

        if not exclude:
            return None
        logger.info(
            "draw_allowing_repeats",
            user_id=user_id,
            question_type=question_type.value,
            level=level.value,
        )
        return await self._draw(question_type, level)
