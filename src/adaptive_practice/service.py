"""Practice service: the operations exposed to hosts (HTTP, jobs, admin)."""

import functools

import structlog

from adaptive_practice.composer.session import SessionComposer
from adaptive_practice.composer.weak_skills import WeakSkillDetector
from adaptive_practice.config import Settings, get_settings
from adaptive_practice.inventory.generator import OpenAIContentGenerator
from adaptive_practice.inventory.manager import PromptInventory
from adaptive_practice.levels.state_machine import LevelPolicy, LevelStateMachine
from adaptive_practice.models.inventory import GenerationResult, InventoryEntry
from adaptive_practice.models.level import LevelSummary, Outcome
from adaptive_practice.models.question import Attempt, PracticeSession
from adaptive_practice.models.skills import CEFRLevel, QuestionType, SkillArea
from adaptive_practice.models.usage import UsageCheckResult
from adaptive_practice.storage.attempts import AttemptStore
from adaptive_practice.storage.documents import validate_user_id
from adaptive_practice.storage.levels import LevelStore
from adaptive_practice.storage.questions import QuestionCatalog
from adaptive_practice.storage.subscriptions import SubscriptionStore
from adaptive_practice.storage.usage import UsageStore
from adaptive_practice.usage.gate import UsageGate

logger = structlog.get_logger()


class PracticeService:
    def __init__(
        self,
        *,
        levels: LevelStore,
        attempts: AttemptStore,
        usage: UsageStore,
        subscriptions: SubscriptionStore,
        gate: UsageGate,
        inventory: PromptInventory,
        state_machine: LevelStateMachine,
        composer: SessionComposer,
        pass_mark: float = 70.0,
    ):
        self.levels = levels
        self.attempts = attempts
        self.usage = usage
        self.subscriptions = subscriptions
        self.gate = gate
        self.inventory = inventory
        self.state_machine = state_machine
        self.composer = composer
        self.pass_mark = pass_mark

    async def compose_session(self, user_id: str) -> PracticeSession:
        return await self.composer.compose_session(user_id)

    def get_level(
        self, user_id: str, skill_area: SkillArea, question_type: QuestionType
    ) -> LevelSummary:
        record = self.levels.get_or_create(user_id, skill_area, question_type)
        return LevelSummary.from_record(record)

    def get_all_levels(self, user_id: str) -> dict[str, list[LevelSummary]]:
        """Existing level records grouped by skill area."""
        grouped: dict[str, list[LevelSummary]] = {skill.value: [] for skill in SkillArea}
        for record in self.levels.list_for_user(user_id):
            grouped[record.skill_area.value].append(LevelSummary.from_record(record))
        for summaries in grouped.values():
            summaries.sort(key=lambda s: s.question_type.value)
        return grouped

    def record_outcome(
        self,
        user_id: str,
        skill_area: SkillArea,
        question_type: QuestionType,
        outcome: Outcome,
    ) -> LevelSummary:
        record = self.state_machine.advance(user_id, skill_area, question_type, outcome)
        return LevelSummary.from_record(record)

    def check_usage(self, user_id: str) -> UsageCheckResult:
        validate_user_id(user_id)
        return self.gate.check_usage(user_id)

    def _apply_grade(self, attempt: Attempt) -> LevelSummary:
        outcome = Outcome.from_score(attempt.score, self.pass_mark)
        return self.record_outcome(
            attempt.user_id, attempt.skill_type, attempt.question_type, outcome
        )

    def _apply_pending_grade(self, attempt: Attempt) -> tuple[Attempt, LevelSummary | None]:
        level = self.attempts.apply_once(attempt.user_id, attempt.id, self._apply_grade)
        if level is not None:
            attempt = attempt.model_copy(update={"level_applied": True})
        return attempt, level

    def submit_attempt(self, attempt: Attempt) -> tuple[Attempt, bool, LevelSummary | None]:
        """Store an attempt; a resubmission with the same id stores nothing.

        A graded attempt advances the learner's level exactly once. If the
        level store failed on an earlier submission, resubmitting applies
        the pending update.

        Returns:
            (stored attempt, created, updated level or None).
        """
        stored, created = self.attempts.append(attempt)
        if created:
            self.inventory.mark_used(stored.question_id)
        stored, level = self._apply_pending_grade(stored)
        return stored, created, level

    def grade_attempt(
        self,
        user_id: str,
        attempt_id: str,
        score: float,
        transcript: str | None = None,
        feedback: str | None = None,
    ) -> tuple[Attempt, LevelSummary | None]:
        """Attach a grade; the level moves once per attempt, however often it is graded."""
        attempt, _ = self.attempts.grade(
            user_id, attempt_id, score, transcript=transcript, feedback=feedback
        )
        return self._apply_pending_grade(attempt)

    async def ensure_inventory(
        self,
        skill_area: SkillArea,
        question_type: QuestionType,
        level: CEFRLevel,
        min_count: int,
    ) -> GenerationResult:
        return await self.inventory.ensure_inventory(skill_area, question_type, level, min_count)

    def get_inventory_snapshot(self) -> list[InventoryEntry]:
        return self.inventory.get_inventory_snapshot()

    def erase_user(self, user_id: str) -> None:
        """Full account erasure: levels, attempts, usage and subscription mirror."""
        for store in (self.levels, self.attempts, self.usage, self.subscriptions):
            store.erase_user(user_id)
        logger.info("user_erased", user_id=user_id)


def build_service(settings: Settings) -> PracticeService:
    root = settings.storage_dir
    timeout = settings.lock_timeout_seconds

    levels = LevelStore(root, lock_timeout=timeout)
    attempts = AttemptStore(root, lock_timeout=timeout)
    usage = UsageStore(root, lock_timeout=timeout)
    subscriptions = SubscriptionStore(root, lock_timeout=timeout)
    catalog = QuestionCatalog(root, lock_timeout=timeout)

    generator = None
    if settings.openai_api_key:
        generator = OpenAIContentGenerator(
            api_key=settings.openai_api_key, model=settings.generation_model
        )
    else:
        logger.info("content_generation_disabled")

    inventory = PromptInventory(
        catalog, generator=generator, max_per_call=settings.generation_max_per_call
    )
    gate = UsageGate(
        usage,
        subscriptions,
        lifetime_limit=settings.free_tier_lifetime_limit,
        timeout_seconds=settings.usage_timeout_seconds,
    )
    state_machine = LevelStateMachine(
        levels,
        LevelPolicy(
            promotion_streak=settings.promotion_streak,
            demotion_attempts=settings.demotion_attempts,
        ),
    )
    detector = WeakSkillDetector(
        attempts,
        min_history=settings.min_history_attempts,
        window=settings.weak_skill_window,
    )
    composer = SessionComposer(
        gate,
        detector,
        levels,
        attempts,
        inventory,
        session_size=settings.session_size,
        recent_window_days=settings.recent_window_days,
        recent_attempt_limit=settings.recent_attempt_limit,
        candidate_window=settings.candidate_window,
        lazy_top_up=settings.lazy_top_up,
        top_up_min_count=settings.inventory_min_count,
    )
    return PracticeService(
        levels=levels,
        attempts=attempts,
        usage=usage,
        subscriptions=subscriptions,
        gate=gate,
        inventory=inventory,
        state_machine=state_machine,
        composer=composer,
        pass_mark=settings.pass_mark,
    )


@functools.lru_cache
def get_service() -> PracticeService:
    """Get the process-wide service built from settings."""
    return build_service(get_settings())
