"""Prompt inventory: per-(skill, type, level) supply of published questions."""

import asyncio
import random
from collections.abc import Iterable

import structlog

from adaptive_practice.errors import (
    ContentGenerationError,
    InvalidSkillPairError,
    StoreUnavailableError,
)
from adaptive_practice.inventory.generator import ContentGenerator
from adaptive_practice.models.inventory import GenerationResult, InventoryEntry
from adaptive_practice.models.question import Question
from adaptive_practice.models.skills import (
    SKILL_QUESTION_TYPES,
    CEFRLevel,
    QuestionType,
    SkillArea,
)
from adaptive_practice.storage.questions import QuestionCatalog

logger = structlog.get_logger()


class PromptInventory:
    """Keeps the question catalog topped up and serves draws from it.

    A key counts as available only for questions that were never served, so
    every draw of a fresh question brings the key closer to its next top-up.

    Store failures degrade: draws come back empty and top-ups report the
    failure in their result instead of raising.

    Args:
        catalog: Question catalog store.
        generator: Content generator, or None when generation is disabled.
        max_per_call: Upper bound on questions requested per top-up.
    """

    def __init__(
        self,
        catalog: QuestionCatalog,
        generator: ContentGenerator | None = None,
        max_per_call: int = 20,
    ):
        self.catalog = catalog
        self.generator = generator
        self.max_per_call = max_per_call

    @property
    def can_generate(self) -> bool:
        return self.generator is not None

    def draw(
        self,
        question_type: QuestionType,
        level: CEFRLevel,
        exclude: Iterable[str] = (),
        window: int = 10,
        rng: random.Random | None = None,
    ) -> Question | None:
        """Serve one of the ``window`` least-served candidates not in ``exclude``.

        The catalog records the serve, so the available count drops when a
        question is drawn for the first time.
        """
        try:
            question = self.catalog.claim(
                question_type, level, exclude=exclude, limit=window, rng=rng
            )
        except StoreUnavailableError as e:
            logger.warning(
                "inventory_draw_failed",
                question_type=question_type.value,
                level=level.value,
                error=str(e),
            )
            return None
        return question

    async def ensure_inventory(
        self,
        skill_area: SkillArea,
        question_type: QuestionType,
        level: CEFRLevel,
        min_count: int,
    ) -> GenerationResult:
        """Top up (skill, type, level) to at least ``min_count`` questions.

        Partial generation failures are reported in the result.

        Raises:
            InvalidSkillPairError: The type does not belong to the skill.
            ContentGenerationError: The generator could not be reached at all.
        """
        if question_type.skill_area != skill_area:
            raise InvalidSkillPairError(
                f"question type {question_type.value!r} does not belong to {skill_area.value!r}"
            )

        try:
            available = await asyncio.to_thread(self.catalog.count, question_type, level)
        except StoreUnavailableError as e:
            logger.warning("inventory_count_failed", error=str(e))
            return GenerationResult(errors=[f"inventory unavailable: {e}"])

        if available >= min_count:
            return GenerationResult()
        if self.generator is None:
            return GenerationResult(errors=["no content generator configured"])

        to_generate = min(min_count - available, self.max_per_call)
        result = await self.generator.generate(skill_area, question_type, level, to_generate)

        errors = list(result.errors)
        try:
            stored = await asyncio.to_thread(self.catalog.add_many, result.generated)
        except StoreUnavailableError as e:
            logger.warning("inventory_store_failed", error=str(e))
            stored = []
            errors.append(f"failed to store generated questions: {e}")

        logger.info(
            "inventory_topped_up",
            skill_area=skill_area.value,
            question_type=question_type.value,
            level=level.value,
            available=available,
            generated=len(stored),
            errors=len(errors),
        )
        return GenerationResult(requested=to_generate, generated=stored, errors=errors)

    async def replenish_all(self, min_count: int) -> GenerationResult:
        """Top up every (skill, type, level) key; per-key failures are aggregated."""
        total = GenerationResult()
        for skill_area, question_types in SKILL_QUESTION_TYPES.items():
            for question_type in question_types:
                for level in CEFRLevel:
                    try:
                        result = await self.ensure_inventory(
                            skill_area, question_type, level, min_count
                        )
                    except ContentGenerationError as e:
                        result = GenerationResult(
                            errors=[f"{question_type.value}/{level.value}: {e}"]
                        )
                    total = total.merge(result)
        return total

    def get_inventory_snapshot(self) -> list[InventoryEntry]:
        """One entry per (skill, type, level) key, including empty ones."""
        counts = self.catalog.usage_counts()
        entries = []
        for skill_area, question_types in SKILL_QUESTION_TYPES.items():
            for question_type in question_types:
                for level in CEFRLevel:
                    key = (question_type, level)
                    entries.append(
                        InventoryEntry(
                            skill_area=skill_area,
                            question_type=question_type,
                            cefr_level=level,
                            total=counts["total"][key],
                            available=counts["available"][key],
                            served=counts["served"][key],
                            answered=counts["answered"][key],
                        )
                    )
        return entries

    def mark_used(self, question_id: str) -> None:
        try:
            self.catalog.increment_usage(question_id)
        except StoreUnavailableError as e:
            logger.warning("inventory_mark_used_failed", question_id=question_id, error=str(e))
