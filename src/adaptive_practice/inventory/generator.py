"""Content generators that produce new leveled questions."""

import asyncio
import json
from datetime import datetime
from typing import Protocol

import openai
import structlog
from openai import AsyncOpenAI

from adaptive_practice.errors import ContentGenerationError
from adaptive_practice.inventory.prompts import (
    GENERATION_SYSTEM_PROMPT,
    build_generation_prompt,
    timing_for,
)
from adaptive_practice.models.inventory import GenerationResult
from adaptive_practice.models.question import Question
from adaptive_practice.models.skills import CEFRLevel, QuestionType, SkillArea

logger = structlog.get_logger()


class ContentGenerator(Protocol):
    async def generate(
        self,
        skill_area: SkillArea,
        question_type: QuestionType,
        level: CEFRLevel,
        count: int,
    ) -> GenerationResult: ...


class OpenAIContentGenerator:
    """Generates questions one per chat completion, concurrently.

    Args:
        api_key: OpenAI API key.
        model: Model to use for generation.
    """

    def __init__(self, api_key: str, model: str = "gpt-4o-mini"):
        self.client = AsyncOpenAI(api_key=api_key)
        self.model = model

    async def _generate_one(self, question_type: QuestionType, level: CEFRLevel) -> Question:
        response = await self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": GENERATION_SYSTEM_PROMPT},
                {"role": "user", "content": build_generation_prompt(question_type, level)},
            ],
            temperature=0.9,
            response_format={"type": "json_object"},
        )
        result = json.loads(response.choices[0].message.content)
        prompt = (result.get("prompt") or "").strip()
        if not prompt:
            raise ValueError("generated exercise has no prompt text")
        metadata = dict(result.get("metadata") or {})
        metadata.update(generated_at=datetime.now().isoformat(), model=self.model)
        return Question(
            type=question_type,
            cefr_level=level,
            prompt=prompt,
            metadata=metadata,
            **timing_for(question_type),
        )

    async def generate(
        self,
        skill_area: SkillArea,
        question_type: QuestionType,
        level: CEFRLevel,
        count: int,
    ) -> GenerationResult:
        """Generate ``count`` questions, collecting per-item failures.

        Raises:
            ContentGenerationError: Every request failed to reach the API.
        """
        if count <= 0:
            return GenerationResult()

        outcomes = await asyncio.gather(
            *(self._generate_one(question_type, level) for _ in range(count)),
            return_exceptions=True,
        )

        result = GenerationResult(requested=count)
        unreachable = 0
        for i, outcome in enumerate(outcomes, start=1):
            if isinstance(outcome, Question):
                result.generated.append(outcome)
                continue
            if isinstance(outcome, openai.APIConnectionError):
                unreachable += 1
            result.errors.append(f"Failed to generate prompt {i}: {outcome}")

        if unreachable == count:
            logger.error(
                "content_generator_unreachable",
                skill_area=skill_area.value,
                question_type=question_type.value,
            )
            raise ContentGenerationError("content generator unreachable")

        logger.info(
            "content_generated",
            skill_area=skill_area.value,
            question_type=question_type.value,
            level=level.value,
            generated=result.generated_count,
            errors=len(result.errors),
        )
        return result
