"""Shared fixtures: every store lives under pytest's tmp_path."""

import random

import pytest

from adaptive_practice.config import Settings
from adaptive_practice.models.inventory import GenerationResult
from adaptive_practice.models.question import Question
from adaptive_practice.models.skills import CEFRLevel, QuestionType
from adaptive_practice.service import build_service


def make_question(
    question_type: QuestionType,
    level: CEFRLevel = CEFRLevel.A1,
    question_id: str | None = None,
) -> Question:
    kwargs = {"id": question_id} if question_id else {}
    return Question(
        type=question_type,
        cefr_level=level,
        prompt=f"{question_type.value} at {level.value}",
        **kwargs,
    )


class FakeGenerator:
    """Content generator that fails every ``fail_every``-th item."""

    def __init__(self, fail_every: int = 0):
        self.fail_every = fail_every
        self.calls: list[tuple] = []

    async def generate(self, skill_area, question_type, level, count):
        self.calls.append((skill_area, question_type, level, count))
        result = GenerationResult(requested=count)
        for i in range(1, count + 1):
            if self.fail_every and i % self.fail_every == 0:
                result.errors.append(f"Failed to generate prompt {i}: boom")
            else:
                result.generated.append(make_question(question_type, level))
        return result


@pytest.fixture
def settings(tmp_path):
    return Settings(
        data_dir=tmp_path,
        openai_api_key=None,
        lock_timeout_seconds=2.0,
        promotion_streak=3,
        demotion_attempts=4,
        free_tier_lifetime_limit=5,
    )


@pytest.fixture
def service(settings):
    svc = build_service(settings)
    svc.composer._rng = random.Random(1234)
    return svc
