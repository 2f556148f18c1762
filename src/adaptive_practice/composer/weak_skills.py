"""Skill ordering: weak-skill ranking once a learner has history, shuffle before."""

import random
from typing import Protocol

import structlog

from adaptive_practice.errors import StoreUnavailableError
from adaptive_practice.models.skills import SkillArea
from adaptive_practice.storage.attempts import AttemptStore

logger = structlog.get_logger()


def rank_weak_skills(history: dict[SkillArea, list[float]], limit: int) -> list[SkillArea]:
    """Order skills most-in-need first.

    Average score ascending is the primary key; among equal averages the
    more-practiced skill comes first. Skills without scores count as
    average 0 with 0 attempts.
    """

    def sort_key(skill: SkillArea) -> tuple[float, int]:
        scores = history.get(skill) or []
        avg = sum(scores) / len(scores) if scores else 0.0
        return avg, -len(scores)

    return sorted(SkillArea, key=sort_key)[:limit]


class SkillOrdering(Protocol):
    name: str

    def order(self, user_id: str, limit: int) -> list[SkillArea]: ...


class UniformShuffle:
    """Cold-start ordering: every skill, uniformly shuffled."""

    name = "uniform_shuffle"

    def __init__(self, rng: random.Random | None = None):
        self._rng = rng or random.Random()

    def order(self, user_id: str, limit: int) -> list[SkillArea]:
        skills = list(SkillArea)
        self._rng.shuffle(skills)
        return skills[:limit]


class HistoryBasedRanking:
    """Ranks skills from the learner's recent scored attempts."""

    name = "history_based"

    def __init__(self, attempts: AttemptStore, window: int = 20):
        self._attempts = attempts
        self._window = window

    def order(self, user_id: str, limit: int) -> list[SkillArea]:
        try:
            history = self._attempts.scored_history(user_id, self._window)
        except StoreUnavailableError as e:
            logger.warning("weak_skill_history_unavailable", user_id=user_id, error=str(e))
            return list(SkillArea)[:limit]
        ranked = rank_weak_skills(history, limit)
        logger.debug("weak_skills_ranked", user_id=user_id, skills=[s.value for s in ranked])
        return ranked


class WeakSkillDetector:
    """Chooses between history ranking and cold-start shuffle.

    Args:
        attempts: Attempt history store.
        min_history: Total attempts needed before ranking replaces the shuffle.
        window: Scored attempts per skill considered when ranking.
        rng: Random source for the shuffle.
    """

    def __init__(
        self,
        attempts: AttemptStore,
        min_history: int = 4,
        window: int = 20,
        rng: random.Random | None = None,
    ):
        self._attempts = attempts
        self.min_history = min_history
        self.ranking = HistoryBasedRanking(attempts, window=window)
        self.shuffle = UniformShuffle(rng)

    def detect_weak_skills(self, user_id: str, limit: int = 4) -> list[SkillArea]:
        return self.ranking.order(user_id, limit)

    def choose_strategy(self, history_count: int) -> SkillOrdering:
        if history_count >= self.min_history:
            return self.ranking
        return self.shuffle

    def skill_order(self, user_id: str, limit: int = 4) -> tuple[str, list[SkillArea]]:
        """Skills to practice and the name of the strategy that ordered them."""
        try:
            history_count = self._attempts.count(user_id)
        except StoreUnavailableError as e:
            logger.warning("attempt_count_unavailable", user_id=user_id, error=str(e))
            return "store_fallback", list(SkillArea)[:limit]
        strategy = self.choose_strategy(history_count)
        return strategy.name, strategy.order(user_id, limit)
