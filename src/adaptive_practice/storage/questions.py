"""Shared question catalog."""

import random
from collections import Counter
from collections.abc import Iterable
from pathlib import Path

from adaptive_practice.models.question import Question
from adaptive_practice.models.skills import CEFRLevel, QuestionType
from adaptive_practice.storage.documents import DocumentStore

CATALOG_DOCUMENT = "questions"


def _empty_catalog() -> dict:
    return {"questions": {}}


def _candidates(
    questions: Iterable[Question],
    question_type: QuestionType,
    cefr_level: CEFRLevel,
    exclude: Iterable[str],
    limit: int,
) -> list[Question]:
    excluded = set(exclude)
    matches = [
        q for q in questions
        if q.is_published
        and q.type == question_type
        and q.cefr_level == cefr_level
        and q.id not in excluded
    ]
    matches.sort(key=lambda q: (q.times_served, q.created_at))
    return matches[:limit]


class QuestionCatalog:
    """Published questions per (type, level).

    A question is *available* until it is first served; serving is recorded
    by ``claim``, so the available count drops by one per distinct question
    drawn and only grows when new questions are added.
    """

    def __init__(self, root: Path, lock_timeout: float = 5.0):
        self._docs = DocumentStore(root / "catalog", lock_timeout=lock_timeout)

    def _all(self) -> list[Question]:
        data = self._docs.read(CATALOG_DOCUMENT, _empty_catalog)
        return [Question(**raw) for raw in data["questions"].values()]

    def add_many(self, questions: Iterable[Question]) -> list[Question]:
        stored = list(questions)
        with self._docs.transaction(CATALOG_DOCUMENT, _empty_catalog) as data:
            for question in stored:
                data["questions"][question.id] = question.model_dump(mode="json")
        return stored

    def get(self, question_id: str) -> Question | None:
        data = self._docs.read(CATALOG_DOCUMENT, _empty_catalog)
        raw = data["questions"].get(question_id)
        return Question(**raw) if raw else None

    def find(
        self,
        question_type: QuestionType,
        cefr_level: CEFRLevel,
        exclude: Iterable[str] = (),
        limit: int = 10,
    ) -> list[Question]:
        """Published questions for (type, level), least served first."""
        return _candidates(self._all(), question_type, cefr_level, exclude, limit)

    def claim(
        self,
        question_type: QuestionType,
        cefr_level: CEFRLevel,
        exclude: Iterable[str] = (),
        limit: int = 10,
        rng: random.Random | None = None,
    ) -> Question | None:
        """Pick one of the ``limit`` least-served candidates and record it as served.

        Selection and the serve count update happen in one catalog transaction.
        """
        with self._docs.transaction(CATALOG_DOCUMENT, _empty_catalog) as data:
            questions = [Question(**raw) for raw in data["questions"].values()]
            candidates = _candidates(questions, question_type, cefr_level, exclude, limit)
            if not candidates:
                return None
            chosen = (rng or random).choice(candidates)
            raw = data["questions"][chosen.id]
            raw["times_served"] = raw.get("times_served", 0) + 1
        return chosen.model_copy(update={"times_served": chosen.times_served + 1})

    def count(self, question_type: QuestionType, cefr_level: CEFRLevel) -> int:
        """Published questions for (type, level) that have never been served."""
        return sum(
            1 for q in self._all()
            if q.is_published
            and q.type == question_type
            and q.cefr_level == cefr_level
            and q.times_served == 0
        )

    def usage_counts(self) -> dict[str, Counter]:
        """Per (type, level) counters over published questions.

        Keys: ``total`` questions, ``available`` (never served), ``served``
        (draws) and ``answered`` (recorded attempts).
        """
        counts = {name: Counter() for name in ("total", "available", "served", "answered")}
        for q in self._all():
            if not q.is_published:
                continue
            key = (q.type, q.cefr_level)
            counts["total"][key] += 1
            counts["available"][key] += int(q.times_served == 0)
            counts["served"][key] += q.times_served
            counts["answered"][key] += q.times_used
        return counts

    def increment_usage(self, question_id: str) -> bool:
        with self._docs.transaction(CATALOG_DOCUMENT, _empty_catalog) as data:
            raw = data["questions"].get(question_id)
            if raw is None:
                return False
            raw["times_used"] = raw.get("times_used", 0) + 1
            return True
