"""Attempt history (append-only from the composer's side)."""

from collections.abc import Callable
from datetime import datetime
from pathlib import Path
from typing import TypeVar

import structlog

from adaptive_practice.errors import AttemptNotFoundError
from adaptive_practice.models.question import Attempt
from adaptive_practice.models.skills import SkillArea
from adaptive_practice.storage.documents import DocumentStore, validate_user_id

logger = structlog.get_logger()

T = TypeVar("T")


def _empty_history() -> dict:
    return {"attempts": []}


class AttemptStore:
    def __init__(self, root: Path, lock_timeout: float = 5.0):
        self._docs = DocumentStore(root / "attempts", lock_timeout=lock_timeout)

    def _load(self, user_id: str) -> list[Attempt]:
        validate_user_id(user_id)
        data = self._docs.read(user_id, _empty_history)
        return [Attempt(**raw) for raw in data["attempts"]]

    def append(self, attempt: Attempt) -> tuple[Attempt, bool]:
        """Store an attempt unless one with the same id already exists.

        Returns:
            (stored attempt, True if this call created it).
        """
        validate_user_id(attempt.user_id)
        attempt = attempt.model_copy(update={"level_applied": False})
        with self._docs.transaction(attempt.user_id, _empty_history) as data:
            for raw in data["attempts"]:
                if raw["id"] == attempt.id:
                    return Attempt(**raw), False
            data["attempts"].append(attempt.model_dump(mode="json"))
        logger.info(
            "attempt_recorded",
            user_id=attempt.user_id,
            attempt_id=attempt.id,
            question_id=attempt.question_id,
        )
        return attempt, True

    def grade(
        self,
        user_id: str,
        attempt_id: str,
        score: float,
        transcript: str | None = None,
        feedback: str | None = None,
    ) -> tuple[Attempt, bool]:
        """Attach a grade to an attempt.

        Returns:
            (attempt, True if it was ungraded before this call).

        Raises:
            AttemptNotFoundError: No attempt with that id for the user.
        """
        validate_user_id(user_id)
        with self._docs.transaction(user_id, _empty_history) as data:
            for raw in data["attempts"]:
                if raw["id"] != attempt_id:
                    continue
                newly_graded = raw.get("score") is None
                raw["score"] = score
                if transcript is not None:
                    raw["transcript"] = transcript
                if feedback is not None:
                    raw["feedback"] = feedback
                attempt = Attempt(**raw)
                break
            else:
                raise AttemptNotFoundError(f"attempt {attempt_id} not found")
        return attempt, newly_graded

    def count(self, user_id: str) -> int:
        return len(self._load(user_id))

    def apply_once(
        self, user_id: str, attempt_id: str, apply: Callable[[Attempt], T]
    ) -> T | None:
        """Run ``apply`` for a graded attempt that has not had it applied yet.

        ``apply`` runs under the user's attempt lock and the attempt is marked
        ``level_applied`` in the same transaction. If ``apply`` raises, the
        marker is not written and a later call retries.

        Returns:
            What ``apply`` returned, or None if the attempt is ungraded or
            was already applied.

        Raises:
            AttemptNotFoundError: No attempt with that id for the user.
        """
        validate_user_id(user_id)
        with self._docs.transaction(user_id, _empty_history) as data:
            raw = next((r for r in data["attempts"] if r["id"] == attempt_id), None)
            if raw is None:
                raise AttemptNotFoundError(f"attempt {attempt_id} not found")
            attempt = Attempt(**raw)
            if not attempt.is_graded or attempt.level_applied:
                return None
            result = apply(attempt)
            raw["level_applied"] = True
        logger.info("attempt_level_applied", user_id=user_id, attempt_id=attempt_id)
        return result

    def recent_question_ids(
        self,
        user_id: str,
        skill_area: SkillArea,
        since: datetime,
        limit: int = 20,
    ) -> list[str]:
        """Question ids of the most recent attempts for a skill since ``since``."""
        recent = [
            a for a in self._load(user_id)
            if a.skill_type == skill_area and a.attempted_at >= since
        ]
        recent.sort(key=lambda a: a.attempted_at, reverse=True)
        return [a.question_id for a in recent[:limit]]

    def scored_history(self, user_id: str, window: int = 20) -> dict[SkillArea, list[float]]:
        """Most recent ``window`` scores per skill area, newest first."""
        graded = sorted(
            (a for a in self._load(user_id) if a.is_graded),
            key=lambda a: a.attempted_at,
            reverse=True,
        )
        history: dict[SkillArea, list[float]] = {skill: [] for skill in SkillArea}
        for attempt in graded:
            scores = history[attempt.skill_type]
            if len(scores) < window:
                scores.append(attempt.score)
        return history

    def erase_user(self, user_id: str) -> bool:
        validate_user_id(user_id)
        return self._docs.delete(user_id)
