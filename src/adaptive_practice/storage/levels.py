"""Level store: one document per user holding every skill-level record."""

from collections.abc import Callable
from datetime import datetime
from pathlib import Path

import structlog

from adaptive_practice.models.level import UserSkillLevel
from adaptive_practice.models.skills import QuestionType, SkillArea
from adaptive_practice.storage.documents import DocumentStore, validate_user_id

logger = structlog.get_logger()


def _record_key(skill_area: SkillArea, question_type: QuestionType) -> str:
    return f"{skill_area.value}|{question_type.value}"


class LevelStore:
    def __init__(self, root: Path, lock_timeout: float = 5.0):
        self._docs = DocumentStore(root / "levels", lock_timeout=lock_timeout)

    def get_or_create(
        self, user_id: str, skill_area: SkillArea, question_type: QuestionType
    ) -> UserSkillLevel:
        """Return the record, creating it at the default level on first lookup."""
        validate_user_id(user_id)
        key = _record_key(skill_area, question_type)

        data = self._docs.read(user_id)
        if key in data:
            return UserSkillLevel(**data[key])

        with self._docs.transaction(user_id) as data:
            if key not in data:
                record = UserSkillLevel(
                    user_id=user_id, skill_area=skill_area, question_type=question_type
                )
                data[key] = record.model_dump(mode="json")
                logger.info(
                    "skill_level_created",
                    user_id=user_id,
                    skill_area=skill_area.value,
                    question_type=question_type.value,
                )
            return UserSkillLevel(**data[key])

    def update(
        self,
        user_id: str,
        skill_area: SkillArea,
        question_type: QuestionType,
        transition: Callable[[UserSkillLevel], UserSkillLevel],
    ) -> tuple[UserSkillLevel, UserSkillLevel]:
        """Apply ``transition`` to one record under the user's exclusive lock.

        Missing records are created at the default level first.

        Returns:
            (previous, updated) records.
        """
        validate_user_id(user_id)
        key = _record_key(skill_area, question_type)
        with self._docs.transaction(user_id) as data:
            raw = data.get(key)
            previous = (
                UserSkillLevel(**raw)
                if raw
                else UserSkillLevel(
                    user_id=user_id, skill_area=skill_area, question_type=question_type
                )
            )
            updated = transition(previous)
            updated.updated_at = datetime.now()
            data[key] = updated.model_dump(mode="json")
        return previous, updated

    def list_for_user(self, user_id: str) -> list[UserSkillLevel]:
        validate_user_id(user_id)
        data = self._docs.read(user_id)
        return [UserSkillLevel(**raw) for raw in data.values()]

    def erase_user(self, user_id: str) -> bool:
        validate_user_id(user_id)
        return self._docs.delete(user_id)
