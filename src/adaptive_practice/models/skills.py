"""Skill areas, question types and the CEFR scale."""

from enum import StrEnum

from adaptive_practice.errors import InvalidSkillPairError


class CEFRLevel(StrEnum):
    """Six-point CEFR proficiency scale, A1 lowest."""

    A1 = "A1"
    A2 = "A2"
    B1 = "B1"
    B2 = "B2"
    C1 = "C1"
    C2 = "C2"

    @property
    def numeric(self) -> int:
        """Ordinal 1..6 mirroring the CEFR band."""
        return _CEFR_ORDER.index(self) + 1

    @classmethod
    def from_numeric(cls, value: int) -> "CEFRLevel":
        if not 1 <= value <= len(_CEFR_ORDER):
            raise ValueError(f"numeric level out of range: {value}")
        return _CEFR_ORDER[value - 1]

    @classmethod
    def lowest(cls) -> "CEFRLevel":
        return _CEFR_ORDER[0]

    @classmethod
    def highest(cls) -> "CEFRLevel":
        return _CEFR_ORDER[-1]

    def next(self) -> "CEFRLevel":
        """One level up, clamped at C2."""
        return _CEFR_ORDER[min(self.numeric, len(_CEFR_ORDER) - 1)]

    def previous(self) -> "CEFRLevel":
        """One level down, clamped at A1."""
        return _CEFR_ORDER[max(self.numeric - 2, 0)]

    def adjacent(self) -> list["CEFRLevel"]:
        """Neighbouring levels, the one below first."""
        index = self.numeric - 1
        return [
            _CEFR_ORDER[i] for i in (index - 1, index + 1) if 0 <= i < len(_CEFR_ORDER)
        ]


_CEFR_ORDER: list[CEFRLevel] = list(CEFRLevel)


class SkillArea(StrEnum):
    """Top-level practice domains."""

    SPEAKING = "speaking"
    WRITING = "writing"
    LISTENING = "listening"
    READING = "reading"


class QuestionType(StrEnum):
    """Exercise formats, each nested under exactly one skill area."""

    LISTEN_THEN_SPEAK = "listen_then_speak"
    READ_THEN_SPEAK = "read_then_speak"
    SPEAK_ABOUT_PHOTO = "speak_about_photo"
    WRITING_SAMPLE = "writing_sample"
    INTERACTIVE_WRITING = "interactive_writing"
    WRITE_ABOUT_PHOTO = "write_about_photo"
    LISTEN_AND_TYPE = "listen_and_type"
    LISTEN_AND_RESPOND = "listen_and_respond"
    LISTEN_AND_COMPLETE = "listen_and_complete"
    LISTEN_AND_SUMMARIZE = "listen_and_summarize"
    READ_AND_SELECT = "read_and_select"
    FILL_IN_THE_BLANKS = "fill_in_the_blanks"
    READ_AND_COMPLETE = "read_and_complete"
    INTERACTIVE_READING = "interactive_reading"

    @property
    def skill_area(self) -> SkillArea:
        return _SKILL_BY_TYPE[self]


SKILL_QUESTION_TYPES: dict[SkillArea, tuple[QuestionType, ...]] = {
    SkillArea.SPEAKING: (
        QuestionType.LISTEN_THEN_SPEAK,
        QuestionType.READ_THEN_SPEAK,
        QuestionType.SPEAK_ABOUT_PHOTO,
    ),
    SkillArea.WRITING: (
        QuestionType.WRITING_SAMPLE,
        QuestionType.INTERACTIVE_WRITING,
        QuestionType.WRITE_ABOUT_PHOTO,
    ),
    SkillArea.LISTENING: (
        QuestionType.LISTEN_AND_TYPE,
        QuestionType.LISTEN_AND_RESPOND,
        QuestionType.LISTEN_AND_COMPLETE,
        QuestionType.LISTEN_AND_SUMMARIZE,
    ),
    SkillArea.READING: (
        QuestionType.READ_AND_SELECT,
        QuestionType.FILL_IN_THE_BLANKS,
        QuestionType.READ_AND_COMPLETE,
        QuestionType.INTERACTIVE_READING,
    ),
}

_SKILL_BY_TYPE: dict[QuestionType, SkillArea] = {
    qtype: skill
    for skill, qtypes in SKILL_QUESTION_TYPES.items()
    for qtype in qtypes
}


def validate_pair(skill_area: str, question_type: str) -> tuple[SkillArea, QuestionType]:
    """Parse and validate a (skill area, question type) pair from raw input.

    Raises:
        InvalidSkillPairError: Unknown value, or the type does not belong to the skill.
    """
    try:
        skill = SkillArea(skill_area)
        qtype = QuestionType(question_type)
    except ValueError as e:
        raise InvalidSkillPairError(str(e)) from e
    if qtype.skill_area != skill:
        raise InvalidSkillPairError(
            f"question type {qtype.value!r} does not belong to skill {skill.value!r}"
        )
    return skill, qtype


def validate_level(level: str) -> CEFRLevel:
    try:
        return CEFRLevel(level.upper())
    except ValueError as e:
        raise InvalidSkillPairError(f"unknown CEFR level {level!r}") from e
