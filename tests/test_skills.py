"""Tests for the skill / question type / CEFR enumerations."""

import pytest

from adaptive_practice.errors import InvalidSkillPairError
from adaptive_practice.models.skills import (
    SKILL_QUESTION_TYPES,
    CEFRLevel,
    QuestionType,
    SkillArea,
    validate_level,
    validate_pair,
)


class TestCEFRLevel:
    def test_numeric_mirrors_order(self):
        assert [level.numeric for level in CEFRLevel] == [1, 2, 3, 4, 5, 6]

    def test_from_numeric_roundtrip(self):
        for level in CEFRLevel:
            assert CEFRLevel.from_numeric(level.numeric) is level

    def test_from_numeric_out_of_range(self):
        with pytest.raises(ValueError):
            CEFRLevel.from_numeric(7)

    def test_next_and_previous_clamp(self):
        assert CEFRLevel.B1.next() == CEFRLevel.B2
        assert CEFRLevel.C2.next() == CEFRLevel.C2
        assert CEFRLevel.B1.previous() == CEFRLevel.A2
        assert CEFRLevel.A1.previous() == CEFRLevel.A1

    def test_adjacent_lists_lower_level_first(self):
        assert CEFRLevel.A1.adjacent() == [CEFRLevel.A2]
        assert CEFRLevel.B1.adjacent() == [CEFRLevel.A2, CEFRLevel.B2]
        assert CEFRLevel.C2.adjacent() == [CEFRLevel.C1]


class TestSkillMapping:
    def test_every_type_belongs_to_exactly_one_skill(self):
        seen = [qt for qts in SKILL_QUESTION_TYPES.values() for qt in qts]
        assert sorted(seen) == sorted(QuestionType)

    def test_skill_area_property(self):
        assert QuestionType.LISTEN_THEN_SPEAK.skill_area == SkillArea.SPEAKING
        assert QuestionType.FILL_IN_THE_BLANKS.skill_area == SkillArea.READING

    def test_validate_pair_ok(self):
        assert validate_pair("listening", "listen_and_type") == (
            SkillArea.LISTENING,
            QuestionType.LISTEN_AND_TYPE,
        )

    def test_validate_pair_mismatch(self):
        with pytest.raises(InvalidSkillPairError):
            validate_pair("writing", "listen_and_type")

    def test_validate_pair_unknown(self):
        with pytest.raises(InvalidSkillPairError):
            validate_pair("dancing", "listen_and_type")

    def test_validate_level(self):
        assert validate_level("b2") == CEFRLevel.B2
        with pytest.raises(InvalidSkillPairError):
            validate_level("D1")
