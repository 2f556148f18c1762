"""Generation prompts: CEFR characteristics and per-question-type output schemas."""

import math

from adaptive_practice.models.skills import CEFRLevel, QuestionType, SkillArea

CEFR_CHARACTERISTICS: dict[CEFRLevel, dict[str, str]] = {
    CEFRLevel.A1: {
        "vocabulary": "basic, everyday words (500-1000 words)",
        "grammar": "simple present, basic past, simple sentences",
        "topics": "family, shopping, daily routine, food, weather, greetings",
        "sentence_length": "5-10 words",
        "complexity": "very simple, concrete topics only",
    },
    CEFRLevel.A2: {
        "vocabulary": "common vocabulary (1000-2000 words)",
        "grammar": "past tense, future with will/going to, basic connectors",
        "topics": "travel, hobbies, work basics, health, education, leisure",
        "sentence_length": "8-15 words",
        "complexity": "simple, familiar everyday situations",
    },
    CEFRLevel.B1: {
        "vocabulary": "intermediate vocabulary (2000-4000 words)",
        "grammar": "conditionals, passive voice, relative clauses, perfect tenses",
        "topics": "current events, opinions, experiences, future plans, media, culture",
        "sentence_length": "10-20 words",
        "complexity": "can handle unexpected situations, express opinions",
    },
    CEFRLevel.B2: {
        "vocabulary": "upper intermediate (4000-8000 words)",
        "grammar": "complex sentences, subjunctive, nuanced connectors",
        "topics": "abstract ideas, professional topics, social issues, arts, science",
        "sentence_length": "15-25 words",
        "complexity": "can engage with complex texts and abstract topics",
    },
    CEFRLevel.C1: {
        "vocabulary": "advanced vocabulary (8000-15000 words)",
        "grammar": "idiomatic expressions, sophisticated linking",
        "topics": "academic subjects, complex arguments, specialized fields",
        "sentence_length": "20-30 words",
        "complexity": "sophisticated, can understand implicit meaning",
    },
    CEFRLevel.C2: {
        "vocabulary": "near-native vocabulary (15000+ words)",
        "grammar": "all structures, subtle distinctions, stylistic variation",
        "topics": "any topic at depth, abstract reasoning, specialized discourse",
        "sentence_length": "varied, complex structures",
        "complexity": "can handle any language situation with precision",
    },
}

# What the "prompt" field should contain for each exercise format
TYPE_INSTRUCTIONS: dict[QuestionType, str] = {
    QuestionType.LISTEN_THEN_SPEAK: (
        "A short spoken passage (put it in metadata.audio_script) and a question "
        "the learner answers aloud after listening."
    ),
    QuestionType.READ_THEN_SPEAK: (
        "A short reading text (metadata.reading_text) and a discussion prompt."
    ),
    QuestionType.SPEAK_ABOUT_PHOTO: (
        "An instruction to describe a photo; describe the photo in metadata.image_description."
    ),
    QuestionType.WRITING_SAMPLE: (
        "A writing topic with instructions; word range in metadata.word_count."
    ),
    QuestionType.INTERACTIVE_WRITING: (
        "A first-step writing prompt with context; follow-up guidelines in "
        "metadata.follow_up_guidelines."
    ),
    QuestionType.WRITE_ABOUT_PHOTO: (
        "An instruction to write about a photo; describe the photo in metadata.image_description."
    ),
    QuestionType.LISTEN_AND_TYPE: (
        "An instruction to type what is heard; exact sentence in metadata.audio_script."
    ),
    QuestionType.LISTEN_AND_RESPOND: (
        "A conversation context; turns with four response options each in "
        "metadata.conversation_turns."
    ),
    QuestionType.LISTEN_AND_COMPLETE: (
        "A scenario context; full script in metadata.audio_script and "
        "fill-in questions in metadata.questions."
    ),
    QuestionType.LISTEN_AND_SUMMARIZE: (
        "An instruction to summarize a talk; script in metadata.audio_script and "
        "expected points in metadata.expected_points."
    ),
    QuestionType.READ_AND_SELECT: (
        "An instruction to pick the real English words; word list with is_real flags "
        "in metadata.words."
    ),
    QuestionType.FILL_IN_THE_BLANKS: (
        "An instruction to complete sentences; sentences with _____ and answers in "
        "metadata.sentences."
    ),
    QuestionType.READ_AND_COMPLETE: (
        "A titled paragraph with _____ gaps; missing words in order in metadata.missing_words."
    ),
    QuestionType.INTERACTIVE_READING: (
        "A titled passage; comprehension items (main idea, gap, highlight) in metadata.items."
    ),
}


# Answer time budget per skill: (prep seconds, max seconds)
RESPONSE_SECONDS: dict[SkillArea, tuple[int, int]] = {
    SkillArea.SPEAKING: (20, 90),
    SkillArea.WRITING: (30, 300),
    SkillArea.LISTENING: (10, 120),
    SkillArea.READING: (10, 180),
}


def timing_for(question_type: QuestionType) -> dict[str, int]:
    """prep/min/max seconds for a generated question; min is a third of max, at least 30."""
    prep, maximum = RESPONSE_SECONDS[question_type.skill_area]
    return {
        "prep_seconds": prep,
        "min_seconds": max(30, math.ceil(maximum / 3)),
        "max_seconds": maximum,
    }


GENERATION_SYSTEM_PROMPT = """\
You write English practice exercises for language learners. \
Every exercise must match the learner's CEFR level exactly and be original.

Respond ONLY with a JSON object:
{
    "prompt": "<text shown to the learner>",
    "metadata": { <exercise-specific fields> }
}
"""


def build_generation_prompt(question_type: QuestionType, level: CEFRLevel) -> str:
    """User message asking for one exercise of the given type and level."""
    traits = CEFR_CHARACTERISTICS[level]
    return (
        f"Exercise type: {question_type.value} ({question_type.skill_area.value}).\n"
        f"Content: {TYPE_INSTRUCTIONS[question_type]}\n\n"
        f"CEFR level {level.value}:\n"
        f"- Vocabulary: {traits['vocabulary']}\n"
        f"- Grammar: {traits['grammar']}\n"
        f"- Topics: {traits['topics']}\n"
        f"- Sentence length: {traits['sentence_length']}\n"
        f"- Complexity: {traits['complexity']}"
    )
