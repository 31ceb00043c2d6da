# mdcat_generator/core/prompts.py
from typing import Tuple

from .errors import InvalidSubjectError, TopicOrSubjectRequiredError
from .syllabus import (
    SYLLABUS, SUBJECT_PRIORITY, calculate_distribution,
    find_topic_subject, get_subject
)
from ..models.generation import GenerationParams, TestFormat, Difficulty


class PromptTemplates:
    """Centralized prompt template management"""

    DIFFICULTY_TEXT = {
        Difficulty.MIXED: "Use difficulty distribution: 15% easy, 70% moderate, 15% difficult.",
        Difficulty.EASY: "Generate EASY level questions only - basic concepts and definitions.",
        Difficulty.MODERATE: "Generate MODERATE level questions only - application of concepts.",
        Difficulty.DIFFICULT: "Generate DIFFICULT level questions only - complex analysis and synthesis.",
    }

    @staticmethod
    def build_prompt(params: GenerationParams) -> str:
        """Create the full generation prompt for one model call"""
        count = params.question_count

        scope_text, topics_block = PromptTemplates._scope_block(params)

        return f"""
You are an expert MDCAT Past Paper Generator. Create exactly {count} authentic multiple-choice questions.

{scope_text}
{topics_block}

GENERATION REQUIREMENTS:
1. Generate EXACTLY {count} questions in valid JSON array format
2. Each question must have 4 options and 1 correct answer
3. Include detailed explanations for every answer
4. Questions must be from official PM&DC 2025 syllabus topics
5. Ensure medical/scientific accuracy and currency
6. For full tests: Follow strict sequential subject ordering
7. For topic tests: ALL questions must be about the specified topic ONLY
8. For subject tests: ALL questions must be from the specified subject ONLY
9. Maintain authentic MDCAT difficulty and style

{PromptTemplates.difficulty_text(params)}
{PromptTemplates.year_text(params)}
{PromptTemplates.source_text(params)}

{PromptTemplates.schema_text(params)}

Generate the questions now:"""

    @staticmethod
    def _scope_block(params: GenerationParams) -> Tuple[str, str]:
        if params.test_format == TestFormat.FULL:
            return PromptTemplates._full_test_block(params.question_count)

        if params.test_format == TestFormat.TOPIC:
            if not params.topic or not params.topic.strip():
                raise TopicOrSubjectRequiredError("Topic is required for topic-test format")
            return PromptTemplates._topic_block(params)

        if params.test_format == TestFormat.SUBJECT and params.selected_subject:
            return PromptTemplates._subject_block(params)

        return (
            "Generate mixed MDCAT questions covering various subjects.",
            "Cover topics from Biology, Chemistry, Physics, English, and Logical Reasoning."
        )

    @staticmethod
    def _full_test_block(count: int) -> Tuple[str, str]:
        distribution = calculate_distribution(count)
        names = {key: SYLLABUS[key].name for key in SUBJECT_PRIORITY}

        counts = "\n".join(
            f"- {names[key]}: EXACTLY {distribution[key]} questions"
            for key in SUBJECT_PRIORITY
        )
        ordinals = ["first", "second", "third", "fourth", "last"]
        ordering = "\n".join(
            f"{i}. ALL {names[key]} questions {ordinals[i - 1]} ({distribution[key]} questions)"
            for i, key in enumerate(SUBJECT_PRIORITY, 1)
        )

        topics_block = f"""
Subject Distribution (MUST generate EXACTLY these numbers - total must equal {count}):
{counts}

CRITICAL ORDERING: Generate questions in this SEQUENTIAL ORDER:
{ordering}"""
        return "Generate a COMPLETE MDCAT test with exact subject distribution:", topics_block

    @staticmethod
    def _topic_block(params: GenerationParams) -> Tuple[str, str]:
        topic = params.topic.strip()
        count = params.question_count
        subject_for_topic = PromptTemplates.resolve_topic_subject(params)

        scope_text = f'Generate questions EXCLUSIVELY for the SPECIFIC TOPIC: "{topic}"'
        topics_block = f"""
TOPIC FOCUS INSTRUCTIONS:
- Generate ALL {count} questions about: "{topic}"
- Subject context: {subject_for_topic}
- NO other topics allowed
- ALL questions must be directly related to: "{topic}"
- Use only concepts, terms, and examples from: "{topic}"
- Question variety: definitions, applications, comparisons, analysis within "{topic}\""""
        return scope_text, topics_block

    @staticmethod
    def _subject_block(params: GenerationParams) -> Tuple[str, str]:
        entry = get_subject(params.selected_subject)
        if entry is None:
            raise InvalidSubjectError(f"Invalid subject: {params.selected_subject}")

        count = params.question_count
        scope_text = f"Generate questions for {entry.name} subject ONLY. ALL {count} questions must be {entry.name}."
        topics_block = f"""
SUBJECT FOCUS INSTRUCTIONS:
- Generate ALL {count} questions from {entry.name} ONLY
- NO questions from other subjects
- Distribute questions across these {entry.name} topics: {', '.join(entry.topics)}
- Ensure variety within {entry.name} topics
- ALL questions must have subject: "{entry.name}\""""
        return scope_text, topics_block

    @staticmethod
    def resolve_topic_subject(params: GenerationParams) -> str:
        """Subject name for a topic: syllabus match, then requested subject, then Biology"""
        entry = find_topic_subject(params.topic)
        if entry is not None:
            return entry.name

        selected = get_subject(params.selected_subject)
        if selected is not None:
            return selected.name
        return params.selected_subject or SYLLABUS["biology"].name

    @staticmethod
    def difficulty_text(params: GenerationParams) -> str:
        return PromptTemplates.DIFFICULTY_TEXT.get(params.difficulty, "")

    @staticmethod
    def year_text(params: GenerationParams) -> str:
        window = params.year_window
        if window is None:
            return "Include variety from different years (2018-2025) for authenticity."
        return f"Questions should simulate papers from {window.start}-{window.end} period."

    @staticmethod
    def source_text(params: GenerationParams) -> str:
        if params.source and params.source != "all":
            return f"Style questions similar to {params.source} past papers."
        return "Use authentic MDCAT past paper style questions."

    @staticmethod
    def schema_text(params: GenerationParams) -> str:
        """Output schema, restating count and scope constraints"""
        count = params.question_count
        source = params.source if params.source and params.source != "all" else "MDCAT"

        exclusivity = ""
        if params.test_format == TestFormat.TOPIC and params.topic:
            exclusivity = f'\n- ALL questions must be about topic: "{params.topic.strip()}"'
        elif params.test_format == TestFormat.SUBJECT and params.selected_subject:
            entry = get_subject(params.selected_subject)
            subject_name = entry.name if entry else params.selected_subject
            exclusivity = f'\n- ALL questions must be from subject: "{subject_name}"'

        return f"""
RESPONSE FORMAT: Return ONLY a valid JSON array. No markdown, no explanations, no code blocks.

Required JSON Structure:
[
  {{
    "question": "Complete question text with all necessary details",
    "options": ["First option text", "Second option text", "Third option text", "Fourth option text"],
    "answer": "A",
    "explanation": "Detailed explanation of correct answer and why others are incorrect",
    "subject": "Biology|Chemistry|Physics|English|Logical Reasoning",
    "topic": "Specific topic from official PM&DC syllabus",
    "difficulty": "easy|moderate|difficult",
    "year": 2024,
    "source": "{source}"
  }}
]

STRICT VALIDATION REQUIREMENTS:
- Generate EXACTLY {count} questions (no more, no less)
- Each question must have exactly 4 options (no A), B), C), D) prefixes in options array)
- Answer must be exactly one of: "A", "B", "C", "D"
- All fields are mandatory except "topic" which can be general
- Questions must be medically/scientifically accurate and current
- English questions: Grammar/syntax only (no literature/comprehension)
- Use proper JSON escaping for quotes and special characters{exclusivity}"""


def build_prompt(params: GenerationParams) -> str:
    return PromptTemplates.build_prompt(params)
