# mdcat_generator/core/utils.py
import logging
import time
from datetime import datetime, timezone
from typing import Dict, Any, List, Optional

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("question", "options", "answer", "subject")
VALID_ANSWERS = ("A", "B", "C", "D")
MIN_QUESTION_LENGTH = 10
OPTION_COUNT = 4

TOPIC_ADHERENCE_THRESHOLD = 0.8
SUBJECT_ADHERENCE_THRESHOLD = 0.9


class ValidationUtils:
    """Structural checks for model-produced question candidates"""

    @staticmethod
    def question_error(candidate: Any) -> Optional[str]:
        """Return the first reason ``candidate`` is invalid, or None if it is valid"""
        if not isinstance(candidate, dict):
            return "Not an object"

        for field in REQUIRED_FIELDS:
            if field not in candidate:
                return f"Missing {field}"

        question = candidate["question"]
        if not isinstance(question, str) or len(question) < MIN_QUESTION_LENGTH:
            return "Invalid question text"

        options = candidate["options"]
        if not isinstance(options, list) or len(options) != OPTION_COUNT:
            return "Invalid options array"

        for i, option in enumerate(options, 1):
            if not isinstance(option, str) or len(option) == 0:
                return f"Invalid option {i}"

        if candidate["answer"] not in VALID_ANSWERS:
            return f'Invalid answer "{candidate["answer"]}"'

        if not isinstance(candidate["subject"], str):
            return "Invalid subject"

        return None

    @staticmethod
    def is_valid_question(candidate: Any) -> bool:
        return ValidationUtils.question_error(candidate) is None


def validate_and_filter_questions(candidates: Any, requested_count: int) -> List[Dict[str, Any]]:
    """Drop structurally invalid candidates and number the survivors from 1"""
    if not isinstance(candidates, list):
        logger.error(f"❌ Questions is not a list: {type(candidates).__name__}")
        return []

    if not candidates:
        logger.error("❌ No questions provided")
        return []

    logger.info(f"🔍 Validating {len(candidates)} questions (requested: {requested_count})")

    valid = []
    for index, candidate in enumerate(candidates, 1):
        error = ValidationUtils.question_error(candidate)
        if error:
            logger.warning(f"❌ Question {index}: {error}")
            continue
        valid.append(candidate)

    logger.info(f"✅ Validated {len(valid)}/{len(candidates)} questions")
    return assign_ids(valid)


def assign_ids(questions: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [{**question, "id": i} for i, question in enumerate(questions, 1)]


def summarize_subjects(questions: List[Dict[str, Any]]) -> Dict[str, int]:
    """Count questions per subject, in first-seen order"""
    distribution: Dict[str, int] = {}
    for question in questions:
        subject = question.get("subject")
        distribution[subject] = distribution.get(subject, 0) + 1
    return distribution


def topic_adherence(questions: List[Dict[str, Any]], topic: str) -> float:
    if not questions:
        return 1.0
    lc_topic = topic.lower()
    matching = [
        q for q in questions
        if isinstance(q.get("topic"), str) and lc_topic in q["topic"].lower()
    ]
    return len(matching) / len(questions)


def subject_adherence(questions: List[Dict[str, Any]], subject: str) -> float:
    if not questions:
        return 1.0
    lc_subject = subject.lower()
    matching = [
        q for q in questions
        if isinstance(q.get("subject"), str) and q["subject"].lower() == lc_subject
    ]
    return len(matching) / len(questions)


class DateTimeUtils:
    """Utility functions for date/time operations"""

    @staticmethod
    def get_current_timestamp() -> float:
        return time.time()

    @staticmethod
    def get_iso_timestamp() -> str:
        """Current UTC time as ISO-8601, millisecond precision"""
        return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")

    @staticmethod
    def elapsed_ms(start: float) -> int:
        return int((time.time() - start) * 1000)
