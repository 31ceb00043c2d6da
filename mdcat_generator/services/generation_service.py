# mdcat_generator/services/generation_service.py
import asyncio
import logging
import math
from typing import Dict, Any, List, Optional

from ..core.config import config
from ..core.ai_services import AIService, get_ai_service
from ..core.errors import EmptyResultError, GenerationError
from ..core.prompts import build_prompt
from ..core.syllabus import (
    SYLLABUS, SUBJECT_PRIORITY, calculate_distribution, get_subject,
    is_topic_in_official_syllabus, random_year
)
from ..core.utils import (
    validate_and_filter_questions, summarize_subjects,
    topic_adherence, subject_adherence,
    TOPIC_ADHERENCE_THRESHOLD, SUBJECT_ADHERENCE_THRESHOLD
)
from ..models.generation import GenerationParams, TestFormat

logger = logging.getLogger(__name__)


class GenerationService:
    """Turns generation parameters into a validated question set"""

    def __init__(self, ai_service: Optional[AIService] = None):
        self.ai_service = ai_service or get_ai_service()

    async def generate_test(self, params: GenerationParams) -> List[Dict[str, Any]]:
        """Generate, validate and number questions; raises EmptyResultError if none survive"""
        candidates = await self.generate_questions(params)
        questions = validate_and_filter_questions(candidates, params.question_count)

        if not questions:
            raise EmptyResultError(
                "Failed to generate valid questions. Please try again with different parameters."
            )

        self.check_scope_adherence(params, questions)
        return questions

    async def generate_questions(self, params: GenerationParams) -> List[Any]:
        """Pick a generation strategy and return the combined raw candidates"""
        count = params.question_count
        logger.info(f"🎯 Generating {count} questions for {params.test_format.value}...")
        logger.info(f"🎯 Parameters: Subject={params.selected_subject}, Topic={params.topic}")

        # Topic tests stay in one call so the set stays coherent
        if params.test_format == TestFormat.TOPIC and params.topic:
            logger.info(f"📍 Topic-specific generation for: {params.topic}")
            if not is_topic_in_official_syllabus(params.topic):
                logger.warning(f"⚠️ Topic \"{params.topic}\" is not in the official PM&DC syllabus")
            return await self._single_call(params)

        if (params.test_format == TestFormat.SUBJECT and params.selected_subject
                and count <= config.SINGLE_CALL_LIMIT):
            logger.info(f"📚 Subject-specific generation for: {params.selected_subject}")
            return await self._single_call(params)

        if params.test_format == TestFormat.FULL and count > config.SEQUENTIAL_THRESHOLD:
            return await self.generate_sequential_full_test(params)

        if count <= config.SINGLE_CALL_LIMIT:
            return await self._single_call(params)

        return await self.generate_in_batches(params)

    async def _single_call(self, params: GenerationParams) -> List[Any]:
        return await self.ai_service.generate_with_retries(
            build_prompt(params), year_window=params.year_window
        )

    async def generate_sequential_full_test(self, params: GenerationParams) -> List[Any]:
        """One subject-test call per subject, in syllabus priority order"""
        distribution = calculate_distribution(params.question_count)
        logger.info(f"🎯 Generating sequential full test with distribution: {distribution}")

        all_questions: List[Any] = []
        subjects = [key for key in SUBJECT_PRIORITY if distribution[key] > 0]

        for position, key in enumerate(subjects):
            entry = SYLLABUS[key]
            subject_count = distribution[key]
            logger.info(f"📚 Generating {subject_count} {entry.name} questions...")

            subject_params = params.with_overrides(
                test_format=TestFormat.SUBJECT,
                selected_subject=key,
                question_count=subject_count,
                topic=None
            )

            try:
                subject_questions = await self.ai_service.generate_with_retries(
                    build_prompt(subject_params),
                    max_attempts=config.GENERATION_SUBCALL_RETRIES,
                    year_window=params.year_window
                )
                cleaned = [
                    self._stamp_subject(q, entry.name, params)
                    for q in subject_questions[:subject_count]
                ]
                all_questions.extend(cleaned)
                logger.info(f"✅ Added {len(cleaned)} {entry.name} questions")
            except GenerationError as e:
                logger.error(f"❌ Failed to generate {entry.name} questions: {e}")

            if position < len(subjects) - 1:
                await asyncio.sleep(config.SUBJECT_DELAY_SECONDS)

        logger.info(f"🎉 Generated {len(all_questions)}/{params.question_count} total questions")
        return all_questions

    @staticmethod
    def _stamp_subject(candidate: Any, subject_name: str, params: GenerationParams) -> Any:
        if not isinstance(candidate, dict):
            return candidate
        return {
            **candidate,
            "subject": subject_name,
            "year": candidate.get("year") or random_year(params.year_range)
        }

    async def generate_in_batches(self, params: GenerationParams) -> List[Any]:
        """Sequential fixed-size batches, stopping once enough questions arrived"""
        count = params.question_count
        batch_size = min(config.MAX_BATCH_SIZE, math.ceil(count / 3))
        num_batches = math.ceil(count / batch_size)

        logger.info(f"📦 Using {num_batches} batches of ~{batch_size} questions each")

        results: List[Any] = []
        for i in range(num_batches):
            current_batch_size = min(batch_size, count - len(results))
            if current_batch_size <= 0:
                break

            logger.info(f"📋 Processing batch {i + 1}/{num_batches} ({current_batch_size} questions)...")

            try:
                batch_params = params.with_overrides(question_count=current_batch_size)
                batch_result = await self.ai_service.generate_with_retries(
                    build_prompt(batch_params),
                    max_attempts=config.GENERATION_SUBCALL_RETRIES,
                    year_window=params.year_window
                )
                results.extend(batch_result)
                logger.info(f"✅ Batch {i + 1} completed: {len(batch_result)} questions")
            except GenerationError as e:
                logger.error(f"❌ Batch {i + 1} failed: {e}")

            if len(results) >= count:
                break

            if i < num_batches - 1:
                await asyncio.sleep(config.BATCH_DELAY_SECONDS)

        return results[:count]

    @staticmethod
    def check_scope_adherence(params: GenerationParams, questions: List[Dict[str, Any]]) -> Optional[float]:
        """Log a warning when too few questions match the requested topic or subject"""
        if params.test_format == TestFormat.TOPIC and params.topic:
            ratio = topic_adherence(questions, params.topic)
            if ratio < TOPIC_ADHERENCE_THRESHOLD:
                logger.warning(
                    f"⚠️ Only {ratio:.0%} of {len(questions)} questions match topic \"{params.topic}\""
                )
            return ratio

        if params.test_format == TestFormat.SUBJECT and params.selected_subject:
            entry = get_subject(params.selected_subject)
            subject_name = entry.name if entry else params.selected_subject
            ratio = subject_adherence(questions, subject_name)
            if ratio < SUBJECT_ADHERENCE_THRESHOLD:
                logger.warning(
                    f"⚠️ Only {ratio:.0%} of {len(questions)} questions match subject \"{subject_name}\""
                )
            return ratio

        return None

    @staticmethod
    def build_metadata(params: GenerationParams, questions: List[Dict[str, Any]],
                       response_time_ms: int) -> Dict[str, Any]:
        return {
            "generated": len(questions),
            "requested": params.question_count,
            "testFormat": params.test_format.value,
            "selectedSubject": params.selected_subject,
            "topic": params.topic,
            "source": params.source,
            "difficulty": params.difficulty.value,
            "yearRange": params.year_range,
            "responseTime": response_time_ms,
            "subjectDistribution": summarize_subjects(questions)
        }

# Singleton pattern for generation service
_generation_service = None

def get_generation_service() -> GenerationService:
    """Get generation service instance (singleton)"""
    global _generation_service
    if _generation_service is None:
        _generation_service = GenerationService()
    return _generation_service

def close_generation_service():
    global _generation_service
    _generation_service = None
