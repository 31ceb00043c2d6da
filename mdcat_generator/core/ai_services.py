# mdcat_generator/core/ai_services.py
import asyncio
import copy
import json
import logging
import re
from typing import List, Dict, Any, Optional

import groq
from groq import AsyncGroq

from .config import config
from .errors import (
    GenerationError, ModelTimeoutError, UpstreamServiceError,
    ResponseParseError, EmptyResultError
)
from .syllabus import YearWindow, random_year

logger = logging.getLogger(__name__)

JSON_ARRAY_PATTERN = re.compile(r"\[[\s\S]*\]")

# Returned in offline mode instead of calling the model
STUB_QUESTIONS: List[Dict[str, Any]] = [
    {
        "question": "Which of the following is the powerhouse of the cell?",
        "options": ["Nucleus", "Mitochondria", "Ribosome", "Endoplasmic reticulum"],
        "answer": "B",
        "explanation": "Mitochondria are called the powerhouse of the cell because they produce ATP through cellular respiration.",
        "subject": "Biology",
        "topic": "Cell Structure & Function",
        "difficulty": "moderate",
        "year": 2024,
        "source": "test"
    },
    {
        "question": "Which enzyme unwinds the DNA double helix during replication?",
        "options": ["DNA ligase", "Primase", "Helicase", "DNA polymerase III"],
        "answer": "C",
        "explanation": "Helicase breaks the hydrogen bonds between base pairs to separate the two strands.",
        "subject": "Biology",
        "topic": "Biological Molecules",
        "difficulty": "easy",
        "year": 2023,
        "source": "test"
    },
    {
        "question": "In which part of the nephron does most reabsorption of glucose take place?",
        "options": ["Proximal convoluted tubule", "Loop of Henle", "Distal convoluted tubule", "Collecting duct"],
        "answer": "A",
        "explanation": "Glucose is almost completely reabsorbed in the proximal convoluted tubule by active transport.",
        "subject": "Biology",
        "topic": "Homeostasis",
        "difficulty": "moderate",
        "year": 2022,
        "source": "test"
    }
]


# ==================== Response Parsing ====================

def _as_candidate_list(parsed: Any) -> List[Any]:
    if isinstance(parsed, list):
        return parsed
    if isinstance(parsed, dict) and isinstance(parsed.get("questions"), list):
        return parsed["questions"]
    return []


def parse_strict(text: str) -> List[Any]:
    """First stage: the whole text must be JSON. Raises ValueError otherwise."""
    return _as_candidate_list(json.loads(text))


def parse_bracket_fallback(text: str) -> List[Any]:
    """Second stage: parse the span from the first '[' to the last ']'"""
    match = JSON_ARRAY_PATTERN.search(text)
    if not match:
        raise ValueError("No JSON array found in response")
    return _as_candidate_list(json.loads(match.group(0)))


def parse_candidates(text: str) -> List[Any]:
    """Strict parse, then bracket extraction; ResponseParseError if both fail"""
    try:
        return parse_strict(text)
    except ValueError as e:
        logger.warning(f"JSON parse error: {e}")
        logger.debug(f"🔍 Response preview: {text[:300]}")

    try:
        return parse_bracket_fallback(text)
    except ValueError as e:
        logger.error(f"❌ JSON fallback parse error: {e}")

    raise ResponseParseError("Failed to parse JSON response from model")


def backfill_candidates(candidates: List[Any],
                        year_window: Optional[YearWindow] = None) -> List[Any]:
    """Fill missing year, topic and difficulty on dict candidates"""
    filled = []
    for candidate in candidates:
        if isinstance(candidate, dict):
            candidate = dict(candidate)
            if not candidate.get("year"):
                candidate["year"] = random_year(year_window)
            if not candidate.get("topic"):
                candidate["topic"] = "General"
            if not candidate.get("difficulty"):
                candidate["difficulty"] = "moderate"
        filled.append(candidate)
    return filled


def backoff_delay_ms(attempt: int) -> int:
    """Wait after a failed 1-based attempt: min(2^attempt * base, max)"""
    return min((2 ** attempt) * config.RETRY_BASE_DELAY_MS, config.RETRY_MAX_DELAY_MS)


# ==================== AI Service ====================

class AIService:
    """Model client for question generation"""

    def __init__(self, use_dummy: Optional[bool] = None, client: Optional[AsyncGroq] = None):
        self.client = client
        self.use_dummy = config.offline_mode if use_dummy is None else use_dummy

        if self.use_dummy:
            logger.info("🔧 AI Service in offline mode - using stub questions")
        elif self.client is None:
            self._init_groq_client()

    def _init_groq_client(self):
        """Initialize Groq client"""
        if not config.GROQ_API_KEY:
            raise UpstreamServiceError("GROQ_API_KEY is required but not configured")

        # Retries are handled by generate_with_retries
        self.client = AsyncGroq(
            api_key=config.GROQ_API_KEY,
            timeout=config.GROQ_TIMEOUT,
            max_retries=0
        )
        logger.info("✅ Groq client initialized")

    async def _request_completion(self, prompt: str) -> str:
        """One chat completion call, returning the raw generated text"""
        if not self.client:
            raise UpstreamServiceError("AI service not available")

        try:
            completion = await asyncio.wait_for(
                self.client.chat.completions.create(
                    model=config.GROQ_MODEL,
                    messages=[{"role": "user", "content": prompt}],
                    temperature=config.GROQ_TEMPERATURE,
                    max_completion_tokens=config.GROQ_MAX_TOKENS,
                    top_p=config.GROQ_TOP_P
                ),
                timeout=config.GROQ_TIMEOUT
            )
        except (asyncio.TimeoutError, groq.APITimeoutError):
            raise ModelTimeoutError(f"API request timeout after {config.GROQ_TIMEOUT:g} seconds")
        except groq.APIStatusError as e:
            logger.error(f"❌ API Error: {e.status_code} {e.message}")
            raise UpstreamServiceError(f"Model API error: {e.message}", status=e.status_code)
        except groq.APIError as e:
            logger.error(f"❌ API Error: {e}")
            raise UpstreamServiceError(f"Model API error: {e}")

        if not completion.choices:
            raise UpstreamServiceError("Invalid response format from model API")

        text = (completion.choices[0].message.content or "").strip()
        if not text:
            raise UpstreamServiceError("Empty response from model API")
        return text

    async def generate_candidates(self, prompt: str,
                                  year_window: Optional[YearWindow] = None) -> List[Any]:
        """Call the model once and return unvalidated question candidates"""
        if self.use_dummy:
            logger.info("🧪 Offline mode: returning stub questions")
            return backfill_candidates(copy.deepcopy(STUB_QUESTIONS), year_window)

        logger.info(f"🤖 Calling {config.GROQ_MODEL}...")
        text = await self._request_completion(prompt)
        return backfill_candidates(parse_candidates(text), year_window)

    async def generate_with_retries(self, prompt: str, max_attempts: Optional[int] = None,
                                    year_window: Optional[YearWindow] = None) -> List[Any]:
        """Call the model with retry logic; an empty result counts as a failed attempt"""
        if max_attempts is None:
            max_attempts = config.GENERATION_MAX_RETRIES

        last_error: Optional[GenerationError] = None

        for attempt in range(1, max_attempts + 1):
            try:
                logger.info(f"🤖 API call attempt {attempt}/{max_attempts}...")
                result = await self.generate_candidates(prompt, year_window)

                if result:
                    logger.info(f"✅ Successfully generated {len(result)} questions")
                    return result

                raise EmptyResultError(f"Empty result on attempt {attempt}")

            except GenerationError as e:
                last_error = e
                logger.warning(f"❌ Attempt {attempt} failed: {e}")

                if attempt == max_attempts:
                    break

                wait_ms = backoff_delay_ms(attempt)
                logger.info(f"⏳ Waiting {wait_ms}ms before retry...")
                await asyncio.sleep(wait_ms / 1000)

        if last_error is None or isinstance(last_error, EmptyResultError):
            raise EmptyResultError(f"No valid questions generated after {max_attempts} attempts")
        raise last_error

    async def close(self):
        """Release the Groq client connections"""
        if self.client is not None:
            await self.client.close()
            self.client = None
            logger.info("🔌 Groq client closed")

    def health_check(self) -> Dict[str, Any]:
        """Check AI service readiness"""
        if self.use_dummy:
            return {
                "status": "healthy",
                "mode": "offline",
                "client_ready": True,
                "message": "Running in offline mode - stub questions only"
            }

        if not self.client:
            return {"status": "error", "message": "Client not initialized"}

        return {
            "status": "healthy",
            "mode": "live",
            "model": config.GROQ_MODEL,
            "client_ready": True
        }

# Singleton pattern for AI service
_ai_service = None

def get_ai_service() -> AIService:
    """Get AI service instance (singleton)"""
    global _ai_service
    if _ai_service is None:
        _ai_service = AIService()
    return _ai_service

async def close_ai_service():
    """Close AI service instance and its HTTP connection pool"""
    global _ai_service
    if _ai_service:
        await _ai_service.close()
        _ai_service = None
