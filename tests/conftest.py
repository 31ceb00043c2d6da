import asyncio
import os

import pytest

# Offline mode must be set before the package reads its configuration
os.environ["APP_ENV"] = "test"
os.environ.setdefault("GROQ_API_KEY", "test-key-12345")

from mdcat_generator.core import ai_services
from mdcat_generator.core.config import config
from mdcat_generator.services import generation_service


@pytest.fixture(autouse=True)
def fast_generation(monkeypatch):
    """No pacing or backoff waits, fresh singletons per test"""
    monkeypatch.setattr(config, "SUBJECT_DELAY_SECONDS", 0)
    monkeypatch.setattr(config, "BATCH_DELAY_SECONDS", 0)
    monkeypatch.setattr(config, "RETRY_BASE_DELAY_MS", 0)
    asyncio.run(ai_services.close_ai_service())
    generation_service.close_generation_service()
    yield
    asyncio.run(ai_services.close_ai_service())
    generation_service.close_generation_service()


@pytest.fixture
def make_question():
    """Factory for a structurally valid question candidate"""
    def _make(**overrides):
        question = {
            "question": "Which organelle is responsible for protein synthesis?",
            "options": ["Mitochondria", "Ribosomes", "Golgi apparatus", "Nucleus"],
            "answer": "B",
            "explanation": "Ribosomes translate mRNA into polypeptides.",
            "subject": "Biology",
            "topic": "Cell Structure & Function",
            "difficulty": "moderate",
            "year": 2024,
            "source": "MDCAT",
        }
        question.update(overrides)
        return question
    return _make
