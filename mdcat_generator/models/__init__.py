"""
Generation parameters and request schemas
"""

from .generation import GenerationParams, TestFormat, Difficulty
from .schemas import GenerateQuestionsRequest

__all__ = [
    "GenerationParams",
    "TestFormat",
    "Difficulty",
    "GenerateQuestionsRequest"
]
