# mdcat_generator/models/generation.py
from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional, Any

from ..core.syllabus import YearRange, YearWindow, normalize_year_range


class TestFormat(Enum):
    FULL = "full-test"
    TOPIC = "topic-test"
    SUBJECT = "subject-test"

    __test__ = False  # keep pytest from collecting this as a test class


class Difficulty(Enum):
    MIXED = "mixed"
    EASY = "easy"
    MODERATE = "moderate"
    DIFFICULT = "difficult"


@dataclass(frozen=True)
class GenerationParams:
    """Validated parameters for one generation request or sub-call"""
    test_format: TestFormat
    question_count: int
    selected_subject: Optional[str] = None
    topic: Optional[str] = None
    source: str = "all"
    year_range: YearRange = "all"
    difficulty: Difficulty = Difficulty.MIXED

    @property
    def year_window(self) -> Optional[YearWindow]:
        return normalize_year_range(self.year_range)

    def with_overrides(self, **changes: Any) -> "GenerationParams":
        return replace(self, **changes)
