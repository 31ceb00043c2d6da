# mdcat_generator/models/schemas.py
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, StrictInt, field_validator, model_validator

from ..core.config import config
from ..core.errors import InvalidSubjectError, TopicOrSubjectRequiredError
from ..core.syllabus import SUBJECT_PRIORITY, get_subject
from .generation import GenerationParams, TestFormat, Difficulty

COUNT_ERROR = (
    f"Question count must be a number between "
    f"{config.MIN_QUESTION_COUNT} and {config.MAX_QUESTION_COUNT}"
)

MIN_PAPER_YEAR = 1900


class YearWindowModel(BaseModel):
    model_config = ConfigDict(extra="forbid")

    start: StrictInt = Field(..., ge=MIN_PAPER_YEAR)
    end: StrictInt = Field(..., ge=MIN_PAPER_YEAR)

    @model_validator(mode="after")
    def check_order(self):
        if self.start > self.end:
            raise ValueError("yearRange.start must not be after yearRange.end")
        return self


class GenerateQuestionsRequest(BaseModel):
    """Body of POST /api/generate-questions"""
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    count: StrictInt
    test_format: Literal["full-test", "topic-test", "subject-test"] = Field("full-test", alias="testFormat")
    selected_subject: Optional[str] = Field(None, alias="selectedSubject")
    # Legacy name for selectedSubject, only read when selectedSubject is absent
    subject: Optional[str] = None
    topic: Optional[str] = None
    source: Optional[str] = "all"
    year_range: Union[Literal["all", "recent", "2010s", "2020s"], YearWindowModel] = Field("all", alias="yearRange")
    difficulty: Literal["mixed", "easy", "moderate", "difficult"] = "mixed"

    @field_validator("count")
    @classmethod
    def check_count(cls, value: int) -> int:
        if not (config.MIN_QUESTION_COUNT <= value <= config.MAX_QUESTION_COUNT):
            raise ValueError(COUNT_ERROR)
        return value

    @field_validator("selected_subject", "subject", "topic", "source", mode="before")
    @classmethod
    def strip_strings(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip()
            return value or None
        return value

    @field_validator("source")
    @classmethod
    def default_source(cls, value: Optional[str]) -> str:
        return value or "all"

    @model_validator(mode="after")
    def collapse_subject_alias(self):
        if self.selected_subject is None and self.subject is not None:
            self.selected_subject = self.subject
        self.subject = None
        return self

    def to_params(self) -> GenerationParams:
        """Apply format-specific checks and build GenerationParams"""
        test_format = TestFormat(self.test_format)

        if test_format == TestFormat.TOPIC and not self.topic:
            raise TopicOrSubjectRequiredError("Topic is required for topic-test format")

        if test_format == TestFormat.SUBJECT:
            if not self.selected_subject:
                raise TopicOrSubjectRequiredError("Subject is required for subject-test format")
            if get_subject(self.selected_subject) is None:
                raise InvalidSubjectError(
                    f"Invalid subject. Must be one of: {', '.join(SUBJECT_PRIORITY)}"
                )

        year_range = self.year_range
        if isinstance(year_range, YearWindowModel):
            year_range = year_range.model_dump()

        return GenerationParams(
            test_format=test_format,
            question_count=self.count,
            selected_subject=self.selected_subject,
            topic=self.topic,
            source=self.source,
            year_range=year_range,
            difficulty=Difficulty(self.difficulty)
        )


def describe_validation_errors(errors: List[Dict[str, Any]]) -> str:
    """Human-readable message for pydantic / FastAPI validation errors"""
    if any(error.get("type") == "json_invalid" for error in errors):
        return "Malformed JSON in request body"

    for error in errors:
        if "count" in error.get("loc", ()):
            return COUNT_ERROR

    messages = []
    for error in errors:
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        messages.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
    return "; ".join(messages) or "Invalid request body"
