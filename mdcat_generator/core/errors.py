# mdcat_generator/core/errors.py
"""
Error kinds raised by the generation pipeline.

Callers switch on ``GenerationError.kind``; the HTTP layer maps each kind
to a status code through ``STATUS_BY_KIND``.
"""

from enum import Enum
from typing import Optional


class ErrorKind(Enum):
    VALIDATION = "validation_error"
    TOPIC_OR_SUBJECT_REQUIRED = "topic_or_subject_required"
    TIMEOUT = "timeout_error"
    UPSTREAM = "upstream_service_error"
    EMPTY_RESULT = "empty_result_error"


STATUS_BY_KIND = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.TOPIC_OR_SUBJECT_REQUIRED: 400,
    ErrorKind.TIMEOUT: 408,
    ErrorKind.UPSTREAM: 503,
    ErrorKind.EMPTY_RESULT: 500,
}


class GenerationError(Exception):
    """Base class for every error the generation pipeline raises on purpose"""

    kind = ErrorKind.UPSTREAM

    def __init__(self, message: str, kind: Optional[ErrorKind] = None):
        super().__init__(message)
        self.message = message
        if kind is not None:
            self.kind = kind

    @property
    def status_code(self) -> int:
        return STATUS_BY_KIND[self.kind]


class InvalidRequestError(GenerationError):
    kind = ErrorKind.VALIDATION


class InvalidSubjectError(InvalidRequestError):
    pass


class TopicOrSubjectRequiredError(GenerationError):
    kind = ErrorKind.TOPIC_OR_SUBJECT_REQUIRED


class ModelTimeoutError(GenerationError):
    kind = ErrorKind.TIMEOUT


class UpstreamServiceError(GenerationError):
    kind = ErrorKind.UPSTREAM

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class ResponseParseError(UpstreamServiceError):
    """Model text could not be read as a JSON array by either parse stage"""


class EmptyResultError(GenerationError):
    kind = ErrorKind.EMPTY_RESULT
