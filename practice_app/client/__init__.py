"""REST client for the practice API."""

from .api_client import ApiError, PracticeApiClient
from .schemas import AnswerSubmission, AttemptResult, QuestionResult, WritingAnswerResult

__all__ = [
    "ApiError",
    "AnswerSubmission",
    "AttemptResult",
    "PracticeApiClient",
    "QuestionResult",
    "WritingAnswerResult",
]
