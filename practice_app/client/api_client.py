"""Async client for the attempt and quiz endpoints of the practice REST API."""

from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import ValidationError

from practice_app.client.schemas import (
    AnswerSubmission,
    AttemptCreated,
    AttemptResult,
    QuestionPayload,
    QuizPayload,
)
from practice_app.constants.about import APP_NAME, APP_VERSION
from practice_app.constants.network_constants import (
    DEFAULT_API_BASE_URL,
    QUESTION_PAGE_LIMIT,
    REQUEST_TIMEOUT_SECONDS,
)
from practice_app.core.models import Question, Quiz

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """Raised when a request fails or the server answers with an error status."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class PracticeApiClient:
    """Thin wrapper over ``httpx.AsyncClient`` for the attempt lifecycle.

    Pass an already-authenticated ``http_client`` to reuse the session
    owned by the caller; otherwise one is created from ``base_url`` and the
    optional bearer ``token`` and closed by :meth:`aclose`.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_API_BASE_URL,
        *,
        token: str | None = None,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = REQUEST_TIMEOUT_SECONDS,
    ) -> None:
        self._owns_client = http_client is None
        if http_client is None:
            headers = {"Accept": "application/json", "User-Agent": f"{APP_NAME}/{APP_VERSION}"}
            if token:
                headers["Authorization"] = f"Bearer {token}"
            http_client = httpx.AsyncClient(base_url=base_url, headers=headers, timeout=timeout)
        self._client = http_client

    async def __aenter__(self) -> "PracticeApiClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    # --- Quizzes ---

    async def get_quizzes_by_lesson(self, lesson_id: str) -> list[Quiz]:
        """Published quizzes attached to a lesson."""
        data = await self._request("GET", f"/ielts-quizzes/lesson/{lesson_id}")
        quizzes = [self._validate(QuizPayload, item).to_quiz() for item in _as_list(data)]
        return [quiz for quiz in quizzes if quiz.is_published]

    async def get_quiz_questions(self, quiz_id: str, *, limit: int = QUESTION_PAGE_LIMIT) -> list[Question]:
        data = await self._request(
            "GET",
            "/ielts-quiz-questions",
            params={"quizId": quiz_id, "limit": limit},
        )
        questions = [self._validate(QuestionPayload, item).to_question() for item in _as_list(data)]
        return sorted(questions, key=lambda question: question.position)

    # --- Attempts ---

    async def create_attempt(self, user_id: str, quiz_id: str) -> str:
        data = await self._request(
            "POST",
            "/ielts-quiz-attempts",
            json={"user_id": user_id, "quiz_id": quiz_id},
        )
        return self._validate(AttemptCreated, data).id

    async def submit_answer(self, submission: AnswerSubmission) -> None:
        await self._request("POST", "/ielts-quiz-attempts/answer", json=submission.to_request_body())

    async def finalize_attempt(self, attempt_id: str) -> None:
        await self._request("PATCH", f"/ielts-quiz-attempts/{attempt_id}/submit")

    async def get_attempt_result(self, attempt_id: str) -> AttemptResult:
        data = await self._request("GET", f"/ielts-answers/attempts/{attempt_id}/result")
        return self._validate(AttemptResult, data)

    # --- Media ---

    async def get_transcript(self, url: str) -> str:
        """Fetch a caption-track transcript as plain text."""
        response = await self._send("GET", url)
        return response.text

    # --- Internals ---

    async def _request(
        self,
        method: str,
        url: str,
        *,
        json: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        response = await self._send(method, url, json=json, params=params)
        if response.status_code == 204 or not response.content:
            return None
        try:
            payload = response.json()
        except ValueError as exc:
            raise ApiError(f"Invalid JSON from {method} {url}", response.status_code) from exc
        return _unwrap(payload)

    async def _send(
        self,
        method: str,
        url: str,
        *,
        json: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> httpx.Response:
        try:
            response = await self._client.request(method, url, json=json, params=params)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            logger.warning("%s %s failed with HTTP %s", method, url, status)
            raise ApiError(f"HTTP {status}: {exc.response.reason_phrase}", status) from exc
        except httpx.RequestError as exc:
            logger.warning("%s %s failed: %s", method, url, exc)
            raise ApiError(f"Request to {url} failed: {exc}") from exc
        return response

    @staticmethod
    def _validate(model: type[Any], data: Any) -> Any:
        try:
            return model.model_validate(data)
        except ValidationError as exc:
            raise ApiError(f"Unexpected {model.__name__} payload: {exc.error_count()} error(s)") from exc


def _unwrap(payload: Any) -> Any:
    """Strip the optional ``{"data": ...}`` envelope."""
    if isinstance(payload, dict) and "data" in payload:
        return payload["data"]
    return payload


def _as_list(data: Any) -> list[Any]:
    if isinstance(data, list):
        return data
    if isinstance(data, dict) and "id" in data:
        return [data]
    return []
