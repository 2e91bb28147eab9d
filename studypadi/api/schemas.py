"""Pydantic request/response schemas for the StudyPadi API.

Defines the public contract for the REST endpoints that are not already
covered by a domain model.  ``IngestionResult``, ``SessionStatus``,
``DocumentOutline`` and ``QuizOutcome`` are returned directly as response
models.

Convention: request schemas end with "Request", response schemas end
with "Response".
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from studypadi.models.learning import QuizAnswer


class ErrorResponse(BaseModel):
    """Standard error response body.

    ``kind`` is the stable category a client can switch on, ``title`` the
    short headline for a notification, and ``detail`` the full message.
    """

    error: str
    kind: str
    title: str
    detail: str | None = None


class QuizSubmissionRequest(BaseModel):
    """A learner's answers for one section quiz."""

    answers: list[QuizAnswer] = Field(default_factory=list, max_length=50)


class HealthResponse(BaseModel):
    """Application health check response."""

    status: str
    version: str
    providers: dict[str, Any]
