"""Persisted record models: one class per record collection.

These mirror the rows of the backend store (``documents``, ``sections``,
``chunks``, ``questions``, ``flashcards``, ``learning_progress``,
``quiz_results``).  Identifiers are UUID4 strings assigned when the
record object is created, before it is written, so the persistence
fan-out can link children to parents without a read-back.

All records are frozen; the few fields the learning flow mutates
(``SectionRecord.completed``, progress pointers) are changed through the
store, never on the in-memory object.
"""

from __future__ import annotations

from datetime import datetime, timezone
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from studypadi.models.document import Difficulty


def _new_id() -> str:
    return str(uuid4())


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)  # noqa: UP017


class DocumentRecord(BaseModel):
    """An uploaded document owned by exactly one user."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=_new_id)
    owner_id: str
    title: str
    original_filename: str | None = None
    created_at: datetime = Field(default_factory=_utcnow)


class SectionRecord(BaseModel):
    """An ordered section of a document."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=_new_id)
    document_id: str
    title: str
    order_index: int = Field(ge=0)
    completed: bool = False
    created_at: datetime = Field(default_factory=_utcnow)


class ChunkRecord(BaseModel):
    """An ordered slice of learning content inside one section."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=_new_id)
    section_id: str
    content: str
    order_index: int = Field(ge=0)
    word_count: int = Field(ge=0)
    created_at: datetime = Field(default_factory=_utcnow)


class QuestionRecord(BaseModel):
    """A four-option multiple-choice question attached to a section."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=_new_id)
    section_id: str
    question_text: str
    options: list[str]
    correct_answer: str
    explanation: str = ""
    created_at: datetime = Field(default_factory=_utcnow)


class FlashcardRecord(BaseModel):
    """A term/definition card owned by a user, tagged with its source document title."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=_new_id)
    owner_id: str
    term: str
    definition: str
    difficulty_level: Difficulty = Difficulty.MEDIUM
    source: str
    times_reviewed: int = Field(default=0, ge=0)
    created_at: datetime = Field(default_factory=_utcnow)


class LearningProgressRecord(BaseModel):
    """Per-user-per-document pointer to the section/chunk being studied."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=_new_id)
    owner_id: str
    document_id: str
    current_section_id: str | None = None
    current_chunk_id: str | None = None
    chunk_size_modifier: float = Field(default=1.0, gt=0.0)
    last_accessed_at: datetime = Field(default_factory=_utcnow)


class QuizResultRecord(BaseModel):
    """The outcome of one section quiz attempt."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=_new_id)
    owner_id: str
    section_id: str
    score: int = Field(ge=0, le=100)
    wrong_answers: list[str] = Field(default_factory=list)
    completed_at: datetime = Field(default_factory=_utcnow)
