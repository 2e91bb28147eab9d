"""Structured document models: the validated shape of the AI response.

The document structurer parses the gateway's answer into these models
before anything is persisted.  Validation is strict about *types* (a
section without a title, options that are not strings, a missing
``sections`` list all fail) and lenient about *extras* (unknown keys such
as a model-supplied ``word_count`` are ignored).

Ordering is implicit: list position becomes ``order_index`` at
persistence time.  Nothing here carries an index of its own.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Difficulty(str, Enum):  # noqa: UP042
    """Flashcard difficulty levels."""

    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class StructuredChunk(BaseModel):
    """One slice of learning content, copied from the source document."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    content: str


class StructuredQuestion(BaseModel):
    """A multiple-choice question as returned by the model.

    ``options`` is not length-checked here; :meth:`is_well_formed` reports
    whether the question satisfies the four-distinct-options rule so the
    structurer can drop bad questions without rejecting the document.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    question_text: str
    options: list[str]
    correct_answer: str
    explanation: str = ""

    @field_validator("explanation", mode="before")
    @classmethod
    def _none_explanation_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    def is_well_formed(self) -> bool:
        """Return ``True`` if there are exactly 4 distinct options and the answer is one of them."""
        return (
            len(self.options) == 4
            and len(set(self.options)) == 4
            and self.options.count(self.correct_answer) == 1
        )


class StructuredSection(BaseModel):
    """A logical section with its ordered chunks and quiz questions."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    title: str
    chunks: list[StructuredChunk] = Field(default_factory=list)
    questions: list[StructuredQuestion] = Field(default_factory=list)

    @field_validator("chunks", "questions", mode="before")
    @classmethod
    def _none_to_empty_list(cls, value: Any) -> Any:
        return [] if value is None else value


class StructuredFlashcard(BaseModel):
    """A standalone term/definition pair."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    term: str
    definition: str
    difficulty_level: Difficulty = Difficulty.MEDIUM

    @field_validator("difficulty_level", mode="before")
    @classmethod
    def _coerce_difficulty(cls, value: Any) -> Any:
        # Unknown or missing levels fall back to medium.
        if isinstance(value, str) and value.strip().lower() in {d.value for d in Difficulty}:
            return value.strip().lower()
        return Difficulty.MEDIUM


class StructuredDocument(BaseModel):
    """The normalized result of the document structurer, prior to persistence."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    title: str | None = None
    sections: list[StructuredSection]
    flashcards: list[StructuredFlashcard] = Field(default_factory=list)

    @field_validator("title", mode="before")
    @classmethod
    def _blank_title_to_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("flashcards", mode="before")
    @classmethod
    def _none_flashcards_to_empty(cls, value: Any) -> Any:
        return [] if value is None else value

    @property
    def chunk_count(self) -> int:
        return sum(len(s.chunks) for s in self.sections)

    @property
    def question_count(self) -> int:
        return sum(len(s.questions) for s in self.sections)
