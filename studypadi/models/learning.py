"""Models for the study flow that follows ingestion: outlines and quizzes."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class FeedbackBand(str, Enum):  # noqa: UP042
    """Coarse grade shown after a section quiz."""

    EXCELLENT = "excellent"
    GOOD = "good"
    NEEDS_REVIEW = "needs_review"


class ChunkOutline(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    order_index: int
    word_count: int


class SectionOutline(BaseModel):
    """One section of a document outline, without chunk content."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    order_index: int
    completed: bool = False
    chunks: list[ChunkOutline] = Field(default_factory=list)
    question_count: int = 0


class DocumentOutline(BaseModel):
    """Document title plus its sections, ordered by ``order_index``."""

    model_config = ConfigDict(frozen=True)

    document_id: str
    title: str
    sections: list[SectionOutline] = Field(default_factory=list)


class QuizAnswer(BaseModel):
    """A learner's chosen option for one question."""

    model_config = ConfigDict(frozen=True)

    question_id: str
    selected_option: str


class QuizOutcome(BaseModel):
    """Graded result of a section quiz, including the adaptive sizing update."""

    model_config = ConfigDict(frozen=True)

    quiz_result_id: str
    section_id: str
    score: int = Field(ge=0, le=100)
    correct_count: int = Field(ge=0)
    total_questions: int = Field(ge=0)
    wrong_question_ids: list[str] = Field(default_factory=list)
    band: FeedbackBand
    feedback: str
    chunk_size_modifier: float | None = None
    next_section_id: str | None = None
