"""Ingestion state models for the StudyPadi pipeline.

Defines Pydantic v2 models for ingestion phases, failures, the in-flight
state of one attempt, the caller-facing result and the retained session
snapshot.  All models use frozen config; state transitions produce new
IngestionState instances via ``model_copy(update={...})``.

Architecture note:
    IngestionState is the single source of truth for one upload attempt.
    The orchestrator (studypadi/pipeline/orchestrator.py) advances it
    EXTRACTING -> STRUCTURING -> PERSISTING -> DONE, or to FAILED from any
    of those, by creating new copies with updated fields.  It lives only
    for the duration of one ``run`` call.

    After that, the ProgressTracker keeps a SessionStatus per session.  A
    snapshot carries the phase, the result or the failure, and never the
    upload bytes, the extracted text or the structured document.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from studypadi.models.document import StructuredDocument
from studypadi.models.upload import UploadedFile


# ---------------------------------------------------------------------------
# IngestionPhase: the state machine that drives one upload attempt.
# ---------------------------------------------------------------------------
class IngestionPhase(str, Enum):  # noqa: UP042  (StrEnum requires Python 3.11+)
    """Phases of the document ingestion pipeline.

    UPLOAD is the resting phase of a state that has not been run yet.
    DONE and FAILED are terminal; FAILED is reachable from every
    non-terminal phase.
    """

    UPLOAD = "UPLOAD"            # File received, nothing run yet
    EXTRACTING = "EXTRACTING"    # Bytes -> plain text
    STRUCTURING = "STRUCTURING"  # Text -> StructuredDocument via the AI gateway
    PERSISTING = "PERSISTING"    # StructuredDocument -> records
    DONE = "DONE"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self in (IngestionPhase.DONE, IngestionPhase.FAILED)


# ---------------------------------------------------------------------------
# IngestionFailure: why a session ended in FAILED.
# ---------------------------------------------------------------------------
class IngestionFailure(BaseModel):
    """A failure that ended an ingestion attempt.

    ``kind`` is the stable error category (``"RateLimited"``,
    ``"EmptyExtraction"``...) and ``title`` the short user-facing headline.
    """

    model_config = ConfigDict(frozen=True)

    # The phase that was running when the error surfaced.
    phase: IngestionPhase
    kind: str
    title: str
    message: str
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(tz=timezone.utc)  # noqa: UP017
    )
    # Every ingestion failure is terminal for the attempt; a new upload is
    # the only recovery.
    recoverable: bool = False


# ---------------------------------------------------------------------------
# PersistenceSummary / IngestionResult: what persistence actually committed.
# ---------------------------------------------------------------------------
class PersistenceSummary(BaseModel):
    """Counts of the rows the persistence fan-out committed.

    Counts reflect committed rows only, so a section whose chunk batch
    failed contributes zero chunks here.
    """

    model_config = ConfigDict(frozen=True)

    document_id: str
    title: str
    sections_count: int = Field(default=0, ge=0)
    chunks_count: int = Field(default=0, ge=0)
    questions_count: int = Field(default=0, ge=0)
    flashcards_count: int = Field(default=0, ge=0)
    progress_id: str | None = None
    # Section ids in commit order (order_index ascending).
    section_ids: list[str] = Field(default_factory=list)


class IngestionResult(BaseModel):
    """Caller-facing summary of a successful ingestion.

    Serialised by alias (``model_dump(by_alias=True)``) this yields the
    camelCase shape the web client consumes::

        {"documentId": ..., "title": ..., "sectionsCount": ..., ...}
    """

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    document_id: str
    title: str
    sections_count: int = Field(ge=0)
    chunks_count: int = Field(ge=0)
    questions_count: int = Field(ge=0)
    flashcards_count: int = Field(ge=0)
    progress_id: str | None = None

    @classmethod
    def from_summary(cls, summary: PersistenceSummary) -> IngestionResult:
        return cls(
            document_id=summary.document_id,
            title=summary.title,
            sections_count=summary.sections_count,
            chunks_count=summary.chunks_count,
            questions_count=summary.questions_count,
            flashcards_count=summary.flashcards_count,
            progress_id=summary.progress_id,
        )


# ---------------------------------------------------------------------------
# IngestionState: the complete snapshot of an ingestion attempt.
# ---------------------------------------------------------------------------
class IngestionState(BaseModel):
    """The current state of one document ingestion attempt.

    Immutable; use ``model_copy(update={...})`` to produce new states::

        new_state = state.model_copy(update={
            "current_phase": IngestionPhase.STRUCTURING,
            "extracted_text": text,
        })
    """

    model_config = ConfigDict(frozen=True)

    # Unique session identifier, used in status URLs and WebSocket channels.
    session_id: str
    # Trusted identifier from the external auth context.
    owner_id: str
    upload: UploadedFile
    current_phase: IngestionPhase = IngestionPhase.UPLOAD
    # Set after EXTRACTING.
    extracted_text: str | None = None
    # Set after STRUCTURING.
    structured: StructuredDocument | None = None
    # Set on DONE.
    result: IngestionResult | None = None
    progress_percent: float = Field(default=0.0, ge=0.0, le=100.0)
    started_at: datetime = Field(
        default_factory=lambda: datetime.now(tz=timezone.utc)  # noqa: UP017
    )
    completed_at: datetime | None = None


# ---------------------------------------------------------------------------
# SessionStatus: what is retained about a session once its phase changes.
# ---------------------------------------------------------------------------
class SessionStatus(BaseModel):
    """Progress snapshot of one ingestion session.

    Built by the ProgressTracker on every update and served as-is by the
    status endpoint and the progress WebSocket.  ``result`` is set on
    ``DONE`` and ``failure`` on ``FAILED``.
    """

    model_config = ConfigDict(frozen=True)

    session_id: str
    phase: IngestionPhase = IngestionPhase.UPLOAD
    progress: float = Field(default=0.0, ge=0.0, le=100.0)
    message: str = ""
    result: IngestionResult | None = None
    failure: IngestionFailure | None = None
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(tz=timezone.utc)  # noqa: UP017
    )

    @property
    def is_terminal(self) -> bool:
        return self.phase.is_terminal
