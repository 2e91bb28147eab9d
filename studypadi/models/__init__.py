"""Pydantic v2 data models for StudyPadi.

- **upload** -- the uploaded file and accepted media types.
- **document** -- the structured document returned by the AI gateway.
- **records** -- rows of the backend record store.
- **pipeline** -- ingestion phases, state, and the caller-facing result.
- **learning** -- document outlines and graded section quizzes.
"""

from studypadi.models.document import (
    Difficulty,
    StructuredChunk,
    StructuredDocument,
    StructuredFlashcard,
    StructuredQuestion,
    StructuredSection,
)
from studypadi.models.learning import (
    ChunkOutline,
    DocumentOutline,
    FeedbackBand,
    QuizAnswer,
    QuizOutcome,
    SectionOutline,
)
from studypadi.models.pipeline import (
    IngestionFailure,
    IngestionPhase,
    IngestionResult,
    IngestionState,
    PersistenceSummary,
    SessionStatus,
)
from studypadi.models.records import (
    ChunkRecord,
    DocumentRecord,
    FlashcardRecord,
    LearningProgressRecord,
    QuestionRecord,
    QuizResultRecord,
    SectionRecord,
)
from studypadi.models.upload import (
    EXTENSION_MEDIA_TYPES,
    MEDIA_TYPE_DOCX,
    MEDIA_TYPE_PDF,
    MEDIA_TYPE_TEXT,
    SUPPORTED_MEDIA_TYPES,
    UploadedFile,
)

__all__ = [
    "EXTENSION_MEDIA_TYPES",
    "MEDIA_TYPE_DOCX",
    "MEDIA_TYPE_PDF",
    "MEDIA_TYPE_TEXT",
    "SUPPORTED_MEDIA_TYPES",
    "ChunkOutline",
    "ChunkRecord",
    "Difficulty",
    "DocumentOutline",
    "DocumentRecord",
    "FeedbackBand",
    "FlashcardRecord",
    "IngestionFailure",
    "IngestionPhase",
    "IngestionResult",
    "IngestionState",
    "LearningProgressRecord",
    "PersistenceSummary",
    "QuestionRecord",
    "QuizAnswer",
    "QuizOutcome",
    "QuizResultRecord",
    "SectionOutline",
    "SectionRecord",
    "SessionStatus",
    "StructuredChunk",
    "StructuredDocument",
    "StructuredFlashcard",
    "StructuredQuestion",
    "StructuredSection",
    "UploadedFile",
]
