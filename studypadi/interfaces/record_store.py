"""Abstract base class for the StudyPadi record store.

The record store is the backend persistence boundary: the collections
``documents``, ``sections``, ``chunks``, ``questions``, ``flashcards``,
``learning_progress`` and ``quiz_results``.  Writes are either single
inserts or whole-list batch inserts, and a batch either commits all of
its rows or none of them.

Implementations may use SQLite (local), a hosted backend-as-a-service or
any other store.  The adapter pattern lets the persistence fan-out and
the learning service stay unaware of the backend.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from studypadi.models.records import (
    ChunkRecord,
    DocumentRecord,
    FlashcardRecord,
    LearningProgressRecord,
    QuestionRecord,
    QuizResultRecord,
    SectionRecord,
)


# Concrete implementation: SQLiteRecordStore
# Located in: studypadi/providers/store/
class IRecordStore(ABC):
    """Contract for StudyPadi record persistence.

    All operations are async to support network-backed stores.  Failures
    raise whatever the backend raises; the persistence fan-out decides
    which failures are fatal.
    """

    @abstractmethod
    async def initialize(self) -> None:
        """Create collections/tables if they don't exist."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a short identifier for this store (e.g. ``"sqlite"``)."""

    # ── Writes ─────────────────────────────────────────────────────────

    @abstractmethod
    async def insert_document(self, record: DocumentRecord) -> DocumentRecord:
        """Insert one document row and return it as stored."""

    @abstractmethod
    async def insert_section(self, record: SectionRecord) -> SectionRecord:
        """Insert one section row and return it as stored."""

    @abstractmethod
    async def insert_chunks(self, records: list[ChunkRecord]) -> int:
        """Insert a batch of chunks atomically.

        Returns
        -------
        int
            Number of rows committed (``len(records)`` on success).
        """

    @abstractmethod
    async def insert_questions(self, records: list[QuestionRecord]) -> int:
        """Insert a batch of questions atomically; returns rows committed."""

    @abstractmethod
    async def insert_flashcards(self, records: list[FlashcardRecord]) -> int:
        """Insert a batch of flashcards atomically; returns rows committed."""

    @abstractmethod
    async def insert_learning_progress(
        self, record: LearningProgressRecord
    ) -> LearningProgressRecord:
        """Insert one learning-progress row and return it as stored."""

    @abstractmethod
    async def update_learning_progress(self, record: LearningProgressRecord) -> None:
        """Replace the pointers and modifier of an existing progress row."""

    @abstractmethod
    async def mark_section_completed(self, section_id: str) -> None:
        """Set ``completed`` on a section."""

    @abstractmethod
    async def insert_quiz_result(self, record: QuizResultRecord) -> QuizResultRecord:
        """Insert one quiz-result row and return it as stored."""

    # ── Reads ──────────────────────────────────────────────────────────

    @abstractmethod
    async def get_document(self, document_id: str) -> DocumentRecord | None:
        """Return a document by id, or ``None``."""

    @abstractmethod
    async def get_section(self, section_id: str) -> SectionRecord | None:
        """Return a section by id, or ``None``."""

    @abstractmethod
    async def list_sections(self, document_id: str) -> list[SectionRecord]:
        """Return a document's sections ordered by ``order_index``."""

    @abstractmethod
    async def list_chunks(self, section_id: str) -> list[ChunkRecord]:
        """Return a section's chunks ordered by ``order_index``."""

    @abstractmethod
    async def list_questions(self, section_id: str) -> list[QuestionRecord]:
        """Return a section's questions in insertion order."""

    @abstractmethod
    async def list_flashcards(
        self, owner_id: str, source: str | None = None
    ) -> list[FlashcardRecord]:
        """Return an owner's flashcards, optionally filtered by source title."""

    @abstractmethod
    async def get_learning_progress(
        self, owner_id: str, document_id: str
    ) -> LearningProgressRecord | None:
        """Return the owner's progress row for a document, or ``None``."""
