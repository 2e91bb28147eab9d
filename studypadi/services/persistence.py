"""Persistence fan-out: StructuredDocument to record-store rows.

# ─── HOW THE FAN-OUT WORKS ────────────────────────────────────────────
#
#   DocumentRecord ──┬── Section 0 ──┬── chunks  (one batch)
#                    │               └── questions (one batch)
#                    ├── Section 1 ── ...
#                    ├── flashcards (one batch, owner-scoped)
#                    └── LearningProgress (always last)
#
# Only the document row is fatal.  Everything below it is best-effort:
#   - a failed section insert skips that section with its chunks/questions
#   - a failed chunk or question batch zeroes that count for that section
#   - failed flashcards or progress are logged and the run still succeeds
#
# The returned PersistenceSummary counts committed rows, never requested
# rows.  ``order_index`` always comes from list position, so sections can
# be written concurrently without disturbing the ordering invariant.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field

import structlog

from studypadi.interfaces.record_store import IRecordStore
from studypadi.models.document import StructuredDocument, StructuredSection
from studypadi.models.pipeline import PersistenceSummary
from studypadi.models.records import (
    ChunkRecord,
    DocumentRecord,
    FlashcardRecord,
    LearningProgressRecord,
    QuestionRecord,
    SectionRecord,
)
from studypadi.utils.errors import PersistenceError
from studypadi.utils.logging import get_logger
from studypadi.utils.text import count_words, title_from_filename

_UNTITLED = "Untitled"


@dataclass
class _SectionOutcome:
    """What one section branch actually committed.

    Internal-only and mutable; never serialized.
    """

    order_index: int
    section_id: str | None = None
    chunk_ids: list[str] = field(default_factory=list)
    questions: int = 0


class PersistenceFanout:
    """Writes a structured document into the record store.

    Parameters
    ----------
    store:
        The record store adapter.
    concurrent_sections:
        When ``True`` the per-section branches run concurrently with
        ``asyncio.gather``.  A failing branch never cancels its siblings.
    """

    def __init__(self, store: IRecordStore, concurrent_sections: bool = False) -> None:
        self._store = store
        self._concurrent_sections = concurrent_sections
        self._logger: structlog.BoundLogger = get_logger(__name__)

    async def persist(
        self,
        owner_id: str,
        structured: StructuredDocument,
        filename_hint: str | None = None,
    ) -> PersistenceSummary:
        """Persist a structured document and report committed counts.

        Parameters
        ----------
        owner_id:
            Trusted identifier of the owning user.
        structured:
            The validated output of the document structurer.
        filename_hint:
            Original filename; its stem is the fallback title.

        Returns
        -------
        PersistenceSummary
            Committed row counts plus the new document and progress ids.

        Raises
        ------
        PersistenceError
            Only when the document row itself cannot be stored.  Nothing
            else is attempted in that case.
        """
        title = self.resolve_title(structured, filename_hint)
        document = DocumentRecord(
            owner_id=owner_id,
            title=title,
            original_filename=filename_hint,
        )
        try:
            await self._store.insert_document(document)
        except Exception as exc:
            self._logger.error(
                "document_insert_failed",
                owner_id=owner_id,
                title=title,
                error=str(exc),
            )
            raise PersistenceError(provider_name=self._store.get_provider_name()) from exc

        self._logger.info(
            "document_inserted",
            document_id=document.id,
            title=title,
            sections_requested=len(structured.sections),
        )

        outcomes = await self._persist_sections(document.id, structured.sections)
        committed = [o for o in outcomes if o.section_id is not None]

        flashcards_count = await self._persist_flashcards(owner_id, title, structured)
        progress_id = await self._persist_progress(owner_id, document.id, committed)

        summary = PersistenceSummary(
            document_id=document.id,
            title=title,
            sections_count=len(committed),
            chunks_count=sum(len(o.chunk_ids) for o in committed),
            questions_count=sum(o.questions for o in committed),
            flashcards_count=flashcards_count,
            progress_id=progress_id,
            section_ids=[o.section_id for o in committed],
        )
        self._logger.info(
            "document_persisted",
            document_id=summary.document_id,
            sections=summary.sections_count,
            chunks=summary.chunks_count,
            questions=summary.questions_count,
            flashcards=summary.flashcards_count,
        )
        return summary

    @staticmethod
    def resolve_title(structured: StructuredDocument, filename_hint: str | None) -> str:
        """Return the model's title, else the filename stem, else ``"Untitled"``."""
        if structured.title and structured.title.strip():
            return structured.title.strip()
        return title_from_filename(filename_hint) or _UNTITLED

    # ------------------------------------------------------------------
    # Sections
    # ------------------------------------------------------------------

    async def _persist_sections(
        self, document_id: str, sections: list[StructuredSection]
    ) -> list[_SectionOutcome]:
        if self._concurrent_sections:
            # Each branch catches its own failures, so gather never cancels
            # siblings.
            outcomes = await asyncio.gather(
                *(
                    self._persist_section(document_id, index, section)
                    for index, section in enumerate(sections)
                )
            )
            return sorted(outcomes, key=lambda o: o.order_index)

        return [
            await self._persist_section(document_id, index, section)
            for index, section in enumerate(sections)
        ]

    async def _persist_section(
        self, document_id: str, index: int, section: StructuredSection
    ) -> _SectionOutcome:
        outcome = _SectionOutcome(order_index=index)
        record = SectionRecord(document_id=document_id, title=section.title, order_index=index)
        try:
            await self._store.insert_section(record)
        except Exception as exc:
            self._logger.warning(
                "section_insert_failed",
                document_id=document_id,
                order_index=index,
                error=str(exc),
            )
            return outcome
        outcome.section_id = record.id

        chunks = [
            ChunkRecord(
                section_id=record.id,
                content=chunk.content,
                order_index=position,
                word_count=count_words(chunk.content),
            )
            for position, chunk in enumerate(section.chunks)
        ]
        if chunks:
            try:
                await self._store.insert_chunks(chunks)
                outcome.chunk_ids = [c.id for c in chunks]
            except Exception as exc:
                self._logger.warning(
                    "chunk_batch_failed",
                    section_id=record.id,
                    chunks=len(chunks),
                    error=str(exc),
                )

        questions = [
            QuestionRecord(
                section_id=record.id,
                question_text=q.question_text,
                options=list(q.options),
                correct_answer=q.correct_answer,
                explanation=q.explanation or "",
            )
            for q in section.questions
        ]
        if questions:
            try:
                await self._store.insert_questions(questions)
                outcome.questions = len(questions)
            except Exception as exc:
                self._logger.warning(
                    "question_batch_failed",
                    section_id=record.id,
                    questions=len(questions),
                    error=str(exc),
                )

        return outcome

    # ------------------------------------------------------------------
    # Flashcards and progress
    # ------------------------------------------------------------------

    async def _persist_flashcards(
        self, owner_id: str, title: str, structured: StructuredDocument
    ) -> int:
        cards = [
            FlashcardRecord(
                owner_id=owner_id,
                term=card.term,
                definition=card.definition,
                difficulty_level=card.difficulty_level,
                source=title,
            )
            for card in structured.flashcards
        ]
        if not cards:
            return 0
        try:
            await self._store.insert_flashcards(cards)
        except Exception as exc:
            self._logger.warning(
                "flashcard_batch_failed",
                owner_id=owner_id,
                flashcards=len(cards),
                error=str(exc),
            )
            return 0
        return len(cards)

    async def _persist_progress(
        self,
        owner_id: str,
        document_id: str,
        committed: list[_SectionOutcome],
    ) -> str | None:
        first = committed[0] if committed else None
        record = LearningProgressRecord(
            owner_id=owner_id,
            document_id=document_id,
            current_section_id=first.section_id if first else None,
            current_chunk_id=first.chunk_ids[0] if first and first.chunk_ids else None,
        )
        try:
            await self._store.insert_learning_progress(record)
        except Exception as exc:
            self._logger.warning(
                "learning_progress_insert_failed",
                document_id=document_id,
                error=str(exc),
            )
            return None
        return record.id
