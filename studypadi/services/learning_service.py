"""Section quiz grading, adaptive chunk sizing, and document outlines.

After ingestion the learner works through a document one section at a
time: read the chunks, take the section quiz, move on.  This service owns
the server side of that loop.

Adaptive sizing: each quiz score nudges the document's
``chunk_size_modifier``.

    score >= grow_threshold    -> modifier * grow_factor   (capped)
    score <  shrink_threshold  -> modifier * shrink_factor (floored)
    otherwise                  -> unchanged

Thresholds and factors come from the ``adaptive`` block of
``config/config.yaml``.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict

from studypadi.interfaces.record_store import IRecordStore
from studypadi.models.learning import (
    ChunkOutline,
    DocumentOutline,
    FeedbackBand,
    QuizAnswer,
    QuizOutcome,
    SectionOutline,
)
from studypadi.models.records import QuizResultRecord
from studypadi.utils.errors import NotFoundError
from studypadi.utils.logging import get_logger

_FEEDBACK: dict[FeedbackBand, str] = {
    FeedbackBand.EXCELLENT: (
        "Great performance! Next section will use larger chunks to challenge you more."
    ),
    FeedbackBand.GOOD: "Good progress! We'll keep the current chunk size for now.",
    FeedbackBand.NEEDS_REVIEW: (
        "We noticed some difficulty. Next section will use smaller, more focused chunks."
    ),
}


class AdaptivePolicy(BaseModel):
    """Score thresholds and multipliers for chunk-size adaptation."""

    model_config = ConfigDict(frozen=True)

    grow_threshold: int = 80
    shrink_threshold: int = 60
    grow_factor: float = 1.25
    shrink_factor: float = 0.75
    min_modifier: float = 0.5
    max_modifier: float = 2.0

    @classmethod
    def from_config(cls, config: dict[str, Any] | None) -> AdaptivePolicy:
        return cls.model_validate((config or {}).get("adaptive") or {})

    def band(self, score: int) -> FeedbackBand:
        if score >= self.grow_threshold:
            return FeedbackBand.EXCELLENT
        if score >= self.shrink_threshold:
            return FeedbackBand.GOOD
        return FeedbackBand.NEEDS_REVIEW

    def adjust(self, modifier: float, score: int) -> float:
        """Return the new chunk-size modifier after a quiz scoring *score*."""
        band = self.band(score)
        if band is FeedbackBand.EXCELLENT:
            return min(self.max_modifier, modifier * self.grow_factor)
        if band is FeedbackBand.NEEDS_REVIEW:
            return max(self.min_modifier, modifier * self.shrink_factor)
        return modifier


class LearningService:
    """Study-flow operations over the record store.

    Parameters
    ----------
    store:
        The record store adapter.
    policy:
        Adaptive chunk-sizing thresholds; defaults apply when omitted.
    """

    def __init__(self, store: IRecordStore, policy: AdaptivePolicy | None = None) -> None:
        self._store = store
        self._policy = policy or AdaptivePolicy()
        self._logger = get_logger(__name__)

    async def get_outline(self, document_id: str) -> DocumentOutline:
        """Return the document title and its sections in ``order_index`` order.

        Raises
        ------
        NotFoundError
            If the document does not exist.
        """
        document = await self._store.get_document(document_id)
        if document is None:
            raise NotFoundError(message=f"Document {document_id} not found")

        sections: list[SectionOutline] = []
        for section in await self._store.list_sections(document_id):
            chunks = await self._store.list_chunks(section.id)
            questions = await self._store.list_questions(section.id)
            sections.append(
                SectionOutline(
                    id=section.id,
                    title=section.title,
                    order_index=section.order_index,
                    completed=section.completed,
                    chunks=[
                        ChunkOutline(id=c.id, order_index=c.order_index, word_count=c.word_count)
                        for c in chunks
                    ],
                    question_count=len(questions),
                )
            )

        return DocumentOutline(document_id=document.id, title=document.title, sections=sections)

    async def submit_quiz(
        self,
        owner_id: str,
        section_id: str,
        answers: list[QuizAnswer],
    ) -> QuizOutcome:
        """Grade a section quiz and advance the learner.

        Each stored question is graded by exact string match of the
        selected option against ``correct_answer``; unanswered questions
        count as wrong.  A section without questions scores 100.

        Side effects, in order: a quiz-result row, the section marked
        completed, and (when a progress row exists) the modifier adapted
        and the pointer moved to the next section's first chunk.

        Raises
        ------
        NotFoundError
            If the section does not exist.
        """
        section = await self._store.get_section(section_id)
        if section is None:
            raise NotFoundError(message=f"Section {section_id} not found")

        questions = await self._store.list_questions(section_id)
        selected = {a.question_id: a.selected_option for a in answers}
        wrong = [q.id for q in questions if selected.get(q.id) != q.correct_answer]
        correct = len(questions) - len(wrong)
        score = round(correct / len(questions) * 100) if questions else 100

        result = await self._store.insert_quiz_result(
            QuizResultRecord(
                owner_id=owner_id,
                section_id=section_id,
                score=score,
                wrong_answers=wrong,
            )
        )
        await self._store.mark_section_completed(section_id)

        band = self._policy.band(score)
        next_section_id = await self._next_section_id(section.document_id, section.order_index)

        modifier: float | None = None
        progress = await self._store.get_learning_progress(owner_id, section.document_id)
        if progress is None:
            self._logger.warning(
                "learning_progress_missing",
                owner_id=owner_id,
                document_id=section.document_id,
            )
        else:
            modifier = self._policy.adjust(progress.chunk_size_modifier, score)
            update: dict[str, Any] = {
                "chunk_size_modifier": modifier,
                "last_accessed_at": datetime.now(tz=timezone.utc),  # noqa: UP017
            }
            if next_section_id is not None:
                next_chunks = await self._store.list_chunks(next_section_id)
                update["current_section_id"] = next_section_id
                update["current_chunk_id"] = next_chunks[0].id if next_chunks else None
            await self._store.update_learning_progress(progress.model_copy(update=update))

        self._logger.info(
            "quiz_submitted",
            section_id=section_id,
            score=score,
            band=band.value,
            chunk_size_modifier=modifier,
            next_section_id=next_section_id,
        )
        return QuizOutcome(
            quiz_result_id=result.id,
            section_id=section_id,
            score=score,
            correct_count=correct,
            total_questions=len(questions),
            wrong_question_ids=wrong,
            band=band,
            feedback=_FEEDBACK[band],
            chunk_size_modifier=modifier,
            next_section_id=next_section_id,
        )

    async def _next_section_id(self, document_id: str, order_index: int) -> str | None:
        for section in await self._store.list_sections(document_id):
            if section.order_index > order_index:
                return section.id
        return None
