"""Unit tests for SQLiteRecordStore.

Runs against a temporary database file created by the ``record_store``
fixture, so the real data directory is never touched.
"""

from __future__ import annotations

import sqlite3

import pytest

from studypadi.models.document import Difficulty
from studypadi.models.records import (
    ChunkRecord,
    DocumentRecord,
    FlashcardRecord,
    LearningProgressRecord,
    QuestionRecord,
    QuizResultRecord,
    SectionRecord,
)
from studypadi.providers.store.sqlite_record_store import SQLiteRecordStore


async def _document(store: SQLiteRecordStore, owner: str = "user-1") -> DocumentRecord:
    return await store.insert_document(
        DocumentRecord(owner_id=owner, title="Biology", original_filename="bio.pdf")
    )


# ─── Initialization ───────────────────────────────────────────────


class TestInitialize:
    @pytest.mark.asyncio
    async def test_creates_parent_directory(self, tmp_path) -> None:
        store = SQLiteRecordStore(db_path=tmp_path / "nested" / "dir" / "s.db")
        await store.initialize()
        assert (tmp_path / "nested" / "dir" / "s.db").exists()

    @pytest.mark.asyncio
    async def test_initialize_is_idempotent(self, record_store) -> None:
        await record_store.initialize()
        assert record_store.get_provider_name() == "sqlite"


# ─── Documents and sections ───────────────────────────────────────


class TestDocumentsAndSections:
    @pytest.mark.asyncio
    async def test_document_round_trip(self, record_store) -> None:
        doc = await _document(record_store)
        fetched = await record_store.get_document(doc.id)
        assert fetched is not None
        assert fetched.title == "Biology"
        assert fetched.original_filename == "bio.pdf"
        assert fetched.created_at == doc.created_at

    @pytest.mark.asyncio
    async def test_missing_document_is_none(self, record_store) -> None:
        assert await record_store.get_document("nope") is None

    @pytest.mark.asyncio
    async def test_sections_listed_by_order_index(self, record_store) -> None:
        doc = await _document(record_store)
        for index in (2, 0, 1):
            await record_store.insert_section(
                SectionRecord(document_id=doc.id, title=f"S{index}", order_index=index)
            )

        sections = await record_store.list_sections(doc.id)
        assert [s.order_index for s in sections] == [0, 1, 2]
        assert [s.title for s in sections] == ["S0", "S1", "S2"]

    @pytest.mark.asyncio
    async def test_duplicate_order_index_rejected(self, record_store) -> None:
        doc = await _document(record_store)
        await record_store.insert_section(SectionRecord(document_id=doc.id, title="A", order_index=0))
        with pytest.raises(sqlite3.IntegrityError):
            await record_store.insert_section(
                SectionRecord(document_id=doc.id, title="B", order_index=0)
            )

    @pytest.mark.asyncio
    async def test_mark_section_completed(self, record_store) -> None:
        doc = await _document(record_store)
        section = await record_store.insert_section(
            SectionRecord(document_id=doc.id, title="A", order_index=0)
        )
        assert (await record_store.get_section(section.id)).completed is False

        await record_store.mark_section_completed(section.id)

        assert (await record_store.get_section(section.id)).completed is True


# ─── Batches ──────────────────────────────────────────────────────


class TestBatches:
    @pytest.mark.asyncio
    async def test_chunks_batch_and_order(self, record_store) -> None:
        doc = await _document(record_store)
        section = await record_store.insert_section(
            SectionRecord(document_id=doc.id, title="A", order_index=0)
        )
        chunks = [
            ChunkRecord(section_id=section.id, content=f"c{i}", order_index=i, word_count=1)
            for i in (1, 0, 2)
        ]
        assert await record_store.insert_chunks(chunks) == 3

        listed = await record_store.list_chunks(section.id)
        assert [c.content for c in listed] == ["c0", "c1", "c2"]

    @pytest.mark.asyncio
    async def test_failed_batch_rolls_back_entirely(self, record_store) -> None:
        doc = await _document(record_store)
        section = await record_store.insert_section(
            SectionRecord(document_id=doc.id, title="A", order_index=0)
        )
        chunks = [
            ChunkRecord(section_id=section.id, content="first", order_index=0, word_count=1),
            ChunkRecord(section_id=section.id, content="clash", order_index=0, word_count=1),
        ]
        with pytest.raises(sqlite3.IntegrityError):
            await record_store.insert_chunks(chunks)

        assert await record_store.list_chunks(section.id) == []

    @pytest.mark.asyncio
    async def test_empty_batch_is_noop(self, record_store) -> None:
        assert await record_store.insert_chunks([]) == 0

    @pytest.mark.asyncio
    async def test_question_options_round_trip(self, record_store) -> None:
        doc = await _document(record_store)
        section = await record_store.insert_section(
            SectionRecord(document_id=doc.id, title="A", order_index=0)
        )
        question = QuestionRecord(
            section_id=section.id,
            question_text="Capital of France?",
            options=["Paris", "Rome", "Oslo", "Bern"],
            correct_answer="Paris",
        )
        await record_store.insert_questions([question])

        (fetched,) = await record_store.list_questions(section.id)
        assert fetched.options == ["Paris", "Rome", "Oslo", "Bern"]
        assert fetched.correct_answer in fetched.options
        assert fetched.explanation == ""

    @pytest.mark.asyncio
    async def test_flashcards_scoped_by_owner_and_source(self, record_store) -> None:
        cards = [
            FlashcardRecord(owner_id="u1", term="ATP", definition="d", source="Biology"),
            FlashcardRecord(
                owner_id="u1",
                term="Force",
                definition="d",
                source="Physics",
                difficulty_level=Difficulty.HARD,
            ),
            FlashcardRecord(owner_id="u2", term="Other", definition="d", source="Biology"),
        ]
        assert await record_store.insert_flashcards(cards) == 3

        assert len(await record_store.list_flashcards("u1")) == 2
        physics = await record_store.list_flashcards("u1", source="Physics")
        assert [c.term for c in physics] == ["Force"]
        assert physics[0].difficulty_level is Difficulty.HARD


# ─── Learning progress and quiz results ───────────────────────────


class TestProgress:
    @pytest.mark.asyncio
    async def test_progress_insert_update_fetch(self, record_store) -> None:
        doc = await _document(record_store)
        progress = await record_store.insert_learning_progress(
            LearningProgressRecord(owner_id="user-1", document_id=doc.id)
        )

        await record_store.update_learning_progress(
            progress.model_copy(
                update={"current_section_id": "s-2", "chunk_size_modifier": 1.25}
            )
        )

        fetched = await record_store.get_learning_progress("user-1", doc.id)
        assert fetched is not None
        assert fetched.id == progress.id
        assert fetched.current_section_id == "s-2"
        assert fetched.chunk_size_modifier == 1.25

    @pytest.mark.asyncio
    async def test_progress_is_owner_scoped(self, record_store) -> None:
        doc = await _document(record_store)
        await record_store.insert_learning_progress(
            LearningProgressRecord(owner_id="user-1", document_id=doc.id)
        )
        assert await record_store.get_learning_progress("someone-else", doc.id) is None

    @pytest.mark.asyncio
    async def test_quiz_result_insert(self, record_store) -> None:
        doc = await _document(record_store)
        section = await record_store.insert_section(
            SectionRecord(document_id=doc.id, title="A", order_index=0)
        )
        result = QuizResultRecord(
            owner_id="u", section_id=section.id, score=50, wrong_answers=["q1"]
        )
        assert await record_store.insert_quiz_result(result) == result


# ─── Foreign keys ─────────────────────────────────────────────────


class TestForeignKeys:
    @pytest.mark.asyncio
    async def test_chunk_for_unknown_section_rejected(self, record_store) -> None:
        with pytest.raises(sqlite3.IntegrityError):
            await record_store.insert_chunks(
                [ChunkRecord(section_id="missing", content="c", order_index=0, word_count=1)]
            )

    @pytest.mark.asyncio
    async def test_section_for_unknown_document_rejected(self, record_store) -> None:
        with pytest.raises(sqlite3.IntegrityError):
            await record_store.insert_section(
                SectionRecord(document_id="missing", title="A", order_index=0)
            )

    @pytest.mark.asyncio
    async def test_quiz_result_for_unknown_section_rejected(self, record_store) -> None:
        with pytest.raises(sqlite3.IntegrityError):
            await record_store.insert_quiz_result(
                QuizResultRecord(owner_id="u", section_id="missing", score=10)
            )

    @pytest.mark.asyncio
    async def test_deleting_document_cascades(self, record_store) -> None:
        doc = await _document(record_store)
        section = await record_store.insert_section(
            SectionRecord(document_id=doc.id, title="A", order_index=0)
        )
        await record_store.insert_chunks(
            [ChunkRecord(section_id=section.id, content="c", order_index=0, word_count=1)]
        )

        async with record_store._connect() as db:
            await db.execute("DELETE FROM documents WHERE id = ?", (doc.id,))
            await db.commit()

        assert await record_store.list_sections(doc.id) == []
        assert await record_store.list_chunks(section.id) == []
