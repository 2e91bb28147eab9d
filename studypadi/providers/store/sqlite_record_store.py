"""SQLite-backed StudyPadi record store.

# ─── ARCHITECTURE ROLE ───────────────────────────────────────────────
#
# Layer: Providers (concrete adapter implementing IRecordStore).
# Pattern: Adapter pattern. Wraps SQLite behind the IRecordStore ABC so
#          the persistence backend can be swapped for a hosted store
#          without touching the persistence fan-out.
#
# Database: ``data/studypadi.db`` (``DATABASE_PATH`` overrides).
#
# Each public method opens its own connection, so concurrent section
# branches never share a cursor.  Batch inserts run inside a single
# transaction via ``executemany``: a failing row rolls the whole batch
# back, which matches the all-or-nothing batch contract.
#
# Uses ``aiosqlite`` for async I/O and ``PRAGMA journal_mode=WAL`` for
# concurrent read safety.  SQLite enforces foreign keys per connection, so
# ``_connect`` switches ``PRAGMA foreign_keys`` on for every connection;
# a child row pointing at a missing parent is rejected, and a document
# deleted in SQL takes its sections and everything under them along.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import json
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

import aiosqlite
import structlog

from studypadi.interfaces.record_store import IRecordStore
from studypadi.models.records import (
    ChunkRecord,
    DocumentRecord,
    FlashcardRecord,
    LearningProgressRecord,
    QuestionRecord,
    QuizResultRecord,
    SectionRecord,
)
from studypadi.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)

_DEFAULT_DB_PATH = Path("data/studypadi.db")

# ── Schema DDL ────────────────────────────────────────────────────────

_CREATE_TABLES = [
    """\
CREATE TABLE IF NOT EXISTS documents (
    id                TEXT PRIMARY KEY,
    owner_id          TEXT NOT NULL,
    title             TEXT NOT NULL,
    original_filename TEXT,
    created_at        TEXT NOT NULL
);
""",
    """\
CREATE TABLE IF NOT EXISTS sections (
    id          TEXT PRIMARY KEY,
    document_id TEXT    NOT NULL REFERENCES documents(id) ON DELETE CASCADE,
    title       TEXT    NOT NULL,
    order_index INTEGER NOT NULL,
    completed   INTEGER NOT NULL DEFAULT 0,
    created_at  TEXT    NOT NULL,
    UNIQUE(document_id, order_index)
);
""",
    """\
CREATE TABLE IF NOT EXISTS chunks (
    id          TEXT PRIMARY KEY,
    section_id  TEXT    NOT NULL REFERENCES sections(id) ON DELETE CASCADE,
    content     TEXT    NOT NULL,
    order_index INTEGER NOT NULL,
    word_count  INTEGER NOT NULL DEFAULT 0,
    created_at  TEXT    NOT NULL,
    UNIQUE(section_id, order_index)
);
""",
    """\
CREATE TABLE IF NOT EXISTS questions (
    id             TEXT PRIMARY KEY,
    section_id     TEXT NOT NULL REFERENCES sections(id) ON DELETE CASCADE,
    question_text  TEXT NOT NULL,
    options        TEXT NOT NULL,
    correct_answer TEXT NOT NULL,
    explanation    TEXT NOT NULL DEFAULT '',
    created_at     TEXT NOT NULL
);
""",
    """\
CREATE TABLE IF NOT EXISTS flashcards (
    id               TEXT PRIMARY KEY,
    owner_id         TEXT    NOT NULL,
    term             TEXT    NOT NULL,
    definition       TEXT    NOT NULL,
    difficulty_level TEXT    NOT NULL DEFAULT 'medium',
    source           TEXT    NOT NULL,
    times_reviewed   INTEGER NOT NULL DEFAULT 0,
    created_at       TEXT    NOT NULL
);
""",
    """\
CREATE TABLE IF NOT EXISTS learning_progress (
    id                  TEXT PRIMARY KEY,
    owner_id            TEXT NOT NULL,
    document_id         TEXT NOT NULL REFERENCES documents(id) ON DELETE CASCADE,
    current_section_id  TEXT,
    current_chunk_id    TEXT,
    chunk_size_modifier REAL NOT NULL DEFAULT 1.0,
    last_accessed_at    TEXT NOT NULL
);
""",
    """\
CREATE TABLE IF NOT EXISTS quiz_results (
    id            TEXT PRIMARY KEY,
    owner_id      TEXT    NOT NULL,
    section_id    TEXT    NOT NULL REFERENCES sections(id) ON DELETE CASCADE,
    score         INTEGER NOT NULL,
    wrong_answers TEXT    NOT NULL DEFAULT '[]',
    completed_at  TEXT    NOT NULL
);
""",
]

_CREATE_INDICES = [
    "CREATE INDEX IF NOT EXISTS idx_documents_owner ON documents(owner_id);",
    "CREATE INDEX IF NOT EXISTS idx_sections_document ON sections(document_id);",
    "CREATE INDEX IF NOT EXISTS idx_chunks_section ON chunks(section_id);",
    "CREATE INDEX IF NOT EXISTS idx_questions_section ON questions(section_id);",
    "CREATE INDEX IF NOT EXISTS idx_flashcards_owner ON flashcards(owner_id);",
    "CREATE INDEX IF NOT EXISTS idx_progress_owner_doc "
    "ON learning_progress(owner_id, document_id);",
]

# ── DML ───────────────────────────────────────────────────────────────

_INSERT_DOCUMENT = (
    "INSERT INTO documents (id, owner_id, title, original_filename, created_at) "
    "VALUES (?, ?, ?, ?, ?)"
)
_INSERT_SECTION = (
    "INSERT INTO sections (id, document_id, title, order_index, completed, created_at) "
    "VALUES (?, ?, ?, ?, ?, ?)"
)
_INSERT_CHUNK = (
    "INSERT INTO chunks (id, section_id, content, order_index, word_count, created_at) "
    "VALUES (?, ?, ?, ?, ?, ?)"
)
_INSERT_QUESTION = (
    "INSERT INTO questions "
    "(id, section_id, question_text, options, correct_answer, explanation, created_at) "
    "VALUES (?, ?, ?, ?, ?, ?, ?)"
)
_INSERT_FLASHCARD = (
    "INSERT INTO flashcards "
    "(id, owner_id, term, definition, difficulty_level, source, times_reviewed, created_at) "
    "VALUES (?, ?, ?, ?, ?, ?, ?, ?)"
)
_INSERT_PROGRESS = (
    "INSERT INTO learning_progress "
    "(id, owner_id, document_id, current_section_id, current_chunk_id, "
    "chunk_size_modifier, last_accessed_at) "
    "VALUES (?, ?, ?, ?, ?, ?, ?)"
)
_UPDATE_PROGRESS = (
    "UPDATE learning_progress SET current_section_id = ?, current_chunk_id = ?, "
    "chunk_size_modifier = ?, last_accessed_at = ? WHERE id = ?"
)
_INSERT_QUIZ_RESULT = (
    "INSERT INTO quiz_results (id, owner_id, section_id, score, wrong_answers, completed_at) "
    "VALUES (?, ?, ?, ?, ?, ?)"
)


class SQLiteRecordStore(IRecordStore):
    """SQLite-backed StudyPadi record persistence."""

    def __init__(self, db_path: str | Path = _DEFAULT_DB_PATH) -> None:
        self._db_path = Path(db_path)

    async def initialize(self) -> None:
        """Create all tables and indices if they don't exist."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        async with self._connect() as db:
            # WAL mode enables concurrent readers while a writer is active.
            await db.execute("PRAGMA journal_mode=WAL;")
            for table_sql in _CREATE_TABLES:
                await db.execute(table_sql)
            for idx_sql in _CREATE_INDICES:
                await db.execute(idx_sql)
            await db.commit()
        _logger.info("record_store_initialized", path=str(self._db_path))

    def get_provider_name(self) -> str:
        return "sqlite"

    # ── Writes ─────────────────────────────────────────────────────────

    async def insert_document(self, record: DocumentRecord) -> DocumentRecord:
        async with self._connect() as db:
            await db.execute(_INSERT_DOCUMENT, (
                record.id,
                record.owner_id,
                record.title,
                record.original_filename,
                record.created_at.isoformat(),
            ))
            await db.commit()
        return record

    async def insert_section(self, record: SectionRecord) -> SectionRecord:
        async with self._connect() as db:
            await db.execute(_INSERT_SECTION, (
                record.id,
                record.document_id,
                record.title,
                record.order_index,
                int(record.completed),
                record.created_at.isoformat(),
            ))
            await db.commit()
        return record

    async def insert_chunks(self, records: list[ChunkRecord]) -> int:
        rows = [
            (r.id, r.section_id, r.content, r.order_index, r.word_count, r.created_at.isoformat())
            for r in records
        ]
        return await self._insert_batch(_INSERT_CHUNK, rows)

    async def insert_questions(self, records: list[QuestionRecord]) -> int:
        rows = [
            (
                r.id,
                r.section_id,
                r.question_text,
                json.dumps(r.options),
                r.correct_answer,
                r.explanation,
                r.created_at.isoformat(),
            )
            for r in records
        ]
        return await self._insert_batch(_INSERT_QUESTION, rows)

    async def insert_flashcards(self, records: list[FlashcardRecord]) -> int:
        rows = [
            (
                r.id,
                r.owner_id,
                r.term,
                r.definition,
                r.difficulty_level.value,
                r.source,
                r.times_reviewed,
                r.created_at.isoformat(),
            )
            for r in records
        ]
        return await self._insert_batch(_INSERT_FLASHCARD, rows)

    async def insert_learning_progress(
        self, record: LearningProgressRecord
    ) -> LearningProgressRecord:
        async with self._connect() as db:
            await db.execute(_INSERT_PROGRESS, (
                record.id,
                record.owner_id,
                record.document_id,
                record.current_section_id,
                record.current_chunk_id,
                record.chunk_size_modifier,
                record.last_accessed_at.isoformat(),
            ))
            await db.commit()
        return record

    async def update_learning_progress(self, record: LearningProgressRecord) -> None:
        async with self._connect() as db:
            await db.execute(_UPDATE_PROGRESS, (
                record.current_section_id,
                record.current_chunk_id,
                record.chunk_size_modifier,
                record.last_accessed_at.isoformat(),
                record.id,
            ))
            await db.commit()

    async def mark_section_completed(self, section_id: str) -> None:
        async with self._connect() as db:
            await db.execute(
                "UPDATE sections SET completed = 1 WHERE id = ?", (section_id,)
            )
            await db.commit()

    async def insert_quiz_result(self, record: QuizResultRecord) -> QuizResultRecord:
        async with self._connect() as db:
            await db.execute(_INSERT_QUIZ_RESULT, (
                record.id,
                record.owner_id,
                record.section_id,
                record.score,
                json.dumps(record.wrong_answers),
                record.completed_at.isoformat(),
            ))
            await db.commit()
        return record

    # ── Reads ──────────────────────────────────────────────────────────

    async def get_document(self, document_id: str) -> DocumentRecord | None:
        row = await self._fetch_one(
            "SELECT * FROM documents WHERE id = ?", (document_id,)
        )
        return DocumentRecord(**row) if row else None

    async def get_section(self, section_id: str) -> SectionRecord | None:
        row = await self._fetch_one(
            "SELECT * FROM sections WHERE id = ?", (section_id,)
        )
        return self._row_to_section(row) if row else None

    async def list_sections(self, document_id: str) -> list[SectionRecord]:
        rows = await self._fetch_all(
            "SELECT * FROM sections WHERE document_id = ? ORDER BY order_index",
            (document_id,),
        )
        return [self._row_to_section(r) for r in rows]

    async def list_chunks(self, section_id: str) -> list[ChunkRecord]:
        rows = await self._fetch_all(
            "SELECT * FROM chunks WHERE section_id = ? ORDER BY order_index",
            (section_id,),
        )
        return [ChunkRecord(**r) for r in rows]

    async def list_questions(self, section_id: str) -> list[QuestionRecord]:
        rows = await self._fetch_all(
            "SELECT * FROM questions WHERE section_id = ? ORDER BY rowid",
            (section_id,),
        )
        return [
            QuestionRecord(**{**r, "options": json.loads(r["options"])}) for r in rows
        ]

    async def list_flashcards(
        self, owner_id: str, source: str | None = None
    ) -> list[FlashcardRecord]:
        sql = "SELECT * FROM flashcards WHERE owner_id = ?"
        params: list[Any] = [owner_id]
        if source is not None:
            sql += " AND source = ?"
            params.append(source)
        rows = await self._fetch_all(sql + " ORDER BY rowid", tuple(params))
        return [FlashcardRecord(**r) for r in rows]

    async def get_learning_progress(
        self, owner_id: str, document_id: str
    ) -> LearningProgressRecord | None:
        row = await self._fetch_one(
            "SELECT * FROM learning_progress WHERE owner_id = ? AND document_id = ? "
            "ORDER BY last_accessed_at DESC LIMIT 1",
            (owner_id, document_id),
        )
        return LearningProgressRecord(**row) if row else None

    # ── Private helpers ────────────────────────────────────────────────

    @asynccontextmanager
    async def _connect(self) -> AsyncIterator[aiosqlite.Connection]:
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute("PRAGMA foreign_keys=ON;")
            yield db

    async def _insert_batch(self, sql: str, rows: list[tuple]) -> int:
        """Insert all rows in one transaction; nothing is kept if any row fails."""
        if not rows:
            return 0
        async with self._connect() as db:
            try:
                await db.executemany(sql, rows)
                await db.commit()
            except Exception:
                await db.rollback()
                raise
        return len(rows)

    async def _fetch_one(self, sql: str, params: tuple) -> dict[str, Any] | None:
        async with self._connect() as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(sql, params)
            row = await cursor.fetchone()
        return dict(row) if row else None

    async def _fetch_all(self, sql: str, params: tuple) -> list[dict[str, Any]]:
        async with self._connect() as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(sql, params)
            rows = await cursor.fetchall()
        return [dict(r) for r in rows]

    @staticmethod
    def _row_to_section(row: dict[str, Any]) -> SectionRecord:
        return SectionRecord(**{**row, "completed": bool(row["completed"])})
