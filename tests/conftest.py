"""Shared pytest fixtures for the StudyPadi test suite."""

from __future__ import annotations

import io
import json
from collections.abc import Callable
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import docx
import fitz
import pytest

from studypadi.config.settings import Settings
from studypadi.interfaces.llm_provider import ILLMProvider
from studypadi.models.upload import (
    MEDIA_TYPE_DOCX,
    MEDIA_TYPE_PDF,
    MEDIA_TYPE_TEXT,
    UploadedFile,
)
from studypadi.providers.store.sqlite_record_store import SQLiteRecordStore

# ---------------------------------------------------------------------------
# Settings and config
# ---------------------------------------------------------------------------


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings with a test key and a throwaway database path."""
    return Settings(
        llm_api_key="sk-test",
        llm_base_url="",
        llm_model="gpt-4o-mini",
        database_path=str(tmp_path / "studypadi-test.db"),
        app_env="development",
    )


@pytest.fixture
def mock_config() -> dict[str, Any]:
    """Return a minimal merged configuration for testing."""
    return {
        "app": {"name": "StudyPadi", "version": "0.1.0"},
        "structuring": {
            "sections": {"min": 3, "max": 8},
            "chunks_per_section": {"min": 2, "max": 5},
            "chunk_words": {"min": 100, "max": 400},
            "questions_per_section": {"min": 2, "max": 4},
            "flashcards": {"min": 8, "max": 20},
        },
        "adaptive": {
            "grow_threshold": 80,
            "shrink_threshold": 60,
            "grow_factor": 1.25,
            "shrink_factor": 0.75,
            "min_modifier": 0.5,
            "max_modifier": 2.0,
        },
    }


# ---------------------------------------------------------------------------
# Text and documents
# ---------------------------------------------------------------------------


@pytest.fixture
def study_text() -> str:
    """Exactly 500 whitespace-separated words of plain study text."""
    sentence = "Photosynthesis converts light energy into chemical energy inside plant cells daily."
    words = sentence.split()  # 11 words
    body = [words[i % len(words)] for i in range(500)]
    return " ".join(body)


@pytest.fixture
def make_upload() -> Callable[..., UploadedFile]:
    """Factory building an UploadedFile from raw bytes."""

    def _make(
        data: bytes,
        filename: str = "notes.txt",
        content_type: str = MEDIA_TYPE_TEXT,
    ) -> UploadedFile:
        return UploadedFile.from_bytes(filename=filename, content_type=content_type, data=data)

    return _make


def _build_pdf(lines: list[str]) -> bytes:
    doc = fitz.open()
    page = doc.new_page()
    y = 72
    for line in lines:
        page.insert_text((72, y), line, fontsize=11)
        y += 16
    data = doc.tobytes()
    doc.close()
    return data


@pytest.fixture
def pdf_bytes() -> bytes:
    """A one-page PDF with a real text layer."""
    return _build_pdf(
        [
            "Cell Biology Basics",
            "The cell membrane controls what enters and leaves the cell.",
            "Mitochondria produce most of the chemical energy of the cell.",
        ]
    )


@pytest.fixture
def short_text_pdf_bytes() -> bytes:
    """A PDF whose text layer is shorter than 20 characters once trimmed."""
    return _build_pdf(["Fig. 1"])


@pytest.fixture
def blank_pdf_bytes() -> bytes:
    """A PDF with a page but no text layer at all, like a scan."""
    doc = fitz.open()
    doc.new_page()
    data = doc.tobytes()
    doc.close()
    return data


@pytest.fixture
def docx_bytes() -> bytes:
    """A DOCX with two paragraphs."""
    document = docx.Document()
    document.add_paragraph("Newton's first law describes inertia.")
    document.add_paragraph("Force equals mass times acceleration.")
    buf = io.BytesIO()
    document.save(buf)
    return buf.getvalue()


@pytest.fixture
def pdf_upload(make_upload, pdf_bytes) -> UploadedFile:
    return make_upload(pdf_bytes, filename="biology.pdf", content_type=MEDIA_TYPE_PDF)


@pytest.fixture
def docx_upload(make_upload, docx_bytes) -> UploadedFile:
    return make_upload(docx_bytes, filename="physics.docx", content_type=MEDIA_TYPE_DOCX)


# ---------------------------------------------------------------------------
# Structuring payloads
# ---------------------------------------------------------------------------


def _question(n: int) -> dict[str, Any]:
    return {
        "question_text": f"Question {n}?",
        "options": [f"A{n}", f"B{n}", f"C{n}", f"D{n}"],
        "correct_answer": f"B{n}",
        "explanation": f"B{n} is right.",
    }


@pytest.fixture
def structured_payload() -> dict[str, Any]:
    """A well-formed AI answer: 2 sections, 2 chunks and 2 questions each, 3 flashcards."""
    return {
        "title": "Cell Biology",
        "sections": [
            {
                "title": "Membranes",
                "chunks": [
                    {"content": "The membrane is a lipid bilayer."},
                    {"content": "Proteins in the membrane move molecules across it."},
                ],
                "questions": [_question(1), _question(2)],
            },
            {
                "title": "Energy",
                "chunks": [
                    {"content": "Mitochondria make ATP."},
                    {"content": "ATP stores energy in phosphate bonds."},
                ],
                "questions": [_question(3), _question(4)],
            },
        ],
        "flashcards": [
            {"term": "ATP", "definition": "Energy currency", "difficulty_level": "easy"},
            {"term": "Bilayer", "definition": "Two lipid layers", "difficulty_level": "medium"},
            {"term": "Osmosis", "definition": "Water diffusion", "difficulty_level": "hard"},
        ],
    }


@pytest.fixture
def structured_json(structured_payload) -> str:
    return json.dumps(structured_payload)


# ---------------------------------------------------------------------------
# Provider mocks and real adapters
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_llm(structured_json) -> MagicMock:
    """ILLMProvider mock answering with ``structured_json``."""
    llm = MagicMock(spec=ILLMProvider)
    llm.complete_structured = AsyncMock(return_value=structured_json)
    llm.get_provider_name.return_value = "mock-llm"
    llm.is_available.return_value = True
    return llm


@pytest.fixture
async def record_store(tmp_path: Path) -> SQLiteRecordStore:
    """An initialized SQLite record store in a temp directory."""
    store = SQLiteRecordStore(db_path=tmp_path / "records.db")
    await store.initialize()
    return store
