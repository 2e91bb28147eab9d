"""Integration tests for IngestionPipeline.

Real extractor, structurer, fan-out and SQLite store; only the LLM
provider is mocked.
"""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from studypadi.interfaces.record_store import IRecordStore
from studypadi.models.pipeline import IngestionPhase, IngestionState, SessionStatus
from studypadi.models.upload import MEDIA_TYPE_PDF, UploadedFile
from studypadi.pipeline.orchestrator import IngestionPipeline
from studypadi.pipeline.progress_tracker import ProgressTracker
from studypadi.services.document_structurer import DocumentStructurer
from studypadi.services.persistence import PersistenceFanout
from studypadi.services.text_extractor import TextExtractor
from studypadi.utils.errors import (
    EmptyExtractionError,
    FileTooLargeError,
    PipelineError,
    ProviderUnavailableError,
    TooLittleContentError,
)

OWNER = "user-42"


def _pipeline(llm, store, tracker: ProgressTracker | None = None, **kwargs) -> IngestionPipeline:
    return IngestionPipeline(
        text_extractor=TextExtractor(),
        document_structurer=DocumentStructurer(llm_provider=llm),
        persistence=PersistenceFanout(store),
        progress_tracker=tracker or ProgressTracker(),
        **kwargs,
    )


def _state(upload: UploadedFile, session_id: str = "sess-1") -> IngestionState:
    return IngestionState(session_id=session_id, owner_id=OWNER, upload=upload)


def _recording_tracker() -> tuple[ProgressTracker, list[IngestionPhase]]:
    tracker = ProgressTracker()
    phases: list[IngestionPhase] = []

    def _listener(status: SessionStatus) -> None:
        phases.append(status.phase)

    tracker.register_listener("sess-1", _listener)
    return tracker, phases


def _two_by_two_payload() -> str:
    return json.dumps(
        {
            "title": "Photosynthesis",
            "sections": [
                {
                    "title": f"Part {s}",
                    "chunks": [{"content": f"part {s} chunk {c}"} for c in range(2)],
                    "questions": [],
                }
                for s in range(2)
            ],
            "flashcards": [
                {"term": "Chlorophyll", "definition": "Green pigment", "difficulty_level": "easy"}
            ],
        }
    )


# ======================================================================
# Successful runs
# ======================================================================


class TestSuccessfulIngestion:
    @pytest.mark.asyncio
    async def test_text_upload_end_to_end(self, mock_llm, record_store, make_upload, study_text) -> None:
        mock_llm.complete_structured = AsyncMock(return_value=_two_by_two_payload())
        tracker, phases = _recording_tracker()
        pipeline = _pipeline(mock_llm, record_store, tracker)

        final = await pipeline.run(_state(make_upload(study_text.encode("utf-8"))))

        assert final.current_phase is IngestionPhase.DONE
        assert final.progress_percent == 100.0
        result = final.result
        assert result is not None
        assert (
            result.sections_count,
            result.chunks_count,
            result.questions_count,
            result.flashcards_count,
        ) == (2, 4, 0, 1)
        assert result.title == "Photosynthesis"

        progress = await record_store.get_learning_progress(OWNER, result.document_id)
        assert progress is not None
        assert progress.id == result.progress_id

        assert phases == [
            IngestionPhase.EXTRACTING,
            IngestionPhase.STRUCTURING,
            IngestionPhase.PERSISTING,
            IngestionPhase.DONE,
        ]
        status = tracker.get_status("sess-1")
        assert status.phase is IngestionPhase.DONE
        assert status.result == result
        assert status.failure is None

    @pytest.mark.asyncio
    async def test_result_serializes_camel_case(self, mock_llm, record_store, make_upload, study_text) -> None:
        pipeline = _pipeline(mock_llm, record_store)

        final = await pipeline.run(_state(make_upload(study_text.encode("utf-8"))))

        body = final.result.model_dump(by_alias=True)
        assert set(body) == {
            "documentId",
            "title",
            "sectionsCount",
            "chunksCount",
            "questionsCount",
            "flashcardsCount",
            "progressId",
        }

    @pytest.mark.asyncio
    async def test_pdf_and_docx_uploads(self, mock_llm, record_store, pdf_upload, docx_upload) -> None:
        pipeline = _pipeline(mock_llm, record_store)

        pdf_final = await pipeline.run(_state(pdf_upload, "pdf"))
        docx_final = await pipeline.run(_state(docx_upload, "docx"))

        assert pdf_final.current_phase is IngestionPhase.DONE
        assert "Mitochondria" in pdf_final.extracted_text
        assert docx_final.current_phase is IngestionPhase.DONE
        assert "inertia" in docx_final.extracted_text

    @pytest.mark.asyncio
    async def test_untitled_answer_uses_filename(self, mock_llm, record_store, make_upload, study_text) -> None:
        mock_llm.complete_structured = AsyncMock(
            return_value='{"sections": [{"title": "Only", "chunks": [{"content": "x"}]}]}'
        )
        pipeline = _pipeline(mock_llm, record_store)

        final = await pipeline.run(
            _state(make_upload(study_text.encode("utf-8"), filename="Week 3 Notes.txt"))
        )

        assert final.result.title == "Week 3 Notes"


# ======================================================================
# Failures
# ======================================================================


class TestFailedIngestion:
    @pytest.mark.asyncio
    async def test_too_little_content_skips_structuring(self, mock_llm, record_store, make_upload) -> None:
        tracker, phases = _recording_tracker()
        pipeline = _pipeline(mock_llm, record_store, tracker)

        with pytest.raises(TooLittleContentError):
            await pipeline.run(_state(make_upload(b"Too short.")))

        assert mock_llm.complete_structured.await_count == 0
        assert phases == [IngestionPhase.EXTRACTING, IngestionPhase.FAILED]

        failure = tracker.get_status("sess-1").failure
        assert failure.kind == "TooLittleContent"
        assert failure.phase is IngestionPhase.EXTRACTING

    @pytest.mark.asyncio
    async def test_scanned_pdf_never_reaches_store(self, mock_llm, make_upload, short_text_pdf_bytes) -> None:
        store = MagicMock(spec=IRecordStore)
        tracker = ProgressTracker()
        pipeline = _pipeline(mock_llm, store, tracker)
        upload = make_upload(short_text_pdf_bytes, filename="scan.pdf", content_type=MEDIA_TYPE_PDF)

        with pytest.raises(EmptyExtractionError) as exc_info:
            await pipeline.run(_state(upload))

        status = tracker.get_status("sess-1")
        assert status.phase is IngestionPhase.FAILED
        assert status.failure.title == exc_info.value.title
        assert status.message == f"{exc_info.value.title}: {exc_info.value.message}"
        mock_llm.complete_structured.assert_not_called()
        assert store.method_calls == []

    @pytest.mark.asyncio
    async def test_provider_error_propagates_unchanged(self, mock_llm, record_store, make_upload, study_text) -> None:
        mock_llm.complete_structured = AsyncMock(
            side_effect=ProviderUnavailableError(provider_name="openai")
        )
        tracker = ProgressTracker()
        pipeline = _pipeline(mock_llm, record_store, tracker)

        with pytest.raises(ProviderUnavailableError):
            await pipeline.run(_state(make_upload(study_text.encode("utf-8"))))

        failure = tracker.get_status("sess-1").failure
        assert failure.phase is IngestionPhase.STRUCTURING
        assert failure.kind == "ServiceUnavailable"

    @pytest.mark.asyncio
    async def test_unexpected_exception_is_wrapped(self, mock_llm, record_store, make_upload, study_text) -> None:
        mock_llm.complete_structured = AsyncMock(side_effect=RuntimeError("boom"))
        pipeline = _pipeline(mock_llm, record_store)

        with pytest.raises(PipelineError) as exc_info:
            await pipeline.run(_state(make_upload(study_text.encode("utf-8"))))

        assert exc_info.value.kind == "PipelineFailed"
        assert isinstance(exc_info.value.__cause__, RuntimeError)

    @pytest.mark.asyncio
    async def test_oversized_upload_rejected(self, mock_llm, record_store, make_upload, study_text) -> None:
        pipeline = _pipeline(mock_llm, record_store, max_upload_bytes=100)

        with pytest.raises(FileTooLargeError):
            await pipeline.run(_state(make_upload(study_text.encode("utf-8"))))

        mock_llm.complete_structured.assert_not_called()

    @pytest.mark.asyncio
    async def test_terminal_state_cannot_rerun(self, mock_llm, record_store, make_upload, study_text) -> None:
        pipeline = _pipeline(mock_llm, record_store)
        final = await pipeline.run(_state(make_upload(study_text.encode("utf-8"))))

        with pytest.raises(PipelineError):
            await pipeline.run(final)


# ======================================================================
# Session retention
# ======================================================================


class TestSessionRetention:
    @pytest.mark.asyncio
    async def test_only_recent_sessions_are_kept(self, mock_llm, record_store, make_upload, study_text) -> None:
        tracker = ProgressTracker(max_sessions=5)
        pipeline = _pipeline(mock_llm, record_store, tracker)
        upload = make_upload(study_text.encode("utf-8"))

        for i in range(8):
            await pipeline.run(_state(upload, f"run-{i}"))
        with pytest.raises(TooLittleContentError):
            await pipeline.run(_state(make_upload(b"Too short."), "run-8"))

        kept = [f"run-{i}" for i in range(9) if tracker.has_session(f"run-{i}")]
        assert kept == [f"run-{i}" for i in range(4, 9)]
        assert tracker.get_status("run-7").result is not None
        assert tracker.get_status("run-8").failure.kind == "TooLittleContent"

    @pytest.mark.asyncio
    async def test_snapshot_holds_no_document_content(self, mock_llm, record_store, make_upload, study_text) -> None:
        tracker = ProgressTracker()
        pipeline = _pipeline(mock_llm, record_store, tracker)

        await pipeline.run(_state(make_upload(study_text.encode("utf-8"))))

        body = tracker.get_status("sess-1").model_dump()
        assert set(body) == {
            "session_id",
            "phase",
            "progress",
            "message",
            "result",
            "failure",
            "updated_at",
        }
        assert study_text[:40] not in repr(body)
