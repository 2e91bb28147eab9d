"""Central orchestrator for the document ingestion pipeline.

Coordinates text extraction, AI structuring and the persistence fan-out
for one uploaded file.  Each phase updates a frozen
:class:`IngestionState` via ``model_copy`` and broadcasts progress
through the injected :class:`ProgressTracker`.

ARCHITECTURE NOTE:
    The pipeline is a straight line of awaited steps:

        EXTRACTING ──→ STRUCTURING ──→ PERSISTING ──→ DONE
            │               │               │
            └───────────────┴───────────────┴──→ FAILED

    Each phase follows the same pattern:
        1. Update state with the new phase + progress percentage
        2. Broadcast progress via ProgressTracker
        3. Call the phase's service
        4. Update state with its result

    Any phase failure is terminal.  The tracker receives a FAILED update
    carrying an IngestionFailure (phase, kind, title, message) and the
    original typed error is re-raised so the caller can map it to an HTTP
    status or a CLI exit code.  Nothing is retried.

    The pipeline itself keeps nothing between runs.  What survives a run
    is the tracker's SessionStatus, which holds the result or the failure
    but none of the upload bytes, extracted text or structured document.
"""

from __future__ import annotations

from datetime import datetime, timezone

import structlog

from studypadi.models.pipeline import (
    IngestionFailure,
    IngestionPhase,
    IngestionResult,
    IngestionState,
)
from studypadi.pipeline.progress_tracker import ProgressTracker
from studypadi.services.document_structurer import DocumentStructurer
from studypadi.services.persistence import PersistenceFanout
from studypadi.services.text_extractor import TextExtractor
from studypadi.utils.errors import (
    FileTooLargeError,
    PipelineError,
    StudyPadiError,
    TooLittleContentError,
)
from studypadi.utils.logging import get_logger

# Progress percentage broadcast when each phase starts.
_PHASE_PROGRESS: dict[IngestionPhase, float] = {
    IngestionPhase.EXTRACTING: 10.0,
    IngestionPhase.STRUCTURING: 35.0,
    IngestionPhase.PERSISTING: 80.0,
    IngestionPhase.DONE: 100.0,
}

_PHASE_MESSAGES: dict[IngestionPhase, str] = {
    IngestionPhase.EXTRACTING: "Extracting text from document...",
    IngestionPhase.STRUCTURING: "AI is analyzing your document...",
    IngestionPhase.PERSISTING: "Saving sections and flashcards...",
    IngestionPhase.DONE: "Document ready!",
}


class IngestionPipeline:
    """Runs one upload through extraction, structuring and persistence.

    All service dependencies are injected at construction time.

    Parameters
    ----------
    text_extractor, document_structurer, persistence:
        The three phase services.
    progress_tracker:
        Receives one update per transition, including DONE and FAILED,
        and retains the terminal snapshot.
    max_upload_bytes:
        Size cap checked at the start of EXTRACTING.
    min_content_chars:
        Minimum trimmed length of extracted text.
    """

    def __init__(
        self,
        text_extractor: TextExtractor,
        document_structurer: DocumentStructurer,
        persistence: PersistenceFanout,
        progress_tracker: ProgressTracker,
        max_upload_bytes: int = 10 * 1024 * 1024,
        min_content_chars: int = 50,
    ) -> None:
        self._text_extractor = text_extractor
        self._document_structurer = document_structurer
        self._persistence = persistence
        self._progress_tracker = progress_tracker
        self._max_upload_bytes = max_upload_bytes
        self._min_content_chars = min_content_chars
        self._logger: structlog.BoundLogger = get_logger(__name__)

    async def run(self, state: IngestionState) -> IngestionState:
        """Run the full ingestion pipeline.

        Parameters
        ----------
        state:
            Initial state at ``UPLOAD`` carrying the upload and owner.

        Returns
        -------
        IngestionState
            Terminal state at ``DONE`` with ``result`` populated.

        Raises
        ------
        StudyPadiError
            The typed error of the failing phase, unchanged.  Unexpected
            exceptions are wrapped in :class:`PipelineError`.
        """
        if state.current_phase.is_terminal:
            raise PipelineError(
                message=f"Session {state.session_id} already finished "
                f"({state.current_phase.value})"
            )

        session_id = state.session_id
        self._logger.info(
            "ingestion_start",
            session_id=session_id,
            filename=state.upload.filename,
            media_type=state.upload.content_type,
            file_size=state.upload.file_size,
        )

        try:
            # --- EXTRACTING ---
            state = await self._enter(state, IngestionPhase.EXTRACTING)
            if state.upload.file_size > self._max_upload_bytes:
                raise FileTooLargeError()
            text = await self._text_extractor.extract(state.upload)
            if len(text.strip()) < self._min_content_chars:
                raise TooLittleContentError()
            state = state.model_copy(update={"extracted_text": text})

            # --- STRUCTURING ---
            state = await self._enter(state, IngestionPhase.STRUCTURING)
            structured = await self._document_structurer.structure(
                text, filename_hint=state.upload.filename
            )
            state = state.model_copy(update={"structured": structured})

            # --- PERSISTING ---
            state = await self._enter(state, IngestionPhase.PERSISTING)
            summary = await self._persistence.persist(
                state.owner_id, structured, filename_hint=state.upload.filename
            )
        except StudyPadiError as exc:
            await self._fail(state, exc)
            raise
        except Exception as exc:
            wrapped = PipelineError(message=f"{state.current_phase.value} phase failed: {exc}")
            await self._fail(state, wrapped)
            raise wrapped from exc

        # --- DONE ---
        result = IngestionResult.from_summary(summary)
        state = state.model_copy(
            update={
                "current_phase": IngestionPhase.DONE,
                "progress_percent": _PHASE_PROGRESS[IngestionPhase.DONE],
                "result": result,
                "completed_at": datetime.now(tz=timezone.utc),  # noqa: UP017
            }
        )
        await self._progress_tracker.update(
            session_id,
            IngestionPhase.DONE,
            _PHASE_PROGRESS[IngestionPhase.DONE],
            _PHASE_MESSAGES[IngestionPhase.DONE],
            result=result,
        )
        self._logger.info(
            "ingestion_complete",
            session_id=session_id,
            document_id=result.document_id,
            sections=result.sections_count,
            chunks=result.chunks_count,
            questions=result.questions_count,
            flashcards=result.flashcards_count,
        )
        return state

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _enter(self, state: IngestionState, phase: IngestionPhase) -> IngestionState:
        progress = _PHASE_PROGRESS[phase]
        state = state.model_copy(update={"current_phase": phase, "progress_percent": progress})
        await self._progress_tracker.update(
            state.session_id, phase, progress, _PHASE_MESSAGES[phase]
        )
        return state

    async def _fail(self, state: IngestionState, exc: StudyPadiError) -> None:
        failed_phase = state.current_phase
        self._logger.error(
            "ingestion_failed",
            session_id=state.session_id,
            phase=failed_phase.value,
            kind=exc.kind,
            error=str(exc),
        )
        failure = IngestionFailure(
            phase=failed_phase,
            kind=exc.kind,
            title=exc.title,
            message=exc.message,
        )
        await self._progress_tracker.update(
            state.session_id,
            IngestionPhase.FAILED,
            state.progress_percent,
            f"{exc.title}: {exc.message}",
            failure=failure,
        )
