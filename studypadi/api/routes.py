"""FastAPI API routes for the StudyPadi ingestion service.

Provides REST endpoints for document upload, ingestion progress polling,
the document outline, section quiz submission and health checks.  Service
dependencies are resolved from ``app.state`` via FastAPI's ``Depends``
using the ``Annotated`` pattern.

# ─── API ROUTE MAP ────────────────────────────────────────────────────
#
# Endpoint                                  Method  Description
# ─────────────────────────────────────────────────────────────────────
# /api/v1/documents/process                 POST    Upload → extract → structure → persist
# /api/v1/ingestions/{sid}/status           GET     Poll ingestion progress
# /api/v1/documents/{document_id}/outline   GET     Sections, chunks, question counts
# /api/v1/sections/{section_id}/quiz        POST    Grade a section quiz
# /api/v1/health                            GET     Health check + provider status
#
# The caller's identity arrives in the X-User-Id header, set by the
# authenticating gateway in front of this service.  Clients that want
# live progress pick a session id, open /ws/progress/{sid}, then send the
# same id as X-Session-Id on the upload request.
#
# DEPENDENCY INJECTION PATTERN:
# Each route function declares its dependencies as type-annotated params.
# FastAPI resolves these via Depends() which calls helper functions that
# read from app.state (populated at startup by main.py's build_components).
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import uuid
from typing import Annotated, Any

import structlog
from fastapi import APIRouter, Depends, Header, Request, Response, UploadFile

from studypadi import __version__
from studypadi.api.schemas import (
    ErrorResponse,
    HealthResponse,
    QuizSubmissionRequest,
)
from studypadi.interfaces.llm_provider import ILLMProvider
from studypadi.interfaces.record_store import IRecordStore
from studypadi.models.learning import DocumentOutline, QuizOutcome
from studypadi.models.pipeline import IngestionResult, IngestionState, SessionStatus
from studypadi.models.upload import SUPPORTED_MEDIA_TYPES, UploadedFile
from studypadi.pipeline.orchestrator import IngestionPipeline
from studypadi.pipeline.progress_tracker import ProgressTracker
from studypadi.services.learning_service import LearningService
from studypadi.utils.errors import (
    FileTooLargeError,
    NotFoundError,
    PipelineError,
    UnsupportedFormatError,
)
from studypadi.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)

router = APIRouter(prefix="/api/v1")

_DEFAULT_MAX_UPLOAD_BYTES = 10 * 1024 * 1024

# Read uploads in 64 KB increments so an oversized file is rejected
# after buffering at most the cap.
_UPLOAD_CHUNK_SIZE = 64 * 1024


# ---------------------------------------------------------------------------
# Dependency helpers
# ---------------------------------------------------------------------------


def _get_pipeline(request: Request) -> IngestionPipeline:
    """Return the ingestion orchestrator from application state."""
    return request.app.state.pipeline


def _get_progress_tracker(request: Request) -> ProgressTracker:
    """Return the progress tracker from application state."""
    return request.app.state.progress_tracker


def _get_learning_service(request: Request) -> LearningService:
    """Return the learning service from application state."""
    return request.app.state.learning_service


def _get_max_upload_bytes(request: Request) -> int:
    return getattr(request.app.state, "max_upload_bytes", _DEFAULT_MAX_UPLOAD_BYTES)


PipelineDep = Annotated[IngestionPipeline, Depends(_get_pipeline)]
TrackerDep = Annotated[ProgressTracker, Depends(_get_progress_tracker)]
LearningDep = Annotated[LearningService, Depends(_get_learning_service)]
MaxUploadDep = Annotated[int, Depends(_get_max_upload_bytes)]
OwnerHeader = Annotated[str, Header(alias="X-User-Id", min_length=1)]


# ---------------------------------------------------------------------------
# Ingestion
# ---------------------------------------------------------------------------


@router.post(
    "/documents/process",
    response_model=IngestionResult,
    responses={
        413: {"model": ErrorResponse},
        415: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
        429: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
    summary="Upload a study document and turn it into a learning path",
)
async def process_document(
    file: UploadFile,
    response: Response,
    owner_id: OwnerHeader,
    pipeline: PipelineDep,
    max_upload_bytes: MaxUploadDep,
    x_session_id: Annotated[str | None, Header(alias="X-Session-Id")] = None,
) -> IngestionResult:
    """Accept a TXT, PDF or DOCX upload and run the ingestion pipeline."""
    content_type = file.content_type or ""
    if content_type not in SUPPORTED_MEDIA_TYPES:
        raise UnsupportedFormatError()

    # --- Stream upload in chunks, rejecting oversized files early ---
    chunks: list[bytes] = []
    total_size = 0
    while True:
        chunk = await file.read(_UPLOAD_CHUNK_SIZE)
        if not chunk:
            break
        total_size += len(chunk)
        if total_size > max_upload_bytes:
            raise FileTooLargeError()
        chunks.append(chunk)
    data = b"".join(chunks)
    del chunks

    session_id = x_session_id or str(uuid.uuid4())
    response.headers["X-Session-Id"] = session_id

    upload = UploadedFile.from_bytes(
        filename=file.filename or "upload",
        content_type=content_type,
        data=data,
    )
    _logger.info(
        "document_upload_received",
        session_id=session_id,
        filename=upload.filename,
        media_type=content_type,
        file_size=upload.file_size,
    )

    state = IngestionState(session_id=session_id, owner_id=owner_id, upload=upload)
    final_state = await pipeline.run(state)
    if final_state.result is None:
        raise PipelineError(message="Ingestion finished without a result")
    return final_state.result


@router.get(
    "/ingestions/{session_id}/status",
    response_model=SessionStatus,
    responses={404: {"model": ErrorResponse}},
    summary="Poll ingestion progress",
)
async def get_ingestion_status(
    session_id: str,
    tracker: TrackerDep,
) -> SessionStatus:
    """Return the latest phase and progress, with the result on DONE and
    the failure (phase, kind, title, message) on FAILED.

    Sessions are retained up to the tracker's cap; one that was never
    seen or has been evicted is a 404.
    """
    if not tracker.has_session(session_id):
        raise NotFoundError(message=f"Ingestion session {session_id} not found")
    return tracker.get_status(session_id)


# ---------------------------------------------------------------------------
# Study flow
# ---------------------------------------------------------------------------


@router.get(
    "/documents/{document_id}/outline",
    response_model=DocumentOutline,
    responses={404: {"model": ErrorResponse}},
    summary="Document sections with chunk and question counts",
)
async def get_document_outline(
    document_id: str,
    learning: LearningDep,
) -> DocumentOutline:
    return await learning.get_outline(document_id)


@router.post(
    "/sections/{section_id}/quiz",
    response_model=QuizOutcome,
    responses={404: {"model": ErrorResponse}},
    summary="Grade a section quiz and adapt chunk sizing",
)
async def submit_section_quiz(
    section_id: str,
    body: QuizSubmissionRequest,
    owner_id: OwnerHeader,
    learning: LearningDep,
) -> QuizOutcome:
    """Grade the submitted answers and advance the learner's progress."""
    return await learning.submit_quiz(owner_id, section_id, body.answers)


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Application health check",
)
async def health_check(request: Request) -> HealthResponse:
    """Return application health, version, and provider availability."""
    providers: dict[str, Any] = {}

    llm: ILLMProvider | None = getattr(request.app.state, "llm_provider", None)
    if llm is not None:
        providers["llm"] = llm.is_available()
        providers["llm_provider"] = llm.get_provider_name()

    store: IRecordStore | None = getattr(request.app.state, "record_store", None)
    if store is not None:
        providers["store"] = store.get_provider_name()

    status = "healthy" if providers.get("llm", False) and "store" in providers else "degraded"

    return HealthResponse(status=status, version=__version__, providers=providers)
