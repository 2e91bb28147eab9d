"""StudyPadi FastAPI application entry point.

Wires together providers, services and routes via dependency injection.
Loads configuration from ``.env`` and ``config/config.yaml`` and
configures structured logging.

``build_components`` is also used by the CLI (``python -m studypadi.cli``)
to run the same pipeline outside the web server.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any

import structlog
import uvicorn
from fastapi import FastAPI, WebSocket

from studypadi import __version__
from studypadi.api.middleware import (
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    configure_cors,
)
from studypadi.api.routes import router as api_router
from studypadi.api.websocket import websocket_progress
from studypadi.config.loader import load_config
from studypadi.config.settings import Settings
from studypadi.interfaces.llm_provider import ILLMProvider
from studypadi.interfaces.record_store import IRecordStore
from studypadi.pipeline.orchestrator import IngestionPipeline
from studypadi.pipeline.progress_tracker import ProgressTracker
from studypadi.providers.llm.openai_provider import OpenAILLMProvider
from studypadi.providers.store.sqlite_record_store import SQLiteRecordStore
from studypadi.services.document_structurer import DocumentStructurer, StructuringPolicy
from studypadi.services.learning_service import AdaptivePolicy, LearningService
from studypadi.services.persistence import PersistenceFanout
from studypadi.services.text_extractor import TextExtractor
from studypadi.utils.logging import configure_logging, get_logger

# ---------------------------------------------------------------------------
# Module-level settings & logging
# ---------------------------------------------------------------------------

settings = Settings()
config = load_config(settings=settings)

configure_logging(
    log_level=settings.log_level,
    json_output=(settings.app_env == "production"),
)
_logger: structlog.BoundLogger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Component wiring
# ---------------------------------------------------------------------------


def build_components(
    app_settings: Settings,
    app_config: dict[str, Any] | None = None,
    *,
    llm_provider: ILLMProvider | None = None,
    record_store: IRecordStore | None = None,
) -> dict[str, Any]:
    """Construct every provider and service instance for the application.

    Parameters
    ----------
    app_settings:
        Environment-derived settings.
    app_config:
        Merged YAML config; supplies the structuring and adaptive policies.
    llm_provider, record_store:
        Optional pre-built adapters.  Tests inject fakes here.

    Returns
    -------
    dict
        A flat dict of named components to be stored on ``app.state``.
    """
    app_config = app_config or {}

    # -- Adapters --
    llm = llm_provider or OpenAILLMProvider(settings=app_settings)
    store = record_store or SQLiteRecordStore(db_path=app_settings.database_path)

    # -- Services --
    text_extractor = TextExtractor(min_pdf_text_chars=app_settings.min_pdf_text_chars)
    document_structurer = DocumentStructurer(
        llm_provider=llm,
        policy=StructuringPolicy.from_config(app_config),
        min_content_chars=app_settings.min_content_chars,
        max_input_chars=app_settings.max_input_chars,
        temperature=app_settings.llm_temperature,
        max_tokens=app_settings.llm_max_tokens,
    )
    persistence = PersistenceFanout(
        store=store,
        concurrent_sections=app_settings.persist_sections_concurrently,
    )
    learning_service = LearningService(
        store=store,
        policy=AdaptivePolicy.from_config(app_config),
    )

    # -- Pipeline --
    progress_tracker = ProgressTracker(max_sessions=app_settings.max_tracked_sessions)
    pipeline = IngestionPipeline(
        text_extractor=text_extractor,
        document_structurer=document_structurer,
        persistence=persistence,
        progress_tracker=progress_tracker,
        max_upload_bytes=app_settings.max_upload_bytes,
        min_content_chars=app_settings.min_content_chars,
    )

    return {
        "settings": app_settings,
        "llm_provider": llm,
        "record_store": store,
        "text_extractor": text_extractor,
        "document_structurer": document_structurer,
        "persistence": persistence,
        "learning_service": learning_service,
        "progress_tracker": progress_tracker,
        "pipeline": pipeline,
        "max_upload_bytes": app_settings.max_upload_bytes,
    }


# ---------------------------------------------------------------------------
# Application lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def _lifespan(application: FastAPI):  # noqa: ANN201
    """Initialise providers and services on startup."""
    components = build_components(settings, config)

    for key, value in components.items():
        setattr(application.state, key, value)

    await components["record_store"].initialize()

    if not settings.is_llm_configured():
        _logger.warning(
            "llm_not_configured",
            message="LLM_API_KEY is empty; document structuring will fail",
        )

    _logger.info(
        "app_startup",
        version=__version__,
        environment=settings.app_env,
        llm_provider=components["llm_provider"].get_provider_name(),
        database_path=settings.database_path,
    )

    yield

    _logger.info("app_shutdown")


# ---------------------------------------------------------------------------
# FastAPI application factory
# ---------------------------------------------------------------------------


def create_app() -> FastAPI:
    """Build and configure the FastAPI application."""
    application = FastAPI(
        title="StudyPadi API",
        version=__version__,
        description=(
            "Upload a TXT, PDF or DOCX study document and get back a "
            "learning path: ordered sections of bite-sized chunks, "
            "multiple-choice questions per section, and flashcards."
        ),
        lifespan=_lifespan,
    )

    # -- Middleware (order matters: last added = first executed) --
    application.add_middleware(ErrorHandlingMiddleware)
    application.add_middleware(RequestLoggingMiddleware)
    configure_cors(application)

    # -- API routes --
    application.include_router(api_router)

    # -- WebSocket --
    @application.websocket("/ws/progress/{session_id}")
    async def ws_progress(websocket: WebSocket, session_id: str) -> None:
        await websocket_progress(websocket, session_id)

    return application


app = create_app()

# ---------------------------------------------------------------------------
# Server entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    uvicorn.run(
        "studypadi.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=(settings.app_env == "development"),
    )
