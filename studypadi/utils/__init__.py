"""Utility modules for StudyPadi.

- **errors** -- Domain exception hierarchy rooted at StudyPadiError; each
  ingestion phase raises its own subclass carrying a ``kind`` and a
  user-facing ``title``.
- **logging** -- structlog setup with a dual renderer: coloured console
  output in development, structured JSON in production.
- **text** -- Small text helpers shared by the extractor and persistence
  (word counting, filename-derived titles).
"""

from studypadi.utils.errors import (
    ConfigurationError,
    CorruptFileError,
    EmptyExtractionError,
    ExtractionError,
    ExtractionFailedError,
    FileTooLargeError,
    MalformedResponseError,
    NotFoundError,
    PersistenceError,
    PipelineError,
    ProviderUnavailableError,
    QuotaExhaustedError,
    RateLimitError,
    StructuringError,
    StudyPadiError,
    TooLittleContentError,
    UnsupportedFormatError,
)
from studypadi.utils.logging import configure_logging, get_logger
from studypadi.utils.text import count_words, title_from_filename

__all__ = [
    "ConfigurationError",
    "CorruptFileError",
    "EmptyExtractionError",
    "ExtractionError",
    "ExtractionFailedError",
    "FileTooLargeError",
    "MalformedResponseError",
    "NotFoundError",
    "PersistenceError",
    "PipelineError",
    "ProviderUnavailableError",
    "QuotaExhaustedError",
    "RateLimitError",
    "StructuringError",
    "StudyPadiError",
    "TooLittleContentError",
    "UnsupportedFormatError",
    "configure_logging",
    "count_words",
    "get_logger",
    "title_from_filename",
]
