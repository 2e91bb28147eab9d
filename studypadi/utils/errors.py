"""Custom exception hierarchy for StudyPadi.

All application exceptions inherit from :class:`StudyPadiError`, which
carries an optional ``provider_name`` so error handlers can identify which
external service (e.g. "openai", "pymupdf", "sqlite") caused the failure.

Every concrete error also exposes two class-level attributes used by the
API layer and the progress tracker:

    kind   -- stable machine-readable category (e.g. ``"RateLimited"``)
    title  -- short user-facing headline for the failure notification

The hierarchy is organized by ingestion phase:

    StudyPadiError  (base -- catch-all for any StudyPadi error)
    +-- UnsupportedFormatError     (upload: declared media type not accepted)
    +-- FileTooLargeError          (upload: size cap exceeded)
    +-- ExtractionError            (Phase 1: file-to-text extraction)
    |   +-- EmptyExtractionError   (no embedded text layer)
    |   +-- CorruptFileError       (not a valid PDF / DOCX container)
    |   +-- ExtractionFailedError  (any other parser failure)
    +-- TooLittleContentError      (extracted text below minimum length)
    +-- StructuringError           (Phase 2: LLM structuring call)
    |   +-- RateLimitError         (gateway answered 429)
    |   +-- QuotaExhaustedError    (gateway answered 402)
    |   +-- MalformedResponseError (2xx but unusable body)
    |   +-- ProviderUnavailableError (any other failure / timeout)
    +-- PersistenceError           (Phase 3: the document row itself)
    +-- PipelineError              (orchestration / phase transitions)
    +-- ConfigurationError         (startup / missing config)
    +-- NotFoundError              (study flow: unknown document or section)
"""


class StudyPadiError(Exception):
    """Base exception for all StudyPadi errors.

    Every subclass carries a human-readable ``message`` and an optional
    ``provider_name`` identifying which external service triggered the
    error.  The ``__str__`` method prefixes the provider name in brackets
    for structured log output, e.g. ``[openai] Rate limit exceeded``.
    """

    kind: str = "Unknown"
    title: str = "Something went wrong"

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


# ---------------------------------------------------------------------------
# Upload validation errors
# ---------------------------------------------------------------------------

class UnsupportedFormatError(StudyPadiError):
    """Raised when the declared media type is not plain text, PDF or DOCX."""

    kind = "UnsupportedFormat"
    title = "Invalid file type"

    def __init__(
        self,
        message: str = "Please upload a PDF, DOCX, or TXT file.",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class FileTooLargeError(StudyPadiError):
    """Raised when an upload exceeds the configured size cap."""

    kind = "FileTooLarge"
    title = "File too large"

    def __init__(
        self,
        message: str = "Please upload a file smaller than 10MB.",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Phase 1: Extraction errors
# ---------------------------------------------------------------------------

class ExtractionError(StudyPadiError):
    """Base class for file-to-text extraction failures."""

    kind = "ExtractionFailed"
    title = "Could not read file"

    def __init__(
        self,
        message: str = "Text extraction failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class EmptyExtractionError(ExtractionError):
    """Raised when a document has no usable embedded text (e.g. a scanned PDF)."""

    kind = "EmptyExtraction"
    title = "No text found"

    def __init__(
        self,
        message: str = (
            "No text could be extracted from this PDF. It may be a scanned/"
            "image-based PDF. Please try a text-based PDF or convert it to a "
            "DOCX/TXT file first."
        ),
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class CorruptFileError(ExtractionError):
    """Raised when the parser reports the bytes are not a valid container."""

    kind = "CorruptFile"
    title = "Corrupted file"

    def __init__(
        self,
        message: str = (
            "This file appears to be corrupted or is not a valid document. "
            "Please try a different file."
        ),
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ExtractionFailedError(ExtractionError):
    """Raised for any other parser failure; the underlying message is kept."""

    kind = "ExtractionFailed"
    title = "Could not read file"


class TooLittleContentError(StudyPadiError):
    """Raised when extracted text is too short to be worth structuring."""

    kind = "TooLittleContent"
    title = "Not enough content"

    def __init__(
        self,
        message: str = "Document text is too short to analyze.",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Phase 2: Structuring (LLM gateway) errors
# ---------------------------------------------------------------------------

class StructuringError(StudyPadiError):
    """Base class for failures of the document-structuring LLM call."""

    kind = "ServiceUnavailable"
    title = "AI unavailable"

    def __init__(
        self,
        message: str = "Document structuring failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class RateLimitError(StructuringError):
    """Raised when the AI gateway rejects the request with HTTP 429."""

    kind = "RateLimited"
    title = "Too many requests"

    def __init__(
        self,
        message: str = "Rate limit exceeded. Please try again in a moment.",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class QuotaExhaustedError(StructuringError):
    """Raised when the AI gateway reports exhausted credits (HTTP 402)."""

    kind = "QuotaExhausted"
    title = "AI credits exhausted"

    def __init__(
        self,
        message: str = "AI credits exhausted. Please try again later.",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class MalformedResponseError(StructuringError):
    """Raised when a successful response cannot be parsed into a StructuredDocument."""

    kind = "MalformedResponse"
    title = "AI returned invalid format"

    def __init__(
        self,
        message: str = "AI returned invalid format. Please try again.",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ProviderUnavailableError(StructuringError):
    """Raised when the AI gateway is unreachable, times out or answers non-2xx."""

    kind = "ServiceUnavailable"
    title = "AI unavailable"

    def __init__(
        self,
        message: str = "AI analysis failed. Please try again later.",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Phase 3: Persistence errors
# ---------------------------------------------------------------------------

class PersistenceError(StudyPadiError):
    """Raised only when the document row itself cannot be stored."""

    kind = "PersistenceFailed"
    title = "Failed to save document"

    def __init__(
        self,
        message: str = "Failed to save document",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Orchestration / configuration errors
# ---------------------------------------------------------------------------

class PipelineError(StudyPadiError):
    """Raised when pipeline orchestration fails (invalid state transition, etc.)."""

    kind = "PipelineFailed"

    def __init__(
        self,
        message: str = "Pipeline orchestration failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ConfigurationError(StudyPadiError):
    """Raised when configuration is invalid or missing at startup."""

    kind = "ConfigurationError"
    title = "AI service not configured"

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class NotFoundError(StudyPadiError):
    """Raised when a requested document or section does not exist."""

    kind = "NotFound"
    title = "Not found"

    def __init__(
        self,
        message: str = "The requested record does not exist",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
