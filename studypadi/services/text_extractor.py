"""Text extraction service: uploaded file bytes to plain text.

Dispatches on the *declared* media type of the upload:

    text/plain  -> UTF-8 decode (BOM tolerated, bad bytes replaced)
    PDF         -> PyMuPDF, positioned word runs per page
    DOCX        -> python-docx, raw paragraph text

Only text layers are read.  A scanned PDF with no embedded text is
reported as :class:`EmptyExtractionError` rather than OCR'd.

Parsers are synchronous C/pure-Python libraries, so each parse runs in a
worker thread via ``asyncio.to_thread`` to keep the event loop free.
"""

from __future__ import annotations

import asyncio
import io
import zipfile

import docx
import fitz  # PyMuPDF -- the "fitz" import name is a PyMuPDF convention
from docx.opc.exceptions import PackageNotFoundError

from studypadi.models.upload import (
    MEDIA_TYPE_PDF,
    MEDIA_TYPE_TEXT,
    SUPPORTED_MEDIA_TYPES,
    UploadedFile,
)
from studypadi.utils.errors import (
    CorruptFileError,
    EmptyExtractionError,
    ExtractionFailedError,
    UnsupportedFormatError,
)
from studypadi.utils.logging import get_logger

# PDFs whose trimmed text is shorter than this are treated as image-only.
_DEFAULT_MIN_PDF_TEXT_CHARS = 20


class TextExtractor:
    """Converts an :class:`UploadedFile` into a single plain-text string.

    Parameters
    ----------
    min_pdf_text_chars:
        Minimum trimmed length of PDF text before the document is
        considered to have a usable text layer.
    """

    def __init__(self, min_pdf_text_chars: int = _DEFAULT_MIN_PDF_TEXT_CHARS) -> None:
        self._min_pdf_text_chars = min_pdf_text_chars
        self._logger = get_logger(__name__)

    async def extract(self, upload: UploadedFile) -> str:
        """Extract plain text from an upload.

        Parameters
        ----------
        upload:
            The uploaded file with its declared media type and bytes.

        Returns
        -------
        str
            The document text.  Content is not trimmed for plain text and
            DOCX; PDF text is trimmed as part of the text-layer check.

        Raises
        ------
        UnsupportedFormatError
            The declared media type is not one of the three accepted types.
            Raised before the bytes are read.
        EmptyExtractionError
            A PDF with no (or almost no) embedded text.
        CorruptFileError
            The bytes are not a valid PDF or DOCX container.
        ExtractionFailedError
            Any other parser failure.
        """
        media_type = upload.content_type
        if media_type not in SUPPORTED_MEDIA_TYPES:
            self._logger.warning(
                "unsupported_media_type",
                filename=upload.filename,
                media_type=media_type,
            )
            raise UnsupportedFormatError()

        self._logger.info(
            "extraction_start",
            filename=upload.filename,
            media_type=media_type,
            file_size=upload.file_size,
        )

        if media_type == MEDIA_TYPE_TEXT:
            text = self._decode_text(upload.data)
        elif media_type == MEDIA_TYPE_PDF:
            text = await asyncio.to_thread(self._extract_pdf, upload.data)
        else:
            text = await asyncio.to_thread(self._extract_docx, upload.data)

        self._logger.info(
            "extraction_complete",
            filename=upload.filename,
            media_type=media_type,
            chars=len(text),
        )
        return text

    # ------------------------------------------------------------------
    # Per-format parsers
    # ------------------------------------------------------------------

    @staticmethod
    def _decode_text(data: bytes) -> str:
        # utf-8-sig drops a leading BOM if present.
        return data.decode("utf-8-sig", errors="replace")

    def _extract_pdf(self, data: bytes) -> str:
        """Join each page's word runs with spaces and pages with a blank line."""
        try:
            doc = fitz.open(stream=data, filetype="pdf")
        except fitz.FileDataError as exc:
            self._logger.warning("pdf_open_failed", error=str(exc))
            raise CorruptFileError(provider_name="pymupdf") from exc
        except Exception as exc:
            raise ExtractionFailedError(
                message=f"Failed to read PDF: {exc}",
                provider_name="pymupdf",
            ) from exc

        pages: list[str] = []
        try:
            for page in doc:
                # Each word tuple is (x0, y0, x1, y1, word, block, line, word_no).
                words = page.get_text("words")
                pages.append(" ".join(w[4] for w in words))
        except Exception as exc:
            raise ExtractionFailedError(
                message=f"Failed to read PDF: {exc}",
                provider_name="pymupdf",
            ) from exc
        finally:
            doc.close()

        text = "\n\n".join(pages).strip()
        if len(text) < self._min_pdf_text_chars:
            self._logger.warning(
                "pdf_no_text_extracted",
                pages=len(pages),
                chars=len(text),
            )
            raise EmptyExtractionError(provider_name="pymupdf")
        return text

    def _extract_docx(self, data: bytes) -> str:
        """Return the body paragraphs' running text, one paragraph per line."""
        try:
            document = docx.Document(io.BytesIO(data))
        except (PackageNotFoundError, zipfile.BadZipFile) as exc:
            self._logger.warning("docx_open_failed", error=str(exc))
            raise CorruptFileError(provider_name="python-docx") from exc
        except Exception as exc:
            raise ExtractionFailedError(
                message=f"Failed to read DOCX: {exc}",
                provider_name="python-docx",
            ) from exc

        return "\n".join(paragraph.text for paragraph in document.paragraphs)

