"""Uploaded file model: the input of one ingestion attempt."""

from __future__ import annotations

import hashlib
from datetime import datetime, timezone
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr

MEDIA_TYPE_TEXT = "text/plain"
MEDIA_TYPE_PDF = "application/pdf"
MEDIA_TYPE_DOCX = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"

SUPPORTED_MEDIA_TYPES: frozenset[str] = frozenset(
    {MEDIA_TYPE_TEXT, MEDIA_TYPE_PDF, MEDIA_TYPE_DOCX}
)

# Used by the CLI, where no browser-declared media type exists.
EXTENSION_MEDIA_TYPES: dict[str, str] = {
    ".txt": MEDIA_TYPE_TEXT,
    ".pdf": MEDIA_TYPE_PDF,
    ".docx": MEDIA_TYPE_DOCX,
}


class UploadedFile(BaseModel):
    """A user-uploaded document with its declared media type.

    The raw bytes live in a private attribute so that serialising the
    model (e.g. into pipeline state or logs) never copies file content.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid4()))
    filename: str
    # Declared (not sniffed) media type, as sent by the client.
    content_type: str
    file_size: int = Field(ge=0)
    sha256: str = ""
    received_at: datetime = Field(
        default_factory=lambda: datetime.now(tz=timezone.utc)  # noqa: UP017
    )
    _data: bytes = PrivateAttr(default=b"")

    @classmethod
    def from_bytes(cls, filename: str, content_type: str, data: bytes) -> UploadedFile:
        """Build an upload from raw bytes, filling size and hash."""
        upload = cls(
            filename=filename,
            content_type=content_type,
            file_size=len(data),
            sha256=hashlib.sha256(data).hexdigest(),
        )
        upload.__pydantic_private__["_data"] = data
        return upload

    @property
    def data(self) -> bytes:
        """Return the raw file bytes (excluded from serialization)."""
        return self._data
