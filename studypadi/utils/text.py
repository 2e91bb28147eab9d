"""Text helpers shared across the ingestion pipeline."""

from __future__ import annotations

import re

# Final ".ext" of a filename; the dot must not be the first character.
_EXTENSION_RE = re.compile(r"(?<=.)\.[^/.\\]+$")


def count_words(text: str) -> int:
    """Return the number of whitespace-separated words in *text*."""
    return len(text.split())


def title_from_filename(filename: str | None) -> str | None:
    """Derive a document title from an upload filename.

    Strips any directory part and the final extension.  Returns ``None``
    when nothing usable is left.

    >>> title_from_filename("notes/Cell Biology.pdf")
    'Cell Biology'
    """
    if not filename:
        return None
    base = re.split(r"[/\\]", filename)[-1]
    title = _EXTENSION_RE.sub("", base).strip()
    return title or None
