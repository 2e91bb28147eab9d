"""argparse CLI running the StudyPadi pipeline outside the web server.

Usage::

    python -m studypadi.cli ingest notes.pdf --owner user-123
    python -m studypadi.cli ingest notes.bin --owner user-123 --media-type text/plain
    python -m studypadi.cli outline 6f1c...

``ingest`` prints the camelCase ``IngestionResult`` JSON to stdout;
``outline`` prints the document outline.  Log lines go to stderr so
stdout stays machine-readable.

Exit codes: 0 on success, 1 for a bad path or unknown file type, 2 for a
typed pipeline error (the error's title and message are printed).
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
import time
from pathlib import Path
from typing import Any
from uuid import uuid4

from studypadi.models.pipeline import IngestionState
from studypadi.models.upload import EXTENSION_MEDIA_TYPES, UploadedFile
from studypadi.utils.errors import StudyPadiError


def _load_components() -> dict[str, Any]:
    """Build the application components with logging routed to stderr.

    ``studypadi.main`` bootstraps settings, config and the FastAPI app, so
    it is imported here rather than at module level.
    """
    from studypadi.main import build_components, config, settings
    from studypadi.utils.logging import configure_logging

    configure_logging(log_level=settings.log_level, stream=sys.stderr)
    return build_components(settings, config)


def _resolve_media_type(path: Path, explicit: str | None) -> str | None:
    if explicit:
        return explicit
    return EXTENSION_MEDIA_TYPES.get(path.suffix.lower())


async def _run_ingest(
    components: dict[str, Any],
    file_path: Path,
    owner_id: str,
    media_type: str | None,
) -> int:
    if not file_path.is_file():
        print(f"Error: File not found: {file_path}", file=sys.stderr)
        return 1

    content_type = _resolve_media_type(file_path, media_type)
    if content_type is None:
        print(
            f"Error: Unknown file type: {file_path.suffix or '(none)'}. "
            f"Use --media-type or one of: {', '.join(sorted(EXTENSION_MEDIA_TYPES))}",
            file=sys.stderr,
        )
        return 1

    upload = UploadedFile.from_bytes(
        filename=file_path.name,
        content_type=content_type,
        data=file_path.read_bytes(),
    )
    state = IngestionState(session_id=str(uuid4()), owner_id=owner_id, upload=upload)

    await components["record_store"].initialize()

    print(f"Ingesting: {file_path.name} ({upload.file_size:,} bytes)", file=sys.stderr)
    start = time.monotonic()
    try:
        final_state = await components["pipeline"].run(state)
    except StudyPadiError as exc:
        print(f"Error: {exc.title}: {exc.message}", file=sys.stderr)
        return 2
    print(f"Done in {time.monotonic() - start:.1f}s", file=sys.stderr)

    print(json.dumps(final_state.result.model_dump(by_alias=True), indent=2))
    return 0


async def _run_outline(components: dict[str, Any], document_id: str) -> int:
    await components["record_store"].initialize()
    try:
        outline = await components["learning_service"].get_outline(document_id)
    except StudyPadiError as exc:
        print(f"Error: {exc.title}: {exc.message}", file=sys.stderr)
        return 2

    print(json.dumps(outline.model_dump(mode="json"), indent=2))
    return 0


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m studypadi.cli",
        description="Turn study documents into sections, quizzes and flashcards.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    ingest = subparsers.add_parser("ingest", help="Run the ingestion pipeline on a file")
    ingest.add_argument("file", type=Path, help="Path to a TXT, PDF or DOCX file")
    ingest.add_argument("--owner", required=True, help="Owner (user) id for the records")
    ingest.add_argument(
        "--media-type",
        default=None,
        help="Declared media type; inferred from the extension when omitted",
    )

    outline = subparsers.add_parser("outline", help="Print a stored document's outline")
    outline.add_argument("document_id", help="Document id returned by ingest")

    return parser


def main(argv: list[str] | None = None) -> int:
    """Parse arguments, run the selected command and return its exit code."""
    args = _build_parser().parse_args(argv)
    components = _load_components()

    if args.command == "ingest":
        return asyncio.run(_run_ingest(components, args.file, args.owner, args.media_type))
    return asyncio.run(_run_outline(components, args.document_id))
