"""WebSocket endpoint for real-time ingestion progress updates.

Connects a client to one ingestion session via the ``ProgressTracker``
listener mechanism.  Each message is a serialised :class:`SessionStatus`::

    {"session_id": "abc", "phase": "STRUCTURING", "progress": 35.0,
     "message": "...", "result": null, "failure": null, "updated_at": "..."}

``result`` carries the camelCase ingestion summary once the phase is
``DONE``; ``failure`` carries ``kind``, ``title`` and ``message`` once it
is ``FAILED``.  The server closes the socket (code 1000) right after a
terminal status has been sent, so a client can treat the close as the
end of the session.

The client may open the socket before posting the file by choosing its own
session id and sending it as ``X-Session-Id`` on the upload request.
"""

from __future__ import annotations

import asyncio
import contextlib

import structlog
from fastapi import WebSocket, WebSocketDisconnect

from studypadi.models.pipeline import SessionStatus
from studypadi.pipeline.progress_tracker import ProgressTracker
from studypadi.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)


def _to_message(status: SessionStatus) -> dict:
    return status.model_dump(mode="json", by_alias=True)


async def websocket_progress(websocket: WebSocket, session_id: str) -> None:
    """Stream ingestion progress updates to the client over WebSocket.

    Lifecycle:
        1. Accept the connection.
        2. Register a listener with the :class:`ProgressTracker`.
        3. Send the current status snapshot immediately.
        4. Push a JSON message on every progress update.
        5. Close once DONE or FAILED has been pushed, or stop when the
           client disconnects first.
        6. Unregister the listener.
    """
    progress_tracker: ProgressTracker = websocket.app.state.progress_tracker

    await websocket.accept()
    _logger.info("websocket_connected", session_id=session_id)

    finished = asyncio.Event()

    async def _on_progress(status: SessionStatus) -> None:
        # The socket may close between the update and the send; cleanup
        # happens in the finally block below.
        with contextlib.suppress(Exception):
            await websocket.send_json(_to_message(status))
        if status.is_terminal:
            finished.set()

    async def _drain_client() -> None:
        # Incoming frames are ignored; returns when the client goes away.
        with contextlib.suppress(WebSocketDisconnect):
            while True:
                await websocket.receive_text()

    progress_tracker.register_listener(session_id, _on_progress)
    receiver = asyncio.create_task(_drain_client())
    waiter = asyncio.create_task(finished.wait())

    try:
        status = progress_tracker.get_status(session_id)
        await websocket.send_json(_to_message(status))
        if status.is_terminal:
            finished.set()

        await asyncio.wait({receiver, waiter}, return_when=asyncio.FIRST_COMPLETED)

        if finished.is_set():
            _logger.info(
                "websocket_session_finished",
                session_id=session_id,
                phase=progress_tracker.get_status(session_id).phase.value,
            )
            with contextlib.suppress(Exception):
                await websocket.close(code=1000)
        else:
            _logger.info("websocket_disconnected", session_id=session_id)

    except WebSocketDisconnect:
        _logger.info("websocket_disconnected", session_id=session_id)

    finally:
        for task in (receiver, waiter):
            task.cancel()
        await asyncio.gather(receiver, waiter, return_exceptions=True)
        progress_tracker.unregister_listener(session_id, _on_progress)
        _logger.debug("websocket_listener_cleaned_up", session_id=session_id)
