"""Ingestion progress tracking with callback-based listener notification.

Keeps one :class:`SessionStatus` per ingestion session and broadcasts each
new snapshot to the listeners registered for that session.  The snapshot
is all that outlives a run: the status endpoint and late WebSocket
subscribers read the terminal phase, the result or the failure from here.

# ─── HOW PROGRESS TRACKING WORKS ──────────────────────────────────────
#
# Observer pattern:
#
#   IngestionPipeline ──update()──→ ProgressTracker ──callback(status)──→ WebSocket handler
#                                                   ──→ (any other listener)
#
#   1. The orchestrator calls tracker.update(session_id, phase, progress, msg),
#      adding ``result=`` on DONE and ``failure=`` on FAILED
#   2. ProgressTracker stores a frozen SessionStatus and calls every listener
#   3. The WebSocket handler (a listener) pushes JSON to the browser and
#      closes the socket once the status is terminal
#
# Retention: statuses live in an insertion-ordered map capped at
# ``max_sessions``.  An update moves its session to the newest end, so
# the session evicted when the cap is exceeded is the one that has been
# quiet the longest, normally a long-finished upload.
#
# Listener errors are caught and logged, so a dropped WebSocket cannot
# fail an ingestion run.  Sync and async callbacks are both accepted.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import asyncio
from collections import OrderedDict
from collections.abc import Callable

import structlog

from studypadi.models.pipeline import (
    IngestionFailure,
    IngestionPhase,
    IngestionResult,
    SessionStatus,
)
from studypadi.utils.logging import get_logger

DEFAULT_MAX_SESSIONS = 500


class ProgressTracker:
    """Tracks and broadcasts ingestion progress via callbacks.

    Parameters
    ----------
    max_sessions:
        Upper bound on retained session snapshots.  The least recently
        updated session is dropped first.
    """

    def __init__(self, max_sessions: int = DEFAULT_MAX_SESSIONS) -> None:
        if max_sessions < 1:
            raise ValueError("max_sessions must be at least 1")
        self._max_sessions = max_sessions
        self._statuses: OrderedDict[str, SessionStatus] = OrderedDict()
        self._listeners: dict[str, list[Callable]] = {}
        self._logger: structlog.BoundLogger = get_logger(__name__)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def update(
        self,
        session_id: str,
        phase: IngestionPhase,
        progress: float,
        message: str,
        *,
        result: IngestionResult | None = None,
        failure: IngestionFailure | None = None,
    ) -> SessionStatus:
        """Record a progress update and notify all registered listeners.

        Parameters
        ----------
        session_id:
            The ingestion session to update.
        phase:
            The current ingestion phase.
        progress:
            Completion percentage, clamped to 0.0 – 100.0.
        message:
            Human-readable status message.
        result:
            The ingestion summary, passed with ``DONE``.
        failure:
            Why the session ended, passed with ``FAILED``.

        Returns
        -------
        SessionStatus
            The snapshot that was stored and broadcast.
        """
        status = SessionStatus(
            session_id=session_id,
            phase=phase,
            progress=max(0.0, min(100.0, progress)),
            message=message,
            result=result,
            failure=failure,
        )

        self._statuses[session_id] = status
        self._statuses.move_to_end(session_id)
        while len(self._statuses) > self._max_sessions:
            evicted_id, evicted = self._statuses.popitem(last=False)
            self._logger.debug(
                "session_evicted",
                session_id=evicted_id,
                phase=evicted.phase.value,
                retained=len(self._statuses),
            )

        self._logger.debug(
            "progress_update",
            session_id=session_id,
            phase=phase.value,
            progress=round(status.progress, 1),
            message=message,
        )

        await self._notify_listeners(status)
        return status

    def register_listener(self, session_id: str, callback: Callable) -> None:
        """Register a callback receiving the session's :class:`SessionStatus`."""
        if session_id not in self._listeners:
            self._listeners[session_id] = []

        if callback not in self._listeners[session_id]:
            self._listeners[session_id].append(callback)
            self._logger.debug(
                "listener_registered",
                session_id=session_id,
                total_listeners=len(self._listeners[session_id]),
            )

    def unregister_listener(self, session_id: str, callback: Callable) -> None:
        """Remove a previously registered callback for a session."""
        listeners = self._listeners.get(session_id, [])
        if callback in listeners:
            listeners.remove(callback)
            self._logger.debug(
                "listener_unregistered",
                session_id=session_id,
                remaining_listeners=len(listeners),
            )
        if not listeners:
            self._listeners.pop(session_id, None)

    def has_session(self, session_id: str) -> bool:
        return session_id in self._statuses

    def get_status(self, session_id: str) -> SessionStatus:
        """Return the latest snapshot for a session.

        A session that was never tracked, or has been evicted, reads as a
        zeroed ``UPLOAD`` snapshot; use :meth:`has_session` to tell the two
        apart.
        """
        status = self._statuses.get(session_id)
        if status is None:
            return SessionStatus(session_id=session_id)
        return status

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _notify_listeners(self, status: SessionStatus) -> None:
        """Invoke all registered listeners for the status's session.

        Listeners that raise are logged and skipped.
        """
        listeners = list(self._listeners.get(status.session_id, []))
        if not listeners:
            return

        for callback in listeners:
            try:
                result = callback(status)
                if asyncio.iscoroutine(result):
                    await result
            except Exception as exc:
                self._logger.warning(
                    "listener_callback_error",
                    session_id=status.session_id,
                    error=str(exc),
                    callback=getattr(callback, "__name__", repr(callback)),
                )
