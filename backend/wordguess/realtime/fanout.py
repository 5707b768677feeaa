from __future__ import annotations

import logging
from collections.abc import Iterable
from threading import RLock

from flask_socketio import SocketIO

from .events import Event


logger = logging.getLogger(__name__)


class Fanout:
    """Broadcasts game events to every connected overlay session, unfiltered."""

    def __init__(self, socketio: SocketIO) -> None:
        self.socketio = socketio
        self._sessions: set[str] = set()
        self._lock = RLock()

    def add_session(self, sid: str) -> None:
        with self._lock:
            self._sessions.add(sid)
            logger.debug("[overlay-join] sid=%s sessions=%d", sid, len(self._sessions))

    def remove_session(self, sid: str) -> None:
        with self._lock:
            self._sessions.discard(sid)
            logger.debug("[overlay-leave] sid=%s sessions=%d", sid, len(self._sessions))

    @property
    def session_count(self) -> int:
        with self._lock:
            return len(self._sessions)

    def publish(self, events: Iterable[Event]) -> None:
        for event in events:
            self.socketio.emit(event.name, event.payload)
