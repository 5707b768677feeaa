from __future__ import annotations

import logging
from threading import Lock

from ..game import service
from ..game.errors import ChatSourceFailure, InvalidInput
from ..game.models import ChatMessage
from ..runtime import Runtime
from .source import ChatSource, SourceFactory


logger = logging.getLogger(__name__)


class _SourceListener:
    """Relays one source's callbacks, ignoring them once that source is replaced."""

    def __init__(self, bridge: ChatBridge, generation: int) -> None:
        self.bridge = bridge
        self.generation = generation

    def _current(self) -> bool:
        return self.bridge.generation == self.generation

    def on_chat(self, msg: ChatMessage) -> None:
        if self._current():
            self.bridge.runtime.dispatch(service.handle_chat, msg)

    def on_disconnected(self) -> None:
        if self._current():
            self.bridge.runtime.dispatch(service.source_disconnected)

    def on_stream_end(self) -> None:
        if self._current():
            self.bridge.runtime.dispatch(service.source_stream_end)

    def on_error(self, message: str) -> None:
        if self._current():
            logger.warning("[chat-error] room=%s %s", self.bridge.room, message)
            self.bridge.runtime.dispatch(service.source_error, message)


class ChatBridge:
    """Owns the live chat source and feeds its events into the game."""

    def __init__(self, runtime: Runtime, source_factory: SourceFactory, connect_timeout: float = 15.0) -> None:
        self.runtime = runtime
        self.source_factory = source_factory
        self.connect_timeout = connect_timeout
        self.generation = 0
        self.room: str | None = None
        self._source: ChatSource | None = None
        self._lock = Lock()

    def connect(self, room: str) -> int | None:
        room = (room or "").strip()
        if not room:
            raise InvalidInput("Missing 'room' (TikTok username/uniqueId)")

        # Only connect/disconnect serialize on this lock; the game keeps judging meanwhile.
        with self._lock:
            self._close_current()
            self.generation += 1
            source = self.source_factory(room, _SourceListener(self, self.generation))
            try:
                viewer_count = source.connect(self.connect_timeout)
            except ChatSourceFailure as exc:
                self.runtime.dispatch(service.source_error, exc.message)
                raise

            self._source = source
            self.room = room

        logger.info("[chat-connect] room=%s viewers=%s", room, viewer_count)
        self.runtime.dispatch(service.source_connected, room, viewer_count)
        return viewer_count

    def disconnect(self) -> None:
        with self._lock:
            self._close_current()
            self.generation += 1
        self.runtime.dispatch(service.stop_session)

    def _close_current(self) -> None:
        source, self._source = self._source, None
        self.room = None
        if source is None:
            return
        try:
            source.disconnect()
        except Exception as exc:
            logger.warning("[chat-disconnect] failed: %s", exc)
