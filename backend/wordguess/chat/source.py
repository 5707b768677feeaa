from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable, Protocol

from ..game.models import ChatMessage


class ChatListener(Protocol):
    def on_chat(self, msg: ChatMessage) -> None: ...

    def on_disconnected(self) -> None: ...

    def on_stream_end(self) -> None: ...

    def on_error(self, message: str) -> None: ...


class ChatSource(ABC):
    """A live chat feed for one room.

    ``connect`` blocks until the feed is live and returns the room's viewer
    count (None if unknown), or raises ``ChatSourceFailure``. Afterwards the
    source calls the listener from whatever thread it runs on.
    """

    def __init__(self, room: str, listener: ChatListener) -> None:
        self.room = room
        self.listener = listener

    @abstractmethod
    def connect(self, timeout: float) -> int | None:
        raise NotImplementedError

    @abstractmethod
    def disconnect(self) -> None:
        raise NotImplementedError


SourceFactory = Callable[[str, ChatListener], ChatSource]
