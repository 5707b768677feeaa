from __future__ import annotations

import asyncio
import logging
import threading

from TikTokLive import TikTokLiveClient
from TikTokLive.events import CommentEvent, ConnectEvent, DisconnectEvent, LiveEndEvent

from ..game import service
from ..game.errors import ChatSourceFailure
from ..game.models import ChatMessage
from .source import ChatSource


logger = logging.getLogger(__name__)


def _to_message(event: CommentEvent) -> ChatMessage:
    user = getattr(event, "user", None)
    unique_id = str(getattr(user, "unique_id", "") or "")
    nickname = str(getattr(user, "nickname", "") or unique_id or "Unknown")
    user_id = str(getattr(user, "id", "") or unique_id or nickname)
    return ChatMessage(
        user_id=user_id,
        unique_id=unique_id,
        nickname=nickname,
        text=str(getattr(event, "comment", "") or ""),
        ts_ms=service.now_ms(),
    )


class TikTokChatSource(ChatSource):
    """TikTok LIVE chat via TikTokLive, run on a private thread and event loop."""

    def __init__(self, room, listener) -> None:
        super().__init__(room, listener)
        self._client: TikTokLiveClient | None = None
        self._loop: asyncio.AbstractEventLoop | None = None

    def connect(self, timeout: float) -> int | None:
        client = TikTokLiveClient(unique_id=self.room)
        ready = threading.Event()
        state: dict = {}

        async def on_connect(event: ConnectEvent) -> None:
            room_info = getattr(client, "room_info", None) or {}
            state["viewer_count"] = room_info.get("user_count")
            ready.set()

        async def on_comment(event: CommentEvent) -> None:
            self.listener.on_chat(_to_message(event))

        async def on_disconnect(event: DisconnectEvent) -> None:
            self.listener.on_disconnected()

        async def on_live_end(event: LiveEndEvent) -> None:
            self.listener.on_stream_end()

        client.add_listener(ConnectEvent, on_connect)
        client.add_listener(CommentEvent, on_comment)
        client.add_listener(DisconnectEvent, on_disconnect)
        client.add_listener(LiveEndEvent, on_live_end)

        def _run() -> None:
            loop = asyncio.new_event_loop()
            asyncio.set_event_loop(loop)
            self._loop = loop
            try:
                loop.run_until_complete(client.connect(fetch_room_info=True))
            except Exception as exc:
                if ready.is_set():
                    self.listener.on_error(str(exc))
                else:
                    state["error"] = exc
                    ready.set()
            finally:
                loop.close()

        self._client = client
        threading.Thread(target=_run, name=f"tiktok-{self.room}", daemon=True).start()

        if not ready.wait(timeout):
            self.disconnect()
            raise ChatSourceFailure(f"Timed out connecting to @{self.room}")
        if "error" in state:
            raise ChatSourceFailure(str(state["error"]))
        return state.get("viewer_count")

    def disconnect(self) -> None:
        client, loop = self._client, self._loop
        self._client = None
        if client is None or loop is None or loop.is_closed():
            return
        logger.info("[tiktok-disconnect] room=%s", self.room)
        asyncio.run_coroutine_threadsafe(client.disconnect(), loop)
