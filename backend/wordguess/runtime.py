from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable

from .game.models import Game
from .realtime.events import Event
from .realtime.fanout import Fanout

if TYPE_CHECKING:
    from .chat.bridge import ChatBridge
    from .realtime.scheduler import Scheduler


@dataclass
class Runtime:
    game: Game
    fanout: Fanout
    bridge: ChatBridge | None = None
    scheduler: Scheduler | None = None

    def dispatch(self, fn: Callable[..., list[Event]], *args: Any, **kwargs: Any) -> list[Event]:
        """Run a game operation and broadcast its events before anyone else can mutate the game."""
        with self.game.lock:
            events = fn(self.game, *args, **kwargs)
            self.fanout.publish(events)
        return events
