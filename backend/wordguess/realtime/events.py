from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


BOOTSTRAP = "bootstrap"
SYSTEM = "system"
ROUND = "round"
MASK = "mask"
MODE = "mode"
CHAT = "chat"
WINNER = "winner"
WINNER_EXPIRED = "winnerExpired"
USER_UPDATE = "userUpdate"
LEADERBOARD = "leaderboard"
POLL_START = "pollStart"
POLL_UPDATE = "pollUpdate"
POLL_END = "pollEnd"
BOOST = "boost"
BOOST_HINT = "boostHint"


@dataclass
class Event:
    name: str
    payload: dict[str, Any] = field(default_factory=dict)
