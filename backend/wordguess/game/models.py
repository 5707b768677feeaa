from __future__ import annotations

from dataclasses import dataclass, field
from threading import RLock
from typing import Literal

from .viewers import ViewerStore


GameMode = Literal["classic", "rapid"]
GAME_MODES: tuple[str, ...] = ("classic", "rapid")


@dataclass
class Winner:
    user_id: str
    unique_id: str
    nickname: str
    guess: str
    at_ms: int
    seq: int = 0


@dataclass
class RoundClock:
    started_at_ms: int | None = None
    total_duration_ms: int = 0


@dataclass
class Poll:
    id: int
    question: str
    options: list[str]
    ends_at_ms: int
    tallies: dict[str, int] = field(default_factory=dict)
    voters: set[str] = field(default_factory=set)


@dataclass
class PollResult:
    question: str
    tallies: dict[str, int]
    winner: str | None
    tie: bool


@dataclass
class ChatMessage:
    user_id: str
    unique_id: str
    nickname: str
    text: str
    ts_ms: int


@dataclass
class Game:
    """Everything one overlay session shares; mutated only while holding ``lock``."""

    lock: RLock = field(default_factory=RLock, repr=False)

    connected_room: str | None = None
    reading: bool = False
    mode: GameMode = "classic"

    secret_raw: str = ""
    secret_norm: str = ""
    revealed: list[bool] = field(default_factory=list)
    clock: RoundClock = field(default_factory=RoundClock)

    winner: Winner | None = None
    winner_seq: int = 0
    expired_winner_seq: int = 0

    poll: Poll | None = None
    poll_seq: int = 0

    last_msg_at: dict[str, int] = field(default_factory=dict)
    viewers: ViewerStore = field(default_factory=ViewerStore)

    # Tunables, copied from the app config at startup.
    round_duration_ms: int = 20_000
    highlight_ms: int = 60_000
    rate_limit_ms: int = 700
    poll_duration_ms: int = 30_000
    leaderboard_size: int = 10
    boost_add_time_ms: int = 10_000
    boost_prompt_ms: int = 30_000

    @classmethod
    def from_config(cls, config, viewers: ViewerStore | None = None) -> "Game":
        return cls(
            viewers=viewers if viewers is not None else ViewerStore(),
            round_duration_ms=int(config.get("ROUND_DURATION_MS", 20_000)),
            highlight_ms=int(config.get("HIGHLIGHT_MS", 60_000)),
            rate_limit_ms=int(config.get("RATE_LIMIT_MS", 700)),
            poll_duration_ms=int(config.get("POLL_DURATION_MS", 30_000)),
            leaderboard_size=int(config.get("LEADERBOARD_SIZE", 10)),
            boost_add_time_ms=int(config.get("BOOST_ADD_TIME_MS", 10_000)),
            boost_prompt_ms=int(config.get("BOOST_PROMPT_MS", 30_000)),
        )
