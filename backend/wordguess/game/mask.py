from __future__ import annotations

from collections.abc import Iterable

from .models import Game


PLACEHOLDER = "_"


def init_for(game: Game, secret_raw: str) -> None:
    game.revealed = [False] * len(secret_raw)


def clear(game: Game) -> None:
    game.revealed = []


def reveal_all(game: Game) -> None:
    game.revealed = [True] * len(game.secret_raw)


def reveal_at_index(game: Game, idx: int) -> bool:
    """Reveal a 0-based position. Returns True if it was hidden before."""
    if idx < 0 or idx >= len(game.revealed):
        return False
    if game.revealed[idx]:
        return False
    game.revealed[idx] = True
    return True


def reveal_positions(game: Game, positions: Iterable[int]) -> int:
    """Reveal 1-based positions, ignoring anything out of range."""
    changed = 0
    for pos in positions:
        if reveal_at_index(game, pos - 1):
            changed += 1
    return changed


def hidden_positions(game: Game) -> list[int]:
    return [
        idx
        for idx, shown in enumerate(game.revealed)
        if not shown and not game.secret_raw[idx].isspace()
    ]


def render(game: Game) -> str:
    if not game.secret_raw:
        return ""
    return "".join(
        ch if game.revealed[idx] else PLACEHOLDER
        for idx, ch in enumerate(game.secret_raw)
    )
