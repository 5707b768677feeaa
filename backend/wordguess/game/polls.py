from __future__ import annotations

import logging

from .errors import InvalidInput, InvalidState
from .models import Game, Poll, PollResult
from .text import normalize


logger = logging.getLogger(__name__)


def active_poll(game: Game) -> Poll | None:
    return game.poll


def _clean_options(options) -> list[str]:
    if not isinstance(options, (list, tuple)):
        raise InvalidInput("'options' must be a list")

    cleaned: list[str] = []
    seen: set[str] = set()
    for opt in options:
        if not isinstance(opt, str):
            continue
        label = opt.strip()
        key = normalize(label)
        if not key or key in seen:
            continue
        seen.add(key)
        cleaned.append(label)
    return cleaned


def start_poll(game: Game, question: str, options, duration_ms: int, now: int) -> Poll:
    if active_poll(game) is not None:
        raise InvalidState("A poll is already running")

    cleaned = _clean_options(options)
    if len(cleaned) < 2:
        raise InvalidInput("A poll needs at least two distinct options")
    if duration_ms <= 0:
        raise InvalidInput("Poll duration must be positive")

    game.poll_seq += 1
    game.poll = Poll(
        id=game.poll_seq,
        question=(question or "").strip(),
        options=cleaned,
        ends_at_ms=now + duration_ms,
        tallies={opt: 0 for opt in cleaned},
    )
    logger.info("[poll-start] id=%d options=%s duration=%dms", game.poll.id, cleaned, duration_ms)
    return game.poll


def cast_vote(game: Game, viewer_id: str, normalized_text: str, now: int) -> bool:
    """Count a chat message as a vote if it names an option. Most messages don't."""
    poll = active_poll(game)
    if poll is None or now > poll.ends_at_ms:
        return False
    if viewer_id in poll.voters:
        return False

    for opt in poll.options:
        if normalize(opt) == normalized_text:
            poll.tallies[opt] += 1
            poll.voters.add(viewer_id)
            return True
    return False


def close_poll(game: Game, poll_id: int | None = None) -> PollResult | None:
    """Finalize the running poll.

    ``poll_id`` lets a scheduled auto-close check that it still refers to the
    poll it was created for. Returns None when there is nothing to close, so
    a manual stop racing the timer only finalizes once.
    """
    poll = active_poll(game)
    if poll is None:
        return None
    if poll_id is not None and poll.id != poll_id:
        return None

    game.poll = None

    # Strict '>' keeps the first-listed option on ties.
    winner = None
    best = -1
    for opt in poll.options:
        count = poll.tallies.get(opt, 0)
        if count > best:
            best = count
            winner = opt
    tie = sum(1 for opt in poll.options if poll.tallies.get(opt, 0) == best) > 1

    logger.info("[poll-close] id=%d winner=%s tie=%s tallies=%s", poll.id, winner, tie, poll.tallies)
    return PollResult(question=poll.question, tallies=dict(poll.tallies), winner=winner, tie=tie)


def poll_snapshot(game: Game) -> dict | None:
    poll = active_poll(game)
    if poll is None:
        return None
    return {
        "id": poll.id,
        "question": poll.question,
        "options": list(poll.options),
        "tallies": dict(poll.tallies),
        "endsAt": poll.ends_at_ms,
    }
