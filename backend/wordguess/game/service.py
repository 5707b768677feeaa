from __future__ import annotations

import logging
import random
import time

from ..realtime import events as ev
from ..realtime.events import Event
from . import clock, mask, polls
from .errors import InvalidInput, InvalidState
from .models import GAME_MODES, ChatMessage, Game, Winner
from .text import normalize, parse_positions, position_map


logger = logging.getLogger(__name__)


def now_ms() -> int:
    return int(time.time() * 1000)


def highlight_active(game: Game, now: int) -> bool:
    return game.winner is not None and now - game.winner.at_ms < game.highlight_ms


def _time_left(game: Game, now: int) -> int:
    return clock.remaining(game.clock, now)


def _require_secret(game: Game) -> None:
    if not game.secret_norm:
        raise InvalidState("No secret word set")


def _mask_event(game: Game) -> Event:
    return Event(ev.MASK, {"maskedWord": mask.render(game)})


def _timer_event(game: Game, now: int) -> Event:
    return Event(ev.ROUND, {
        "status": "timer_updated",
        "maskedWord": mask.render(game),
        "timeLeftMs": _time_left(game, now),
    })


def leaderboard_event(game: Game) -> Event:
    return Event(ev.LEADERBOARD, {"entries": game.viewers.leaderboard(game.leaderboard_size)})


def snapshot(game: Game, now: int | None = None) -> dict:
    """Full state, used both for the overlay handshake and the admin state query."""
    now = now if now is not None else now_ms()
    with game.lock:
        winner = None
        if game.winner is not None:
            w = game.winner
            winner = {
                "userId": w.user_id,
                "uniqueId": w.unique_id,
                "nickname": w.nickname,
                "guess": w.guess,
                "at": w.at_ms,
                "highlightActive": highlight_active(game, now),
            }

        return {
            "connectedRoom": game.connected_room,
            "isRunning": game.reading,
            "secretSet": bool(game.secret_norm),
            "secretLen": len(game.secret_norm),
            "maskedWord": mask.render(game),
            "timeLeftMs": _time_left(game, now),
            "mode": game.mode,
            "winner": winner,
            "poll": polls.poll_snapshot(game),
            "leaderboard": game.viewers.leaderboard(game.leaderboard_size),
        }


# ---- chat source status ----

def source_connected(game: Game, room: str, viewer_count: int | None) -> list[Event]:
    with game.lock:
        game.connected_room = room
    return [Event(ev.SYSTEM, {"type": "connected", "room": room, "viewerCount": viewer_count})]


def source_disconnected(game: Game) -> list[Event]:
    with game.lock:
        game.connected_room = None
    return [Event(ev.SYSTEM, {"type": "disconnected"})]


def source_stream_end(game: Game) -> list[Event]:
    return [Event(ev.SYSTEM, {"type": "stream_end"})]


def source_error(game: Game, message: str) -> list[Event]:
    return [Event(ev.SYSTEM, {"type": "error", "message": message})]


def stop_session(game: Game) -> list[Event]:
    with game.lock:
        game.reading = False
        return source_disconnected(game)


# ---- round lifecycle ----

def set_word(game: Game, word: str, now: int | None = None) -> list[Event]:
    raw = str(word or "")
    norm = normalize(raw)
    if not norm:
        raise InvalidInput("Missing 'word'")

    now = now if now is not None else now_ms()
    with game.lock:
        game.secret_raw = raw
        game.secret_norm = norm
        mask.init_for(game, raw)
        clock.start(game.clock, game.round_duration_ms, now)
        game.reading = True
        game.winner = None

        logger.info("[round-start] len=%d duration=%dms mode=%s", len(norm), game.round_duration_ms, game.mode)
        return [Event(ev.ROUND, {
            "status": "started",
            "secretLen": len(norm),
            "maskedWord": mask.render(game),
            "timeLeftMs": _time_left(game, now),
        })]


def reset_round(game: Game) -> list[Event]:
    with game.lock:
        game.winner = None
        game.reading = False
        game.secret_raw = ""
        game.secret_norm = ""
        mask.clear(game)
        clock.stop(game.clock)

        logger.info("[round-reset]")
        return [Event(ev.ROUND, {"status": "reset", "maskedWord": "", "timeLeftMs": 0})]


def start_reading(game: Game) -> list[Event]:
    with game.lock:
        _require_secret(game)
        game.reading = True
        return [Event(ev.ROUND, {"status": "reading_started"})]


def stop_reading(game: Game) -> list[Event]:
    with game.lock:
        game.reading = False
        return [Event(ev.ROUND, {"status": "reading_stopped"})]


def update_timer(game: Game, ms: int, now: int | None = None) -> list[Event]:
    now = now if now is not None else now_ms()
    with game.lock:
        _require_secret(game)
        clock.set_remaining(game.clock, ms, now)
        return [_timer_event(game, now)]


def add_time(game: Game, ms: int, now: int | None = None) -> list[Event]:
    now = now if now is not None else now_ms()
    with game.lock:
        _require_secret(game)
        clock.extend(game.clock, ms, now)
        return [_timer_event(game, now)]


def reveal_word(game: Game) -> list[Event]:
    with game.lock:
        _require_secret(game)
        mask.reveal_all(game)
        return [_mask_event(game)]


def reveal_letters(game: Game, positions: str) -> list[Event]:
    if not positions or not isinstance(positions, str):
        raise InvalidInput("Missing or invalid 'positions'")
    with game.lock:
        _require_secret(game)
        mask.reveal_positions(game, parse_positions(positions))
        return [_mask_event(game)]


def set_mode(game: Game, mode: str) -> list[Event]:
    mode = (mode or "").strip().lower()
    if mode not in GAME_MODES:
        raise InvalidInput(f"Unknown mode '{mode}'")
    with game.lock:
        game.mode = mode
        logger.info("[mode] mode=%s", mode)
        return [Event(ev.MODE, {"mode": mode})]


# ---- polls ----

def start_poll(game: Game, question: str, options, duration_ms: int | None = None,
               now: int | None = None) -> tuple[int, list[Event]]:
    now = now if now is not None else now_ms()
    with game.lock:
        poll = polls.start_poll(game, question, options, duration_ms or game.poll_duration_ms, now)
        return poll.id, [Event(ev.POLL_START, {
            "id": poll.id,
            "question": poll.question,
            "options": list(poll.options),
            "endsAt": poll.ends_at_ms,
        })]


def stop_poll(game: Game, poll_id: int | None = None) -> list[Event]:
    with game.lock:
        result = polls.close_poll(game, poll_id)
        if result is None:
            return []

        out = []
        chosen = normalize(result.winner) if result.winner else ""
        if not result.tie and chosen in GAME_MODES and chosen != game.mode:
            game.mode = chosen
            out.append(Event(ev.MODE, {"mode": chosen}))

        out.insert(0, Event(ev.POLL_END, {
            "question": result.question,
            "tallies": result.tallies,
            "winner": result.winner,
            "tie": result.tie,
            "mode": game.mode,
        }))
        return out


# ---- viewers ----

def reset_viewers(game: Game) -> list[Event]:
    with game.lock:
        game.viewers.reset()
        logger.info("[users-reset]")
        return [leaderboard_event(game)]


# ---- boosts ----

BOOST_KINDS = ("add-time", "reveal-letter", "reveal-word", "prompt")


def boost(game: Game, kind: str, amount: int | None = None, text: str = "",
          now: int | None = None, rng: random.Random | None = None) -> list[Event]:
    if kind not in BOOST_KINDS:
        raise InvalidInput(f"Unknown boost '{kind}'")
    now = now if now is not None else now_ms()
    rng = rng or random

    with game.lock:
        _require_secret(game)

        if kind == "add-time":
            ms = amount or game.boost_add_time_ms
            clock.extend(game.clock, ms, now)
            return [_timer_event(game, now), Event(ev.BOOST, {"type": kind, "ms": ms})]

        if kind == "prompt":
            ms = amount or game.boost_prompt_ms
            clock.extend(game.clock, ms, now)
            return [_timer_event(game, now), Event(ev.BOOST, {"type": kind, "ms": ms, "text": text})]

        if kind == "reveal-word":
            mask.reveal_all(game)
            return [_mask_event(game), Event(ev.BOOST, {"type": kind})]

        count = amount or 1
        if count < 0:
            raise InvalidInput("Letter count must be positive")
        hidden = mask.hidden_positions(game)
        picked = rng.sample(hidden, min(count, len(hidden)))
        for idx in picked:
            mask.reveal_at_index(game, idx)
        return [_mask_event(game), Event(ev.BOOST, {"type": kind, "count": len(picked)})]


# ---- chat judging ----

def _rapid_lock(game: Game, guess_norm: str) -> bool:
    owners = position_map(game.secret_raw)
    changed = False
    for idx in range(min(len(guess_norm), len(game.secret_norm))):
        if guess_norm[idx] == game.secret_norm[idx]:
            if mask.reveal_at_index(game, owners[idx]):
                changed = True
    return changed


def handle_chat(game: Game, msg: ChatMessage) -> list[Event]:
    """Judge one chat message and return what should be broadcast, in order."""
    now = msg.ts_ms
    with game.lock:
        last = game.last_msg_at.get(msg.user_id)
        if last is not None and now - last < game.rate_limit_ms:
            return []
        game.last_msg_at[msg.user_id] = now

        guess = normalize(msg.text)
        round_live = game.reading and bool(game.secret_norm)
        is_correct = round_live and not highlight_active(game, now) and guess == game.secret_norm

        out: list[Event] = []

        if polls.cast_vote(game, msg.user_id, guess, now):
            out.append(Event(ev.POLL_UPDATE, {"tallies": dict(game.poll.tallies)}))

        if game.mode == "rapid" and round_live and not is_correct and guess:
            if _rapid_lock(game, guess):
                out.append(_mask_event(game))

        viewer = game.viewers.touch(msg.user_id, msg.nickname)

        out.append(Event(ev.CHAT, {
            "userId": msg.user_id,
            "uniqueId": msg.unique_id,
            "nickname": msg.nickname,
            "text": msg.text,
            "ts": now,
            "isCorrect": is_correct,
            "tier": viewer.tier,
        }))

        if not is_correct:
            return out

        game.winner_seq += 1
        game.winner = Winner(
            user_id=msg.user_id,
            unique_id=msg.unique_id,
            nickname=msg.nickname,
            guess=msg.text,
            at_ms=now,
            seq=game.winner_seq,
        )
        mask.reveal_all(game)
        viewer, tier_changed = game.viewers.record_win(msg.user_id, msg.nickname)
        logger.info("[winner] user=%s wins=%d tier=%s", msg.user_id, viewer.wins_total, viewer.tier)

        out.extend([
            _mask_event(game),
            Event(ev.WINNER, {
                "userId": msg.user_id,
                "uniqueId": msg.unique_id,
                "nickname": msg.nickname,
                "guess": msg.text,
                "highlightMs": game.highlight_ms,
            }),
            Event(ev.USER_UPDATE, {
                "userId": viewer.id,
                "nickname": viewer.display_name,
                "wins": viewer.wins_total,
                "tier": viewer.tier,
                "tierChanged": tier_changed,
            }),
            leaderboard_event(game),
        ])
        return out


def expire_winner(game: Game, now: int | None = None) -> list[Event]:
    """Announce the end of the current winner's highlight window, once per winner."""
    now = now if now is not None else now_ms()
    with game.lock:
        w = game.winner
        if w is None or w.seq == game.expired_winner_seq:
            return []
        if highlight_active(game, now):
            return []
        game.expired_winner_seq = w.seq
        return [Event(ev.WINNER_EXPIRED, {"userId": w.user_id})]
