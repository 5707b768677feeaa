from __future__ import annotations

import math
from typing import Any

from flask import Blueprint, current_app, jsonify, request

from ..game import service
from ..game.errors import GameError, InvalidInput
from ..runtime import Runtime

bp = Blueprint("admin", __name__)


def _runtime() -> Runtime:
    return current_app.extensions["wordguess"]


def _body() -> dict[str, Any]:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _duration_ms(data: dict[str, Any]) -> int:
    """Accept either 'ms' or 'seconds'; 'ms' wins if both are given."""
    ms, seconds = data.get("ms"), data.get("seconds")
    try:
        if ms is None and seconds is not None:
            value = float(seconds) * 1000
        else:
            value = float(ms)
    except (TypeError, ValueError):
        raise InvalidInput("Invalid 'ms' or 'seconds' provided")
    if not math.isfinite(value) or value < 0:
        raise InvalidInput("Invalid 'ms' or 'seconds' provided")
    return int(value)


def _optional_int(data: dict[str, Any], key: str) -> int | None:
    raw = data.get(key)
    if raw is None or raw == "":
        return None
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise InvalidInput(f"Invalid '{key}'")


@bp.errorhandler(GameError)
def handle_game_error(exc: GameError):
    current_app.logger.info(f"[admin-reject] {request.path} status={exc.status} {exc.message}")
    return jsonify({"error": exc.message}), exc.status


# ---- chat source ----

@bp.post("/start")
def connect_room():
    rt = _runtime()
    room = str(_body().get("room") or "").strip()
    viewer_count = rt.bridge.connect(room)
    return jsonify({"ok": True, "room": room, "viewerCount": viewer_count})


@bp.post("/stop")
def disconnect_room():
    _runtime().bridge.disconnect()
    return jsonify({"ok": True})


# ---- round ----

@bp.post("/set-word")
def set_word():
    word = _body().get("word")
    if not isinstance(word, str) or not word.strip():
        raise InvalidInput("Missing 'word'")
    rt = _runtime()
    rt.dispatch(service.set_word, word)
    return jsonify({"ok": True, "secretLen": len(rt.game.secret_norm)})


@bp.post("/reset-round")
def reset_round():
    _runtime().dispatch(service.reset_round)
    return jsonify({"ok": True})


@bp.post("/start-reading")
def start_reading():
    _runtime().dispatch(service.start_reading)
    return jsonify({"ok": True})


@bp.post("/stop-reading")
def stop_reading():
    _runtime().dispatch(service.stop_reading)
    return jsonify({"ok": True})


@bp.post("/update-timer")
def update_timer():
    events = _runtime().dispatch(service.update_timer, _duration_ms(_body()))
    return jsonify({"ok": True, "timeLeftMs": events[0].payload["timeLeftMs"]})


@bp.post("/add-time")
def add_time():
    events = _runtime().dispatch(service.add_time, _duration_ms(_body()))
    return jsonify({"ok": True, "timeLeftMs": events[0].payload["timeLeftMs"]})


@bp.post("/reveal-word")
def reveal_word():
    events = _runtime().dispatch(service.reveal_word)
    return jsonify({"ok": True, "maskedWord": events[0].payload["maskedWord"]})


@bp.post("/reveal-letters")
def reveal_letters():
    events = _runtime().dispatch(service.reveal_letters, _body().get("positions"))
    return jsonify({"ok": True, "maskedWord": events[0].payload["maskedWord"]})


@bp.post("/mode")
def set_mode():
    mode = _body().get("mode")
    if not isinstance(mode, str):
        raise InvalidInput("Missing 'mode'")
    _runtime().dispatch(service.set_mode, mode)
    return jsonify({"ok": True, "mode": _runtime().game.mode})


# ---- polls ----

@bp.post("/poll/start")
def poll_start():
    data = _body()
    rt = _runtime()
    options = data.get("options")
    if not isinstance(options, list):
        raise InvalidInput("'options' must be a list")
    duration_ms = _optional_int(data, "durationMs")

    with rt.game.lock:
        poll_id, events = service.start_poll(rt.game, str(data.get("question") or ""), options, duration_ms)
        rt.fanout.publish(events)
    ends_at = events[0].payload["endsAt"]
    if rt.scheduler is not None:
        rt.scheduler.schedule_poll_close(poll_id, ends_at)
    return jsonify({"ok": True, "id": poll_id, "endsAt": ends_at})


@bp.post("/poll/stop")
def poll_stop():
    events = _runtime().dispatch(service.stop_poll)
    if not events:
        return jsonify({"ok": True, "closed": False})
    result = events[0].payload
    return jsonify({"ok": True, "closed": True, "winner": result["winner"], "tie": result["tie"], "mode": result["mode"]})


# ---- viewers ----

@bp.post("/users/reset")
def reset_users():
    _runtime().dispatch(service.reset_viewers)
    return jsonify({"ok": True})


@bp.get("/leaderboard")
def leaderboard():
    rt = _runtime()
    with rt.game.lock:
        return jsonify({"entries": rt.game.viewers.leaderboard(rt.game.leaderboard_size)})


# ---- boosts ----

@bp.post("/boost/<kind>")
def trigger_boost(kind: str):
    if kind not in service.BOOST_KINDS:
        raise InvalidInput(f"Unknown boost '{kind}'")
    data = _body()
    amount = _optional_int(data, "amount")
    text = str(data.get("text") or "")
    _runtime().dispatch(service.boost, kind, amount, text)
    return jsonify({"ok": True, "state": service.snapshot(_runtime().game)})


# ---- state ----

@bp.get("/state")
def state():
    rt = _runtime()
    payload = service.snapshot(rt.game)
    payload["overlayClients"] = rt.fanout.session_count
    return jsonify(payload)
