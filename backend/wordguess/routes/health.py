from __future__ import annotations

from flask import Blueprint, current_app, jsonify

bp = Blueprint("health", __name__)


@bp.get("/health")
def health():
    rt = current_app.extensions["wordguess"]
    return jsonify({
        "ok": True,
        "chatRoom": rt.game.connected_room,
        "overlayClients": rt.fanout.session_count,
    })
