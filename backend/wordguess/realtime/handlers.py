from __future__ import annotations

from flask import request
from flask_socketio import SocketIO, emit

from ..game import service
from ..runtime import Runtime
from .events import BOOTSTRAP


def register_socketio_handlers(socketio: SocketIO, runtime: Runtime) -> None:
    @socketio.on("connect")
    def on_connect(auth=None):
        # Catch-up handshake so late joiners render mid-round state immediately.
        with runtime.game.lock:
            runtime.fanout.add_session(request.sid)
            emit(BOOTSTRAP, service.snapshot(runtime.game))
        if runtime.scheduler is not None:
            runtime.scheduler.ensure_sweep()

    @socketio.on("disconnect")
    def on_disconnect(*args):
        runtime.fanout.remove_session(request.sid)

    @socketio.on("state:get")
    def state_get(data=None):
        return service.snapshot(runtime.game)
