from __future__ import annotations

import sys
from pathlib import Path

from flask import Flask, send_from_directory
from flask_cors import CORS
from flask_socketio import SocketIO
from werkzeug.middleware.proxy_fix import ProxyFix

from .chat.bridge import ChatBridge
from .chat.source import ChatListener, ChatSource, SourceFactory
from .config import Config
from .game.models import Game
from .game.viewers import ViewerStore
from .realtime.fanout import Fanout
from .realtime.handlers import register_socketio_handlers
from .realtime.scheduler import Scheduler
from .routes.admin import bp as admin_bp
from .routes.health import bp as health_bp
from .runtime import Runtime


def _tiktok_source(room: str, listener: ChatListener) -> ChatSource:
    from .chat.tiktok import TikTokChatSource

    return TikTokChatSource(room, listener)


def _pick_async_mode(configured: str) -> str:
    if configured:
        return configured
    # Default choice:
    # - Windows: threading (eventlet has known compatibility issues on newer Python)
    # - Python >= 3.13: threading (safer default)
    # - Otherwise: eventlet
    if sys.platform.startswith("win") or sys.version_info >= (3, 13):
        return "threading"
    return "eventlet"


def _warn_blocking_chat_source(app: Flask, async_mode: str) -> bool:
    # The TikTok adapter runs its own asyncio loop on an OS thread. Under eventlet
    # that thread is green and its connect wait stalls the hub.
    if async_mode != "eventlet":
        return False
    app.logger.warning(
        "[startup] TikTok chat source requires SOCKETIO_ASYNC_MODE=threading; "
        "connecting under eventlet will block the server"
    )
    return True


def create_app(
    config_class: type = Config,
    source_factory: SourceFactory | None = None,
) -> tuple[Flask, SocketIO]:
    public_dir = Path(__file__).resolve().parents[2] / "public"

    app = Flask(__name__, static_folder=None)
    app.config.from_object(config_class)

    if app.config.get("TRUST_PROXY_HEADERS", False):
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_port=1)

    cors_origins = app.config.get("CORS_ORIGINS", "*")
    CORS(app, resources={r"/api/*": {"origins": cors_origins}})

    socketio = SocketIO(
        app,
        cors_allowed_origins=cors_origins,
        async_mode=_pick_async_mode(app.config.get("SOCKETIO_ASYNC_MODE", "")),
    )

    if source_factory is None:
        _warn_blocking_chat_source(app, socketio.async_mode)

    viewers = ViewerStore(app.config.get("USERS_FILE") or None, spawn=socketio.start_background_task)
    viewers.load()

    runtime = Runtime(game=Game.from_config(app.config, viewers), fanout=Fanout(socketio))
    runtime.bridge = ChatBridge(
        runtime,
        source_factory or _tiktok_source,
        connect_timeout=float(app.config.get("CHAT_CONNECT_TIMEOUT_SEC", 15)),
    )
    runtime.scheduler = Scheduler(app, socketio, runtime)
    app.extensions["wordguess"] = runtime

    app.register_blueprint(health_bp, url_prefix="/api")
    app.register_blueprint(admin_bp, url_prefix="/api")

    register_socketio_handlers(socketio, runtime)

    if public_dir.exists():
        @app.get("/admin")
        def admin_page():
            return send_from_directory(public_dir, "admin.html")

        @app.get("/overlay")
        def overlay_page():
            return send_from_directory(public_dir, "overlay.html")

        @app.get("/<path:path>")
        def static_proxy(path: str):
            return send_from_directory(public_dir, path)

    app.logger.info(f"[startup] viewers={len(viewers)} async_mode={socketio.async_mode}")
    return app, socketio
