from __future__ import annotations

import sys

from flask import Flask
from flask_cors import CORS
from flask_socketio import SocketIO
from werkzeug.middleware.proxy_fix import ProxyFix

from .config import Config
from .game.registry import SessionRegistry
from .game.session import GameSettings
from .routes.health import bp as health_bp
from .routes.sessions import bp as sessions_bp
from .realtime.handlers import build_game_factory, register_socketio_handlers, start_session_sweeper


def _default_async_mode() -> str:
    # Windows and Python >= 3.13: threading (eventlet has known compatibility issues there)
    if sys.platform.startswith("win") or sys.version_info >= (3, 13):
        return "threading"
    return "eventlet"


def create_app(config_class=Config) -> tuple[Flask, SocketIO]:
    app = Flask(__name__)
    app.config.from_object(config_class)

    if app.config.get("TRUST_PROXY_HEADERS", False):
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_port=1)

    cors_origins = app.config.get("CORS_ORIGINS", "*")
    CORS(app, resources={r"/api/*": {"origins": cors_origins}})

    async_mode = app.config.get("SOCKETIO_ASYNC_MODE") or _default_async_mode()

    socketio = SocketIO(
        app,
        cors_allowed_origins=cors_origins,
        async_mode=async_mode,
    )

    settings = GameSettings.from_config(config_class)
    registry = SessionRegistry(
        game_factory=build_game_factory(socketio, settings),
        code_length=app.config.get("SESSION_CODE_LENGTH", 6),
        empty_ttl_sec=app.config.get("EMPTY_SESSION_TTL_SEC", 10),
    )
    app.extensions["sketchbluff"] = registry

    app.register_blueprint(health_bp, url_prefix="/api")
    app.register_blueprint(sessions_bp, url_prefix="/api")

    register_socketio_handlers(socketio, registry)

    sweep_sec = app.config.get("SESSION_SWEEP_SEC", 0)
    if sweep_sec:
        start_session_sweeper(socketio, registry, sweep_sec)

    return app, socketio
