from __future__ import annotations

import logging
from threading import RLock
from typing import Any

from flask import request
from flask_socketio import SocketIO, emit, join_room, leave_room

from ..game.errors import GameError, SessionNotFound, UnknownPlayer
from ..game.registry import GameFactory, SessionRegistry
from ..game.session import Game, GameSettings
from ..game.timers import socketio_timer_factory


logger = logging.getLogger(__name__)


def _validate_name(name: str) -> bool:
    n = (name or "").strip()
    if not n:
        return False
    if len(n) > 16:
        return False
    # Avoid obvious HTML/script injection.
    if "<" in n or ">" in n:
        return False
    # No control characters.
    for ch in n:
        if ord(ch) < 32:
            return False
    return True


def _fail(error: str) -> dict:
    return {"success": False, "error": error}


def build_game_factory(socketio: SocketIO, settings: GameSettings) -> GameFactory:
    timer_factory = socketio_timer_factory(socketio)

    def factory(code: str) -> Game:
        def publish(event: str, payload: dict, to: str | None = None) -> None:
            socketio.emit(event, payload, to=to or code)

        return Game(code, settings=settings, timer_factory=timer_factory, publish=publish)

    return factory


def start_session_sweeper(socketio: SocketIO, registry: SessionRegistry, interval_sec: float) -> None:
    def _runner() -> None:
        while True:
            socketio.sleep(interval_sec)
            try:
                registry.reap_empty()
            except Exception:
                logger.exception("[sweep-error] reaping empty sessions failed")

    socketio.start_background_task(_runner)


def register_socketio_handlers(socketio: SocketIO, registry: SessionRegistry) -> None:
    # connection id -> session code, for players only (hosts just watch the room)
    connections: dict[str, str] = {}
    connections_lock = RLock()

    def _session_of(sid: str) -> Game:
        with connections_lock:
            code = connections.get(sid)
        if code is None:
            raise UnknownPlayer(f"connection {sid} has not joined a session")
        return registry.require(code)

    def _drop(sid: str) -> None:
        with connections_lock:
            code = connections.pop(sid, None)
        if code is None:
            return

        game = registry.get(code)
        if game is None:
            return
        game.remove_player(sid)
        registry.destroy_if_empty(code)

    def _rejected(action: str, exc: GameError) -> dict:
        logger.debug("[rejected] action=%s sid=%s error=%s (%s)", action, request.sid, exc.code, exc)
        return _fail(exc.code)

    @socketio.on("create-session")
    def create_session(data=None):
        code = registry.create()
        join_room(code)
        return {"success": True, "gameId": code}

    @socketio.on("join-session")
    def join_session(data):
        payload = data or {}
        code = str(payload.get("gameId", "")).strip().upper()
        name = str(payload.get("playerName", "")).strip()
        team = str(payload.get("teamName", "")).strip() or name

        if not code or not _validate_name(name) or not _validate_name(team):
            emit("session:error", {"error": "invalid_payload"})
            return _fail("invalid_payload")

        game = registry.get(code)
        if game is None:
            emit("session:error", {"error": SessionNotFound.code})
            return _fail(SessionNotFound.code)

        with connections_lock:
            previous = connections.get(request.sid)
        if previous is not None and previous != code:
            leave_room(previous)
            _drop(request.sid)

        join_room(code)
        with connections_lock:
            connections[request.sid] = code
        try:
            game.add_player(request.sid, name, team)
        except GameError as exc:
            # Session was closed between lookup and join.
            with connections_lock:
                connections.pop(request.sid, None)
            leave_room(code)
            emit("session:error", {"error": exc.code})
            return _rejected("join-session", exc)

        # Late joiners resync from the current public state.
        emit("session-state", game.public_state(viewer_id=request.sid), to=request.sid)
        return {"success": True, "playerId": request.sid, "gameId": code}

    @socketio.on("start-game")
    def start_game(data=None):
        try:
            _session_of(request.sid).start(request.sid)
        except GameError as exc:
            return _rejected("start-game", exc)
        return {"success": True}

    @socketio.on("submit-drawing")
    def submit_drawing(data):
        payload = data or {}
        if "drawingData" not in payload:
            return _fail("invalid_payload")

        try:
            _session_of(request.sid).submit_drawing(request.sid, payload["drawingData"])
        except GameError as exc:
            return _rejected("submit-drawing", exc)
        return {"success": True}

    @socketio.on("submit-votes")
    def submit_votes(data):
        votes: Any = (data or {}).get("votes")
        if not isinstance(votes, list) or not all(isinstance(v, str) for v in votes):
            return _fail("invalid_payload")

        try:
            _session_of(request.sid).submit_votes(request.sid, votes)
        except GameError as exc:
            return _rejected("submit-votes", exc)
        return {"success": True}

    @socketio.on("submit-guesses")
    def submit_guesses(data):
        guesses: Any = (data or {}).get("guesses")
        if not isinstance(guesses, dict):
            return _fail("invalid_payload")
        cleaned = {str(k): v for k, v in guesses.items() if isinstance(v, str)}

        try:
            _session_of(request.sid).submit_guesses(request.sid, cleaned)
        except GameError as exc:
            return _rejected("submit-guesses", exc)
        return {"success": True}

    @socketio.on("leave-session")
    def leave_session(data=None):
        with connections_lock:
            code = connections.get(request.sid)
        if code is not None:
            leave_room(code)
        _drop(request.sid)
        return {"success": True}

    @socketio.on("disconnect")
    def on_disconnect(reason=None):
        logger.info("[disconnect] sid=%s", request.sid)
        _drop(request.sid)
