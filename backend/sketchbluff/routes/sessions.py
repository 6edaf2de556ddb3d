from __future__ import annotations

from flask import Blueprint, current_app, jsonify

from ..game.errors import SessionNotFound
from ..game.registry import SessionRegistry

bp = Blueprint("sessions", __name__)


def get_registry() -> SessionRegistry:
    return current_app.extensions["sketchbluff"]


@bp.post("/sessions")
def create_session():
    # The creating client is not a player; it joins over Socket.IO like everyone else.
    code = get_registry().create()
    return jsonify({"gameId": code}), 201


@bp.get("/sessions/<code>")
def get_session(code: str):
    game = get_registry().get(code.upper())
    if not game:
        return jsonify({"error": SessionNotFound.code}), 404
    return jsonify(game.public_state())
