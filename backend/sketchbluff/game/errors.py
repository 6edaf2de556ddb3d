from __future__ import annotations


class GameError(Exception):
    """Base for errors scoped to a single request or session."""

    code = "game_error"


class SessionNotFound(GameError):
    code = "session_not_found"


class InsufficientPlayers(GameError):
    code = "insufficient_players"


class PhaseMismatch(GameError):
    code = "phase_mismatch"


class UnknownPlayer(GameError):
    code = "unknown_player"
