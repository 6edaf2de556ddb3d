from __future__ import annotations

import logging
import secrets
import string
from threading import RLock
from typing import Callable

from .errors import SessionNotFound
from .session import Game, now_ms


logger = logging.getLogger(__name__)

CODE_ALPHABET = string.ascii_uppercase + string.digits

GameFactory = Callable[[str], Game]


def generate_code(length: int = 6) -> str:
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(length))


class SessionRegistry:
    """Owns every live session, keyed by its short join code."""

    def __init__(
        self,
        game_factory: GameFactory | None = None,
        code_length: int = 6,
        empty_ttl_sec: float = 10,
    ) -> None:
        self._game_factory = game_factory or Game
        self._code_length = code_length
        self._empty_ttl_ms = int(empty_ttl_sec * 1000)
        self._lock = RLock()
        self._sessions: dict[str, Game] = {}

    def create(self) -> str:
        self.reap_empty()
        with self._lock:
            code = generate_code(self._code_length)
            while code in self._sessions:
                code = generate_code(self._code_length)

            self._sessions[code] = self._game_factory(code)
        logger.info("[session-create] session=%s live=%d", code, len(self))
        return code

    def get(self, code: str) -> Game | None:
        with self._lock:
            return self._sessions.get(code)

    def require(self, code: str) -> Game:
        game = self.get(code)
        if game is None:
            raise SessionNotFound(f"no session {code!r}")
        return game

    def delete(self, code: str) -> bool:
        with self._lock:
            game = self._sessions.pop(code, None)
        if game is None:
            return False
        game.close()
        logger.info("[session-destroy] session=%s live=%d", code, len(self))
        return True

    def destroy_if_empty(self, code: str) -> bool:
        with self._lock:
            game = self._sessions.get(code)
            if game is None or not game.close_if_empty():
                return False
            del self._sessions[code]
        logger.info("[session-destroy] session=%s live=%d", code, len(self))
        return True

    def reap_empty(self, now: int | None = None) -> list[str]:
        """Remove sessions that have had an empty roster for longer than the TTL.

        Covers sessions nobody ever joined, e.g. a host that created one and left.
        """
        cutoff = (now if now is not None else now_ms()) - self._empty_ttl_ms
        reaped = []
        with self._lock:
            for code, game in list(self._sessions.items()):
                if game.close_if_empty(empty_before_ms=cutoff):
                    del self._sessions[code]
                    reaped.append(code)
        for code in reaped:
            logger.info("[session-expire] session=%s live=%d", code, len(self))
        return reaped

    def list(self) -> list[Game]:
        with self._lock:
            return list(self._sessions.values())

    def __contains__(self, code: object) -> bool:
        with self._lock:
            return code in self._sessions

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
