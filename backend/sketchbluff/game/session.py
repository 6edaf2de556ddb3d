from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass
from threading import RLock
from typing import Any, Callable, Iterable, Iterator, Mapping, Optional

from .errors import InsufficientPlayers, PhaseMismatch, SessionNotFound, UnknownPlayer
from .models import Phase, Player, RoundState
from .prompts import PromptBank
from .roster import Roster, ScoreBoard
from .scoring import pick_winners, score_round
from .timers import TimerFactory, TimerHandle, thread_timer_factory


logger = logging.getLogger(__name__)

# publish(event, payload, to): `to` is a player id, or None for the whole session.
Publish = Callable[[str, dict, Optional[str]], None]


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class GameSettings:
    drawing_sec: float = 300
    voting_sec: float = 120
    guessing_sec: float = 180
    results_sec: float = 30
    min_players: int = 2

    @classmethod
    def from_config(cls, config: Any) -> "GameSettings":
        return cls(
            drawing_sec=getattr(config, "DRAWING_DURATION_SEC", cls.drawing_sec),
            voting_sec=getattr(config, "VOTING_DURATION_SEC", cls.voting_sec),
            guessing_sec=getattr(config, "GUESSING_DURATION_SEC", cls.guessing_sec),
            results_sec=getattr(config, "RESULTS_DURATION_SEC", cls.results_sec),
            min_players=getattr(config, "MIN_PLAYERS", cls.min_players),
        )

    def duration(self, phase: Phase) -> float | None:
        return {
            "drawing": self.drawing_sec,
            "voting": self.voting_sec,
            "guessing": self.guessing_sec,
            "results": self.results_sec,
        }.get(phase)


_NEXT_PHASE: dict[Phase, Phase] = {
    "drawing": "voting",
    "voting": "guessing",
    "guessing": "results",
    "results": "waiting",
}


class Game:
    """State machine for one session: roster, scores, round submissions and phase.

    Every public method runs under the session lock. Outbound notifications are
    queued while the lock is held and handed to `publish` after it is released;
    a separate publish lock, taken before the session lock is dropped, keeps
    deliveries in the same order as the state changes that produced them.
    Phase advancement goes through `_advance`, reached either from a quorum
    check or from the phase timer; both are guarded by the expected phase, and
    timers additionally by the transition epoch they were armed in.
    """

    def __init__(
        self,
        code: str,
        settings: GameSettings | None = None,
        prompt_bank: PromptBank | None = None,
        timer_factory: TimerFactory | None = None,
        publish: Publish | None = None,
    ) -> None:
        self.code = code
        self.settings = settings or GameSettings()
        self.prompt_bank = prompt_bank or PromptBank()
        self.roster = Roster()
        self.scores = ScoreBoard()
        self.round_state = RoundState()
        self.phase: Phase = "waiting"
        self.round = 0
        self.phase_ends_at_ms: int | None = None
        self.history: list[dict] = []
        # Set while nobody is on the roster, including right after creation.
        self.empty_since_ms: int | None = now_ms()

        self._timer_factory = timer_factory or thread_timer_factory
        self._publish = publish
        self._timer: TimerHandle | None = None
        self._epoch = 0
        self._closed = False
        self._lock = RLock()
        self._publish_lock = RLock()
        self._outbox: list[tuple[str, dict, str | None]] = []

    def add_player(self, player_id: str, name: str, team: str) -> Player:
        with self._transaction():
            if self._closed:
                raise SessionNotFound(f"session {self.code} is closed")
            player = self.roster.add_player(player_id, name, team)
            self.scores.reset(player_id)
            self.empty_since_ms = None
            logger.info("[player-join] session=%s player=%s team=%s", self.code, player_id, team)
            self._queue_roster()
            return player

    def remove_player(self, player_id: str) -> Player | None:
        with self._transaction():
            player = self.roster.remove_player(player_id)
            if player is None:
                return None

            self.scores.discard(player_id)
            self.round_state.forget(player_id)
            logger.info("[player-leave] session=%s player=%s remaining=%d", self.code, player_id, len(self.roster))
            if not self.roster:
                self.empty_since_ms = now_ms()
            self._queue_roster()
            # The departing player may have been the last one missing.
            self._check_quorum("departure")
            return player

    @property
    def is_empty(self) -> bool:
        return len(self.roster) == 0

    def start(self, player_id: str | None = None) -> None:
        with self._transaction():
            if player_id is not None:
                self._require_player(player_id)
            self._require_phase("waiting")
            if len(self.roster) < self.settings.min_players:
                raise InsufficientPlayers(
                    f"need {self.settings.min_players} players, have {len(self.roster)}"
                )
            self._enter_drawing()

    def submit_drawing(self, player_id: str, drawing: Any) -> None:
        with self._transaction():
            self._require_player(player_id)
            self._require_phase("drawing")
            self.round_state.drawings[player_id] = drawing
            self._check_quorum("quorum")

    def submit_votes(self, player_id: str, owner_ids: Iterable[str]) -> None:
        with self._transaction():
            self._require_player(player_id)
            self._require_phase("voting")
            self.round_state.votes[player_id] = {str(o) for o in owner_ids}
            self._check_quorum("quorum")

    def submit_guesses(self, player_id: str, guesses: Mapping[str, str]) -> None:
        with self._transaction():
            self._require_player(player_id)
            self._require_phase("guessing")
            candidates = {w.player_id for w in self.round_state.winners}
            self.round_state.guesses[player_id] = {
                owner_id: guess for owner_id, guess in guesses.items() if owner_id in candidates
            }
            self._check_quorum("quorum")

    def close(self) -> None:
        with self._lock:
            self._closed = True
            self._cancel_timer()

    def close_if_empty(self, empty_before_ms: int | None = None) -> bool:
        """Close the session if its roster is empty.

        With `empty_before_ms`, only close when it has been empty since at least
        that time. Checked and closed under the session lock so a concurrent
        join either lands first or is rejected.
        """
        with self._lock:
            if self._closed:
                return True
            if self.roster:
                return False
            if empty_before_ms is not None and (
                self.empty_since_ms is None or self.empty_since_ms > empty_before_ms
            ):
                return False
            self._closed = True
            self._cancel_timer()
            return True

    @property
    def closed(self) -> bool:
        return self._closed

    def public_state(self, viewer_id: str | None = None) -> dict:
        with self._lock:
            payload = {
                "code": self.code,
                "phase": self.phase,
                "round": self.round,
                "phaseEndsAtMs": self.phase_ends_at_ms,
                "players": self.roster.to_list(),
                "teams": self.roster.teams(),
                "scores": self.scores.as_dict(),
                "submitted": sorted(self._submissions() or {}),
            }
            if viewer_id and viewer_id in self.round_state.prompts and self.phase == "drawing":
                payload["prompt"] = self.round_state.prompts[viewer_id]
            return payload

    def _advance(self, expected: Phase, reason: str) -> bool:
        if self.phase != expected:
            return False
        self._cancel_timer()
        nxt = _NEXT_PHASE[expected]
        logger.info("[phase] session=%s %s -> %s (%s)", self.code, expected, nxt, reason)
        enter = {
            "voting": self._enter_voting,
            "guessing": self._enter_guessing,
            "results": self._enter_results,
            "waiting": self._enter_waiting,
        }[nxt]
        enter()
        return True

    def _enter_drawing(self) -> None:
        self.round += 1
        self.round_state = RoundState()
        for player in self.roster:
            if player.connected:
                self.round_state.prompts[player.id] = self.prompt_bank.draw()

        self._set_phase("drawing")
        time_limit = self._time_limit_ms("drawing")
        for player_id, prompt in self.round_state.prompts.items():
            self._queue("drawing-phase-start", {"prompt": prompt, "timeLimit": time_limit}, to=player_id)

    def _enter_voting(self) -> None:
        rs = self.round_state
        rs.votes = {}
        self._set_phase("voting")
        drawings = [
            {"playerId": pid, "drawing": drawing, "prompt": rs.prompts.get(pid)}
            for pid, drawing in rs.drawings.items()
        ]
        self._queue("voting-phase-start", {"drawings": drawings, "timeLimit": self._time_limit_ms("voting")})

    def _enter_guessing(self) -> None:
        rs = self.round_state
        rs.winners = pick_winners(rs.prompts, rs.drawings, rs.votes)
        rs.guesses = {}
        self._set_phase("guessing")
        winning = [{"playerId": w.player_id, "drawing": rs.drawings.get(w.player_id)} for w in rs.winners]
        self._queue(
            "guessing-phase-start",
            {"winningDrawings": winning, "timeLimit": self._time_limit_ms("guessing")},
        )

    def _enter_results(self) -> None:
        rs = self.round_state
        awards = score_round(rs.prompts, rs.winners, rs.guesses)

        round_points: dict[str, int] = {}
        for player_id, points in awards.items():
            if player_id in self.roster:
                self.scores.add(player_id, points)
                round_points[player_id] = points

        winners = [{"playerId": w.player_id, "prompt": w.prompt, "votes": w.votes} for w in rs.winners]
        self.history.append({"round": self.round, "winners": winners, "roundPoints": round_points})

        self._set_phase("results")
        self._queue(
            "results-phase-start",
            {
                "scores": self.scores.as_dict(),
                "players": self.roster.to_dict(),
                "roundPoints": round_points,
                "winners": winners,
            },
        )

    def _enter_waiting(self) -> None:
        self.round_state = RoundState()
        self._set_phase("waiting")

    def _set_phase(self, phase: Phase) -> None:
        self.phase = phase
        self._epoch += 1
        duration = self.settings.duration(phase)
        if duration is None:
            self.phase_ends_at_ms = None
        else:
            self.phase_ends_at_ms = now_ms() + int(duration * 1000)
            self._arm_timer(phase, duration)

        self._queue(
            "game-phase-changed",
            {"phase": phase, "round": self.round, "phaseEndsAtMs": self.phase_ends_at_ms},
        )

    def _arm_timer(self, phase: Phase, duration: float) -> None:
        epoch = self._epoch
        self._timer = self._timer_factory(duration, lambda: self._on_timer(phase, epoch))
        logger.debug("[timer-set] session=%s phase=%s epoch=%d duration=%ss", self.code, phase, epoch, duration)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _on_timer(self, phase: Phase, epoch: int) -> None:
        with self._transaction():
            if self._closed or epoch != self._epoch:
                logger.debug(
                    "[timer-stale] session=%s phase=%s epoch=%d current=%d", self.code, phase, epoch, self._epoch
                )
                return
            self._advance(phase, "timeout")

    def _submissions(self) -> dict | None:
        rs = self.round_state
        return {"drawing": rs.drawings, "voting": rs.votes, "guessing": rs.guesses}.get(self.phase)

    def _check_quorum(self, reason: str) -> None:
        submissions = self._submissions()
        if submissions is None or not self.roster:
            return
        if len(submissions) == len(self.roster):
            self._advance(self.phase, reason)

    def _require_player(self, player_id: str) -> None:
        if player_id not in self.roster:
            raise UnknownPlayer(f"{player_id} is not in session {self.code}")

    def _require_phase(self, phase: Phase) -> None:
        if self.phase != phase:
            raise PhaseMismatch(f"expected {phase}, session {self.code} is {self.phase}")

    def _time_limit_ms(self, phase: Phase) -> int:
        return int((self.settings.duration(phase) or 0) * 1000)

    def _queue_roster(self) -> None:
        self._queue("players-updated", {"players": self.roster.to_list(), "teams": self.roster.teams()})

    def _queue(self, event: str, payload: dict, to: str | None = None) -> None:
        self._outbox.append((event, payload, to))

    @contextmanager
    def _transaction(self) -> Iterator[None]:
        self._lock.acquire()
        try:
            yield
        except BaseException:
            self._outbox = []
            self._lock.release()
            raise

        outbox, self._outbox = self._outbox, []
        with self._publish_lock:
            self._lock.release()
            self._flush(outbox)

    def _flush(self, outbox: list[tuple[str, dict, str | None]]) -> None:
        if self._publish is None:
            return
        for event, payload, to in outbox:
            try:
                self._publish(event, payload, to)
            except Exception:
                logger.exception("[publish-error] session=%s event=%s", self.code, event)
