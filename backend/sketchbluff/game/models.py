from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal


Phase = Literal["waiting", "drawing", "voting", "guessing", "results"]

# Phases that collect a submission from every player.
ROUND_PHASES: tuple[Phase, ...] = ("drawing", "voting", "guessing")


@dataclass
class Player:
    id: str
    name: str
    team: str
    connected: bool = True


@dataclass
class Winner:
    player_id: str
    prompt: str
    votes: int = 0


@dataclass
class RoundState:
    prompts: dict[str, str] = field(default_factory=dict)
    drawings: dict[str, Any] = field(default_factory=dict)
    votes: dict[str, set[str]] = field(default_factory=dict)
    guesses: dict[str, dict[str, str]] = field(default_factory=dict)
    winners: list[Winner] = field(default_factory=list)

    def forget(self, player_id: str) -> None:
        self.prompts.pop(player_id, None)
        self.drawings.pop(player_id, None)
        self.votes.pop(player_id, None)
        self.guesses.pop(player_id, None)
