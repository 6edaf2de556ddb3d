from __future__ import annotations

from dataclasses import asdict
from typing import Iterator

from .models import Player


class Roster:
    """Players of one session and the teams they are grouped into.

    Teams are derived: a team exists only while at least one player is on it.
    """

    def __init__(self) -> None:
        self._players: dict[str, Player] = {}
        self._teams: dict[str, list[str]] = {}

    def add_player(self, player_id: str, name: str, team: str) -> Player:
        # Re-adding an id overwrites it; drop the old team membership first.
        if player_id in self._players:
            self._leave_team(player_id)

        player = Player(id=player_id, name=name, team=team, connected=True)
        self._players[player_id] = player
        self._teams.setdefault(team, []).append(player_id)
        return player

    def remove_player(self, player_id: str) -> Player | None:
        if player_id not in self._players:
            return None
        self._leave_team(player_id)
        return self._players.pop(player_id)

    def _leave_team(self, player_id: str) -> None:
        team = self._players[player_id].team
        members = self._teams.get(team)
        if members is None:
            return
        if player_id in members:
            members.remove(player_id)
        if not members:
            del self._teams[team]

    def get(self, player_id: str) -> Player | None:
        return self._players.get(player_id)

    def ids(self) -> list[str]:
        return list(self._players.keys())

    def teams(self) -> dict[str, list[str]]:
        return {name: list(members) for name, members in self._teams.items()}

    def to_list(self) -> list[dict]:
        return [asdict(p) for p in self._players.values()]

    def to_dict(self) -> dict[str, dict]:
        return {pid: asdict(p) for pid, p in self._players.items()}

    def __contains__(self, player_id: object) -> bool:
        return player_id in self._players

    def __len__(self) -> int:
        return len(self._players)

    def __iter__(self) -> Iterator[Player]:
        return iter(list(self._players.values()))


class ScoreBoard:
    def __init__(self) -> None:
        self._scores: dict[str, int] = {}

    def reset(self, player_id: str) -> None:
        self._scores[player_id] = 0

    def add(self, player_id: str, points: int) -> int:
        if points < 0:
            raise ValueError("scores never decrease")
        self._scores[player_id] = self._scores.get(player_id, 0) + points
        return self._scores[player_id]

    def get(self, player_id: str) -> int:
        return self._scores.get(player_id, 0)

    def discard(self, player_id: str) -> None:
        self._scores.pop(player_id, None)

    def as_dict(self) -> dict[str, int]:
        return dict(self._scores)

    def __contains__(self, player_id: object) -> bool:
        return player_id in self._scores
