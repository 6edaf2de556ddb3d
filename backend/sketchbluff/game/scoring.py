from __future__ import annotations

from collections import Counter
from typing import Any, Iterable, Mapping

from .models import Winner


BEST_DRAWING_POINTS = 10
CORRECT_GUESS_POINTS = 5
DECOY_POINTS = 3


def tally_votes(votes: Mapping[str, Iterable[str]]) -> Counter:
    counts: Counter = Counter()
    for owner_ids in votes.values():
        for owner_id in owner_ids:
            counts[owner_id] += 1
    return counts


def pick_winners(
    prompts: Mapping[str, str],
    drawings: Mapping[str, Any],
    votes: Mapping[str, Iterable[str]],
) -> list[Winner]:
    """Pick the best drawing for every distinct prompt.

    Owners are grouped by assigned prompt in assignment order; only owners who
    submitted a drawing compete. A strictly greater tally is needed to displace
    the current leader, so ties go to the owner assigned first.
    """
    counts = tally_votes(votes)
    best: dict[str, Winner] = {}
    for owner_id, prompt in prompts.items():
        if owner_id not in drawings:
            continue
        n = counts.get(owner_id, 0)
        current = best.get(prompt)
        if current is None or n > current.votes:
            best[prompt] = Winner(player_id=owner_id, prompt=prompt, votes=n)
    return list(best.values())


def score_round(
    prompts: Mapping[str, str],
    winners: Iterable[Winner],
    guesses: Mapping[str, Mapping[str, str]],
) -> dict[str, int]:
    """Return points earned this round, keyed by player.

    +10 to each prompt winner; +5 per exact correct guess; a wrong guess is a
    decoy worth +3 for every other guesser who wrote the identical string for
    the same drawing.
    """
    awards: Counter = Counter()

    for winner in winners:
        awards[winner.player_id] += BEST_DRAWING_POINTS

    for guesser_id, by_owner in guesses.items():
        for owner_id, guess in by_owner.items():
            correct = prompts.get(owner_id)
            if correct is None:
                continue
            if guess == correct:
                awards[guesser_id] += CORRECT_GUESS_POINTS
                continue

            fooled = sum(
                1
                for other_id, other in guesses.items()
                if other_id != guesser_id and other.get(owner_id) == guess
            )
            if fooled:
                awards[guesser_id] += fooled * DECOY_POINTS

    return dict(awards)
