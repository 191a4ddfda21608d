from collections import Counter
from typing import Dict, FrozenSet, List, NamedTuple, Optional

IMPOSTERS = 'imposters'
CIVILIANS = 'civilians'


class RoomInvariantError(RuntimeError):
    """A programming error: the room no longer matches what the caller assumed."""


class Tally(NamedTuple):
    counts: Dict[str, int]
    max_votes: int
    players_with_max_votes: List[str]
    is_tie: bool


class Outcome(NamedTuple):
    game_ended: bool
    winner: Optional[str]
    reason: str


class Elimination(NamedTuple):
    eliminated_id: str
    alive_ids: FrozenSet[str]
    game_ended: bool
    winner: Optional[str]
    reason: str


def tally(votes: Dict[str, str]) -> Tally:
    """Count votes per candidate.

    Candidates sharing the top count are listed in first-vote order; more
    than one of them is a tie.
    """
    counts = Counter()
    for voted_for in votes.values():
        counts[voted_for] += 1
    max_votes = max(counts.values()) if counts else 0
    leaders = [pid for pid, n in counts.items() if n == max_votes] if counts else []
    return Tally(
        counts=dict(counts),
        max_votes=max_votes,
        players_with_max_votes=leaders,
        is_tie=len(leaders) > 1,
    )


def decide_outcome(alive_players) -> Outcome:
    """The single win rule, applied to the players still alive and present.

    Used after eliminations and after departures alike.
    """
    alive = list(alive_players)
    imposters = [p for p in alive if p.is_imposter]
    if not alive:
        return Outcome(True, None, 'Not enough players remaining to continue.')
    if not imposters:
        return Outcome(True, CIVILIANS, 'All imposters have been eliminated!')
    if len(alive) <= 2:
        return Outcome(True, IMPOSTERS, 'The imposter survived to the final 2!')
    return Outcome(False, None, '')


def eliminate(players, candidate_id: str) -> Elimination:
    """Work out what happens if ``candidate_id`` is voted out.

    Does not modify ``players``; the state machine applies the result.
    """
    if not any(p.id == candidate_id for p in players):
        raise RoomInvariantError(f'Player to eliminate not found: {candidate_id}')
    survivors = [p for p in players if p.is_present and p.id != candidate_id]
    outcome = decide_outcome(survivors)
    return Elimination(
        eliminated_id=candidate_id,
        alive_ids=frozenset(p.id for p in survivors),
        game_ended=outcome.game_ended,
        winner=outcome.winner,
        reason=outcome.reason,
    )
