"""Room lifecycle transitions.

Every operation takes the room and the caller's ``PlayerSession``, checks its
guards and either mutates the room in place and reports ``applied=True`` or
leaves it untouched and reports why the request was ignored. Nothing here
commits; ``store.transact`` wraps each call in a versioned update, and the
message log is cleared by the caller when a new game begins.
"""
import time
from typing import NamedTuple, Optional

from blacksheep.models import ACTIVE_STATES, ChatMessage, Player, Room, RoomState
from .resolver import RoomInvariantError, decide_outcome, eliminate, tally
from .words import assign_words, word_for


class PlayerSession(NamedTuple):
    room_code: str
    player_id: str


class Transition(NamedTuple):
    applied: bool
    reason: str = ''
    player: Optional[Player] = None


TRANSITIONS = {
    RoomState.WAITING: {RoomState.CLUE},
    RoomState.CLUE: {RoomState.CLUE, RoomState.VOTING, RoomState.FINISHED},
    RoomState.VOTING: {RoomState.RESULTS, RoomState.FINISHED},
    RoomState.RESULTS: {RoomState.CLUE, RoomState.FINISHED},
    RoomState.FINISHED: {RoomState.WAITING},
}


def _ignored(reason: str) -> Transition:
    return Transition(False, reason)


def _state(room: Room) -> RoomState:
    return RoomState(room.state)


def _move(room: Room, target: RoomState) -> None:
    current = _state(room)
    if target not in TRANSITIONS[current]:
        raise RoomInvariantError(f'Illegal transition {current.value} -> {target.value}')
    room.state = target


def _actor(room: Room, session: PlayerSession) -> Optional[Player]:
    if session is None or session.room_code != room.code:
        return None
    return room.get_player(session.player_id)


def _make_host(room: Room, player: Optional[Player]) -> None:
    for p in room.players:
        p.is_host = p is player
    room.host_id = player.id if player else None


def _can_drive_round(room: Room, actor: Player) -> bool:
    # The host drives the round; if the host is out, anyone still playing may
    if actor.is_host:
        return True
    host = room.host
    return actor.is_present and (host is None or not host.is_present)


def _deal_words(room: Room, players, rng=None) -> None:
    assignment = assign_words([p.id for p in players], room.used_categories, rng=rng)
    for p in players:
        p.is_imposter = p.id == assignment.imposter_id
        p.word = word_for(assignment, p.id)
    room.used_categories = assignment.used_categories


def _finish(room: Room, winner: Optional[str], reason: str) -> None:
    room.winner = winner
    room.end_reason = reason
    room.votes = {}
    _move(room, RoomState.FINISHED)


def _next_round(room: Room) -> None:
    room.current_round = (room.current_round or 0) + 1
    room.votes = {}
    for p in room.players:
        p.has_voted = False
        p.has_given_clue = False
    _move(room, RoomState.CLUE)


def _advance_if_complete(room: Room) -> None:
    alive = room.alive_players
    state = _state(room)
    if state == RoomState.CLUE and alive and all(p.has_given_clue for p in alive):
        _move(room, RoomState.VOTING)
    elif state == RoomState.VOTING and alive and len(room.votes) >= len(alive):
        _move(room, RoomState.RESULTS)


def new_room(host_name: str, max_players: int = 6, show_imposter_role: bool = False) -> Room:
    room = Room(max_players=max_players, show_imposter_role=show_imposter_role)
    host = Player(name=host_name, seat=0, is_host=True)
    room.players.append(host)
    room.host_id = host.id
    return room


def add_player(room: Room, name: str) -> Transition:
    name = (name or '').strip()
    if not name:
        return _ignored('Player name is required')
    if _state(room) != RoomState.WAITING:
        return _ignored('Game has already started. Cannot join now.')
    if len(room.players) >= room.max_players:
        return _ignored('Room is full. Cannot join.')
    if any(p.name.lower() == name.lower() for p in room.players):
        return _ignored('Name is already taken. Please choose a different name.')
    seat = max((p.seat for p in room.players), default=-1) + 1
    player = Player(name=name, seat=seat)
    room.players.append(player)
    if not room.host_id:
        _make_host(room, player)
    return Transition(True, player=player)


def start_game(room: Room, session: PlayerSession, min_players: int = 4, rng=None) -> Transition:
    actor = _actor(room, session)
    if actor is None:
        return _ignored('You are not in this room')
    if _state(room) != RoomState.WAITING:
        return _ignored('Game is not waiting to start')
    if not actor.is_host:
        return _ignored('Only the host can start the game')
    if len(room.players) < min_players:
        return _ignored(f'At least {min_players} players are required to start')

    for p in room.players:
        p.has_voted = False
        p.has_given_clue = False
        p.clues = []
    _deal_words(room, room.alive_players, rng=rng)
    room.current_round = 1
    room.votes = {}
    room.history = []
    room.winner = None
    room.end_reason = None
    room.started_at = time.time()
    _move(room, RoomState.CLUE)
    return Transition(True)


def submit_clue(room: Room, session: PlayerSession, text: str, max_length: int = 100) -> Transition:
    actor = _actor(room, session)
    if actor is None:
        return _ignored('You are not in this room')
    if _state(room) != RoomState.CLUE:
        return _ignored('Clues are only accepted during the clue phase')
    if not actor.is_present:
        return _ignored('Eliminated players cannot give clues')
    if actor.has_given_clue:
        return _ignored('You already gave a clue this round')
    text = (text or '').strip()
    if not text or len(text) > max_length:
        return _ignored(f'Clues must be 1 to {max_length} characters')

    actor.clues = actor.clues + [text]
    actor.has_given_clue = True
    room.messages.append(ChatMessage(
        player_id=actor.id,
        player_name=actor.name,
        text=text,
        round=room.current_round,
        kind='clue',
        created_at=time.time(),
    ))
    _advance_if_complete(room)
    return Transition(True)


def begin_voting(room: Room, session: PlayerSession) -> Transition:
    actor = _actor(room, session)
    if actor is None:
        return _ignored('You are not in this room')
    if _state(room) != RoomState.CLUE:
        return _ignored('Voting can only start from the clue phase')
    if not _can_drive_round(room, actor):
        return _ignored('Only the host can start voting')
    _move(room, RoomState.VOTING)
    return Transition(True)


def reset_words(room: Room, session: PlayerSession, rng=None) -> Transition:
    actor = _actor(room, session)
    if actor is None:
        return _ignored('You are not in this room')
    if _state(room) != RoomState.CLUE:
        return _ignored('Words can only be reset during the clue phase')
    if not actor.is_host:
        return _ignored('Only the host can reset the words')

    for p in room.players:
        if p.has_given_clue and p.clues:
            p.clues = p.clues[:-1]
        p.has_given_clue = False
        p.has_voted = False
    stale = [m for m in room.messages if m.kind == 'clue' and m.round == room.current_round]
    for m in stale:
        room.messages.remove(m)
    _deal_words(room, room.alive_players, rng=rng)
    room.votes = {}
    _move(room, RoomState.CLUE)
    return Transition(True)


def cast_vote(room: Room, session: PlayerSession, target_id: str) -> Transition:
    actor = _actor(room, session)
    if actor is None:
        return _ignored('You are not in this room')
    if _state(room) != RoomState.VOTING:
        return _ignored('Votes are only accepted during the voting phase')
    if not actor.is_present:
        return _ignored('Eliminated players cannot vote')
    votes = room.votes
    if actor.has_voted or actor.id in votes:
        return _ignored('You already voted this round')
    target = room.get_player(target_id)
    if target is None or not target.is_present:
        return _ignored('You can only vote for a player still in the game')
    if target.id == actor.id:
        return _ignored('You cannot vote for yourself')

    votes[actor.id] = target.id
    room.votes = votes
    actor.has_voted = True
    _advance_if_complete(room)
    return Transition(True)


def resolve_round(room: Room, expected_round: Optional[int] = None) -> Transition:
    """Close the results stage: eliminate the top candidate or repeat on a tie.

    ``expected_round`` lets a delayed caller no-op when the room has moved on.
    """
    if _state(room) != RoomState.RESULTS:
        return _ignored('Room is not showing results')
    if expected_round is not None and expected_round != room.current_round:
        return _ignored('Round already resolved')

    result = tally(room.votes)
    entry = {
        'round': room.current_round,
        'counts': result.counts,
        'tie': result.is_tie,
        'eliminated_id': None,
    }
    if result.is_tie or not result.players_with_max_votes:
        room.history = room.history + [entry]
        _next_round(room)
        return Transition(True, 'Tie: nobody was eliminated')

    elimination = eliminate(room.players, result.players_with_max_votes[0])
    room.get_player(elimination.eliminated_id).is_alive = False
    entry['eliminated_id'] = elimination.eliminated_id
    room.history = room.history + [entry]
    if elimination.game_ended:
        _finish(room, elimination.winner, elimination.reason)
    else:
        _next_round(room)
    return Transition(True)


def advance_results(room: Room, session: PlayerSession) -> Transition:
    actor = _actor(room, session)
    if actor is None:
        return _ignored('You are not in this room')
    if _state(room) == RoomState.RESULTS and not _can_drive_round(room, actor):
        return _ignored('Only the host can advance the round')
    return resolve_round(room)


def leave_room(room: Room, session: PlayerSession) -> Transition:
    """Take the caller out of the room.

    Before the game starts the player is removed outright. Once it has
    started they stay on the roster as left and not alive, and the win rule
    used after eliminations is applied to whoever is still playing. So an
    imposter quitting ends the game as a civilian win even with three or
    more players left, not only when the table drops to two.

    Ballots are only touched while voting is open; results are shown and
    resolved from the votes as they were cast.
    """
    actor = _actor(room, session)
    if actor is None:
        return _ignored('You are not in this room')
    state = _state(room)

    if state == RoomState.WAITING:
        was_host = actor.is_host
        room.players.remove(actor)
        if was_host:
            _make_host(room, room.players[0] if room.players else None)
        return Transition(True)

    if actor.has_left:
        return _ignored('You already left this game')
    actor.has_left = True
    actor.is_alive = False
    if actor.is_host:
        _make_host(room, next((p for p in room.players if not p.has_left), None))
    if state not in ACTIVE_STATES:
        return Transition(True)

    if state == RoomState.VOTING:
        # Drop the leaver's ballot and any ballots cast against them; those voters pick again
        votes = room.votes
        kept = {voter: target for voter, target in votes.items()
                if voter != actor.id and target != actor.id}
        for voter in set(votes) - set(kept):
            p = room.get_player(voter)
            if p is not None and p is not actor:
                p.has_voted = False
        room.votes = kept
    present = room.alive_players
    if not present:
        _finish(room, None, 'All players left the game.')
        return Transition(True)
    outcome = decide_outcome(present)
    if outcome.game_ended:
        _finish(room, outcome.winner, outcome.reason)
        return Transition(True)
    if state != RoomState.RESULTS:
        _advance_if_complete(room)
    return Transition(True)


def play_again(room: Room, session: PlayerSession) -> Transition:
    actor = _actor(room, session)
    if actor is None or actor.has_left:
        return _ignored('You are not in this room')
    if _state(room) != RoomState.FINISHED:
        return _ignored('The game has not finished')
    if not actor.is_host:
        return _ignored('Only the host can start a new game')

    for gone in [p for p in room.players if p.has_left]:
        room.players.remove(gone)
    for p in room.players:
        p.is_alive = True
        p.is_imposter = False
        p.word = ''
        p.clues = []
        p.has_voted = False
        p.has_given_clue = False
    room.current_round = 0
    room.votes = {}
    room.used_categories = []
    room.history = []
    room.winner = None
    room.end_reason = None
    room.started_at = None
    _move(room, RoomState.WAITING)
    return Transition(True)
