from blacksheep import db
from flask_login import UserMixin
import enum
import json
import random
import string
import time
import uuid


class RoomState(str, enum.Enum):
    WAITING = 'waiting'
    CLUE = 'clue'
    VOTING = 'voting'
    RESULTS = 'results'
    FINISHED = 'finished'


# Game is "active" in these states; departures soft-retire instead of removing
ACTIVE_STATES = frozenset({RoomState.CLUE, RoomState.VOTING, RoomState.RESULTS})


def _loads(raw, default):
    try:
        return json.loads(raw) if raw else default
    except ValueError:
        return default


class Player(UserMixin, db.Model):
    __tablename__ = 'player'
    id = db.Column(db.String(36), primary_key=True)
    room_code = db.Column(db.String(6), db.ForeignKey('room.code'), nullable=False, index=True)
    name = db.Column(db.String(64), nullable=False)
    seat = db.Column(db.Integer, nullable=False, default=0)  # join order
    is_host = db.Column(db.Boolean, default=False, nullable=False)
    is_imposter = db.Column(db.Boolean, default=False, nullable=False)
    is_alive = db.Column(db.Boolean, default=True, nullable=False)
    has_left = db.Column(db.Boolean, default=False, nullable=False)
    has_voted = db.Column(db.Boolean, default=False, nullable=False)
    has_given_clue = db.Column(db.Boolean, default=False, nullable=False)
    word = db.Column(db.String(64), default='', nullable=False)
    clues_json = db.Column(db.Text, nullable=True)  # JSON-encoded list of clue strings
    room = db.relationship('Room', back_populates='players')

    def __init__(self, **kwargs):
        kwargs.setdefault('id', str(uuid.uuid4()))
        kwargs.setdefault('seat', 0)
        kwargs.setdefault('is_host', False)
        kwargs.setdefault('is_imposter', False)
        kwargs.setdefault('is_alive', True)
        kwargs.setdefault('has_left', False)
        kwargs.setdefault('has_voted', False)
        kwargs.setdefault('has_given_clue', False)
        kwargs.setdefault('word', '')
        super(Player, self).__init__(**kwargs)

    @property
    def clues(self):
        return _loads(self.clues_json, [])

    @clues.setter
    def clues(self, value):
        self.clues_json = json.dumps(list(value))

    @property
    def is_present(self):
        """Alive and still in the room."""
        return self.is_alive and not self.has_left

    def to_dict(self, reveal=False):
        data = {
            'id': self.id,
            'name': self.name,
            'is_host': self.is_host,
            'is_alive': self.is_alive,
            'has_left': self.has_left,
            'has_voted': self.has_voted,
            'has_given_clue': self.has_given_clue,
            'clues': self.clues,
        }
        if reveal:
            data['is_imposter'] = self.is_imposter
            data['word'] = self.word
        return data


def generate_room_code(length=6):
    """Generate a unique, short room code."""
    while True:
        code = ''.join(random.choices(string.ascii_uppercase + string.digits, k=length))
        if not Room.query.filter_by(code=code).first():
            return code


class Room(db.Model):
    __tablename__ = 'room'
    code = db.Column(db.String(6), primary_key=True)
    host_id = db.Column(db.String(36), nullable=True)
    max_players = db.Column(db.Integer, nullable=False, default=6)
    state = db.Column(
        db.Enum(RoomState, values_callable=lambda e: [m.value for m in e], native_enum=False, length=16),
        nullable=False,
        default=RoomState.WAITING,
    )
    current_round = db.Column(db.Integer, nullable=False, default=0)
    votes_json = db.Column(db.Text, nullable=True)  # JSON-encoded {voter_id: voted_for_id}
    used_categories_json = db.Column(db.Text, nullable=True)  # JSON-encoded list of categories
    round_history = db.Column(db.Text, nullable=True)  # JSON-encoded list of round summaries
    show_imposter_role = db.Column(db.Boolean, default=False, nullable=False)
    winner = db.Column(db.String(16), nullable=True)  # imposters, civilians, or null
    end_reason = db.Column(db.String(255), nullable=True)
    created_at = db.Column(db.Float, nullable=True)
    started_at = db.Column(db.Float, nullable=True)
    # Bumped by the store on every committed change; updates are conditional on it
    version = db.Column(db.Integer, nullable=False)
    players = db.relationship('Player', back_populates='room', order_by='Player.seat',
                              cascade='all, delete-orphan')
    messages = db.relationship('ChatMessage', back_populates='room', order_by='ChatMessage.id',
                               cascade='all, delete-orphan')

    __mapper_args__ = {
        'version_id_col': version,
        'version_id_generator': False,
    }

    def __init__(self, **kwargs):
        kwargs.setdefault('state', RoomState.WAITING)
        kwargs.setdefault('current_round', 0)
        kwargs.setdefault('max_players', 6)
        kwargs.setdefault('show_imposter_role', False)
        kwargs.setdefault('version', 1)
        kwargs.setdefault('created_at', time.time())
        super(Room, self).__init__(**kwargs)
        if not self.code:
            self.code = generate_room_code()

    @property
    def votes(self):
        return _loads(self.votes_json, {})

    @votes.setter
    def votes(self, value):
        self.votes_json = json.dumps(dict(value))

    @property
    def used_categories(self):
        return _loads(self.used_categories_json, [])

    @used_categories.setter
    def used_categories(self, value):
        self.used_categories_json = json.dumps(list(value))

    @property
    def history(self):
        return _loads(self.round_history, [])

    @history.setter
    def history(self, value):
        self.round_history = json.dumps(list(value))

    def get_player(self, player_id):
        for p in self.players:
            if p.id == player_id:
                return p
        return None

    @property
    def host(self):
        return next((p for p in self.players if p.is_host), None)

    @property
    def alive_players(self):
        return [p for p in self.players if p.is_present]

    def to_dict(self):
        """Public view; only the fields valid in the current state are included."""
        state = RoomState(self.state)
        finished = state == RoomState.FINISHED
        data = {
            'code': self.code,
            'host_id': self.host_id,
            'state': state.value,
            'current_round': self.current_round,
            'max_players': self.max_players,
            'show_imposter_role': self.show_imposter_role,
            'players': [p.to_dict(reveal=finished) for p in self.players],
            'round_history': self.history,
            'version': self.version,
        }
        if state == RoomState.CLUE:
            data['clues_given'] = sum(1 for p in self.alive_players if p.has_given_clue)
        if state in (RoomState.VOTING, RoomState.RESULTS):
            data['votes'] = self.votes
        if state == RoomState.RESULTS:
            from blacksheep.services.rooms.resolver import tally
            data['tally'] = tally(self.votes)._asdict()
        if finished:
            data['winner'] = self.winner
            data['end_reason'] = self.end_reason
        return data


class ChatMessage(db.Model):
    __tablename__ = 'chat_message'
    id = db.Column(db.Integer, primary_key=True)
    room_code = db.Column(db.String(6), db.ForeignKey('room.code'), nullable=False, index=True)
    player_id = db.Column(db.String(36), nullable=False)
    player_name = db.Column(db.String(64), nullable=False)
    text = db.Column(db.Text, nullable=False)
    round = db.Column(db.Integer, nullable=False, default=0)
    kind = db.Column(db.String(8), nullable=False, default='chat')  # clue or chat
    created_at = db.Column(db.Float, nullable=False, default=time.time)
    room = db.relationship('Room', back_populates='messages')

    def to_dict(self):
        return {
            'id': self.id,
            'player_id': self.player_id,
            'player_name': self.player_name,
            'text': self.text,
            'round': self.round,
            'kind': self.kind,
            'created_at': self.created_at,
        }
