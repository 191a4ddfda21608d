from flask import Blueprint, jsonify, request, current_app
from flask_login import current_user, login_required, login_user, logout_user
from sqlalchemy.exc import SQLAlchemyError

from blacksheep import db
from blacksheep.models import RoomState
from blacksheep.services.rooms import machine
from blacksheep.services.rooms import store
from blacksheep.services.rooms.machine import PlayerSession
from blacksheep.services.rooms.scheduler import schedule_results_timer as svc_schedule_results_timer


rooms = Blueprint('rooms', __name__)


@rooms.errorhandler(SQLAlchemyError)
def _store_failure(exc):
    db.session.rollback()
    current_app.logger.exception(f"[store-error] {exc.__class__.__name__}")
    return jsonify({'error': 'Something went wrong saving the room. Please try again.'}), 503


def _cfg_int(key: str, default: int) -> int:
    try:
        return int(current_app.config.get(key, default))
    except (TypeError, ValueError):
        return default


def _session() -> PlayerSession:
    return PlayerSession(room_code=current_user.room_code, player_id=current_user.id)


def _clean_name(raw):
    name = (raw or '').strip()
    if not name:
        return None, 'Player name is required'
    max_len = _cfg_int('NAME_MAX_LENGTH', 20)
    if len(name) > max_len:
        return None, f'Player name must be at most {max_len} characters'
    return name, None


def _clean_text(raw):
    text = (raw or '').strip()
    max_len = _cfg_int('MESSAGE_MAX_LENGTH', 100)
    if not text or len(text) > max_len:
        return None, f'Text must be 1 to {max_len} characters'
    return text, None


def _run(room_code: str, op):
    """Run a state-machine operation as one room transaction and answer with the room."""
    try:
        room, result = store.transact(room_code, op)
    except store.RoomNotFound:
        return jsonify({'error': 'Room not found'}), 404
    except store.RoomConflict:
        return jsonify({'error': 'The room changed while saving. Please try again.'}), 409

    if room.state == RoomState.RESULTS:
        svc_schedule_results_timer(current_app._get_current_object(), room.code)
    payload = room.to_dict()
    if not result.applied:
        current_app.logger.info(f"[ignored] room={room.code} player={current_user.get_id()} reason={result.reason}")
        payload['ignored'] = result.reason
    return jsonify(payload)


@rooms.route('/create', methods=['POST'])
def create_room():
    data = request.get_json(silent=True) or {}
    name, error = _clean_name(data.get('name'))
    if error:
        return jsonify({'error': error}), 400

    min_players = _cfg_int('MIN_PLAYERS', 4)
    limit = _cfg_int('MAX_PLAYERS_LIMIT', 10)
    try:
        max_players = int(data.get('max_players') or _cfg_int('DEFAULT_MAX_PLAYERS', 6))
    except (TypeError, ValueError):
        return jsonify({'error': 'max_players must be a number'}), 400
    if not min_players <= max_players <= limit:
        return jsonify({'error': f'max_players must be between {min_players} and {limit}'}), 400

    room = machine.new_room(name, max_players=max_players,
                            show_imposter_role=bool(data.get('show_imposter_role')))
    store.create(room)
    host = room.host
    login_user(host, remember=True)
    return jsonify({
        'message': 'New room created!',
        'room_code': room.code,
        'player': host.to_dict(),
    }), 201


@rooms.route('/join', methods=['POST'])
def join_room():
    data = request.get_json(silent=True) or {}
    room_code = (data.get('room_code') or '').strip().upper()
    if not room_code:
        return jsonify({'error': 'Room code is required'}), 400
    name, error = _clean_name(data.get('name'))
    if error:
        return jsonify({'error': error}), 400

    try:
        room, result = store.transact(room_code, lambda r: machine.add_player(r, name))
    except store.RoomNotFound:
        return jsonify({'error': 'Room not found. Please check the room code.'}), 404
    except store.RoomConflict:
        return jsonify({'error': 'Failed to join room. Please try again.'}), 409
    if not result.applied:
        return jsonify({'error': result.reason}), 400

    player = result.player
    login_user(player, remember=True)
    current_app.logger.info(f"[join] room={room.code} player={player.id} seat={player.seat}")
    return jsonify(player.to_dict()), 201


@rooms.route('/<string:room_code>/state', methods=['GET'])
def get_room_state(room_code):
    room = store.get(room_code)
    if room is None:
        return jsonify({'error': 'Room not found'}), 404
    payload = room.to_dict()
    payload['durations'] = {'results': _cfg_int('RESULTS_DURATION_SEC', 4)}
    payload['min_players'] = _cfg_int('MIN_PLAYERS', 4)
    return jsonify(payload)


@rooms.route('/<string:room_code>/me', methods=['GET'])
@login_required
def get_my_player(room_code):
    room = store.get(room_code)
    if room is None:
        return jsonify({'error': 'Room not found'}), 404
    player = room.get_player(current_user.id)
    if player is None:
        return jsonify({'error': 'You are not in this room'}), 404
    finished = room.state == RoomState.FINISHED
    payload = player.to_dict()
    payload['word'] = player.word
    # Imposters only learn their role when the room allows it
    if room.show_imposter_role or finished:
        payload['is_imposter'] = player.is_imposter
    return jsonify(payload)


@rooms.route('/<string:room_code>/start', methods=['POST'])
@login_required
def start_game(room_code):
    session = _session()
    min_players = _cfg_int('MIN_PLAYERS', 4)
    return _run(room_code, lambda r: machine.start_game(r, session, min_players=min_players))


@rooms.route('/<string:room_code>/clues', methods=['POST'])
@login_required
def submit_clue(room_code):
    data = request.get_json(silent=True) or {}
    text, error = _clean_text(data.get('clue'))
    if error:
        return jsonify({'error': error}), 400
    session = _session()
    max_len = _cfg_int('MESSAGE_MAX_LENGTH', 100)
    return _run(room_code, lambda r: machine.submit_clue(r, session, text, max_length=max_len))


@rooms.route('/<string:room_code>/voting', methods=['POST'])
@login_required
def begin_voting(room_code):
    session = _session()
    return _run(room_code, lambda r: machine.begin_voting(r, session))


@rooms.route('/<string:room_code>/reset-words', methods=['POST'])
@login_required
def reset_words(room_code):
    session = _session()
    return _run(room_code, lambda r: machine.reset_words(r, session))


@rooms.route('/<string:room_code>/votes', methods=['POST'])
@login_required
def cast_vote(room_code):
    data = request.get_json(silent=True) or {}
    target_id = data.get('target_id')
    if not target_id:
        return jsonify({'error': 'target_id is required'}), 400
    session = _session()
    return _run(room_code, lambda r: machine.cast_vote(r, session, target_id))


@rooms.route('/<string:room_code>/advance', methods=['POST'])
@login_required
def advance_results(room_code):
    session = _session()
    return _run(room_code, lambda r: machine.advance_results(r, session))


@rooms.route('/<string:room_code>/leave', methods=['POST'])
@login_required
def leave_room(room_code):
    session = _session()
    response = _run(room_code, lambda r: machine.leave_room(r, session))
    if not isinstance(response, tuple):
        logout_user()
    return response


@rooms.route('/<string:room_code>/play-again', methods=['POST'])
@login_required
def play_again(room_code):
    session = _session()
    try:
        room, result = store.transact(room_code, lambda r: machine.play_again(r, session))
    except store.RoomNotFound:
        return jsonify({'error': 'Room not found'}), 404
    except store.RoomConflict:
        return jsonify({'error': 'The room changed while saving. Please try again.'}), 409
    if result.applied:
        store.clear_messages(room.code)
        current_app.logger.info(f"[play-again] room={room.code} players={len(room.players)}")
    payload = room.to_dict()
    if not result.applied:
        payload['ignored'] = result.reason
    return jsonify(payload)


@rooms.route('/<string:room_code>/messages', methods=['GET'])
def list_messages(room_code):
    if store.get(room_code) is None:
        return jsonify({'error': 'Room not found'}), 404
    return jsonify([m.to_dict() for m in store.list_messages(room_code)])


@rooms.route('/<string:room_code>/messages', methods=['POST'])
@login_required
def send_message(room_code):
    data = request.get_json(silent=True) or {}
    text, error = _clean_text(data.get('text'))
    if error:
        return jsonify({'error': error}), 400
    room = store.get(room_code)
    if room is None:
        return jsonify({'error': 'Room not found'}), 404
    player = room.get_player(current_user.id)
    if player is None or player.has_left:
        return jsonify({'error': 'You are not in this room'}), 403
    message = store.append_message(room, player, text)
    return jsonify(message.to_dict()), 201
