from flask_socketio import join_room, leave_room, emit
from blacksheep.services.rooms import store


def handle_connect():
    emit('connected', {'message': 'Connected to /ws'})


def handle_watch_room(data):
    room_code = (data or {}).get('room_code')
    if not room_code:
        emit('error', {'message': 'room_code is required'})
        return
    room_code = room_code.upper()
    channel = f"room:{room_code}"
    join_room(channel)
    emit('joined', {'room': channel})
    # Subscribers get the current snapshot straight away, then every change
    room = store.get(room_code)
    if room is None:
        emit('room_missing', {'room_code': room_code})
        return
    emit('state_update', room.to_dict())
    emit('messages', [m.to_dict() for m in store.list_messages(room_code)])


def handle_unwatch_room(data):
    room_code = (data or {}).get('room_code')
    if not room_code:
        emit('error', {'message': 'room_code is required'})
        return
    channel = f"room:{room_code.upper()}"
    leave_room(channel)
    emit('left', {'room': channel})


def handle_ping(data):
    emit('pong', data or {})


def register_socketio_handlers(testing: bool = False) -> None:
    """Register Socket.IO event handlers.

    Always register on namespace '/ws'. When testing is True, also mirror
    handlers on the default namespace '/' to accommodate the test harness.
    """
    from blacksheep import socketio

    socketio.on_event('connect', handle_connect, namespace='/ws')
    socketio.on_event('watch_room', handle_watch_room, namespace='/ws')
    socketio.on_event('unwatch_room', handle_unwatch_room, namespace='/ws')
    socketio.on_event('ping', handle_ping, namespace='/ws')

    if testing:
        # Test-only mirror on default namespace
        socketio.on_event('connect', handle_connect, namespace='/')
        socketio.on_event('watch_room', handle_watch_room, namespace='/')
        socketio.on_event('unwatch_room', handle_unwatch_room, namespace='/')
        socketio.on_event('ping', handle_ping, namespace='/')
