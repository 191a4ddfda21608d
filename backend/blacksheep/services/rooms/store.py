"""Room store: versioned reads and writes plus change notification.

``transact`` is the only way room state changes after creation. It loads the
room, applies a transition and commits with ``WHERE version = <loaded>``; a
concurrent writer makes the UPDATE match no row, in which case the whole
read-apply-write is repeated against the fresh row.
"""
import time
from collections import defaultdict
from typing import Callable, Dict, List, Optional

from flask import current_app
from sqlalchemy.orm.exc import StaleDataError

from blacksheep import db, socketio
from blacksheep.models import ChatMessage, Room


class RoomNotFound(LookupError):
    pass


class RoomConflict(RuntimeError):
    """Every compare-and-swap attempt lost to a concurrent writer."""


_room_listeners: Dict[str, List[Callable]] = defaultdict(list)
_message_listeners: Dict[str, List[Callable]] = defaultdict(list)


def _channel(code: str) -> str:
    return f"room:{code}"


def create(room: Room) -> Room:
    db.session.add(room)
    db.session.commit()
    current_app.logger.info(f"[create] room={room.code} host={room.host_id}")
    publish(room)
    return room


def get(code: str) -> Optional[Room]:
    if not code:
        return None
    return db.session.get(Room, code.upper())


def transact(code: str, fn, retries: Optional[int] = None):
    """Apply ``fn(room) -> Transition`` as one conditional update.

    Returns ``(room, transition)``. Raises ``RoomNotFound`` or ``RoomConflict``.
    """
    if retries is None:
        retries = int(current_app.config.get('ROOM_UPDATE_RETRIES', 3))
    code = (code or '').upper()
    for attempt in range(1, max(1, retries) + 1):
        room = get(code)
        if room is None:
            db.session.rollback()
            raise RoomNotFound(code)
        result = fn(room)
        if not result.applied:
            db.session.rollback()
            return room, result
        room.version = room.version + 1
        try:
            db.session.commit()
        except StaleDataError:
            db.session.rollback()
            current_app.logger.info(f"[conflict] room={code} attempt={attempt}/{retries}")
            continue
        publish(room)
        publish_messages(code)
        return room, result
    current_app.logger.warning(f"[conflict] room={code} gave up after {retries} attempts")
    raise RoomConflict(code)


def subscribe(code: str, callback: Callable) -> Callable[[], None]:
    """Call ``callback(room_dict)`` after every committed change to the room."""
    code = code.upper()
    _room_listeners[code].append(callback)

    def unsubscribe():
        try:
            _room_listeners[code].remove(callback)
        except ValueError:
            pass

    return unsubscribe


def publish(room: Room) -> None:
    payload = room.to_dict()
    for callback in list(_room_listeners.get(room.code, ())):
        callback(payload)
    socketio.emit('state_update', payload, to=_channel(room.code), namespace='/ws')


# ---- Append-only message log ----

def append_message(room: Room, player, text: str, kind: str = 'chat') -> ChatMessage:
    message = ChatMessage(
        room_code=room.code,
        player_id=player.id,
        player_name=player.name,
        text=text,
        round=room.current_round or 0,
        kind=kind,
        created_at=time.time(),
    )
    db.session.add(message)
    db.session.commit()
    publish_messages(room.code)
    return message


def list_messages(code: str) -> List[ChatMessage]:
    return (
        ChatMessage.query.filter_by(room_code=code.upper())
        .order_by(ChatMessage.created_at, ChatMessage.id)
        .all()
    )


def subscribe_messages(code: str, callback: Callable) -> Callable[[], None]:
    """Call ``callback(messages)`` with the ordered log after every change."""
    code = code.upper()
    _message_listeners[code].append(callback)

    def unsubscribe():
        try:
            _message_listeners[code].remove(callback)
        except ValueError:
            pass

    return unsubscribe


def publish_messages(code: str) -> None:
    payload = [m.to_dict() for m in list_messages(code)]
    for callback in list(_message_listeners.get(code, ())):
        callback(payload)
    socketio.emit('messages', payload, to=_channel(code), namespace='/ws')


def clear_messages(code: str) -> None:
    ChatMessage.query.filter_by(room_code=code.upper()).delete()
    db.session.commit()
    publish_messages(code)
