import pytest
import sqlalchemy as sa

from blacksheep import db
from blacksheep.models import Room, RoomState
from blacksheep.services.rooms import machine, store
from blacksheep.services.rooms.machine import PlayerSession, Transition
from blacksheep.services.rooms.scheduler import schedule_results_timer


def _seed_room(players=4):
    room = machine.new_room('Host')
    for i in range(1, players):
        machine.add_player(room, f'Guest {i}')
    store.create(room)
    return room.code


def test_create_and_get(app_ctx):
    code = _seed_room()
    room = store.get(code.lower())
    assert room is not None
    assert room.version == 1
    assert len(room.players) == 4
    assert store.get('NOPE00') is None


def test_transact_bumps_version_and_notifies(app_ctx):
    code = _seed_room()
    seen = []
    unsubscribe = store.subscribe(code, seen.append)
    host_id = store.get(code).host_id

    room, result = store.transact(code, lambda r: machine.start_game(r, PlayerSession(code, host_id)))
    assert result.applied is True
    assert room.version == 2
    assert room.state == RoomState.CLUE
    assert seen and seen[-1]['state'] == 'clue'

    unsubscribe()
    store.transact(code, lambda r: machine.begin_voting(r, PlayerSession(code, host_id)))
    assert len(seen) == 1


def test_ignored_transition_does_not_write(app_ctx):
    code = _seed_room()
    seen = []
    store.subscribe(code, seen.append)
    guest = store.get(code).players[1]
    room, result = store.transact(code, lambda r: machine.start_game(r, PlayerSession(code, guest.id)))
    assert result.applied is False
    assert room.version == 1
    assert seen == []


def test_transact_retries_after_lost_race(file_app_ctx):
    code = _seed_room()
    rooms = Room.__table__
    calls = []

    def join_after_another_writer(room):
        calls.append(room.version)
        if len(calls) == 1:
            # Another writer commits first on its own connection
            with db.engine.connect() as other:
                other.execute(
                    sa.update(rooms)
                    .where(rooms.c.code == room.code)
                    .values(show_imposter_role=True, version=rooms.c.version + 1)
                )
                other.commit()
        return machine.add_player(room, 'Late Guest')

    room, result = store.transact(code, join_after_another_writer)
    assert result.applied is True
    assert calls == [1, 2]
    assert room.version == 3

    db.session.close()
    saved = store.get(code)
    # Both the concurrent commit and the retried join are kept
    assert saved.show_imposter_role is True
    assert [p.name for p in saved.players].count('Late Guest') == 1
    assert len(saved.players) == 5
    assert saved.version == 3


def test_transact_gives_up_after_retries(app_ctx):
    code = _seed_room()

    def always_lose(room):
        db.session.execute(
            sa.update(Room)
            .where(Room.code == room.code)
            .values(version=Room.version + 1)
            .execution_options(synchronize_session=False)
        )
        return Transition(True)

    with pytest.raises(store.RoomConflict):
        store.transact(code, always_lose, retries=2)


def test_message_log_subscription(app_ctx):
    code = _seed_room()
    room = store.get(code)
    snapshots = []
    store.subscribe_messages(code, snapshots.append)
    store.append_message(room, room.players[0], 'first')
    store.append_message(room, room.players[1], 'second')
    assert [m['text'] for m in snapshots[-1]] == ['first', 'second']

    store.clear_messages(code)
    assert snapshots[-1] == []
    assert store.list_messages(code) == []


def test_results_timer_resolves_round(app_ctx):
    app_ctx.config['ENABLE_SCHEDULER_IN_TESTS'] = True
    code = _seed_room()
    host_id = store.get(code).host_id
    store.transact(code, lambda r: machine.start_game(r, PlayerSession(code, host_id)))
    store.transact(code, lambda r: machine.begin_voting(r, PlayerSession(code, host_id)))
    room = store.get(code)
    ids = [p.id for p in room.players]
    target = next(pid for pid in ids if pid != host_id)
    for pid in ids:
        voted_for = target if pid != target else host_id
        store.transact(code, lambda r, pid=pid, voted_for=voted_for: machine.cast_vote(r, PlayerSession(code, pid), voted_for))
    assert store.get(code).state == RoomState.RESULTS
    db.session.commit()
    db.session.close()

    schedule_results_timer(app_ctx, code)

    room = store.get(code)
    assert room.state in (RoomState.CLUE, RoomState.FINISHED)
    assert room.history[-1]['eliminated_id'] == target

    # A second timer for the same, already resolved round is a no-op
    version = room.version
    db.session.close()
    schedule_results_timer(app_ctx, code)
    assert store.get(code).version == version
