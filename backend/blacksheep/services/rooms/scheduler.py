import time
from typing import Set, Tuple

from blacksheep import socketio
from blacksheep.models import RoomState
from . import store
from .machine import resolve_round


_scheduled_results: Set[Tuple[str, int]] = set()


def schedule_results_timer(app, room_code: str) -> None:
    """Resolve the round once the vote results have been on screen long enough.

    - No-ops in TESTING mode unless ENABLE_SCHEDULER_IN_TESTS is set
    - Ensures a single timer per (room_code, round)
    - The worker re-reads the room and does nothing if the state or round moved on
    """
    if app.config.get('TESTING') and not app.config.get('ENABLE_SCHEDULER_IN_TESTS'):
        return

    with app.app_context():
        room = store.get(room_code)
        if not room or room.state != RoomState.RESULTS:
            return
        code = room.code
        round_idx = int(room.current_round or 0)
        key = (code, round_idx)
        if key in _scheduled_results:
            app.logger.info(f"[timer-skip] room={code} round={round_idx} already scheduled")
            return
        _scheduled_results.add(key)
        duration = int(app.config.get('RESULTS_DURATION_SEC', 4))
        app.logger.info(f"[timer-set] room={code} round={round_idx} duration={duration}s")

    def _worker(gid: str, expected_round: int, delay: int):
        hb = int(app.config.get('TIMER_HEARTBEAT_SEC', 0) or 0)
        if hb > 0:
            slept = 0
            while slept < delay:
                step = min(hb, delay - slept)
                time.sleep(step)
                slept += step
                app.logger.info(f"[timer-heartbeat] room={gid} round={expected_round} remaining={max(0, delay - slept)}s")
        elif delay > 0:
            time.sleep(delay)
        with app.app_context():
            _scheduled_results.discard((gid, expected_round))
            try:
                room, result = store.transact(gid, lambda r: resolve_round(r, expected_round=expected_round))
            except store.RoomNotFound:
                app.logger.info(f"[timer-abort] room={gid} no longer exists")
                return
            except store.RoomConflict:
                app.logger.warning(f"[timer-abort] room={gid} round={expected_round} lost every update race")
                return
            if not result.applied:
                app.logger.info(f"[timer-abort] room={gid} round={expected_round} {result.reason}")
                return
            app.logger.info(
                f"[timer-fire] room={gid} resolved round={expected_round} -> state={room.state.value} round={room.current_round}"
            )

    if app.config.get('TESTING'):
        _worker(code, round_idx, duration)
    else:
        socketio.start_background_task(_worker, code, round_idx, duration)
