import itertools
import time
from typing import Set, Tuple

from gridduel import socketio
from gridduel.models import Notification


# (room id, token); tokens never repeat within the process
_scheduled_broadcasts: Set[Tuple[str, int]] = set()
_tokens = itertools.count(1)


def schedule_deferred(app, service, notification: Notification, namespace: str = '/') -> int:
    """Emit ``notification`` after its ``delay_ms`` without blocking the caller.

    - Runs inline in TESTING mode unless ENABLE_SCHEDULER_IN_TESTS is set
    - Every call gets its own token, so each scheduled broadcast fires once
    - Fires even if the room was reset or closed meanwhile, unless
      SUPPRESS_STALE_GAME_OVER is enabled
    """
    key = (notification.room_id, next(_tokens))
    delay = max(0, notification.delay_ms) / 1000.0
    _scheduled_broadcasts.add(key)
    app.logger.info(
        f"[timer-set] room={notification.room_id} event={notification.event} generation={notification.generation} token={key[1]} delay={delay}s"
    )

    def _worker(deadline: float):
        sleep_for = max(0.0, deadline - time.time())
        if sleep_for:
            socketio.sleep(sleep_for)
        if key not in _scheduled_broadcasts:
            app.logger.info(f"[timer-abort] room={notification.room_id} event={notification.event} cancelled")
            return
        _scheduled_broadcasts.discard(key)
        if app.config.get('SUPPRESS_STALE_GAME_OVER') and not service.is_current(notification.room_id, notification.generation):
            app.logger.info(f"[timer-abort] room={notification.room_id} event={notification.event} stale")
            return
        app.logger.info(
            f"[timer-fire] room={notification.room_id} event={notification.event} recipients={len(notification.to)}"
        )
        for target in notification.to:
            socketio.emit(notification.event, notification.payload, to=target, namespace=namespace)

    deadline = time.time() + delay
    if app.config.get('TESTING') and not app.config.get('ENABLE_SCHEDULER_IN_TESTS'):
        _worker(deadline)
    else:
        socketio.start_background_task(_worker, deadline)
    return key[1]


def cancel_scheduled(room_id: str) -> int:
    """Drop every pending broadcast for ``room_id``; returns how many were dropped."""
    stale = {key for key in _scheduled_broadcasts if key[0] == room_id}
    _scheduled_broadcasts.difference_update(stale)
    return len(stale)
