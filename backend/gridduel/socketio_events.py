from flask import current_app, request
from flask_socketio import close_room, emit, join_room
from typing import Any, Dict, Iterable, Optional

from gridduel import socketio
from gridduel.constants import DEFAULT_BOARD_SIZE
from gridduel.models import Notification
from gridduel.services.games.scheduler import cancel_scheduled, schedule_deferred
from gridduel.services.games.service import GameService

# Events after which a pending game-over for the room is out of date
_STALE_EVENTS = ('gameRestarted', 'hostLeft')


def _get_sid() -> str:
    # type: ignore: request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def _pick(data: Dict[str, Any], *keys, default=None):
    """First present key wins; older clients send ``gameId``/``gameSize``/``hostStarts``."""
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return default


def _flag(data: Dict[str, Any], *keys, default: bool) -> bool:
    """Only real JSON booleans count; anything else falls back to ``default``."""
    value = _pick(data, *keys)
    return value if isinstance(value, bool) else default


def _topic(room_id: str) -> str:
    return f"game:{room_id}"


def _room_id(data) -> Optional[str]:
    if isinstance(data, str):
        room_id = data
    elif isinstance(data, dict):
        room_id = _pick(data, 'roomId', 'gameId')
    else:
        return None
    if room_id is None or room_id == '':
        return None
    return str(room_id)


class GameEventDispatcher:
    """Routes Socket.IO events to the ``GameService`` and delivers what it returns."""

    def __init__(self, service: GameService, namespace: str = '/'):
        self.service = service
        self.namespace = namespace

    def handle_connect(self, auth=None):
        current_app.logger.info(f"[connect] sid={_get_sid()}")

    def handle_disconnect(self, reason=None):
        sid = _get_sid()
        current_app.logger.info(f"[disconnect] sid={sid} reason={reason}")
        with self.service.lock:
            self._deliver(self.service.disconnect(sid))

    def handle_create_game(self, data=None):
        if not isinstance(data, dict):
            emit('error', {'message': 'createGame expects an object'})
            return
        room_id = _room_id(data)
        if not room_id:
            emit('error', {'message': 'roomId is required'})
            return
        label = _pick(data, 'boardSizeLabel', 'gameSize', default=DEFAULT_BOARD_SIZE)
        host_plays_x = _flag(data, 'hostPlaysX', 'hostStarts', default=True)
        current_app.logger.info(f"[createGame] room={room_id} sid={_get_sid()} size={label}")
        with self.service.lock:
            self._deliver(self.service.create_game(_get_sid(), room_id, label, host_plays_x))

    def handle_join_game(self, data=None):
        room_id = _room_id(data)
        if not room_id:
            emit('error', {'message': 'roomId is required'})
            return
        current_app.logger.info(f"[joinGame] room={room_id} sid={_get_sid()}")
        with self.service.lock:
            self._deliver(self.service.join_game(_get_sid(), room_id))

    def handle_make_move(self, data=None):
        room_id = _room_id(data)
        if not room_id or not isinstance(data, dict):
            emit('error', {'message': 'roomId is required'})
            return
        cell_index = _pick(data, 'cellIndex', 'index')
        with self.service.lock:
            self._deliver(self.service.make_move(_get_sid(), room_id, cell_index))

    def handle_restart_game(self, data=None):
        room_id = _room_id(data)
        if not room_id:
            emit('error', {'message': 'roomId is required'})
            return
        current_app.logger.info(f"[restartGame] room={room_id} sid={_get_sid()}")
        with self.service.lock:
            self._deliver(self.service.request_restart(_get_sid(), room_id))

    def handle_decline_restart(self, data=None):
        room_id = _room_id(data)
        if not room_id:
            emit('error', {'message': 'roomId is required'})
            return
        with self.service.lock:
            self._deliver(self.service.decline_restart(_get_sid(), room_id))

    def handle_change_settings(self, data=None):
        room_id = _room_id(data)
        if not room_id or not isinstance(data, dict):
            emit('error', {'message': 'roomId is required'})
            return
        label = _pick(data, 'boardSizeLabel', 'gameSize')
        host_plays_x = _flag(data, 'hostPlaysX', 'hostStarts', default=True)
        apply_immediately = _flag(data, 'applyImmediately', default=False)
        current_app.logger.info(
            f"[changeGameSettings] room={room_id} sid={_get_sid()} size={label} apply_immediately={apply_immediately}"
        )
        with self.service.lock:
            self._deliver(self.service.change_settings(_get_sid(), room_id, label, host_plays_x, apply_immediately))

    def handle_chat_message(self, data=None):
        room_id = _room_id(data)
        if not room_id or not isinstance(data, dict):
            return
        with self.service.lock:
            self._deliver(self.service.chat(room_id, data.get('message'), _pick(data, 'senderLabel', 'sender')))

    def _deliver(self, notifications: Iterable[Notification]) -> None:
        app = current_app._get_current_object()
        suppress_stale = app.config.get('SUPPRESS_STALE_GAME_OVER')
        touched = set()
        for notification in notifications:
            if notification.room_id:
                touched.add(notification.room_id)
            if suppress_stale and notification.event in _STALE_EVENTS and notification.room_id:
                dropped = cancel_scheduled(notification.room_id)
                if dropped:
                    app.logger.info(f"[timer-cancel] room={notification.room_id} dropped={dropped}")
            if notification.delay_ms:
                # Addressed by sid so it still arrives after the topic is closed
                schedule_deferred(app, self.service, notification, namespace=self.namespace)
                continue
            if notification.broadcast:
                room = _topic(notification.room_id)
                for target in notification.to:
                    join_room(room, sid=target, namespace=self.namespace)
                socketio.emit(notification.event, notification.payload, to=room, namespace=self.namespace)
                continue
            for target in notification.to:
                socketio.emit(notification.event, notification.payload, to=target, namespace=self.namespace)

        for room_id in touched:
            if room_id not in self.service.registry:
                close_room(_topic(room_id), namespace=self.namespace)


def register_socketio_handlers(service: GameService, namespace: str = '/') -> GameEventDispatcher:
    """Bind the game events on ``namespace`` to a dispatcher for ``service``."""
    dispatcher = GameEventDispatcher(service, namespace)
    socketio.on_event('connect', dispatcher.handle_connect, namespace=namespace)
    socketio.on_event('disconnect', dispatcher.handle_disconnect, namespace=namespace)
    socketio.on_event('createGame', dispatcher.handle_create_game, namespace=namespace)
    socketio.on_event('joinGame', dispatcher.handle_join_game, namespace=namespace)
    socketio.on_event('makeMove', dispatcher.handle_make_move, namespace=namespace)
    socketio.on_event('restartGame', dispatcher.handle_restart_game, namespace=namespace)
    socketio.on_event('declineRestart', dispatcher.handle_decline_restart, namespace=namespace)
    socketio.on_event('changeGameSettings', dispatcher.handle_change_settings, namespace=namespace)
    socketio.on_event('chatMessage', dispatcher.handle_chat_message, namespace=namespace)
    return dispatcher
