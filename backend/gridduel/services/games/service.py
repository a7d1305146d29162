"""Room state machine.

Every operation takes the acting connection id plus the event payload, mutates
at most one room, and returns the list of ``Notification`` objects the
transport has to deliver. Invalid or out-of-turn requests return an empty list
or a notice addressed to the requester; nothing here raises for client input.
"""

import logging
import threading
from typing import List, Optional

from gridduel.constants import GAME_OVER_DELAY_MS
from gridduel.models import ConnectionId, InvalidBoardSize, Notification, Room, other_symbol, resolve_dimension
from gridduel.services.games.registry import RoomRegistry
from gridduel.services.games.rules import evaluate_board

logger = logging.getLogger(__name__)

Notifications = List[Notification]


def _to_all(room: Room, event: str, payload=None, **kwargs) -> Notification:
    return Notification(event, payload, tuple(room.participants), room.id, broadcast=True, **kwargs)


def _to_one(room_id: Optional[str], connection_id: ConnectionId, event: str, payload=None) -> Notification:
    return Notification(event, payload, (connection_id,), room_id)


class GameService:
    def __init__(self, registry: Optional[RoomRegistry] = None, game_over_delay_ms: int = GAME_OVER_DELAY_MS):
        self.registry = registry if registry is not None else RoomRegistry()
        self.game_over_delay_ms = game_over_delay_ms
        # Held for the whole of each operation; re-entrant so the dispatcher can
        # keep it while emitting the result
        self.lock = threading.RLock()

    # ---- Lobby ----

    def create_game(self, connection_id: ConnectionId, room_id: str, board_size_label: str,
                    host_plays_x: bool = True) -> Notifications:
        with self.lock:
            existing = self.registry.get(room_id)
            if existing is not None:
                # Settings of a live room are never overwritten by a second creator
                logger.info(f"[create-existing] room={room_id} sid={connection_id} handled as join")
                return self._join(existing, connection_id)
            try:
                room = self.registry.create_if_absent(room_id, connection_id, board_size_label, host_plays_x)
            except InvalidBoardSize as exc:
                logger.warning(f"[create-rejected] room={room_id} sid={connection_id} reason={exc}")
                return [_to_one(room_id, connection_id, 'error', {'message': str(exc)})]
            return [
                _to_one(room.id, connection_id, 'assignSymbol',
                        {'symbol': room.symbol_for(connection_id), 'isHost': True}),
                _to_one(room.id, connection_id, 'waitingForOpponent',
                        {'roomId': room.id, 'boardSizeLabel': room.board_size_label}),
            ]

    def join_game(self, connection_id: ConnectionId, room_id: str) -> Notifications:
        with self.lock:
            room = self.registry.get(room_id)
            if room is None:
                logger.info(f"[join-missing] room={room_id} sid={connection_id}")
                return [_to_one(room_id, connection_id, 'gameNotFound', {'message': f'Game {room_id} not found'})]
            return self._join(room, connection_id)

    def _join(self, room: Room, connection_id: ConnectionId) -> Notifications:
        if connection_id in room.participants:
            return []
        if room.is_full:
            logger.info(f"[join-full] room={room.id} sid={connection_id}")
            return [_to_one(room.id, connection_id, 'gameFull', {'message': f'Game {room.id} is full'})]
        room.participants.append(connection_id)
        logger.info(f"[join] room={room.id} sid={connection_id} symbol={room.symbol_for(connection_id)}")
        return [
            _to_one(room.id, connection_id, 'assignSymbol',
                    {'symbol': room.symbol_for(connection_id), 'isHost': False}),
            _to_all(room, 'gameStart', room.to_dict()),
        ]

    # ---- Play ----

    def make_move(self, connection_id: ConnectionId, room_id: str, cell_index) -> Notifications:
        with self.lock:
            room = self.registry.get(room_id)
            if room is None:
                return []
            if isinstance(cell_index, bool) or not isinstance(cell_index, int) \
                    or not 0 <= cell_index < len(room.board):
                logger.info(f"[move-rejected] room={room_id} sid={connection_id} reason=bad-cell cell={cell_index!r}")
                return []
            if room.outcome is not None or room.board[cell_index] is not None:
                logger.info(f"[move-rejected] room={room_id} sid={connection_id} reason=settled cell={cell_index}")
                return []
            if not room.is_full or room.symbol_for(connection_id) != room.turn:
                logger.info(f"[move-rejected] room={room_id} sid={connection_id} reason=not-your-turn")
                return []

            room.board[cell_index] = room.turn
            logger.info(f"[move] room={room_id} sid={connection_id} cell={cell_index} symbol={room.turn}")
            outcome = evaluate_board(room.board, room.winning_lines)
            if outcome is None:
                room.turn = other_symbol(room.turn)
                return [_to_all(room, 'updateBoard', room.to_dict())]

            room.outcome = outcome
            logger.info(f"[game-over] room={room_id} winner={outcome.winner} line={list(outcome.line)}")
            return [
                _to_all(room, 'updateBoard', room.to_dict()),
                _to_all(room, 'gameOver', outcome.to_dict(),
                        delay_ms=self.game_over_delay_ms, generation=room.generation),
            ]

    # ---- Restart negotiation ----

    def request_restart(self, connection_id: ConnectionId, room_id: str) -> Notifications:
        """Host proposes a restart; the guest sending the same event accepts it."""
        with self.lock:
            room = self.registry.get(room_id)
            if room is None:
                logger.info(f"[restart-missing] room={room_id} sid={connection_id}")
                return []
            if connection_id == room.host:
                guest = room.guest
                if guest is None:
                    return []
                room.restart_pending = True
                logger.info(f"[restart-proposed] room={room_id} to={guest}")
                return [_to_one(room.id, guest, 'restartRequest')]
            if connection_id not in room.participants:
                return []
            logger.info(f"[restart-accepted] room={room_id} sid={connection_id}")
            return self._restart(room)

    def decline_restart(self, connection_id: ConnectionId, room_id: str) -> Notifications:
        with self.lock:
            room = self.registry.get(room_id)
            if room is None or not room.restart_pending:
                return []
            if connection_id == room.host or connection_id not in room.participants:
                return []
            room.restart_pending = False
            logger.info(f"[restart-declined] room={room_id} sid={connection_id}")
            return [_to_one(room.id, room.host, 'restartDeclined')]

    def _restart(self, room: Room, board_size_label: Optional[str] = None,
                 host_plays_x: Optional[bool] = None, announce_symbols: bool = False) -> Notifications:
        before = {cid: room.symbol_for(cid) for cid in room.participants}
        room.reset(board_size_label, host_plays_x)
        notifications = []
        for cid in room.participants:
            symbol = room.symbol_for(cid)
            if announce_symbols or symbol != before[cid]:
                notifications.append(_to_one(room.id, cid, 'assignSymbol',
                                             {'symbol': symbol, 'isHost': cid == room.host}))
        notifications.append(_to_all(room, 'gameRestarted', room.to_dict()))
        return notifications

    # ---- Settings ----

    def change_settings(self, connection_id: ConnectionId, room_id: str, board_size_label: str,
                        host_plays_x: bool, apply_immediately: bool = False) -> Notifications:
        with self.lock:
            room = self.registry.get(room_id)
            if room is None or connection_id != room.host:
                return []
            try:
                dimension = resolve_dimension(board_size_label)
            except InvalidBoardSize as exc:
                logger.warning(f"[settings-rejected] room={room_id} reason={exc}")
                return [_to_one(room.id, connection_id, 'error', {'message': str(exc)})]

            if apply_immediately or room.is_board_empty or room.outcome is not None:
                logger.info(f"[settings-applied] room={room_id} size={board_size_label} host_plays_x={host_plays_x}")
                return self._restart(room, board_size_label, bool(host_plays_x), announce_symbols=True)

            # A game is running: advertise the new settings, keep the live board
            room.board_size_label = board_size_label
            room.pending_host_plays_x = bool(host_plays_x)
            logger.info(f"[settings-deferred] room={room_id} size={board_size_label} live_dimension={room.dimension} next_dimension={dimension}")
            return [_to_all(room, 'gameSettingsChanged', {
                'boardSizeLabel': board_size_label,
                'hostPlaysX': bool(host_plays_x),
                'dimension': room.dimension,
            })]

    # ---- Chat ----

    def chat(self, room_id: str, message, sender_label) -> Notifications:
        # Sender is not checked against the participants
        with self.lock:
            room = self.registry.get(room_id)
            if room is None:
                return []
            return [_to_all(room, 'receiveMessage', {'message': message, 'senderLabel': sender_label})]

    # ---- Departure ----

    def disconnect(self, connection_id: ConnectionId) -> Notifications:
        with self.lock:
            notifications = []
            for room in self.registry.rooms_with(connection_id):
                room.participants.remove(connection_id)
                if connection_id == room.host:
                    logger.info(f"[host-left] room={room.id} sid={connection_id}")
                    notifications.append(_to_all(room, 'hostLeft'))
                    self.registry.delete(room.id)
                    continue
                room.restart_pending = False
                logger.info(f"[guest-left] room={room.id} sid={connection_id} remaining={len(room.participants)}")
                if room.participants:
                    notifications.append(_to_all(room, 'opponentLeft'))
                else:
                    self.registry.delete(room.id)
            return notifications

    def is_current(self, room_id: str, generation: int) -> bool:
        """True while ``room_id`` is live and has not been reset since ``generation``."""
        with self.lock:
            room = self.registry.get(room_id)
            return room is not None and room.generation == generation
