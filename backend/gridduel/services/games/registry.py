import logging
from typing import Dict, List, Optional

from gridduel.models import ConnectionId, Room

logger = logging.getLogger(__name__)


class RoomRegistry:
    """Process-wide map of room id -> Room. Holds at most one live room per id.

    Not thread-safe on its own; ``GameService`` serializes every call.
    """

    def __init__(self):
        self._rooms: Dict[str, Room] = {}

    def create_if_absent(self, room_id: str, host: ConnectionId, board_size_label: str,
                         host_plays_x: bool = True) -> Room:
        """Return the room for ``room_id``, creating it only if it is unseen.

        An existing room is returned untouched: the given settings are not applied.
        Raises ``InvalidBoardSize`` (and registers nothing) for an unknown label.
        """
        room = self._rooms.get(room_id)
        if room is not None:
            return room
        room = Room(room_id, host, board_size_label, host_plays_x)
        self._rooms[room_id] = room
        logger.info(f"[room-created] room={room_id} host={host} size={board_size_label} host_plays_x={room.host_plays_x}")
        return room

    def get(self, room_id: str) -> Optional[Room]:
        return self._rooms.get(room_id)

    def delete(self, room_id: str) -> None:
        if self._rooms.pop(room_id, None) is not None:
            logger.info(f"[room-deleted] room={room_id} live_rooms={len(self._rooms)}")

    def rooms_with(self, connection_id: ConnectionId) -> List[Room]:
        return [room for room in self._rooms.values() if connection_id in room.participants]

    def __contains__(self, room_id) -> bool:
        return room_id in self._rooms

    def __len__(self) -> int:
        return len(self._rooms)
