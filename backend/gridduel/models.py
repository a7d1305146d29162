import itertools
from typing import Any, Dict, List, NamedTuple, NewType, Optional, Tuple

from gridduel.constants import BOARD_SIZES, MAX_PARTICIPANTS, O, X
from gridduel.services.games.rules import Outcome, generate_winning_lines

# Transport-assigned handle (Socket.IO sid); roles are derived from it, never stored
ConnectionId = NewType('ConnectionId', str)

# Process-wide: generations never repeat, even for a recreated room id
_generations = itertools.count(1)


class InvalidBoardSize(ValueError):
    pass


def resolve_dimension(board_size_label) -> int:
    """Map a size label such as ``'6x6'`` to its board side length."""
    try:
        return BOARD_SIZES[board_size_label]
    except (KeyError, TypeError):
        raise InvalidBoardSize(f'Unknown board size {board_size_label!r}') from None


def other_symbol(symbol: str) -> str:
    return O if symbol == X else X


class Notification(NamedTuple):
    """One outbound event produced by a room transition.

    ``to`` lists the connections that receive it. A non-zero ``delay_ms``
    asks the dispatcher to schedule it instead of emitting right away.
    """
    event: str
    payload: Optional[Dict[str, Any]] = None
    to: Tuple[str, ...] = ()
    room_id: Optional[str] = None
    delay_ms: int = 0
    generation: int = 0
    # Addressed to every participant; delivered through the room topic
    broadcast: bool = False


class Room:
    __slots__ = (
        'id', 'host', 'participants', 'board_size_label', 'dimension',
        'host_plays_x', 'board', 'winning_lines', 'turn', 'restart_pending',
        'outcome', 'generation', 'pending_host_plays_x',
    )

    def __init__(self, room_id: str, host: ConnectionId, board_size_label: str, host_plays_x: bool = True):
        self.id = room_id
        self.host = host
        self.participants: List[ConnectionId] = [host]
        self.host_plays_x = bool(host_plays_x)
        self.generation = 0
        self.pending_host_plays_x: Optional[bool] = None
        self.reset(board_size_label)

    def reset(self, board_size_label: Optional[str] = None, host_plays_x: Optional[bool] = None) -> None:
        """Start a fresh board, recomputing everything that depends on its size."""
        label = board_size_label if board_size_label is not None else self.board_size_label
        dimension = resolve_dimension(label)
        if host_plays_x is None:
            host_plays_x = self.pending_host_plays_x
        if host_plays_x is not None:
            self.host_plays_x = bool(host_plays_x)
        self.board_size_label = label
        self.dimension = dimension
        self.board: List[Optional[str]] = [None] * (dimension * dimension)
        self.winning_lines = generate_winning_lines(dimension * dimension)
        self.turn = X
        self.restart_pending = False
        self.outcome: Optional[Outcome] = None
        self.pending_host_plays_x: Optional[bool] = None
        self.generation = next(_generations)

    @property
    def guest(self) -> Optional[ConnectionId]:
        for cid in self.participants:
            if cid != self.host:
                return cid
        return None

    @property
    def is_full(self) -> bool:
        return len(self.participants) >= MAX_PARTICIPANTS

    @property
    def is_board_empty(self) -> bool:
        return all(cell is None for cell in self.board)

    def symbol_for(self, connection_id: ConnectionId) -> Optional[str]:
        """Symbol played by ``connection_id``; slot 0 is always the host."""
        if connection_id not in self.participants:
            return None
        host_symbol = X if self.host_plays_x else O
        if self.participants.index(connection_id) == 0:
            return host_symbol
        return other_symbol(host_symbol)

    def to_dict(self):
        return {
            'roomId': self.id,
            'players': list(self.participants),
            'host': self.host,
            'boardSizeLabel': self.board_size_label,
            'dimension': self.dimension,
            'board': list(self.board),
            'turn': self.turn,
            'hostPlaysX': self.host_plays_x,
            'restartPending': self.restart_pending,
            'winningLines': [list(line) for line in self.winning_lines],
            'winner': self.outcome.winner if self.outcome else None,
            'winningLine': list(self.outcome.line) if self.outcome else [],
        }
