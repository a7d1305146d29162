import math
from typing import List, Optional, Sequence, Tuple

from gridduel.constants import DRAW, WINNING_RUN

Line = Tuple[int, ...]


class Outcome:
    """A settled game: the winning symbol (or ``'draw'``) and its line."""

    __slots__ = ('winner', 'line')

    def __init__(self, winner: str, line: Line = ()):
        self.winner = winner
        self.line = tuple(line)

    @property
    def is_draw(self) -> bool:
        return self.winner == DRAW

    def __eq__(self, other):
        if not isinstance(other, Outcome):
            return NotImplemented
        return (self.winner, self.line) == (other.winner, other.line)

    def __repr__(self):
        return f'Outcome(winner={self.winner!r}, line={self.line!r})'

    def to_dict(self):
        return {
            'winner': self.winner,
            'winningLine': list(self.line),
        }


def generate_winning_lines(size: int, run_length: int = WINNING_RUN) -> Tuple[Line, ...]:
    """Return every run of ``run_length`` consecutive cells on a square board.

    ``size`` is the total cell count. Lines are emitted in a fixed order: rows,
    columns, down-right diagonals, then down-left diagonals. Larger boards are
    still won by a local run, not by filling a whole side.
    """
    side = math.isqrt(size)
    if side * side != size:
        raise ValueError(f'board size {size} is not a perfect square')
    span = side - run_length + 1
    lines: List[Line] = []

    for row in range(side):
        for col in range(span):
            lines.append(tuple(row * side + col + k for k in range(run_length)))

    for col in range(side):
        for row in range(span):
            lines.append(tuple((row + k) * side + col for k in range(run_length)))

    for row in range(span):
        for col in range(span):
            lines.append(tuple((row + k) * side + col + k for k in range(run_length)))

    for row in range(span):
        for col in range(run_length - 1, side):
            lines.append(tuple((row + k) * side + col - k for k in range(run_length)))

    return tuple(lines)


def evaluate_board(board: Sequence[Optional[str]], winning_lines: Sequence[Line]) -> Optional[Outcome]:
    """Decide whether ``board`` has ended.

    Returns ``None`` while the game is undecided. The first completed line in
    generation order wins ties; a full board with no line is a draw.
    """
    for line in winning_lines:
        first = board[line[0]]
        if first is None:
            continue
        if all(board[idx] == first for idx in line[1:]):
            return Outcome(first, line)
    if any(cell is None for cell in board):
        return None
    return Outcome(DRAW, ())
