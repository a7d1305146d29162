"""Game-wide constants shared by the rules, models and transport layers."""

X = 'X'
O = 'O'
DRAW = 'draw'

# Cells in a row needed to win, whatever the board side
WINNING_RUN = 3

# Size labels offered to clients -> board side length
BOARD_SIZES = {
    '3x3': 3,
    '6x6': 6,
    '9x9': 9,
}
DEFAULT_BOARD_SIZE = '3x3'

GAME_OVER_DELAY_MS = 300
MAX_PARTICIPANTS = 2
