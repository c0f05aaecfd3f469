"""Draw rules evaluated after every accepted chess move.

Repetition compares raw board contents only; side to move, castling rights
and en-passant availability are not part of the position key.
"""
from typing import List, Optional, Sequence, Tuple

from .board import Board

FIFTY_MOVE_LIMIT = 100  # half-moves
REPETITION_LIMIT = 3

THREEFOLD_REPETITION = "threefold_repetition"
FIFTY_MOVE_RULE = "fifty_move_rule"

Snapshot = Tuple


def snapshot(board: Board) -> Snapshot:
    return tuple(board)


def repetition_count(history: Sequence[Snapshot], board: Board) -> int:
    key = snapshot(board)
    return sum(1 for past in history if past == key)


def is_threefold_repetition(history: Sequence[Snapshot], board: Board) -> bool:
    return repetition_count(history, board) >= REPETITION_LIMIT


def is_fifty_move_draw(halfmove_clock: int) -> bool:
    return halfmove_clock >= FIFTY_MOVE_LIMIT


def draw_reason(history: List[Snapshot], board: Board, halfmove_clock: int) -> Optional[str]:
    if is_threefold_repetition(history, board):
        return THREEFOLD_REPETITION
    if is_fifty_move_draw(halfmove_clock):
        return FIFTY_MOVE_RULE
    return None
