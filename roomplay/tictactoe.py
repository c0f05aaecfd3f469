"""N×N tic-tac-toe rules.

Board representation: flat list of length n*n, each cell ``None``, ``"X"`` or
``"O"``.  A line (row, column or diagonal) wins when all n cells hold the same
mark.
"""
import math
from typing import Any, Dict, Iterator, List, NamedTuple, Optional

from .board import Board, empty_board, in_bounds

MARKS = ("X", "O")


class Evaluation(NamedTuple):
    winner: Optional[str]
    is_draw: bool


def lines(n: int) -> Iterator[List[int]]:
    """Yield the index lists of every winning line: rows, columns, then diagonals."""
    for r in range(n):
        yield [r * n + c for c in range(n)]
    for c in range(n):
        yield [r * n + c for r in range(n)]
    yield [i * n + i for i in range(n)]
    yield [i * n + (n - 1 - i) for i in range(n)]


def evaluate(board: Board, n: int) -> Evaluation:
    for line in lines(n):
        first = board[line[0]]
        if first is not None and all(board[i] == first for i in line):
            return Evaluation(first, False)
    return Evaluation(None, all(cell is not None for cell in board))


def place(board: Board, idx: int, mark: str) -> Optional[Board]:
    """Return a new board with ``mark`` at ``idx``, or None if the cell is taken or off the board."""
    n = math.isqrt(len(board))
    if not in_bounds(idx, n) or board[idx] is not None:
        return None
    out = list(board)
    out[idx] = mark
    return out


class TicTacToeGame:
    """Room state for an n×n tic-tac-toe game.

    X always moves first; the room binds each player to one mark, so the turn
    carried here is what keeps the two players alternating.
    """

    kind = "tictactoe"
    colors = MARKS

    def __init__(self, size: int) -> None:
        self.size = size
        self.reset()

    def reset(self) -> None:
        self.board: Board = empty_board(self.size)
        self.turn: str = MARKS[0]
        self.winner: Optional[str] = None
        self.is_draw: bool = False
        self.last_move: Optional[Dict[str, Any]] = None

    @property
    def game_over(self) -> bool:
        return self.winner is not None or self.is_draw

    def apply_move(self, mark: str, idx: int) -> Dict[str, Any]:
        if self.game_over:
            return {"ok": False, "error": "Game is over"}
        if mark != self.turn:
            return {"ok": False, "error": f"Not {mark}'s turn (active: {self.turn})"}
        board = place(self.board, idx, mark)
        if board is None:
            return {"ok": False, "error": f"Cell {idx} is not available"}
        self.board = board
        result = evaluate(self.board, self.size)
        self.winner = result.winner
        self.is_draw = result.is_draw
        self.turn = MARKS[1] if mark == MARKS[0] else MARKS[0]
        self.last_move = {"by": mark, "index": idx}
        return {"ok": True, "move": self.last_move}

    def serialize_state(self) -> Dict[str, Any]:
        if self.winner is not None:
            status = "WIN"
        elif self.is_draw:
            status = "DRAW"
        else:
            status = "ONGOING"
        return {
            "game": self.kind,
            "board": list(self.board),
            "turn": self.turn,
            "status": status,
            "winner": self.winner,
            "is_draw": self.is_draw,
            "draw_reason": "board_full" if self.is_draw else None,
            "in_check": False,
            "last_move": self.last_move,
        }
