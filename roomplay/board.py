"""Flat board representation shared by chess and tic-tac-toe.

Cells are stored row-major, ``idx = row * size + col``.  For chess row 0 is
rank 1, so ``a1 == 0``, ``e2 == 12`` and ``h8 == 63`` (the same numbering as
python-chess squares).  A chess cell is either ``None`` or a ``Piece``; a
tic-tac-toe cell is either ``None`` or a mark string.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Set, Tuple

import chess

CHESS_SIZE = 8
BACK_RANK = ["R", "N", "B", "Q", "K", "B", "N", "R"]


class Color(Enum):
    WHITE = "w"
    BLACK = "b"

    @property
    def opponent(self) -> "Color":
        return Color.BLACK if self is Color.WHITE else Color.WHITE


@dataclass(frozen=True)
class Piece:
    color: Color
    kind: str  # 'K','Q','R','B','N','P'

    def code(self) -> str:
        return f"{self.color.value}{self.kind}"


Board = List[Optional[Any]]


def index(row: int, col: int, size: int = CHESS_SIZE) -> int:
    return row * size + col


def coords(idx: int, size: int = CHESS_SIZE) -> Tuple[int, int]:
    return idx // size, idx % size


def in_bounds(idx: Any, size: int = CHESS_SIZE) -> bool:
    return isinstance(idx, int) and 0 <= idx < size * size


def empty_board(size: int) -> Board:
    return [None] * (size * size)


def initial_chess_board() -> Board:
    board = empty_board(CHESS_SIZE)
    for col, kind in enumerate(BACK_RANK):
        board[index(0, col)] = Piece(Color.WHITE, kind)
        board[index(1, col)] = Piece(Color.WHITE, "P")
        board[index(6, col)] = Piece(Color.BLACK, "P")
        board[index(7, col)] = Piece(Color.BLACK, kind)
    return board


def apply_move(board: Board, src: int, dst: int) -> Board:
    """Return a copy of ``board`` with the occupant of ``src`` moved to ``dst``."""
    out = list(board)
    out[dst] = out[src]
    out[src] = None
    return out


def find_king(board: Board, color: Color) -> Optional[int]:
    king = Piece(color, "K")
    for idx, cell in enumerate(board):
        if cell == king:
            return idx
    return None


def encode_cell(cell: Any) -> Optional[str]:
    if cell is None:
        return None
    if isinstance(cell, Piece):
        return cell.code()
    return str(cell)


def encode_board(board: Board) -> List[Optional[str]]:
    return [encode_cell(cell) for cell in board]


def board_from_fen(fen: str) -> Dict[str, Any]:
    """Load a chess position from FEN.

    Returns the board together with the side to move, the squares that count
    as already moved for castling purposes, the en-passant square and the
    half-move clock.
    """
    cb = chess.Board(fen)
    board = empty_board(CHESS_SIZE)
    for square, p in cb.piece_map().items():
        color = Color.WHITE if p.color == chess.WHITE else Color.BLACK
        board[square] = Piece(color, p.symbol().upper())
    # Castling rights are expressed as "never moved" king and rook squares
    moved: Set[int] = set()
    rights = (
        (chess.WHITE, chess.E1, chess.H1, chess.A1),
        (chess.BLACK, chess.E8, chess.H8, chess.A8),
    )
    for side, king_sq, kingside_rook, queenside_rook in rights:
        has_kingside = cb.has_kingside_castling_rights(side)
        has_queenside = cb.has_queenside_castling_rights(side)
        if not has_kingside:
            moved.add(kingside_rook)
        if not has_queenside:
            moved.add(queenside_rook)
        if not has_kingside and not has_queenside:
            moved.add(king_sq)
    return {
        "board": board,
        "turn": Color.WHITE if cb.turn == chess.WHITE else Color.BLACK,
        "moved": moved,
        "en_passant": cb.ep_square,
        "halfmove_clock": cb.halfmove_clock,
    }
