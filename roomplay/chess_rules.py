"""Chess legality, check detection and move application on a flat 8x8 board.

Contract:
- ``attacks_square`` is purely structural: which squares a piece reaches, with
  no regard for its own king's safety.  Check detection is built on it.
- ``is_legal_move`` adds the full rules on top (pawn pushes, en passant,
  castling conditions) and rejects any move that leaves the mover in check.
- ``ChessGame`` owns the per-room state and applies accepted moves.
"""
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Set, Tuple

from . import draws
from .board import (
    CHESS_SIZE,
    Board,
    Color,
    Piece,
    apply_move as relocate,
    board_from_fen,
    coords,
    encode_board,
    find_king,
    in_bounds,
    initial_chess_board,
)

log = logging.getLogger(__name__)

SQUARES = range(CHESS_SIZE * CHESS_SIZE)

PAWN_DIRECTION = {Color.WHITE: 1, Color.BLACK: -1}
PAWN_START_ROW = {Color.WHITE: 1, Color.BLACK: 6}
PROMOTION_ROW = {Color.WHITE: 7, Color.BLACK: 0}
KING_HOME = {Color.WHITE: 4, Color.BLACK: 60}


class GameStatus(Enum):
    ONGOING = "ONGOING"
    CHECKMATE = "CHECKMATE"
    STALEMATE = "STALEMATE"
    DRAW = "DRAW"


@dataclass
class ChessState:
    turn: Color = Color.WHITE
    # Squares a piece has departed from or arrived on; castling needs both
    # the king's and the rook's origin absent from this set.
    moved: Set[int] = field(default_factory=set)
    en_passant: Optional[int] = None
    halfmove_clock: int = 0
    history: List[draws.Snapshot] = field(default_factory=list)
    status: GameStatus = GameStatus.ONGOING
    winner: Optional[Color] = None
    draw_reason: Optional[str] = None
    in_check: bool = False


def _sign(v: int) -> int:
    return (v > 0) - (v < 0)


def _delta(src: int, dst: int) -> Tuple[int, int]:
    sr, sc = coords(src)
    dr, dc = coords(dst)
    return dr - sr, dc - sc


def _path_clear(board: Board, src: int, dst: int) -> bool:
    drow, dcol = _delta(src, dst)
    step = _sign(drow) * CHESS_SIZE + _sign(dcol)
    sq = src + step
    while sq != dst:
        if board[sq] is not None:
            return False
        sq += step
    return True


def _reaches(board: Board, src: int, dst: int, piece: Piece) -> bool:
    """True if ``piece`` standing on ``src`` attacks ``dst``."""
    drow, dcol = _delta(src, dst)
    if drow == 0 and dcol == 0:
        return False
    kind = piece.kind
    if kind == 'P':
        return drow == PAWN_DIRECTION[piece.color] and abs(dcol) == 1
    if kind == 'N':
        return (abs(drow), abs(dcol)) in ((1, 2), (2, 1))
    if kind == 'K':
        return max(abs(drow), abs(dcol)) == 1
    straight = drow == 0 or dcol == 0
    diagonal = abs(drow) == abs(dcol)
    if kind == 'R' and not straight:
        return False
    if kind == 'B' and not diagonal:
        return False
    if kind == 'Q' and not (straight or diagonal):
        return False
    return _path_clear(board, src, dst)


def attacks_square(board: Board, square: int, by_color: Color) -> bool:
    for src in SQUARES:
        piece = board[src]
        if isinstance(piece, Piece) and piece.color == by_color and _reaches(board, src, square, piece):
            return True
    return False


def is_in_check(board: Board, color: Color) -> bool:
    king = find_king(board, color)
    if king is None:
        return False
    return attacks_square(board, king, color.opponent)


def _en_passant_victim(dst: int, color: Color) -> int:
    return dst - PAWN_DIRECTION[color] * CHESS_SIZE


def _pawn_move_ok(board: Board, src: int, dst: int, color: Color, state: ChessState) -> bool:
    direction = PAWN_DIRECTION[color]
    drow, dcol = _delta(src, dst)
    target = board[dst]
    if dcol == 0:
        if drow == direction:
            return target is None
        if drow == 2 * direction and coords(src)[0] == PAWN_START_ROW[color]:
            return target is None and board[src + direction * CHESS_SIZE] is None
        return False
    if abs(dcol) != 1 or drow != direction:
        return False
    if target is not None:
        return True
    return dst == state.en_passant and board[_en_passant_victim(dst, color)] == Piece(color.opponent, 'P')


def _is_castling(piece: Piece, src: int, dst: int) -> bool:
    drow, dcol = _delta(src, dst)
    return piece.kind == 'K' and drow == 0 and abs(dcol) == 2


def _can_castle(board: Board, src: int, dst: int, color: Color, state: ChessState) -> bool:
    home = KING_HOME[color]
    if src != home or home in state.moved:
        return False
    kingside = dst > src
    rook_sq = home + 3 if kingside else home - 4
    if board[rook_sq] != Piece(color, 'R') or rook_sq in state.moved:
        return False
    lo, hi = sorted((home, rook_sq))
    if any(board[sq] is not None for sq in range(lo + 1, hi)):
        return False
    enemy = color.opponent
    if attacks_square(board, home, enemy):
        return False
    passed = home + (1 if kingside else -1)
    return not attacks_square(board, passed, enemy)


def is_pseudo_legal(board: Board, src: int, dst: int, color: Color, state: ChessState) -> bool:
    """Piece movement rules only; does not look at the mover's own king."""
    if not (in_bounds(src) and in_bounds(dst)) or src == dst:
        return False
    piece = board[src]
    if not isinstance(piece, Piece) or piece.color != color:
        return False
    target = board[dst]
    if target is not None and (target.color == color or target.kind == 'K'):
        return False
    if piece.kind == 'P':
        return _pawn_move_ok(board, src, dst, color, state)
    if _is_castling(piece, src, dst):
        return _can_castle(board, src, dst, color, state)
    return _reaches(board, src, dst, piece)


def play(board: Board, src: int, dst: int, en_passant: Optional[int]) -> Tuple[Board, Optional[Piece], Dict[str, Any]]:
    """Apply a move with all its side effects to a copy of ``board``.

    Returns (new_board, captured_piece, effects).
    """
    piece = board[src]
    captured = board[dst]
    out = relocate(board, src, dst)
    effects: Dict[str, Any] = {}
    if piece.kind == 'P' and captured is None and dst == en_passant and coords(src)[1] != coords(dst)[1]:
        victim = _en_passant_victim(dst, piece.color)
        captured = out[victim]
        out[victim] = None
        effects["en_passant"] = victim
    if _is_castling(piece, src, dst):
        kingside = dst > src
        rook_from = src + 3 if kingside else src - 4
        rook_to = dst - 1 if kingside else dst + 1
        out = relocate(out, rook_from, rook_to)
        effects["castle"] = [rook_from, rook_to]
    if piece.kind == 'P' and coords(dst)[0] == PROMOTION_ROW[piece.color]:
        out[dst] = Piece(piece.color, 'Q')
        effects["promotion"] = 'Q'
    return out, captured, effects


def is_legal_move(board: Board, src: int, dst: int, color: Color, state: ChessState) -> bool:
    if not is_pseudo_legal(board, src, dst, color, state):
        return False
    after, _, _ = play(board, src, dst, state.en_passant)
    return not is_in_check(after, color)


def iter_legal_moves(board: Board, color: Color, state: ChessState) -> Iterator[Tuple[int, int]]:
    for src in SQUARES:
        piece = board[src]
        if not isinstance(piece, Piece) or piece.color != color:
            continue
        for dst in SQUARES:
            if is_legal_move(board, src, dst, color, state):
                yield src, dst


def legal_moves(board: Board, color: Color, state: ChessState) -> List[Tuple[int, int]]:
    return list(iter_legal_moves(board, color, state))


def has_any_legal_move(board: Board, color: Color, state: ChessState) -> bool:
    return next(iter_legal_moves(board, color, state), None) is not None


class ChessGame:
    """Authoritative chess position for one room."""

    kind = "chess"
    colors = (Color.WHITE.name, Color.BLACK.name)
    size = CHESS_SIZE

    def __init__(self) -> None:
        self.reset()

    def reset(self) -> None:
        self.board: Board = initial_chess_board()
        self.state = ChessState()
        self.last_move: Optional[Dict[str, Any]] = None

    @classmethod
    def from_fen(cls, fen: str) -> "ChessGame":
        pos = board_from_fen(fen)
        game = cls()
        game.board = pos["board"]
        game.state = ChessState(
            turn=pos["turn"],
            moved=pos["moved"],
            en_passant=pos["en_passant"],
            halfmove_clock=pos["halfmove_clock"],
        )
        game._update_status()
        return game

    @property
    def turn(self) -> str:
        return self.state.turn.name

    @property
    def game_over(self) -> bool:
        return self.state.status is not GameStatus.ONGOING

    def legal_moves(self) -> List[Tuple[int, int]]:
        return legal_moves(self.board, self.state.turn, self.state)

    def apply_move(self, color: str, src: int, dst: int) -> Dict[str, Any]:
        try:
            mover = Color[color]
        except KeyError:
            return {"ok": False, "error": f"Unknown color '{color}'"}
        state = self.state
        if self.game_over:
            return {"ok": False, "error": "Game is over"}
        if mover != state.turn:
            return {"ok": False, "error": f"Not {mover.name}'s turn (active: {state.turn.name})"}
        if not is_legal_move(self.board, src, dst, mover, state):
            return {"ok": False, "error": "Illegal move"}

        piece = self.board[src]
        board, captured, effects = play(self.board, src, dst, state.en_passant)
        state.moved.update((src, dst))
        if "castle" in effects:
            state.moved.update(effects["castle"])
        if piece.kind == 'P' and abs(dst - src) == 2 * CHESS_SIZE:
            state.en_passant = src + PAWN_DIRECTION[mover] * CHESS_SIZE
        else:
            state.en_passant = None
        if piece.kind == 'P' or captured is not None:
            state.halfmove_clock = 0
        else:
            state.halfmove_clock += 1
        self.board = board
        state.history.append(draws.snapshot(board))
        state.turn = mover.opponent
        self._update_status()

        self.last_move = {
            "by": mover.name,
            "from": src,
            "to": dst,
            "piece": piece.kind,
            "cap": captured.kind if captured else None,
            "promoted": "promotion" in effects,
            "castle": "castle" in effects,
            "en_passant": "en_passant" in effects,
        }
        return {"ok": True, "move": self.last_move}

    def _update_status(self) -> None:
        state = self.state
        side = state.turn
        state.in_check = is_in_check(self.board, side)
        if not has_any_legal_move(self.board, side, state):
            if state.in_check:
                state.status = GameStatus.CHECKMATE
                state.winner = side.opponent
                log.info("Checkmate: %s wins", side.opponent.name)
            else:
                state.status = GameStatus.STALEMATE
                state.draw_reason = "stalemate"
            return
        reason = draws.draw_reason(state.history, self.board, state.halfmove_clock)
        if reason:
            state.status = GameStatus.DRAW
            state.draw_reason = reason

    def serialize_state(self) -> Dict[str, Any]:
        state = self.state
        return {
            "game": self.kind,
            "board": encode_board(self.board),
            "turn": state.turn.name,
            "status": state.status.value,
            "winner": state.winner.name if state.winner else None,
            "is_draw": state.status in (GameStatus.STALEMATE, GameStatus.DRAW),
            "draw_reason": state.draw_reason,
            "in_check": state.in_check,
            "en_passant": state.en_passant,
            "halfmove_clock": state.halfmove_clock,
            "last_move": self.last_move,
        }
