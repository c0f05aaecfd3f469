import pytest

from roomplay.tictactoe import Evaluation, TicTacToeGame, evaluate, lines, place


def test_lines_cover_rows_columns_and_diagonals():
    all_lines = list(lines(3))
    assert len(all_lines) == 8
    assert all_lines[0] == [0, 1, 2]
    assert all_lines[3] == [0, 3, 6]
    assert all_lines[6] == [0, 4, 8]
    assert all_lines[7] == [2, 4, 6]


@pytest.mark.parametrize("cells", [[0, 1, 2], [3, 4, 5], [1, 4, 7], [0, 4, 8], [2, 4, 6]])
def test_any_uniform_line_wins(cells):
    board = [None] * 9
    for i in cells:
        board[i] = "O"
    assert evaluate(board, 3) == Evaluation("O", False)


def test_larger_board_needs_the_full_line():
    board = [None] * 16
    for i in (0, 1, 2):
        board[i] = "X"
    assert evaluate(board, 4).winner is None
    board[3] = "X"
    assert evaluate(board, 4).winner == "X"


def test_anti_diagonal_on_four_by_four():
    board = [None] * 16
    for i in (3, 6, 9, 12):
        board[i] = "O"
    assert evaluate(board, 4).winner == "O"


def test_full_board_without_line_is_draw():
    board = ["X", "O", "X",
             "X", "O", "O",
             "O", "X", "X"]
    assert evaluate(board, 3) == Evaluation(None, True)


def test_full_board_with_line_is_not_draw():
    board = ["X", "X", "X",
             "O", "O", "X",
             "X", "O", "O"]
    assert evaluate(board, 3) == Evaluation("X", False)


def test_empty_board_is_ongoing():
    assert evaluate([None] * 9, 3) == Evaluation(None, False)


def test_single_cell_board():
    assert evaluate(["X"], 1) == Evaluation("X", False)


def test_place_rejects_occupied_and_out_of_range():
    board = [None] * 9
    placed = place(board, 4, "X")
    assert placed[4] == "X"
    assert board[4] is None
    assert place(placed, 4, "O") is None
    assert place(board, 9, "O") is None
    assert place(board, -1, "O") is None


class TestTicTacToeGame:
    def test_turns_alternate_starting_with_x(self):
        game = TicTacToeGame(3)
        assert game.turn == "X"
        assert game.apply_move("O", 0)["ok"] is False
        assert game.apply_move("X", 0)["ok"] is True
        assert game.turn == "O"
        assert game.apply_move("X", 1)["ok"] is False

    def test_occupied_cell_is_a_no_op(self):
        game = TicTacToeGame(3)
        game.apply_move("X", 0)
        result = game.apply_move("O", 0)
        assert result == {"ok": False, "error": "Cell 0 is not available"}
        assert game.board[0] == "X"
        assert game.turn == "O"

    def test_no_moves_after_win(self):
        game = TicTacToeGame(3)
        for mark, idx in [("X", 0), ("O", 3), ("X", 1), ("O", 4), ("X", 2)]:
            assert game.apply_move(mark, idx)["ok"]
        state = game.serialize_state()
        assert state["winner"] == "X"
        assert state["status"] == "WIN"
        assert game.apply_move("O", 5) == {"ok": False, "error": "Game is over"}

    def test_draw_state(self):
        game = TicTacToeGame(3)
        for mark, idx in [("X", 0), ("O", 1), ("X", 2), ("O", 4), ("X", 3),
                          ("O", 5), ("X", 7), ("O", 6), ("X", 8)]:
            assert game.apply_move(mark, idx)["ok"]
        state = game.serialize_state()
        assert state["is_draw"] is True
        assert state["winner"] is None
        assert state["status"] == "DRAW"

    def test_reset(self):
        game = TicTacToeGame(4)
        game.apply_move("X", 5)
        game.reset()
        assert game.board == [None] * 16
        assert game.turn == "X"
        assert game.last_move is None
