"""Unit tests for GridXO board rules and win/draw detection."""

import pytest

from gridxo.game import (
    GameState,
    InvalidBoardSizeError,
    Move,
    available_moves,
    cell_index,
    check_game_over,
    initial_state,
    is_valid_move,
    is_winning_cell,
    lines,
    new_board,
    place,
    rebuild_board,
    result_message,
    row_col,
)


def _board(*rows):
    return tuple(
        tuple(None if c == "." else c for c in row.replace(" ", "")) for row in rows
    )


@pytest.mark.parametrize("size", range(3, 11))
def test_initial_state_is_empty(size):
    state = initial_state(size)
    assert state.board_size == size
    assert len(state.board) == size
    assert all(len(row) == size and set(row) == {None} for row in state.board)
    assert state.current_player == "X"
    assert state.is_game_over is False
    assert state.move_history == ()


@pytest.mark.parametrize("size", [2, 11, 0, -3, "4", 3.0, True])
def test_initial_state_rejects_bad_sizes(size):
    with pytest.raises(InvalidBoardSizeError):
        initial_state(size)


def test_initial_state_rejects_unknown_mode():
    with pytest.raises(ValueError):
        initial_state(3, game_mode="online")


def test_available_moves_are_row_major():
    board = _board("X.O", ".X.", "O..")
    assert available_moves(board) == [(0, 1), (1, 0), (1, 2), (2, 1), (2, 2)]


def test_is_valid_move_rules():
    state = GameState(board=_board("X..", "...", "..."))
    assert is_valid_move(state, (0, 1))
    assert not is_valid_move(state, (0, 0))
    assert not is_valid_move(state, (-1, 0))
    assert not is_valid_move(state, (3, 0))
    assert not is_valid_move(state, (0, 3))
    assert not is_valid_move(state, ("a", 0))
    assert not is_valid_move(state, (1,))
    assert not is_valid_move(state, None)

    over = GameState(board=_board("X..", "...", "..."), is_game_over=True, is_draw=True)
    assert not is_valid_move(over, (1, 1))


def test_place_returns_new_board():
    board = new_board(3)
    after = place(board, (1, 2), "O")
    assert board[1][2] is None
    assert after[1][2] == "O"


def test_rebuild_board_replays_moves():
    moves = [Move("X", (0, 0)), Move("O", (2, 1)), Move("X", (1, 1))]
    assert rebuild_board(3, moves) == _board("X..", ".X.", ".O.")


def test_lines_order():
    all_lines = list(lines(3))
    assert len(all_lines) == 8
    assert all_lines[0] == ((0, 0), (0, 1), (0, 2))
    assert all_lines[3] == ((0, 0), (1, 0), (2, 0))
    assert all_lines[6] == ((0, 0), (1, 1), (2, 2))
    assert all_lines[7] == ((0, 2), (1, 1), (2, 0))


def test_row_win_from_last_move():
    board = _board("XXX", "OO.", "...")
    status = check_game_over(board, (0, 2))
    assert status.is_game_over
    assert status.winner == "X"
    assert not status.is_draw
    assert status.winning_line == ((0, 0), (0, 1), (0, 2))


def test_column_win_lists_positions_top_down():
    board = _board("XO.", "XO.", ".OX")
    status = check_game_over(board, (2, 1))
    assert status.winner == "O"
    assert status.winning_line == ((0, 1), (1, 1), (2, 1))


def test_anti_diagonal_win_on_larger_board():
    board = _board("...O", "X.O.", "XO..", "O.XX")
    status = check_game_over(board, (1, 2))
    assert status.winner == "O"
    assert status.winning_line == ((0, 3), (1, 2), (2, 1), (3, 0))
    assert check_game_over(board) == status


def test_main_diagonal_win():
    board = _board("X.O", "OX.", "..X")
    status = check_game_over(board, (2, 2))
    assert status.winning_line == ((0, 0), (1, 1), (2, 2))
    assert check_game_over(board) == status


def test_full_scan_checks_rows_before_columns():
    board = _board("XXX", "XO.", "XO.")
    status = check_game_over(board)
    assert status.winning_line == ((0, 0), (0, 1), (0, 2))


def test_last_move_mode_only_checks_lines_through_the_move():
    board = _board("XXX", "...", "..O")
    # Nothing through (2, 2) is complete, and the board is not full.
    assert not check_game_over(board, (2, 2)).is_game_over
    assert check_game_over(board).winner == "X"


def test_last_move_on_empty_cell_is_ongoing():
    assert check_game_over(new_board(3), (1, 1)).is_game_over is False


def test_draw_requires_a_full_board():
    full = _board("XOX", "XOO", "OXX")
    status = check_game_over(full, (2, 2))
    assert status.is_game_over and status.is_draw
    assert status.winner is None and status.winning_line is None
    assert check_game_over(full) == status

    partial = _board("XOX", "XOO", "OX.")
    assert check_game_over(partial) == (False, None, False, None)


def test_win_on_final_cell_is_not_a_draw():
    board = _board("XOX", "OXO", "OXX")
    status = check_game_over(board, (2, 2))
    assert status.winner == "X"
    assert status.is_draw is False


def test_presentation_helpers():
    assert cell_index(2, 1, 4) == 9
    assert row_col(9, 4) == (2, 1)
    assert is_winning_cell(0, 1, [(0, 0), (0, 1), (0, 2)])
    assert not is_winning_cell(1, 1, [(0, 0), (0, 1), (0, 2)])
    assert not is_winning_cell(0, 0, None)

    state = initial_state(3)
    assert result_message(state) == "Current player: X"
    won = GameState(board=state.board, is_game_over=True, winner="O")
    assert result_message(won) == "Player O wins!"
    drawn = GameState(board=state.board, is_game_over=True, is_draw=True)
    assert result_message(drawn) == "Game ended in a draw!"
