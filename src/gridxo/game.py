"""Core rules for GridXO: N×N boards, move validity and win/draw detection."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Iterator, List, NamedTuple, Optional, Sequence, Tuple
import time

Player = str  # "X" or "O"
Cell = Optional[Player]  # None is an empty cell
Position = Tuple[int, int]
Board = Tuple[Tuple[Cell, ...], ...]

FIRST_PLAYER: Player = "X"
SECOND_PLAYER: Player = "O"
EMPTY: Cell = None

MIN_BOARD_SIZE = 3
MAX_BOARD_SIZE = 10

GAME_MODES: Tuple[str, ...] = ("single", "local", "remote")
DIFFICULTIES: Tuple[str, ...] = ("easy", "medium", "hard", "unbeatable")


class InvalidBoardSizeError(ValueError):
    """Raised when a board size falls outside the supported range."""

    def __init__(self, size: object) -> None:
        super().__init__(
            f"Board size must be between {MIN_BOARD_SIZE} and {MAX_BOARD_SIZE}, "
            f"got {size!r}"
        )
        self.size = size


@dataclass(frozen=True)
class Move:
    player: Player
    position: Position
    timestamp: float = field(default_factory=time.time)


class GameOverStatus(NamedTuple):
    is_game_over: bool
    winner: Optional[Player]
    is_draw: bool
    winning_line: Optional[Tuple[Position, ...]]


ONGOING = GameOverStatus(False, None, False, None)


@dataclass(frozen=True)
class GameState:
    """Immutable snapshot of a game. Transitions build a new instance."""

    board: Board
    current_player: Player = FIRST_PLAYER
    winner: Optional[Player] = None
    is_draw: bool = False
    is_game_over: bool = False
    winning_line: Optional[Tuple[Position, ...]] = None
    board_size: int = 3
    move_history: Tuple[Move, ...] = ()
    game_mode: str = "single"
    difficulty: str = "unbeatable"
    room_id: Optional[str] = None


# ---------- Board helpers ----------


def other_player(player: Player) -> Player:
    return SECOND_PLAYER if player == FIRST_PLAYER else FIRST_PLAYER


def validate_board_size(size: object) -> int:
    if (
        isinstance(size, bool)
        or not isinstance(size, int)
        or not MIN_BOARD_SIZE <= size <= MAX_BOARD_SIZE
    ):
        raise InvalidBoardSizeError(size)
    return size


def new_board(size: int) -> Board:
    return tuple(tuple(EMPTY for _ in range(size)) for _ in range(size))


def place(board: Board, position: Position, player: Player) -> Board:
    """Return a copy of ``board`` with ``player`` written at ``position``."""
    row, col = position
    cells = list(board[row])
    cells[col] = player
    return board[:row] + (tuple(cells),) + board[row + 1 :]


def rebuild_board(size: int, moves: Iterable[Move]) -> Board:
    """Replay ``moves`` onto a fresh empty board."""
    grid = [[EMPTY] * size for _ in range(size)]
    for move in moves:
        row, col = move.position
        grid[row][col] = move.player
    return tuple(tuple(row) for row in grid)


def is_full(board: Board) -> bool:
    return all(cell is not EMPTY for row in board for cell in row)


def available_moves(board: Board) -> List[Position]:
    """All empty cells in row-major order."""
    return [
        (row, col)
        for row, cells in enumerate(board)
        for col, cell in enumerate(cells)
        if cell is EMPTY
    ]


def in_bounds(position: object, size: int) -> bool:
    try:
        row, col = position  # type: ignore[misc]
    except (TypeError, ValueError):
        return False
    if not all(isinstance(v, int) and not isinstance(v, bool) for v in (row, col)):
        return False
    return 0 <= row < size and 0 <= col < size


def is_valid_move(state: GameState, position: object) -> bool:
    if state.is_game_over or not in_bounds(position, state.board_size):
        return False
    row, col = position  # type: ignore[misc]
    return state.board[row][col] is EMPTY


def initial_state(
    board_size: int = 3,
    game_mode: str = "single",
    difficulty: str = "unbeatable",
    room_id: Optional[str] = None,
) -> GameState:
    size = validate_board_size(board_size)
    if game_mode not in GAME_MODES:
        raise ValueError(f"Unknown game mode {game_mode!r}")
    if difficulty not in DIFFICULTIES:
        raise ValueError(f"Unknown difficulty {difficulty!r}")
    return GameState(
        board=new_board(size),
        board_size=size,
        game_mode=game_mode,
        difficulty=difficulty,
        room_id=room_id,
    )


# ---------- Lines ----------


def row_line(row: int, size: int) -> Tuple[Position, ...]:
    return tuple((row, c) for c in range(size))


def column_line(col: int, size: int) -> Tuple[Position, ...]:
    return tuple((r, col) for r in range(size))


def main_diagonal(size: int) -> Tuple[Position, ...]:
    return tuple((i, i) for i in range(size))


def anti_diagonal(size: int) -> Tuple[Position, ...]:
    return tuple((i, size - 1 - i) for i in range(size))


def lines(size: int) -> Iterator[Tuple[Position, ...]]:
    """Rows, then columns, then the main and anti diagonals."""
    for row in range(size):
        yield row_line(row, size)
    for col in range(size):
        yield column_line(col, size)
    yield main_diagonal(size)
    yield anti_diagonal(size)


def _line_owner(board: Board, line: Sequence[Position]) -> Optional[Player]:
    r0, c0 = line[0]
    first = board[r0][c0]
    if first is EMPTY:
        return None
    for r, c in line[1:]:
        if board[r][c] != first:
            return None
    return first


# ---------- Win / draw detection ----------


def check_game_over(
    board: Board, last_move: Optional[Position] = None
) -> GameOverStatus:
    """Report whether ``board`` is terminal.

    With ``last_move`` only the lines through that cell are inspected; without
    it every line is scanned. Both modes agree on any board reachable by
    play, since a win can only appear on a line through the newest mark.
    """
    size = len(board)

    if last_move is not None:
        row, col = last_move
        player = board[row][col]
        if player is EMPTY:
            return ONGOING
        candidates = [row_line(row, size), column_line(col, size)]
        if row == col:
            candidates.append(main_diagonal(size))
        if row + col == size - 1:
            candidates.append(anti_diagonal(size))
        for line in candidates:
            if all(board[r][c] == player for r, c in line):
                return GameOverStatus(True, player, False, line)
    else:
        for line in lines(size):
            owner = _line_owner(board, line)
            if owner is not None:
                return GameOverStatus(True, owner, False, line)

    if is_full(board):
        return GameOverStatus(True, None, True, None)
    return ONGOING


# ---------- Small presentation helpers ----------


def cell_index(row: int, col: int, size: int) -> int:
    return row * size + col


def row_col(index: int, size: int) -> Position:
    return divmod(index, size)


def is_winning_cell(
    row: int, col: int, winning_line: Optional[Sequence[Position]]
) -> bool:
    if not winning_line:
        return False
    return (row, col) in {tuple(p) for p in winning_line}


def result_message(state: GameState) -> str:
    if not state.is_game_over:
        return f"Current player: {state.current_player}"
    if state.is_draw:
        return "Game ended in a draw!"
    return f"Player {state.winner} wins!"
