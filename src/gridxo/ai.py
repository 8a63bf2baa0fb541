"""Alpha-beta minimax with a difficulty-weighted move policy for GridXO."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, NamedTuple, Optional
import math
import random

from .game import (
    SECOND_PLAYER,
    Board,
    GameState,
    Player,
    Position,
    available_moves,
    check_game_over,
    lines,
    other_player,
    place,
)


# Probability of playing the minimax move; everything else plays a random legal move.
BEST_MOVE_CHANCE: Dict[str, float] = {
    "easy": 0.3,
    "medium": 0.6,
    "hard": 0.9,
    "unbeatable": 1.0,
}

WIN_SCORE = 10
LARGE_BOARD_DEPTH = 5


class SearchResult(NamedTuple):
    score: float
    move: Optional[Position]


def search_depth(board_size: int) -> float:
    """Full tree on 3×3, fixed horizon on anything larger."""
    return math.inf if board_size == 3 else LARGE_BOARD_DEPTH


def evaluate_board(board: Board, player: Player) -> float:
    """Line-potential heuristic from ``player``'s point of view.

    Open lines holding only ``player``'s marks add ``2**count``; open lines
    holding only the opponent's marks subtract ``2**count``.
    """
    opp = other_player(player)
    score = 0.0
    for line in lines(len(board)):
        cells = [board[r][c] for r, c in line]
        mine = cells.count(player)
        theirs = cells.count(opp)
        if mine and not theirs:
            score += 2**mine
        if theirs and not mine:
            score -= 2**theirs
    return score


def minimax(
    board: Board,
    depth: int,
    maximizing: bool,
    alpha: float,
    beta: float,
    *,
    player: Player,
    max_depth: float,
    rng: random.Random,
    last_move: Optional[Position] = None,
) -> SearchResult:
    """Score ``board`` for ``player`` with alpha-beta pruning.

    ``depth`` counts plies from the root. Bounds travel down as arguments and
    each call returns its own result, so no search state is shared between
    branches. ``last_move`` narrows the terminal check to the lines through
    the newest mark; the root is scanned in full.
    """
    status = check_game_over(board, last_move)
    if status.winner == player:
        return SearchResult(WIN_SCORE - depth, None)
    if status.winner is not None:
        return SearchResult(depth - WIN_SCORE, None)
    if status.is_draw:
        return SearchResult(0, None)
    if depth >= max_depth:
        return SearchResult(evaluate_board(board, player), None)

    moves = available_moves(board)
    rng.shuffle(moves)

    mark = player if maximizing else other_player(player)
    best_score = -math.inf if maximizing else math.inf
    best_move: Optional[Position] = None

    for move in moves:
        child = place(board, move, mark)
        score, _ = minimax(
            child,
            depth + 1,
            not maximizing,
            alpha,
            beta,
            player=player,
            max_depth=max_depth,
            rng=rng,
            last_move=move,
        )
        if maximizing:
            if score > best_score:
                best_score, best_move = score, move
            alpha = max(alpha, best_score)
        else:
            if score < best_score:
                best_score, best_move = score, move
            beta = min(beta, best_score)
        if beta <= alpha:
            break

    return SearchResult(best_score, best_move)


@dataclass
class MinimaxAI:
    """Computer player for one mark.

    - MinimaxAI(player="O", rng=random.Random(seed))
    - best_move(board) -> optimal position or None
    - choose(state) -> position picked per ``state.difficulty``, or None
    """

    player: Player = SECOND_PLAYER
    rng: random.Random = field(default_factory=random.Random, repr=False)

    def best_move(self, board: Board) -> Optional[Position]:
        result = minimax(
            board,
            0,
            True,
            -math.inf,
            math.inf,
            player=self.player,
            max_depth=search_depth(len(board)),
            rng=self.rng,
        )
        return result.move

    def choose(self, state: GameState) -> Optional[Position]:
        if state.is_game_over:
            return None
        moves = available_moves(state.board)
        if not moves:
            return None

        chance = BEST_MOVE_CHANCE.get(state.difficulty, 1.0)
        if chance >= 1.0:
            return self.best_move(state.board) or moves[0]

        if self.rng.random() < chance:
            return self.best_move(state.board) or self.rng.choice(moves)
        return self.rng.choice(moves)
