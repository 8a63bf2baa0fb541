"""Authoritative GridXO game engine: reducer, listeners, and the deferred AI turn."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, List, Mapping, Optional, Protocol
import logging
import random
import threading

from pydantic import ValidationError

from .actions import (
    ACTION_TYPES,
    ChangeBoardSize,
    ChangeDifficulty,
    ChangeGameMode,
    JoinRemoteGame,
    MakeMove,
    ResetGame,
    UndoMove,
    parse_action,
)
from .ai import MinimaxAI
from .game import (
    FIRST_PLAYER,
    SECOND_PLAYER,
    GameState,
    Move,
    Position,
    available_moves,
    check_game_over,
    initial_state,
    is_valid_move,
    other_player,
    place,
    rebuild_board,
    validate_board_size,
)

logger = logging.getLogger(__name__)

Listener = Callable[[GameState], None]

AI_MOVE_DELAY = 0.5
HUMAN_PLAYER = FIRST_PLAYER
MACHINE_PLAYER = SECOND_PLAYER


class Cancelable(Protocol):
    def cancel(self) -> None: ...


Scheduler = Callable[[float, Callable[[], None]], Cancelable]


class SyncPort(Protocol):
    """Remote collaborator that forwards locally dispatched actions."""

    def forward(self, action: Any) -> None: ...


def timer_scheduler(delay: float, callback: Callable[[], None]) -> threading.Timer:
    timer = threading.Timer(max(0.0, delay), callback)
    timer.daemon = True
    timer.start()
    return timer


@dataclass
class AITurn:
    """A pending machine reply, valid only for the generation it was made in."""

    generation: int
    handle: Optional[Cancelable] = field(default=None, repr=False)
    cancelled: bool = False

    def cancel(self) -> None:
        self.cancelled = True
        if self.handle is not None:
            self.handle.cancel()


class Subscription:
    """Handle returned by ``GameEngine.subscribe``; call it to unsubscribe."""

    def __init__(self, registry: Dict[int, Listener], key: int) -> None:
        self._registry = registry
        self._key = key

    @property
    def active(self) -> bool:
        return self._key in self._registry

    def unsubscribe(self) -> None:
        self._registry.pop(self._key, None)

    __call__ = unsubscribe


class GameEngine:
    """Owns the current ``GameState`` and applies actions to it.

    Every transition replaces the state with a new immutable snapshot and
    passes it to the subscribed listeners. In single-player mode a human move
    that leaves the machine to play schedules the reply through ``scheduler``.
    """

    def __init__(
        self,
        board_size: int = 3,
        game_mode: str = "single",
        difficulty: str = "unbeatable",
        *,
        rng: Optional[random.Random] = None,
        scheduler: Scheduler = timer_scheduler,
        ai_delay: float = AI_MOVE_DELAY,
        sync: Optional[SyncPort] = None,
    ) -> None:
        self._state = initial_state(board_size, game_mode, difficulty)
        self._rng = rng or random.Random()
        self._ai = MinimaxAI(player=MACHINE_PLAYER, rng=self._rng)
        self._scheduler = scheduler
        self._ai_delay = ai_delay
        self._sync = sync
        self._listeners: Dict[int, Listener] = {}
        self._next_key = 0
        self._generation = 0
        self._pending: Optional[AITurn] = None
        self._lock = threading.RLock()

    # ---- public API ----

    def get_state(self) -> GameState:
        with self._lock:
            return self._state

    @property
    def ai_pending(self) -> bool:
        with self._lock:
            return self._pending is not None

    def get_available_moves(self) -> List[Position]:
        return available_moves(self.get_state().board)

    def is_valid_move(self, position: object) -> bool:
        return is_valid_move(self.get_state(), position)

    def get_best_move(self) -> Optional[Position]:
        with self._lock:
            return self._ai.choose(self._state)

    def subscribe(self, listener: Listener) -> Subscription:
        with self._lock:
            key = self._next_key
            self._next_key += 1
            self._listeners[key] = listener
            return Subscription(self._listeners, key)

    def attach_sync(self, port: Optional[SyncPort]) -> None:
        with self._lock:
            self._sync = port

    def dispatch(self, action: Any) -> None:
        """Apply one action.

        Accepts action models or their JSON-like mappings. Unrecognized input
        is logged and ignored; an out-of-range board size raises
        ``InvalidBoardSizeError``.
        """
        if isinstance(action, Mapping):
            try:
                action = parse_action(action)
            except ValidationError as exc:
                logger.warning("Ignoring unrecognized action %r: %s", action, exc)
                return
        if not isinstance(action, ACTION_TYPES):
            logger.warning("Ignoring unrecognized action %r", action)
            return

        with self._lock:
            was_remote = self._state.game_mode == "remote"
            self._reduce(action)
            port = self._sync
            forward = port is not None and (
                was_remote or isinstance(action, JoinRemoteGame)
            )
        if forward:
            self._forward(port, action)

    def sync_state(self, state: GameState) -> None:
        """Replace the mirrored state wholesale with a remote snapshot."""
        with self._lock:
            self._cancel_pending()
            self._commit(state)

    # ---- reducer ----

    def _reduce(self, action: Any) -> None:
        if isinstance(action, MakeMove):
            self._make_move(action.position)
        elif isinstance(action, ResetGame):
            # Resets and resizes stay in the current remote room.
            self._reset(
                self._state.board_size,
                self._state.game_mode,
                room_id=self._state.room_id,
            )
        elif isinstance(action, ChangeBoardSize):
            size = validate_board_size(action.size)
            self._reset(size, self._state.game_mode, room_id=self._state.room_id)
        elif isinstance(action, ChangeGameMode):
            self._reset(self._state.board_size, action.mode)
        elif isinstance(action, ChangeDifficulty):
            self._commit(replace(self._state, difficulty=action.difficulty))
        elif isinstance(action, UndoMove):
            self._undo()
        elif isinstance(action, JoinRemoteGame):
            self._reset(self._state.board_size, "remote", room_id=action.room_id)

    def _make_move(self, position: Position) -> None:
        state = self._state
        if not is_valid_move(state, position):
            logger.debug("Rejected move %s", position)
            return

        player = state.current_player
        board = place(state.board, position, player)
        status = check_game_over(board, position)
        self._commit(
            replace(
                state,
                board=board,
                current_player=other_player(player),
                move_history=state.move_history + (Move(player, tuple(position)),),
                is_game_over=status.is_game_over,
                winner=status.winner,
                is_draw=status.is_draw,
                winning_line=status.winning_line,
            )
        )
        if status.is_game_over:
            logger.debug("Game over: winner=%s draw=%s", status.winner, status.is_draw)

        current = self._state
        if (
            current.game_mode == "single"
            and not current.is_game_over
            and current.current_player == MACHINE_PLAYER
        ):
            self._schedule_ai_turn()

    def _reset(
        self, board_size: int, game_mode: str, room_id: Optional[str] = None
    ) -> None:
        self._cancel_pending()
        self._commit(
            initial_state(board_size, game_mode, self._state.difficulty, room_id)
        )

    def _undo(self) -> None:
        state = self._state
        history = state.move_history
        if not history:
            return

        if state.game_mode == "single":
            last = history[-1]
            if last.player == MACHINE_PLAYER and len(history) >= 2:
                kept = history[:-2]
            elif last.player == HUMAN_PLAYER:
                kept = history[:-1]
            else:
                return
            next_player = HUMAN_PLAYER
        else:
            kept = history[:-1]
            next_player = other_player(state.current_player)

        self._cancel_pending()
        board = rebuild_board(state.board_size, kept)
        status = check_game_over(board)
        self._commit(
            replace(
                state,
                board=board,
                current_player=next_player,
                move_history=kept,
                is_game_over=status.is_game_over,
                winner=status.winner,
                is_draw=status.is_draw,
                winning_line=status.winning_line,
            )
        )

    # ---- AI turn ----

    def _schedule_ai_turn(self) -> None:
        self._cancel_pending()
        turn = AITurn(generation=self._generation)
        self._pending = turn
        turn.handle = self._scheduler(self._ai_delay, lambda: self._run_ai_turn(turn))
        logger.debug("Scheduled AI turn (generation %d)", turn.generation)

    def _run_ai_turn(self, turn: AITurn) -> None:
        with self._lock:
            if turn.cancelled or self._pending is not turn:
                return
            self._pending = None
            if turn.generation != self._generation:
                return
            state = self._state
            if (
                state.game_mode != "single"
                or state.is_game_over
                or state.current_player != MACHINE_PLAYER
            ):
                return
            move = self._ai.choose(state)
            logger.debug("AI (%s) plays %s", state.difficulty, move)
            if move is not None:
                self.dispatch(MakeMove(position=move))

    def _cancel_pending(self) -> None:
        self._generation += 1
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None

    # ---- notification ----

    def _commit(self, state: GameState) -> None:
        self._state = state
        # A listener may dispatch; later listeners then get the newest state.
        for listener in list(self._listeners.values()):
            listener(self._state)

    def _forward(self, port: SyncPort, action: Any) -> None:
        try:
            port.forward(action)
        except Exception:
            logger.warning("Failed to forward %s to remote peer", action, exc_info=True)
