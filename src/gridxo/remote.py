"""Wire snapshots and the client-side adapter for remote GridXO play."""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Literal, Mapping, Optional, Tuple
import logging
import uuid

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .actions import Difficulty, GameMode
from .engine import GameEngine
from .game import GameState, Move, MAX_BOARD_SIZE, MIN_BOARD_SIZE

logger = logging.getLogger(__name__)

Mark = Literal["X", "O"]

ROOM_ID_LENGTH = 8


def generate_room_id() -> str:
    return uuid.uuid4().hex[:ROOM_ID_LENGTH]


class MovePayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    player: Mark
    position: Tuple[int, int]
    timestamp: float = 0.0


class GameStatePayload(BaseModel):
    """camelCase snapshot exchanged in ``SYNC_STATE`` messages."""

    model_config = ConfigDict(populate_by_name=True)

    board: List[List[Optional[Mark]]]
    current_player: Mark = Field(alias="currentPlayer")
    winner: Optional[Mark] = None
    is_draw: bool = Field(default=False, alias="isDraw")
    is_game_over: bool = Field(default=False, alias="isGameOver")
    winning_line: Optional[List[Tuple[int, int]]] = Field(
        default=None, alias="winningLine"
    )
    board_size: int = Field(alias="boardSize", ge=MIN_BOARD_SIZE, le=MAX_BOARD_SIZE)
    move_history: List[MovePayload] = Field(default_factory=list, alias="moveHistory")
    game_mode: GameMode = Field(alias="gameMode")
    difficulty: Difficulty = "unbeatable"
    room_id: Optional[str] = Field(default=None, alias="roomId")

    @model_validator(mode="after")
    def check_dimensions(self) -> "GameStatePayload":
        size = self.board_size
        if len(self.board) != size or any(len(row) != size for row in self.board):
            raise ValueError(f"Board must be {size}x{size}")
        if self.winning_line is not None and len(self.winning_line) != size:
            raise ValueError("Winning line must span the whole board")
        if self.winner is not None and self.is_draw:
            raise ValueError("A game cannot have both a winner and a draw")
        return self

    @classmethod
    def from_state(cls, state: GameState) -> "GameStatePayload":
        return cls(
            board=[list(row) for row in state.board],
            current_player=state.current_player,
            winner=state.winner,
            is_draw=state.is_draw,
            is_game_over=state.is_game_over,
            winning_line=(
                list(state.winning_line) if state.winning_line is not None else None
            ),
            board_size=state.board_size,
            move_history=[
                MovePayload(
                    player=m.player, position=m.position, timestamp=m.timestamp
                )
                for m in state.move_history
            ],
            game_mode=state.game_mode,
            difficulty=state.difficulty,
            room_id=state.room_id,
        )

    def to_state(self) -> GameState:
        return GameState(
            board=tuple(tuple(row) for row in self.board),
            current_player=self.current_player,
            winner=self.winner,
            is_draw=self.is_draw,
            is_game_over=self.is_game_over,
            winning_line=(
                tuple(tuple(p) for p in self.winning_line)
                if self.winning_line is not None
                else None
            ),
            board_size=self.board_size,
            move_history=tuple(
                Move(m.player, tuple(m.position), m.timestamp)
                for m in self.move_history
            ),
            game_mode=self.game_mode,
            difficulty=self.difficulty,
            room_id=self.room_id,
        )


def state_to_payload(state: GameState) -> Dict[str, Any]:
    return GameStatePayload.from_state(state).model_dump(mode="json", by_alias=True)


def state_from_payload(payload: Mapping[str, Any]) -> GameState:
    return GameStatePayload.model_validate(payload).to_state()


def sync_message(state: GameState) -> Dict[str, Any]:
    return {"type": "SYNC_STATE", "state": state_to_payload(state)}


class RemoteAdapter:
    """Bridges a local engine and a message transport.

    The transport is any callable taking a JSON-ready dict; connecting,
    reconnecting and reading from the socket belong to the caller, which
    passes every decoded inbound message to ``handle_message``.
    """

    def __init__(
        self, send: Callable[[Dict[str, Any]], None], player_id: Optional[str] = None
    ) -> None:
        self._send = send
        self.player_id = player_id or uuid.uuid4().hex
        self.engine: Optional[GameEngine] = None

    def attach(self, engine: GameEngine) -> None:
        self.engine = engine
        engine.attach_sync(self)

    def forward(self, action: Any) -> None:
        self._send(
            {
                "type": "GAME_ACTION",
                "action": action.to_payload(),
                "playerId": self.player_id,
            }
        )

    def handle_message(self, message: Mapping[str, Any]) -> None:
        kind = message.get("type")
        if kind == "SYNC_STATE":
            if self.engine is None:
                raise RuntimeError("RemoteAdapter is not attached to an engine")
            self.engine.sync_state(state_from_payload(message.get("state") or {}))
        elif kind in ("GAME_ACTION", "JOIN_GAME", "LEAVE_GAME"):
            # The server answers these with a SYNC_STATE of its own.
            return
        else:
            logger.warning("Ignoring unknown remote message type %r", kind)
