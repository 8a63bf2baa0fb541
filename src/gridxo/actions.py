"""Actions accepted by the GridXO engine and their wire form."""

from __future__ import annotations

from typing import Annotated, Any, Dict, Literal, Mapping, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

GameMode = Literal["single", "local", "remote"]
Difficulty = Literal["easy", "medium", "hard", "unbeatable"]


class _Action(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class MakeMove(_Action):
    type: Literal["MAKE_MOVE"] = "MAKE_MOVE"
    position: Tuple[int, int]


class ResetGame(_Action):
    type: Literal["RESET_GAME"] = "RESET_GAME"


class ChangeBoardSize(_Action):
    # Range is checked by the engine so that it can refuse without raising here.
    type: Literal["CHANGE_BOARD_SIZE"] = "CHANGE_BOARD_SIZE"
    size: int


class ChangeGameMode(_Action):
    type: Literal["CHANGE_GAME_MODE"] = "CHANGE_GAME_MODE"
    mode: GameMode


class ChangeDifficulty(_Action):
    type: Literal["CHANGE_DIFFICULTY"] = "CHANGE_DIFFICULTY"
    difficulty: Difficulty


class UndoMove(_Action):
    type: Literal["UNDO_MOVE"] = "UNDO_MOVE"


class JoinRemoteGame(_Action):
    type: Literal["JOIN_REMOTE_GAME"] = "JOIN_REMOTE_GAME"
    room_id: str = Field(alias="roomId", min_length=1)


Action = Annotated[
    Union[
        MakeMove,
        ResetGame,
        ChangeBoardSize,
        ChangeGameMode,
        ChangeDifficulty,
        UndoMove,
        JoinRemoteGame,
    ],
    Field(discriminator="type"),
]

ACTION_TYPES = (
    MakeMove,
    ResetGame,
    ChangeBoardSize,
    ChangeGameMode,
    ChangeDifficulty,
    UndoMove,
    JoinRemoteGame,
)

_ACTION_ADAPTER: TypeAdapter[Any] = TypeAdapter(Action)


def parse_action(payload: Mapping[str, Any]) -> Any:
    """Validate a JSON-like mapping into an action model.

    Raises ``pydantic.ValidationError`` for unknown types or bad fields.
    """
    return _ACTION_ADAPTER.validate_python(dict(payload))
