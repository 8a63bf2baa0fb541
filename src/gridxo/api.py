"""FastAPI transport for GridXO: game sessions and remote-play rooms."""

from __future__ import annotations

import asyncio
import logging
import os
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from fastapi import Body, FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .actions import (
    ChangeGameMode,
    Difficulty,
    GameMode,
    JoinRemoteGame,
    MakeMove,
    parse_action,
)
from .engine import GameEngine
from .game import (
    MAX_BOARD_SIZE,
    MIN_BOARD_SIZE,
    GameState,
    InvalidBoardSizeError,
    Player,
    available_moves,
)
from .remote import generate_room_id, state_to_payload, sync_message

logger = logging.getLogger(__name__)


@dataclass
class GameSession:
    """An engine hosted for one HTTP client."""

    engine: GameEngine
    created_at: float = field(default_factory=lambda: time.time())


SESSIONS: Dict[str, GameSession] = {}
app = FastAPI(title="GridXO", description="N×N tic-tac-toe engine with a minimax opponent")


AI_THINK_DELAY: float = float(os.environ.get("GRIDXO_AI_DELAY", "0.5"))
ROOM_IDLE_SECONDS = 60 * 30
ROLE_MARKS: Dict[str, Player] = {"host": "X", "guest": "O"}


@dataclass
class Room:
    """Remote-play room; the server's engine is authoritative for both peers."""

    room_id: str
    engine: GameEngine = field(repr=False)
    created_at: float = field(default_factory=lambda: time.time())
    host: Optional[WebSocket] = field(default=None, repr=False)
    guest: Optional[WebSocket] = field(default=None, repr=False)
    outbox: List[GameState] = field(default_factory=list, repr=False)

    def peers(self) -> List[WebSocket]:
        return [ws for ws in (self.host, self.guest) if ws is not None]

    def take_seat(self, websocket: WebSocket) -> Optional[str]:
        for role in ROLE_MARKS:
            if getattr(self, role) is None:
                setattr(self, role, websocket)
                return role
        return None

    def leave(self, websocket: WebSocket) -> None:
        for role in ROLE_MARKS:
            if getattr(self, role) is websocket:
                setattr(self, role, None)


ROOMS: Dict[str, Room] = {}
ROOM_LOCK = asyncio.Lock()


def _room_key(room_id: str) -> str:
    return room_id.strip().upper()


def _prune_idle_rooms() -> None:
    """Drop rooms nobody has been seated in for ``ROOM_IDLE_SECONDS``."""

    cutoff = time.time() - ROOM_IDLE_SECONDS
    idle = [key for key, room in ROOMS.items() if not room.peers() and room.created_at <= cutoff]
    for key in idle:
        del ROOMS[key]


def _new_room(room_id: str) -> Room:
    engine = GameEngine(game_mode="remote")
    engine.dispatch(JoinRemoteGame(room_id=room_id))
    room = Room(room_id=room_id, engine=engine)
    # Snapshots queue here and are broadcast by the socket handler.
    engine.subscribe(room.outbox.append)
    return room


def _open_room(room_id: Optional[str] = None) -> Room:
    """Return the room for ``room_id``, creating it when missing.

    Without an id a fresh one is drawn. Callers hold ``ROOM_LOCK``.
    """

    _prune_idle_rooms()
    if room_id is None:
        key = _room_key(generate_room_id())
        while key in ROOMS:
            key = _room_key(generate_room_id())
    else:
        key = _room_key(room_id)
    room = ROOMS.get(key)
    if room is None:
        room = ROOMS[key] = _new_room(key)
        logger.info("Opened room %s", key)
    return room


def _serialize_room(room: Room) -> Dict[str, object]:
    return {
        "roomId": room.room_id,
        "occupied": {role: getattr(room, role) is not None for role in ROLE_MARKS},
        "state": state_to_payload(room.engine.get_state()),
    }


class NewGameRequest(BaseModel):
    """Request payload for starting a new game."""

    model_config = ConfigDict(populate_by_name=True)

    board_size: int = Field(
        default=3,
        alias="boardSize",
        ge=MIN_BOARD_SIZE,
        le=MAX_BOARD_SIZE,
        description="Side length of the square board",
    )
    game_mode: GameMode = Field(default="single", alias="gameMode")
    difficulty: Difficulty = "unbeatable"


class MoveRequest(BaseModel):
    """Request payload for submitting a move on an existing game."""

    row: int = Field(ge=0, lt=MAX_BOARD_SIZE)
    col: int = Field(ge=0, lt=MAX_BOARD_SIZE)


def _create_session(request: NewGameRequest) -> Tuple[str, GameSession]:
    """Create a new game session and register it for later access."""

    engine = GameEngine(
        board_size=request.board_size,
        game_mode=request.game_mode,
        difficulty=request.difficulty,
        ai_delay=AI_THINK_DELAY,
    )
    session = GameSession(engine=engine)
    session_id = uuid.uuid4().hex
    SESSIONS[session_id] = session
    logger.info("Created game %s (%s)", session_id, request.model_dump())
    return session_id, session


def _get_session(game_id: str) -> GameSession:
    try:
        return SESSIONS[game_id]
    except KeyError as exc:
        raise HTTPException(status_code=404, detail="Game not found") from exc


def _serialize_session(game_id: str, session: GameSession) -> Dict[str, object]:
    engine = session.engine
    pending = engine.ai_pending
    state = engine.get_state()
    payload: Dict[str, object] = {"id": game_id, **state_to_payload(state)}
    payload["availableMoves"] = [
        [row, col] for row, col in available_moves(state.board)
    ]
    payload["aiPending"] = pending
    if state.move_history:
        payload["lastMove"] = payload["moveHistory"][-1]  # type: ignore[index]
    return payload


def _dispatch(engine: GameEngine, action: Any) -> None:
    try:
        engine.dispatch(action)
    except InvalidBoardSizeError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@app.post("/api/game")
def create_game(request: NewGameRequest) -> Dict[str, object]:
    game_id, session = _create_session(request)
    return _serialize_session(game_id, session)


@app.get("/api/game/{game_id}")
def get_game(game_id: str) -> Dict[str, object]:
    session = _get_session(game_id)
    return _serialize_session(game_id, session)


@app.post("/api/game/{game_id}/move")
def make_move(game_id: str, request: MoveRequest) -> Dict[str, object]:
    session = _get_session(game_id)
    engine = session.engine
    if engine.ai_pending:
        raise HTTPException(status_code=400, detail="AI is completing its move")
    position = (request.row, request.col)
    if engine.get_state().is_game_over:
        raise HTTPException(status_code=400, detail="Game already finished")
    if not engine.is_valid_move(position):
        raise HTTPException(status_code=400, detail="Move is not allowed on this turn")
    _dispatch(engine, MakeMove(position=position))
    return _serialize_session(game_id, session)


@app.post("/api/game/{game_id}/action")
def apply_action(
    game_id: str, payload: Dict[str, Any] = Body(...)
) -> Dict[str, object]:
    session = _get_session(game_id)
    try:
        action = parse_action(payload)
    except ValidationError as exc:
        raise HTTPException(
            status_code=422, detail=exc.errors(include_url=False, include_context=False)
        ) from exc
    if isinstance(action, MakeMove) and session.engine.ai_pending:
        raise HTTPException(status_code=400, detail="AI is completing its move")
    _dispatch(session.engine, action)
    return _serialize_session(game_id, session)


@app.get("/api/game/{game_id}/hint")
def hint(game_id: str) -> Dict[str, object]:
    session = _get_session(game_id)
    move = session.engine.get_best_move()
    return {"move": list(move) if move is not None else None}


@app.post("/api/room")
async def create_room() -> Dict[str, object]:
    async with ROOM_LOCK:
        room = _open_room()
    return _serialize_room(room)


@app.get("/api/room/{room_id}")
async def inspect_room(room_id: str) -> Dict[str, object]:
    async with ROOM_LOCK:
        _prune_idle_rooms()
        room = ROOMS.get(_room_key(room_id))
    if room is None:
        raise HTTPException(status_code=404, detail="Room not found")
    return _serialize_room(room)


async def _broadcast(room: Room) -> None:
    pending, room.outbox[:] = list(room.outbox), []
    for state in pending:
        message = sync_message(state)
        for peer in room.peers():
            try:
                await peer.send_json(message)
            except RuntimeError:
                pass


def _apply_room_action(room: Room, role: str, payload: Any) -> Optional[str]:
    """Dispatch a peer's action on the room engine; return an error or None."""

    try:
        action = parse_action(payload if isinstance(payload, dict) else {})
    except ValidationError:
        return "Unrecognized action"
    # The room engine stays in remote mode under its own id.
    if isinstance(action, (ChangeGameMode, JoinRemoteGame)):
        return "Not allowed in a room"
    if isinstance(action, MakeMove):
        if ROLE_MARKS[role] != room.engine.get_state().current_player:
            return "Not your turn"
    try:
        room.engine.dispatch(action)
    except InvalidBoardSizeError as exc:
        return str(exc)
    return None


@app.websocket("/ws/room/{room_id}")
async def room_sync(websocket: WebSocket, room_id: str) -> None:
    await websocket.accept()
    async with ROOM_LOCK:
        room = _open_room(room_id)
        role = room.take_seat(websocket)

    if role is None:
        await websocket.send_json({"type": "error", "message": "Room is full"})
        await websocket.close()
        return

    await websocket.send_json({"type": "role", "role": role, "mark": ROLE_MARKS[role]})
    await websocket.send_json(sync_message(room.engine.get_state()))

    try:
        while True:
            message = await websocket.receive_json()
            kind = message.get("type") if isinstance(message, dict) else None
            if kind != "GAME_ACTION":
                await websocket.send_json(
                    {"type": "error", "message": f"Unsupported message {kind!r}"}
                )
                continue
            async with ROOM_LOCK:
                error = _apply_room_action(room, role, message.get("action"))
            if error:
                await websocket.send_json({"type": "error", "message": error})
            await _broadcast(room)
    except WebSocketDisconnect:
        pass
    finally:
        async with ROOM_LOCK:
            room.leave(websocket)
            if not room.peers():
                ROOMS.pop(room.room_id, None)
