"""GridXO package exposing the game engine, AI helpers, and the web application."""

from .ai import MinimaxAI
from .engine import GameEngine
from .game import GameState, InvalidBoardSizeError, Move
from .api import app

__all__ = [
    "GameEngine",
    "GameState",
    "InvalidBoardSizeError",
    "MinimaxAI",
    "Move",
    "app",
]
