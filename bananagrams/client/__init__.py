"""Client-side state: the multiplayer projector and the solo game."""

from .projector import ClientGameState
from .session import (
    SoloGame,
    GameSession,
    SessionStore,
    SerializedGameState,
    serialize_game_state,
    deserialize_game_state,
    GAME_STATE_VERSION,
)

__all__ = [
    "ClientGameState",
    "SoloGame",
    "GameSession",
    "SessionStore",
    "SerializedGameState",
    "serialize_game_state",
    "deserialize_game_state",
    "GAME_STATE_VERSION",
]
