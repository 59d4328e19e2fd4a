"""Room layer: letter bag, data model, errors and the room state machine."""

from .letter_bag import LetterBag, LETTER_DISTRIBUTION, TOTAL_TILES, tiles_per_player
from .models import (
    Tile,
    BoardTile,
    Player,
    PlayerView,
    RoomSnapshot,
    Emit,
    EnterRoom,
    LeaveRoom,
    Outcome,
)
from .room import Room, RoomStore, RoomStateMachine, TileIdGenerator, EVENTS
from . import errors

__all__ = [
    "LetterBag",
    "LETTER_DISTRIBUTION",
    "TOTAL_TILES",
    "tiles_per_player",
    "Tile",
    "BoardTile",
    "Player",
    "PlayerView",
    "RoomSnapshot",
    "Emit",
    "EnterRoom",
    "LeaveRoom",
    "Outcome",
    "Room",
    "RoomStore",
    "RoomStateMachine",
    "TileIdGenerator",
    "EVENTS",
    "errors",
]
