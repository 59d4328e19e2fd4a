"""
Pydantic models for the room layer.

Holds the tile and player entities, the tagged request payloads clients send,
the broadcast payloads the server emits, and the effect records that the
state machine hands to the transport. Everything that crosses the wire is
dumped with camelCase aliases.
"""

from datetime import datetime
from typing import Annotated, Any, Dict, List, Literal, Optional, Set, Union

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    StringConstraints,
    field_validator,
)
from pydantic.alias_generators import to_camel


GameStatus = Literal["waiting", "playing", "finished"]
PlayerName = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=32)]


class WireModel(BaseModel):
    """Base for models exchanged with clients (camelCase on the wire)."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


def normalize_letter(value: str) -> str:
    letter = value.strip().upper()
    if len(letter) != 1 or not "A" <= letter <= "Z":
        raise ValueError(f"letter must be a single character A-Z, got {value!r}")
    return letter


class Tile(WireModel):
    """A lettered tile. Immutable once drawn."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    letter: str

    @field_validator("letter")
    @classmethod
    def check_letter(cls, value: str) -> str:
        return normalize_letter(value)


class BoardTile(WireModel):
    """A tile placed on a grid cell (``position = row * grid_size + col``)."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    letter: str = Field(..., validation_alias=AliasChoices("letter", "content"))
    position: int = Field(..., ge=0)

    @field_validator("letter")
    @classmethod
    def check_letter(cls, value: str) -> str:
        return normalize_letter(value)


class PlayerView(WireModel):
    """Player summary as broadcast to the room."""
    id: str
    name: str
    is_host: bool = False
    is_ready: bool = False
    tiles: Optional[List[Tile]] = None
    board_tiles: Optional[List[BoardTile]] = None
    hand_size: int = 0
    board_size: int = 0


class Player(BaseModel):
    """
    Server-side player entry.

    ``tiles`` holds every tile the player owns; a tile is in the hand iff its
    id is not among ``board_tiles``. Sizes are always derived, never stored.
    """
    id: str
    name: str
    is_host: bool = False
    is_ready: bool = False
    tiles: List[Tile] = Field(default_factory=list)
    board_tiles: List[BoardTile] = Field(default_factory=list)

    @property
    def board_ids(self) -> Set[str]:
        return {bt.id for bt in self.board_tiles}

    @property
    def hand_tiles(self) -> List[Tile]:
        on_board = self.board_ids
        return [t for t in self.tiles if t.id not in on_board]

    @property
    def hand_size(self) -> int:
        return len(self.hand_tiles)

    @property
    def board_size(self) -> int:
        return len(self.board_tiles)

    def owns(self, tile_id: str) -> bool:
        return any(t.id == tile_id for t in self.tiles)

    def view(self, hand_only: bool = False) -> PlayerView:
        """
        Build the broadcast summary with freshly derived sizes.

        Args:
            hand_only: Send only in-hand tiles instead of every owned tile
        """
        return PlayerView(
            id=self.id,
            name=self.name,
            is_host=self.is_host,
            is_ready=self.is_ready,
            tiles=list(self.hand_tiles if hand_only else self.tiles),
            board_tiles=list(self.board_tiles),
            hand_size=self.hand_size,
            board_size=self.board_size,
        )


class RoomSnapshot(WireModel):
    """Full room state sent with ``roomUpdate`` and ``playerLeft``."""
    id: str
    pin: str
    host: str
    players: List[PlayerView]
    game_state: GameStatus
    remaining_tiles: int
    created_at: datetime


# Client -> server payloads

class CreateRoomRequest(WireModel):
    player_name: PlayerName


class JoinRoomRequest(WireModel):
    pin: str
    player_name: PlayerName

    @field_validator("pin", mode="before")
    @classmethod
    def pin_as_text(cls, value):
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value


class DumpRequest(WireModel):
    tile_id: str = Field(..., min_length=1)


class UpdateBoardRequest(WireModel):
    board_tiles: List[BoardTile]


class UpdateHandSizeRequest(WireModel):
    hand_size: int = Field(..., ge=0)


class UpdateTileLocationsRequest(WireModel):
    tiles_moved_to_board: List[str] = Field(default_factory=list)
    tiles_moved_to_hand: List[str] = Field(default_factory=list)


class GetPlayerDetailsRequest(WireModel):
    target_player_name: PlayerName


class KickPlayerRequest(WireModel):
    target_player_id: str = Field(..., min_length=1)


# Server -> client broadcasts

class GameStartPayload(WireModel):
    players: List[PlayerView]
    remaining_tiles: int


class PeelCalledPayload(WireModel):
    caller_name: str
    players: List[PlayerView]
    remaining_tiles: int
    is_last_round: bool


class GameWonPayload(WireModel):
    winner_id: str
    winner_name: str


class PlayerDumpedPayload(WireModel):
    player_id: str
    player_name: str
    remaining_tiles: int


class PlayerBoardUpdatePayload(WireModel):
    player_id: str
    player_name: str
    board_tiles: List[BoardTile]
    hand_size: int
    board_size: int


class PlayerHandUpdatePayload(WireModel):
    player_id: str
    player_name: str
    hand_size: int


class PlayerKickedPayload(WireModel):
    player_id: str
    player_name: str


class KickedPayload(WireModel):
    reason: str


class PlayerLeftPayload(WireModel):
    player_id: str
    player_name: str
    room: RoomSnapshot


# Acknowledgements

class Ack(WireModel):
    success: bool = True
    error: Optional[str] = None
    code: Optional[str] = None


class CreateRoomAck(Ack):
    pin: str
    game_id: str


class JoinRoomAck(Ack):
    game_id: str


class PeelAck(Ack):
    won: bool = False


class DumpAck(Ack):
    new_tiles: List[Tile] = Field(default_factory=list)


class PlayerDetailsAck(Ack):
    player_name: str
    tiles_in_hand: List[str] = Field(default_factory=list)
    board_tiles: List[BoardTile] = Field(default_factory=list)
    hand_size: int = 0
    board_size: int = 0


# Effects handed to the transport, applied in order

class Emit(BaseModel):
    """Send ``event`` to one sid (``to``) or to a room, optionally skipping a sid."""
    kind: Literal["emit"] = "emit"
    event: str
    payload: Dict[str, Any] = Field(default_factory=dict)
    to: Optional[str] = None
    room: Optional[str] = None
    skip_sid: Optional[str] = None


class EnterRoom(BaseModel):
    kind: Literal["enter"] = "enter"
    sid: str
    room: str


class LeaveRoom(BaseModel):
    kind: Literal["leave"] = "leave"
    sid: str
    room: str


Effect = Union[Emit, EnterRoom, LeaveRoom]


class Outcome(BaseModel):
    """Result of one dispatched event: the ack (if any) and the effects."""
    ack: Optional[Dict[str, Any]] = None
    effects: List[Effect] = Field(default_factory=list)
