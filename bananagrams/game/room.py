"""
Server-authoritative room state machine.

A room moves ``waiting -> playing -> finished``. Every inbound event is
handled to completion (validate, mutate, describe broadcasts) before the
next one; the transport is told what to send through ``Outcome.effects``.
All checks run before the first mutation, so a rejected request leaves the
room untouched.
"""

import logging
import random
import re
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, NamedTuple, Optional, Sequence, Tuple, Type

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..config import GameSettings
from . import errors
from .letter_bag import LetterBag, tiles_per_player
from .models import (
    Ack,
    BoardTile,
    CreateRoomAck,
    CreateRoomRequest,
    DumpAck,
    DumpRequest,
    Emit,
    EnterRoom,
    GameStartPayload,
    GameStatus,
    GameWonPayload,
    GetPlayerDetailsRequest,
    JoinRoomAck,
    JoinRoomRequest,
    KickedPayload,
    KickPlayerRequest,
    LeaveRoom,
    Outcome,
    PeelAck,
    PeelCalledPayload,
    Player,
    PlayerBoardUpdatePayload,
    PlayerDetailsAck,
    PlayerDumpedPayload,
    PlayerHandUpdatePayload,
    PlayerKickedPayload,
    PlayerLeftPayload,
    RoomSnapshot,
    Tile,
    UpdateBoardRequest,
    UpdateHandSizeRequest,
    UpdateTileLocationsRequest,
)


logger = logging.getLogger(__name__)

PIN_PATTERN = re.compile(r"^\d{4}$")
PIN_SPACE = 9000  # "1000".."9999"
KICK_REASON = "You have been kicked from the room by the host"


class TileIdGenerator(BaseModel):
    """Monotonic per-room counter salted with a room-unique token."""
    salt: str = Field(default_factory=lambda: uuid.uuid4().hex[:8])
    counter: int = 0

    def next(self, prefix: str = "tile") -> str:
        self.counter += 1
        return f"{prefix}-{self.salt}-{self.counter}"


class Room(BaseModel):
    """
    A game room.

    Attributes:
        id: Room id (also the transport room name)
        pin: 4-digit join code
        host: Player id of the host
        players: Players in join order
        game_state: waiting, playing or finished
        letter_bag: Tiles not held by any player
        created_at: Creation time (UTC)
        tile_ids: Generator for tile ids unique within the room
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    id: str
    pin: str
    host: str
    players: List[Player] = Field(default_factory=list)
    game_state: GameStatus = "waiting"
    letter_bag: LetterBag = Field(default_factory=LetterBag.full)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    tile_ids: TileIdGenerator = Field(default_factory=TileIdGenerator)

    def get_player(self, player_id: str) -> Optional[Player]:
        return next((p for p in self.players if p.id == player_id), None)

    def find_player_by_name(self, name: str) -> Optional[Player]:
        wanted = name.strip().casefold()
        return next((p for p in self.players if p.name.casefold() == wanted), None)

    @property
    def remaining_tiles(self) -> int:
        return self.letter_bag.remaining_count()

    def tile_total(self) -> int:
        """Bag plus every player's tiles; constant for the room's lifetime."""
        return self.remaining_tiles + sum(len(p.tiles) for p in self.players)

    def deal(self, player: Player, count: int, prefix: str) -> List[Tile]:
        """Move up to ``count`` tiles from the bag into ``player``'s tiles."""
        dealt = [
            Tile(id=self.tile_ids.next(prefix), letter=letter)
            for letter in self.letter_bag.draw(count)
        ]
        player.tiles.extend(dealt)
        return dealt

    def remove_player(self, player_id: str) -> Optional[Player]:
        """
        Remove a player, return their tiles to the bag and hand the host
        role to the first remaining player if needed.

        Returns:
            The removed player, or None if not present
        """
        player = self.get_player(player_id)
        if player is None:
            return None

        self.players = [p for p in self.players if p.id != player_id]
        for tile in player.tiles:
            self.letter_bag.return_letter(tile.letter)
        player.tiles = []
        player.board_tiles = []

        if self.host == player_id and self.players:
            self.host = self.players[0].id
            self.players[0].is_host = True
        return player

    def snapshot(self) -> RoomSnapshot:
        return RoomSnapshot(
            id=self.id,
            pin=self.pin,
            host=self.host,
            players=[p.view() for p in self.players],
            game_state=self.game_state,
            remaining_tiles=self.remaining_tiles,
            created_at=self.created_at,
        )


class RoomStore:
    """
    Live rooms keyed by pin, plus the index of which room each sid sits in.

    One store is owned by one server process; tests build a fresh one each.
    """

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()
        self.rooms: Dict[str, Room] = {}
        self.seats: Dict[str, str] = {}

    def __len__(self) -> int:
        return len(self.rooms)

    def __contains__(self, pin: str) -> bool:
        return pin in self.rooms

    def generate_pin(self) -> str:
        """Random 4-digit pin not used by any live room."""
        if len(self.rooms) >= PIN_SPACE:
            raise errors.NoPinsAvailable()
        while True:
            pin = str(self.rng.randint(1000, 9999))
            if pin not in self.rooms:
                return pin

    def create(self, host_id: str, host_name: str) -> Room:
        pin = self.generate_pin()
        room = Room(
            id=f"game-{uuid.uuid4().hex}",
            pin=pin,
            host=host_id,
            players=[Player(id=host_id, name=host_name, is_host=True)],
        )
        room.letter_bag.use_rng(self.rng)
        self.rooms[pin] = room
        self.seats[host_id] = pin
        return room

    def get(self, pin: str) -> Optional[Room]:
        return self.rooms.get(pin)

    def pin_for(self, sid: str) -> Optional[str]:
        return self.seats.get(sid)

    def room_for(self, sid: str) -> Optional[Room]:
        pin = self.seats.get(sid)
        return self.rooms.get(pin) if pin else None

    def seat(self, sid: str, pin: str) -> None:
        self.seats[sid] = pin

    def unseat(self, sid: str) -> None:
        self.seats.pop(sid, None)

    def delete(self, pin: str) -> None:
        room = self.rooms.pop(pin, None)
        if room is None:
            return
        for player in room.players:
            self.seats.pop(player.id, None)


class EventSpec(NamedTuple):
    """How a client event maps onto a handler."""
    handler: str
    request: Optional[Type[BaseModel]]
    arg_names: Optional[Tuple[str, ...]]  # None: the single argument is the payload object
    has_ack: bool


EVENTS: Dict[str, EventSpec] = {
    "createRoom": EventSpec("create_room", CreateRoomRequest, ("playerName",), True),
    "joinRoom": EventSpec("join_room", JoinRoomRequest, ("pin", "playerName"), True),
    "toggleReady": EventSpec("toggle_ready", None, (), False),
    "startGame": EventSpec("start_game", None, (), True),
    "peel": EventSpec("peel", None, (), True),
    "dump": EventSpec("dump", DumpRequest, ("tileId",), True),
    "updateBoard": EventSpec("update_board", UpdateBoardRequest, ("boardTiles",), False),
    "updateHandSize": EventSpec("update_hand_size", UpdateHandSizeRequest, ("handSize",), False),
    "updateTileLocations": EventSpec("update_tile_locations", UpdateTileLocationsRequest, None, False),
    "getPlayerDetails": EventSpec("get_player_details", GetPlayerDetailsRequest, ("targetPlayerName",), True),
    "kickPlayer": EventSpec("kick_player", KickPlayerRequest, ("targetPlayerId",), True),
    "disconnect": EventSpec("disconnect", None, (), False),
}


def _parse_request(entry: EventSpec, args: Sequence[Any]) -> Optional[BaseModel]:
    if entry.request is None:
        return None
    if entry.arg_names is None:
        payload = args[0] if args else {}
        if not isinstance(payload, dict):
            raise errors.InvalidPayload("Expected an object payload")
        return entry.request.model_validate(payload)
    if len(args) > len(entry.arg_names):
        raise errors.InvalidPayload(
            f"Expected at most {len(entry.arg_names)} argument(s), got {len(args)}"
        )
    return entry.request.model_validate(dict(zip(entry.arg_names, args)))


class RoomStateMachine:
    """
    Handles room events for every room in a ``RoomStore``.

    ``dispatch`` is the request/response boundary: it never raises for a bad
    request, it returns an error acknowledgement and no effects instead.
    """

    def __init__(
        self,
        store: Optional[RoomStore] = None,
        settings: Optional[GameSettings] = None,
    ):
        self.store = store or RoomStore()
        self.settings = settings or GameSettings()

    # Boundary

    def dispatch(self, sid: str, event: str, args: Sequence[Any] = ()) -> Outcome:
        """
        Handle one client event.

        Args:
            sid: Connection id of the sender
            event: Event name (e.g. "peel")
            args: Positional event arguments as received from the transport

        Returns:
            Outcome holding the acknowledgement dict (None for events
            without one) and the ordered effects to deliver
        """
        entry = EVENTS.get(event)
        if entry is None:
            logger.warning("Unknown event %r from %s", event, sid)
            return Outcome()

        try:
            request = _parse_request(entry, args)
            handler: Callable[..., Outcome] = getattr(self, entry.handler)
            return handler(sid, request) if request is not None else handler(sid)
        except errors.RoomError as exc:
            return self._reject(sid, event, entry, exc)
        except ValidationError as exc:
            detail = "; ".join(
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()
            )
            return self._reject(sid, event, entry, errors.InvalidPayload(f"Malformed {event} payload: {detail}"))

    def room_key(self, sid: str, event: str, args: Sequence[Any] = ()) -> Optional[str]:
        """Pin of the room an event will touch, for per-room serialization."""
        if event == "joinRoom" and args:
            return str(args[0])
        return self.store.pin_for(sid)

    def _reject(self, sid: str, event: str, entry: EventSpec, exc: errors.RoomError) -> Outcome:
        logger.warning("Rejected %s from %s: %s (%s)", event, sid, exc.message, exc.code)
        if not entry.has_ack:
            return Outcome()
        return Outcome(ack=Ack(success=False, error=exc.message, code=exc.code).to_wire())

    # Helpers

    def _seat(self, sid: str) -> Tuple[Room, Player]:
        room = self.store.room_for(sid)
        if room is None:
            raise errors.NotInRoom()
        player = room.get_player(sid)
        if player is None:
            raise errors.PlayerNotFound()
        return room, player

    def _require_playing(self, room: Room) -> None:
        if room.game_state != "playing":
            raise errors.GameNotActive()

    @staticmethod
    def _room_update(room: Room) -> Emit:
        return Emit(event="roomUpdate", payload=room.snapshot().to_wire(), room=room.id)

    # Lobby

    def create_room(self, sid: str, request: CreateRoomRequest) -> Outcome:
        """
        Open a new waiting room with the sender as host.

        Args:
            sid: Connection id of the new host
            request: Host display name

        Returns:
            Ack with the room pin and id; the host enters the room and gets a ``roomUpdate``
        """
        if self.store.pin_for(sid) is not None:
            raise errors.AlreadyInRoom()

        room = self.store.create(sid, request.player_name)
        logger.info("Room %s created by %s (%s)", room.pin, request.player_name, sid)

        return Outcome(
            ack=CreateRoomAck(pin=room.pin, game_id=room.id).to_wire(),
            effects=[EnterRoom(sid=sid, room=room.id), self._room_update(room)],
        )

    def join_room(self, sid: str, request: JoinRoomRequest) -> Outcome:
        """
        Seat the sender in a waiting room.

        Args:
            sid: Connection id of the joining player
            request: Room pin and a display name unique within the room

        Returns:
            Ack with the room id; ``roomUpdate`` to the room
        """
        if self.store.pin_for(sid) is not None:
            raise errors.AlreadyInRoom()
        if not PIN_PATTERN.match(request.pin):
            raise errors.InvalidPin()

        room = self.store.get(request.pin)
        if room is None:
            raise errors.RoomNotFound()
        if len(room.players) >= self.settings.max_players:
            raise errors.RoomFull(f"Room is full (max {self.settings.max_players} players)")
        if room.game_state != "waiting":
            raise errors.GameInProgress()
        if room.find_player_by_name(request.player_name) is not None:
            raise errors.NameTaken()

        room.players.append(Player(id=sid, name=request.player_name))
        self.store.seat(sid, room.pin)
        logger.info("%s (%s) joined room %s", request.player_name, sid, room.pin)

        return Outcome(
            ack=JoinRoomAck(game_id=room.id).to_wire(),
            effects=[EnterRoom(sid=sid, room=room.id), self._room_update(room)],
        )

    def toggle_ready(self, sid: str) -> Outcome:
        """Flip the sender's ready flag. Ignored outside a room."""
        room = self.store.room_for(sid)
        player = room.get_player(sid) if room else None
        if player is None:
            return Outcome()

        player.is_ready = not player.is_ready
        return Outcome(effects=[self._room_update(room)])

    def start_game(self, sid: str) -> Outcome:
        """
        Deal every player a starting hand from a fresh bag.

        Only the host may start, with every other player ready and the
        player count within the configured bounds.

        Args:
            sid: Connection id of the host

        Returns:
            Success ack; ``gameStart`` then ``roomUpdate`` to the room
        """
        room = self.store.room_for(sid)
        if room is None:
            raise errors.NotInRoom()
        if room.host != sid:
            raise errors.NotHost("Only host can start the game")
        if room.game_state != "waiting":
            raise errors.GameInProgress()

        count = len(room.players)
        low, high = self.settings.required_players, self.settings.max_players
        if not low <= count <= high:
            raise errors.NotEnoughPlayers(f"Need between {low} and {high} players to start")
        if not all(p.is_ready or p.id == room.host for p in room.players):
            raise errors.PlayersNotReady()

        room.letter_bag = LetterBag.full()
        room.letter_bag.use_rng(self.store.rng)
        hand_size = tiles_per_player(count)
        for player in room.players:
            player.tiles = []
            player.board_tiles = []
            room.deal(player, hand_size, "start")
        room.game_state = "playing"
        logger.info(
            "Room %s started with %d players (%d tiles each, %d left)",
            room.pin, count, hand_size, room.remaining_tiles,
        )

        game_start = GameStartPayload(
            players=[p.view() for p in room.players],
            remaining_tiles=room.remaining_tiles,
        )
        return Outcome(
            ack=Ack().to_wire(),
            effects=[
                Emit(event="gameStart", payload=game_start.to_wire(), room=room.id),
                self._room_update(room),
            ],
        )

    # Play

    def peel(self, sid: str) -> Outcome:
        """
        Call PEEL with an empty hand.

        If the bag cannot give every player a tile the caller wins;
        otherwise every player draws one.

        Args:
            sid: Connection id of the caller

        Returns:
            Ack with ``won``; ``gameWon`` or ``peelCalled``, then ``roomUpdate``
        """
        room, player = self._seat(sid)
        self._require_playing(room)
        if player.hand_size > 0:
            raise errors.StillHasTiles()

        count = len(room.players)
        remaining = room.remaining_tiles

        if remaining < count:
            room.game_state = "finished"
            logger.info("Room %s won by %s", room.pin, player.name)
            won = GameWonPayload(winner_id=sid, winner_name=player.name)
            return Outcome(
                ack=PeelAck(won=True).to_wire(),
                effects=[
                    Emit(event="gameWon", payload=won.to_wire(), room=room.id),
                    self._room_update(room),
                ],
            )

        is_last_round = remaining < count * 2
        for p in room.players:
            room.deal(p, 1, "peel")
        logger.info("%s peeled in room %s (%d left)", player.name, room.pin, room.remaining_tiles)

        peel_called = PeelCalledPayload(
            caller_name=player.name,
            players=[p.view(hand_only=True) for p in room.players],
            remaining_tiles=room.remaining_tiles,
            is_last_round=is_last_round,
        )
        return Outcome(
            ack=PeelAck(won=False).to_wire(),
            effects=[
                Emit(event="peelCalled", payload=peel_called.to_wire(), room=room.id),
                self._room_update(room),
            ],
        )

    def dump(self, sid: str, request: DumpRequest) -> Outcome:
        """
        Trade one hand tile back to the bag for ``dump_draw_count`` new ones.

        Args:
            sid: Connection id of the player
            request: Id of a tile in the player's hand

        Returns:
            Ack with the drawn tiles; ``playerDumped`` then ``roomUpdate``
        """
        room, player = self._seat(sid)
        self._require_playing(room)

        traded = next((t for t in player.hand_tiles if t.id == request.tile_id), None)
        if traded is None:
            raise errors.TileNotFound()
        draw_count = self.settings.dump_draw_count
        if room.remaining_tiles < draw_count:
            raise errors.InsufficientBagSupply()

        player.tiles = [t for t in player.tiles if t.id != traded.id]
        room.letter_bag.return_letter(traded.letter)
        new_tiles = room.deal(player, draw_count, "dump")
        logger.info("%s dumped %s in room %s", player.name, traded.letter, room.pin)

        dumped = PlayerDumpedPayload(
            player_id=sid, player_name=player.name, remaining_tiles=room.remaining_tiles,
        )
        return Outcome(
            ack=DumpAck(new_tiles=new_tiles).to_wire(),
            effects=[
                Emit(event="playerDumped", payload=dumped.to_wire(), room=room.id),
                self._room_update(room),
            ],
        )

    def update_board(self, sid: str, request: UpdateBoardRequest) -> Outcome:
        """Replace the sender's board and relay it to everyone else in the room."""
        room, player = self._seat(sid)
        self._require_playing(room)
        self._check_board(player, request.board_tiles)

        player.board_tiles = list(request.board_tiles)
        update = PlayerBoardUpdatePayload(
            player_id=sid,
            player_name=player.name,
            board_tiles=player.board_tiles,
            hand_size=player.hand_size,
            board_size=player.board_size,
        )
        return Outcome(effects=[
            Emit(event="playerBoardUpdate", payload=update.to_wire(), room=room.id, skip_sid=sid),
        ])

    def _check_board(self, player: Player, board_tiles: List[BoardTile]) -> None:
        cells = self.settings.grid_size * self.settings.grid_size
        owned = {t.id: t.letter for t in player.tiles}
        seen_ids = set()
        seen_positions = set()
        for bt in board_tiles:
            if owned.get(bt.id) != bt.letter:
                raise errors.InvalidBoard(f"Tile {bt.id} is not one of your tiles")
            if bt.position >= cells:
                raise errors.InvalidBoard(f"Position {bt.position} is outside the board")
            if bt.id in seen_ids:
                raise errors.InvalidBoard(f"Tile {bt.id} placed twice")
            if bt.position in seen_positions:
                raise errors.InvalidBoard(f"Cell {bt.position} holds more than one tile")
            seen_ids.add(bt.id)
            seen_positions.add(bt.position)

    def _hand_update(self, room: Room, player: Player, reported: Optional[int]) -> Outcome:
        # Client-reported counts are not trusted; the hand size is re-derived.
        if reported is not None and reported != player.hand_size:
            logger.debug(
                "%s reported hand size %d, actual %d", player.name, reported, player.hand_size,
            )
        update = PlayerHandUpdatePayload(
            player_id=player.id, player_name=player.name, hand_size=player.hand_size,
        )
        return Outcome(effects=[
            Emit(event="playerHandUpdate", payload=update.to_wire(), room=room.id),
        ])

    def update_hand_size(self, sid: str, request: UpdateHandSizeRequest) -> Outcome:
        """Broadcast the sender's derived hand size."""
        room, player = self._seat(sid)
        self._require_playing(room)
        return self._hand_update(room, player, request.hand_size)

    def update_tile_locations(self, sid: str, request: UpdateTileLocationsRequest) -> Outcome:
        room, player = self._seat(sid)
        self._require_playing(room)
        return self._hand_update(room, player, None)

    def get_player_details(self, sid: str, request: GetPlayerDetailsRequest) -> Outcome:
        """
        Look up another player's hand letters and board by name.

        Args:
            sid: Connection id of the asking player
            request: Display name of the player to inspect

        Returns:
            Ack with the target's hand letters, board tiles and sizes
        """
        room, _ = self._seat(sid)
        self._require_playing(room)

        target = room.find_player_by_name(request.target_player_name)
        if target is None:
            raise errors.PlayerNotFound()

        hand = target.hand_tiles
        return Outcome(ack=PlayerDetailsAck(
            player_name=target.name,
            tiles_in_hand=[t.letter for t in hand],
            board_tiles=target.board_tiles,
            hand_size=len(hand),
            board_size=target.board_size,
        ).to_wire())

    # Membership

    def kick_player(self, sid: str, request: KickPlayerRequest) -> Outcome:
        """
        Remove another player from a waiting room.

        Args:
            sid: Connection id of the host
            request: Id of the player to remove

        Returns:
            Success ack; the target leaves the room and gets ``kicked``,
            the room gets ``playerKicked`` then ``roomUpdate``
        """
        room = self.store.room_for(sid)
        if room is None:
            raise errors.RoomNotFound()
        if room.host != sid:
            raise errors.NotHost("Only the host can kick players")
        if room.game_state != "waiting":
            raise errors.GameInProgress("Cannot kick players during an active game")

        target = room.get_player(request.target_player_id)
        if target is None:
            raise errors.PlayerNotFound()
        if target.id == sid:
            raise errors.CannotKickSelf()

        room.remove_player(target.id)
        self.store.unseat(target.id)
        logger.info("%s kicked from room %s", target.name, room.pin)

        kicked = PlayerKickedPayload(player_id=target.id, player_name=target.name)
        return Outcome(
            ack=Ack().to_wire(),
            effects=[
                LeaveRoom(sid=target.id, room=room.id),
                Emit(event="kicked", payload=KickedPayload(reason=KICK_REASON).to_wire(), to=target.id),
                Emit(event="playerKicked", payload=kicked.to_wire(), room=room.id),
                self._room_update(room),
            ],
        )

    def disconnect(self, sid: str) -> Outcome:
        """
        Drop the sender from its room, deleting the room once it is empty.

        The departing player's tiles go back to the bag.
        """
        room = self.store.room_for(sid)
        self.store.unseat(sid)
        if room is None:
            return Outcome()

        player = room.remove_player(sid)
        if player is None:
            return Outcome()
        effects = [LeaveRoom(sid=sid, room=room.id)]

        if not room.players:
            self.store.delete(room.pin)
            logger.info("Room %s deleted (empty)", room.pin)
            return Outcome(effects=effects)

        logger.info("%s left room %s", player.name, room.pin)
        left = PlayerLeftPayload(player_id=sid, player_name=player.name, room=room.snapshot())
        effects.append(Emit(event="playerLeft", payload=left.to_wire(), room=room.id))
        return Outcome(effects=effects)
