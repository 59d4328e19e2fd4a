"""
Client-side mirror of a room, driven by server broadcasts.

The local player's hand and board are optimistic and owned by the client:
broadcasts can only add tiles the client does not know yet (merge by id),
never drop one it holds. Other players are summary-only and always take the
server's ``handSize`` / ``boardSize``.
"""

import logging
from typing import Any, Callable, Dict, List, Optional
from pydantic import BaseModel, Field

from ..game.models import (
    BoardTile,
    GameStartPayload,
    GameStatus,
    GameWonPayload,
    KickedPayload,
    PeelCalledPayload,
    PlayerBoardUpdatePayload,
    PlayerDumpedPayload,
    PlayerHandUpdatePayload,
    PlayerKickedPayload,
    PlayerLeftPayload,
    PlayerView,
    RoomSnapshot,
    Tile,
)


logger = logging.getLogger(__name__)


class ClientGameState(BaseModel):
    """
    One player's local view of a multiplayer game.

    Attributes:
        player_id: The local connection id
        player_name: The local display name (fallback for matching)
        tiles: Tiles on the local board
        player_hand: Tiles in the local hand
        remaining_tiles: Bag size as last reported by the server
        room: Last full room snapshot
        others: Summaries of the other players keyed by id
    """

    player_id: Optional[str] = None
    player_name: Optional[str] = None
    tiles: List[BoardTile] = Field(default_factory=list)
    player_hand: List[Tile] = Field(default_factory=list)
    remaining_tiles: int = 0
    room: Optional[RoomSnapshot] = None
    others: Dict[str, PlayerView] = Field(default_factory=dict)
    game_state: GameStatus = "waiting"
    is_last_round: bool = False
    winner_id: Optional[str] = None
    winner_name: Optional[str] = None
    kicked_reason: Optional[str] = None
    status_message: Optional[str] = None

    # Event application

    def apply(self, event: str, payload: Dict[str, Any]) -> None:
        """Apply one server broadcast by event name; unknown events are ignored."""
        handler: Optional[Callable[[Dict[str, Any]], None]] = getattr(
            self, _HANDLERS.get(event, ""), None
        )
        if handler is None:
            logger.debug("Ignoring unknown event %s", event)
            return
        handler(payload)

    def _is_self(self, player_id: str, name: Optional[str] = None) -> bool:
        if self.player_id is not None:
            return player_id == self.player_id
        return name is not None and name == self.player_name

    def _find_self(self, players: List[PlayerView]) -> Optional[PlayerView]:
        return next((p for p in players if self._is_self(p.id, p.name)), None)

    def _set_others(self, players: List[PlayerView]) -> None:
        self.others = {
            p.id: p.model_copy(update={"tiles": None})
            for p in players
            if not self._is_self(p.id, p.name)
        }

    def _merge_hand(self, server_tiles: List[Tile]) -> None:
        known = {t.id for t in self.player_hand} | {t.id for t in self.tiles}
        for tile in server_tiles:
            if tile.id not in known:
                self.player_hand.append(tile)
                known.add(tile.id)

    def on_room_update(self, payload: Dict[str, Any]) -> None:
        room = RoomSnapshot.model_validate(payload)
        self.room = room
        self.game_state = room.game_state
        self.remaining_tiles = room.remaining_tiles
        self._set_others(room.players)

        me = self._find_self(room.players)
        if me is None or room.game_state != "playing":
            return
        if self.player_id is None:
            self.player_id = me.id
        on_board = {bt.id for bt in me.board_tiles or []}
        self._merge_hand([t for t in me.tiles or [] if t.id not in on_board])

    def on_game_start(self, payload: Dict[str, Any]) -> None:
        data = GameStartPayload.model_validate(payload)
        self.game_state = "playing"
        self.remaining_tiles = data.remaining_tiles
        self.is_last_round = False
        self.winner_id = self.winner_name = None
        self._set_others(data.players)

        me = self._find_self(data.players)
        if me is not None:
            self.player_id = me.id
            self.tiles = []
            self.player_hand = list(me.tiles or [])

    def on_peel_called(self, payload: Dict[str, Any]) -> None:
        data = PeelCalledPayload.model_validate(payload)
        self.remaining_tiles = data.remaining_tiles
        self.is_last_round = data.is_last_round
        self._set_others(data.players)
        self.status_message = f"{data.caller_name} called PEEL!"
        if data.is_last_round:
            self.status_message += " Last round!"

        me = self._find_self(data.players)
        if me is not None:
            self._merge_hand(list(me.tiles or []))

    def on_game_won(self, payload: Dict[str, Any]) -> None:
        data = GameWonPayload.model_validate(payload)
        self.game_state = "finished"
        self.winner_id = data.winner_id
        self.winner_name = data.winner_name
        self.status_message = f"{data.winner_name} wins!"

    def on_player_dumped(self, payload: Dict[str, Any]) -> None:
        data = PlayerDumpedPayload.model_validate(payload)
        self.remaining_tiles = data.remaining_tiles
        if not self._is_self(data.player_id, data.player_name):
            self.status_message = f"{data.player_name} dumped a tile"

    def on_player_board_update(self, payload: Dict[str, Any]) -> None:
        data = PlayerBoardUpdatePayload.model_validate(payload)
        if self._is_self(data.player_id, data.player_name):
            return
        self._update_other(
            data.player_id,
            data.player_name,
            board_tiles=data.board_tiles,
            hand_size=data.hand_size,
            board_size=data.board_size,
        )

    def on_player_hand_update(self, payload: Dict[str, Any]) -> None:
        data = PlayerHandUpdatePayload.model_validate(payload)
        if self._is_self(data.player_id, data.player_name):
            return
        self._update_other(data.player_id, data.player_name, hand_size=data.hand_size)

    def _update_other(self, player_id: str, name: str, **changes: Any) -> None:
        current = self.others.get(player_id) or PlayerView(id=player_id, name=name)
        self.others[player_id] = current.model_copy(update=changes)

    def on_player_kicked(self, payload: Dict[str, Any]) -> None:
        data = PlayerKickedPayload.model_validate(payload)
        self.others.pop(data.player_id, None)
        self.status_message = f"{data.player_name} was kicked"

    def on_kicked(self, payload: Dict[str, Any]) -> None:
        data = KickedPayload.model_validate(payload)
        self.kicked_reason = data.reason
        self.status_message = data.reason
        self.room = None
        self.others = {}
        self.game_state = "waiting"

    def on_player_left(self, payload: Dict[str, Any]) -> None:
        data = PlayerLeftPayload.model_validate(payload)
        self.room = data.room
        self.game_state = data.room.game_state
        self.remaining_tiles = data.room.remaining_tiles
        self._set_others(data.room.players)
        self.status_message = f"{data.player_name} left the game"

    # Local (optimistic) operations

    @property
    def hand_size(self) -> int:
        return len(self.player_hand)

    @property
    def board_size(self) -> int:
        return len(self.tiles)

    def tile_at(self, position: int) -> Optional[BoardTile]:
        return next((t for t in self.tiles if t.position == position), None)

    def place_tile(self, tile_id: str, position: int) -> BoardTile:
        """Move a hand tile onto an empty board cell."""
        tile = next((t for t in self.player_hand if t.id == tile_id), None)
        if tile is None:
            raise KeyError(f"Tile {tile_id} is not in hand")
        if self.tile_at(position) is not None:
            raise ValueError(f"Cell {position} is occupied")
        placed = BoardTile(id=tile.id, letter=tile.letter, position=position)
        self.player_hand = [t for t in self.player_hand if t.id != tile_id]
        self.tiles.append(placed)
        return placed

    def move_tile(self, tile_id: str, position: int) -> BoardTile:
        """Move a board tile to an empty cell."""
        tile = next((t for t in self.tiles if t.id == tile_id), None)
        if tile is None:
            raise KeyError(f"Tile {tile_id} is not on the board")
        occupant = self.tile_at(position)
        if occupant is not None and occupant.id != tile_id:
            raise ValueError(f"Cell {position} is occupied")
        moved = tile.model_copy(update={"position": position})
        self.tiles = [moved if t.id == tile_id else t for t in self.tiles]
        return moved

    def return_tile_to_hand(self, tile_id: str) -> Tile:
        tile = next((t for t in self.tiles if t.id == tile_id), None)
        if tile is None:
            raise KeyError(f"Tile {tile_id} is not on the board")
        self.tiles = [t for t in self.tiles if t.id != tile_id]
        in_hand = Tile(id=tile.id, letter=tile.letter)
        self.player_hand.append(in_hand)
        return in_hand

    def apply_dump_result(self, old_tile_id: str, new_tiles: List[Dict[str, Any]]) -> None:
        """Replace a dumped hand tile with the tiles from the dump acknowledgement."""
        self.player_hand = [t for t in self.player_hand if t.id != old_tile_id]
        self._merge_hand([Tile.model_validate(t) for t in new_tiles])

    def board_update_payload(self) -> List[Dict[str, Any]]:
        """Board tiles in wire form for an ``updateBoard`` emit."""
        return [t.to_wire() for t in self.tiles]


_HANDLERS: Dict[str, str] = {
    "roomUpdate": "on_room_update",
    "gameStart": "on_game_start",
    "peelCalled": "on_peel_called",
    "gameWon": "on_game_won",
    "playerDumped": "on_player_dumped",
    "playerBoardUpdate": "on_player_board_update",
    "playerHandUpdate": "on_player_hand_update",
    "playerKicked": "on_player_kicked",
    "kicked": "on_kicked",
    "playerLeft": "on_player_left",
}
