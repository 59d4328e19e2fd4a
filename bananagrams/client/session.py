"""
Solo game state and best-effort local snapshots.

Snapshot format (JSON text, versioned)::

    {"version": "1.0", "tiles": [...], "playerHand": [...],
     "letterBag": [{"letter": "A", "count": 13}, ...],
     "tileCounter": 22, "timestamp": "..."}
"""

import json
import logging
import random
import re
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..config import DEFAULT_GRID_SIZE
from ..game.letter_bag import LetterBag
from ..game.models import BoardTile, Tile, WireModel, normalize_letter
from ..verifiers import BoardValidation, WordValidator, validate_board


logger = logging.getLogger(__name__)

GAME_STATE_VERSION = "1.0"
INITIAL_HAND_SIZE = 21
REFILL_AMOUNT = 3
HAND_ID_PATTERN = re.compile(r"^hand-(\d+)$")


class SoloGame(BaseModel):
    """
    Single-player game: a board, a hand and a private letter bag.

    Attributes:
        tiles: Tiles on the board
        player_hand: Tiles in hand
        letter_bag: Tiles left to draw
        tile_counter: Next number used for a ``hand-<n>`` tile id
        grid_size: Board edge length
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    tiles: List[BoardTile] = Field(default_factory=list)
    player_hand: List[Tile] = Field(default_factory=list)
    letter_bag: LetterBag = Field(default_factory=LetterBag.full)
    tile_counter: int = 1
    grid_size: int = DEFAULT_GRID_SIZE

    @classmethod
    def create(cls, seed: Optional[int] = None, grid_size: int = DEFAULT_GRID_SIZE) -> "SoloGame":
        """New game with the starting hand already drawn."""
        game = cls(letter_bag=LetterBag.full(seed=seed), grid_size=grid_size)
        game.draw_tiles(INITIAL_HAND_SIZE)
        return game

    @property
    def remaining_count(self) -> int:
        return self.letter_bag.remaining_count()

    def draw_tiles(self, count: int) -> List[Tile]:
        drawn = [
            Tile(id=f"hand-{self.tile_counter + i}", letter=letter)
            for i, letter in enumerate(self.letter_bag.draw(count))
        ]
        self.player_hand.extend(drawn)
        self.tile_counter += len(drawn)
        return drawn

    def _refill(self) -> List[Tile]:
        if not self.player_hand and self.tiles and self.remaining_count > 0:
            return self.draw_tiles(REFILL_AMOUNT)
        return []

    def trade_in_tile(self, tile_id: str) -> List[Tile]:
        """Return a hand tile to the bag and draw three."""
        tile = next((t for t in self.player_hand if t.id == tile_id), None)
        if tile is None:
            raise KeyError(f"Tile {tile_id} is not in hand")
        self.player_hand = [t for t in self.player_hand if t.id != tile_id]
        self.return_tile_to_bag(tile.letter)
        return self.draw_tiles(REFILL_AMOUNT)

    def return_tile_to_bag(self, letter: str) -> None:
        self.letter_bag.return_letter(letter)

    def tile_at(self, position: int) -> Optional[BoardTile]:
        return next((t for t in self.tiles if t.position == position), None)

    def place_tile(self, tile_id: str, position: int) -> BoardTile:
        """Move a hand tile to an empty cell; refills the hand when it empties."""
        if not 0 <= position < self.grid_size * self.grid_size:
            raise ValueError(f"Position {position} is outside the board")
        tile = next((t for t in self.player_hand if t.id == tile_id), None)
        if tile is None:
            raise KeyError(f"Tile {tile_id} is not in hand")
        if self.tile_at(position) is not None:
            raise ValueError(f"Cell {position} is occupied")

        placed = BoardTile(id=tile.id, letter=tile.letter, position=position)
        self.player_hand = [t for t in self.player_hand if t.id != tile_id]
        self.tiles.append(placed)
        self._refill()
        return placed

    def move_tile(self, tile_id: str, position: int) -> BoardTile:
        if not 0 <= position < self.grid_size * self.grid_size:
            raise ValueError(f"Position {position} is outside the board")
        occupant = self.tile_at(position)
        if occupant is not None and occupant.id != tile_id:
            raise ValueError(f"Cell {position} is occupied")
        tile = next((t for t in self.tiles if t.id == tile_id), None)
        if tile is None:
            raise KeyError(f"Tile {tile_id} is not on the board")
        moved = tile.model_copy(update={"position": position})
        self.tiles = [moved if t.id == tile_id else t for t in self.tiles]
        return moved

    def remove_tile_from_board(self, tile_id: str) -> Tile:
        """Take a tile off the board back into the hand."""
        tile = next((t for t in self.tiles if t.id == tile_id), None)
        if tile is None:
            raise KeyError(f"Tile {tile_id} is not on the board")
        self.tiles = [t for t in self.tiles if t.id != tile_id]
        in_hand = Tile(id=tile.id, letter=tile.letter)
        self.player_hand.append(in_hand)
        return in_hand

    def validate(self, validator: WordValidator) -> BoardValidation:
        return validate_board(self.tiles, validator, self.grid_size)

    def is_solved(self, validator: WordValidator) -> bool:
        """Hand empty, bag empty and a valid board."""
        return (
            not self.player_hand
            and self.remaining_count == 0
            and bool(self.tiles)
            and self.validate(validator).is_valid
        )


class LetterCount(WireModel):
    letter: str
    count: int = Field(..., ge=0)

    @field_validator("letter")
    @classmethod
    def check_letter(cls, value: str) -> str:
        return normalize_letter(value)


class SerializedGameState(WireModel):
    version: str = GAME_STATE_VERSION
    tiles: List[BoardTile] = Field(default_factory=list)
    player_hand: List[Tile] = Field(default_factory=list)
    letter_bag: List[LetterCount] = Field(default_factory=list)
    tile_counter: int = Field(default=1, ge=1)
    timestamp: Optional[datetime] = None


def serialize_game_state(game: SoloGame) -> str:
    """Serialize a solo game to snapshot JSON text."""
    snapshot = SerializedGameState(
        tiles=game.tiles,
        player_hand=game.player_hand,
        letter_bag=[LetterCount(**item) for item in game.letter_bag.to_distribution()],
        tile_counter=game.tile_counter,
        timestamp=datetime.now(timezone.utc),
    )
    return json.dumps(snapshot.to_wire())


def check_snapshot(snapshot: SerializedGameState, grid_size: int) -> Optional[str]:
    """
    Consistency checks a parsed snapshot must pass before it is loaded.

    Returns:
        A description of the first problem found, or None
    """
    cells = grid_size * grid_size
    positions = set()
    for tile in snapshot.tiles:
        if tile.position >= cells:
            return f"position {tile.position} is outside a {grid_size}x{grid_size} grid"
        if tile.position in positions:
            return f"cell {tile.position} holds more than one tile"
        positions.add(tile.position)

    ids = [t.id for t in snapshot.tiles] + [t.id for t in snapshot.player_hand]
    if len(ids) != len(set(ids)):
        return "duplicate tile ids"

    letters = [c.letter for c in snapshot.letter_bag]
    if len(letters) != len(set(letters)):
        return "letter listed twice in the bag"

    numbered = [int(m.group(1)) for m in map(HAND_ID_PATTERN.match, ids) if m]
    if numbered and snapshot.tile_counter <= max(numbered):
        return f"tileCounter {snapshot.tile_counter} would reuse hand-{max(numbered)}"
    return None


def deserialize_game_state(
    data: Optional[str],
    seed: Optional[int] = None,
    grid_size: int = DEFAULT_GRID_SIZE,
) -> SoloGame:
    """
    Restore a solo game from snapshot JSON text.

    Empty or absent data starts a fresh game. A version mismatch is logged
    and the snapshot is still read. Malformed data is replaced by a fresh game.
    """
    if not data or not data.strip():
        return SoloGame.create(seed=seed, grid_size=grid_size)

    try:
        snapshot = SerializedGameState.model_validate_json(data)
    except ValidationError as exc:
        logger.warning("Discarding malformed game state: %s", exc.errors()[0]["msg"])
        return SoloGame.create(seed=seed, grid_size=grid_size)

    if snapshot.version != GAME_STATE_VERSION:
        logger.warning(
            "Game state version mismatch. Expected %s, got %s",
            GAME_STATE_VERSION, snapshot.version,
        )

    problem = check_snapshot(snapshot, grid_size)
    if problem is not None:
        logger.warning("Discarding malformed game state: %s", problem)
        return SoloGame.create(seed=seed, grid_size=grid_size)

    bag = LetterBag(counts={c.letter: c.count for c in snapshot.letter_bag}, seed=seed)
    return SoloGame(
        tiles=snapshot.tiles,
        player_hand=snapshot.player_hand,
        letter_bag=bag,
        tile_counter=snapshot.tile_counter,
        grid_size=grid_size,
    )


def generate_pin(rng: Optional[random.Random] = None) -> str:
    return str((rng or random).randint(1000, 9999))


class GameSession(WireModel):
    """A saved solo game."""
    game_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    pin: str = Field(default_factory=generate_pin)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    last_saved: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    game_state: str = ""
    is_completed: bool = False
    completion_time: Optional[float] = None


class SessionStore:
    """
    Best-effort JSON file of saved sessions keyed by game id.

    A missing or corrupt file reads as no sessions.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def _read(self) -> Dict[str, GameSession]:
        if not self.path.exists():
            return {}
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
            return {gid: GameSession.model_validate(s) for gid, s in raw.items()}
        except (OSError, ValueError, AttributeError) as exc:
            logger.warning("Ignoring unreadable session file %s: %s", self.path, exc)
            return {}

    def _write(self, sessions: Dict[str, GameSession]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        data = {gid: s.to_wire() for gid, s in sessions.items()}
        self.path.write_text(json.dumps(data, indent=2), encoding="utf-8")

    def save(self, session: GameSession, game: Optional[SoloGame] = None) -> GameSession:
        """Save a session, serializing ``game`` into it when given."""
        updates = {"last_saved": datetime.now(timezone.utc)}
        if game is not None:
            updates["game_state"] = serialize_game_state(game)
        session = session.model_copy(update=updates)
        sessions = self._read()
        sessions[session.game_id] = session
        self._write(sessions)
        return session

    def get(self, game_id: str) -> Optional[GameSession]:
        return self._read().get(game_id)

    def get_by_pin(self, pin: str) -> Optional[GameSession]:
        return next((s for s in self._read().values() if s.pin == pin), None)

    def recent(self, limit: int = 5) -> List[GameSession]:
        sessions = sorted(self._read().values(), key=lambda s: s.last_saved, reverse=True)
        return sessions[:limit]

    def delete(self, game_id: str) -> bool:
        sessions = self._read()
        if game_id not in sessions:
            return False
        del sessions[game_id]
        self._write(sessions)
        return True

    def clear(self) -> None:
        if self.path.exists():
            self.path.unlink()

    def load_game(self, game_id: str, seed: Optional[int] = None) -> Optional[SoloGame]:
        session = self.get(game_id)
        if session is None:
            return None
        return deserialize_game_state(session.game_state, seed=seed)
