"""Data models for board verification."""

from typing import List, Literal, NamedTuple, Optional
from pydantic import BaseModel, Field

from ..game.models import BoardTile


Direction = Literal["horizontal", "vertical"]


class WordTile(NamedTuple):
    """One tile of an extracted word."""
    tile_id: str
    position: int
    letter: str


class ExtractedWord(BaseModel):
    """A run of two or more contiguous tiles in a row or column."""
    word: str
    tiles: List[WordTile]
    direction: Direction
    start_position: int

    @property
    def key(self):
        return (self.word, self.start_position, self.direction)


class BoardValidation(BaseModel):
    """Result of validating one player's board."""
    is_valid: bool
    all_words: List[ExtractedWord] = Field(default_factory=list)
    valid_words: List[ExtractedWord] = Field(default_factory=list)
    invalid_words: List[ExtractedWord] = Field(default_factory=list)
    isolated_tiles: List[BoardTile] = Field(default_factory=list)
    is_connected: bool = True
    is_loading: bool = False
    error: Optional[str] = None
