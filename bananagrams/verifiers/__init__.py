"""Board verification: word extraction, connectivity and dictionary checks."""

from .verify import validate_board, partition_words
from .models import WordTile, ExtractedWord, BoardValidation
from .grid import (
    position_to_coordinates,
    coordinates_to_position,
    adjacent_positions,
    build_grid,
    extract_words_from_board,
    are_all_tiles_connected,
    get_isolated_tiles,
    render_grid,
)
from .dictionary import WordValidator, DictionaryStatus, DictionaryNotReadyError, file_loader

__all__ = [
    # Main validation
    "validate_board",
    "partition_words",
    # Models
    "WordTile",
    "ExtractedWord",
    "BoardValidation",
    # Grid utilities
    "position_to_coordinates",
    "coordinates_to_position",
    "adjacent_positions",
    "build_grid",
    "extract_words_from_board",
    "are_all_tiles_connected",
    "get_isolated_tiles",
    "render_grid",
    # Dictionary
    "WordValidator",
    "DictionaryStatus",
    "DictionaryNotReadyError",
    "file_loader",
]
