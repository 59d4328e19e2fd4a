"""
Board validation for a single player's grid.

A board is valid when:
1. The dictionary is loaded
2. All tiles are connected (4-adjacency)
3. No tile is isolated (every tile is part of some 2+ letter word)
4. Every extracted word is in the dictionary
5. At least one word was extracted

An empty board is trivially valid and needs no feedback.
"""

from typing import List, Tuple

from ..config import DEFAULT_GRID_SIZE
from ..game.models import BoardTile
from .dictionary import DictionaryStatus, WordValidator
from .grid import extract_words_from_board, are_all_tiles_connected, get_isolated_tiles
from .models import BoardValidation, ExtractedWord


LOADING_MESSAGE = "Dictionary is still loading..."
UNAVAILABLE_MESSAGE = "Word validation unavailable: dictionary failed to load"


def partition_words(
    words: List[ExtractedWord],
    validator: WordValidator,
) -> Tuple[List[ExtractedWord], List[ExtractedWord]]:
    """Split extracted words into (valid, invalid) against the dictionary."""
    valid: List[ExtractedWord] = []
    invalid: List[ExtractedWord] = []
    for word in words:
        (valid if validator.is_valid_word(word.word) else invalid).append(word)
    return valid, invalid


def validate_board(
    tiles: List[BoardTile],
    validator: WordValidator,
    grid_size: int = DEFAULT_GRID_SIZE,
) -> BoardValidation:
    """
    Main validation function: judges whether a board is solved.

    Structure (words, connectivity, isolated tiles) is always computed;
    dictionary checks only run once the validator is ready, otherwise the
    result carries ``is_loading`` / ``error`` and is never valid.

    Raises:
        ValueError: If a tile lies outside the grid or two tiles share a cell
    """
    if not tiles:
        return BoardValidation(is_valid=True, is_connected=True)

    words = extract_words_from_board(tiles, grid_size)
    is_connected = are_all_tiles_connected(tiles, grid_size)
    isolated = get_isolated_tiles(tiles, grid_size, words=words)

    if not validator.is_ready:
        failed = validator.status is DictionaryStatus.FAILED
        return BoardValidation(
            is_valid=False,
            all_words=words,
            isolated_tiles=isolated,
            is_connected=is_connected,
            is_loading=not failed,
            error=UNAVAILABLE_MESSAGE if failed else LOADING_MESSAGE,
        )

    valid_words, invalid_words = partition_words(words, validator)

    is_valid = (
        is_connected
        and not isolated
        and not invalid_words
        and len(words) > 0
    )

    return BoardValidation(
        is_valid=is_valid,
        all_words=words,
        valid_words=valid_words,
        invalid_words=invalid_words,
        isolated_tiles=isolated,
        is_connected=is_connected,
    )
