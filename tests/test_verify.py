"""
Test suite for board validation.

Covers the validity policy:
- Empty boards
- Connectivity and isolated tiles
- Invalid words
- Dictionary not loaded / failed
"""

import asyncio

import pytest
from bananagrams.game import BoardTile
from bananagrams.verifiers import DictionaryStatus, WordValidator, validate_board
from bananagrams.verifiers.verify import LOADING_MESSAGE, UNAVAILABLE_MESSAGE

SIZE = 15


def tiles_for(*placements):
    """Build tiles from ``(letter, row, col)`` triples."""
    return [
        BoardTile(id=f"t{i}", letter=letter, position=row * SIZE + col)
        for i, (letter, row, col) in enumerate(placements)
    ]


@pytest.fixture
def validator():
    return WordValidator.from_words(["CAT", "TAR", "AT", "TO"])


class TestValidBoards:
    """Boards that should be accepted."""

    def test_empty_board_is_valid(self, validator):
        result = validate_board([], validator, SIZE)
        assert result.is_valid is True
        assert result.all_words == []
        assert result.error is None

    def test_single_word(self, validator):
        result = validate_board(tiles_for(("C", 0, 0), ("A", 0, 1), ("T", 0, 2)), validator, SIZE)
        assert result.is_valid is True
        assert [w.word for w in result.valid_words] == ["CAT"]
        assert result.invalid_words == []

    def test_crossing_words(self, validator):
        tiles = tiles_for(("C", 0, 0), ("A", 0, 1), ("T", 0, 2), ("A", 1, 2), ("R", 2, 2))
        result = validate_board(tiles, validator, SIZE)
        assert result.is_valid is True
        assert [w.word for w in result.valid_words] == ["CAT", "TAR"]


class TestInvalidBoards:
    """Boards that should be rejected."""

    def test_single_tile_is_invalid(self, validator):
        """One tile forms no word and is isolated."""
        result = validate_board(tiles_for(("A", 4, 4)), validator, SIZE)
        assert result.is_valid is False
        assert result.all_words == []
        assert len(result.isolated_tiles) == 1

    def test_invalid_word(self, validator):
        result = validate_board(tiles_for(("D", 0, 0), ("O", 0, 1), ("G", 0, 2)), validator, SIZE)
        assert result.is_valid is False
        assert [w.word for w in result.invalid_words] == ["DOG"]

    def test_disconnected_with_lone_tile(self, validator):
        """CAT and a Z three cells away: CAT is valid but the board is not."""
        tiles = tiles_for(("C", 0, 0), ("A", 0, 1), ("T", 0, 2), ("Z", 0, 6))
        result = validate_board(tiles, validator, SIZE)
        assert result.is_connected is False
        assert [t.letter for t in result.isolated_tiles] == ["Z"]
        assert [w.word for w in result.valid_words] == ["CAT"]
        assert result.is_valid is False

    def test_two_valid_islands(self, validator):
        tiles = tiles_for(("A", 0, 0), ("T", 0, 1), ("T", 5, 5), ("O", 5, 6))
        result = validate_board(tiles, validator, SIZE)
        assert result.isolated_tiles == []
        assert len(result.invalid_words) == 0
        assert result.is_connected is False
        assert result.is_valid is False

    def test_accidental_word_counts(self, validator):
        """Adjacent parallel tiles form words that must also be valid."""
        tiles = tiles_for(("A", 0, 0), ("T", 0, 1), ("T", 1, 0), ("O", 1, 1))
        result = validate_board(tiles, validator, SIZE)
        words = sorted(w.word for w in result.all_words)
        assert words == ["AT", "AT", "TO", "TO"]
        assert result.is_valid is True

    def test_shared_cell_raises(self, validator):
        tiles = [
            BoardTile(id="a", letter="A", position=0),
            BoardTile(id="b", letter="B", position=0),
        ]
        with pytest.raises(ValueError):
            validate_board(tiles, validator, SIZE)


class TestDictionaryState:
    """Validation before the dictionary is usable."""

    def test_not_loaded_reports_loading(self):
        async def never_called():
            return "CAT\n"

        validator = WordValidator(never_called)
        result = validate_board(tiles_for(("C", 0, 0), ("A", 0, 1), ("T", 0, 2)), validator, SIZE)
        assert result.is_valid is False
        assert result.is_loading is True
        assert result.error == LOADING_MESSAGE
        assert [w.word for w in result.all_words] == ["CAT"]
        assert result.valid_words == []

    def test_failed_reports_unavailable(self):
        validator = WordValidator()
        assert asyncio.run(validator.initialize()) is DictionaryStatus.FAILED
        result = validate_board(tiles_for(("A", 0, 0), ("T", 0, 1)), validator, SIZE)
        assert result.is_valid is False
        assert result.is_loading is False
        assert result.error == UNAVAILABLE_MESSAGE

    def test_empty_board_valid_even_when_not_loaded(self):
        result = validate_board([], WordValidator(), SIZE)
        assert result.is_valid is True
