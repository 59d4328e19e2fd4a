"""
Tests for grid geometry, word extraction and connectivity.

Boards are built on a 15x15 grid unless a test says otherwise, so position
``row * 15 + col``.
"""

import pytest
from bananagrams.game import BoardTile
from bananagrams.verifiers import (
    position_to_coordinates,
    coordinates_to_position,
    adjacent_positions,
    build_grid,
    extract_words_from_board,
    are_all_tiles_connected,
    get_isolated_tiles,
    render_grid,
)

SIZE = 15


def tile(tile_id, letter, row, col, size=SIZE):
    return BoardTile(id=tile_id, letter=letter, position=row * size + col)


def word_at(word, row, col, direction="horizontal", prefix=None):
    prefix = prefix or word.lower()
    tiles = []
    for i, letter in enumerate(word):
        r, c = (row, col + i) if direction == "horizontal" else (row + i, col)
        tiles.append(tile(f"{prefix}{i}", letter, r, c))
    return tiles


class TestGeometry:
    """Position <-> coordinate conversion."""

    def test_round_trip(self):
        """Position 37 is row 2, column 7 and back."""
        assert position_to_coordinates(37, SIZE) == (2, 7)
        assert coordinates_to_position(2, 7, SIZE) == 37

    @pytest.mark.parametrize("position", [-1, SIZE * SIZE])
    def test_position_out_of_grid(self, position):
        """Positions before or past the grid raise."""
        with pytest.raises(ValueError):
            position_to_coordinates(position, SIZE)

    def test_coordinates_out_of_grid(self):
        """A column equal to the grid size raises."""
        with pytest.raises(ValueError):
            coordinates_to_position(0, SIZE, SIZE)

    def test_corner_has_two_neighbors(self):
        """The top-left cell has only right and down neighbors."""
        assert sorted(adjacent_positions(0, SIZE)) == [1, SIZE]

    def test_middle_has_four_neighbors(self):
        """An interior cell has all four orthogonal neighbors."""
        center = coordinates_to_position(7, 7, SIZE)
        assert sorted(adjacent_positions(center, SIZE)) == sorted(
            [center - SIZE, center + 1, center + SIZE, center - 1]
        )

    def test_build_grid_rejects_shared_cell(self):
        """Two tiles on one cell are refused."""
        with pytest.raises(ValueError):
            build_grid([tile("a", "A", 0, 0), tile("b", "B", 0, 0)], SIZE)


class TestExtraction:
    """Maximal horizontal and vertical runs."""

    def test_empty_board(self):
        """No tiles, no words."""
        assert extract_words_from_board([], SIZE) == []

    def test_single_tile_forms_no_word(self):
        """A lone letter is not a word."""
        assert extract_words_from_board([tile("a", "A", 3, 3)], SIZE) == []

    def test_horizontal_word(self):
        """A run across one row reads left to right."""
        words = extract_words_from_board(word_at("CAT", 0, 0), SIZE)
        assert [w.word for w in words] == ["CAT"]
        assert words[0].direction == "horizontal"
        assert words[0].start_position == 0
        assert [wt.tile_id for wt in words[0].tiles] == ["cat0", "cat1", "cat2"]

    def test_vertical_word(self):
        """A run down one column reads top to bottom."""
        words = extract_words_from_board(word_at("DOG", 2, 4, "vertical"), SIZE)
        assert [(w.word, w.direction) for w in words] == [("DOG", "vertical")]
        assert words[0].start_position == 2 * SIZE + 4

    def test_crossing_words(self):
        """CAT across with TAR down from the T shares one tile."""
        tiles = word_at("CAT", 0, 0) + [tile("a2", "A", 1, 2), tile("r2", "R", 2, 2)]
        words = extract_words_from_board(tiles, SIZE)
        assert [(w.word, w.direction) for w in words] == [
            ("CAT", "horizontal"),
            ("TAR", "vertical"),
        ]

    def test_gap_splits_runs(self):
        """An empty cell ends a run."""
        tiles = word_at("AT", 0, 0, prefix="x") + word_at("GO", 0, 3, prefix="y")
        assert [w.word for w in extract_words_from_board(tiles, SIZE)] == ["AT", "GO"]

    def test_run_touching_grid_edge(self):
        """A run ending on the last column is still read."""
        tiles = word_at("ON", 0, SIZE - 2)
        words = extract_words_from_board(tiles, SIZE)
        assert [w.word for w in words] == ["ON"]

    def test_rows_do_not_wrap(self):
        """The last cell of a row and the first of the next are not adjacent."""
        tiles = [tile("a", "A", 0, SIZE - 1), tile("b", "B", 1, 0)]
        assert extract_words_from_board(tiles, SIZE) == []

    def test_order_independent_of_input_order(self):
        """Word order depends on the board, not on tile order."""
        tiles = word_at("CAT", 0, 0) + [tile("a2", "A", 1, 2), tile("r2", "R", 2, 2)]
        forward = extract_words_from_board(tiles, SIZE)
        backward = extract_words_from_board(list(reversed(tiles)), SIZE)
        assert [w.key for w in forward] == [w.key for w in backward]

    def test_rows_before_columns(self):
        """Horizontal words are listed before vertical ones."""
        tiles = word_at("AB", 0, 5, "vertical", prefix="v") + word_at("CD", 4, 0, prefix="h")
        words = extract_words_from_board(tiles, SIZE)
        assert [w.direction for w in words] == ["horizontal", "vertical"]

    def test_out_of_grid_tile_rejected(self):
        """A tile past the last cell raises."""
        with pytest.raises(ValueError):
            extract_words_from_board([BoardTile(id="x", letter="X", position=SIZE * SIZE)], SIZE)


class TestConnectivity:
    """4-adjacency connectivity and isolated tiles."""

    def test_empty_and_single_are_connected(self):
        """Zero or one tile counts as connected."""
        assert are_all_tiles_connected([], SIZE) is True
        assert are_all_tiles_connected([tile("a", "A", 5, 5)], SIZE) is True

    def test_connected_cross(self):
        """Crossing words form one group."""
        tiles = word_at("CAT", 0, 0) + [tile("a2", "A", 1, 2), tile("r2", "R", 2, 2)]
        assert are_all_tiles_connected(tiles, SIZE) is True

    def test_diagonal_is_not_adjacent(self):
        """Tiles touching only at a corner are disconnected."""
        tiles = [tile("a", "A", 0, 0), tile("b", "B", 1, 1)]
        assert are_all_tiles_connected(tiles, SIZE) is False

    def test_disconnected_word_and_lone_tile(self):
        """CAT plus a Z three cells to the right."""
        cat = word_at("CAT", 0, 0)
        z = tile("z", "Z", 0, 6)
        tiles = cat + [z]

        words = extract_words_from_board(tiles, SIZE)
        assert [w.word for w in words] == ["CAT"]
        assert are_all_tiles_connected(tiles, SIZE) is False
        assert get_isolated_tiles(tiles, SIZE) == [z]

    def test_two_disconnected_words_have_no_isolated_tiles(self):
        """Tiles inside some word are never isolated."""
        tiles = word_at("AT", 0, 0, prefix="x") + word_at("GO", 5, 5, prefix="y")
        assert are_all_tiles_connected(tiles, SIZE) is False
        assert get_isolated_tiles(tiles, SIZE) == []

    def test_isolated_uses_given_words(self):
        """Precomputed words are used as given."""
        tiles = word_at("AT", 0, 0)
        assert get_isolated_tiles(tiles, SIZE, words=[]) == tiles


class TestRender:
    def test_render_bounding_box(self):
        """Only the occupied bounding box is drawn."""
        tiles = word_at("CAT", 3, 3) + [tile("a", "A", 4, 5), tile("r", "R", 5, 5)]
        assert render_grid(tiles, SIZE) == "CAT\n..A\n..R"

    def test_render_empty(self):
        """An empty board renders as an empty string."""
        assert render_grid([], SIZE) == ""
