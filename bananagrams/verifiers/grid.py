"""Grid geometry, word extraction and connectivity for a sparse board."""

from collections import deque
from typing import Dict, Tuple, List, Iterable, Set

from ..config import DEFAULT_GRID_SIZE
from ..game.models import BoardTile
from .models import ExtractedWord, WordTile


Cell = Tuple[int, int]

NEIGHBOR_OFFSETS = ((-1, 0), (0, 1), (1, 0), (0, -1))


def position_to_coordinates(position: int, grid_size: int = DEFAULT_GRID_SIZE) -> Cell:
    """Convert a cell index to ``(row, col)``."""
    if not 0 <= position < grid_size * grid_size:
        raise ValueError(f"Position {position} is outside a {grid_size}x{grid_size} grid")
    return divmod(position, grid_size)


def coordinates_to_position(row: int, col: int, grid_size: int = DEFAULT_GRID_SIZE) -> int:
    """Convert ``(row, col)`` to a cell index."""
    if not (0 <= row < grid_size and 0 <= col < grid_size):
        raise ValueError(f"Cell ({row}, {col}) is outside a {grid_size}x{grid_size} grid")
    return row * grid_size + col


def adjacent_positions(position: int, grid_size: int = DEFAULT_GRID_SIZE) -> List[int]:
    """In-bounds 4-neighbors of a cell (up, right, down, left)."""
    row, col = position_to_coordinates(position, grid_size)
    adjacent = []
    for d_row, d_col in NEIGHBOR_OFFSETS:
        r, c = row + d_row, col + d_col
        if 0 <= r < grid_size and 0 <= c < grid_size:
            adjacent.append(r * grid_size + c)
    return adjacent


def build_grid(tiles: Iterable[BoardTile], grid_size: int = DEFAULT_GRID_SIZE) -> Dict[Cell, BoardTile]:
    """Map ``(row, col)`` to the tile occupying it. A cell holds at most one tile."""
    grid: Dict[Cell, BoardTile] = {}
    for tile in tiles:
        cell = position_to_coordinates(tile.position, grid_size)
        if cell in grid:
            raise ValueError(
                f"Cell {tile.position} holds both {grid[cell].id} and {tile.id}"
            )
        grid[cell] = tile
    return grid


def _flush(run: List[BoardTile], direction: str, words: List[ExtractedWord]) -> None:
    if len(run) >= 2:
        words.append(ExtractedWord(
            word="".join(t.letter for t in run),
            tiles=[WordTile(t.id, t.position, t.letter) for t in run],
            direction=direction,
            start_position=run[0].position,
        ))


def extract_words_from_board(
    tiles: List[BoardTile],
    grid_size: int = DEFAULT_GRID_SIZE,
) -> List[ExtractedWord]:
    """
    Extract every horizontal and vertical word (2+ letters) on the board.

    Rows are scanned left to right, then columns top to bottom; a run ends
    at an empty cell or the grid edge. Output order is rows first, then
    columns, each in grid order, so the same tiles always give the same list.
    """
    if not tiles:
        return []

    grid = build_grid(tiles, grid_size)
    words: List[ExtractedWord] = []

    rows = sorted({row for row, _ in grid})
    cols = sorted({col for _, col in grid})

    # Horizontal words
    for row in rows:
        run: List[BoardTile] = []
        for col in range(grid_size):
            tile = grid.get((row, col))
            if tile is not None:
                run.append(tile)
            else:
                _flush(run, "horizontal", words)
                run = []
        _flush(run, "horizontal", words)

    # Vertical words
    for col in cols:
        run = []
        for row in range(grid_size):
            tile = grid.get((row, col))
            if tile is not None:
                run.append(tile)
            else:
                _flush(run, "vertical", words)
                run = []
        _flush(run, "vertical", words)

    return words


def are_all_tiles_connected(tiles: List[BoardTile], grid_size: int = DEFAULT_GRID_SIZE) -> bool:
    """True iff a traversal from one tile over 4-adjacent tiles reaches every tile."""
    if len(tiles) <= 1:
        return True

    grid = build_grid(tiles, grid_size)
    start = next(iter(grid))
    visited: Set[Cell] = {start}
    queue = deque([start])

    while queue:
        row, col = queue.popleft()
        for d_row, d_col in NEIGHBOR_OFFSETS:
            neighbor = (row + d_row, col + d_col)
            if neighbor in grid and neighbor not in visited:
                visited.add(neighbor)
                queue.append(neighbor)

    return len(visited) == len(grid)


def get_isolated_tiles(
    tiles: List[BoardTile],
    grid_size: int = DEFAULT_GRID_SIZE,
    words: List[ExtractedWord] = None,
) -> List[BoardTile]:
    """Tiles that belong to no extracted word in either direction."""
    if words is None:
        words = extract_words_from_board(tiles, grid_size)
    in_words = {wt.tile_id for word in words for wt in word.tiles}
    return [tile for tile in tiles if tile.id not in in_words]


def render_grid(tiles: List[BoardTile], grid_size: int = DEFAULT_GRID_SIZE) -> str:
    """Render the occupied bounding box, ``.`` for empty cells."""
    if not tiles:
        return ""

    grid = build_grid(tiles, grid_size)
    min_row = min(cell[0] for cell in grid)
    max_row = max(cell[0] for cell in grid)
    min_col = min(cell[1] for cell in grid)
    max_col = max(cell[1] for cell in grid)

    lines = [
        ''.join(grid[(r, c)].letter if (r, c) in grid else '.' for c in range(min_col, max_col + 1))
        for r in range(min_row, max_row + 1)
    ]

    return '\n'.join(lines)
