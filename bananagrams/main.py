"""
Command-line entry point.

Usage:
    python -m bananagrams.main serve config.yaml
    python -m bananagrams.main check board.json --words words.txt --grid-size 15
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from pydantic import TypeAdapter, ValidationError

from .config import DEFAULT_GRID_SIZE, ServerConfig, load_config
from .game.models import BoardTile
from .verifiers import WordValidator, render_grid, validate_board


def load_board(board_path: str) -> List[BoardTile]:
    """Load a board file: a JSON list of ``{id, letter, position}``."""
    path = Path(board_path)

    if not path.exists():
        raise FileNotFoundError(f"Board file not found: {board_path}")

    with open(path) as f:
        data = json.load(f)

    return TypeAdapter(List[BoardTile]).validate_python(data)


def run_check(args: argparse.Namespace) -> int:
    try:
        tiles = load_board(args.board)
    except (OSError, ValueError, ValidationError) as e:
        print(f"Error loading board: {e}", file=sys.stderr)
        return 1

    validator = WordValidator.from_path(args.words)
    status = asyncio.run(validator.initialize())
    if not validator.is_ready:
        print(f"Dictionary unavailable ({status.value}): {validator.last_error}", file=sys.stderr)

    try:
        result = validate_board(tiles, validator, args.grid_size)
    except ValueError as e:
        print(f"Invalid board: {e}", file=sys.stderr)
        return 1

    if tiles:
        print(render_grid(tiles, args.grid_size))
        print()

    for word in result.all_words:
        if not validator.is_ready:
            mark = "?"
        else:
            mark = "✓" if word in result.valid_words else "✗"
        print(f"{mark} {word.word} ({word.direction} @ {word.start_position})")

    if result.isolated_tiles:
        letters = ", ".join(f"{t.letter}@{t.position}" for t in result.isolated_tiles)
        print(f"Isolated tiles: {letters}")
    print(f"Connected: {'yes' if result.is_connected else 'no'}")
    if result.error:
        print(result.error)
    print(f"Valid: {'yes' if result.is_valid else 'no'}")

    return 0 if result.is_valid else 1


def run_serve(args: argparse.Namespace) -> int:
    import uvicorn

    from .server import create_server

    try:
        config = load_config(args.config) if args.config else ServerConfig()
    except Exception as e:
        print(f"Error loading config: {e}", file=sys.stderr)
        return 1

    if args.host:
        config.host = args.host
    if args.port:
        config.port = args.port

    logging.basicConfig(
        level=config.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    server = create_server(config)
    uvicorn.run(server.asgi_app, host=config.host, port=config.port)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Multiplayer Bananagrams rooms",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Example config.yaml:
  host: 0.0.0.0
  port: 3000
  dictionary_path: words.txt
  log_level: INFO
  game:
    min_players: 2
    grid_size: 15
        """
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Run the Socket.IO server")
    serve.add_argument(
        "config",
        nargs="?",
        help="Path to YAML configuration file (defaults are used without one)"
    )
    serve.add_argument("--host", help="Override the configured host")
    serve.add_argument("--port", type=int, help="Override the configured port")
    serve.set_defaults(func=run_serve)

    check = subparsers.add_parser("check", help="Validate a board file")
    check.add_argument("board", help="JSON list of {id, letter, position}")
    check.add_argument("--words", "-w", required=True, help="Newline-delimited word list")
    check.add_argument(
        "--grid-size",
        type=int,
        default=DEFAULT_GRID_SIZE,
        help=f"Board edge length (default: {DEFAULT_GRID_SIZE})"
    )
    check.set_defaults(func=run_check)

    args = parser.parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
