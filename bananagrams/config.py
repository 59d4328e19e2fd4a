"""Configuration models and YAML loading."""

from pathlib import Path
from typing import List, Optional, Union

import yaml
from pydantic import BaseModel, Field, model_validator


DEFAULT_GRID_SIZE = 25
MULTIPLAYER_GRID_SIZE = 15


class GameSettings(BaseModel):
    """Rules a room is played under."""
    min_players: int = Field(default=2, ge=1, le=8)
    max_players: int = Field(default=8, ge=1, le=8)
    allow_solo_start: bool = False
    grid_size: int = Field(default=MULTIPLAYER_GRID_SIZE, ge=2)
    dump_draw_count: int = Field(default=3, ge=1)

    @model_validator(mode="after")
    def check_player_bounds(self) -> "GameSettings":
        if self.min_players > self.max_players:
            raise ValueError("min_players cannot exceed max_players")
        return self

    @property
    def required_players(self) -> int:
        """Minimum player count for ``startGame``."""
        return 1 if self.allow_solo_start else self.min_players


class ServerConfig(BaseModel):
    """Configuration for a server process."""
    host: str = "127.0.0.1"
    port: int = Field(default=3000, ge=1, le=65535)
    cors_allowed_origins: Union[str, List[str]] = "*"
    dictionary_path: Optional[Path] = None
    log_level: str = "INFO"
    game: GameSettings = Field(default_factory=GameSettings)


def load_config(config_path: Union[str, Path]) -> ServerConfig:
    """Load server configuration from a YAML file."""
    path = Path(config_path)

    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(path) as f:
        data = yaml.safe_load(f) or {}

    return ServerConfig(**data)
