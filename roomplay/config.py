import json
import logging
import os
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


SETTINGS_ENV = "ROOMPLAY_SETTINGS"
DEFAULT_SETTINGS_PATH = "roomplay_settings.json"
LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

# Environment variable -> settings field
ENV_OVERRIDES = {
    "HOST": "host",
    "PORT": "port",
    "ROOMPLAY_LOG_LEVEL": "log_level",
    "ROOMPLAY_RANDOMIZE_COLORS": "randomize_colors",
    "ROOMPLAY_MAX_BOARD_SIZE": "max_board_size",
}


class Settings(BaseModel):
    host: str = "0.0.0.0"
    port: int = Field(default=8080, ge=1, le=65535)
    default_room_id: str = Field(default="default-room", min_length=1)
    default_board_size: int = Field(default=3, ge=1)
    max_board_size: int = Field(default=32, ge=1)
    randomize_colors: bool = False
    emoji_max_length: int = Field(default=64, ge=1)
    log_level: str = "INFO"

    def resolve_board_size(self, raw: Optional[str]) -> int:
        """Parse a board dimension from the URL, falling back to the default."""
        try:
            size = int(str(raw))
        except (TypeError, ValueError):
            return self.default_board_size
        if size < 1 or size > self.max_board_size:
            return self.default_board_size
        return size


def _read_settings_file(path: str) -> Dict[str, Any]:
    if not os.path.isfile(path):
        return {}
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"Settings file {path} must contain a JSON object")
    return data


def load_settings(path: Optional[str] = None, environ: Optional[Dict[str, str]] = None) -> Settings:
    """Build settings from the JSON settings file, then environment overrides."""
    env = os.environ if environ is None else environ
    values = _read_settings_file(path or env.get(SETTINGS_ENV) or DEFAULT_SETTINGS_PATH)
    for var, field in ENV_OVERRIDES.items():
        if env.get(var):
            values[field] = env[var]
    return Settings(**values)


def setup_logging(settings: Settings) -> None:
    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    logging.basicConfig(level=level, format=LOG_FORMAT)
