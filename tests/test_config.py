import json

import pytest
from pydantic import ValidationError

from roomplay.config import Settings, load_settings, setup_logging


def test_defaults():
    settings = load_settings(path="/nonexistent/settings.json", environ={})
    assert settings.port == 8080
    assert settings.default_room_id == "default-room"
    assert settings.default_board_size == 3
    assert settings.randomize_colors is False


def test_settings_file_then_environment(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"port": 9000, "default_room_id": "lobby", "randomize_colors": True}))
    settings = load_settings(environ={"ROOMPLAY_SETTINGS": str(path), "PORT": "9100"})
    assert settings.port == 9100
    assert settings.default_room_id == "lobby"
    assert settings.randomize_colors is True


def test_environment_booleans_and_ints():
    settings = load_settings(path="/nonexistent/settings.json",
                             environ={"ROOMPLAY_RANDOMIZE_COLORS": "true", "ROOMPLAY_MAX_BOARD_SIZE": "10"})
    assert settings.randomize_colors is True
    assert settings.max_board_size == 10


def test_settings_file_must_hold_object(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text("[1, 2]")
    with pytest.raises(ValueError):
        load_settings(path=str(path), environ={})


def test_invalid_port_rejected():
    with pytest.raises(ValidationError):
        load_settings(path="/nonexistent/settings.json", environ={"PORT": "70000"})


@pytest.mark.parametrize("raw,expected", [
    ("3", 3),
    ("8", 8),
    ("5", 5),
    (None, 3),
    ("abc", 3),
    ("0", 3),
    ("-4", 3),
    ("33", 3),
])
def test_resolve_board_size(raw, expected):
    assert Settings().resolve_board_size(raw) == expected


def test_setup_logging_accepts_unknown_level():
    setup_logging(Settings(log_level="chatty"))
    setup_logging(Settings(log_level="debug"))
