from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass
from pathlib import Path

CONFIG_ENV = "TERMBOOK_CONFIG"
DEFAULT_TEXT_WIDTH = 80
MIN_TEXT_WIDTH = 20


class ConfigError(ValueError):
    """Raised when the configuration file cannot be read or is invalid."""


@dataclass(slots=True)
class ReaderConfig:
    text_width: int = DEFAULT_TEXT_WIDTH
    image_viewer: str | None = None
    history_file: Path | None = None
    debug: bool = False

    def resolved_history_file(self) -> Path:
        if self.history_file is not None:
            return self.history_file
        return default_state_dir() / "history.json"


def _xdg_dir(env_name: str, fallback: str) -> Path:
    value = os.environ.get(env_name)
    if value:
        return Path(value).expanduser()
    return Path.home() / fallback


def default_config_path() -> Path:
    override = os.environ.get(CONFIG_ENV)
    if override:
        return Path(override).expanduser()
    return _xdg_dir("XDG_CONFIG_HOME", ".config") / "termbook" / "config.toml"


def default_state_dir() -> Path:
    return _xdg_dir("XDG_STATE_HOME", ".local/state") / "termbook"


def load_config(path: Path | None = None) -> ReaderConfig:
    config_path = path or default_config_path()
    if not config_path.exists():
        if path is not None:
            raise ConfigError(f"Config file not found: {config_path}")
        return ReaderConfig()
    try:
        with config_path.open("rb") as fh:
            raw = tomllib.load(fh)
    except (OSError, tomllib.TOMLDecodeError) as exc:
        raise ConfigError(f"Failed to parse config file: {config_path} ({exc})") from exc

    config = ReaderConfig()
    width = raw.get("text_width")
    if width is not None:
        if isinstance(width, bool) or not isinstance(width, int):
            raise ConfigError(f"{config_path.name}: 'text_width' must be an integer.")
        config.text_width = max(MIN_TEXT_WIDTH, width)
    viewer = raw.get("image_viewer")
    if viewer is not None:
        if not isinstance(viewer, str) or not viewer.strip():
            raise ConfigError(f"{config_path.name}: 'image_viewer' must be a non-empty string.")
        config.image_viewer = viewer.strip()
    history = raw.get("history_file")
    if history is not None:
        if not isinstance(history, str) or not history.strip():
            raise ConfigError(f"{config_path.name}: 'history_file' must be a path string.")
        config.history_file = Path(history).expanduser()
    debug = raw.get("debug")
    if debug is not None:
        if not isinstance(debug, bool):
            raise ConfigError(f"{config_path.name}: 'debug' must be true or false.")
        config.debug = debug
    return config
