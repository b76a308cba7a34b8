"""Persistence helpers for usb-tui configuration state."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

LOGGER = logging.getLogger(__name__)

DEFAULT_CONFIG_DIR = Path("~/.config/usb_tui").expanduser()
DEFAULT_CONFIG_PATH = DEFAULT_CONFIG_DIR / "config.json"

FILTER_DFU_KEY = "filterDFU"


@dataclass(slots=True)
class AppConfig:
    """Preferences persisted between usb-tui sessions."""

    filter_dfu: bool = False

    def to_dict(self) -> dict[str, Any]:
        """Serialize the config to the on-disk JSON shape."""
        return {FILTER_DFU_KEY: self.filter_dfu}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AppConfig":
        filter_dfu = data.get(FILTER_DFU_KEY, False)
        if not isinstance(filter_dfu, bool):
            filter_dfu = False
        return cls(filter_dfu=filter_dfu)


def load_config(path: Path | None = None) -> AppConfig:
    """Load configuration from *path* or the default location.

    Missing, unreadable or malformed files yield the default configuration.
    """
    config_path = path or DEFAULT_CONFIG_PATH
    if not config_path.exists():
        return AppConfig()
    try:
        with config_path.open("r", encoding="utf-8") as handle:
            data = json.load(handle)
    except (OSError, ValueError) as exc:
        LOGGER.debug("Ignoring unreadable config %s: %s", config_path, exc)
        return AppConfig()
    if not isinstance(data, dict):
        LOGGER.debug("Ignoring config %s: expected a JSON object", config_path)
        return AppConfig()
    return AppConfig.from_dict(data)


def save_config(config: AppConfig, path: Path | None = None) -> None:
    """Persist *config* as JSON to *path* (defaulting to the standard location).

    Raises OSError if the file cannot be written.
    """
    config_path = path or DEFAULT_CONFIG_PATH
    config_path.parent.mkdir(parents=True, exist_ok=True)
    with config_path.open("w", encoding="utf-8") as handle:
        json.dump(config.to_dict(), handle, indent=2)
        handle.write("\n")


__all__ = ["AppConfig", "DEFAULT_CONFIG_DIR", "DEFAULT_CONFIG_PATH", "load_config", "save_config"]
