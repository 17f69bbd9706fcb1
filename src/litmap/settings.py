"""Settings loader.

Reads settings from <data dir>/settings.json or falls back to defaults.
The data directory comes from LITMAP_PATH, else ./.litmap.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any

from .constants import DEFAULT_LAYOUT_MODE, LAYOUT_MODES

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS: dict[str, Any] = {
    "default_layout_mode": DEFAULT_LAYOUT_MODE,
    "log_level": "INFO",
    "autoflush": True,
    "db_file": "litmap.db",
    "cache_file": "position_cache.json",
    "log_file": "litmap.log",
}


def get_data_dir() -> Path:
    """Find the data directory from LITMAP_PATH or default to ./.litmap."""
    if env_path := os.environ.get("LITMAP_PATH"):
        return Path(env_path)
    return Path.cwd() / ".litmap"


def load_settings(data_dir: str | Path) -> dict[str, Any]:
    """Load settings from <data_dir>/settings.json.

    Settings file format:
    ```
    {
      "default_layout_mode": "spatial",
      "log_level": "DEBUG",
      "autoflush": true
    }
    ```

    Returns merged settings (user settings override defaults). Unknown
    layout modes fall back to the default.
    """
    settings_path = Path(data_dir) / "settings.json"
    settings = DEFAULT_SETTINGS.copy()

    if settings_path.exists():
        try:
            user_settings = json.loads(settings_path.read_text())
            if isinstance(user_settings, dict):
                settings.update(user_settings)
            else:
                logger.warning(f"Ignoring {settings_path}: expected a JSON object")
        except (json.JSONDecodeError, OSError) as e:
            logger.warning(f"Ignoring unreadable settings {settings_path}: {e}")

    if env_level := os.environ.get("LITMAP_LOG_LEVEL"):
        settings["log_level"] = env_level

    if settings["default_layout_mode"] not in LAYOUT_MODES:
        logger.warning(f"Unknown default_layout_mode {settings['default_layout_mode']!r}")
        settings["default_layout_mode"] = DEFAULT_LAYOUT_MODE

    return settings
