"""Panel preferences: file + env vars."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path

from .capabilities import SWITCH_IDS

_LOGGER = logging.getLogger(__name__)

DEFAULT_COLUMNS = 4
MIN_COLUMNS = 1
MAX_COLUMNS = 8
DEFAULT_LOG_LEVEL = "WARNING"
_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _default_config_path() -> Path:
    """Default config file path (XDG ~/.config/panelswitch/config.json)."""
    base = Path(os.environ.get("XDG_CONFIG_HOME", os.path.expanduser("~/.config")))
    return base / "panelswitch" / "config.json"


def _parse_bool(value: object) -> bool | None:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("1", "true", "yes", "on"):
            return True
        if lowered in ("0", "false", "no", "off"):
            return False
    return None


def _parse_columns(value: object) -> int | None:
    if isinstance(value, bool):
        return None
    try:
        columns = int(value)  # type: ignore[call-overload]
    except (TypeError, ValueError):
        return None
    return min(max(columns, MIN_COLUMNS), MAX_COLUMNS)


def _parse_switch_ids(value: object) -> list[str] | None:
    if isinstance(value, str):
        value = value.split(",")
    if not isinstance(value, list):
        return None
    return [item.strip() for item in value if isinstance(item, str) and item.strip()]


def _parse_log_level(value: object) -> str | None:
    if isinstance(value, str) and value.strip().upper() in _LOG_LEVELS:
        return value.strip().upper()
    return None


def default_config() -> dict:
    return {
        "visible_switches": list(SWITCH_IDS),
        "columns": DEFAULT_COLUMNS,
        "show_value_labels": True,
        "log_level": DEFAULT_LOG_LEVEL,
    }


def load_config(path: str | None = None) -> dict:
    """Load preferences from file and env vars. Env vars override file values.

    Config file: path argument, PANELSWITCH_CONFIG_FILE or
    ~/.config/panelswitch/config.json
    Keys: visible_switches, columns, show_value_labels, log_level

    Env overrides: PANELSWITCH_VISIBLE_SWITCHES (comma separated),
    PANELSWITCH_COLUMNS, PANELSWITCH_SHOW_VALUE_LABELS, PANELSWITCH_LOG_LEVEL

    Unreadable files and malformed values fall back to the defaults.
    """
    cfg = default_config()
    parsers = {
        "visible_switches": _parse_switch_ids,
        "columns": _parse_columns,
        "show_value_labels": _parse_bool,
        "log_level": _parse_log_level,
    }

    # Load from file if present
    config_path = Path(path or os.environ.get("PANELSWITCH_CONFIG_FILE") or _default_config_path())
    if config_path.exists():
        try:
            with open(config_path, encoding="utf-8") as f:
                file_cfg = json.load(f)
        except (json.JSONDecodeError, OSError) as err:
            _LOGGER.warning("Ignoring unreadable config file %s: %s", config_path, err)
            file_cfg = {}
        if isinstance(file_cfg, dict):
            for key, parse in parsers.items():
                if key in file_cfg and (value := parse(file_cfg[key])) is not None:
                    cfg[key] = value

    # Env overrides
    for key, parse in parsers.items():
        if env := os.environ.get(f"PANELSWITCH_{key.upper()}"):
            if (value := parse(env)) is not None:
                cfg[key] = value

    return cfg
