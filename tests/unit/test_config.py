"""Tests for panel preferences loading."""

from __future__ import annotations

import json

import pytest

from panelswitch.capabilities import SWITCH_IDS
from panelswitch.config import default_config, load_config


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    """Point the default config location at an empty directory and clear overrides."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    for key in ("CONFIG_FILE", "VISIBLE_SWITCHES", "COLUMNS", "SHOW_VALUE_LABELS", "LOG_LEVEL"):
        monkeypatch.delenv(f"PANELSWITCH_{key}", raising=False)


def _write(path, data):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data) if not isinstance(data, str) else data, encoding="utf-8")
    return path


class TestDefaults:
    def test_defaults_without_file(self):
        cfg = load_config()
        assert cfg == default_config()
        assert cfg["visible_switches"] == list(SWITCH_IDS)
        assert cfg["columns"] == 4
        assert cfg["show_value_labels"] is True
        assert cfg["log_level"] == "WARNING"

    def test_default_config_is_fresh(self):
        first = default_config()
        first["visible_switches"].clear()
        assert default_config()["visible_switches"] == list(SWITCH_IDS)


class TestFile:
    def test_explicit_path(self, tmp_path):
        path = _write(tmp_path / "panel.json", {"columns": 3, "visible_switches": ["wifi", "dnd"]})
        cfg = load_config(str(path))
        assert cfg["columns"] == 3
        assert cfg["visible_switches"] == ["wifi", "dnd"]

    def test_xdg_location(self, tmp_path):
        _write(tmp_path / "xdg" / "panelswitch" / "config.json", {"show_value_labels": False})
        assert load_config()["show_value_labels"] is False

    def test_env_selected_file(self, tmp_path, monkeypatch):
        path = _write(tmp_path / "other.json", {"log_level": "debug"})
        monkeypatch.setenv("PANELSWITCH_CONFIG_FILE", str(path))
        assert load_config()["log_level"] == "DEBUG"

    def test_columns_clamped(self, tmp_path):
        path = _write(tmp_path / "panel.json", {"columns": 40})
        assert load_config(str(path))["columns"] == 8

    def test_malformed_values_ignored(self, tmp_path):
        path = _write(
            tmp_path / "panel.json",
            {"columns": "many", "show_value_labels": "perhaps", "log_level": "LOUD", "visible_switches": 5},
        )
        assert load_config(str(path)) == default_config()

    def test_unreadable_file(self, tmp_path, caplog):
        path = _write(tmp_path / "panel.json", "{not json")
        assert load_config(str(path)) == default_config()
        assert "Ignoring unreadable config file" in caplog.text

    def test_non_object_file(self, tmp_path):
        path = _write(tmp_path / "panel.json", [1, 2, 3])
        assert load_config(str(path)) == default_config()


class TestEnvOverrides:
    def test_env_overrides_file(self, tmp_path, monkeypatch):
        path = _write(tmp_path / "panel.json", {"columns": 3})
        monkeypatch.setenv("PANELSWITCH_COLUMNS", "6")
        assert load_config(str(path))["columns"] == 6

    def test_switch_list_from_env(self, monkeypatch):
        monkeypatch.setenv("PANELSWITCH_VISIBLE_SWITCHES", "wifi, bluetooth,,vpn")
        assert load_config()["visible_switches"] == ["wifi", "bluetooth", "vpn"]

    @pytest.mark.parametrize(("raw", "expected"), [("0", False), ("off", False), ("yes", True), ("TRUE", True)])
    def test_boolean_from_env(self, monkeypatch, raw, expected):
        monkeypatch.setenv("PANELSWITCH_SHOW_VALUE_LABELS", raw)
        assert load_config()["show_value_labels"] is expected

    def test_invalid_env_value_ignored(self, monkeypatch):
        monkeypatch.setenv("PANELSWITCH_COLUMNS", "wide")
        assert load_config()["columns"] == 4
