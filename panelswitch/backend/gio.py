"""GSettings store and GLib event loop integration through PyGObject."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import gi

gi.require_version("Gio", "2.0")
from gi.repository import Gio, GLib  # noqa: E402

from ..events import Callback, Unsubscribe, noop_unsubscribe  # noqa: E402
from ..exceptions import SettingsUnavailableError  # noqa: E402
from .settings import SettingsStore  # noqa: E402

_LOGGER = logging.getLogger(__name__)


def install_glib_event_loop() -> None:
    """Run asyncio on the GLib main context so GSettings signals reach our loop."""
    from gi.events import GLibEventLoopPolicy

    asyncio.set_event_loop_policy(GLibEventLoopPolicy())


class GioSettingsStore(SettingsStore):
    """SettingsStore over Gio.Settings. Writes keep the key's schema type."""

    def __init__(self, schema_id: str) -> None:
        super().__init__(schema_id)
        source = Gio.SettingsSchemaSource.get_default()
        # Gio.Settings aborts the process on unknown schemas, so check first
        if source is None or source.lookup(schema_id, True) is None:
            raise SettingsUnavailableError(schema_id, "schema not installed")
        self._settings = Gio.Settings.new(schema_id)
        # get_value() on a key the schema lacks aborts the process as well
        self._keys = frozenset(self._settings.props.settings_schema.list_keys())
        self._handler_ids: set[int] = set()

    def has_key(self, key: str) -> bool:
        return key in self._keys

    def get(self, key: str) -> Any:
        if not self.has_key(key):
            return None
        return self._settings.get_value(key).unpack()

    def set(self, key: str, value: Any) -> None:
        if not self.has_key(key):
            raise ValueError(f"{self.schema_id} has no key {key}")
        current = self._settings.get_value(key)
        self._settings.set_value(key, GLib.Variant(current.get_type_string(), value))

    def watch(self, key: str, callback: Callback) -> Unsubscribe:
        if not self.has_key(key):
            return noop_unsubscribe
        handler_id = self._settings.connect(f"changed::{key}", lambda *_args: callback())
        self._handler_ids.add(handler_id)

        def unsubscribe() -> None:
            if handler_id in self._handler_ids:
                self._handler_ids.discard(handler_id)
                self._settings.disconnect(handler_id)

        return unsubscribe

    def close(self) -> None:
        for handler_id in self._handler_ids:
            self._settings.disconnect(handler_id)
        self._handler_ids.clear()
        # Writes are queued to dconf; flush them before the process can exit
        Gio.Settings.sync()
        _LOGGER.debug("Closed settings store %s", self.schema_id)
