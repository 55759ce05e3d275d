"""Settings-store abstraction: read/write a key, subscribe to per-key change."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from typing import Any

from ..events import Callback, Unsubscribe
from ..exceptions import SettingsUnavailableError

_LOGGER = logging.getLogger(__name__)

SettingsFactory = Callable[[str], "SettingsStore"]


class SettingsStore(ABC):
    """One settings schema. Values are plain Python types (bool, str, int, float)."""

    def __init__(self, schema_id: str) -> None:
        self.schema_id = schema_id

    @abstractmethod
    def has_key(self, key: str) -> bool:
        """True if the schema defines key."""

    @abstractmethod
    def get(self, key: str) -> Any:
        """Current value of key, or None when the key is unknown."""

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        """Write key. The value must match the key's stored type."""

    @abstractmethod
    def watch(self, key: str, callback: Callback) -> Unsubscribe:
        """Call callback whenever key changes. Returns an idempotent unsubscribe."""

    def close(self) -> None:
        """Release the store. Subclasses holding native resources override this."""


class MemorySettingsStore(SettingsStore):
    """Dict-backed store for tests and machines without GSettings."""

    def __init__(self, schema_id: str, values: Mapping[str, Any] | None = None) -> None:
        super().__init__(schema_id)
        self._values: dict[str, Any] = dict(values or {})
        self._watchers: dict[str, list[Callback]] = {}

    def has_key(self, key: str) -> bool:
        return key in self._values

    def get(self, key: str) -> Any:
        return self._values.get(key)

    def set(self, key: str, value: Any) -> None:
        self._values[key] = value
        for callback in list(self._watchers.get(key, ())):
            try:
                callback()
            except Exception as err:
                _LOGGER.warning("Error in %s::%s watcher: %s", self.schema_id, key, err, exc_info=True)

    def watch(self, key: str, callback: Callback) -> Unsubscribe:
        watchers = self._watchers.setdefault(key, [])
        entry: Callback = lambda: callback()  # noqa: E731
        watchers.append(entry)

        def unsubscribe() -> None:
            if entry in watchers:
                watchers.remove(entry)

        return unsubscribe

    def watcher_count(self, key: str) -> int:
        return len(self._watchers.get(key, ()))

    def close(self) -> None:
        self._watchers.clear()


def gio_settings_factory(schema_id: str) -> SettingsStore:
    """Default factory: GSettings through PyGObject.

    Raises:
        SettingsUnavailableError: If PyGObject is not installed or the schema is missing.
    """
    try:
        from .gio import GioSettingsStore
    except ImportError as err:
        raise SettingsUnavailableError(schema_id, "PyGObject is not installed") from err
    return GioSettingsStore(schema_id)
