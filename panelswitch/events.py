"""Named change events and the fan-out emitter used by the controller and tracker."""

from __future__ import annotations

import logging
from collections.abc import Callable
from enum import Enum
from typing import Generic, TypeVar

_LOGGER = logging.getLogger(__name__)

Callback = Callable[[], None]
Unsubscribe = Callable[[], None]

E = TypeVar("E", bound=Enum)


class ControllerEvent(str, Enum):
    """Events republished by SwitchController. Consumers re-read state on receipt."""

    RFKILL_CHANGED = "rfkill-changed"
    WIFI_CHANGED = "wifi-changed"
    VOLUME_CHANGED = "volume-changed"
    MIC_CHANGED = "mic-changed"
    BRIGHTNESS_CHANGED = "brightness-changed"
    POWER_PROFILE_CHANGED = "power-profile-changed"
    KBD_BACKLIGHT_CHANGED = "kbd-backlight-changed"
    VPN_CHANGED = "vpn-changed"
    KEEP_AWAKE_CHANGED = "keep-awake-changed"


class TrackerEvent(str, Enum):
    """Events emitted by ActivePlayerTracker."""

    CHANGED = "changed"


def noop_unsubscribe() -> None:
    """Unsubscribe for capabilities without a change source."""


class EventEmitter(Generic[E]):
    """Registration list of callbacks per event, delivered in connect order."""

    def __init__(self) -> None:
        self._handlers: dict[E, list[Callback]] = {}

    def connect(self, event: E, callback: Callback) -> Unsubscribe:
        """Register callback for event.

        Returns:
            Unsubscribe function. Calling it more than once is harmless.
        """
        handlers = self._handlers.setdefault(event, [])
        # Wrap so the same callable can be connected twice and removed independently
        entry: Callback = lambda: callback()  # noqa: E731
        handlers.append(entry)

        def unsubscribe() -> None:
            current = self._handlers.get(event)
            if current and entry in current:
                current.remove(entry)

        return unsubscribe

    def emit(self, event: E) -> None:
        """Call every callback registered for event.

        A failing callback is logged and does not stop delivery to the rest.
        """
        for handler in list(self._handlers.get(event, ())):
            try:
                handler()
            except Exception as err:
                _LOGGER.warning("Error in %s callback: %s", event.value, err, exc_info=True)

    def handler_count(self, event: E) -> int:
        return len(self._handlers.get(event, ()))

    def clear(self) -> None:
        self._handlers.clear()
