"""ServiceHandle - one owned connection to a D-Bus service object.

A handle connects exactly once. It either becomes READY, with every property
of its interface cached and kept current from PropertiesChanged, or
UNAVAILABLE for the rest of its life. Nothing reconnects.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from enum import Enum
from typing import Any

from dbus_next import Variant
from dbus_next.errors import DBusError

from ..events import Unsubscribe, noop_unsubscribe
from ..exceptions import BackendCallError, BackendUnavailableError
from .bus import BusProvider
from .interfaces import PROPERTIES_INTERFACE, ServiceSpec

_LOGGER = logging.getLogger(__name__)

PropertiesCallback = Callable[[dict[str, Any]], None]

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


class HandleState(Enum):
    """Connection state of a ServiceHandle."""

    UNCONNECTED = "unconnected"
    CONNECTING = "connecting"
    READY = "ready"
    UNAVAILABLE = "unavailable"


def snake_case(member: str) -> str:
    """D-Bus member name to the dbus-next proxy attribute stem (GetAll -> get_all)."""
    return _CAMEL_BOUNDARY.sub("_", member).lower()


def unpack_variant(value: Any) -> Any:
    """Recursively replace dbus-next Variants with their plain Python values."""
    if isinstance(value, Variant):
        return unpack_variant(value.value)
    if isinstance(value, dict):
        return {key: unpack_variant(item) for key, item in value.items()}
    if isinstance(value, list):
        return [unpack_variant(item) for item in value]
    return value


class ServiceHandle:
    """Cached, observable proxy for one interface on one D-Bus object."""

    def __init__(self, spec: ServiceSpec, buses: BusProvider) -> None:
        """Initialize a handle. No I/O happens until connect().

        Args:
            spec: Service location and introspection data.
            buses: Provider of the bus connection named by spec.bus.
        """
        self.spec = spec
        self._buses = buses
        self.state = HandleState.UNCONNECTED
        self.properties: dict[str, Any] = {}

        self._interface: Any = None
        self._properties_interface: Any = None
        self._property_listeners: list[PropertiesCallback] = []
        self._signal_handlers: list[tuple[str, Callable[..., None]]] = []
        self._closed = False

    @property
    def ready(self) -> bool:
        return self.state is HandleState.READY

    def __repr__(self) -> str:
        return f"ServiceHandle({self.spec.label!r}, state={self.state.value})"

    async def connect(self) -> bool:
        """Connect the proxy and load every property.

        Returns:
            True if the handle is READY. Failures are logged, never raised.
        """
        if self.state is not HandleState.UNCONNECTED:
            return self.ready

        self.state = HandleState.CONNECTING
        try:
            bus = await self._buses.get(self.spec.bus)
            proxy = bus.get_proxy_object(self.spec.bus_name, self.spec.path, self.spec.introspection)
            interface = proxy.get_interface(self.spec.interface)
            properties_interface = proxy.get_interface(PROPERTIES_INTERFACE)
            values = await properties_interface.call_get_all(self.spec.interface)
        except Exception as err:
            self.state = HandleState.UNAVAILABLE
            _LOGGER.info("%s unavailable: %s", self.spec.label, err)
            return False

        if self._closed:
            # Closed while the connection was in flight
            self.state = HandleState.UNAVAILABLE
            return False

        self._interface = interface
        self._properties_interface = properties_interface
        self.properties = {name: unpack_variant(value) for name, value in values.items()}
        properties_interface.on_properties_changed(self._on_properties_changed)
        self.state = HandleState.READY
        _LOGGER.debug("%s ready with %d properties", self.spec.label, len(self.properties))
        return True

    def _on_properties_changed(
        self,
        interface_name: str,
        changed_properties: dict[str, Any],
        invalidated_properties: list[str],
    ) -> None:
        if interface_name != self.spec.interface or self._closed:
            return

        changed = {name: unpack_variant(value) for name, value in changed_properties.items()}
        self.properties.update(changed)
        for name in invalidated_properties:
            self.properties.pop(name, None)

        _LOGGER.debug("%s properties changed: %s", self.spec.label, sorted(changed))
        for listener in list(self._property_listeners):
            try:
                listener(changed)
            except Exception as err:
                _LOGGER.warning("Error in properties callback for %s: %s", self.spec.label, err, exc_info=True)

    def get(self, name: str, default: Any = None) -> Any:
        """Cached property value, or default when not ready or not present."""
        if not self.ready:
            return default
        return self.properties.get(name, default)

    def watch_properties(self, callback: PropertiesCallback) -> Unsubscribe:
        """Call callback with the changed-properties dict on every PropertiesChanged.

        Works before the handle is ready; callbacks start firing once it is.
        """
        if self._closed:
            return noop_unsubscribe
        self._property_listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._property_listeners:
                self._property_listeners.remove(callback)

        return unsubscribe

    def watch_signal(self, signal: str, callback: Callable[..., None]) -> Unsubscribe:
        """Subscribe to a signal of the interface. Requires a ready handle.

        Returns:
            Idempotent unsubscribe; a no-op when the handle is not ready.
        """
        if not self.ready or self._closed:
            return noop_unsubscribe

        def handler(*args: Any) -> None:
            callback(*(unpack_variant(arg) for arg in args))

        stem = snake_case(signal)
        getattr(self._interface, f"on_{stem}")(handler)
        entry = (stem, handler)
        self._signal_handlers.append(entry)

        def unsubscribe() -> None:
            if entry not in self._signal_handlers:
                return
            self._signal_handlers.remove(entry)
            self._off_signal(stem, handler)

        return unsubscribe

    def _off_signal(self, stem: str, handler: Callable[..., None]) -> None:
        try:
            getattr(self._interface, f"off_{stem}")(handler)
        except Exception as err:
            _LOGGER.debug("Could not remove %s handler on %s: %s", stem, self.spec.label, err)

    async def call(self, method: str, *args: Any) -> Any:
        """Invoke a method of the interface.

        Returns:
            The unpacked reply body.

        Raises:
            BackendUnavailableError: If the handle is not ready.
            BackendCallError: If the remote call fails.
        """
        if not self.ready or self._closed:
            raise BackendUnavailableError("Service not connected", service=self.spec.label, operation=method)
        try:
            result = await getattr(self._interface, f"call_{snake_case(method)}")(*args)
        except DBusError as err:
            raise BackendCallError("Remote call failed", service=self.spec.label, operation=method, last_error=err) from err
        return unpack_variant(result)

    async def set_property(self, name: str, signature: str, value: Any) -> None:
        """Write a property through org.freedesktop.DBus.Properties.Set.

        The cache is not touched; the service's PropertiesChanged updates it.

        Raises:
            BackendUnavailableError: If the handle is not ready.
            BackendCallError: If the write fails.
        """
        if not self.ready or self._closed:
            raise BackendUnavailableError("Service not connected", service=self.spec.label, operation=f"set {name}")
        try:
            await self._properties_interface.call_set(self.spec.interface, name, Variant(signature, value))
        except DBusError as err:
            raise BackendCallError(
                "Property write failed", service=self.spec.label, operation=f"set {name}", last_error=err
            ) from err

    def close(self) -> None:
        """Drop every subscription. Safe to call repeatedly and in any state."""
        if self._closed:
            return
        self._closed = True
        self._property_listeners.clear()

        for stem, handler in self._signal_handlers:
            self._off_signal(stem, handler)
        self._signal_handlers.clear()

        if self._properties_interface is not None:
            try:
                self._properties_interface.off_properties_changed(self._on_properties_changed)
            except Exception as err:
                _LOGGER.debug("Could not remove properties handler on %s: %s", self.spec.label, err)
        _LOGGER.debug("%s closed", self.spec.label)
