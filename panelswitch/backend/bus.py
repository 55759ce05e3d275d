"""Lazy session/system bus connections shared by every handle of one owner."""

from __future__ import annotations

import asyncio
import logging
from enum import Enum

from dbus_next import BusType
from dbus_next.aio import MessageBus

from ..exceptions import BackendUnavailableError

_LOGGER = logging.getLogger(__name__)


class BusKind(Enum):
    """Which message bus a service lives on."""

    SESSION = "session"
    SYSTEM = "system"


_BUS_TYPES = {
    BusKind.SESSION: BusType.SESSION,
    BusKind.SYSTEM: BusType.SYSTEM,
}


class BusProvider:
    """Connects each bus at most once and hands the same connection to every caller.

    A bus that fails to connect stays failed: later callers get
    BackendUnavailableError without a new attempt.
    """

    def __init__(self) -> None:
        self._connections: dict[BusKind, asyncio.Task[MessageBus]] = {}
        self._closed = False

    async def get(self, kind: BusKind) -> MessageBus:
        """Return the connected bus for kind.

        Raises:
            BackendUnavailableError: If the bus cannot be reached or the provider is closed.
        """
        if self._closed:
            raise BackendUnavailableError("Bus provider closed", service=f"{kind.value} bus")

        task = self._connections.get(kind)
        if task is None:
            task = asyncio.get_running_loop().create_task(self._connect(kind))
            self._connections[kind] = task

        try:
            return await asyncio.shield(task)
        except asyncio.CancelledError:
            raise
        except Exception as err:
            raise BackendUnavailableError(
                "Could not connect to message bus",
                service=f"{kind.value} bus",
                operation="connect",
                last_error=err,
            ) from err

    async def _connect(self, kind: BusKind) -> MessageBus:
        bus = await MessageBus(bus_type=_BUS_TYPES[kind]).connect()
        _LOGGER.debug("Connected to %s bus as %s", kind.value, bus.unique_name)
        return bus

    def disconnect(self) -> None:
        """Disconnect every established bus and abandon pending connects."""
        self._closed = True
        for kind, task in self._connections.items():
            if not task.done():
                task.cancel()
                continue
            if task.cancelled() or task.exception() is not None:
                continue
            _LOGGER.debug("Disconnecting %s bus", kind.value)
            task.result().disconnect()
        self._connections.clear()
