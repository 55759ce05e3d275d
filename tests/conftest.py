"""Pytest configuration and fixtures for panelswitch tests.

This module provides in-memory stand-ins for every backend (D-Bus service
handles, settings stores, the audio mixer) for unit tests, and the opt-in
switch for integration tests against the running desktop session.

Integration configuration is loaded from tests/session.yaml, with
environment variable overrides supported.
"""

from __future__ import annotations

import asyncio
import inspect
import os
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest
import yaml

from panelswitch.backend.handle import HandleState
from panelswitch.backend.interfaces import (
    BUS_DAEMON,
    KBD_BACKLIGHT,
    NETWORK_MANAGER,
    POWER_PROFILES,
    RFKILL,
    SCREEN_BRIGHTNESS,
    SCREENSAVER,
    SESSION_MANAGER,
    ServiceSpec,
)
from panelswitch.backend.mixer import MixerChannel
from panelswitch.backend.settings import MemorySettingsStore
from panelswitch.const import SETTINGS_SCHEMAS
from panelswitch.controller import SwitchController
from panelswitch.events import noop_unsubscribe
from panelswitch.exceptions import BackendUnavailableError, SettingsUnavailableError
from panelswitch.mpris import ActivePlayerTracker

# Configure pytest-asyncio
pytest_plugins = ("pytest_asyncio",)


# ============================================================================
# Configuration Loading
# ============================================================================

TESTS_DIR = Path(__file__).parent
CONFIG_FILE = TESTS_DIR / "session.yaml"


def _load_config() -> dict[str, Any]:
    """Load test configuration from session.yaml."""
    if CONFIG_FILE.exists():
        with open(CONFIG_FILE) as f:
            return yaml.safe_load(f) or {}
    return {}


_CONFIG = _load_config()

# Environment variables override config file
# Example: PANELSWITCH_LIVE_SESSION=1 pytest tests/integration/
LIVE_SESSION = os.getenv("PANELSWITCH_LIVE_SESSION", "").lower() in ("1", "true", "yes") or bool(
    _CONFIG.get("live_session", False)
)
_settings = _CONFIG.get("settings", {})
ALLOW_MUTATIONS = os.getenv("PANELSWITCH_ALLOW_MUTATIONS", "").lower() in ("1", "true", "yes") or bool(
    _settings.get("allow_mutations", False)
)
READY_TIMEOUT = float(_settings.get("ready_timeout", 10.0))


def pytest_collection_modifyitems(config, items):
    """Skip integration tests unless a live session is enabled."""
    if LIVE_SESSION:
        return
    skip_live = pytest.mark.skip(reason="live session tests disabled (set PANELSWITCH_LIVE_SESSION=1)")
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_live)


# ============================================================================
# Fake backends
# ============================================================================


class FakeHandle:
    """In-memory ServiceHandle with the same public surface.

    Calls are recorded in `calls`; `results` maps a method name to a return
    value, an exception to raise, or a callable (sync or async) computing the
    result from the call arguments. A `set <Property>` key makes that property
    write fail.
    """

    def __init__(
        self,
        spec: ServiceSpec,
        *,
        available: bool = True,
        properties: dict[str, Any] | None = None,
        results: dict[str, Any] | None = None,
        gate: asyncio.Event | None = None,
    ) -> None:
        self.spec = spec
        self.available = available
        self.properties = dict(properties or {})
        self.results = dict(results or {})
        self.gate = gate
        self.state = HandleState.UNCONNECTED
        self.calls: list[tuple[str, tuple[Any, ...]]] = []
        self.property_writes: list[tuple[str, str, Any]] = []
        self.closed = False
        self._listeners: list[Callable[[dict[str, Any]], None]] = []
        self._signals: dict[str, list[Callable[..., None]]] = {}

    @property
    def ready(self) -> bool:
        return self.state is HandleState.READY

    async def connect(self) -> bool:
        if self.state is not HandleState.UNCONNECTED:
            return self.ready
        self.state = HandleState.CONNECTING
        if self.gate is not None:
            await self.gate.wait()
        if not self.available or self.closed:
            self.state = HandleState.UNAVAILABLE
            return False
        self.state = HandleState.READY
        return True

    def get(self, name: str, default: Any = None) -> Any:
        if not self.ready:
            return default
        return self.properties.get(name, default)

    def watch_properties(self, callback: Callable[[dict[str, Any]], None]) -> Callable[[], None]:
        if self.closed:
            return noop_unsubscribe
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def watch_signal(self, signal: str, callback: Callable[..., None]) -> Callable[[], None]:
        if not self.ready or self.closed:
            return noop_unsubscribe
        handlers = self._signals.setdefault(signal, [])
        handlers.append(callback)

        def unsubscribe() -> None:
            if callback in handlers:
                handlers.remove(callback)

        return unsubscribe

    def signal_handler_count(self, signal: str) -> int:
        return len(self._signals.get(signal, ()))

    def listener_count(self) -> int:
        return len(self._listeners)

    async def call(self, method: str, *args: Any) -> Any:
        if not self.ready or self.closed:
            raise BackendUnavailableError("Service not connected", service=self.spec.label, operation=method)
        self.calls.append((method, args))
        result = self.results.get(method)
        if isinstance(result, BaseException):
            raise result
        if callable(result):
            result = result(*args)
            if inspect.isawaitable(result):
                result = await result
        return result

    def calls_to(self, method: str) -> list[tuple[Any, ...]]:
        return [args for name, args in self.calls if name == method]

    async def set_property(self, name: str, signature: str, value: Any) -> None:
        if not self.ready or self.closed:
            raise BackendUnavailableError("Service not connected", service=self.spec.label, operation=f"set {name}")
        self.property_writes.append((name, signature, value))
        error = self.results.get(f"set {name}")
        if isinstance(error, BaseException):
            raise error
        self.emit_properties_changed({name: value})

    def emit_properties_changed(self, changed: dict[str, Any]) -> None:
        """Simulate PropertiesChanged from the service."""
        self.properties.update(changed)
        if not self.ready:
            return
        for listener in list(self._listeners):
            listener(dict(changed))

    def emit_signal(self, signal: str, *args: Any) -> None:
        for handler in list(self._signals.get(signal, ())):
            handler(*args)

    def close(self) -> None:
        self.closed = True
        self._listeners.clear()
        self._signals.clear()


def _key(spec: ServiceSpec) -> tuple[str, str, str]:
    return (spec.bus_name, spec.path, spec.interface)


class FakeBackend:
    """Handle factory. Services not added with add() are unavailable."""

    def __init__(self) -> None:
        self.services: dict[tuple[str, str, str], dict[str, Any]] = {}
        self.handles: list[FakeHandle] = []

    def add(self, spec: ServiceSpec, **options: Any) -> None:
        """Make spec available. Options are FakeHandle keyword arguments."""
        self.services[_key(spec)] = options

    def remove(self, spec: ServiceSpec) -> None:
        self.services.pop(_key(spec), None)

    def __call__(self, spec: ServiceSpec) -> FakeHandle:
        options = self.services.get(_key(spec))
        if options is None:
            handle = FakeHandle(spec, available=False)
        else:
            handle = FakeHandle(spec, **options)
        self.handles.append(handle)
        return handle

    def handles_for(self, spec: ServiceSpec) -> list[FakeHandle]:
        return [handle for handle in self.handles if _key(handle.spec) == _key(spec)]

    def handle(self, spec: ServiceSpec) -> FakeHandle:
        """Most recently created handle for spec."""
        return self.handles_for(spec)[-1]


class FakeMixer:
    """Audio mixer with settable state and recorded writes."""

    def __init__(
        self,
        *,
        available: bool = True,
        sink_volume: float = 0.5,
        sink_muted: bool = False,
        source_muted: bool = False,
        error: Exception | None = None,
    ) -> None:
        self.available = available
        self.ready = False
        self.sink_volume = sink_volume
        self.sink_muted = sink_muted
        self.source_muted = source_muted
        self.error = error
        self.callback: Callable[[MixerChannel], None] | None = None
        self.writes: list[tuple[str, Any]] = []
        self.closed = False

    def open(self, callback: Callable[[MixerChannel], None]) -> None:
        self.callback = callback
        self.ready = self.available

    async def wait_ready(self) -> None:
        return None

    def emit(self, channel: MixerChannel) -> None:
        if self.callback is not None and not self.closed:
            self.callback(channel)

    async def _write(self, name: str, value: Any, channel: MixerChannel) -> None:
        if self.error is not None:
            raise self.error
        self.writes.append((name, value))
        setattr(self, name, value)
        self.emit(channel)

    async def set_sink_volume(self, fraction: float) -> None:
        await self._write("sink_volume", fraction, MixerChannel.SINK)

    async def set_sink_muted(self, muted: bool) -> None:
        await self._write("sink_muted", muted, MixerChannel.SINK)

    async def set_source_muted(self, muted: bool) -> None:
        await self._write("source_muted", muted, MixerChannel.SOURCE)

    def close(self) -> None:
        self.closed = True
        self.ready = False
        self.callback = None


# GNOME defaults for every key the controller touches
DEFAULT_SETTINGS: dict[str, dict[str, Any]] = {
    "org.gnome.desktop.interface": {
        "color-scheme": "default",
        "enable-animations": True,
        "enable-hot-corners": True,
        "text-scaling-factor": 1.0,
    },
    "org.gnome.settings-daemon.plugins.color": {
        "night-light-enabled": False,
        "night-light-temperature": 2700,
    },
    "org.gnome.desktop.a11y.applications": {"screen-magnifier-enabled": False},
    "org.gnome.desktop.a11y.interface": {"high-contrast": False},
    "org.gnome.desktop.notifications": {"show-banners": True},
    "org.gnome.desktop.screensaver": {"lock-enabled": True},
    "org.gnome.desktop.peripherals.touchpad": {"send-events": "enabled"},
    "org.gnome.system.location": {"enabled": False},
    "org.gnome.settings-daemon.plugins.power": {
        "sleep-inactive-ac-type": "suspend",
        "sleep-inactive-battery-type": "suspend",
    },
}


class MemorySettingsFactory:
    """Settings factory handing out MemorySettingsStores seeded with GNOME defaults."""

    def __init__(self, values: dict[str, dict[str, Any]] | None = None, missing: tuple[str, ...] = ()) -> None:
        self.values = values if values is not None else DEFAULT_SETTINGS
        self.missing = set(missing)
        self.stores: dict[str, MemorySettingsStore] = {}

    def __call__(self, schema_id: str) -> MemorySettingsStore:
        if schema_id in self.missing:
            raise SettingsUnavailableError(schema_id, "schema not installed")
        store = MemorySettingsStore(schema_id, self.values.get(schema_id, {}))
        self.stores[schema_id] = store
        return store

    def store(self, alias: str) -> MemorySettingsStore:
        return self.stores[SETTINGS_SCHEMAS[alias]]


def unavailable_settings_factory(schema_id: str) -> MemorySettingsStore:
    raise SettingsUnavailableError(schema_id, "schema not installed")


async def settle(rounds: int = 10) -> None:
    """Let pending callbacks and short task chains run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


# ============================================================================
# Unit Test Fixtures (Fakes)
# ============================================================================


@pytest.fixture
def backend():
    """Handle factory with no services available."""
    return FakeBackend()


@pytest.fixture
def session_backend(backend):
    """Handle factory with every controller service available and typical state."""
    backend.add(
        RFKILL,
        properties={
            "AirplaneMode": False,
            "HardwareAirplaneMode": False,
            "BluetoothAirplaneMode": False,
            "BluetoothHardwareAirplaneMode": False,
        },
    )
    backend.add(
        NETWORK_MANAGER,
        properties={"WirelessEnabled": True, "WirelessHardwareEnabled": True, "ActiveConnections": []},
    )
    backend.add(SCREEN_BRIGHTNESS, properties={"Brightness": 60})
    backend.add(
        POWER_PROFILES,
        properties={
            "ActiveProfile": "balanced",
            "Profiles": [
                {"Profile": "power-saver", "Driver": "placeholder"},
                {"Profile": "balanced", "Driver": "placeholder"},
                {"Profile": "performance", "Driver": "intel_pstate"},
            ],
        },
    )
    backend.add(KBD_BACKLIGHT, results={"GetMaxBrightness": 3, "GetBrightness": 1, "SetBrightness": None})
    backend.add(SESSION_MANAGER, results={"Inhibit": 42, "Uninhibit": None})
    backend.add(SCREENSAVER, results={"Lock": None})
    return backend


@pytest.fixture
def settings_factory():
    return MemorySettingsFactory()


@pytest.fixture
def mixer():
    return FakeMixer()


@pytest.fixture
def make_controller(backend, settings_factory, mixer):
    """Build controllers wired to the fakes; every one is destroyed after the test."""
    created: list[SwitchController] = []

    def _make(**kwargs: Any) -> SwitchController:
        kwargs.setdefault("handle_factory", backend)
        kwargs.setdefault("settings_factory", settings_factory)
        kwargs.setdefault("mixer", mixer)
        controller = SwitchController(**kwargs)
        created.append(controller)
        return controller

    yield _make
    for controller in created:
        controller.destroy()


@pytest.fixture
def bus_daemon(backend):
    """Bus daemon listing no names; tests add players to `names`."""
    names: list[str] = ["org.freedesktop.DBus", ":1.1"]
    backend.add(BUS_DAEMON, results={"ListNames": lambda: list(names)})
    return names


@pytest.fixture
def make_tracker(backend):
    created: list[ActivePlayerTracker] = []

    def _make(**kwargs: Any) -> ActivePlayerTracker:
        kwargs.setdefault("handle_factory", backend)
        tracker = ActivePlayerTracker(**kwargs)
        created.append(tracker)
        return tracker

    yield _make
    for tracker in created:
        tracker.destroy()


# ============================================================================
# Integration Test Fixtures (Live Session)
# ============================================================================


@pytest.fixture
def live_settings():
    """Integration test settings from session.yaml."""
    return {"allow_mutations": ALLOW_MUTATIONS, "ready_timeout": READY_TIMEOUT}
