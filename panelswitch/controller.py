"""SwitchController - single owner of every OS-facing toggle and slider backend.

The controller creates its settings stores synchronously and connects its
D-Bus services concurrently in the background. Every accessor is total: when
the backing resource is missing it returns a documented default instead of
raising. Mutations run as background tasks whose failures are logged and
leave state untouched.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Coroutine
from typing import Any

from .backend.bus import BusProvider
from .backend.handle import ServiceHandle
from .backend.interfaces import (
    KBD_BACKLIGHT,
    NETWORK_MANAGER,
    NM_ACTIVE_CONNECTION,
    NM_CONNECTION_SETTINGS,
    NM_SETTINGS,
    POWER_PROFILES,
    RFKILL,
    SCREEN_BRIGHTNESS,
    SCREENSAVER,
    SESSION_MANAGER,
    ServiceSpec,
)
from .backend.mixer import MixerChannel, PactlMixer
from .backend.settings import SettingsFactory, SettingsStore, gio_settings_factory
from .capabilities import clamp_unit
from .const import (
    APP_ID,
    DEFAULT_POWER_PROFILE,
    INHIBIT_FLAGS,
    INHIBIT_REASON,
    LARGE_TEXT_SCALE,
    NM_CONNECTION_TYPE_VPN,
    NM_NO_OBJECT,
    NORMAL_TEXT_SCALE,
    SCREEN_BRIGHTNESS_MAX,
    SETTINGS_SCHEMAS,
    VPN_REFRESH_DELAY,
)
from .events import Callback, ControllerEvent, EventEmitter, Unsubscribe, noop_unsubscribe
from .exceptions import BackendError, SettingsUnavailableError

_LOGGER = logging.getLogger(__name__)

HandleFactory = Callable[[ServiceSpec], ServiceHandle]


class SwitchController:
    """Aggregates GSettings, D-Bus services and the audio mixer behind uniform accessors.

    Example:
        ```python
        controller = SwitchController()
        await controller.wait_ready()
        if controller.has_network_manager():
            controller.toggle_wifi()
        controller.destroy()
        ```
    """

    def __init__(
        self,
        *,
        settings_factory: SettingsFactory | None = None,
        handle_factory: HandleFactory | None = None,
        mixer: PactlMixer | None = None,
        buses: BusProvider | None = None,
    ) -> None:
        """Create every backend and start connecting them. Never blocks, never raises.

        Args:
            settings_factory: Builds a store for a schema id. Defaults to GSettings.
            handle_factory: Builds a ServiceHandle for a ServiceSpec. Defaults to
                dbus-next handles on a bus provider owned by this controller.
            mixer: Audio mixer. Defaults to a PactlMixer.
            buses: Bus provider shared with other components. A provider passed in
                is not disconnected by destroy().
        """
        self._emitter: EventEmitter[ControllerEvent] = EventEmitter()
        self._tasks: set[asyncio.Task[Any]] = set()
        self._destroyed = False

        self._owns_buses = buses is None
        self._buses = buses or BusProvider()
        self._handle_factory: HandleFactory = handle_factory or (lambda spec: ServiceHandle(spec, self._buses))

        # Settings stores
        factory = settings_factory or gio_settings_factory
        self._stores: dict[str, SettingsStore | None] = {}
        for alias, schema_id in SETTINGS_SCHEMAS.items():
            try:
                self._stores[alias] = factory(schema_id)
            except SettingsUnavailableError as err:
                _LOGGER.info("%s", err)
                self._stores[alias] = None

        # D-Bus services
        self._rfkill = self._handle_factory(RFKILL)
        self._nm = self._handle_factory(NETWORK_MANAGER)
        self._brightness = self._handle_factory(SCREEN_BRIGHTNESS)
        self._power_profiles = self._handle_factory(POWER_PROFILES)
        self._kbd = self._handle_factory(KBD_BACKLIGHT)
        self._session_manager = self._handle_factory(SESSION_MANAGER)
        self._screensaver = self._handle_factory(SCREENSAVER)
        self._handles = [
            self._rfkill,
            self._nm,
            self._brightness,
            self._power_profiles,
            self._kbd,
            self._session_manager,
            self._screensaver,
        ]
        # Transient NetworkManager handles still in flight
        self._transient: set[ServiceHandle] = set()

        self._rfkill.watch_properties(lambda _changed: self._emit(ControllerEvent.RFKILL_CHANGED))
        self._nm.watch_properties(self._on_network_manager_changed)
        self._brightness.watch_properties(lambda _changed: self._emit(ControllerEvent.BRIGHTNESS_CHANGED))
        self._power_profiles.watch_properties(lambda _changed: self._emit(ControllerEvent.POWER_PROFILE_CHANGED))

        # Keyboard backlight
        self._kbd_max = 1
        self._kbd_level: int | None = None
        self._kbd_signal: Unsubscribe = noop_unsubscribe

        # Keep-awake
        self._inhibit_cookie: int | None = None
        self._inhibit_pending = False
        self._release_on_arrival = False

        # VPN
        self._vpn_active = False
        self._vpn_active_path: str | None = None
        self._vpn_generation = 0

        self._mixer = mixer or PactlMixer()
        self._mixer.open(self._on_mixer_changed)

        self._init_task = self._spawn(self._initialize())

    # ------------------------------------------------------------------
    # Lifecycle and events
    # ------------------------------------------------------------------

    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task[Any] | None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No event loop running (sync context) - backends stay unconnected
            coro.close()
            _LOGGER.warning("No running event loop; background operation skipped")
            return None
        task = loop.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)
        return task

    def _task_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        err = task.exception()
        if err is not None:
            _LOGGER.error("Background operation failed: %s", err, exc_info=err)

    async def _mutate(self, action: str, operation: Coroutine[Any, Any, Any]) -> None:
        try:
            await operation
        except BackendError as err:
            _LOGGER.warning("Could not %s: %s", action, err)

    async def _initialize(self) -> None:
        results = await asyncio.gather(
            self._connect_rfkill(),
            self._connect_network_manager(),
            self._connect_brightness(),
            self._connect_power_profiles(),
            self._connect_kbd_backlight(),
            self._connect_session_manager(),
            self._screensaver.connect(),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, BaseException) and not isinstance(result, asyncio.CancelledError):
                _LOGGER.error("Backend initialization failed: %s", result, exc_info=result)
        _LOGGER.debug("Backends initialized: %s", self._handles)

    async def wait_ready(self) -> None:
        """Wait until every initial connection attempt and the first mixer load are done."""
        if self._init_task is not None:
            await asyncio.wait({self._init_task})
        await self._mixer.wait_ready()

    async def wait_idle(self) -> None:
        """Wait for pending background operations, including ones they start."""
        while pending := {task for task in self._tasks if not task.done()}:
            await asyncio.wait(pending)

    def connect(self, event: ControllerEvent, callback: Callback) -> Unsubscribe:
        """Register callback for a controller event. Returns an idempotent unsubscribe."""
        if self._destroyed:
            return noop_unsubscribe
        return self._emitter.connect(event, callback)

    def _emit(self, event: ControllerEvent) -> None:
        if self._destroyed:
            return
        _LOGGER.debug("Emitting %s", event.value)
        self._emitter.emit(event)

    def destroy(self) -> None:
        """Release every resource. Safe in any initialization state and when repeated."""
        if self._destroyed:
            return
        self._destroyed = True

        for task in list(self._tasks):
            task.cancel()

        self._kbd_signal()
        self._kbd_signal = noop_unsubscribe
        self._mixer.close()
        self._emitter.clear()

        cookie = self._inhibit_cookie
        self._inhibit_cookie = None
        if cookie is not None and self._session_manager.ready:
            if self._spawn(self._release_then_close(cookie)) is not None:
                return
        self._close_backends()

    async def _release_then_close(self, cookie: int) -> None:
        try:
            await self._uninhibit(cookie)
        finally:
            self._close_backends()

    def _close_backends(self) -> None:
        for handle in [*self._handles, *self._transient]:
            handle.close()
        self._transient.clear()
        for store in self._stores.values():
            if store is not None:
                store.close()
        if self._owns_buses:
            self._buses.disconnect()
        _LOGGER.debug("Switch controller destroyed")

    # ------------------------------------------------------------------
    # Connection setup
    # ------------------------------------------------------------------

    async def _connect_rfkill(self) -> None:
        if await self._rfkill.connect():
            self._emit(ControllerEvent.RFKILL_CHANGED)

    async def _connect_network_manager(self) -> None:
        if not await self._nm.connect():
            return
        self._emit(ControllerEvent.WIFI_CHANGED)
        await self._refresh_vpn()

    async def _connect_brightness(self) -> None:
        if await self._brightness.connect():
            self._emit(ControllerEvent.BRIGHTNESS_CHANGED)

    async def _connect_power_profiles(self) -> None:
        if await self._power_profiles.connect():
            self._emit(ControllerEvent.POWER_PROFILE_CHANGED)

    async def _connect_session_manager(self) -> None:
        if await self._session_manager.connect():
            self._emit(ControllerEvent.KEEP_AWAKE_CHANGED)

    async def _connect_kbd_backlight(self) -> None:
        if not await self._kbd.connect():
            return

        # The maximum never changes; it is read once and reused for every conversion
        try:
            maximum = await self._kbd.call("GetMaxBrightness")
        except BackendError as err:
            _LOGGER.debug("Keyboard backlight maximum unknown: %s", err)
            maximum = 1
        self._kbd_max = maximum if isinstance(maximum, int) and maximum > 0 else 1

        try:
            level = await self._kbd.call("GetBrightness")
        except BackendError as err:
            _LOGGER.debug("Keyboard backlight level unknown: %s", err)
            level = None
        self._kbd_level = level if isinstance(level, int) else None

        if self._destroyed:
            return
        self._kbd_signal = self._kbd.watch_signal("BrightnessChanged", self._on_kbd_brightness_changed)
        self._emit(ControllerEvent.KBD_BACKLIGHT_CHANGED)

    def _on_network_manager_changed(self, changed: dict[str, Any]) -> None:
        if "WirelessEnabled" in changed or "WirelessHardwareEnabled" in changed:
            self._emit(ControllerEvent.WIFI_CHANGED)
        if "ActiveConnections" in changed:
            self._spawn(self._refresh_vpn())

    def _on_kbd_brightness_changed(self, value: Any) -> None:
        if isinstance(value, int):
            self._kbd_level = value
        self._emit(ControllerEvent.KBD_BACKLIGHT_CHANGED)

    def _on_mixer_changed(self, channel: MixerChannel) -> None:
        if channel is MixerChannel.SINK:
            self._emit(ControllerEvent.VOLUME_CHANGED)
        else:
            self._emit(ControllerEvent.MIC_CHANGED)

    # ------------------------------------------------------------------
    # Availability
    # ------------------------------------------------------------------

    def has_settings(self, alias: str, key: str | None = None) -> bool:
        """True if the settings schema behind alias was loaded (and holds key, when given)."""
        store = self._stores.get(alias)
        if store is None:
            return False
        return key is None or store.has_key(key)

    def has_rfkill(self) -> bool:
        return self._rfkill.ready

    def has_network_manager(self) -> bool:
        return self._nm.ready

    def has_brightness(self) -> bool:
        return self._brightness.ready

    def has_power_profiles(self) -> bool:
        return self._power_profiles.ready

    def has_kbd_backlight(self) -> bool:
        return self._kbd.ready

    def has_session_manager(self) -> bool:
        return self._session_manager.ready

    def has_screensaver(self) -> bool:
        return self._screensaver.ready

    def has_mixer(self) -> bool:
        return self._mixer.ready

    # ------------------------------------------------------------------
    # Settings helpers
    # ------------------------------------------------------------------

    def _read(self, alias: str, key: str, default: Any) -> Any:
        store = self._stores.get(alias)
        if store is None:
            return default
        value = store.get(key)
        return default if value is None else value

    def _write(self, alias: str, key: str, value: Any) -> None:
        store = self._stores.get(alias)
        if store is None:
            _LOGGER.debug("Ignoring write to %s; schema %s unavailable", key, alias)
            return
        if not store.has_key(key):
            _LOGGER.debug("Ignoring write to %s; not in schema %s", key, store.schema_id)
            return
        try:
            store.set(key, value)
        except (TypeError, ValueError) as err:
            _LOGGER.warning("Could not write %s.%s: %s", alias, key, err)

    def _watch(self, alias: str, key: str, callback: Callback) -> Unsubscribe:
        store = self._stores.get(alias)
        if store is None or self._destroyed or not store.has_key(key):
            return noop_unsubscribe
        return store.watch(key, callback)

    # ------------------------------------------------------------------
    # Display
    # ------------------------------------------------------------------

    def is_dark_mode(self) -> bool:
        return self._read("interface", "color-scheme", "default") == "prefer-dark"

    def toggle_dark_mode(self) -> None:
        self._write("interface", "color-scheme", "default" if self.is_dark_mode() else "prefer-dark")

    def watch_dark_mode(self, callback: Callback) -> Unsubscribe:
        return self._watch("interface", "color-scheme", callback)

    def is_night_light(self) -> bool:
        return bool(self._read("color", "night-light-enabled", False))

    def toggle_night_light(self) -> None:
        self._write("color", "night-light-enabled", not self.is_night_light())

    def watch_night_light(self, callback: Callback) -> Unsubscribe:
        return self._watch("color", "night-light-enabled", callback)

    def get_night_light_temp(self) -> int | None:
        """Night light colour temperature in Kelvin, None when unknown."""
        value = self._read("color", "night-light-temperature", None)
        return value if isinstance(value, int) else None

    def set_night_light_temp(self, kelvin: int) -> None:
        self._write("color", "night-light-temperature", int(kelvin))

    def watch_night_light_temp(self, callback: Callback) -> Unsubscribe:
        return self._watch("color", "night-light-temperature", callback)

    def is_high_contrast(self) -> bool:
        return bool(self._read("a11y_interface", "high-contrast", False))

    def toggle_high_contrast(self) -> None:
        self._write("a11y_interface", "high-contrast", not self.is_high_contrast())

    def watch_high_contrast(self, callback: Callback) -> Unsubscribe:
        return self._watch("a11y_interface", "high-contrast", callback)

    def is_reduce_animations(self) -> bool:
        return not self._read("interface", "enable-animations", True)

    def toggle_reduce_animations(self) -> None:
        self._write("interface", "enable-animations", self.is_reduce_animations())

    def watch_reduce_animations(self, callback: Callback) -> Unsubscribe:
        return self._watch("interface", "enable-animations", callback)

    def is_hot_corners(self) -> bool:
        return bool(self._read("interface", "enable-hot-corners", False))

    def toggle_hot_corners(self) -> None:
        self._write("interface", "enable-hot-corners", not self.is_hot_corners())

    def watch_hot_corners(self, callback: Callback) -> Unsubscribe:
        return self._watch("interface", "enable-hot-corners", callback)

    def get_brightness(self) -> float:
        """Screen brightness in [0, 1], or -1 when unknown."""
        value = self._brightness.get("Brightness")
        if not isinstance(value, (int, float)) or value < 0:
            return -1.0
        return clamp_unit(value / SCREEN_BRIGHTNESS_MAX)

    def set_brightness(self, value: float) -> None:
        if not self._brightness.ready:
            return
        level = round(clamp_unit(value) * SCREEN_BRIGHTNESS_MAX)
        self._spawn(self._mutate("set screen brightness", self._brightness.set_property("Brightness", "i", level)))

    def is_large_text(self) -> bool:
        return self._read("interface", "text-scaling-factor", NORMAL_TEXT_SCALE) >= LARGE_TEXT_SCALE

    def toggle_large_text(self) -> None:
        self._write("interface", "text-scaling-factor", NORMAL_TEXT_SCALE if self.is_large_text() else LARGE_TEXT_SCALE)

    def watch_large_text(self, callback: Callback) -> Unsubscribe:
        return self._watch("interface", "text-scaling-factor", callback)

    # ------------------------------------------------------------------
    # Sound
    # ------------------------------------------------------------------

    def get_volume(self) -> float:
        """Default sink volume in [0, 1], or -1 before the mixer is ready."""
        if not self._mixer.ready:
            return -1.0
        return clamp_unit(self._mixer.sink_volume)

    def set_volume(self, value: float) -> None:
        if not self._mixer.ready:
            return
        self._spawn(self._mutate("set volume", self._mixer.set_sink_volume(clamp_unit(value))))

    def is_output_muted(self) -> bool:
        return self._mixer.ready and self._mixer.sink_muted

    def toggle_output_mute(self) -> None:
        if not self._mixer.ready:
            return
        self._spawn(self._mutate("toggle output mute", self._mixer.set_sink_muted(not self._mixer.sink_muted)))

    def is_mic_muted(self) -> bool:
        return self._mixer.ready and self._mixer.source_muted

    def toggle_mic_mute(self) -> None:
        if not self._mixer.ready:
            return
        self._spawn(self._mutate("toggle microphone mute", self._mixer.set_source_muted(not self._mixer.source_muted)))

    # ------------------------------------------------------------------
    # Connectivity
    # ------------------------------------------------------------------

    def is_wifi(self) -> bool:
        return bool(self._nm.get("WirelessEnabled", False))

    def is_wifi_hardware_enabled(self) -> bool:
        return bool(self._nm.get("WirelessHardwareEnabled", True))

    def toggle_wifi(self) -> None:
        if not self._nm.ready:
            return
        if not self.is_wifi_hardware_enabled():
            _LOGGER.info("Wi-Fi is disabled by a hardware switch; toggle ignored")
            return
        self._spawn(self._mutate("toggle Wi-Fi", self._nm.set_property("WirelessEnabled", "b", not self.is_wifi())))

    def is_bluetooth(self) -> bool:
        return not self._rfkill.get("BluetoothAirplaneMode", True)

    def is_bluetooth_hardware_enabled(self) -> bool:
        return not self._rfkill.get("BluetoothHardwareAirplaneMode", False)

    def toggle_bluetooth(self) -> None:
        if not self._rfkill.ready:
            return
        if not self.is_bluetooth_hardware_enabled():
            _LOGGER.info("Bluetooth is disabled by a hardware switch; toggle ignored")
            return
        # Turning bluetooth on means leaving bluetooth airplane mode, and vice versa
        self._spawn(
            self._mutate(
                "toggle Bluetooth",
                self._rfkill.set_property("BluetoothAirplaneMode", "b", self.is_bluetooth()),
            )
        )

    def is_airplane_mode(self) -> bool:
        return bool(self._rfkill.get("AirplaneMode", False))

    def is_airplane_hardware(self) -> bool:
        return bool(self._rfkill.get("HardwareAirplaneMode", False))

    def toggle_airplane_mode(self) -> None:
        if not self._rfkill.ready:
            return
        if self.is_airplane_hardware():
            _LOGGER.info("Airplane mode is forced by hardware; toggle ignored")
            return
        self._spawn(
            self._mutate(
                "toggle airplane mode",
                self._rfkill.set_property("AirplaneMode", "b", not self.is_airplane_mode()),
            )
        )

    def is_location(self) -> bool:
        return bool(self._read("location", "enabled", False))

    def toggle_location(self) -> None:
        self._write("location", "enabled", not self.is_location())

    def watch_location(self, callback: Callback) -> Unsubscribe:
        return self._watch("location", "enabled", callback)

    # ------------------------------------------------------------------
    # VPN
    # ------------------------------------------------------------------

    def is_vpn(self) -> bool:
        return self._vpn_active

    @property
    def vpn_active_path(self) -> str | None:
        """Object path of the active VPN connection, if any."""
        return self._vpn_active_path

    async def _refresh_vpn(self) -> None:
        """Probe every active connection and publish the VPN state once all probes finish.

        A refresh started later supersedes this one; its result is then dropped.
        """
        if not self._nm.ready or self._destroyed:
            return
        self._vpn_generation += 1
        generation = self._vpn_generation

        active = self._nm.get("ActiveConnections") or []
        paths = [path for path in active if isinstance(path, str)]
        matches = await asyncio.gather(*(self._probe_vpn(path) for path in paths))

        if generation != self._vpn_generation or self._destroyed:
            _LOGGER.debug("Dropping superseded VPN refresh %d", generation)
            return

        self._vpn_active_path = next((path for path, is_vpn in zip(paths, matches) if is_vpn), None)
        self._vpn_active = self._vpn_active_path is not None
        _LOGGER.debug("VPN active: %s (%s)", self._vpn_active, self._vpn_active_path)
        self._emit(ControllerEvent.VPN_CHANGED)

    async def _probe_vpn(self, path: str) -> bool:
        handle = self._handle_factory(NM_ACTIVE_CONNECTION.at(path))
        self._transient.add(handle)
        try:
            if not await handle.connect():
                return False
            return handle.get("Type") == NM_CONNECTION_TYPE_VPN
        finally:
            handle.close()
            self._transient.discard(handle)

    async def _find_first_vpn_profile(self) -> str | None:
        """Path of the first configured connection profile of type vpn."""
        settings = self._handle_factory(NM_SETTINGS)
        self._transient.add(settings)
        try:
            if not await settings.connect():
                return None
            try:
                paths = await settings.call("ListConnections")
            except BackendError as err:
                _LOGGER.debug("Could not list connection profiles: %s", err)
                return None
        finally:
            settings.close()
            self._transient.discard(settings)

        for path in paths or []:
            if await self._is_vpn_profile(path):
                return path
        return None

    async def _is_vpn_profile(self, path: str) -> bool:
        handle = self._handle_factory(NM_CONNECTION_SETTINGS.at(path))
        self._transient.add(handle)
        try:
            if not await handle.connect():
                return False
            try:
                settings = await handle.call("GetSettings")
            except BackendError as err:
                _LOGGER.debug("Could not read profile %s: %s", path, err)
                return False
        finally:
            handle.close()
            self._transient.discard(handle)

        connection = settings.get("connection") if isinstance(settings, dict) else None
        return isinstance(connection, dict) and connection.get("type") == NM_CONNECTION_TYPE_VPN

    async def _activate_first_vpn(self) -> None:
        profile = await self._find_first_vpn_profile()
        if profile is None:
            _LOGGER.info("No VPN connection profile configured")
            return
        try:
            await self._nm.call("ActivateConnection", profile, NM_NO_OBJECT, NM_NO_OBJECT)
        except BackendError as err:
            _LOGGER.warning("Could not activate VPN %s: %s", profile, err)
            return
        # NetworkManager reports the new connection before it finishes activating
        await asyncio.sleep(VPN_REFRESH_DELAY)
        await self._refresh_vpn()

    async def _deactivate_vpn(self, path: str) -> None:
        try:
            await self._nm.call("DeactivateConnection", path)
        except BackendError as err:
            _LOGGER.warning("Could not deactivate VPN %s: %s", path, err)
        await self._refresh_vpn()

    def toggle_vpn(self) -> None:
        if not self._nm.ready:
            return
        if self._vpn_active and self._vpn_active_path:
            self._spawn(self._deactivate_vpn(self._vpn_active_path))
        else:
            self._spawn(self._activate_first_vpn())

    # ------------------------------------------------------------------
    # Power
    # ------------------------------------------------------------------

    def is_keep_awake(self) -> bool:
        """True while an inhibitor cookie is held. The session manager is never queried."""
        return self._inhibit_cookie is not None

    def toggle_keep_awake(self) -> None:
        if self._inhibit_cookie is not None:
            cookie = self._inhibit_cookie
            self._inhibit_cookie = None
            self._emit(ControllerEvent.KEEP_AWAKE_CHANGED)
            self._spawn(self._uninhibit(cookie))
        elif self._inhibit_pending:
            self._release_on_arrival = not self._release_on_arrival
        elif self._session_manager.ready:
            self._inhibit_pending = True
            self._release_on_arrival = False
            self._spawn(self._inhibit())

    async def _inhibit(self) -> None:
        try:
            cookie = await self._session_manager.call("Inhibit", APP_ID, 0, INHIBIT_REASON, INHIBIT_FLAGS)
        except BackendError as err:
            _LOGGER.warning("Could not inhibit idle and suspend: %s", err)
            return
        finally:
            self._inhibit_pending = False

        if self._release_on_arrival:
            self._release_on_arrival = False
            await self._uninhibit(cookie)
            return
        self._inhibit_cookie = cookie
        _LOGGER.debug("Holding inhibitor cookie %s", cookie)
        self._emit(ControllerEvent.KEEP_AWAKE_CHANGED)

    async def _uninhibit(self, cookie: int) -> None:
        try:
            await self._session_manager.call("Uninhibit", cookie)
        except BackendError as err:
            _LOGGER.warning("Could not release inhibitor cookie %s: %s", cookie, err)
            return
        _LOGGER.debug("Released inhibitor cookie %s", cookie)

    def is_auto_suspend(self) -> bool:
        return self._read("power", "sleep-inactive-ac-type", "nothing") == "suspend"

    def toggle_auto_suspend(self) -> None:
        value = "nothing" if self.is_auto_suspend() else "suspend"
        self._write("power", "sleep-inactive-ac-type", value)
        self._write("power", "sleep-inactive-battery-type", value)

    def watch_auto_suspend(self, callback: Callback) -> Unsubscribe:
        return self._watch("power", "sleep-inactive-ac-type", callback)

    def get_kbd_backlight(self) -> float:
        """Keyboard backlight in [0, 1], or -1 when unknown."""
        if not self._kbd.ready or self._kbd_level is None or self._kbd_level < 0:
            return -1.0
        return clamp_unit(self._kbd_level / self._kbd_max)

    def set_kbd_backlight(self, value: float) -> None:
        if not self._kbd.ready:
            return
        self._spawn(self._set_kbd_level(round(clamp_unit(value) * self._kbd_max)))

    async def _set_kbd_level(self, level: int) -> None:
        try:
            await self._kbd.call("SetBrightness", level)
        except BackendError as err:
            _LOGGER.warning("Could not set keyboard backlight: %s", err)
            return
        self._kbd_level = level
        self._emit(ControllerEvent.KBD_BACKLIGHT_CHANGED)

    def get_power_profile(self) -> str:
        value = self._power_profiles.get("ActiveProfile")
        return value if isinstance(value, str) and value else DEFAULT_POWER_PROFILE

    def get_power_profiles(self) -> list[str]:
        """Names of the profiles power-profiles-daemon offers, in its order."""
        raw = self._power_profiles.get("Profiles")
        if not isinstance(raw, list):
            return [DEFAULT_POWER_PROFILE]
        names = [entry.get("Profile") for entry in raw if isinstance(entry, dict)]
        return [name for name in names if isinstance(name, str) and name] or [DEFAULT_POWER_PROFILE]

    def set_power_profile(self, profile: str) -> None:
        if not self._power_profiles.ready:
            return
        self._spawn(
            self._mutate(
                f"switch to power profile {profile}",
                self._power_profiles.set_property("ActiveProfile", "s", profile),
            )
        )

    # ------------------------------------------------------------------
    # Privacy, peripherals and accessibility
    # ------------------------------------------------------------------

    def is_dnd(self) -> bool:
        return not self._read("notifications", "show-banners", True)

    def toggle_dnd(self) -> None:
        self._write("notifications", "show-banners", self.is_dnd())

    def watch_dnd(self, callback: Callback) -> Unsubscribe:
        return self._watch("notifications", "show-banners", callback)

    def is_screen_lock(self) -> bool:
        return bool(self._read("screensaver", "lock-enabled", False))

    def toggle_screen_lock(self) -> None:
        self._write("screensaver", "lock-enabled", not self.is_screen_lock())

    def watch_screen_lock(self, callback: Callback) -> Unsubscribe:
        return self._watch("screensaver", "lock-enabled", callback)

    def lock_now(self) -> None:
        if not self._screensaver.ready:
            return
        self._spawn(self._mutate("lock the screen", self._screensaver.call("Lock")))

    def is_touchpad(self) -> bool:
        return self._read("touchpad", "send-events", None) == "enabled"

    def toggle_touchpad(self) -> None:
        self._write("touchpad", "send-events", "disabled" if self.is_touchpad() else "enabled")

    def watch_touchpad(self, callback: Callback) -> Unsubscribe:
        return self._watch("touchpad", "send-events", callback)

    def is_magnifier(self) -> bool:
        return bool(self._read("a11y_apps", "screen-magnifier-enabled", False))

    def toggle_magnifier(self) -> None:
        self._write("a11y_apps", "screen-magnifier-enabled", not self.is_magnifier())

    def watch_magnifier(self, callback: Callback) -> Unsubscribe:
        return self._watch("a11y_apps", "screen-magnifier-enabled", callback)
