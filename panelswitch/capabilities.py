"""Switch and slider definitions bound against a live SwitchController.

The builders hold no logic beyond binding controller methods into the uniform
SwitchDefinition/SliderDefinition shape. They can be called any number of
times; each call returns fresh definitions and has no side effects.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from .const import NIGHT_LIGHT_MIN_KELVIN, NIGHT_LIGHT_SPAN_KELVIN
from .events import Callback, ControllerEvent, Unsubscribe, noop_unsubscribe

if TYPE_CHECKING:
    from .controller import SwitchController

SWITCH_SECTIONS = ("display", "sound", "connectivity", "power", "privacy", "system", "accessibility")

# Every switch id in registry order
SWITCH_IDS = (
    "dark-mode",
    "night-light",
    "high-contrast",
    "reduce-animations",
    "hot-corners",
    "output-mute",
    "mic-mute",
    "wifi",
    "bluetooth",
    "airplane-mode",
    "vpn",
    "location",
    "keep-awake",
    "auto-suspend",
    "keyboard-backlight",
    "dnd",
    "screen-lock",
    "lock-now",
    "touchpad",
    "magnifier",
    "large-text",
)


class SwitchKind(str, Enum):
    """TOGGLE has an on/off state, ACTION is fire-and-forget."""

    TOGGLE = "toggle"
    ACTION = "action"


def clamp_unit(value: float) -> float:
    """Clamp to [0, 1]. NaN becomes 0."""
    if math.isnan(value):
        return 0.0
    return min(max(float(value), 0.0), 1.0)


def kelvin_to_ui(kelvin: float) -> float:
    """Night-light temperature to slider position (unclamped)."""
    return (kelvin - NIGHT_LIGHT_MIN_KELVIN) / NIGHT_LIGHT_SPAN_KELVIN


def ui_to_kelvin(position: float) -> int:
    """Slider position to night-light temperature, rounded half up to whole Kelvin."""
    return math.floor(NIGHT_LIGHT_MIN_KELVIN + position * NIGHT_LIGHT_SPAN_KELVIN + 0.5)


@dataclass(frozen=True)
class SwitchDefinition:
    """One tile of the switch grid."""

    id: str
    label: str
    subtitle: str
    icon: str
    section: str
    kind: SwitchKind
    is_active: Callable[[], bool]
    toggle: Callable[[], None]
    watch: Callable[[Callback], Unsubscribe]
    is_available: Callable[[], bool] | None = None

    def available(self) -> bool:
        return self.is_available() if self.is_available is not None else True


@dataclass(frozen=True)
class SliderDefinition:
    """One continuous control. get_value returns a value in [0, 1] or -1 when unknown."""

    id: str
    label: str
    subtitle: str
    icon: str
    get_value: Callable[[], float]
    set_value: Callable[[float], None]
    watch: Callable[[Callback], Unsubscribe]
    icon_muted: str | None = None
    is_muted: Callable[[], bool] | None = None
    is_available: Callable[[], bool] | None = None
    watch_availability: Callable[[Callback], Unsubscribe] | None = None
    minimum: float = 0.0
    maximum: float = 1.0

    def available(self) -> bool:
        return self.is_available() if self.is_available is not None else True

    def position(self) -> float | None:
        """Value safe to hand to a widget, or None while the value is unknown."""
        value = self.get_value()
        if value < 0:
            return None
        return clamp_unit(value)

    def muted(self) -> bool:
        return self.is_muted() if self.is_muted is not None else False


def _on(ctrl: SwitchController, event: ControllerEvent) -> Callable[[Callback], Unsubscribe]:
    return lambda callback: ctrl.connect(event, callback)


def _no_watch(_callback: Callback) -> Unsubscribe:
    return noop_unsubscribe


def _settings(ctrl: SwitchController, alias: str, key: str) -> Callable[[], bool]:
    return lambda: ctrl.has_settings(alias, key)


def get_switch_defs(ctrl: SwitchController) -> list[SwitchDefinition]:
    """Every switch in display order."""
    toggle = SwitchKind.TOGGLE
    return [
        SwitchDefinition(
            id="dark-mode",
            label="Dark Mode",
            subtitle="Color scheme preference",
            icon="weather-clear-night-symbolic",
            section="display",
            kind=toggle,
            is_active=ctrl.is_dark_mode,
            toggle=ctrl.toggle_dark_mode,
            watch=ctrl.watch_dark_mode,
            is_available=_settings(ctrl, "interface", "color-scheme"),
        ),
        SwitchDefinition(
            id="night-light",
            label="Night Light",
            subtitle="Warmer colors in the evening",
            icon="night-light-symbolic",
            section="display",
            kind=toggle,
            is_active=ctrl.is_night_light,
            toggle=ctrl.toggle_night_light,
            watch=ctrl.watch_night_light,
            is_available=_settings(ctrl, "color", "night-light-enabled"),
        ),
        SwitchDefinition(
            id="high-contrast",
            label="High Contrast",
            subtitle="Accessibility display mode",
            icon="display-brightness-symbolic",
            section="display",
            kind=toggle,
            is_active=ctrl.is_high_contrast,
            toggle=ctrl.toggle_high_contrast,
            watch=ctrl.watch_high_contrast,
            is_available=_settings(ctrl, "a11y_interface", "high-contrast"),
        ),
        SwitchDefinition(
            id="reduce-animations",
            label="No Animations",
            subtitle="Disable motion effects",
            icon="media-skip-forward-symbolic",
            section="display",
            kind=toggle,
            is_active=ctrl.is_reduce_animations,
            toggle=ctrl.toggle_reduce_animations,
            watch=ctrl.watch_reduce_animations,
            is_available=_settings(ctrl, "interface", "enable-animations"),
        ),
        SwitchDefinition(
            id="hot-corners",
            label="Hot Corners",
            subtitle="Gesture to open overview",
            icon="zoom-in-symbolic",
            section="display",
            kind=toggle,
            is_active=ctrl.is_hot_corners,
            toggle=ctrl.toggle_hot_corners,
            watch=ctrl.watch_hot_corners,
            is_available=_settings(ctrl, "interface", "enable-hot-corners"),
        ),
        SwitchDefinition(
            id="output-mute",
            label="Mute",
            subtitle="System audio output",
            icon="audio-volume-muted-symbolic",
            section="sound",
            kind=toggle,
            is_active=ctrl.is_output_muted,
            toggle=ctrl.toggle_output_mute,
            watch=_on(ctrl, ControllerEvent.VOLUME_CHANGED),
            is_available=ctrl.has_mixer,
        ),
        SwitchDefinition(
            id="mic-mute",
            label="Mic Off",
            subtitle="Microphone input",
            icon="microphone-sensitivity-muted-symbolic",
            section="sound",
            kind=toggle,
            is_active=ctrl.is_mic_muted,
            toggle=ctrl.toggle_mic_mute,
            watch=_on(ctrl, ControllerEvent.MIC_CHANGED),
            is_available=ctrl.has_mixer,
        ),
        SwitchDefinition(
            id="wifi",
            label="Wi-Fi",
            subtitle="Wireless networking",
            icon="network-wireless-symbolic",
            section="connectivity",
            kind=toggle,
            is_active=ctrl.is_wifi,
            toggle=ctrl.toggle_wifi,
            watch=_on(ctrl, ControllerEvent.WIFI_CHANGED),
            is_available=ctrl.has_network_manager,
        ),
        SwitchDefinition(
            id="bluetooth",
            label="Bluetooth",
            subtitle="Nearby devices",
            icon="bluetooth-active-symbolic",
            section="connectivity",
            kind=toggle,
            is_active=ctrl.is_bluetooth,
            toggle=ctrl.toggle_bluetooth,
            watch=_on(ctrl, ControllerEvent.RFKILL_CHANGED),
            is_available=ctrl.has_rfkill,
        ),
        SwitchDefinition(
            id="airplane-mode",
            label="Airplane Mode",
            subtitle="Disable all radios",
            icon="airplane-mode-symbolic",
            section="connectivity",
            kind=toggle,
            is_active=ctrl.is_airplane_mode,
            toggle=ctrl.toggle_airplane_mode,
            watch=_on(ctrl, ControllerEvent.RFKILL_CHANGED),
            is_available=ctrl.has_rfkill,
        ),
        SwitchDefinition(
            id="vpn",
            label="VPN",
            subtitle="Virtual private network",
            icon="network-vpn-symbolic",
            section="connectivity",
            kind=toggle,
            is_active=ctrl.is_vpn,
            toggle=ctrl.toggle_vpn,
            watch=_on(ctrl, ControllerEvent.VPN_CHANGED),
            is_available=ctrl.has_network_manager,
        ),
        SwitchDefinition(
            id="location",
            label="Location",
            subtitle="Location services",
            icon="find-location-symbolic",
            section="connectivity",
            kind=toggle,
            is_active=ctrl.is_location,
            toggle=ctrl.toggle_location,
            watch=ctrl.watch_location,
            is_available=_settings(ctrl, "location", "enabled"),
        ),
        SwitchDefinition(
            id="keep-awake",
            label="Keep Awake",
            subtitle="Prevent screen sleep",
            icon="my-computer-symbolic",
            section="power",
            kind=toggle,
            is_active=ctrl.is_keep_awake,
            toggle=ctrl.toggle_keep_awake,
            watch=_on(ctrl, ControllerEvent.KEEP_AWAKE_CHANGED),
            is_available=ctrl.has_session_manager,
        ),
        SwitchDefinition(
            id="auto-suspend",
            label="Auto Sleep",
            subtitle="Automatic suspend",
            icon="system-suspend-symbolic",
            section="power",
            kind=toggle,
            is_active=ctrl.is_auto_suspend,
            toggle=ctrl.toggle_auto_suspend,
            watch=ctrl.watch_auto_suspend,
            is_available=_settings(ctrl, "power", "sleep-inactive-ac-type"),
        ),
        SwitchDefinition(
            id="keyboard-backlight",
            label="Kbd Light",
            subtitle="Keyboard illumination",
            icon="input-keyboard-symbolic",
            section="power",
            kind=toggle,
            is_active=lambda: ctrl.get_kbd_backlight() > 0,
            toggle=lambda: ctrl.set_kbd_backlight(0.0 if ctrl.get_kbd_backlight() > 0 else 1.0),
            watch=_on(ctrl, ControllerEvent.KBD_BACKLIGHT_CHANGED),
            is_available=ctrl.has_kbd_backlight,
        ),
        SwitchDefinition(
            id="dnd",
            label="Do Not Disturb",
            subtitle="Mute all notifications",
            icon="notifications-disabled-symbolic",
            section="privacy",
            kind=toggle,
            is_active=ctrl.is_dnd,
            toggle=ctrl.toggle_dnd,
            watch=ctrl.watch_dnd,
            is_available=_settings(ctrl, "notifications", "show-banners"),
        ),
        SwitchDefinition(
            id="screen-lock",
            label="Screen Lock",
            subtitle="Automatic screen lock",
            icon="changes-prevent-symbolic",
            section="privacy",
            kind=toggle,
            is_active=ctrl.is_screen_lock,
            toggle=ctrl.toggle_screen_lock,
            watch=ctrl.watch_screen_lock,
            is_available=_settings(ctrl, "screensaver", "lock-enabled"),
        ),
        SwitchDefinition(
            id="lock-now",
            label="Lock Now",
            subtitle="Lock screen immediately",
            icon="system-lock-screen-symbolic",
            section="privacy",
            kind=SwitchKind.ACTION,
            is_active=lambda: False,
            toggle=ctrl.lock_now,
            watch=_no_watch,
            is_available=ctrl.has_screensaver,
        ),
        SwitchDefinition(
            id="touchpad",
            label="Touchpad",
            subtitle="Built-in trackpad",
            icon="input-touchpad-symbolic",
            section="system",
            kind=toggle,
            is_active=ctrl.is_touchpad,
            toggle=ctrl.toggle_touchpad,
            watch=ctrl.watch_touchpad,
            is_available=_settings(ctrl, "touchpad", "send-events"),
        ),
        SwitchDefinition(
            id="magnifier",
            label="Magnifier",
            subtitle="Screen magnification",
            icon="zoom-fit-best-symbolic",
            section="accessibility",
            kind=toggle,
            is_active=ctrl.is_magnifier,
            toggle=ctrl.toggle_magnifier,
            watch=ctrl.watch_magnifier,
            is_available=_settings(ctrl, "a11y_apps", "screen-magnifier-enabled"),
        ),
        SwitchDefinition(
            id="large-text",
            label="Large Text",
            subtitle="Increase text scaling",
            icon="format-text-larger-symbolic",
            section="accessibility",
            kind=toggle,
            is_active=ctrl.is_large_text,
            toggle=ctrl.toggle_large_text,
            watch=ctrl.watch_large_text,
            is_available=_settings(ctrl, "interface", "text-scaling-factor"),
        ),
    ]


def _night_light_position(ctrl: SwitchController) -> float:
    kelvin = ctrl.get_night_light_temp()
    if kelvin is None:
        return -1.0
    return clamp_unit(kelvin_to_ui(kelvin))


def get_slider_defs(ctrl: SwitchController) -> list[SliderDefinition]:
    """Every slider in display order."""
    return [
        SliderDefinition(
            id="volume",
            label="Volume",
            subtitle="Audio output",
            icon="audio-volume-high-symbolic",
            icon_muted="audio-volume-muted-symbolic",
            get_value=ctrl.get_volume,
            set_value=lambda value: ctrl.set_volume(clamp_unit(value)),
            is_muted=ctrl.is_output_muted,
            watch=_on(ctrl, ControllerEvent.VOLUME_CHANGED),
            is_available=ctrl.has_mixer,
        ),
        SliderDefinition(
            id="brightness",
            label="Brightness",
            subtitle="Display backlight",
            icon="display-brightness-symbolic",
            get_value=ctrl.get_brightness,
            set_value=lambda value: ctrl.set_brightness(clamp_unit(value)),
            watch=_on(ctrl, ControllerEvent.BRIGHTNESS_CHANGED),
            is_available=ctrl.has_brightness,
        ),
        SliderDefinition(
            id="night-light-temp",
            label="Warmth",
            subtitle="Night light temperature",
            icon="night-light-symbolic",
            get_value=lambda: _night_light_position(ctrl),
            set_value=lambda value: ctrl.set_night_light_temp(ui_to_kelvin(clamp_unit(value))),
            watch=ctrl.watch_night_light_temp,
            # Only meaningful while night light is on
            is_available=ctrl.is_night_light,
            watch_availability=ctrl.watch_night_light,
        ),
        SliderDefinition(
            id="kbd-backlight",
            label="Kbd Light",
            subtitle="Keyboard backlight",
            icon="input-keyboard-symbolic",
            get_value=ctrl.get_kbd_backlight,
            set_value=lambda value: ctrl.set_kbd_backlight(clamp_unit(value)),
            watch=_on(ctrl, ControllerEvent.KBD_BACKLIGHT_CHANGED),
            is_available=ctrl.has_kbd_backlight,
        ),
    ]


def visible_switch_defs(ctrl: SwitchController, visible_ids: Iterable[str]) -> list[SwitchDefinition]:
    """Definitions in the order of visible_ids, skipping unknown and unavailable ones."""
    by_id = {definition.id: definition for definition in get_switch_defs(ctrl)}
    result = []
    for switch_id in visible_ids:
        definition = by_id.get(switch_id)
        if definition is not None and definition.available():
            result.append(definition)
    return result


def available_slider_defs(ctrl: SwitchController) -> list[SliderDefinition]:
    return [definition for definition in get_slider_defs(ctrl) if definition.available()]
