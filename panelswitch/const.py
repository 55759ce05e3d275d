"""Constants shared across panelswitch modules."""

from __future__ import annotations

from typing import Final

APP_ID: Final = "panelswitch"

# GSettings schemas, keyed by the alias the controller uses
SETTINGS_SCHEMAS: Final[dict[str, str]] = {
    "interface": "org.gnome.desktop.interface",
    "color": "org.gnome.settings-daemon.plugins.color",
    "a11y_apps": "org.gnome.desktop.a11y.applications",
    "a11y_interface": "org.gnome.desktop.a11y.interface",
    "notifications": "org.gnome.desktop.notifications",
    "screensaver": "org.gnome.desktop.screensaver",
    "touchpad": "org.gnome.desktop.peripherals.touchpad",
    "location": "org.gnome.system.location",
    "power": "org.gnome.settings-daemon.plugins.power",
}

# Night light slider range (Kelvin). GSettings itself accepts 1000-10000.
NIGHT_LIGHT_MIN_KELVIN: Final = 1700
NIGHT_LIGHT_SPAN_KELVIN: Final = 3000

LARGE_TEXT_SCALE: Final = 1.25
NORMAL_TEXT_SCALE: Final = 1.0

# gsd-power reports screen brightness as a percentage
SCREEN_BRIGHTNESS_MAX: Final = 100

# org.gnome.SessionManager.Inhibit flags: 4 = suspend, 8 = idle
INHIBIT_FLAGS: Final = 4 | 8
INHIBIT_REASON: Final = "Keep Awake"

NM_CONNECTION_TYPE_VPN: Final = "vpn"
NM_NO_OBJECT: Final = "/"
# Delay before re-reading active connections after an activation request
VPN_REFRESH_DELAY: Final = 1.5

DEFAULT_POWER_PROFILE: Final = "balanced"

MPRIS_PREFIX: Final = "org.mpris.MediaPlayer2."
MPRIS_PATH: Final = "/org/mpris/MediaPlayer2"

PLAYBACK_PLAYING: Final = "Playing"
PLAYBACK_PAUSED: Final = "Paused"

# PulseAudio volume corresponding to 100%
PA_VOLUME_NORM: Final = 65536
DEFAULT_SINK: Final = "@DEFAULT_SINK@"
DEFAULT_SOURCE: Final = "@DEFAULT_SOURCE@"
