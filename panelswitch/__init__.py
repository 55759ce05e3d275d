"""panelswitch - desktop quick settings over GSettings, D-Bus and PulseAudio.

SwitchController aggregates the toggles and sliders, ActivePlayerTracker
follows MPRIS media players, and the capabilities module binds both into
uniform definitions for a presentation layer.
"""

from __future__ import annotations

from .capabilities import (
    SWITCH_IDS,
    SWITCH_SECTIONS,
    SliderDefinition,
    SwitchDefinition,
    SwitchKind,
    available_slider_defs,
    get_slider_defs,
    get_switch_defs,
    kelvin_to_ui,
    ui_to_kelvin,
    visible_switch_defs,
)
from .controller import SwitchController
from .coverart import CoverArtFetcher
from .events import ControllerEvent, TrackerEvent
from .exceptions import (
    BackendCallError,
    BackendError,
    BackendUnavailableError,
    MixerError,
    PanelSwitchError,
    SettingsUnavailableError,
)
from .mpris import ActivePlayerTracker, select_active_player

__version__ = "0.1.0"

__all__ = [
    "ActivePlayerTracker",
    "BackendCallError",
    "BackendError",
    "BackendUnavailableError",
    "ControllerEvent",
    "CoverArtFetcher",
    "MixerError",
    "PanelSwitchError",
    "SWITCH_IDS",
    "SWITCH_SECTIONS",
    "SettingsUnavailableError",
    "SliderDefinition",
    "SwitchController",
    "SwitchDefinition",
    "SwitchKind",
    "TrackerEvent",
    "available_slider_defs",
    "get_slider_defs",
    "get_switch_defs",
    "kelvin_to_ui",
    "select_active_player",
    "ui_to_kelvin",
    "visible_switch_defs",
]
