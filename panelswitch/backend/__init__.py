"""Backend resources: D-Bus service handles, settings stores and the audio mixer."""

from __future__ import annotations

from .bus import BusKind, BusProvider
from .handle import HandleState, ServiceHandle
from .interfaces import ServiceSpec
from .mixer import MixerChannel, PactlMixer
from .settings import MemorySettingsStore, SettingsStore, gio_settings_factory

__all__ = [
    "BusKind",
    "BusProvider",
    "HandleState",
    "MemorySettingsStore",
    "MixerChannel",
    "PactlMixer",
    "ServiceHandle",
    "ServiceSpec",
    "SettingsStore",
    "gio_settings_factory",
]
