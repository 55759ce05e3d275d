"""Command line front end for panelswitch.

Usage:
    panelswitch status
    panelswitch toggle dark-mode
    panelswitch set volume 40%
    panelswitch profile power-saver
    panelswitch media play-pause
    panelswitch watch
"""

from __future__ import annotations

import argparse
import asyncio
import importlib.util
import logging
import signal
import sys

from .backend.bus import BusProvider
from .capabilities import SwitchKind, available_slider_defs, get_slider_defs, get_switch_defs, visible_switch_defs
from .config import load_config
from .controller import SwitchController
from .events import ControllerEvent, TrackerEvent
from .mpris import ActivePlayerTracker

_LOGGER = logging.getLogger(__name__)

MEDIA_ACTIONS = ("play-pause", "next", "previous")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="panelswitch",
        description="Desktop quick settings from the command line",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("--config", metavar="PATH", help="Preferences file (default: ~/.config/panelswitch/config.json)")

    commands = parser.add_subparsers(dest="command", required=True)
    commands.add_parser("status", help="Show switches, sliders, power profile and media")

    toggle = commands.add_parser("toggle", help="Toggle a switch")
    toggle.add_argument("switch_id", help="Switch id, e.g. dark-mode")

    set_slider = commands.add_parser("set", help="Set a slider")
    set_slider.add_argument("slider_id", help="Slider id, e.g. volume")
    set_slider.add_argument("value", help="0..1, or a percentage such as 40%%")

    profile = commands.add_parser("profile", help="Switch power profile")
    profile.add_argument("name", help="Profile name, e.g. balanced")

    media = commands.add_parser("media", help="Control the active media player")
    media.add_argument("action", choices=MEDIA_ACTIONS)

    commands.add_parser("watch", help="Print change events until interrupted")
    return parser


def parse_slider_value(text: str) -> float:
    """'40%' -> 0.4, '0.4' -> 0.4.

    Raises:
        ValueError: If text is not a number.
    """
    text = text.strip()
    if text.endswith("%"):
        return float(text[:-1]) / 100
    return float(text)


def _now_playing(tracker: ActivePlayerTracker) -> str:
    if not tracker.has_active_player():
        return "Nothing playing"
    state = "Playing" if tracker.is_playing() else "Paused"
    title = tracker.get_title() or "Unknown title"
    artist = tracker.get_artist()
    track = f"{artist} - {title}" if artist else title
    return f"{state}: {track} [{tracker.active_player}]"


def _print_status(controller: SwitchController, tracker: ActivePlayerTracker, cfg: dict) -> None:
    print("Switches:")
    for definition in visible_switch_defs(controller, cfg["visible_switches"]):
        if definition.kind is SwitchKind.ACTION:
            mark = "-"
        else:
            mark = "x" if definition.is_active() else " "
        print(f"  [{mark}] {definition.id:<20} {definition.label}")

    print("Sliders:")
    for slider in available_slider_defs(controller):
        line = f"  {slider.id:<20} {slider.label}"
        if cfg["show_value_labels"]:
            position = slider.position()
            line += "  --" if position is None else f"  {round(position * 100)}%"
        if slider.muted():
            line += " (muted)"
        print(line)

    if controller.has_power_profiles():
        profiles = ", ".join(controller.get_power_profiles())
        print(f"Power profile: {controller.get_power_profile()} ({profiles})")

    print(f"Media: {_now_playing(tracker)}")


def _toggle(controller: SwitchController, switch_id: str) -> int:
    definition = next((d for d in get_switch_defs(controller) if d.id == switch_id), None)
    if definition is None:
        print(f"Unknown switch: {switch_id}")
        return 1
    if not definition.available():
        print(f"Switch not available: {switch_id}")
        return 1
    definition.toggle()
    print(f"Toggled {definition.label}")
    return 0


def _set_slider(controller: SwitchController, slider_id: str, raw_value: str) -> int:
    slider = next((s for s in get_slider_defs(controller) if s.id == slider_id), None)
    if slider is None:
        print(f"Unknown slider: {slider_id}")
        return 1
    if not slider.available():
        print(f"Slider not available: {slider_id}")
        return 1
    try:
        value = parse_slider_value(raw_value)
    except ValueError:
        print(f"Invalid value: {raw_value}")
        return 1
    slider.set_value(value)
    print(f"Set {slider.label} to {round(min(max(value, 0.0), 1.0) * 100)}%")
    return 0


def _set_profile(controller: SwitchController, name: str) -> int:
    if not controller.has_power_profiles():
        print("Power profiles not available")
        return 1
    profiles = controller.get_power_profiles()
    if name not in profiles:
        print(f"Unknown power profile: {name} (available: {', '.join(profiles)})")
        return 1
    controller.set_power_profile(name)
    print(f"Power profile: {name}")
    return 0


def _media(tracker: ActivePlayerTracker, action: str) -> int:
    if not tracker.has_active_player():
        print("No active media player")
        return 1
    if action == "play-pause":
        tracker.play_pause()
    elif action == "next":
        tracker.next()
    else:
        tracker.previous()
    return 0


async def _wait_for_interrupt() -> None:
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for signum in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(signum, stop.set)
        except (NotImplementedError, RuntimeError):
            # Event loops without signal support fall back to KeyboardInterrupt
            pass
    await stop.wait()


async def _watch(controller: SwitchController, tracker: ActivePlayerTracker) -> int:
    for event in ControllerEvent:
        controller.connect(event, lambda event=event: print(f"{event.value}", flush=True))
    tracker.connect(TrackerEvent.CHANGED, lambda: print(f"media: {_now_playing(tracker)}", flush=True))
    print("Watching for changes, press Ctrl+C to stop", flush=True)
    await _wait_for_interrupt()
    return 0


async def main(argv: list[str] | None = None) -> int:
    """Run one command. Returns the process exit code."""
    args = build_parser().parse_args(argv)
    cfg = load_config(args.config)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else getattr(logging, cfg["log_level"]),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    buses = BusProvider()
    controller = SwitchController(buses=buses)
    tracker = ActivePlayerTracker(buses=buses)
    try:
        await asyncio.gather(controller.wait_ready(), tracker.wait_ready())

        if args.command == "status":
            _print_status(controller, tracker, cfg)
            rc = 0
        elif args.command == "toggle":
            rc = _toggle(controller, args.switch_id)
        elif args.command == "set":
            rc = _set_slider(controller, args.slider_id, args.value)
        elif args.command == "profile":
            rc = _set_profile(controller, args.name)
        elif args.command == "media":
            rc = _media(tracker, args.action)
        else:
            rc = await _watch(controller, tracker)

        # Let fire-and-forget mutations reach their services before teardown
        await asyncio.gather(controller.wait_idle(), tracker.wait_idle())
        return rc
    finally:
        controller.destroy()
        tracker.destroy()
        await controller.wait_idle()
        buses.disconnect()


def run() -> None:
    """Console entry point."""
    if importlib.util.find_spec("gi") is not None:
        # GSettings change signals need the GLib main context
        from .backend.gio import install_glib_event_loop

        install_glib_event_loop()
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        sys.exit(130)
