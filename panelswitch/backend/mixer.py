"""Default sink/source state through pactl.

Works against PulseAudio and PipeWire (pipewire-pulse). State is read with the
get-* commands and kept current by a long running `pactl subscribe`.
"""

from __future__ import annotations

import asyncio
import logging
import os
import re
import shutil
from collections.abc import Callable
from enum import Enum

from ..const import DEFAULT_SINK, DEFAULT_SOURCE, PA_VOLUME_NORM
from ..exceptions import MixerError

_LOGGER = logging.getLogger(__name__)

_RAW_VOLUME = re.compile(r"(\d+)\s*/\s*\d+%")
_SUBSCRIBE_EVENT = re.compile(r"Event '([\w-]+)' on ([\w-]+)")

PACTL_TIMEOUT = 3.0


def pactl_env() -> dict[str, str]:
    """Environment for pactl runs. pactl translates its output; the parsers expect the C locale."""
    return {**os.environ, "LC_ALL": "C"}


class MixerChannel(Enum):
    """Which side of the mixer changed."""

    SINK = "sink"
    SOURCE = "source"


MixerCallback = Callable[[MixerChannel], None]


def parse_volume(output: str) -> float | None:
    """Loudest channel of `pactl get-sink-volume` output as a fraction of 100%."""
    raw = [int(value) for value in _RAW_VOLUME.findall(output)]
    if not raw:
        return None
    return max(raw) / PA_VOLUME_NORM


def parse_mute(output: str) -> bool:
    """`Mute: yes` -> True."""
    _, _, value = output.partition(":")
    return value.strip().lower() == "yes"


def parse_subscribe_event(line: str) -> set[MixerChannel]:
    """Channels affected by one `pactl subscribe` line.

    Server events cover default device switches, so they touch both channels.
    Stream events (sink-input, source-output) are ignored.
    """
    match = _SUBSCRIBE_EVENT.search(line)
    if not match:
        return set()
    facility = match.group(2)
    if facility == "sink":
        return {MixerChannel.SINK}
    if facility == "source":
        return {MixerChannel.SOURCE}
    if facility == "server":
        return {MixerChannel.SINK, MixerChannel.SOURCE}
    return set()


class PactlMixer:
    """Audio mixer resource for the default output and input device."""

    def __init__(self, binary: str = "pactl") -> None:
        self._binary = binary
        self._callback: MixerCallback | None = None
        self._ready = False
        self._closed = False

        self.sink_volume = 0.0
        self.sink_muted = False
        self.source_muted = False

        self._init_task: asyncio.Task[None] | None = None
        self._watch_task: asyncio.Task[None] | None = None

    @property
    def ready(self) -> bool:
        return self._ready and not self._closed

    def open(self, callback: MixerCallback) -> None:
        """Load the current state and start watching for changes.

        Without a running event loop the mixer stays not ready.
        """
        self._callback = callback
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            _LOGGER.warning("No running event loop; audio mixer not started")
            return
        self._init_task = loop.create_task(self._start())

    async def wait_ready(self) -> None:
        """Wait for the first state load to finish, successful or not."""
        if self._init_task is not None:
            await asyncio.wait({self._init_task})

    async def _start(self) -> None:
        if shutil.which(self._binary) is None:
            _LOGGER.info("%s not found; audio mixer unavailable", self._binary)
            return
        try:
            await self.refresh(MixerChannel.SINK)
            await self.refresh(MixerChannel.SOURCE)
        except MixerError as err:
            _LOGGER.info("Audio mixer unavailable: %s", err)
            return
        if self._closed:
            return
        self._ready = True
        self._notify(MixerChannel.SINK)
        self._notify(MixerChannel.SOURCE)
        self._watch_task = asyncio.get_running_loop().create_task(self._watch())
        self._watch_task.add_done_callback(self._watch_done)

    async def _run(self, *args: str) -> str:
        try:
            process = await asyncio.create_subprocess_exec(
                self._binary,
                *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=pactl_env(),
            )
        except OSError as err:
            raise MixerError("Could not run pactl", service=self._binary, operation=args[0], last_error=err) from err

        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=PACTL_TIMEOUT)
        except asyncio.TimeoutError as err:
            process.kill()
            await process.wait()
            raise MixerError("pactl timed out", service=self._binary, operation=args[0], last_error=err) from err

        if process.returncode != 0:
            raise MixerError(
                f"pactl exited with {process.returncode}: {stderr.decode(errors='replace').strip()}",
                service=self._binary,
                operation=args[0],
            )
        return stdout.decode(errors="replace")

    async def refresh(self, channel: MixerChannel) -> None:
        """Re-read one channel's state from the server."""
        if channel is MixerChannel.SINK:
            volume = parse_volume(await self._run("get-sink-volume", DEFAULT_SINK))
            muted = parse_mute(await self._run("get-sink-mute", DEFAULT_SINK))
            if volume is not None:
                self.sink_volume = volume
            self.sink_muted = muted
        else:
            self.source_muted = parse_mute(await self._run("get-source-mute", DEFAULT_SOURCE))

    def _notify(self, channel: MixerChannel) -> None:
        if self._callback is None or self._closed:
            return
        try:
            self._callback(channel)
        except Exception as err:
            _LOGGER.warning("Error in mixer callback: %s", err, exc_info=True)

    async def _watch(self) -> None:
        process = await asyncio.create_subprocess_exec(
            self._binary,
            "subscribe",
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.DEVNULL,
            env=pactl_env(),
        )
        assert process.stdout is not None
        try:
            while not self._closed:
                line = await process.stdout.readline()
                if not line:
                    break
                for channel in parse_subscribe_event(line.decode(errors="replace")):
                    try:
                        await self.refresh(channel)
                    except MixerError as err:
                        _LOGGER.debug("Mixer refresh failed: %s", err)
                        continue
                    self._notify(channel)
        finally:
            if process.returncode is None:
                try:
                    process.terminate()
                except ProcessLookupError:
                    pass
                await process.wait()
        if not self._closed:
            _LOGGER.warning("pactl subscribe exited; audio state is no longer updated")

    def _watch_done(self, task: asyncio.Task[None]) -> None:
        if task.cancelled():
            return
        err = task.exception()
        if err is not None:
            _LOGGER.warning("Could not watch audio changes: %s", err, exc_info=err)

    async def set_sink_volume(self, fraction: float) -> None:
        """Set the default sink volume. fraction is clamped to [0, 1]."""
        fraction = min(max(fraction, 0.0), 1.0)
        await self._run("set-sink-volume", DEFAULT_SINK, str(round(fraction * PA_VOLUME_NORM)))
        self.sink_volume = fraction
        self._notify(MixerChannel.SINK)

    async def set_sink_muted(self, muted: bool) -> None:
        await self._run("set-sink-mute", DEFAULT_SINK, "1" if muted else "0")
        self.sink_muted = muted
        self._notify(MixerChannel.SINK)

    async def set_source_muted(self, muted: bool) -> None:
        await self._run("set-source-mute", DEFAULT_SOURCE, "1" if muted else "0")
        self.source_muted = muted
        self._notify(MixerChannel.SOURCE)

    def close(self) -> None:
        """Stop watching. Safe to call repeatedly.

        The watch task terminates and reaps the `pactl subscribe` child as it unwinds.
        """
        if self._closed:
            return
        self._closed = True
        self._callback = None
        for task in (self._init_task, self._watch_task):
            if task is not None and not task.done():
                task.cancel()
