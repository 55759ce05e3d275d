"""ActivePlayerTracker - follows every MPRIS player on the session bus.

Players are discovered through the bus daemon (ListNames plus
NameOwnerChanged) and tracked through their PropertiesChanged signal. One of
them is selected as the active player:

1. the first player, in discovery order, that is Playing;
2. otherwise the first one that is Paused;
3. otherwise the first one.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Coroutine, Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, TypeVar

from .backend.bus import BusProvider
from .backend.handle import ServiceHandle
from .backend.interfaces import BUS_DAEMON, MPRIS_PLAYER, ServiceSpec
from .const import MPRIS_PREFIX, PLAYBACK_PAUSED, PLAYBACK_PLAYING
from .coverart import CoverArtFetcher
from .events import Callback, EventEmitter, TrackerEvent, Unsubscribe, noop_unsubscribe
from .exceptions import BackendError

_LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

HandleFactory = Callable[[ServiceSpec], ServiceHandle]


class PeerState(Enum):
    """Lifecycle of one discovered player."""

    DISCOVERED = "discovered"
    CONNECTING = "connecting"
    TRACKED = "tracked"
    FAILED = "failed"


@dataclass
class MediaPeer:
    """One MPRIS player and its connection."""

    name: str
    handle: ServiceHandle
    state: PeerState = PeerState.DISCOVERED
    unsubscribe: Unsubscribe = field(default=noop_unsubscribe)

    @property
    def playback_status(self) -> str | None:
        status = self.handle.get("PlaybackStatus")
        return status if isinstance(status, str) else None


def select_active_player(candidates: Iterable[tuple[T, str | None]]) -> T | None:
    """Pick the active item from (item, playback status) pairs in discovery order.

    The first Playing item wins outright. A Paused item is kept as the
    provisional choice while the scan looks for a Playing one; later items
    with any other status never replace it. Without Playing or Paused items
    the first item wins.

    Returns:
        The selected item, or None for no candidates.
    """
    first: T | None = None
    paused: T | None = None
    seen = False
    for item, status in candidates:
        if status == PLAYBACK_PLAYING:
            return item
        if status == PLAYBACK_PAUSED and paused is None:
            paused = item
        if not seen:
            first = item
            seen = True
    return paused if paused is not None else first


def _text(value: Any) -> str:
    return value if isinstance(value, str) else ""


class ActivePlayerTracker:
    """Live view of what is playing across all MPRIS players."""

    def __init__(
        self,
        *,
        handle_factory: HandleFactory | None = None,
        buses: BusProvider | None = None,
        cover_art: CoverArtFetcher | None = None,
    ) -> None:
        """Start discovering players in the background.

        Args:
            handle_factory: Builds a ServiceHandle for a ServiceSpec.
            buses: Bus provider shared with other components; one is created
                and owned when omitted.
            cover_art: Fetcher used by get_cover_art().
        """
        self._emitter: EventEmitter[TrackerEvent] = EventEmitter()
        self._tasks: set[asyncio.Task[Any]] = set()
        self._destroyed = False

        self._owns_buses = buses is None
        self._buses = buses or BusProvider()
        self._handle_factory: HandleFactory = handle_factory or (lambda spec: ServiceHandle(spec, self._buses))
        self._cover_art = cover_art or CoverArtFetcher()

        self._peers: dict[str, MediaPeer] = {}
        self._active: MediaPeer | None = None

        self._bus_daemon = self._handle_factory(BUS_DAEMON)
        self._name_watch: Unsubscribe = noop_unsubscribe
        self._init_task = self._spawn(self._discover())

    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task[Any] | None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            coro.close()
            _LOGGER.warning("No running event loop; media player discovery skipped")
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
            _LOGGER.error("Media tracker task failed: %s", err, exc_info=err)

    async def wait_ready(self) -> None:
        """Wait until the initial player enumeration and its connections are done."""
        if self._init_task is not None:
            await asyncio.wait({self._init_task})

    async def wait_idle(self) -> None:
        """Wait for pending background operations, including ones they start."""
        while pending := {task for task in self._tasks if not task.done()}:
            await asyncio.wait(pending)

    def connect(self, event: TrackerEvent, callback: Callback) -> Unsubscribe:
        if self._destroyed:
            return noop_unsubscribe
        return self._emitter.connect(event, callback)

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------

    async def _discover(self) -> None:
        if not await self._bus_daemon.connect() or self._destroyed:
            return
        self._name_watch = self._bus_daemon.watch_signal("NameOwnerChanged", self._on_name_owner_changed)
        try:
            names = await self._bus_daemon.call("ListNames")
        except BackendError as err:
            _LOGGER.warning("Could not list bus names: %s", err)
            return
        players = [name for name in names or [] if isinstance(name, str) and name.startswith(MPRIS_PREFIX)]
        _LOGGER.debug("Found %d media players", len(players))
        await asyncio.gather(*(self._add_player(name) for name in players))

    def _on_name_owner_changed(self, name: Any, _old_owner: Any, new_owner: Any) -> None:
        if not isinstance(name, str) or not name.startswith(MPRIS_PREFIX):
            return
        if new_owner:
            self._spawn(self._add_player(name))
        else:
            self._remove_player(name)

    async def _add_player(self, name: str) -> None:
        if name in self._peers or self._destroyed:
            return
        peer = MediaPeer(name=name, handle=self._handle_factory(MPRIS_PLAYER.named(name)))
        # Inserted now so discovery order, not connect order, drives selection
        self._peers[name] = peer
        peer.state = PeerState.CONNECTING

        connected = await peer.handle.connect()

        if self._peers.get(name) is not peer:
            # Removed (or replaced) while connecting
            peer.handle.close()
            return
        if not connected:
            peer.state = PeerState.FAILED
            del self._peers[name]
            peer.handle.close()
            _LOGGER.debug("Dropping media player %s", name)
            return

        peer.state = PeerState.TRACKED
        peer.unsubscribe = peer.handle.watch_properties(lambda _changed: self._update())
        _LOGGER.debug("Tracking media player %s", name)
        self._update()

    def _remove_player(self, name: str) -> None:
        peer = self._peers.pop(name, None)
        if peer is None:
            return
        was_tracked = peer.state is PeerState.TRACKED
        peer.unsubscribe()
        peer.handle.close()
        _LOGGER.debug("Media player %s went away", name)
        if was_tracked:
            self._update()

    def _update(self) -> None:
        if self._destroyed:
            return
        tracked = [(peer, peer.playback_status) for peer in self._peers.values() if peer.state is PeerState.TRACKED]
        self._active = select_active_player(tracked)
        self._emitter.emit(TrackerEvent.CHANGED)

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def players(self) -> list[str]:
        """Bus names of tracked players in discovery order."""
        return [name for name, peer in self._peers.items() if peer.state is PeerState.TRACKED]

    @property
    def active_player(self) -> str | None:
        return self._active.name if self._active is not None else None

    def has_active_player(self) -> bool:
        return self._active is not None

    def is_playing(self) -> bool:
        return self._active is not None and self._active.playback_status == PLAYBACK_PLAYING

    def _flag(self, name: str) -> bool:
        if self._active is None:
            return False
        return self._active.handle.get(name) is True

    def can_play_pause(self) -> bool:
        return self._flag("CanPlay")

    def can_go_next(self) -> bool:
        return self._flag("CanGoNext")

    def can_go_previous(self) -> bool:
        return self._flag("CanGoPrevious")

    def _metadata(self) -> dict[str, Any]:
        if self._active is None:
            return {}
        metadata = self._active.handle.get("Metadata")
        return metadata if isinstance(metadata, dict) else {}

    def get_title(self) -> str:
        return _text(self._metadata().get("xesam:title"))

    def get_artist(self) -> str:
        """Artists joined with ", ". Malformed entries are skipped."""
        artist = self._metadata().get("xesam:artist")
        if isinstance(artist, str):
            return artist
        if isinstance(artist, (list, tuple)):
            return ", ".join(name for name in artist if isinstance(name, str))
        return ""

    def get_album(self) -> str:
        return _text(self._metadata().get("xesam:album"))

    def get_art_url(self) -> str:
        return _text(self._metadata().get("mpris:artUrl"))

    async def get_cover_art(self) -> tuple[bytes, str] | None:
        """Image bytes and content type for the active player's artwork, if any."""
        url = self.get_art_url()
        if not url:
            return None
        return await self._cover_art.fetch(url)

    # ------------------------------------------------------------------
    # Control
    # ------------------------------------------------------------------

    async def _invoke(self, peer: MediaPeer, method: str) -> None:
        try:
            await peer.handle.call(method)
        except BackendError as err:
            _LOGGER.warning("%s on %s failed: %s", method, peer.name, err)

    def _control(self, method: str) -> None:
        if self._active is None:
            return
        self._spawn(self._invoke(self._active, method))

    def play_pause(self) -> None:
        self._control("PlayPause")

    def next(self) -> None:
        self._control("Next")

    def previous(self) -> None:
        self._control("Previous")

    def destroy(self) -> None:
        """Stop discovery and forget every player. Safe to call repeatedly."""
        if self._destroyed:
            return
        self._destroyed = True
        for task in list(self._tasks):
            task.cancel()
        self._name_watch()
        self._name_watch = noop_unsubscribe
        for peer in self._peers.values():
            peer.unsubscribe()
            peer.handle.close()
        self._peers.clear()
        self._active = None
        self._bus_daemon.close()
        self._emitter.clear()
        if self._owns_buses:
            self._buses.disconnect()
