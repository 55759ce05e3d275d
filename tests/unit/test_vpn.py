"""Tests for VPN state tracking and toggling through NetworkManager."""

from __future__ import annotations

import asyncio
import logging
from unittest.mock import patch

import pytest

from conftest import settle
from panelswitch.backend.interfaces import (
    NETWORK_MANAGER,
    NM_ACTIVE_CONNECTION,
    NM_CONNECTION_SETTINGS,
    NM_SETTINGS,
)
from panelswitch.events import ControllerEvent
from panelswitch.exceptions import BackendCallError


def _vpn_events(controller):
    seen = []
    controller.connect(ControllerEvent.VPN_CHANGED, lambda: seen.append(1))
    return seen


def _active(backend, path, connection_type, **options):
    backend.add(NM_ACTIVE_CONNECTION.at(path), properties={"Type": connection_type}, **options)


def _profile(backend, path, connection_type):
    backend.add(
        NM_CONNECTION_SETTINGS.at(path),
        results={"GetSettings": {"connection": {"id": path, "type": connection_type}}},
    )


@pytest.fixture(autouse=True)
def no_activation_delay():
    with patch("panelswitch.controller.VPN_REFRESH_DELAY", 0):
        yield


class TestVpnState:
    @pytest.mark.asyncio
    async def test_detects_active_vpn(self, make_controller, backend):
        backend.add(NETWORK_MANAGER, properties={"ActiveConnections": ["/ac/1", "/ac/2"]})
        _active(backend, "/ac/1", "802-11-wireless")
        _active(backend, "/ac/2", "vpn")
        controller = make_controller()
        seen = _vpn_events(controller)
        await controller.wait_ready()

        assert controller.is_vpn() is True
        assert controller.vpn_active_path == "/ac/2"
        assert seen == [1]

    @pytest.mark.asyncio
    async def test_first_vpn_wins(self, make_controller, backend):
        backend.add(NETWORK_MANAGER, properties={"ActiveConnections": ["/ac/1", "/ac/2"]})
        _active(backend, "/ac/1", "vpn")
        _active(backend, "/ac/2", "vpn")
        controller = make_controller()
        await controller.wait_ready()

        assert controller.vpn_active_path == "/ac/1"

    @pytest.mark.asyncio
    async def test_unreachable_connection_is_not_vpn(self, make_controller, backend):
        backend.add(NETWORK_MANAGER, properties={"ActiveConnections": ["/ac/gone"]})
        controller = make_controller()
        await controller.wait_ready()

        assert controller.is_vpn() is False
        assert controller.vpn_active_path is None

    @pytest.mark.asyncio
    async def test_active_connections_change_triggers_refresh(self, make_controller, backend):
        backend.add(NETWORK_MANAGER, properties={"ActiveConnections": []})
        _active(backend, "/ac/7", "vpn")
        controller = make_controller()
        await controller.wait_ready()
        seen = _vpn_events(controller)

        backend.handle(NETWORK_MANAGER).emit_properties_changed({"ActiveConnections": ["/ac/7"]})
        await controller.wait_idle()

        assert controller.is_vpn() is True
        assert seen == [1]

    @pytest.mark.asyncio
    async def test_probe_handles_are_closed(self, make_controller, backend):
        backend.add(NETWORK_MANAGER, properties={"ActiveConnections": ["/ac/1"]})
        _active(backend, "/ac/1", "vpn")
        controller = make_controller()
        await controller.wait_ready()

        probes = backend.handles_for(NM_ACTIVE_CONNECTION.at("/ac/1"))
        assert probes
        assert all(handle.closed for handle in probes)

    @pytest.mark.asyncio
    async def test_superseded_refresh_is_dropped(self, make_controller, backend):
        gate = asyncio.Event()
        backend.add(NETWORK_MANAGER, properties={"ActiveConnections": ["/ac/1"]})
        _active(backend, "/ac/1", "vpn", gate=gate)
        controller = make_controller()
        seen = _vpn_events(controller)
        await settle()

        # A second refresh starts and finishes while the first probe is still pending
        backend.handle(NETWORK_MANAGER).emit_properties_changed({"ActiveConnections": []})
        await settle()
        assert controller.is_vpn() is False
        assert seen == [1]

        gate.set()
        await controller.wait_ready()
        await controller.wait_idle()

        assert controller.is_vpn() is False
        assert seen == [1]


class TestVpnToggle:
    @pytest.mark.asyncio
    async def test_activates_first_vpn_profile(self, make_controller, backend):
        def activate(profile, device, specific_object):
            backend.handle(NETWORK_MANAGER).emit_properties_changed({"ActiveConnections": ["/ac/9"]})
            return "/ac/9"

        backend.add(
            NETWORK_MANAGER,
            properties={"ActiveConnections": []},
            results={"ActivateConnection": activate},
        )
        backend.add(NM_SETTINGS, results={"ListConnections": ["/s/1", "/s/2", "/s/3"]})
        _profile(backend, "/s/1", "802-11-wireless")
        _profile(backend, "/s/2", "vpn")
        _profile(backend, "/s/3", "vpn")
        _active(backend, "/ac/9", "vpn")
        controller = make_controller()
        await controller.wait_ready()

        controller.toggle_vpn()
        await controller.wait_idle()

        assert backend.handle(NETWORK_MANAGER).calls_to("ActivateConnection") == [("/s/2", "/", "/")]
        assert controller.is_vpn() is True
        assert controller.vpn_active_path == "/ac/9"
        # Profiles after the first match are never read
        assert backend.handles_for(NM_CONNECTION_SETTINGS.at("/s/3")) == []

    @pytest.mark.asyncio
    async def test_no_vpn_profile(self, make_controller, backend, caplog):
        backend.add(NETWORK_MANAGER, properties={"ActiveConnections": []})
        backend.add(NM_SETTINGS, results={"ListConnections": ["/s/1"]})
        _profile(backend, "/s/1", "802-3-ethernet")
        controller = make_controller()
        await controller.wait_ready()

        with caplog.at_level(logging.INFO):
            controller.toggle_vpn()
            await controller.wait_idle()

        assert backend.handle(NETWORK_MANAGER).calls_to("ActivateConnection") == []
        assert "No VPN connection profile" in caplog.text

    @pytest.mark.asyncio
    async def test_settings_service_unavailable(self, make_controller, backend):
        backend.add(NETWORK_MANAGER, properties={"ActiveConnections": []})
        controller = make_controller()
        await controller.wait_ready()

        controller.toggle_vpn()
        await controller.wait_idle()

        assert backend.handle(NETWORK_MANAGER).calls_to("ActivateConnection") == []

    @pytest.mark.asyncio
    async def test_activation_failure(self, make_controller, backend, caplog):
        backend.add(
            NETWORK_MANAGER,
            properties={"ActiveConnections": []},
            results={"ActivateConnection": BackendCallError("Remote call failed")},
        )
        backend.add(NM_SETTINGS, results={"ListConnections": ["/s/1"]})
        _profile(backend, "/s/1", "vpn")
        controller = make_controller()
        await controller.wait_ready()

        with caplog.at_level(logging.WARNING):
            controller.toggle_vpn()
            await controller.wait_idle()

        assert "Could not activate VPN /s/1" in caplog.text
        assert controller.is_vpn() is False

    @pytest.mark.asyncio
    async def test_deactivates_active_vpn(self, make_controller, backend):
        def deactivate(path):
            backend.handle(NETWORK_MANAGER).properties["ActiveConnections"] = []

        backend.add(
            NETWORK_MANAGER,
            properties={"ActiveConnections": ["/ac/1"]},
            results={"DeactivateConnection": deactivate},
        )
        _active(backend, "/ac/1", "vpn")
        controller = make_controller()
        await controller.wait_ready()
        assert controller.is_vpn() is True

        controller.toggle_vpn()
        await controller.wait_idle()

        assert backend.handle(NETWORK_MANAGER).calls_to("DeactivateConnection") == [("/ac/1",)]
        assert controller.is_vpn() is False
        assert controller.vpn_active_path is None


@pytest.mark.asyncio
async def test_vpn_event_fires_once_after_every_probe(make_controller, backend):
    gates = [asyncio.Event() for _ in range(3)]
    paths = ["/ac/1", "/ac/2", "/ac/3"]
    backend.add(NETWORK_MANAGER, properties={"ActiveConnections": paths})
    for path, connection_type, gate in zip(paths, ["802-3-ethernet", "vpn", "bridge"], gates):
        _active(backend, path, connection_type, gate=gate)
    controller = make_controller()
    seen = _vpn_events(controller)
    await settle()

    # Resolve the matching probe first, then the others
    for gate in (gates[1], gates[0]):
        gate.set()
        await settle()
        assert seen == []

    gates[2].set()
    await controller.wait_ready()

    assert seen == [1]
    assert controller.is_vpn() is True
    assert controller.vpn_active_path == "/ac/2"
