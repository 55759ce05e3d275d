"""Static introspection data and service locations for every D-Bus backend.

Proxies are built from these documents instead of runtime introspection, so a
service that is not running only shows up as a failed GetAll at connect time.
"""

from __future__ import annotations

from dataclasses import dataclass, replace

from ..const import MPRIS_PATH
from .bus import BusKind

PROPERTIES_INTERFACE = "org.freedesktop.DBus.Properties"

_PROPERTIES_XML = """
  <interface name="org.freedesktop.DBus.Properties">
    <method name="Get">
      <arg name="interface_name" type="s" direction="in"/>
      <arg name="property_name" type="s" direction="in"/>
      <arg name="value" type="v" direction="out"/>
    </method>
    <method name="GetAll">
      <arg name="interface_name" type="s" direction="in"/>
      <arg name="properties" type="a{sv}" direction="out"/>
    </method>
    <method name="Set">
      <arg name="interface_name" type="s" direction="in"/>
      <arg name="property_name" type="s" direction="in"/>
      <arg name="value" type="v" direction="in"/>
    </method>
    <signal name="PropertiesChanged">
      <arg name="interface_name" type="s"/>
      <arg name="changed_properties" type="a{sv}"/>
      <arg name="invalidated_properties" type="as"/>
    </signal>
  </interface>"""


def _node(interface_xml: str) -> str:
    return f"<node>{interface_xml}{_PROPERTIES_XML}\n</node>"


@dataclass(frozen=True)
class ServiceSpec:
    """Where a backend lives and what it looks like."""

    bus: BusKind
    bus_name: str
    path: str
    interface: str
    introspection: str

    def at(self, path: str) -> ServiceSpec:
        """Same service and interface on another object path."""
        return replace(self, path=path)

    def named(self, bus_name: str) -> ServiceSpec:
        """Same path and interface owned by another bus name."""
        return replace(self, bus_name=bus_name)

    @property
    def label(self) -> str:
        return f"{self.bus_name}{self.path}"


RFKILL = ServiceSpec(
    bus=BusKind.SESSION,
    bus_name="org.gnome.SettingsDaemon.Rfkill",
    path="/org/gnome/SettingsDaemon/Rfkill",
    interface="org.gnome.SettingsDaemon.Rfkill",
    introspection=_node("""
  <interface name="org.gnome.SettingsDaemon.Rfkill">
    <property name="AirplaneMode" type="b" access="readwrite"/>
    <property name="HardwareAirplaneMode" type="b" access="read"/>
    <property name="BluetoothAirplaneMode" type="b" access="readwrite"/>
    <property name="BluetoothHardwareAirplaneMode" type="b" access="read"/>
  </interface>"""),
)

NETWORK_MANAGER = ServiceSpec(
    bus=BusKind.SYSTEM,
    bus_name="org.freedesktop.NetworkManager",
    path="/org/freedesktop/NetworkManager",
    interface="org.freedesktop.NetworkManager",
    introspection=_node("""
  <interface name="org.freedesktop.NetworkManager">
    <method name="ActivateConnection">
      <arg name="connection" type="o" direction="in"/>
      <arg name="device" type="o" direction="in"/>
      <arg name="specific_object" type="o" direction="in"/>
      <arg name="active_connection" type="o" direction="out"/>
    </method>
    <method name="DeactivateConnection">
      <arg name="active_connection" type="o" direction="in"/>
    </method>
    <property name="WirelessEnabled" type="b" access="readwrite"/>
    <property name="WirelessHardwareEnabled" type="b" access="read"/>
    <property name="ActiveConnections" type="ao" access="read"/>
  </interface>"""),
)

NM_ACTIVE_CONNECTION = ServiceSpec(
    bus=BusKind.SYSTEM,
    bus_name="org.freedesktop.NetworkManager",
    path="/",
    interface="org.freedesktop.NetworkManager.Connection.Active",
    introspection=_node("""
  <interface name="org.freedesktop.NetworkManager.Connection.Active">
    <property name="Type" type="s" access="read"/>
    <property name="Connection" type="o" access="read"/>
  </interface>"""),
)

NM_SETTINGS = ServiceSpec(
    bus=BusKind.SYSTEM,
    bus_name="org.freedesktop.NetworkManager",
    path="/org/freedesktop/NetworkManager/Settings",
    interface="org.freedesktop.NetworkManager.Settings",
    introspection=_node("""
  <interface name="org.freedesktop.NetworkManager.Settings">
    <method name="ListConnections">
      <arg name="connections" type="ao" direction="out"/>
    </method>
  </interface>"""),
)

NM_CONNECTION_SETTINGS = ServiceSpec(
    bus=BusKind.SYSTEM,
    bus_name="org.freedesktop.NetworkManager",
    path="/",
    interface="org.freedesktop.NetworkManager.Settings.Connection",
    introspection=_node("""
  <interface name="org.freedesktop.NetworkManager.Settings.Connection">
    <method name="GetSettings">
      <arg name="settings" type="a{sa{sv}}" direction="out"/>
    </method>
  </interface>"""),
)

SCREEN_BRIGHTNESS = ServiceSpec(
    bus=BusKind.SESSION,
    bus_name="org.gnome.SettingsDaemon.Power",
    path="/org/gnome/SettingsDaemon/Power",
    interface="org.gnome.SettingsDaemon.Power.Screen",
    introspection=_node("""
  <interface name="org.gnome.SettingsDaemon.Power.Screen">
    <property name="Brightness" type="i" access="readwrite"/>
  </interface>"""),
)

POWER_PROFILES = ServiceSpec(
    bus=BusKind.SYSTEM,
    bus_name="net.hadess.PowerProfiles",
    path="/net/hadess/PowerProfiles",
    interface="net.hadess.PowerProfiles",
    introspection=_node("""
  <interface name="net.hadess.PowerProfiles">
    <property name="ActiveProfile" type="s" access="readwrite"/>
    <property name="Profiles" type="aa{sv}" access="read"/>
  </interface>"""),
)

KBD_BACKLIGHT = ServiceSpec(
    bus=BusKind.SYSTEM,
    bus_name="org.freedesktop.UPower",
    path="/org/freedesktop/UPower/KbdBacklight",
    interface="org.freedesktop.UPower.KbdBacklight",
    introspection=_node("""
  <interface name="org.freedesktop.UPower.KbdBacklight">
    <method name="GetBrightness">
      <arg name="value" type="i" direction="out"/>
    </method>
    <method name="GetMaxBrightness">
      <arg name="value" type="i" direction="out"/>
    </method>
    <method name="SetBrightness">
      <arg name="value" type="i" direction="in"/>
    </method>
    <signal name="BrightnessChanged">
      <arg name="value" type="i"/>
    </signal>
  </interface>"""),
)

SESSION_MANAGER = ServiceSpec(
    bus=BusKind.SESSION,
    bus_name="org.gnome.SessionManager",
    path="/org/gnome/SessionManager",
    interface="org.gnome.SessionManager",
    introspection=_node("""
  <interface name="org.gnome.SessionManager">
    <method name="Inhibit">
      <arg name="app_id" type="s" direction="in"/>
      <arg name="toplevel_xid" type="u" direction="in"/>
      <arg name="reason" type="s" direction="in"/>
      <arg name="flags" type="u" direction="in"/>
      <arg name="inhibit_cookie" type="u" direction="out"/>
    </method>
    <method name="Uninhibit">
      <arg name="inhibit_cookie" type="u" direction="in"/>
    </method>
  </interface>"""),
)

SCREENSAVER = ServiceSpec(
    bus=BusKind.SESSION,
    bus_name="org.gnome.ScreenSaver",
    path="/org/gnome/ScreenSaver",
    interface="org.gnome.ScreenSaver",
    introspection=_node("""
  <interface name="org.gnome.ScreenSaver">
    <method name="Lock"/>
  </interface>"""),
)

BUS_DAEMON = ServiceSpec(
    bus=BusKind.SESSION,
    bus_name="org.freedesktop.DBus",
    path="/org/freedesktop/DBus",
    interface="org.freedesktop.DBus",
    introspection=_node("""
  <interface name="org.freedesktop.DBus">
    <method name="ListNames">
      <arg name="names" type="as" direction="out"/>
    </method>
    <signal name="NameOwnerChanged">
      <arg name="name" type="s"/>
      <arg name="old_owner" type="s"/>
      <arg name="new_owner" type="s"/>
    </signal>
  </interface>"""),
)

MPRIS_PLAYER = ServiceSpec(
    bus=BusKind.SESSION,
    bus_name="org.mpris.MediaPlayer2",
    path=MPRIS_PATH,
    interface="org.mpris.MediaPlayer2.Player",
    introspection=_node("""
  <interface name="org.mpris.MediaPlayer2.Player">
    <method name="PlayPause"/>
    <method name="Next"/>
    <method name="Previous"/>
    <property name="PlaybackStatus" type="s" access="read"/>
    <property name="Metadata" type="a{sv}" access="read"/>
    <property name="CanPlay" type="b" access="read"/>
    <property name="CanGoNext" type="b" access="read"/>
    <property name="CanGoPrevious" type="b" access="read"/>
  </interface>"""),
)
