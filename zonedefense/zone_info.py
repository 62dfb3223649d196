"""Queries against firewalld over the system bus."""

import logging
from typing import FrozenSet

from gi.repository import Gio, GLib

from .errors import ZoneLookupError
from .gio_async import call_async

logger = logging.getLogger(__name__)

FIREWALLD_BUS_NAME = "org.fedoraproject.FirewallD1"
FIREWALLD_PATH = "/org/fedoraproject/FirewallD1"
FIREWALLD_INTERFACE = "org.fedoraproject.FirewallD1"
FIREWALLD_ZONE_INTERFACE = "org.fedoraproject.FirewallD1.zone"

DEFAULT_TIMEOUT_MS = 25000


class ZoneInfo:
    """Available zones and the default zone, as reported by firewalld."""

    def __init__(self, timeout_ms: int = DEFAULT_TIMEOUT_MS, bus=None):
        self.timeout_ms = timeout_ms
        self._bus = bus

    def _get_bus(self):
        if self._bus is None:
            try:
                self._bus = Gio.bus_get_sync(Gio.BusType.SYSTEM, None)
            except GLib.Error as e:
                raise ZoneLookupError(f"Could not connect to the system bus: {e.message}") from e
        return self._bus

    async def _call(self, interface: str, method: str, reply_type: str):
        bus = self._get_bus()
        logger.debug("Calling %s.%s", interface, method)
        try:
            result = await call_async(
                bus.call,
                bus.call_finish,
                FIREWALLD_BUS_NAME,
                FIREWALLD_PATH,
                interface,
                method,
                None,
                GLib.VariantType.new(reply_type),
                Gio.DBusCallFlags.NONE,
                self.timeout_ms,
                None,
            )
        except GLib.Error as e:
            logger.error(f"firewalld call {method} failed: {e.message}")
            if "org.freedesktop.DBus.Error.ServiceUnknown" in (e.message or ""):
                raise ZoneLookupError(
                    "firewalld is not running. Start it with 'systemctl start firewalld'."
                ) from e
            raise ZoneLookupError(f"firewalld call {method} failed: {e.message}") from e
        return result.unpack()[0]

    async def get_zones(self) -> FrozenSet[str]:
        zones = await self._call(FIREWALLD_ZONE_INTERFACE, "getZones", "(as)")
        logger.debug("firewalld zones: %s", zones)
        return frozenset(zones)

    async def get_default_zone(self) -> str:
        zone = await self._call(FIREWALLD_INTERFACE, "getDefaultZone", "(s)")
        logger.debug("firewalld default zone: %s", zone)
        return zone
