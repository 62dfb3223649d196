"""Read and change the firewall zone stored in a NetworkManager connection.

'zone' is a property of the 'connection' setting. It can't be set on its
own: the whole connection is updated and committed back to NetworkManager.
"""

import logging
from typing import Optional

import gi
gi.require_version('NM', '1.0')

from gi.repository import GLib, NM

from .errors import ZoneLookupError
from .gio_async import call_async

logger = logging.getLogger(__name__)


class ZoneForConnection:
    """Zone binding of NetworkManager settings connections.

    ``get_client`` returns the shared ``NM.Client``; the connection settings
    handle is the D-Bus object path of the settings connection.
    """

    def __init__(self, get_client):
        self._get_client = get_client

    def _lookup(self, settings_path: str):
        client = self._get_client()
        if client is None:
            raise ZoneLookupError("NetworkManager client is not available")
        connection = client.get_connection_by_path(settings_path)
        if connection is None:
            raise ZoneLookupError(f"Connection settings {settings_path} not found")
        return connection

    async def get_zone(self, settings_path: str) -> Optional[str]:
        """Return the zone of the connection, or None when it uses the default zone."""
        connection = self._lookup(settings_path)
        s_con = connection.get_setting_connection()
        zone = s_con.get_zone() if s_con is not None else None
        logger.debug("Zone for %s is %r", connection.get_id(), zone)
        return zone or None

    async def set_zone(self, settings_path: str, zone: Optional[str]):
        """Bind ``zone`` to the connection; None selects the default zone."""
        connection = self._lookup(settings_path)
        s_con = connection.get_setting_connection()
        if s_con is None:
            raise ZoneLookupError(f"Connection {connection.get_id()} has no connection setting")

        s_con.set_property(NM.SETTING_CONNECTION_ZONE, zone or None)
        try:
            await call_async(
                connection.commit_changes_async,
                connection.commit_changes_finish,
                True,
                None,
            )
        except GLib.Error as e:
            logger.error(f"Failed to save zone for {connection.get_id()}: {e.message}")
            raise ZoneLookupError(
                f"Could not save zone for {connection.get_id()}: {e.message}"
            ) from e
        logger.info("Connection '%s' zone set to %r", connection.get_id(), zone)
