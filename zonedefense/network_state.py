"""Watch NetworkManager for changes of the primary connection."""

import logging
from gettext import gettext as _

import gi
gi.require_version('NM', '1.0')

from gi.repository import GLib, NM

from .errors import WatcherError
from .models import ConnectionEvent, ErrorEvent

logger = logging.getLogger(__name__)


def _new_client():
    return NM.Client.new(None)


class NetworkState:
    """Report the primary connection whenever it changes.

    Handlers registered with :meth:`on_change` receive a
    :class:`ConnectionEvent` whose settings handle is the D-Bus path of the
    settings connection. An event with an empty id means there is no
    primary connection. Handlers registered with :meth:`on_error` receive
    an :class:`ErrorEvent`.
    """

    def __init__(self, client_factory=None):
        self._client_factory = client_factory or _new_client
        self.client = None
        self._change_handlers = []
        self._error_handlers = []
        self._client_handler_ids = []
        self._watched_connection = None
        self._watched_connection_handler = None

    def on_change(self, handler):
        self._change_handlers.append(handler)

    def on_error(self, handler):
        self._error_handlers.append(handler)

    def start(self):
        """Create the NetworkManager client and report the current connection."""
        try:
            self.client = self._client_factory()
        except GLib.Error as e:
            logger.error(f"Failed to create NetworkManager client: {e.message}")
            raise WatcherError(f"Could not connect to NetworkManager: {e.message}") from e

        self._client_handler_ids = [
            self.client.connect('notify::primary-connection', self._on_primary_connection_changed),
            self.client.connect('notify::nm-running', self._on_nm_running_changed),
        ]

        if not self.client.get_nm_running():
            self._report_nm_not_running()
            return
        self._emit_primary_connection()

    def dispose(self):
        """Disconnect from NetworkManager and drop all handlers."""
        self._unwatch_connection()
        if self.client is not None:
            for handler_id in self._client_handler_ids:
                try:
                    self.client.disconnect(handler_id)
                except Exception as e:
                    logger.debug(f"Failed to disconnect NetworkManager handler: {e}")
        self._client_handler_ids = []
        self._change_handlers = []
        self._error_handlers = []
        self.client = None
        logger.debug("NetworkState disposed")

    def _on_primary_connection_changed(self, client, pspec):
        logger.debug("Primary connection changed")
        self._emit_primary_connection()

    def _on_nm_running_changed(self, client, pspec):
        if client.get_nm_running():
            logger.info("NetworkManager is running again")
            self._emit_primary_connection()
        else:
            self._report_nm_not_running()

    def _on_connection_settings_changed(self, connection):
        # Settings were updated, e.g. after a zone change; announce it again
        logger.debug("Settings of %s changed", connection.get_id())
        self._emit_primary_connection()

    def _emit_primary_connection(self):
        if self.client is None:
            return
        try:
            event = self._read_primary_connection()
        except Exception as e:
            logger.error(f"Failed to read primary connection: {e}")
            self._emit_error(ErrorEvent(
                fatal=False,
                id="connection-read",
                title=_("Unable to read the network connection"),
                message=str(e),
            ))
            return
        self._emit_change(event)

    def _read_primary_connection(self) -> ConnectionEvent:
        active = self.client.get_primary_connection()
        remote = active.get_connection() if active is not None else None
        if remote is None:
            self._unwatch_connection()
            return ConnectionEvent("", None)

        self._watch_connection(remote)
        return ConnectionEvent(active.get_id() or "", remote.get_path())

    def _watch_connection(self, remote):
        if self._watched_connection is remote:
            return
        self._unwatch_connection()
        self._watched_connection = remote
        self._watched_connection_handler = remote.connect('changed', self._on_connection_settings_changed)

    def _unwatch_connection(self):
        if self._watched_connection is not None and self._watched_connection_handler is not None:
            try:
                self._watched_connection.disconnect(self._watched_connection_handler)
            except Exception as e:
                logger.debug(f"Failed to disconnect connection handler: {e}")
        self._watched_connection = None
        self._watched_connection_handler = None

    def _report_nm_not_running(self):
        logger.warning("NetworkManager is not running")
        self._unwatch_connection()
        self._emit_error(ErrorEvent(
            fatal=False,
            id="network-manager-not-running",
            title=_("NetworkManager is not running"),
            message=_("Zone Defense will resume when NetworkManager starts."),
        ))

    def _emit_change(self, event: ConnectionEvent):
        for handler in list(self._change_handlers):
            handler(event)

    def _emit_error(self, error: ErrorEvent):
        for handler in list(self._error_handlers):
            handler(error)
