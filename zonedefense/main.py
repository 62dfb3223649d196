#!/usr/bin/env python3
"""
Zone Defense - pick a firewall zone the first time a network connection is used
Main application entry point
"""

import argparse
import asyncio
import gettext
import logging
import os
import signal
from functools import partial
from gettext import gettext as _
from logging.handlers import RotatingFileHandler

import gi
gi.require_version('Adw', '1')
gi.require_version('Gtk', '4.0')
gi.require_version('NM', '1.0')

from gi.events import GLibEventLoopPolicy
from gi.repository import Adw, Gio, GLib, Gtk

from . import __version__
from .config import Config
from .connection_ids_seen import ConnectionIdsSeen
from .errors import error_event_for, fatal_message
from .network_state import NetworkState
from .notifications import Notifier
from .orchestrator import Orchestrator
from .platform_utils import APP_ID, APP_NAME, get_data_dir, get_seen_connections_path
from .window import PromptPresenter
from .zone_for_connection import ZoneForConnection
from .zone_info import ZoneInfo
from .zone_lookup import ZoneLookup

logger = logging.getLogger(__name__)

TERMINATION_SIGNALS = (signal.SIGINT, signal.SIGTERM)
STARTUP_ERROR_ID = "startup"


def watch_termination_signals(orchestrator, handler):
    """Call ``handler(signum)`` on SIGINT/SIGTERM until the orchestrator quits."""
    for signum in TERMINATION_SIGNALS:
        try:
            source_id = GLib.unix_signal_add(GLib.PRIORITY_DEFAULT, signum, handler, signum)
            orchestrator.add_subscription(partial(GLib.source_remove, source_id))
        except Exception as e:
            orchestrator.report_unexpected(e)


class ZoneDefenseApplication(Adw.Application):
    """Resident application that prompts for zones of new connections"""

    def __init__(self, verbose: bool = False):
        super().__init__(
            application_id=APP_ID,
            flags=Gio.ApplicationFlags.DEFAULT_FLAGS
        )

        # Command line verbosity override
        self.verbose_override = verbose

        self.config = None
        try:
            self.config = Config()
        except Exception as e:
            # Settings only tune behaviour; defaults are fine without them
            print(f"Failed to load configuration, using defaults: {e}")

        self.setup_logging()

        self.orchestrator = None
        self._start_task = None
        self._started = False
        self._held = False

        self.create_action('quit', self.on_quit_action, ['<primary>q'])
        self.create_action('about', self.on_about)

        self.connect('activate', self.on_activate)
        self.connect('shutdown', self.on_shutdown)

        logger.info("Zone Defense application initialized")

    def setup_logging(self):
        """Set up logging configuration"""
        # Create log directory if it doesn't exist
        log_dir = get_data_dir()
        os.makedirs(log_dir, exist_ok=True)

        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

        # Clear any existing handlers
        logging.getLogger().handlers.clear()

        # File handler with rotation
        file_handler = RotatingFileHandler(
            os.path.join(log_dir, 'zone-defense.log'),
            maxBytes=10*1024*1024,  # 10MB
            backupCount=5,
            encoding='utf-8'
        )
        file_handler.setFormatter(formatter)

        # Console handler
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)

        root_logger = logging.getLogger()
        root_logger.addHandler(file_handler)
        root_logger.addHandler(console_handler)

        self.apply_log_level()

    def apply_log_level(self):
        """Switch between INFO and DEBUG from config or command line"""
        verbose = False
        if self.config is not None:
            verbose = bool(self.config.get_setting('debug_enabled', False))
        if getattr(self, 'verbose_override', False):
            verbose = True

        effective_level = logging.DEBUG if verbose else logging.INFO
        root_logger = logging.getLogger()
        root_logger.setLevel(effective_level)
        for handler in root_logger.handlers:
            handler.setLevel(effective_level)

        logging.getLogger('asyncio').setLevel(logging.DEBUG if verbose else logging.INFO)
        logging.getLogger('gi').setLevel(logging.INFO if verbose else logging.WARNING)
        logging.getLogger('zonedefense').setLevel(effective_level)

    def create_action(self, name, callback, shortcuts=None):
        """Create a GAction with optional keyboard shortcuts"""
        action = Gio.SimpleAction.new(name, None)
        action.connect("activate", callback)
        self.add_action(action)
        if shortcuts:
            self.set_accels_for_action(f"app.{name}", shortcuts)

    def build_orchestrator(self) -> Orchestrator:
        """Wire the collaborators into a new orchestrator"""
        seen_override = ''
        dbus_timeout = None
        if self.config is not None:
            seen_override = self.config.get_setting('seen_connections_file', '') or ''
            dbus_timeout = self.config.get_dbus_timeout_ms()

        network_state = NetworkState()
        zone_info = ZoneInfo(timeout_ms=dbus_timeout) if dbus_timeout else ZoneInfo()
        zone_lookup = ZoneLookup(zone_info, ZoneForConnection(lambda: network_state.client))

        return Orchestrator(
            store=ConnectionIdsSeen(get_seen_connections_path(seen_override)),
            zone_lookup=zone_lookup,
            notifier=Notifier(self),
            presenter=PromptPresenter(self),
            watcher=network_state,
            terminate=self._terminate,
        )

    def on_activate(self, app):
        """Start watching connections on first activation"""
        if self._started:
            logger.debug("Already running; ignoring activation")
            return
        self._started = True

        # Stay resident without any window open
        self.hold()
        self._held = True

        try:
            self.orchestrator = self.build_orchestrator()
        except Exception as e:
            logger.exception("Failed to set up Zone Defense")
            error = error_event_for(e, fatal=True)
            Notifier(self).notify(
                STARTUP_ERROR_ID,
                _("Zone Defense could not start"),
                fatal_message(error.message),
            )
            self._terminate()
            return

        watch_termination_signals(self.orchestrator, self._on_termination_signal)

        if self.config is not None:
            try:
                handler_id = self.config.connect('setting-changed', self._on_config_setting_changed)
                self.orchestrator.add_subscription(partial(self.config.disconnect, handler_id))
            except Exception as e:
                self.orchestrator.report_unexpected(e)

        self._start_task = asyncio.ensure_future(self.orchestrator.start())

    def _on_termination_signal(self, signum):
        logger.info("Received %s", signal.Signals(signum).name)
        self.orchestrator.quit(signum)
        # The orchestrator removes this source while shutting down
        return GLib.SOURCE_CONTINUE

    def _on_config_setting_changed(self, _config, key, value):
        if key == 'debug_enabled':
            self.apply_log_level()

    def _terminate(self):
        """Final step of the shutdown sequence"""
        if self._held:
            self._held = False
            self.release()
        Gio.Application.quit(self)

    def quit(self):
        """Route every quit request through the orchestrator"""
        if self.orchestrator is not None and self.orchestrator.is_running:
            self.orchestrator.quit()
        else:
            super().quit()

    def on_quit_action(self, action=None, param=None):
        self.quit()

    def on_about(self, action=None, param=None):
        """Show the about dialog"""
        about = Adw.AboutDialog()
        about.set_application_name(_('Zone Defense'))
        about.set_version(__version__)
        about.set_application_icon(APP_ID)
        about.set_developer_name('Justin Donnelly')
        about.set_developers(['Justin Donnelly'])
        about.set_license_type(Gtk.License.MPL_2_0)
        about.set_copyright('© 2024 Justin Donnelly')
        about.present(self.props.active_window)

    def on_shutdown(self, app):
        """Clean up if the application is stopped without going through quit"""
        logger.info("Application shutdown")
        if self.orchestrator is not None and self.orchestrator.is_running:
            self.orchestrator.quit()


def main():
    """Main entry point"""
    parser = argparse.ArgumentParser(description="Zone Defense firewall zone prompter")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose debug logging")
    args = parser.parse_args()

    gettext.textdomain(APP_NAME)
    asyncio.set_event_loop_policy(GLibEventLoopPolicy())
    app = ZoneDefenseApplication(verbose=args.verbose)
    return app.run(None)


if __name__ == '__main__':
    main()
