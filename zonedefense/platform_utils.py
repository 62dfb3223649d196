"""Platform-related utility functions."""

import logging
import os

from gi.repository import GLib

APP_ID = "com.github.justinrdonnelly.ZoneDefense"
APP_NAME = "zone-defense"

logger = logging.getLogger(__name__)


def get_config_dir() -> str:
    """Return the per-user configuration directory for Zone Defense."""
    return os.path.join(GLib.get_user_config_dir(), APP_NAME)


def get_data_dir() -> str:
    """Return the per-user data directory for Zone Defense.

    Inside Flatpak GLib already points at the sandboxed data directory, so
    no special casing is needed here.
    """
    return os.path.join(GLib.get_user_data_dir(), APP_NAME)


def get_seen_connections_path(override: str = "") -> str:
    """Return where the seen connection ids are stored.

    ``override`` comes from the ``seen_connections_file`` setting; an empty
    value selects the default location in the data directory.
    """
    if override:
        return os.path.abspath(os.path.expanduser(override))
    return os.path.join(get_data_dir(), "connectionIdsSeen.json")
