"""
Configuration Manager for Zone Defense
Handles application settings
"""

import json
import logging
import os
from typing import Any, Dict, Optional, Tuple

from gi.repository import Gio, GObject

from .platform_utils import APP_ID, get_config_dir

logger = logging.getLogger(__name__)

# Increment this whenever the configuration format changes
CONFIG_VERSION = 1

DEFAULT_DBUS_TIMEOUT_MS = 25000


class Config(GObject.Object):
    """Configuration manager for Zone Defense"""

    __gsignals__ = {
        'setting-changed': (GObject.SignalFlags.RUN_FIRST, None, (str, object)),
    }

    def __init__(self, config_file: Optional[str] = None, use_gsettings: bool = True):
        super().__init__()

        # Try to use GSettings ONLY if schema is installed; otherwise use JSON
        self.settings = None
        self.use_gsettings = False
        if use_gsettings:
            try:
                source = Gio.SettingsSchemaSource.get_default()
                schema = source.lookup(APP_ID, True) if source else None
                if schema is not None:
                    self.settings = Gio.Settings.new_full(schema, None, None)
                    self.use_gsettings = True
                    logger.info("Using GSettings for configuration")
                else:
                    logger.info("GSettings schema not found; using JSON config")
            except Exception as e:
                logger.warning(f"GSettings unavailable; using JSON config: {e}")

        self.config_file = config_file or os.path.join(get_config_dir(), 'config.json')
        self.config_data = self.load_json_config()

        if self.use_gsettings:
            self.settings.connect('changed', self.on_setting_changed)

    def get_default_config(self) -> Dict[str, Any]:
        """Get default configuration values"""
        return {
            'config_version': CONFIG_VERSION,
            'debug_enabled': False,
            'dbus_timeout_ms': DEFAULT_DBUS_TIMEOUT_MS,
            'seen_connections_file': '',
        }

    def load_json_config(self) -> Dict[str, Any]:
        """Load configuration from JSON file"""
        try:
            if os.path.exists(self.config_file):
                with open(self.config_file, 'r') as f:
                    config = json.load(f)
                if not isinstance(config, dict):
                    raise ValueError("configuration root is not an object")

                # Purge outdated configurations
                stored_version = config.get('config_version', 0)
                if stored_version < CONFIG_VERSION:
                    backup_file = f"{self.config_file}.bak"
                    try:
                        os.replace(self.config_file, backup_file)
                        logger.warning(
                            "Outdated config version %s detected; backing up to %s and regenerating defaults",
                            stored_version,
                            backup_file,
                        )
                    except OSError:
                        os.remove(self.config_file)
                        logger.warning(
                            "Outdated config version %s detected; old config removed and new defaults generated",
                            stored_version,
                        )

                    config = self.get_default_config()
                    self.save_json_config(config)
                else:
                    config, updated = self._ensure_config_defaults(config)
                    if updated:
                        self.save_json_config(config)

                return config
            else:
                # Create default config
                default_config = self.get_default_config()
                self.save_json_config(default_config)
                return default_config
        except Exception as e:
            logger.error(f"Failed to load JSON config: {e}")
            return self.get_default_config()

    def save_json_config(self, config_data: Dict[str, Any] = None):
        """Save configuration to JSON file"""
        try:
            if config_data is None:
                config_data = self.config_data

            os.makedirs(os.path.dirname(self.config_file), exist_ok=True)
            with open(self.config_file, 'w') as f:
                json.dump(config_data, f, indent=2)

            logger.debug("Configuration saved to JSON file")
        except Exception as e:
            logger.error(f"Failed to save JSON config: {e}")

    def _ensure_config_defaults(self, config: Dict[str, Any]) -> Tuple[Dict[str, Any], bool]:
        """Ensure newly added keys exist and have the expected types."""
        updated = False
        for key, default in self.get_default_config().items():
            value = config.get(key)
            if key not in config:
                config[key] = default
                updated = True
            elif isinstance(default, bool) and not isinstance(value, bool):
                config[key] = bool(value)
                updated = True
            elif isinstance(default, int) and not isinstance(default, bool):
                if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                    config[key] = default
                    updated = True
            elif isinstance(default, str) and not isinstance(value, str):
                config[key] = default
                updated = True
        return config, updated

    def get_setting(self, key: str, default=None):
        """Get a setting value"""
        try:
            if self.use_gsettings:
                gsettings_key = key.replace('_', '-')
                if gsettings_key in self.settings.list_keys():
                    return self.settings.get_value(gsettings_key).unpack()
            return self.config_data.get(key, default)
        except Exception as e:
            logger.error(f"Failed to get setting {key}: {e}")
            return default

    def on_setting_changed(self, settings, key):
        """Handle GSettings change"""
        value = settings.get_value(key).unpack()
        # Convert key format back
        config_key = key.replace('-', '_')
        self.emit('setting-changed', config_key, value)

    def get_dbus_timeout_ms(self) -> int:
        timeout = self.get_setting('dbus_timeout_ms', DEFAULT_DBUS_TIMEOUT_MS)
        if isinstance(timeout, bool) or not isinstance(timeout, int) or timeout <= 0:
            return DEFAULT_DBUS_TIMEOUT_MS
        return timeout
