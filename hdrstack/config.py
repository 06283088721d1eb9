"""Manages application configuration via an INI file."""

import configparser
import logging

from hdrstack.logging_setup import get_app_data_dir

log = logging.getLogger(__name__)

DEFAULT_CONFIG = {
    "watcher": {
        "folder": "",  # Last folder passed to watcher_set_folder
    },
    "merge": {
        "output_dir": "",  # Empty = next to the first input image
        "write_exr": "true",
    },
    "workers": {
        "max_workers": "2",
    },
    "logging": {
        "level": "INFO",
    },
}

class AppConfig:
    def __init__(self, config_path=None):
        self.config_path = config_path or get_app_data_dir() / "hdrstack.ini"
        self.config = configparser.ConfigParser()
        self.load()

    def load(self):
        """Loads the config, creating it with defaults if it doesn't exist."""
        if not self.config_path.exists():
            log.info("Creating default config at %s", self.config_path)
            self.config.read_dict(DEFAULT_CONFIG)
            self.save()
        else:
            log.info("Loading config from %s", self.config_path)
            self.config.read(self.config_path)
            # Ensure all sections and keys exist
            for section, keys in DEFAULT_CONFIG.items():
                if not self.config.has_section(section):
                    self.config.add_section(section)
                for key, value in keys.items():
                    if not self.config.has_option(section, key):
                        self.config.set(section, key, value)
            self.save() # Save to add any missing keys

    def save(self):
        """Saves the current configuration to the INI file."""
        try:
            self.config_path.parent.mkdir(parents=True, exist_ok=True)
            with self.config_path.open("w") as f:
                self.config.write(f)
            log.info("Saved config to %s", self.config_path)
        except IOError as e:
            log.error("Failed to save config to %s: %s", self.config_path, e)

    def get(self, section, key, fallback=None):
        return self.config.get(section, key, fallback=fallback)

    def getint(self, section, key, fallback=None):
        return self.config.getint(section, key, fallback=fallback)

    def getboolean(self, section, key, fallback=None):
        return self.config.getboolean(section, key, fallback=fallback)

    def set(self, section, key, value):
        if not self.config.has_section(section):
            self.config.add_section(section)
        self.config.set(section, key, str(value))

# Global config instance
config = AppConfig()
