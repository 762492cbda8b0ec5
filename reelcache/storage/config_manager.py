"""
Reads, upgrades and writes the INI file that backs `CacheConfig`.
"""

import configparser
import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from reelcache.exceptions import ConfigurationError
from reelcache.models.config import CacheConfig

log = logging.getLogger(__name__)

SECTION = "DEFAULT"


class ConfigManager:
    """Owns one INI config file. Every setting lives in its DEFAULT section."""

    def __init__(self, config_file_path: Path):
        self.config_file_path = Path(config_file_path)
        self._parser = configparser.ConfigParser(interpolation=None)

    def load_config(self, cli_options: dict[str, Any] | None = None) -> CacheConfig:
        """
        Builds a validated CacheConfig from the file and command-line overrides.

        A missing file is not an error: the defaults apply. Keys that a newer
        release introduced are written back into an existing file.

        Args:
            cli_options: Settings that take precedence over the file.

        Raises:
            ConfigurationError: If the file cannot be parsed or a value is invalid.
        """
        settings: dict[str, Any] = {}
        if self.config_file_path.is_file():
            try:
                self._parser.read(self.config_file_path, encoding="utf-8")
            except configparser.Error as e:
                raise ConfigurationError(
                    f"Error parsing configuration file: {e}"
                ) from e

            if self._migrate_if_needed():
                log.info(
                    "[yellow]Configuration file was updated with new default values."
                    "[/yellow]"
                )
            settings = self._read_settings()
        else:
            log.debug(
                f"No configuration file at '{self.config_file_path}', using defaults."
            )

        settings.update(cli_options or {})

        try:
            return CacheConfig(
                **settings, config_path=str(self.config_file_path.parent)
            )
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration:\n{e}") from e

    def save_new_config(self, settings: dict[str, Any] | None = None) -> None:
        """
        Writes a complete config file, replacing any existing one.

        Args:
            settings: Values to write; every other key gets its default.

        Raises:
            ConfigurationError: If the file cannot be written.
        """
        settings = settings or {}
        defaults = CacheConfig()
        parser = configparser.ConfigParser(interpolation=None)
        parser[SECTION] = {
            key: str(settings.get(key, getattr(defaults, key)))
            for key in sorted(CacheConfig.get_ini_keys())
        }
        try:
            self._write(parser)
        except OSError as e:
            raise ConfigurationError(f"Failed to save configuration file: {e}") from e

    def _write(self, parser: configparser.ConfigParser) -> None:
        self.config_file_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.config_file_path, "w", encoding="utf-8") as f:
            parser.write(f)

    def _read_settings(self) -> dict[str, Any]:
        """Returns the known, non-empty keys of the parsed file."""
        section = self._parser[SECTION]
        return {
            key: section[key]
            for key in CacheConfig.get_ini_keys()
            if section.get(key, "").strip()
        }

    def _migrate_if_needed(self) -> bool:
        """Fills in keys absent from the parsed file; True if the file was rewritten."""
        defaults = CacheConfig()
        section = self._parser[SECTION]
        missing = sorted(CacheConfig.get_ini_keys() - set(section))
        if not missing:
            return False

        for key in missing:
            section[key] = str(getattr(defaults, key))
            log.debug(f"Config migration: '{key}' defaults to '{section[key]}'.")

        try:
            self._write(self._parser)
        except OSError as e:
            log.error(f"Could not save migrated configuration file: {e}")
            return False
        return True
