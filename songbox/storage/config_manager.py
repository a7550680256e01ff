"""
Reads and writes the player's INI settings file.

The file holds a single DEFAULT section whose keys mirror the fields of
PlayerConfig. Keys added in newer releases are written back with their
defaults the first time an older file is loaded.
"""

import configparser
import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from songbox.exceptions import ConfigurationError
from songbox.models.config import PlayerConfig

log = logging.getLogger(__name__)

DEFAULTS: dict[str, Any] = {
    "catalog_path": "",
    "download_dir": "",
    "default_volume": 1.0,
    "progress_interval_ms": 500,
    "max_concurrent_downloads": 4,
    "verify_downloads": False,
}


def _to_ini(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class ConfigManager:
    """Loads, migrates and saves `config.ini` for one config directory."""

    def __init__(self, config_file_path: Path):
        self.config_file_path = config_file_path
        self._parser = configparser.ConfigParser(interpolation=None)

    def load_config(self, cli_options: dict[str, Any] | None = None) -> PlayerConfig:
        """
        Builds a PlayerConfig from the INI file with command-line overrides applied.

        Raises:
            ConfigurationError: The file is missing or unparsable, holds a value
            of the wrong type, or the merged settings fail validation.
        """
        if not self.config_file_path.is_file():
            raise ConfigurationError(
                f"No configuration at '{self.config_file_path}'. "
                "Please run 'songbox init' first."
            )

        try:
            self._parser.read(self.config_file_path, encoding="utf-8")
        except configparser.Error as e:
            raise ConfigurationError(f"Error parsing configuration file: {e}") from e

        if self._migrate_if_needed():
            log.info("[yellow]Added new settings with default values to the config file.[/yellow]")

        try:
            settings = self._read_settings()
        except ValueError as e:
            raise ConfigurationError(f"Invalid value in configuration file: {e}") from e
        settings.update(cli_options or {})

        try:
            return PlayerConfig(**settings, config_path=str(self.config_file_path.parent))
        except ValidationError as e:
            raise ConfigurationError(f"Configuration validation failed:\n{e}") from e

    def save_new_config(self, settings: dict[str, Any]) -> None:
        """Writes a fresh config file, filling unspecified keys with defaults."""
        parser = configparser.ConfigParser(interpolation=None)
        parser["DEFAULT"] = {
            key: _to_ini(settings.get(key, DEFAULTS[key]))
            for key in sorted(PlayerConfig.get_ini_keys())
            if settings.get(key, DEFAULTS[key]) is not None
        }
        self._write(parser, strict=True)
        log.debug(f"Saved new configuration to '{self.config_file_path}'.")

    def _read_settings(self) -> dict[str, Any]:
        section = self._parser["DEFAULT"]
        readers = {bool: section.getboolean, int: section.getint, float: section.getfloat}
        settings = {}
        for key in PlayerConfig.get_ini_keys():
            reader = readers.get(type(DEFAULTS[key]), section.get)
            settings[key] = reader(key, DEFAULTS[key])
        return settings

    def _migrate_if_needed(self) -> bool:
        """Writes defaults for keys the file does not have yet. Returns True if it did."""
        section = self._parser["DEFAULT"]
        missing = sorted(PlayerConfig.get_ini_keys() - set(section))
        if not missing:
            return False

        for key in missing:
            section[key] = _to_ini(DEFAULTS[key])
            log.debug(f"Migrating config: '{key}' = '{section[key]}'.")
        return self._write(self._parser, strict=False)

    def _write(self, parser: configparser.ConfigParser, strict: bool) -> bool:
        try:
            self.config_file_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.config_file_path, "w", encoding="utf-8") as f:
                parser.write(f)
        except OSError as e:
            if strict:
                raise ConfigurationError(f"Failed to save configuration file: {e}") from e
            log.error(f"Could not save migrated configuration file: {e}")
            return False
        return True
