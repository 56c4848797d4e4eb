"""Settings and fixed filesystem locations.

Settings come from an optional YAML file:
- $SECURESERVE_CONFIG, if set
- ~/.config/secureserve/config.yaml otherwise

Recognised keys: bind, realm, words_file, log_level. The port and the
certificate directory are fixed.
"""

import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Optional

import yaml

from secureserve.auth import DEFAULT_REALM, is_valid_realm
from secureserve.errors import StartupError
from secureserve.password import DEFAULT_WORDS_FILE

logger = logging.getLogger(__name__)

DEFAULT_PORT = 8081
DEFAULT_BIND = "0.0.0.0"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


class ConfigError(StartupError):
    """Configuration error."""

    def __init__(self, message: str):
        super().__init__("E100", message)


@dataclass
class Settings:
    """Operator settings read at startup."""

    bind: str = DEFAULT_BIND
    realm: str = DEFAULT_REALM
    words_file: Path = DEFAULT_WORDS_FILE
    log_level: str = "INFO"

    def __post_init__(self):
        if isinstance(self.words_file, str) and self.words_file:
            self.words_file = Path(self.words_file).expanduser()
        if not isinstance(self.words_file, Path):
            raise ConfigError(f"Invalid words_file: {self.words_file!r}")
        self.log_level = str(self.log_level).upper()
        if self.log_level not in LOG_LEVELS:
            raise ConfigError(f"Invalid log_level: {self.log_level}")
        if not isinstance(self.bind, str) or not self.bind:
            raise ConfigError(f"Invalid bind address: {self.bind!r}")
        if not is_valid_realm(self.realm):
            raise ConfigError(f"Invalid realm: {self.realm!r}")


def get_cert_dir() -> Path:
    """Directory holding server.crt and server.key."""
    return Path.home() / ".local" / "share" / "secureserve"


def get_config_file() -> Path:
    """Settings file location ($SECURESERVE_CONFIG overrides)."""
    if env_path := os.environ.get("SECURESERVE_CONFIG"):
        return Path(env_path)
    return Path.home() / ".config" / "secureserve" / "config.yaml"


def _parse_yaml(path: Path) -> dict:
    """Parse a YAML file and return contents."""
    with open(path, encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def load_settings(path: Optional[Path] = None) -> Settings:
    """Load settings from YAML, falling back to defaults.

    A missing file at the default location is not an error; a missing file
    that was asked for explicitly is.

    Raises:
        ConfigError: If the file is unreadable, not a mapping, or has bad values
    """
    explicit = path is not None
    path = path or get_config_file()

    if not path.exists():
        if explicit:
            raise ConfigError(f"Config file not found: {path}")
        return Settings()

    try:
        data = _parse_yaml(path)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Cannot read config file {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Config file must contain a mapping: {path}")

    known = {f.name for f in fields(Settings)}
    for key in sorted(set(data) - known):
        logger.warning("Ignoring unknown config key '%s' in %s", key, path)

    logger.debug("Loaded settings from %s", path)
    return Settings(**{k: v for k, v in data.items() if k in known})
