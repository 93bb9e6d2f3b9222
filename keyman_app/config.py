"""Filesystem layout and settings resolved once at startup.

The layout is derived from the user's home folder and an optional
``config.ini`` inside the application folder::

    [keyman]
    link_name = id_rsa
    record_file = keys.json

    [logging]
    level = INFO
    file = keyman.log
"""

import configparser
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from .filesystem import home_folder, ssh_folder
from .ssh_keys import SSH_KEYS_FILE

APP_NAME = "keyman"
CONFIG_FILE = "config.ini"
DEFAULT_LINK_NAME = "id_rsa"
DEFAULT_LOG_FILE = "keyman.log"
KEYS_FOLDER = "keys"


@dataclass(frozen=True)
class KeymanConfig:
    """Paths and settings shared by the registry, service and CLI."""

    home: Path
    app_dir: Path
    keys_dir: Path
    ssh_dir: Path
    record_file: str = SSH_KEYS_FILE
    link_name: str = DEFAULT_LINK_NAME
    log_file: str = DEFAULT_LOG_FILE
    log_level: str = "INFO"

    @property
    def record_path(self) -> Path:
        return self.app_dir / self.record_file

    @property
    def link_path(self) -> Path:
        return self.ssh_dir / self.link_name

    @property
    def log_path(self) -> Path:
        return self.app_dir / self.log_file

    @classmethod
    def for_home(cls, home: Union[str, Path], **overrides) -> "KeymanConfig":
        """Build the default layout below ``home``."""
        home_path = Path(home)
        app_dir = home_path / f".{APP_NAME}"
        return cls(
            home=home_path,
            app_dir=app_dir,
            keys_dir=app_dir / KEYS_FOLDER,
            ssh_dir=ssh_folder(home_path),
            **overrides,
        )


def load_config(
    home: Optional[Union[str, Path]] = None,
    config_file: Optional[Union[str, Path]] = None,
) -> KeymanConfig:
    """Resolve the layout and read overrides from ``config.ini``.

    Parameters
    ----------
    home: str | Path, optional
        Home folder to use.  Defaults to the login environment.
    config_file: str | Path, optional
        INI file with overrides.  Defaults to ``<home>/.keyman/config.ini``.
        A missing file leaves every setting at its default.
    """
    logger = logging.getLogger(__name__)
    home_path = Path(home) if home is not None else home_folder()
    defaults = KeymanConfig.for_home(home_path)
    path = Path(config_file) if config_file is not None else defaults.app_dir / CONFIG_FILE

    cfg = configparser.ConfigParser()
    if not path.exists():
        logger.debug("Config file %s not found; using defaults", path)
        return defaults
    try:
        cfg.read(path, encoding="utf-8")
    except configparser.Error as exc:
        logger.warning("Ignoring unreadable config file %s: %s", path, exc)
        return defaults

    overrides = {
        "link_name": cfg.get("keyman", "link_name", fallback=DEFAULT_LINK_NAME),
        "record_file": cfg.get("keyman", "record_file", fallback=SSH_KEYS_FILE),
        "log_file": cfg.get("logging", "file", fallback=DEFAULT_LOG_FILE),
        "log_level": cfg.get("logging", "level", fallback="INFO").upper(),
    }
    if not isinstance(logging.getLevelName(overrides["log_level"]), int):
        logger.warning(
            "Unknown log level '%s' in %s; using INFO", overrides["log_level"], path
        )
        overrides["log_level"] = "INFO"
    logger.debug("Loaded config overrides from %s: %s", path, overrides)
    return KeymanConfig.for_home(home_path, **overrides)
