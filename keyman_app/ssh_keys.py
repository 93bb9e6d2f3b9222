"""The SSH key model and the JSON record it is stored in."""

import json
import logging
import os
import stat
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

from .errors import LoadFailed, PersistFailed

SSH_KEYS_FILE = "keys.json"


@dataclass
class Key:
    """One managed SSH key pair.

    Attributes:
        name: Unique name the key is referenced by.
        original_path: Private key file supplied when the key was added.
        private_key_path: Copy of the private key inside managed storage.
        public_key_path: Public key inside managed storage; currently
            never populated.
    """

    name: str
    original_path: Optional[Path] = None
    private_key_path: Optional[Path] = None
    public_key_path: Optional[Path] = None

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {
            "originalPath": _path_str(self.original_path),
            "privateKeyPath": _path_str(self.private_key_path),
            "publicKeyPath": _path_str(self.public_key_path),
            "name": self.name,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], fallback_name: str) -> "Key":
        name = data.get("name") or fallback_name
        if not isinstance(name, str):
            raise ValueError(f"key name must be a string, got {name!r}")
        return cls(
            name=name,
            original_path=_optional_path(data.get("originalPath")),
            private_key_path=_optional_path(data.get("privateKeyPath")),
            public_key_path=_optional_path(data.get("publicKeyPath")),
        )


def _path_str(path: Optional[Path]) -> Optional[str]:
    return str(path) if path is not None else None


def _optional_path(value: Any) -> Optional[Path]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValueError(f"expected a path string, got {value!r}")
    return Path(value)


def load_record(
    file_path: Union[str, Path] = SSH_KEYS_FILE,
) -> Optional[Tuple[Dict[str, Key], Optional[str]]]:
    """Load keys and the active key name from a JSON record.

    Returns ``None`` when the file does not exist.  A file that cannot be
    read or does not have the expected shape raises :class:`LoadFailed`
    so that it is never silently replaced by an empty record.
    """
    logger = logging.getLogger(__name__)
    path = Path(file_path)
    if not path.exists():
        logger.info("SSH key record %s not found", path)
        return None
    try:
        with open(path, "r", encoding="utf-8") as handle:
            data = json.load(handle)
    except (OSError, ValueError) as exc:
        logger.exception("Failed to load SSH key record: %s", exc)
        raise LoadFailed(path, str(exc)) from exc

    if not isinstance(data, dict):
        logger.warning("SSH key record %s has invalid format", path)
        raise LoadFailed(path, "expected a JSON object")
    raw_keys = data.get("keysByName")
    if raw_keys is None:
        raw_keys = {}
    active = data.get("activeKeyName")
    if not isinstance(raw_keys, dict) or not (active is None or isinstance(active, str)):
        logger.warning("SSH key record %s has invalid format", path)
        raise LoadFailed(path, "unexpected field types")

    keys: Dict[str, Key] = {}
    for name, raw in raw_keys.items():
        if not isinstance(raw, dict):
            raise LoadFailed(path, f"entry '{name}' is not an object")
        try:
            key = Key.from_dict(raw, fallback_name=name)
        except ValueError as exc:
            raise LoadFailed(path, f"entry '{name}': {exc}") from exc
        # the map key is authoritative for lookups
        key.name = name
        keys[name] = key
    logger.info("Loaded %d SSH keys", len(keys))
    return keys, active


def save_record(
    keys: Dict[str, Key],
    active_key_name: Optional[str],
    file_path: Union[str, Path] = SSH_KEYS_FILE,
) -> Path:
    """Persist keys and the active key name, overwriting ``file_path``."""
    logger = logging.getLogger(__name__)
    path = Path(file_path)
    record = {
        "activeKeyName": active_key_name,
        "keysByName": {name: key.to_dict() for name, key in keys.items()},
    }
    try:
        payload = json.dumps(record, indent=2)
        with open(path, "w", encoding="utf-8") as handle:
            handle.write(payload)
        os.chmod(path, stat.S_IRUSR | stat.S_IWUSR)
    except (OSError, TypeError, ValueError) as exc:
        logger.exception("Failed to save SSH key record: %s", exc)
        raise PersistFailed(path, str(exc)) from exc
    logger.info("Saved %d SSH keys to %s", len(keys), path)
    return path
