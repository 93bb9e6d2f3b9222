"""Registry of named SSH keys and the active key pointer.

:class:`SshKeyStorage` keeps three things consistent: the in-memory map of
keys, the JSON record on disk and the files in managed storage (copied
private keys plus the symlink in ``~/.ssh``).  Mutations only change memory
and queue filesystem work in :class:`PendingEffects`; :meth:`SshKeyStorage.save`
writes the record and then applies the queued work.  The one exception is
:meth:`SshKeyStorage.use`, which links the key immediately.

There is no locking between processes.  Two invocations running at the
same time may overwrite each other's record.

Usage::

    storage = SshKeyStorage.load(load_config())
    storage.add("~/Downloads/id_rsa_work", name="work")
    storage.save()
    storage.use("work")
    storage.save()
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Union

from . import filesystem
from .config import KeymanConfig
from .errors import (
    DeleteFailed,
    DuplicateName,
    InvalidName,
    InvalidSource,
    LinkFailed,
    MaterializeFailed,
    NotFound,
    PersistFailed,
)
from .ssh_keys import Key, load_record, save_record

logger = logging.getLogger(__name__)

DEFAULT_NAME_PREFIX = "key"


@dataclass
class PendingEffects:
    """Filesystem work queued by mutations and applied by ``save``.

    Attributes:
        copies: Names of keys added this session.  Their private key is
            copied into managed storage on save even if something already
            sits at the destination, since a new key never owns an existing
            file.
        deletions: Keys removed from the registry whose files still have to
            be erased.  The list is their last owner.
        unlink: Link targets to remove from the SSH folder because the
            active key they point at was removed.
    """

    copies: List[str] = field(default_factory=list)
    deletions: List[Key] = field(default_factory=list)
    unlink: List[Path] = field(default_factory=list)

    def __bool__(self) -> bool:
        return bool(self.copies or self.deletions or self.unlink)

    def clear(self) -> None:
        self.copies.clear()
        self.deletions.clear()
        self.unlink.clear()


def _validate_name(name: str) -> str:
    if not name or name in (".", "..") or "/" in name or os.sep in name:
        raise InvalidName(name)
    if os.altsep and os.altsep in name:
        raise InvalidName(name)
    return name


class SshKeyStorage:
    """Named SSH keys, the active key and their managed files."""

    def __init__(
        self,
        config: KeymanConfig,
        keys_by_name: Optional[Dict[str, Key]] = None,
        active_key_name: Optional[str] = None,
    ) -> None:
        self.config = config
        self.keys_by_name: Dict[str, Key] = dict(keys_by_name or {})
        if active_key_name is not None and active_key_name not in self.keys_by_name:
            logger.warning(
                "Active key '%s' is not in the registry; clearing it", active_key_name
            )
            active_key_name = None
        self.active_key_name = active_key_name
        self.pending = PendingEffects()

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    @classmethod
    def load(cls, config: KeymanConfig) -> "SshKeyStorage":
        """Load the record at ``config.record_path`` or start empty."""
        loaded = load_record(config.record_path)
        if loaded is None:
            return cls(config)
        keys, active = loaded
        return cls(config, keys, active)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list(self) -> List[Key]:
        return list(self.keys_by_name.values())

    def get(self, name: str) -> Optional[Key]:
        return self.keys_by_name.get(name)

    def get_active(self) -> Optional[Key]:
        if self.active_key_name is None:
            return None
        return self.keys_by_name.get(self.active_key_name)

    def default_next_name(self) -> str:
        """Return the first unused ``key<N>`` starting at the key count."""
        index = len(self.keys_by_name)
        while True:
            name = f"{DEFAULT_NAME_PREFIX}{index}"
            if name not in self.keys_by_name:
                return name
            index += 1

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def add(self, source_path: Union[str, Path], name: Optional[str] = None) -> Key:
        """Register the private key at ``source_path``.

        The key is named ``name``, else after the file stem, else with
        :meth:`default_next_name`.  Nothing is copied until :meth:`save`.

        Raises:
            InvalidSource: ``source_path`` is not an existing regular file.
            InvalidName: the resolved name cannot be used as a file name.
            DuplicateName: a key with the resolved name already exists.
        """
        source = Path(source_path).expanduser()
        if not source.is_file():
            raise InvalidSource(source)
        source = source.resolve()

        if name is None:
            key_name = source.stem or self.default_next_name()
        else:
            key_name = name
        _validate_name(key_name)
        if key_name in self.keys_by_name:
            raise DuplicateName(key_name)

        key = Key(
            name=key_name,
            original_path=source,
            private_key_path=self._storage_path_for(key_name),
        )
        self.keys_by_name[key_name] = key
        self.pending.copies.append(key_name)
        logger.info("SSH key '%s' added from %s", key_name, source)
        return key

    def use(self, name: str) -> Key:
        """Make ``name`` the active key and link it into the SSH folder.

        The link is created right away; the new active key name is only
        durable after the next :meth:`save`.  A key added in this session
        must be saved first so the link never points at a missing copy.

        Raises:
            NotFound: no key is called ``name``.
            LinkFailed: the key has no managed copy yet or linking failed.
        """
        key = self.keys_by_name.get(name)
        if key is None:
            raise NotFound(name)
        previous = self.active_key_name
        self.active_key_name = name
        try:
            self._link(key)
        except LinkFailed:
            self.active_key_name = previous
            raise
        logger.info("SSH key '%s' is now active", name)
        return key

    def rename(self, old_name: str, new_name: str) -> Key:
        """Rename a key without touching its files.

        Raises:
            NotFound: ``old_name`` does not exist.
            DuplicateName: another key is already called ``new_name``.
        """
        key = self.keys_by_name.get(old_name)
        if key is None:
            raise NotFound(old_name)
        if new_name == old_name:
            return key
        _validate_name(new_name)
        if new_name in self.keys_by_name:
            raise DuplicateName(new_name)

        del self.keys_by_name[old_name]
        key.name = new_name
        self.keys_by_name[new_name] = key
        if self.active_key_name == old_name:
            self.active_key_name = new_name
        self.pending.copies = [
            new_name if pending == old_name else pending for pending in self.pending.copies
        ]
        logger.info("SSH key '%s' renamed to '%s'", old_name, new_name)
        return key

    def remove(self, name: str) -> Key:
        """Drop ``name`` from the registry and queue its files for deletion."""
        key = self.keys_by_name.pop(name, None)
        if key is None:
            raise NotFound(name)
        if self.active_key_name == name:
            self.active_key_name = None
            if key.private_key_path is not None:
                self.pending.unlink.append(key.private_key_path)
        if name in self.pending.copies:
            self.pending.copies.remove(name)
        self.pending.deletions.append(key)
        logger.info("SSH key '%s' removed", name)
        return key

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def save(self) -> Path:
        """Write the record, then apply queued filesystem work.

        Every live key missing its managed copy is materialized, removed
        keys have their files erased and a link to a removed active key is
        dropped.  The first failure propagates and the queue is kept, so
        calling ``save`` again retries the remaining work.
        """
        try:
            filesystem.ensure_folder(self.config.app_dir)
            filesystem.ensure_folder(self.config.keys_dir)
        except OSError as exc:
            logger.exception("Failed to create storage folders: %s", exc)
            raise PersistFailed(self.config.app_dir, str(exc)) from exc

        path = save_record(self.keys_by_name, self.active_key_name, self.config.record_path)

        for name in list(self.pending.copies):
            key = self.keys_by_name.get(name)
            if key is not None:
                self._materialize(key, overwrite=True)
        for key in self.keys_by_name.values():
            self._materialize(key)

        live_paths = {
            key.private_key_path for key in self.keys_by_name.values() if key.private_key_path
        }
        for key in self.pending.deletions:
            self._erase(key, live_paths)
        for target in self.pending.unlink:
            self._unlink(target)

        self.pending.clear()
        logger.info("Saved %d SSH keys", len(self.keys_by_name))
        return path

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _storage_path_for(self, name: str) -> Path:
        """Return a managed path for ``name`` not owned by any other key."""
        taken = {key.private_key_path for key in self.keys_by_name.values()}
        taken.update(key.private_key_path for key in self.pending.deletions)
        candidate = self.config.keys_dir / name
        suffix = 1
        while candidate in taken or candidate.exists() or candidate.is_symlink():
            candidate = self.config.keys_dir / f"{name}-{suffix}"
            suffix += 1
        return candidate

    def _link(self, key: Key) -> None:
        link_path = self.config.link_path
        if key.private_key_path is None or not key.private_key_path.exists():
            logger.warning("SSH key '%s' is not in managed storage yet", key.name)
            raise LinkFailed(key.name, link_path, "key has not been saved to managed storage yet")
        try:
            filesystem.soft_link(key.private_key_path, link_path)
        except OSError as exc:
            logger.exception("Failed to link SSH key '%s': %s", key.name, exc)
            raise LinkFailed(key.name, link_path, str(exc)) from exc

    def _materialize(self, key: Key, overwrite: bool = False) -> None:
        private = key.private_key_path
        if not overwrite and private is not None and private.exists():
            return
        original = key.original_path
        if private is None or original is None or not original.exists():
            raise MaterializeFailed(
                key.name, "no private key path or the original file doesn't exist"
            )
        try:
            if overwrite and (private.exists() or private.is_symlink()):
                logger.warning("Replacing stray file %s for new key '%s'", private, key.name)
                filesystem.remove_file(private)
            filesystem.copy_private_key(original, private)
        except OSError as exc:
            logger.exception("Failed to copy SSH key '%s': %s", key.name, exc)
            raise MaterializeFailed(key.name, str(exc)) from exc
        if key.name in self.pending.copies:
            self.pending.copies.remove(key.name)

    def _erase(self, key: Key, live_paths: set) -> None:
        for path in (key.private_key_path, key.public_key_path):
            if path is None:
                continue
            if path in live_paths:
                logger.warning(
                    "Keeping %s of removed key '%s'; another key uses it", path, key.name
                )
                continue
            try:
                filesystem.remove_file(path)
            except OSError as exc:
                logger.exception("Failed to delete %s: %s", path, exc)
                raise DeleteFailed(key.name, path, str(exc)) from exc

    def _unlink(self, target: Path) -> None:
        try:
            filesystem.remove_link(self.config.link_path, target)
        except OSError as exc:
            logger.exception("Failed to remove link %s: %s", self.config.link_path, exc)
            raise DeleteFailed(target.name, self.config.link_path, str(exc)) from exc
