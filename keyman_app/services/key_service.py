import logging
from pathlib import Path
from typing import List, Optional, Tuple, Union

from ..config import KeymanConfig, load_config
from ..errors import KeyInUse, NotFound
from ..key_details import KeyDetails, describe_key
from ..ssh_keys import Key
from ..store import SshKeyStorage


class KeyService:
    """Service layer running one load, mutate and save cycle per command."""

    def __init__(self, config: Optional[KeymanConfig] = None) -> None:
        self.config = config if config is not None else load_config()
        self.logger = logging.getLogger(__name__)
        self.logger.debug("Using key record %s", self.config.record_path)

    def load_storage(self) -> SshKeyStorage:
        return SshKeyStorage.load(self.config)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def list_keys(self) -> Tuple[List[Key], Optional[str]]:
        """Return all keys and the name of the active one."""
        storage = self.load_storage()
        active = storage.get_active()
        return storage.list(), active.name if active else None

    def get_key(self, name: str) -> Key:
        key = self.load_storage().get(name)
        if key is None:
            raise NotFound(name)
        return key

    def active_key(self) -> Optional[Key]:
        return self.load_storage().get_active()

    def describe(self, key: Key) -> Optional[KeyDetails]:
        if key.private_key_path is None:
            return None
        return describe_key(key.private_key_path)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    def add_key(
        self,
        private_key: Union[str, Path],
        name: Optional[str] = None,
        use_key: bool = False,
    ) -> Key:
        """Add a key and optionally activate it.

        The registry is saved before linking so that the link never points
        at a key that has not been copied into managed storage yet.
        """
        storage = self.load_storage()
        key = storage.add(private_key, name)
        storage.save()
        self.logger.info("SSH key '%s' created", key.name)
        if use_key:
            storage.use(key.name)
            storage.save()
        return key

    def use_key(self, name: str) -> Key:
        storage = self.load_storage()
        key = storage.use(name)
        storage.save()
        return key

    def rename_key(self, name: str, new_name: str) -> Key:
        storage = self.load_storage()
        key = storage.rename(name, new_name)
        storage.save()
        self.logger.info("SSH key '%s' updated", name)
        return key

    def remove_key(self, name: str, force: bool = False) -> Key:
        """Remove a key, refusing the active one unless ``force`` is set."""
        storage = self.load_storage()
        if storage.get(name) is None:
            raise NotFound(name)
        if storage.active_key_name == name and not force:
            self.logger.warning("Refusing to remove active key '%s'", name)
            raise KeyInUse(name)
        key = storage.remove(name)
        storage.save()
        self.logger.info("SSH key '%s' deleted", name)
        return key

    def is_active(self, name: str) -> bool:
        return self.load_storage().active_key_name == name
