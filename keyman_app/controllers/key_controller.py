from pathlib import Path
from typing import List, Optional, Tuple, Union

from ..config import KeymanConfig
from ..key_details import KeyDetails
from ..services.key_service import KeyService
from ..ssh_keys import Key


class KeyController:
    """Controller coordinating SSH key service calls."""

    def __init__(self, config: Optional[KeymanConfig] = None) -> None:
        self.service = KeyService(config)

    def list_keys(self) -> Tuple[List[Key], Optional[str]]:
        return self.service.list_keys()

    def get_key(self, name: str) -> Key:
        return self.service.get_key(name)

    def active_key(self) -> Optional[Key]:
        return self.service.active_key()

    def is_active(self, name: str) -> bool:
        return self.service.is_active(name)

    def describe(self, key: Key) -> Optional[KeyDetails]:
        return self.service.describe(key)

    def add_key(
        self,
        private_key: Union[str, Path],
        name: Optional[str] = None,
        use_key: bool = False,
    ) -> Key:
        return self.service.add_key(private_key, name, use_key)

    def use_key(self, name: str) -> Key:
        return self.service.use_key(name)

    def rename_key(self, name: str, new_name: str) -> Key:
        return self.service.rename_key(name, new_name)

    def remove_key(self, name: str, force: bool = False) -> Key:
        return self.service.remove_key(name, force)
