"""Exceptions raised by the key registry and its collaborators.

Every failure the command line can render inherits from
:class:`KeymanError`.  Wrapped operating system errors are chained so the
original cause stays available in the log file.
"""

from pathlib import Path
from typing import Optional, Union


class KeymanError(Exception):
    """Base class for all recoverable keyman failures."""


class InvalidSource(KeymanError):
    """The path given to ``add`` is not an existing regular file."""

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)
        super().__init__(f"Invalid path to private key: {self.path}")


class InvalidName(KeymanError):
    """A key name cannot be used as a file name in managed storage."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Invalid key name: '{name}'")


class DuplicateName(KeymanError):
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"A key named '{name}' already exists")


class NotFound(KeymanError):
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"No key named '{name}' was found")


class KeyInUse(KeymanError):
    """Removal of the active key was requested without ``force``."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(
            f"The key '{name}' is currently in use, use --force to remove it"
        )


class MaterializeFailed(KeymanError):
    def __init__(self, name: str, reason: str) -> None:
        self.name = name
        super().__init__(f"Failed to store key '{name}': {reason}")


class LinkFailed(KeymanError):
    def __init__(self, name: str, link_path: Union[str, Path], reason: str) -> None:
        self.name = name
        self.link_path = Path(link_path)
        super().__init__(f"Failed to link key '{name}' as {self.link_path}: {reason}")


class PersistFailed(KeymanError):
    def __init__(self, path: Union[str, Path], reason: str) -> None:
        self.path = Path(path)
        super().__init__(f"Failed to save changes to {self.path}: {reason}")


class DeleteFailed(KeymanError):
    def __init__(self, name: str, path: Optional[Union[str, Path]], reason: str) -> None:
        self.name = name
        self.path = Path(path) if path is not None else None
        super().__init__(f"Failed to delete files of key '{name}': {reason}")


class LoadFailed(KeymanError):
    def __init__(self, path: Union[str, Path], reason: str) -> None:
        self.path = Path(path)
        super().__init__(f"Failed to read key record {self.path}: {reason}")
