"""Filesystem helpers used by the key registry.

The functions here resolve the user's home and SSH folders and perform the
few raw operations the registry needs: replacing the SSH symlink, copying
key material into managed storage and removing stored files.  Paths are
always passed in explicitly so tests can operate on a temporary directory.
"""

import logging
import os
import shutil
import stat
import sys
from pathlib import Path
from typing import Mapping, Optional, Union

HOME_VARIABLE = "USERPROFILE" if sys.platform == "win32" else "HOME"
SSH_FOLDER = ".ssh"


def home_folder(environ: Optional[Mapping[str, str]] = None) -> Path:
    """Return the user's home folder from the login environment.

    The variable is set by the login process of every supported platform,
    so a missing value is treated as unrecoverable and raises
    :class:`RuntimeError` instead of a :class:`~keyman_app.errors.KeymanError`.
    """
    env = os.environ if environ is None else environ
    value = env.get(HOME_VARIABLE)
    if not value:
        raise RuntimeError(f"${HOME_VARIABLE} environment not set")
    return Path(value)


def ssh_folder(home: Union[str, Path]) -> Path:
    return Path(home) / SSH_FOLDER


def soft_link(
    target: Union[str, Path],
    link_path: Union[str, Path],
    logger: logging.Logger = logging.getLogger(__name__),
) -> None:
    """Point ``link_path`` at ``target``, replacing a previous symlink.

    Parameters
    ----------
    target: str | Path
        File the link should resolve to.
    link_path: str | Path
        Location of the symlink read by SSH tooling.
    logger: logging.Logger, optional
        Logger used for debug output.

    Only an existing *symlink* is removed.  A regular file at ``link_path``
    is left alone and the resulting :class:`FileExistsError` propagates.
    """
    link = Path(link_path)
    if link.is_symlink():
        logger.debug("Removing previous link %s -> %s", link, os.readlink(link))
        link.unlink()
    if not link.parent.exists():
        link.parent.mkdir(parents=True, exist_ok=True)
        os.chmod(link.parent, stat.S_IRWXU)
        logger.info("Created SSH folder %s", link.parent)
    link.symlink_to(Path(target))
    logger.info("Linked %s -> %s", link, target)


def remove_link(
    link_path: Union[str, Path],
    target: Union[str, Path],
    logger: logging.Logger = logging.getLogger(__name__),
) -> bool:
    """Remove ``link_path`` if it is a symlink pointing at ``target``."""
    link = Path(link_path)
    if not link.is_symlink():
        return False
    if Path(os.readlink(link)) != Path(target):
        logger.debug("Link %s points elsewhere; leaving it", link)
        return False
    link.unlink()
    logger.info("Removed link %s", link)
    return True


def copy_private_key(
    source: Union[str, Path],
    destination: Union[str, Path],
    logger: logging.Logger = logging.getLogger(__name__),
) -> None:
    """Copy a private key and restrict it to owner read/write."""
    dest = Path(destination)
    if not dest.parent.exists():
        dest.parent.mkdir(parents=True, exist_ok=True)
    shutil.copyfile(source, dest)
    os.chmod(dest, stat.S_IRUSR | stat.S_IWUSR)
    logger.info("Copied %s to %s", source, dest)


def remove_file(
    path: Union[str, Path],
    logger: logging.Logger = logging.getLogger(__name__),
) -> bool:
    """Delete ``path`` if present.

    Returns ``True`` when a file was removed and ``False`` when nothing was
    there.  Other errors propagate.
    """
    target = Path(path)
    try:
        target.unlink()
    except FileNotFoundError:
        logger.debug("File %s already absent", target)
        return False
    logger.info("Deleted %s", target)
    return True


def ensure_folder(
    path: Union[str, Path],
    logger: logging.Logger = logging.getLogger(__name__),
) -> Path:
    """Create ``path`` with owner-only permissions when it does not exist."""
    folder = Path(path)
    if not folder.exists():
        folder.mkdir(parents=True, exist_ok=True)
        os.chmod(folder, stat.S_IRWXU)
        logger.info("Created folder %s", folder)
    return folder
