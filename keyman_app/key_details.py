import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

import paramiko


@dataclass(frozen=True)
class KeyDetails:
    """Summary of a private key shown by ``keyman info``."""

    key_type: str
    bits: Optional[int]
    fingerprint: Optional[str]
    encrypted: bool = False


def _key_types():
    # Paramiko 3 dropped DSSKey; only try the classes that still exist
    key_types = [paramiko.RSAKey]
    if hasattr(paramiko, "ECDSAKey"):
        key_types.append(paramiko.ECDSAKey)
    if hasattr(paramiko, "Ed25519Key"):
        key_types.append(paramiko.Ed25519Key)
    return key_types


def read_private_key(
    pkey_file: Union[str, Path],
    logger: Optional[logging.Logger] = None,
):
    """Try the supported key classes and return the first that parses.

    Raises :class:`paramiko.PasswordRequiredException` for encrypted keys and
    returns ``None`` when no class understands the file.
    """
    for pkey_cls in _key_types():
        try:
            if logger:
                logger.debug("Attempting to load %s using %s", pkey_file, pkey_cls.__name__)
            return pkey_cls.from_private_key_file(str(pkey_file))
        except paramiko.PasswordRequiredException:
            raise
        except (paramiko.SSHException, OSError, ValueError) as exc:
            if logger:
                logger.debug(
                    "Failed loading %s as %s: %s", pkey_file, pkey_cls.__name__, exc
                )
    return None


def describe_key(path: Union[str, Path]) -> Optional[KeyDetails]:
    """Return type, size and SHA256 fingerprint of the key at ``path``.

    ``None`` is returned when the file is missing or is not a private key
    paramiko understands.  Encrypted keys are reported without details.
    """
    logger = logging.getLogger(__name__)
    key_path = Path(path)
    if not key_path.is_file():
        logger.debug("Key file %s not found", key_path)
        return None
    try:
        pkey = read_private_key(key_path, logger=logger)
    except paramiko.PasswordRequiredException:
        logger.info("Key %s is protected by a passphrase", key_path)
        return KeyDetails(key_type="encrypted", bits=None, fingerprint=None, encrypted=True)
    if pkey is None:
        logger.info("Key %s could not be parsed", key_path)
        return None
    return KeyDetails(
        key_type=pkey.get_name(),
        bits=pkey.get_bits(),
        fingerprint=pkey.fingerprint,
    )
