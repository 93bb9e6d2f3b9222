"""Ensure private keys are described when Paramiko lacks DSSKey."""

import configparser
from pathlib import Path
import sys

# Make application importable
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from keyman_app import key_details


def _load_cfg() -> configparser.ConfigParser:
    """Load expectations for key description tests."""
    cfg = configparser.ConfigParser()
    cfg.read(Path(__file__).with_name("read_private_key_test_config.ini"))
    return cfg


def test_describe_key_handles_missing_dsskey(tmp_path, monkeypatch) -> None:
    cfg = _load_cfg()
    monkeypatch.delattr(key_details.paramiko, "DSSKey", raising=False)
    bits = cfg["generate"].getint("bits")
    key_file = tmp_path / "id_rsa"
    key = key_details.paramiko.RSAKey.generate(bits)
    key.write_private_key_file(str(key_file))

    details = key_details.describe_key(key_file)

    assert details.key_type == cfg["expected"]["key_type"]
    assert details.bits == cfg["expected"].getint("bits")
    assert details.fingerprint.startswith(cfg["expected"]["fingerprint_prefix"])
    assert details.encrypted is False


def test_describe_encrypted_key(tmp_path) -> None:
    cfg = _load_cfg()
    key_file = tmp_path / "id_rsa"
    key = key_details.paramiko.RSAKey.generate(cfg["generate"].getint("bits"))
    key.write_private_key_file(str(key_file), password="secret")

    details = key_details.describe_key(key_file)

    assert details.encrypted is True
    assert details.fingerprint is None


def test_describe_unparseable_or_missing_key(tmp_path) -> None:
    garbage = tmp_path / "not_a_key"
    garbage.write_text("hello", encoding="utf-8")
    assert key_details.describe_key(garbage) is None
    assert key_details.describe_key(tmp_path / "missing") is None
