"""Tests for the JSON record of SSH keys."""
import configparser
import json
from pathlib import Path
import sys

import pytest

# Ensure application importable
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from keyman_app.errors import LoadFailed, PersistFailed
from keyman_app.ssh_keys import Key, load_record, save_record, SSH_KEYS_FILE


def _load_cfg() -> configparser.ConfigParser:
    cfg = configparser.ConfigParser()
    cfg.read(Path(__file__).with_name("ssh_keys_test_config.ini"))
    return cfg


def test_record_round_trip(tmp_path):
    cfg = _load_cfg()
    record_file = tmp_path / SSH_KEYS_FILE
    name1 = cfg["key1"]["name"]
    name2 = cfg["key2"]["name"]
    keys = {
        name1: Key(
            name=name1,
            original_path=tmp_path / cfg["key1"]["filename"],
            private_key_path=tmp_path / "keys" / name1,
        ),
        name2: Key(name=name2, private_key_path=tmp_path / "keys" / name2),
    }

    save_record(keys, name1, record_file)
    loaded, active = load_record(record_file)

    assert active == name1
    assert loaded == keys


def test_record_uses_camel_case_fields(tmp_path):
    cfg = _load_cfg()
    record_file = tmp_path / SSH_KEYS_FILE
    name = cfg["key1"]["name"]
    key = Key(name=name, original_path=tmp_path / "src", private_key_path=tmp_path / name)

    save_record({name: key}, None, record_file)
    data = json.loads(record_file.read_text(encoding="utf-8"))

    assert data["activeKeyName"] is None
    assert data["keysByName"][name] == {
        "originalPath": str(tmp_path / "src"),
        "privateKeyPath": str(tmp_path / name),
        "publicKeyPath": None,
        "name": name,
    }


def test_missing_record_returns_none(tmp_path):
    assert load_record(tmp_path / SSH_KEYS_FILE) is None


@pytest.mark.parametrize(
    "payload",
    ["not json", "[]", '{"keysByName": []}', '{"keysByName": {"a": 1}}', '{"activeKeyName": 3}'],
)
def test_malformed_record_raises(tmp_path, payload):
    record_file = tmp_path / SSH_KEYS_FILE
    record_file.write_text(payload, encoding="utf-8")
    with pytest.raises(LoadFailed):
        load_record(record_file)


def test_map_key_overrides_stored_name(tmp_path):
    record_file = tmp_path / SSH_KEYS_FILE
    record_file.write_text(
        json.dumps({"activeKeyName": None, "keysByName": {"work": {"name": "old"}}}),
        encoding="utf-8",
    )
    keys, _ = load_record(record_file)
    assert keys["work"].name == "work"
    assert keys["work"].private_key_path is None


def test_save_into_missing_folder_raises(tmp_path):
    with pytest.raises(PersistFailed):
        save_record({}, None, tmp_path / "missing" / SSH_KEYS_FILE)
