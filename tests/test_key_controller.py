import configparser
from pathlib import Path
import sys

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from keyman_app.config import KeymanConfig
from keyman_app.controllers.key_controller import KeyController


def _load_cfg() -> configparser.ConfigParser:
    cfg = configparser.ConfigParser()
    cfg.read(Path(__file__).with_name("ssh_keys_test_config.ini"))
    return cfg


def test_controller_delegates_to_service(monkeypatch, tmp_path):
    cfg = _load_cfg()
    controller = KeyController(KeymanConfig.for_home(tmp_path))
    called = {}

    def fake_add(private_key, name=None, use_key=False):
        called["args"] = (private_key, name, use_key)
        return {"name": name}

    monkeypatch.setattr(controller.service, "add_key", fake_add)
    key_path = Path(cfg["key1"]["filename"])
    result = controller.add_key(key_path, cfg["key1"]["name"])
    assert result["name"] == cfg["key1"]["name"]
    assert called["args"] == (key_path, cfg["key1"]["name"], False)


def test_remove_delegates_force_flag(monkeypatch, tmp_path):
    cfg = _load_cfg()
    controller = KeyController(KeymanConfig.for_home(tmp_path))
    called = {}

    def fake_remove(name, force=False):
        called["args"] = (name, force)

    monkeypatch.setattr(controller.service, "remove_key", fake_remove)
    controller.remove_key(cfg["key1"]["name"], force=True)
    assert called["args"] == (cfg["key1"]["name"], True)
