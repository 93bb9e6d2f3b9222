"""Ensure failures end up in the log file inside the application folder."""

import configparser
import logging
from pathlib import Path
import sys

# Make application importable
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from keyman_app import cli
from keyman_app.config import KeymanConfig


def _load_cfg() -> configparser.ConfigParser:
    """Load configuration for error logging tests."""
    cfg = configparser.ConfigParser()
    cfg.read(Path(__file__).with_name("cli_test_config.ini"))
    return cfg


def _flush_handlers() -> None:
    for handler in logging.getLogger().handlers:
        try:
            handler.flush()
        except Exception:
            pass


def test_error_messages_logged(tmp_path, capsys) -> None:
    config = KeymanConfig.for_home(tmp_path)
    missing = tmp_path / "missing_key"

    assert cli.main(["add", str(missing)], config=config) == 1
    _flush_handlers()

    err = capsys.readouterr().err
    assert "Invalid path to private key" in err
    assert "Traceback" not in err
    log_content = config.log_path.read_text(encoding="utf-8")
    assert "Command 'add' failed" in log_content


def test_state_changes_logged(tmp_path, capsys) -> None:
    cfg = _load_cfg()
    config = KeymanConfig.for_home(tmp_path)
    key_file = tmp_path / cfg["key"]["filename"]
    key_file.write_text("private", encoding="utf-8")

    assert cli.main(["add", str(key_file), "-n", cfg["key"]["name"]], config=config) == 0
    _flush_handlers()

    log_content = config.log_path.read_text(encoding="utf-8")
    assert f"SSH key '{cfg['key']['name']}' created" in log_content
    assert "Saved 1 SSH keys" in log_content
