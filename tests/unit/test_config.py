from __future__ import annotations

import json
from pathlib import Path

import pytest

from jamfconnect_installer.config import (
    LATEST_URL,
    InstallerConfig,
    load_config,
    with_policy_checksum,
)


def test_defaults_when_no_config_file(tmp_env: Path):
    cfg = load_config()
    assert cfg == InstallerConfig()
    assert cfg.latest_url == LATEST_URL
    assert cfg.target_version == ""
    assert cfg.expected_sha256 == ""


def test_file_then_env_then_overrides(tmp_env: Path, monkeypatch: pytest.MonkeyPatch):
    (tmp_env / "config.json").write_text(
        json.dumps({"target_version": "2.38.0", "expected_sha256": "aa", "unknown_key": 1}),
        encoding="utf-8",
    )
    cfg = load_config()
    assert cfg.target_version == "2.38.0"
    assert cfg.expected_sha256 == "aa"

    monkeypatch.setenv("JAMFCONNECT_VERSION", "2.39.0")
    cfg = load_config()
    assert cfg.target_version == "2.39.0"

    cfg = load_config(target_version="2.40.1", expected_sha256=None)
    assert cfg.target_version == "2.40.1"
    assert cfg.expected_sha256 == "aa"


def test_explicit_config_path(tmp_path: Path, tmp_env: Path):
    p = tmp_path / "custom.json"
    p.write_text(json.dumps({"temp_root": "/var/tmp/x", "command_timeout_s": "90"}), encoding="utf-8")
    cfg = load_config(p)
    assert cfg.temp_root == "/var/tmp/x"
    assert cfg.command_timeout_s == 90.0


def test_non_object_config_is_rejected(tmp_path: Path, tmp_env: Path):
    p = tmp_path / "bad.json"
    p.write_text("[1, 2]", encoding="utf-8")
    with pytest.raises(ValueError):
        load_config(p)


def test_policy_checksum_fills_blank_value():
    cfg = with_policy_checksum(InstallerConfig(), ["/", "mac-01", "admin", "abc123"])
    assert cfg.expected_sha256 == "abc123"


def test_policy_checksum_does_not_override_configured_value():
    cfg = with_policy_checksum(InstallerConfig(expected_sha256="fixed"), ["/", "mac-01", "admin", "other"])
    assert cfg.expected_sha256 == "fixed"


@pytest.mark.parametrize("params", [[], ["/", "mac-01", "admin"], ["/", "mac-01", "admin", "  "]])
def test_policy_checksum_missing_or_blank(params):
    assert with_policy_checksum(InstallerConfig(), params).expected_sha256 == ""
