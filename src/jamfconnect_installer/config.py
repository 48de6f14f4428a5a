from __future__ import annotations

import json
import os
from dataclasses import asdict, dataclass, replace
from pathlib import Path
from typing import Any, Dict, Optional, Sequence

from .paths import DEFAULT_LOG_DIR, DEFAULT_TEMP_ROOT, config_path

LATEST_URL = "https://files.jamfconnect.com/JamfConnect.dmg"
VERSIONED_URL_TEMPLATE = "https://files.jamfconnect.com/JamfConnect-{version}.dmg"

# Jamf Pro passes $1 mount point, $2 computer name, $3 user name; $4 is the
# first free-form policy parameter.
POLICY_CHECKSUM_INDEX = 3


@dataclass(frozen=True)
class InstallerConfig:
    # Leave blank to install the latest published version.
    target_version: str = ""

    # SHA-256 of the disk image. Blank skips verification (less secure).
    # Compute with `jamfconnect-installer checksum /path/to/JamfConnect.dmg`.
    expected_sha256: str = ""

    latest_url: str = LATEST_URL
    versioned_url_template: str = VERSIONED_URL_TEMPLATE
    # The CDN reports the published version in this response header.
    version_header: str = "x-amz-meta-version"

    dmg_filename: str = "JamfConnect.dmg"
    pkg_filename: str = "JamfConnect.pkg"

    temp_root: str = DEFAULT_TEMP_ROOT
    log_dir: str = DEFAULT_LOG_DIR
    install_target: str = "/"

    # External tools (absolute paths, the way a root policy should call them).
    hdiutil: str = "/usr/bin/hdiutil"
    installer: str = "/usr/sbin/installer"

    http_timeout_s: float = 300.0
    # None waits forever, like the tools themselves.
    command_timeout_s: Optional[float] = None


def _load_json(path: Path) -> Dict[str, Any]:
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return {}
    if not isinstance(raw, dict):
        raise ValueError(f"Config file must contain a JSON object: {path}")
    return raw


def _opt_float(v: Any) -> Optional[float]:
    if v in {None, ""}:
        return None
    return float(v)


def _coerce(cfg: Dict[str, Any]) -> InstallerConfig:
    # Keep this explicit so unknown keys are ignored.
    d = InstallerConfig()
    return InstallerConfig(
        target_version=str(cfg.get("target_version") or "").strip(),
        expected_sha256=str(cfg.get("expected_sha256") or "").strip(),
        latest_url=str(cfg.get("latest_url") or d.latest_url),
        versioned_url_template=str(cfg.get("versioned_url_template") or d.versioned_url_template),
        version_header=str(cfg.get("version_header") or d.version_header),
        dmg_filename=str(cfg.get("dmg_filename") or d.dmg_filename),
        pkg_filename=str(cfg.get("pkg_filename") or d.pkg_filename),
        temp_root=str(cfg.get("temp_root") or d.temp_root),
        log_dir=str(cfg.get("log_dir") or d.log_dir),
        install_target=str(cfg.get("install_target") or d.install_target),
        hdiutil=str(cfg.get("hdiutil") or d.hdiutil),
        installer=str(cfg.get("installer") or d.installer),
        http_timeout_s=float(cfg.get("http_timeout_s") or d.http_timeout_s),
        command_timeout_s=_opt_float(cfg.get("command_timeout_s")),
    )


_ENV_KEYS = {
    "JAMFCONNECT_VERSION": "target_version",
    "JAMFCONNECT_SHA256": "expected_sha256",
    "JAMFCONNECT_LATEST_URL": "latest_url",
    "JAMFCONNECT_URL_TEMPLATE": "versioned_url_template",
    "JAMFCONNECT_TEMP_ROOT": "temp_root",
    "JAMFCONNECT_LOG_DIR": "log_dir",
}


def load_config(path: Optional[Path] = None, **overrides: Any) -> InstallerConfig:
    """Build the run configuration.

    Precedence (last wins):
    1) Dataclass defaults
    2) JSON file: `path`, else $JAMFCONNECT_INSTALLER_HOME/config.json
    3) Env: JAMFCONNECT_* variables (see _ENV_KEYS)
    4) `overrides` whose value is not None (CLI flags)
    """
    raw = _load_json(path if path is not None else config_path())
    cfg = _coerce(raw)

    for env_key, field_name in _ENV_KEYS.items():
        v = os.environ.get(env_key)
        if v is not None and v.strip() != "":
            cfg = replace(cfg, **{field_name: v.strip()})

    explicit = {k: v for k, v in overrides.items() if v is not None}
    if explicit:
        cfg = _coerce({**asdict(cfg), **explicit})
    return cfg


def with_policy_checksum(cfg: InstallerConfig, params: Sequence[str]) -> InstallerConfig:
    """Use the 4th policy parameter as the checksum when none is configured."""
    if cfg.expected_sha256:
        return cfg
    if len(params) <= POLICY_CHECKSUM_INDEX:
        return cfg
    value = str(params[POLICY_CHECKSUM_INDEX]).strip()
    if not value:
        return cfg
    return replace(cfg, expected_sha256=value)
