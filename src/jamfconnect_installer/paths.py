from __future__ import annotations

import os
from datetime import date
from pathlib import Path
from typing import Optional

DEFAULT_HOME = "/Library/Application Support/JamfConnectInstaller"
DEFAULT_LOG_DIR = "/Library/Logs"
DEFAULT_TEMP_ROOT = "/private/tmp"

LOG_NAME = "jamfconnect-installer"


def installer_home() -> Path:
    override = os.environ.get("JAMFCONNECT_INSTALLER_HOME")
    if override:
        return Path(override).expanduser().resolve()
    return Path(DEFAULT_HOME)


def config_path() -> Path:
    return installer_home() / "config.json"


def log_file_path(log_dir: str | Path, *, today: Optional[date] = None) -> Path:
    """Dated log file, one per day, shared by every run on that day."""
    d = today or date.today()
    return Path(log_dir).expanduser() / f"{LOG_NAME} - {d:%y-%m-%d}.log"
