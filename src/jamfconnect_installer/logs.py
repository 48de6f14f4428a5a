"""Run log: a dated, append-only file plus a copy on stderr.

Each line carries the tool name and version, a timestamp and a tag:

    jamfconnect-installer (1.3.0): 2024-09-19 10:02:11 - [NOTICE]          Mounting JamfConnect.dmg...

Tags follow the record level, except records logged with
``extra={"tag": "PRE-FLIGHT"}`` which keep their own tag.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from . import __version__
from .errors import LogSetupError
from .paths import LOG_NAME, log_file_path

logger = logging.getLogger(__name__)

NOTICE = 25
logging.addLevelName(NOTICE, "NOTICE")

PREFLIGHT = {"tag": "PRE-FLIGHT"}

_TAG_WIDTH = 18


class TaggedFormatter(logging.Formatter):
    def __init__(self) -> None:
        super().__init__(datefmt="%Y-%m-%d %H:%M:%S")

    def format(self, record: logging.LogRecord) -> str:
        tag = getattr(record, "tag", None) or record.levelname
        ts = self.formatTime(record, self.datefmt)
        line = f"{LOG_NAME} ({__version__}): {ts} - " + f"[{tag}]".ljust(_TAG_WIDTH) + record.getMessage()
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def notice(log: logging.Logger, msg: str, *args: object) -> None:
    log.log(NOTICE, msg, *args)


def configure_logging(
    log_dir: str,
    *,
    level: int = logging.INFO,
    also_console: bool = True,
) -> Path:
    """Attach the dated file handler (and stderr) to the package logger.

    Returns the log file path. Calling it again in the same process is a no-op.
    """
    root = logging.getLogger("jamfconnect_installer")
    configured: Optional[Path] = getattr(root, "_jci_log_path", None)
    if configured is not None:
        return configured

    path = log_file_path(log_dir)
    existed = path.is_file()
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path, mode="a", encoding="utf-8")
    except OSError as e:
        raise LogSetupError(
            f"Unable to create specified script log '{path}'; exiting.\n\n"
            "(Is this script running as 'root' ?)"
        ) from e

    fmt = TaggedFormatter()
    file_handler.setFormatter(fmt)
    root.addHandler(file_handler)
    if also_console:
        console = logging.StreamHandler()
        console.setFormatter(fmt)
        root.addHandler(console)
    root.setLevel(level)

    setattr(root, "_jci_log_path", path)

    if existed:
        logger.info("Specified script log exists; writing log entries to it", extra=PREFLIGHT)
    else:
        logger.info("Created specified script log", extra=PREFLIGHT)
    return path
