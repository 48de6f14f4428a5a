from __future__ import annotations

import contextlib
import logging
import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Optional

import httpx

from .config import InstallerConfig
from .dmg import install_pkg, mounted
from .errors import InstallerError, WorkspaceError
from .fetcher import download
from .logs import notice
from .resolver import fetch_latest_version, resolve_download_url
from .verify import verify_checksum

logger = logging.getLogger(__name__)

_EXIT_CODES = {"ok": 0, "dry_run": 0, "checksum_mismatch": 1}


@dataclass(frozen=True)
class RunOutcome:
    status: str  # ok | dry_run | checksum_mismatch | <InstallerError.status>
    message: str
    download_url: str
    latest_version: str = ""
    computed_sha256: str = ""

    @property
    def ok(self) -> bool:
        return self.exit_code == 0

    @property
    def exit_code(self) -> int:
        return _EXIT_CODES.get(self.status, 2)


@contextlib.contextmanager
def workspace(cfg: InstallerConfig) -> Iterator[Path]:
    """A uniquely named temp dir, removed on every exit path."""
    root = Path(cfg.temp_root)
    try:
        root.mkdir(parents=True, exist_ok=True)
        work = Path(tempfile.mkdtemp(prefix="jamfconnect-installer.", dir=str(root)))
    except OSError as e:
        raise WorkspaceError(f"Failed to create working directory under {root}: {e}") from e
    logger.info("Created working directory '%s'", work)
    try:
        yield work
    finally:
        notice(logger, "Deleting DMG...")
        try:
            shutil.rmtree(work)
            logger.info("Deleted DMG.")
        except OSError as e:
            logger.error("Failed to delete DMG: %s", e)


def run_install(
    cfg: InstallerConfig,
    *,
    client: Optional[httpx.Client] = None,
    dry_run: bool = False,
) -> RunOutcome:
    """Resolve, download, verify, install, clean up. Stops at the first failure."""
    latest = fetch_latest_version(cfg, client=client)
    url = resolve_download_url(cfg)

    if dry_run:
        logger.info("Dry run: would download %s and install %s", url, cfg.pkg_filename)
        return RunOutcome(status="dry_run", message="dry run", download_url=url, latest_version=latest)

    computed = ""
    try:
        with workspace(cfg) as work:
            artifact = download(url, work / cfg.dmg_filename, client=client, timeout_s=cfg.http_timeout_s)

            res = verify_checksum(artifact, cfg.expected_sha256)
            computed = res.computed
            if not res.ok:
                logger.error(
                    "Checksum failed. Recalculate the SHA 256 checksum and try again. "
                    "Or download may not be valid."
                )
                return RunOutcome(
                    status="checksum_mismatch",
                    message=res.message,
                    download_url=url,
                    latest_version=latest,
                    computed_sha256=computed,
                )
            if res.skipped:
                logger.warning("No checksum configured; installing without verification.")
            logger.info("Checksum verified. Installing software...")

            with mounted(artifact, hdiutil=cfg.hdiutil, timeout_s=cfg.command_timeout_s) as volume:
                install_pkg(
                    Path(volume) / cfg.pkg_filename,
                    installer=cfg.installer,
                    target=cfg.install_target,
                    timeout_s=cfg.command_timeout_s,
                )
    except InstallerError as e:
        logger.error("%s", e)
        return RunOutcome(
            status=e.status,
            message=str(e),
            download_url=url,
            latest_version=latest,
            computed_sha256=computed,
        )

    return RunOutcome(
        status="ok",
        message="installed",
        download_url=url,
        latest_version=latest,
        computed_sha256=computed,
    )
