"""Disk image mounting and package installation via hdiutil(1) and installer(8)."""

from __future__ import annotations

import contextlib
import logging
import plistlib
import re
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, List, Optional

from .errors import InstallError, MountError, PackageMissingError
from .logs import notice

logger = logging.getLogger(__name__)

# Answers a licence agreement if the image carries one: "q" leaves the
# pager, "y" agrees.
_LICENSE_ANSWERS = "qy\ny\n"


@dataclass(frozen=True)
class CommandResult:
    argv: List[str]
    returncode: int
    stdout: str
    stderr: str


def _run(argv: List[str], *, input_text: Optional[str] = None, timeout_s: Optional[float] = None) -> CommandResult:
    logger.debug("CMD %s", " ".join(argv))
    cp = subprocess.run(
        argv,
        input=input_text,
        check=False,
        capture_output=True,
        text=True,
        errors="replace",
        timeout=timeout_s,
    )
    if cp.stdout:
        logger.debug("STDOUT %s", cp.stdout.strip())
    if cp.stderr:
        logger.debug("STDERR %s", cp.stderr.strip())
    return CommandResult(argv=list(argv), returncode=cp.returncode, stdout=cp.stdout, stderr=cp.stderr)


def parse_mount_points(output: str) -> List[str]:
    """Extract mount points from `hdiutil attach -plist` output.

    The plist may be preceded by licence text, so parsing starts at the XML
    declaration.
    """
    match = re.search(r"^<\?xml", output, re.M)
    if not match:
        return []
    try:
        plist = plistlib.loads(output[match.start():].encode("utf-8"))
    except Exception:
        return []
    mounts: List[str] = []
    for ent in (plist.get("system-entities") or []) if isinstance(plist, dict) else []:
        if isinstance(ent, dict):
            mp = ent.get("mount-point")
            if isinstance(mp, str) and mp:
                mounts.append(mp)
    return mounts


def attach(dmg: Path, *, hdiutil: str = "/usr/bin/hdiutil", timeout_s: Optional[float] = None) -> str:
    notice(logger, "Mounting %s...", Path(dmg).name)
    argv = [hdiutil, "attach", "-plist", "-nobrowse", "-noautoopen", str(dmg)]
    try:
        res = _run(argv, input_text=_LICENSE_ANSWERS, timeout_s=timeout_s)
    except subprocess.TimeoutExpired as e:
        raise MountError(f"hdiutil attach timed out after {timeout_s}s") from e
    except OSError as e:
        raise MountError(f"Failed to run hdiutil: {e}") from e

    if res.returncode != 0:
        raise MountError(f"Failed to mount {Path(dmg).name} (hdiutil exit={res.returncode}): {res.stderr.strip()}")

    mounts = parse_mount_points(res.stdout)
    if not mounts:
        raise MountError(f"Attached {Path(dmg).name} but found no mount point")
    if len(mounts) > 1:
        logger.warning("Disk image has %d mount points; using %s", len(mounts), mounts[0])

    mount_point = mounts[0]
    notice(logger, "Mounted %s.", Path(dmg).name)
    logger.info("Mounted volume: %s", Path(mount_point).name)
    return mount_point


def detach(mount_point: str, *, hdiutil: str = "/usr/bin/hdiutil", timeout_s: Optional[float] = None) -> bool:
    """Force-detach a volume. Runs during cleanup, so it logs instead of raising."""
    logger.info("Unmounting %s...", mount_point)
    try:
        res = _run([hdiutil, "detach", mount_point, "-force"], timeout_s=timeout_s)
    except (subprocess.TimeoutExpired, OSError) as e:
        logger.warning("Failed to unmount %s: %s", mount_point, e)
        return False
    if res.returncode != 0:
        logger.warning("Failed to unmount %s (exit=%s): %s", mount_point, res.returncode, res.stderr.strip())
        return False
    logger.info("Unmounted %s.", mount_point)
    return True


@contextlib.contextmanager
def mounted(dmg: Path, *, hdiutil: str = "/usr/bin/hdiutil", timeout_s: Optional[float] = None) -> Iterator[str]:
    mount_point = attach(dmg, hdiutil=hdiutil, timeout_s=timeout_s)
    try:
        yield mount_point
    finally:
        detach(mount_point, hdiutil=hdiutil, timeout_s=timeout_s)


def install_pkg(
    pkg: Path,
    *,
    installer: str = "/usr/sbin/installer",
    target: str = "/",
    timeout_s: Optional[float] = None,
) -> CommandResult:
    pkg = Path(pkg)
    if not pkg.is_file():
        raise PackageMissingError(f"Package not found on mounted volume: {pkg}")

    logger.info("Installing software...")
    argv = [installer, "-pkg", str(pkg), "-target", target]
    try:
        res = _run(argv, timeout_s=timeout_s)
    except subprocess.TimeoutExpired as e:
        raise InstallError(f"installer timed out after {timeout_s}s") from e
    except OSError as e:
        raise InstallError(f"Failed to run installer: {e}") from e

    if res.returncode != 0:
        msg = (res.stderr or res.stdout or "").strip() or f"installer failed (exit={res.returncode})"
        raise InstallError(f"Failed to install software: {msg}")

    logger.info("Installed software.")
    return res
