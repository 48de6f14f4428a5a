from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Callable, Dict

import pytest


# Ensure the src-layout package is importable when running `pytest` without
# installing the project.
_ROOT = Path(__file__).resolve().parents[1]
_SRC = _ROOT / "src"
if _SRC.exists() and str(_SRC) not in sys.path:
    sys.path.insert(0, str(_SRC))

from jamfconnect_installer.config import InstallerConfig  # noqa: E402


_HDIUTIL = """#!/usr/bin/env bash
echo "$0 $*" >> "{log}"
if [ "$1" = "attach" ]; then
  if [ "{attach_code}" != "0" ]; then
    echo "hdiutil: attach failed - no mountable file systems" >&2
    exit {attach_code}
  fi
  cat <<'PLIST'
Software License Agreement
Agree Y/N?
<?xml version="1.0" encoding="UTF-8"?>
<!DOCTYPE plist PUBLIC "-//Apple//DTD PLIST 1.0//EN" "http://www.apple.com/DTDs/PropertyList-1.0.dtd">
<plist version="1.0">
<dict>
  <key>system-entities</key>
  <array>
    <dict>
      <key>dev-entry</key>
      <string>/dev/disk4</string>
    </dict>
    <dict>
      <key>dev-entry</key>
      <string>/dev/disk4s1</string>
      <key>mount-point</key>
      <string>{mount_point}</string>
    </dict>
  </array>
</dict>
</plist>
PLIST
fi
if [ "$1" = "detach" ]; then
  if [ "{detach_code}" != "0" ]; then
    echo "hdiutil: couldn't unmount disk4 - Resource busy" >&2
  fi
  exit {detach_code}
fi
exit 0
"""

_INSTALLER = """#!/usr/bin/env bash
echo "$0 $*" >> "{log}"
printf '{stdout}'
if [ "{code}" != "0" ]; then
  echo "installer: The install failed." >&2
fi
exit {code}
"""


def reset_logging() -> None:
    """Detach handlers a previous configure_logging() call installed."""
    root = logging.getLogger("jamfconnect_installer")
    for h in list(root.handlers):
        root.removeHandler(h)
        h.close()
    if hasattr(root, "_jci_log_path"):
        delattr(root, "_jci_log_path")


def _write_exe(path: Path, text: str) -> Path:
    path.write_text(text, encoding="utf-8")
    path.chmod(0o755)
    return path


@pytest.fixture(autouse=True)
def _isolated_logging():
    reset_logging()
    yield
    reset_logging()


@pytest.fixture()
def tmp_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("JAMFCONNECT_INSTALLER_HOME", str(home))
    for k in (
        "JAMFCONNECT_VERSION",
        "JAMFCONNECT_SHA256",
        "JAMFCONNECT_LATEST_URL",
        "JAMFCONNECT_URL_TEMPLATE",
        "JAMFCONNECT_TEMP_ROOT",
        "JAMFCONNECT_LOG_DIR",
    ):
        monkeypatch.delenv(k, raising=False)
    return home


@pytest.fixture()
def fake_tools(tmp_path: Path) -> Callable[..., Dict[str, Path]]:
    """Write stand-in hdiutil/installer scripts that record their argv."""

    def make(
        *,
        attach_code: int = 0,
        detach_code: int = 0,
        install_code: int = 0,
        install_stdout: str = "",
        with_pkg: bool = True,
    ) -> Dict[str, Path]:
        bindir = tmp_path / "bin"
        bindir.mkdir(exist_ok=True)
        volume = tmp_path / "Volumes" / "JamfConnect"
        volume.mkdir(parents=True, exist_ok=True)
        if with_pkg:
            (volume / "JamfConnect.pkg").write_bytes(b"xar!")
        log = tmp_path / "tools.log"
        hdiutil = _write_exe(
            bindir / "hdiutil",
            _HDIUTIL.format(log=log, attach_code=int(attach_code), detach_code=int(detach_code), mount_point=volume),
        )
        installer = _write_exe(
            bindir / "installer",
            _INSTALLER.format(log=log, code=int(install_code), stdout=install_stdout),
        )
        return {"hdiutil": hdiutil, "installer": installer, "volume": volume, "log": log}

    return make


@pytest.fixture()
def base_cfg(tmp_path: Path) -> InstallerConfig:
    return InstallerConfig(
        temp_root=str(tmp_path / "tmp"),
        log_dir=str(tmp_path / "logs"),
        http_timeout_s=5.0,
        command_timeout_s=30.0,
    )
