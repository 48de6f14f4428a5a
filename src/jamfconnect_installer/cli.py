from __future__ import annotations

import argparse
import json
import logging
from dataclasses import asdict
from pathlib import Path
from typing import Optional

from . import __version__
from .config import InstallerConfig, load_config, with_policy_checksum
from .errors import LogSetupError
from .logs import configure_logging
from .pipeline import run_install
from .resolver import fetch_latest_version, resolve_download_url
from .verify import sha256_file

logger = logging.getLogger(__name__)


def _load(args: argparse.Namespace) -> InstallerConfig:
    path = Path(args.config).expanduser() if getattr(args, "config", None) else None
    try:
        return load_config(
            path,
            target_version=getattr(args, "target_version", None),
            expected_sha256=getattr(args, "sha256", None),
            log_dir=getattr(args, "log_dir", None),
        )
    except (OSError, ValueError) as e:
        raise SystemExit(f"Could not load configuration: {e}")


def cmd_version(_: argparse.Namespace) -> int:
    print(__version__)
    return 0


def cmd_install(args: argparse.Namespace) -> int:
    cfg = with_policy_checksum(_load(args), list(args.params or []))
    try:
        configure_logging(cfg.log_dir)
    except LogSetupError as e:
        raise SystemExit(str(e))

    outcome = run_install(cfg, dry_run=bool(args.dry_run))
    if bool(getattr(args, "json", False)):
        print(json.dumps({**asdict(outcome), "exit_code": outcome.exit_code}, indent=2, sort_keys=True))
    return outcome.exit_code


def cmd_resolve(args: argparse.Namespace) -> int:
    cfg = _load(args)
    payload = {
        "download_url": resolve_download_url(cfg),
        "latest_version": fetch_latest_version(cfg),
    }
    print(json.dumps(payload, indent=2, sort_keys=True))
    return 0


def cmd_checksum(args: argparse.Namespace) -> int:
    p = Path(args.path).expanduser()
    if not p.is_file():
        raise SystemExit(f"Not a file: {p}")
    print(sha256_file(p))
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="jamfconnect-installer")
    sub = p.add_subparsers(dest="cmd", required=True)

    sub.add_parser("version").set_defaults(fn=cmd_version)

    inst = sub.add_parser("install", help="Download, verify and install Jamf Connect")
    inst.add_argument("--version", dest="target_version", default=None, help="Version to install (default: latest)")
    inst.add_argument("--sha256", default=None, help="Expected SHA-256 of the disk image")
    inst.add_argument("--config", default=None, help="Path to a JSON config file")
    inst.add_argument("--log-dir", default=None, help="Directory for the dated run log")
    inst.add_argument("--dry-run", action="store_true", help="Resolve the download URL without installing")
    inst.add_argument("--json", action="store_true", help="Print the run outcome as JSON")
    inst.add_argument(
        "params",
        nargs="*",
        help="Jamf Pro policy parameters ($1 $2 $3 $4 ...); $4 is the expected SHA-256",
    )
    inst.set_defaults(fn=cmd_install)

    res = sub.add_parser("resolve", help="Print the download URL and latest published version")
    res.add_argument("--version", dest="target_version", default=None)
    res.add_argument("--config", default=None)
    res.set_defaults(fn=cmd_resolve)

    chk = sub.add_parser("checksum", help="Print the SHA-256 of a downloaded disk image")
    chk.add_argument("path")
    chk.set_defaults(fn=cmd_checksum)

    return p


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    return int(args.fn(args))


if __name__ == "__main__":
    raise SystemExit(main())
