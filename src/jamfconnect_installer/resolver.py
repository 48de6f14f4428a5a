from __future__ import annotations

import logging
import re
from typing import Optional

import httpx

from .config import InstallerConfig
from .logs import notice

logger = logging.getLogger(__name__)

_VERSION_RE = re.compile(r"\d+(?:\.\d+)+")


def resolve_download_url(cfg: InstallerConfig) -> str:
    """Pick the disk image URL: the pinned version if set, else latest."""
    version = cfg.target_version
    if not version:
        logger.info("Connect Version was blank, downloading latest version...")
        url = cfg.latest_url
    else:
        notice(logger, "Downloading Connect Version: %s", version)
        url = cfg.versioned_url_template.format(version=version)
    logger.info("Download URL: %s", url)
    return url


def parse_version(value: Optional[str]) -> str:
    if not value:
        return ""
    m = _VERSION_RE.search(value)
    return m.group(0) if m else ""


def fetch_latest_version(cfg: InstallerConfig, *, client: Optional[httpx.Client] = None) -> str:
    """Ask the CDN which version `latest_url` currently serves.

    Informational only: any failure yields "" and the run carries on.
    """
    try:
        if client is None:
            with httpx.Client(timeout=cfg.http_timeout_s, follow_redirects=True) as c:
                resp = c.head(cfg.latest_url)
        else:
            resp = client.head(cfg.latest_url, follow_redirects=True)
    except httpx.HTTPError as e:
        logger.warning("Latest version lookup failed: %s", e)
        return ""

    if resp.status_code >= 400:
        logger.warning("Latest version lookup returned HTTP %s", resp.status_code)
        return ""

    version = parse_version(resp.headers.get(cfg.version_header))
    notice(logger, "Latest Jamf Connect Version: %s", version)
    return version
