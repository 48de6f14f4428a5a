from __future__ import annotations

import contextlib
import logging
from pathlib import Path
from typing import Optional

import httpx

from .errors import DownloadError

logger = logging.getLogger(__name__)

_CHUNK = 1024 * 1024


def _discard(dest: Path) -> None:
    with contextlib.suppress(OSError):
        dest.unlink(missing_ok=True)


def _stream_to(client: httpx.Client, url: str, dest: Path) -> int:
    written = 0
    with client.stream("GET", url, follow_redirects=True) as resp:
        if resp.status_code >= 400:
            raise DownloadError(f"Download failed ({resp.status_code}): {url}")
        with dest.open("wb") as f:
            for chunk in resp.iter_bytes(_CHUNK):
                f.write(chunk)
                written += len(chunk)
    return written


def download(
    url: str,
    dest: Path,
    *,
    client: Optional[httpx.Client] = None,
    timeout_s: float = 300.0,
) -> Path:
    """Download `url` to `dest`, following redirects.

    Raises DownloadError on transport failure, an HTTP error status or a
    local write error. A partially written file is removed before raising.
    """
    dest = Path(dest)
    logger.info("Downloading disk image %s", dest.name)
    try:
        if client is None:
            with httpx.Client(timeout=timeout_s) as c:
                size = _stream_to(c, url, dest)
        else:
            size = _stream_to(client, url, dest)
    except httpx.TimeoutException as e:
        _discard(dest)
        raise DownloadError(f"Download timed out after {timeout_s}s: {url}") from e
    except httpx.HTTPError as e:
        _discard(dest)
        raise DownloadError(f"Download connection error: {e}") from e
    except DownloadError:
        _discard(dest)
        raise
    except OSError as e:
        _discard(dest)
        raise DownloadError(f"Failed to write {dest}: {e}") from e

    logger.debug("Downloaded %d bytes to %s", size, dest)
    return dest
