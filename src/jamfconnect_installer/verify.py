from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass
from pathlib import Path

from .errors import VerifyError

logger = logging.getLogger(__name__)

_CHUNK = 1024 * 1024


@dataclass(frozen=True)
class VerifyResult:
    ok: bool
    skipped: bool
    computed: str
    expected: str
    message: str


def sha256_file(path: Path) -> str:
    h = hashlib.sha256()
    with Path(path).open("rb") as f:
        for chunk in iter(lambda: f.read(_CHUNK), b""):
            h.update(chunk)
    return h.hexdigest()


def verify_checksum(artifact: Path, expected: str) -> VerifyResult:
    try:
        computed = sha256_file(artifact)
    except OSError as e:
        raise VerifyError(f"Failed to read {artifact}: {e}") from e
    logger.info("Checksum for downloaded disk image: %s", computed)

    want = (expected or "").strip()
    if not want:
        return VerifyResult(
            ok=True,
            skipped=True,
            computed=computed,
            expected="",
            message="no checksum configured; verification skipped",
        )
    if want == computed:
        return VerifyResult(ok=True, skipped=False, computed=computed, expected=want, message="checksum verified")
    return VerifyResult(
        ok=False,
        skipped=False,
        computed=computed,
        expected=want,
        message=f"checksum mismatch: expected {want}, got {computed}",
    )
