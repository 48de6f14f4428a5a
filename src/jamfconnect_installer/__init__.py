"""Jamf Connect download-and-install tool.

Keep __version__ in sync with package metadata.
"""

from __future__ import annotations

__all__ = ["__version__"]

try:
    from importlib.metadata import version

    __version__ = version("jamfconnect-installer")
except Exception:  # pragma: no cover
    # Fallback for environments where metadata isn't available.
    __version__ = "0.0.0"
