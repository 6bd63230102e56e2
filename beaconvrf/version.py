"""
Version helper for the beaconvrf package.

Prefers the installed distribution's metadata and falls back to
BASE_VERSION when running from a source checkout.
"""
from __future__ import annotations

from functools import lru_cache
from importlib.metadata import PackageNotFoundError, version as _pkg_version

# Bump this when making intentional, source-level releases.
BASE_VERSION = "0.1.0"

_PKG_NAME = "beaconvrf"


@lru_cache(maxsize=1)
def get_version() -> str:
    try:
        return _pkg_version(_PKG_NAME)
    except PackageNotFoundError:
        return f"{BASE_VERSION}+src"


__version__ = get_version()
__all__ = ["__version__", "get_version", "BASE_VERSION"]
