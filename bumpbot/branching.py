"""Deterministic, content-addressed branch names."""

from __future__ import annotations

import hashlib
from datetime import datetime
from typing import Iterable, Optional

TIMESTAMP_FORMAT = "%Y%m%d%H%M"


def manifest_digest(manifest_bytes: bytes) -> str:
    """SHA-1 hex digest of the raw manifest bytes."""
    return hashlib.sha1(manifest_bytes).hexdigest()


def format_timestamp(moment: datetime) -> str:
    return moment.strftime(TIMESTAMP_FORMAT)


def format_branch(prefix: str, timestamp: str, digest: str) -> str:
    return f"{prefix}{timestamp}/{digest}"


def name_branch(manifest_bytes: bytes, prefix: str, timestamp: str) -> str:
    """Build ``<prefix><timestamp>/<sha1>`` for the given manifest content.

    Args:
        manifest_bytes: Raw bytes of package.json
        prefix: Configured branch-name prefix, e.g. ``"bumpbot/"``
        timestamp: Run timestamp (``YYYYMMDDHHMM``)

    Returns:
        Branch name whose suffix depends only on the manifest content
    """
    return format_branch(prefix, timestamp, manifest_digest(manifest_bytes))


def find_existing_branch(branches: Iterable[str], digest: str) -> Optional[str]:
    """Return the first branch whose name ends with ``digest``, if any."""
    for name in branches:
        if name.endswith(digest):
            return name
    return None
