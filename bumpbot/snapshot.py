"""Collect installed package versions from a workspace's node_modules tree."""

from __future__ import annotations

import json
import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import List, Optional

from .errors import ManifestError
from .models import Manifest, PackageRecord, Snapshot

logger = logging.getLogger(__name__)

MANIFEST_NAME = "package.json"
MODULES_DIR = "node_modules"


def read_manifest(path: Path) -> Manifest:
    """Load the root ``package.json``.

    Raises:
        ManifestError: If the file is missing, unreadable, or not a JSON object.
    """
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise ManifestError(f"{path} not found") from exc
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise ManifestError(f"Could not read {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ManifestError(f"{path} does not contain a JSON object")
    return Manifest.from_dict(data)


def list_module_dirs(modules: Path) -> List[str]:
    """List package directory names below ``node_modules``.

    Scoped packages live one level deeper (``@scope/name``); dot-directories
    such as ``.bin`` are not packages.
    """
    if not modules.is_dir():
        return []

    names: List[str] = []
    for entry in sorted(modules.iterdir()):
        if entry.name.startswith(".") or not entry.is_dir():
            continue
        if entry.name.startswith("@"):
            for child in sorted(entry.iterdir()):
                if child.is_dir() and not child.name.startswith("."):
                    names.append(f"{entry.name}/{child.name}")
        else:
            names.append(entry.name)
    return names


class SnapshotCollector:
    """Reads every installed package's manifest into a Snapshot.

    Per-package manifests are read concurrently. A package whose manifest is
    missing or malformed is skipped with a warning; it never aborts the
    collection, since half-installed trees are common.
    """

    def __init__(self, max_workers: int = 8):
        self.max_workers = max_workers

    def collect(
        self,
        workspace: Path,
        manifest: Manifest,
        include_transitive: bool = False,
    ) -> Snapshot:
        logger.debug("START collect")
        modules = Path(workspace) / MODULES_DIR
        dirs = list_module_dirs(modules)
        logger.debug("module directories are %s", dirs)
        if not dirs:
            logger.debug("END   collect")
            return Snapshot()

        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            results = list(pool.map(lambda d: self._read_package(modules / d), dirs))

        records = [r for r in results if r is not None]
        if not include_transitive:
            records = [r for r in records if manifest.declares(r.name)]

        snapshot = Snapshot(records)
        logger.debug("collected %d package(s)", len(snapshot))
        logger.debug("END   collect")
        return snapshot

    def _read_package(self, package_dir: Path) -> Optional[PackageRecord]:
        path = package_dir / MANIFEST_NAME
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            logger.warning("Skipping %s: %s", package_dir, exc)
            return None

        if not isinstance(data, dict):
            logger.warning("Skipping %s: manifest is not an object", package_dir)
            return None
        if not isinstance(data.get("name"), str) or not isinstance(data.get("version"), str):
            logger.warning("Skipping %s: manifest lacks name or version", package_dir)
            return None
        return PackageRecord.from_dict(data)
