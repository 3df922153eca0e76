"""Filesystem crawler locating package.json manifests under one or more roots."""

from __future__ import annotations

import asyncio
import logging
import os
import sys
from typing import List, Optional, Sequence

import psutil

from common.errors import ScanError
from common.logging_utils import Timer, extra_context, is_debug_enabled
from constants import Constants
from install.cancellation import CancellationToken

logger = logging.getLogger(__name__)


def default_roots(custom_root: Optional[str] = None) -> List[str]:
    """Return the root directories to scan.

    An explicit ``custom_root`` always wins. On Windows every mounted volume
    is scanned; elsewhere the filesystem root.
    """
    if custom_root:
        return [os.path.abspath(custom_root)]
    if sys.platform == "win32":
        roots = []
        for part in psutil.disk_partitions(all=False):
            if part.mountpoint and part.mountpoint not in roots:
                roots.append(part.mountpoint)
        return roots or [os.path.abspath(os.sep)]
    return [os.path.abspath(os.sep)]


class ManifestCrawler:
    """Enumerate manifest files reachable from a set of roots.

    Exclusion rules are purely structural (directory names and their position
    in the path), so the result is deterministic for a given filesystem.
    """

    def __init__(
        self,
        manifest_name: Optional[str] = None,
        install_dir_name: Optional[str] = None,
        excluded_dirs: Optional[Sequence[str]] = None,
        token: Optional[CancellationToken] = None,
    ):
        self.manifest_name = manifest_name or Constants.PACKAGE_JSON_FILE
        self.install_dir_name = install_dir_name or Constants.INSTALL_DIR_NAME
        self.excluded_dirs = frozenset(
            excluded_dirs if excluded_dirs is not None else Constants.EXCLUDED_DIRS
        )
        self.token = token

    def is_excluded_dir(self, name: str, inside_install_dir: bool) -> bool:
        """Whether a directory named ``name`` should be pruned from the walk."""
        if name.startswith("."):
            return True
        if name in self.excluded_dirs:
            return True
        # node_modules/pkg/node_modules holds transitively vendored copies
        return inside_install_dir and name == self.install_dir_name

    def _inside_install_dir(self, dirpath: str) -> bool:
        # absolute, so a root that already sits in node_modules counts too
        return self.install_dir_name in os.path.normpath(dirpath).split(os.sep)

    def find_manifests(self, root: str) -> List[str]:
        """Walk ``root`` and return absolute manifest paths in walk order.

        Raises:
            ScanError: If ``root`` itself cannot be read.
        """
        root = os.path.abspath(root)
        if not os.path.isdir(root):
            raise ScanError(root, "not a directory")
        if not os.access(root, os.R_OK | os.X_OK):
            raise ScanError(root, "permission denied")

        def _on_error(err: OSError) -> None:
            if os.path.abspath(getattr(err, "filename", "") or "") == root:
                raise ScanError(root, err.strerror or str(err))
            if is_debug_enabled(logger):
                logger.debug(
                    "Skipping unreadable directory",
                    extra=extra_context(
                        event="scan_skip", component="crawler", target=err.filename
                    ),
                )

        found: List[str] = []
        for dirpath, dirnames, filenames in os.walk(root, onerror=_on_error, followlinks=False):
            if self.token is not None and self.token.cancelled:
                break
            inside = self._inside_install_dir(dirpath)
            dirnames[:] = sorted(d for d in dirnames if not self.is_excluded_dir(d, inside))
            if self.manifest_name in filenames:
                found.append(os.path.join(dirpath, self.manifest_name))
        return found

    async def _scan_root(self, root: str) -> List[str]:
        with Timer() as t:
            try:
                paths = await asyncio.to_thread(self.find_manifests, root)
            except ScanError as exc:
                logger.warning("%s", exc)
                return []
        logger.info("Located %d %s files in %s", len(paths), self.manifest_name, root)
        if is_debug_enabled(logger):
            logger.debug(
                "Root scanned",
                extra=extra_context(
                    event="scan_root",
                    component="crawler",
                    target=root,
                    count=len(paths),
                    duration_ms=t.duration_ms(),
                ),
            )
        return paths

    async def crawl(self, roots: Sequence[str]) -> List[str]:
        """Scan every root concurrently and concatenate results in root order."""
        per_root = await asyncio.gather(*(self._scan_root(r) for r in roots))
        paths: List[str] = []
        seen = set()
        for chunk in per_root:
            for path in chunk:
                if path not in seen:
                    seen.add(path)
                    paths.append(path)
        logger.info("Located %d total %s files", len(paths), self.manifest_name)
        return paths
