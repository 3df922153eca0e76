"""The caller's own manifest and install directory."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from typing import Any, Dict, Optional

from common.errors import ManifestWriteError
from constants import Constants

logger = logging.getLogger(__name__)


class LocalState:
    """In-memory view of the local package.json plus its node_modules path.

    Loaded once at startup, mutated only by the installer, persisted with
    :meth:`save` after every copy has finished. A manifest that exists on
    disk but could not be loaded is marked ``unreadable`` and never
    overwritten.
    """

    def __init__(
        self,
        manifest_path: str,
        install_dir: str,
        manifest: Dict[str, Any],
        manifest_exists: bool,
        unreadable: bool = False,
    ):
        self.manifest_path = manifest_path
        self.install_dir = install_dir
        self.manifest = manifest
        self.manifest_exists = manifest_exists
        self.unreadable = unreadable
        if not isinstance(self.manifest.get("dependencies"), dict):
            self.manifest["dependencies"] = {}

    @classmethod
    def load(cls, project_dir: Optional[str] = None) -> "LocalState":
        """Read ``package.json`` from ``project_dir`` (default: cwd).

        A missing or unreadable manifest yields an empty one.
        """
        project_dir = os.path.abspath(project_dir or os.getcwd())
        manifest_path = os.path.join(project_dir, Constants.PACKAGE_JSON_FILE)
        install_dir = os.path.join(project_dir, Constants.INSTALL_DIR_NAME)
        manifest: Dict[str, Any] = {"dependencies": {}}
        exists = False
        unreadable = False
        try:
            with open(manifest_path, "r", encoding="utf-8") as fh:
                data = json.load(fh)
            if isinstance(data, dict):
                manifest = data
                exists = True
            else:
                unreadable = True
                logger.warning("Ignoring %s: top-level value is not an object", manifest_path)
        except FileNotFoundError:
            pass
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            unreadable = True
            logger.warning("Could not read %s: %s", manifest_path, e)
        return cls(manifest_path, install_dir, manifest, exists, unreadable)

    @property
    def dependencies(self) -> Dict[str, str]:
        return self.manifest["dependencies"]

    def target_path(self, name: str) -> str:
        return os.path.join(self.install_dir, name)

    def is_recorded(self, name: str) -> bool:
        return bool(self.dependencies.get(name))

    def is_installed(self, name: str) -> bool:
        return os.path.exists(self.target_path(name))

    def is_satisfied(self, name: str) -> bool:
        """Recorded in the manifest and physically present in node_modules."""
        return self.is_recorded(name) and self.is_installed(name)

    def record(self, name: str, version: str) -> None:
        self.dependencies[name] = version

    def save(self) -> None:
        """Write the manifest atomically (temp file + replace).

        Raises:
            ManifestWriteError: If the file cannot be written, or if it exists
                but could not be loaded.
        """
        if self.unreadable:
            raise ManifestWriteError(self.manifest_path, "existing file could not be parsed, leaving it untouched")
        directory = os.path.dirname(self.manifest_path)
        tmp_path = None
        try:
            fd, tmp_path = tempfile.mkstemp(
                prefix=".package.json.", suffix=".tmp", dir=directory
            )
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(self.manifest, fh, indent=2, ensure_ascii=False)
                fh.write("\n")
            os.replace(tmp_path, self.manifest_path)
            tmp_path = None
        except OSError as e:
            raise ManifestWriteError(self.manifest_path, str(e)) from e
        finally:
            if tmp_path is not None and os.path.exists(tmp_path):
                os.unlink(tmp_path)
        self.manifest_exists = True
