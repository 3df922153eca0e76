"""Exception types raised by the discovery and install stages.

Only FallbackProcessError ends a run; the others are caught at the item
(root, manifest, dependency) that raised them and logged.
"""
from __future__ import annotations

from typing import Optional


class LocalPMError(Exception):
    """Base class for all localpm errors."""


class ScanError(LocalPMError):
    """A root directory could not be traversed."""

    def __init__(self, root: str, reason: str):
        super().__init__(f"Unable to scan {root}: {reason}")
        self.root = root
        self.reason = reason


class ManifestParseError(LocalPMError):
    """A manifest file could not be read or is not a JSON object."""

    def __init__(self, path: str, reason: str):
        super().__init__(f"Invalid manifest at {path}: {reason}")
        self.path = path
        self.reason = reason


class StaleCandidateError(LocalPMError):
    """A manifest declares a dependency whose install directory is missing."""

    def __init__(self, dependency: str, path: str):
        super().__init__(f"{dependency} is declared but {path} does not exist")
        self.dependency = dependency
        self.path = path


class ContainmentViolation(LocalPMError):
    """Copy source and target overlap."""

    def __init__(self, dependency: str, source: str, target: str):
        super().__init__(
            f"Cannot install {dependency}: source {source} overlaps target {target}"
        )
        self.dependency = dependency
        self.source = source
        self.target = target


class CrossDeviceCopyError(LocalPMError):
    """The copy crossed a filesystem boundary the OS refused to cross."""


class ManifestWriteError(LocalPMError):
    """The local manifest could not be persisted."""

    def __init__(self, path: str, reason: str):
        super().__init__(f"Failed to update {path}: {reason}")
        self.path = path
        self.reason = reason


class FallbackProcessError(LocalPMError):
    """The fallback package manager could not be started or failed."""

    def __init__(self, manager: str, reason: str, returncode: Optional[int] = None):
        super().__init__(f"{manager} failed: {reason}")
        self.manager = manager
        self.reason = reason
        self.returncode = returncode
