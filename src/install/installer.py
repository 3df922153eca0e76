"""Copy resolved packages into the local node_modules and record them."""

from __future__ import annotations

import errno
import logging
import os
import shutil
from dataclasses import dataclass, field
from typing import List, Sequence

from common.errors import ContainmentViolation, CrossDeviceCopyError, ManifestWriteError
from common.logging_utils import Timer, extra_context, is_debug_enabled
from discovery.models import ResolutionResult
from install.local_state import LocalState

logger = logging.getLogger(__name__)


@dataclass
class InstallReport:
    """Outcome of a CacheInstaller pass."""
    installed: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    manifest_written: bool = False


def _is_within(path: str, parent: str) -> bool:
    try:
        return os.path.commonpath([path, parent]) == parent
    except ValueError:  # different drives on Windows
        return False


def check_containment(dependency: str, source: str, target: str) -> None:
    """Refuse copies where source and target overlap.

    Raises:
        ContainmentViolation: If ``source`` equals ``target`` or either one
            lies inside the other.
    """
    src = os.path.realpath(source)
    dst = os.path.realpath(target)
    if _is_within(src, dst) or _is_within(dst, src):
        raise ContainmentViolation(dependency, source, target)


def _copy_tree(source: str, target: str) -> None:
    try:
        shutil.copytree(source, target, symlinks=True)
    except shutil.Error as e:
        # shutil.Error carries a list of (src, dst, reason) tuples
        reasons = [str(item[2]) for item in e.args[0]] if e.args and isinstance(e.args[0], list) else []
        if reasons and all(os.strerror(errno.EXDEV) in r for r in reasons):
            raise CrossDeviceCopyError(str(e)) from e
        raise
    except OSError as e:
        if e.errno == errno.EXDEV:
            raise CrossDeviceCopyError(str(e)) from e
        raise


class CacheInstaller:
    """Materialize resolved dependencies into the caller's install directory.

    Dependencies are processed one at a time since they all write into the
    same LocalState. Per-dependency failures are logged and never stop the
    pass; the manifest is written once at the end.
    """

    def install_one(self, result: ResolutionResult, state: LocalState, report: InstallReport) -> None:
        name = result.dependency
        target = state.target_path(name)

        if state.is_installed(name) and state.is_recorded(name):
            logger.info("%s is already installed locally", name)
            report.skipped.append(name)
            return

        try:
            check_containment(name, result.path, target)
        except ContainmentViolation as e:
            logger.error("%s", e)
            report.failed.append(name)
            return

        try:
            with Timer() as t:
                if os.path.lexists(target):
                    if os.path.isdir(target) and not os.path.islink(target):
                        shutil.rmtree(target)
                    else:
                        os.unlink(target)
                _copy_tree(result.path, target)
        except CrossDeviceCopyError:
            logger.info("%s is already installed", name)
            report.skipped.append(name)
            return
        except OSError as e:
            logger.error("Failed to install %s: %s", name, e)
            report.failed.append(name)
            return

        state.record(name, result.version)
        report.installed.append(name)
        logger.info("Installed %s@%s from %s", name, result.version, result.path)
        if is_debug_enabled(logger):
            logger.debug(
                "Copied dependency",
                extra=extra_context(
                    event="copy",
                    component="installer",
                    dependency=name,
                    source=result.path,
                    target=target,
                    duration_ms=t.duration_ms(),
                ),
            )

    def install(self, results: Sequence[ResolutionResult], state: LocalState) -> InstallReport:
        """Copy every result and persist the local manifest once."""
        report = InstallReport()
        os.makedirs(state.install_dir, exist_ok=True)

        for result in results:
            self.install_one(result, state, report)

        if not report.installed:
            logger.debug("Nothing copied, %s left unchanged", state.manifest_path)
            return report
        try:
            state.save()
            report.manifest_written = True
            logger.info("Updated %s", state.manifest_path)
        except ManifestWriteError as e:
            logger.error("%s", e)
        return report
