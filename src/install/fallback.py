"""Hand unresolved dependencies to an external package manager."""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
from typing import Any, Dict, Iterable, List, Optional, Sequence

from common.errors import FallbackProcessError
from constants import Constants
from discovery.models import DependencySpec, ResolutionResult
from install.cancellation import CancellationToken

logger = logging.getLogger(__name__)


def _popen_process_group_kwargs() -> Dict[str, Any]:
    if os.name == "posix":
        return {"start_new_session": True}
    if os.name == "nt":
        creationflags = getattr(subprocess, "CREATE_NEW_PROCESS_GROUP", None)
        if isinstance(creationflags, int):
            return {"creationflags": creationflags}
    return {}


def compute_remainder(
    requested: Sequence[DependencySpec],
    resolved: Iterable[ResolutionResult],
    satisfied: Iterable[str] = (),
) -> List[DependencySpec]:
    """Requested specs that were neither resolved nor already satisfied."""
    done = {r.dependency for r in resolved}
    done.update(satisfied)
    return [spec for spec in requested if spec.name not in done]


class FallbackDispatcher:
    """Run ``npm install`` / ``yarn add`` / ``pnpm add`` for leftover specs."""

    def __init__(self, package_manager: Optional[str] = None, token: Optional[CancellationToken] = None):
        self.package_manager = package_manager or Constants.DEFAULT_PACKAGE_MANAGER
        if self.package_manager not in Constants.INSTALL_COMMANDS:
            raise ValueError(f"Unsupported package manager: {self.package_manager}")
        self.token = token or CancellationToken()

    def build_command(self, identifiers: Sequence[str]) -> List[str]:
        """Return the argv for installing ``identifiers``.

        Raises:
            FallbackProcessError: If the package manager is not on PATH.
        """
        executable = shutil.which(self.package_manager)
        if executable is None:
            raise FallbackProcessError(self.package_manager, "executable not found on PATH")
        return [executable, *Constants.INSTALL_COMMANDS[self.package_manager], *identifiers]

    def dispatch(self, identifiers: Sequence[str]) -> None:
        """Install ``identifiers`` with inherited stdio; no-op when empty.

        Raises:
            FallbackProcessError: On spawn failure or non-zero exit.
        """
        if not identifiers:
            return
        cmd = self.build_command(identifiers)
        logger.info("Installing remaining dependencies using %s: %s",
                    self.package_manager, " ".join(identifiers))
        logger.debug("Running: %s", " ".join(cmd))

        try:
            proc = subprocess.Popen(cmd, **_popen_process_group_kwargs())  # noqa: S603
        except OSError as e:
            raise FallbackProcessError(self.package_manager, str(e)) from e

        with self.token.attach(proc):
            returncode = proc.wait()

        if returncode != 0:
            raise FallbackProcessError(
                self.package_manager,
                f"{self.package_manager} {Constants.INSTALL_COMMANDS[self.package_manager][0]} exited with code {returncode}",
                returncode=returncode,
            )
        logger.info("Successfully installed remaining dependencies")

    def dispatch_specs(self, specs: Sequence[DependencySpec]) -> None:
        self.dispatch([spec.identifier for spec in specs])
