"""Cancellation of a running fallback subprocess on interrupt/terminate signals."""

from __future__ import annotations

import logging
import signal
import sys
import threading
from contextlib import contextmanager
from typing import Any, Callable, Iterator, List, Optional

import psutil

from constants import ExitCodes

logger = logging.getLogger(__name__)

_KILL_WAIT_SEC = 3.0


def kill_process_tree(pid: int) -> None:
    """Kill ``pid`` and all of its descendants, waiting for them to exit."""
    try:
        parent = psutil.Process(pid)
    except psutil.NoSuchProcess:
        return
    try:
        procs = parent.children(recursive=True)
    except psutil.Error:
        procs = []
    procs.append(parent)
    for proc in procs:
        try:
            proc.kill()
        except psutil.NoSuchProcess:
            continue
        except psutil.AccessDenied as e:
            logger.error("Failed to kill process %s: %s", proc.pid, e)
    psutil.wait_procs(procs, timeout=_KILL_WAIT_SEC)


class CancellationToken:
    """Tracks the subprocess that must die with us.

    The fallback dispatcher attaches its process for the duration of the
    call; a signal handler calls :meth:`cancel`.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._process: Optional[Any] = None
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def process(self) -> Optional[Any]:
        return self._process

    def register(self, process: Any) -> None:
        with self._lock:
            self._process = process

    def unregister(self, process: Any) -> None:
        with self._lock:
            if self._process is process:
                self._process = None

    @contextmanager
    def attach(self, process: Any) -> Iterator[Any]:
        self.register(process)
        try:
            yield process
        finally:
            self.unregister(process)

    def cancel(self) -> None:
        """Kill the registered process tree, if any."""
        with self._lock:
            self._cancelled = True
            process = self._process
        if process is not None and process.poll() is None:
            logger.debug("Killing fallback process tree rooted at %s", process.pid)
            kill_process_tree(process.pid)


def _handled_signals() -> List[int]:
    sigs = [signal.SIGINT, signal.SIGTERM]
    if hasattr(signal, "SIGTSTP"):
        sigs.append(signal.SIGTSTP)
    return sigs


def make_signal_handler(token: CancellationToken) -> Callable[[int, Any], None]:
    def _handler(signum: int, _frame: Any) -> None:
        token.cancel()
        name = signal.Signals(signum).name
        logger.warning("Process interrupted by user (%s)", name)
        sys.exit(ExitCodes.INTERRUPTED.value)

    return _handler


def install_signal_handlers(token: CancellationToken) -> None:
    """Route interrupt/terminate/stop signals through ``token``."""
    handler = make_signal_handler(token)
    for sig in _handled_signals():
        signal.signal(sig, handler)
