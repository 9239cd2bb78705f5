"""Termination detection: collecting and reporting finished children."""

from __future__ import annotations

import collections
import contextlib
import logging
import os
import signal
from collections.abc import Iterator
from typing import Any

from smallshell.errors import ConfigurationError
from smallshell.models import Process, Termination
from smallshell.utils.formatting import Reporter

logger = logging.getLogger(__name__)


def try_collect(pid: int = -1) -> Termination | None:
    """Non-blocking collection of one terminated child.

    ``pid`` of -1 collects any child. Returns None when nothing has
    terminated yet or there is no such child, so calling it for a child
    that was already reaped elsewhere is harmless.
    """
    try:
        collected, status = os.waitpid(pid, os.WNOHANG)
    except ChildProcessError:
        return None
    if collected == 0:
        return None
    if pid > 0 and collected != pid:
        return None
    return Termination(pid=collected, status=status)


class TerminationDetector:
    """Base strategy. Exactly one is active for the interpreter's lifetime."""

    name = ""

    def __init__(self, reporter: Reporter) -> None:
        self.reporter = reporter

    def install(self, wakeup_fd: int | None = None) -> None:
        """Prepare the strategy before the first spawn."""

    def uninstall(self) -> None:
        """Undo ``install``."""

    @contextlib.contextmanager
    def foreground(self, process: Process) -> Iterator[None]:
        """Mark ``process`` as the child the main loop is blocked on."""
        yield

    def claim(self, pid: int) -> Termination | None:
        """Hand over a foreground termination that was collected elsewhere."""
        return None

    def complete(self, process: Process, termination: Termination) -> None:
        """Move ``process`` to TERMINATED and report it."""
        process.terminate(termination)
        self.report(termination)

    def after_spawn(self) -> None:
        """Hook run after every foreground wait or background spawn."""

    def flush(self) -> None:
        """Report terminations collected outside the main loop."""

    def report(self, termination: Termination) -> None:
        logger.debug("Reporting termination of %d (%s)", termination.pid, termination.describe())
        self.reporter.terminated(termination)


class SignalReaper(TerminationDetector):
    """Reaps children from a SIGCHLD handler as soon as they terminate.

    The handler may run at any point of the main loop, including in the
    middle of the foreground wait. It only collects: background
    terminations are queued for ``flush()``, while the foreground child is
    handed over to the waiter through ``claim()`` so it is reported once,
    by the foreground path.
    """

    name = "signal"

    def __init__(self, reporter: Reporter) -> None:
        super().__init__(reporter)
        self._pending: collections.deque[Termination] = collections.deque()
        self._handed_over: dict[int, Termination] = {}
        self._foreground_pid: int | None = None
        self._previous_handler: Any = None
        self._previous_wakeup_fd: int | None = None
        self._installed = False

    def install(self, wakeup_fd: int | None = None) -> None:
        self._previous_handler = signal.signal(signal.SIGCHLD, self._on_sigchld)
        if wakeup_fd is not None:
            self._previous_wakeup_fd = signal.set_wakeup_fd(wakeup_fd, warn_on_full_buffer=False)
        self._installed = True
        logger.debug("SIGCHLD handler installed (wakeup fd: %s)", wakeup_fd)

    def uninstall(self) -> None:
        if not self._installed:
            return
        if self._previous_wakeup_fd is not None:
            signal.set_wakeup_fd(self._previous_wakeup_fd)
            self._previous_wakeup_fd = None
        previous = self._previous_handler
        signal.signal(signal.SIGCHLD, previous if previous is not None else signal.SIG_DFL)
        self._installed = False

    def _on_sigchld(self, signum: int, frame: Any) -> None:
        # Signals coalesce, so drain everything that is ready.
        while (termination := try_collect(-1)) is not None:
            if termination.pid == self._foreground_pid:
                self._handed_over[termination.pid] = termination
            else:
                self._pending.append(termination)

    @contextlib.contextmanager
    def foreground(self, process: Process) -> Iterator[None]:
        self._foreground_pid = process.pid
        try:
            yield
        finally:
            self._foreground_pid = None
            self._handed_over.pop(process.pid, None)

    def claim(self, pid: int) -> Termination | None:
        termination = self._handed_over.pop(pid, None)
        if termination is not None:
            return termination
        # The child may have died before it was marked as foreground.
        for queued in list(self._pending):
            if queued.pid == pid:
                self._pending.remove(queued)
                return queued
        return None

    def after_spawn(self) -> None:
        self.flush()

    def flush(self) -> None:
        while self._pending:
            self.report(self._pending.popleft())


class PollingReaper(TerminationDetector):
    """Drains every reapable child after each spawn.

    Background terminations are only noticed between commands.
    """

    name = "poll"

    def after_spawn(self) -> None:
        self.drain()

    def drain(self) -> int:
        count = 0
        while (termination := try_collect(-1)) is not None:
            self.report(termination)
            count += 1
        return count


DETECTORS: dict[str, type[TerminationDetector]] = {
    SignalReaper.name: SignalReaper,
    PollingReaper.name: PollingReaper,
}


def create_detector(strategy: str, reporter: Reporter) -> TerminationDetector:
    """Build the detector named by ``strategy``."""
    try:
        detector_cls = DETECTORS[strategy]
    except KeyError:
        raise ConfigurationError(f"Unknown detection strategy: {strategy}") from None
    return detector_cls(reporter)
