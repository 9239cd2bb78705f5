"""Process lifecycle: spawning children and supervising foreground jobs."""

from __future__ import annotations

import logging
import os
import time

from smallshell.errors import SpawnError
from smallshell.models import Command, Mode, Process, Termination
from smallshell.services.reaper import TerminationDetector
from smallshell.signals import ChildDispositions
from smallshell.utils.formatting import Reporter, format_error
from smallshell.utils.system import flush_std_streams

logger = logging.getLogger(__name__)

EXEC_FAILURE_STATUS = 1


class ProcessManager:
    """Spawn external programs and wait on foreground ones."""

    def __init__(self, reporter: Reporter, detector: TerminationDetector) -> None:
        self.reporter = reporter
        self.detector = detector

    def spawn(self, command: Command, mode: Mode) -> Process:
        """Fork and exec ``command``. Only the parent returns."""
        flush_std_streams()
        try:
            pid = os.fork()
        except OSError as e:
            logger.error("fork() failed for %s: %s", command.program, e)
            self.reporter.fork_failed()
            raise SpawnError(f"Couldn't fork: {e}") from e

        if pid == 0:
            self._exec_child(command)

        logger.debug("Spawned %s as %d (%s)", command.argv, pid, mode.value)
        return Process(pid=pid, mode=mode)

    @staticmethod
    def _exec_child(command: Command) -> None:
        try:
            ChildDispositions.apply()
            os.execvp(command.program, command.argv)
        except OSError:
            os.write(2, (format_error(f"Could not execute command: {command.program}") + "\n").encode())
        finally:
            # Never fall back into interpreter code in the child.
            os._exit(EXEC_FAILURE_STATUS)

    def run_foreground(self, command: Command) -> Process:
        """Run ``command`` and block until that child terminates."""
        process = self.spawn(command, Mode.FOREGROUND)
        process.spawn_time = time.monotonic()
        self.reporter.spawned(process.pid, process.mode)
        with self.detector.foreground(process):
            termination = self.wait(process.pid)
        elapsed = time.monotonic() - process.spawn_time

        self.detector.complete(process, termination)
        self.reporter.elapsed(elapsed)
        self.detector.after_spawn()
        return process

    def run_background(self, command: Command) -> Process:
        """Start ``command`` and return without waiting.

        The returned record is not kept; the detector reports the
        termination from the collected status alone.
        """
        process = self.spawn(command, Mode.BACKGROUND)
        self.reporter.spawned(process.pid, process.mode)
        self.detector.after_spawn()
        return process

    def run(self, command: Command) -> Process:
        if command.background:
            return self.run_background(command)
        return self.run_foreground(command)

    def wait(self, pid: int) -> Termination:
        """Block until ``pid`` terminates, resuming after interruptions.

        If a SIGCHLD handler collected the child first, its result is
        taken from the detector instead.
        """
        while True:
            try:
                collected, status = os.waitpid(pid, 0)
            except InterruptedError:
                logger.debug("Wait for %d interrupted, resuming", pid)
                continue
            except ChildProcessError:
                termination = self.detector.claim(pid)
                if termination is None:
                    raise
                logger.debug("Wait for %d satisfied by the SIGCHLD handler", pid)
                return termination
            if collected == pid:
                return Termination(pid=pid, status=status)
