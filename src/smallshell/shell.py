"""The interpreter session and its main loop."""

from __future__ import annotations

import logging
import os
import sys
from typing import IO, Protocol

from smallshell.config import AppConfig, validate_config
from smallshell.parser import is_exit, parse_line
from smallshell.reader import LineReader, StreamLineReader
from smallshell.services.builtins import BuiltinDispatcher
from smallshell.services.lifecycle import ProcessManager
from smallshell.services.reaper import TerminationDetector, create_detector
from smallshell.signals import ShellDispositions
from smallshell.utils.formatting import Reporter
from smallshell.utils.system import is_interactive

logger = logging.getLogger(__name__)


class Reader(Protocol):
    def readline(self) -> str: ...

    def close(self) -> None: ...


class Shell:
    """One interpreter session.

    Use as a context manager: entering applies the interpreter's signal
    dispositions and installs the termination detector, leaving undoes
    both.
    """

    def __init__(self, config: AppConfig, reporter: Reporter | None = None) -> None:
        validate_config(config)
        self.config = config
        self.reporter = reporter or Reporter(report_status=config.shell.report_status)
        self.detector: TerminationDetector = create_detector(config.shell.detection, self.reporter)
        self.builtins = BuiltinDispatcher(self.reporter)
        self.processes = ProcessManager(self.reporter, self.detector)
        self.dispositions = ShellDispositions()
        self._wakeup: tuple[int, int] | None = None

    def __enter__(self) -> Shell:
        self.dispositions.apply()
        wakeup_write = None
        if self.detector.name == "signal":
            read_fd, write_fd = os.pipe()
            os.set_blocking(read_fd, False)
            os.set_blocking(write_fd, False)
            self._wakeup = (read_fd, write_fd)
            wakeup_write = write_fd
        self.detector.install(wakeup_fd=wakeup_write)
        logger.info("Session started (detection: %s)", self.detector.name)
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.detector.uninstall()
        self.detector.flush()
        self.dispositions.restore()
        if self._wakeup is not None:
            for fd in self._wakeup:
                os.close(fd)
            self._wakeup = None
        logger.info("Session ended")

    def open_reader(self, stream: IO[str] | None = None) -> Reader:
        """A bounded reader for ``stream``, waking up on child terminations."""
        stream = stream if stream is not None else sys.stdin
        max_length = self.config.shell.max_line_length
        try:
            fd = stream.fileno()
        except (AttributeError, OSError, ValueError):
            return StreamLineReader(stream, max_length, on_truncate=self.reporter.line_truncated)
        wakeup_fd = self._wakeup[0] if self._wakeup is not None else None
        return LineReader(
            fd,
            max_length,
            wakeup_fd=wakeup_fd,
            on_wakeup=self.detector.flush,
            on_truncate=self.reporter.line_truncated,
        )

    def run(self, reader: Reader, interactive: bool = False) -> int:
        """Read and execute lines until ``exit`` or end of input."""
        try:
            while True:
                self.detector.flush()
                if interactive:
                    self.reporter.prompt(self.config.shell.prompt)

                line = reader.readline()
                if not line:
                    logger.info("End of input")
                    return 0
                if not self.execute_line(line):
                    return 0
        finally:
            reader.close()

    def execute_line(self, line: str) -> bool:
        """Execute one input line. Returns False when the session should end."""
        command = parse_line(line, self.config.shell.max_args)
        if command is None:
            return True
        if is_exit(command):
            return False
        if self.builtins.dispatch(command):
            return True

        if command.overflow:
            self.reporter.too_many_arguments()
        self.processes.run(command)
        return True


def run_session(config: AppConfig, stream: IO[str] | None = None, reporter: Reporter | None = None) -> int:
    """Run an interpreter session on ``stream`` (stdin by default)."""
    stream = stream if stream is not None else sys.stdin
    with Shell(config, reporter) as shell:
        reader = shell.open_reader(stream)
        return shell.run(reader, interactive=is_interactive(stream))
