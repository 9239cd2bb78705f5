"""User-facing report formatting for the interpreter."""

from __future__ import annotations

import logging

from rich.console import Console

from smallshell.models import Mode, Termination

logger = logging.getLogger(__name__)

PREFIX = "==> "


def format_spawned(pid: int, mode: Mode) -> str:
    return f"{PREFIX}{pid} - spawned {mode.value} process"


def format_terminated(termination: Termination, with_status: bool = False) -> str:
    message = f"{PREFIX}{termination.pid} - process terminated"
    if with_status:
        message += f" ({termination.describe()})"
    return message


def format_elapsed(seconds: float) -> str:
    """Elapsed wall time in seconds, microsecond resolution."""
    return f"{PREFIX}execution time: {seconds:f} seconds"


def format_error(message: str) -> str:
    return f"{PREFIX}ERROR: {message}"


class Reporter:
    """Writes shell reports to the terminal.

    Only ever called from the main loop; terminations collected inside a
    signal handler are queued and reported here later.
    """

    def __init__(
        self,
        console: Console | None = None,
        error_console: Console | None = None,
        report_status: bool = False,
    ) -> None:
        self.console = console or Console(highlight=False, soft_wrap=True)
        self.error_console = error_console or Console(stderr=True, highlight=False, soft_wrap=True)
        self.report_status = report_status

    def _out(self, text: str) -> None:
        self.console.print(text, markup=False)

    def _err(self, text: str) -> None:
        self.error_console.print(text, markup=False)

    def spawned(self, pid: int, mode: Mode) -> None:
        self._out(format_spawned(pid, mode))

    def terminated(self, termination: Termination) -> None:
        self._out(format_terminated(termination, self.report_status))

    def elapsed(self, seconds: float) -> None:
        self._out(format_elapsed(seconds))

    def too_many_arguments(self) -> None:
        self._err(format_error("Too many arguments!"))

    def line_truncated(self, max_length: int) -> None:
        self._err(format_error(f"Input line too long, truncated to {max_length} characters"))

    def fork_failed(self) -> None:
        self._err(format_error("Couldn't fork!"))

    def cd_usage(self) -> None:
        self._out(format_error("Invalid argument count to cd!"))

    def cd_sent_home(self) -> None:
        self._out(format_error("Invalid directory, sending you home..."))

    def cd_failed(self, path: str) -> None:
        self._out(format_error(f"Couldn't change directory to {path}"))

    def prompt(self, text: str) -> None:
        if text:
            self.console.print(text, end="", markup=False)
            self.console.file.flush()
