"""Builtin commands handled inside the interpreter."""

from __future__ import annotations

import logging
import os

from smallshell.models import Command
from smallshell.utils.formatting import Reporter
from smallshell.utils.system import home_directory

logger = logging.getLogger(__name__)


class BuiltinDispatcher:
    """Intercept builtins before anything is spawned. Only ``cd`` exists."""

    def __init__(self, reporter: Reporter) -> None:
        self.reporter = reporter

    def dispatch(self, command: Command) -> bool:
        """Run ``command`` if it is a builtin. Returns whether it was handled."""
        if command.program == "cd":
            self.change_directory(command)
            return True
        return False

    def change_directory(self, command: Command) -> None:
        if len(command.argv) != 2:
            self.reporter.cd_usage()
            return

        target = command.argv[1]
        try:
            os.chdir(target)
        except (FileNotFoundError, NotADirectoryError):
            logger.info("cd: %s is not a directory, falling back to home", target)
            self.reporter.cd_sent_home()
            self._go_home()
        except OSError as e:
            logger.warning("cd: could not change directory to %s: %s", target, e)
            self.reporter.cd_failed(target)
        else:
            logger.debug("cd: now in %s", os.getcwd())

    def _go_home(self) -> None:
        home = home_directory()
        try:
            os.chdir(home)
        except OSError as e:
            logger.error("cd: could not change to home directory %s: %s", home, e)
            self.reporter.cd_failed(home)
