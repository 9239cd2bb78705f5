"""Signal dispositions for the interpreter and its children."""

from __future__ import annotations

import logging
import signal
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)

Handler = Callable[[int, Any], Any] | int | None


class ShellDispositions:
    """Interpreter-wide dispositions, applied once at startup.

    The interpreter ignores SIGINT so that Ctrl-C only reaches the
    foreground child. ``restore()`` puts back whatever was installed
    before ``apply()``.
    """

    def __init__(self) -> None:
        self._saved: dict[int, Handler] = {}

    def apply(self) -> None:
        self._saved[signal.SIGINT] = signal.signal(signal.SIGINT, signal.SIG_IGN)
        logger.debug("SIGINT ignored in interpreter")

    def restore(self) -> None:
        for signum, handler in self._saved.items():
            signal.signal(signum, handler if handler is not None else signal.SIG_DFL)
        self._saved.clear()


class ChildDispositions:
    """Dispositions a freshly forked child needs before exec."""

    @staticmethod
    def apply() -> None:
        signal.signal(signal.SIGINT, signal.SIG_DFL)
        signal.signal(signal.SIGCHLD, signal.SIG_DFL)
