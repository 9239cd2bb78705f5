"""Bounded line readers for interpreter input."""

from __future__ import annotations

import logging
import os
import selectors
from collections.abc import Callable
from typing import IO

logger = logging.getLogger(__name__)

READ_CHUNK = 4096


def bound_line(line: str, max_length: int) -> tuple[str, bool]:
    """Cut ``line`` to ``max_length`` visible characters, keeping its terminator.

    A trailing ``&`` survives the cut so a long background command stays
    in the background. Returns the line and whether it was truncated.
    """
    newline = line.endswith("\n")
    body = line[:-1] if newline else line
    truncated = len(body) > max_length
    if truncated:
        logger.warning("Input line truncated from %d to %d characters", len(body), max_length)
        if body.endswith("&"):
            body = body[: max_length - 1] + "&"
        else:
            body = body[:max_length]
    return (body + "\n" if newline else body), truncated


class LineReader:
    """Read lines from a raw file descriptor.

    While waiting for input it also watches ``wakeup_fd`` (the signal
    wakeup pipe); each time that fires, ``on_wakeup`` runs in the main
    loop and the read continues. Returns ``""`` at end of input.
    """

    def __init__(
        self,
        fd: int,
        max_length: int,
        wakeup_fd: int | None = None,
        on_wakeup: Callable[[], None] | None = None,
        on_truncate: Callable[[int], None] | None = None,
    ) -> None:
        self.fd = fd
        self.max_length = max_length
        self.wakeup_fd = wakeup_fd
        self.on_wakeup = on_wakeup
        self.on_truncate = on_truncate
        self._buffer = b""
        self._eof = False
        self._selector = selectors.DefaultSelector()
        self._selector.register(fd, selectors.EVENT_READ)
        if wakeup_fd is not None:
            self._selector.register(wakeup_fd, selectors.EVENT_READ)

    def readline(self) -> str:
        while b"\n" not in self._buffer and not self._eof:
            for key, _ in self._selector.select():
                if key.fd == self.wakeup_fd:
                    self._drain_wakeup()
                else:
                    self._fill()

        if b"\n" in self._buffer:
            raw, self._buffer = self._buffer.split(b"\n", 1)
            raw += b"\n"
        else:
            raw, self._buffer = self._buffer, b""
        return self._bound(raw.decode("utf-8", errors="replace"))

    def _bound(self, line: str) -> str:
        bounded, truncated = bound_line(line, self.max_length)
        if truncated and self.on_truncate is not None:
            self.on_truncate(self.max_length)
        return bounded

    def _fill(self) -> None:
        chunk = os.read(self.fd, READ_CHUNK)
        if not chunk:
            self._eof = True
        self._buffer += chunk

    def _drain_wakeup(self) -> None:
        try:
            while os.read(self.wakeup_fd, READ_CHUNK):
                pass
        except BlockingIOError:
            pass
        if self.on_wakeup is not None:
            self.on_wakeup()

    def close(self) -> None:
        self._selector.close()


class StreamLineReader:
    """Read lines from a text stream without a usable file descriptor."""

    def __init__(
        self,
        stream: IO[str],
        max_length: int,
        on_truncate: Callable[[int], None] | None = None,
    ) -> None:
        self.stream = stream
        self.max_length = max_length
        self.on_truncate = on_truncate

    def readline(self) -> str:
        line = self.stream.readline()
        if not line:
            return ""
        bounded, truncated = bound_line(line, self.max_length)
        if truncated and self.on_truncate is not None:
            self.on_truncate(self.max_length)
        return bounded

    def close(self) -> None:
        pass
