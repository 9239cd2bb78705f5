"""System utility helpers."""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import IO


def home_directory() -> str:
    """The user's home directory, preferring $HOME."""
    return os.environ.get("HOME") or str(Path.home())


def is_interactive(stream: IO[str]) -> bool:
    """True when the stream is attached to a terminal."""
    try:
        return stream.isatty()
    except (AttributeError, ValueError):
        return False


def flush_std_streams() -> None:
    """Flush Python-level buffers so a forked child does not repeat them."""
    for stream in (sys.stdout, sys.stderr):
        try:
            stream.flush()
        except (AttributeError, ValueError):
            pass

