"""Data models for smallshell."""

from __future__ import annotations

import enum
import os
import signal
from dataclasses import dataclass, field


class Mode(enum.Enum):
    FOREGROUND = "foreground"
    BACKGROUND = "background"


class State(enum.Enum):
    RUNNING = "running"
    TERMINATED = "terminated"


@dataclass
class Command:
    """A parsed input line, ready to be dispatched or spawned."""

    raw: str = ""
    argv: list[str] = field(default_factory=list)
    background: bool = False
    overflow: bool = False

    @property
    def program(self) -> str:
        return self.argv[0] if self.argv else ""

    @property
    def mode(self) -> Mode:
        return Mode.BACKGROUND if self.background else Mode.FOREGROUND


@dataclass
class Termination:
    """Exit information of one collected child."""

    pid: int
    status: int

    @property
    def exit_code(self) -> int | None:
        if os.WIFEXITED(self.status):
            return os.WEXITSTATUS(self.status)
        return None

    @property
    def signal(self) -> int | None:
        if os.WIFSIGNALED(self.status):
            return os.WTERMSIG(self.status)
        return None

    def describe(self) -> str:
        if self.exit_code is not None:
            return f"exit status {self.exit_code}"
        if self.signal is not None:
            try:
                name = signal.Signals(self.signal).name
            except ValueError:
                name = str(self.signal)
            return f"killed by signal {name}"
        return "unknown status"


@dataclass
class Process:
    """A spawned child, from fork until its termination is reported."""

    pid: int
    mode: Mode
    spawn_time: float | None = None
    state: State = State.RUNNING
    termination: Termination | None = None

    def terminate(self, termination: Termination) -> None:
        self.termination = termination
        self.state = State.TERMINATED
