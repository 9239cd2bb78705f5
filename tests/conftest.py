"""Shared test fixtures."""

from __future__ import annotations

import io
import re
import time

import pytest
from rich.console import Console

from smallshell.config import AppConfig, LoggingConfig, ShellConfig
from smallshell.utils.formatting import Reporter


class CapturedReporter(Reporter):
    """Reporter writing into in-memory buffers."""

    def __init__(self, report_status: bool = False) -> None:
        self.out = io.StringIO()
        self.err = io.StringIO()
        super().__init__(
            console=Console(file=self.out, highlight=False, soft_wrap=True),
            error_console=Console(file=self.err, highlight=False, soft_wrap=True),
            report_status=report_status,
        )
        self.terminated_at: dict[int, float] = {}

    def terminated(self, termination):
        self.terminated_at[termination.pid] = time.monotonic()
        super().terminated(termination)

    @property
    def lines(self) -> list[str]:
        return self.out.getvalue().splitlines()

    def terminated_pids(self) -> list[int]:
        return [int(m.group(1)) for m in re.finditer(r"==> (\d+) - process terminated", self.out.getvalue())]

    def spawned_pids(self) -> list[int]:
        return [int(m.group(1)) for m in re.finditer(r"==> (\d+) - spawned \w+ process", self.out.getvalue())]

    def elapsed_times(self) -> list[float]:
        return [float(m.group(1)) for m in re.finditer(r"execution time: ([\d.]+) seconds", self.out.getvalue())]


@pytest.fixture
def reporter():
    return CapturedReporter()


@pytest.fixture
def app_config(tmp_path):
    """Create a test configuration."""
    return AppConfig(
        shell=ShellConfig(detection="poll", max_line_length=70, max_args=5, prompt="", report_status=False),
        logging=LoggingConfig(level="DEBUG", file=str(tmp_path / "test.log")),
    )


@pytest.fixture
def signal_config(app_config):
    app_config.shell.detection = "signal"
    return app_config


@pytest.fixture
def status_reporter():
    return CapturedReporter(report_status=True)
