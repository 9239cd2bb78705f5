"""End-to-end tests for the interpreter session."""

from __future__ import annotations

import io
import os
import signal
import threading
import time

import pytest

from smallshell.errors import ConfigurationError
from smallshell.shell import Shell, run_session


def run_lines(config, reporter, text):
    return run_session(config, stream=io.StringIO(text), reporter=reporter)


@pytest.fixture(params=["poll", "signal"])
def any_config(request, app_config):
    app_config.shell.detection = request.param
    return app_config


class TestScenarios:
    def test_echo_hi(self, any_config, reporter, capfd):
        assert run_lines(any_config, reporter, "echo hi\n") == 0

        assert capfd.readouterr().out == "hi\n"
        [pid] = reporter.spawned_pids()
        assert reporter.lines[0] == f"==> {pid} - spawned foreground process"
        assert reporter.terminated_pids() == [pid]
        assert reporter.elapsed_times()[0] > 0

    def test_exit_without_spawn(self, any_config, reporter):
        assert run_lines(any_config, reporter, "exit\necho never\n") == 0
        assert reporter.out.getvalue() == ""

    def test_end_of_input(self, any_config, reporter):
        assert run_lines(any_config, reporter, "") == 0

    def test_blank_lines_ignored(self, any_config, reporter):
        assert run_lines(any_config, reporter, "\n   \n\n") == 0
        assert reporter.out.getvalue() == ""

    def test_cd_nonexistent_goes_home(self, any_config, reporter, tmp_path, monkeypatch):
        home = tmp_path / "home"
        home.mkdir()
        monkeypatch.setenv("HOME", str(home))
        monkeypatch.chdir(tmp_path)

        run_lines(any_config, reporter, "cd /nonexistent\n")
        assert os.getcwd() == os.path.realpath(home)
        assert "sending you home" in reporter.out.getvalue()
        assert reporter.spawned_pids() == []

    def test_cd_changes_directory_for_children(self, any_config, reporter, tmp_path, monkeypatch, capfd):
        monkeypatch.chdir(tmp_path)
        (tmp_path / "sub").mkdir()
        run_lines(any_config, reporter, "cd sub\npwd\n")
        assert capfd.readouterr().out.strip() == os.path.realpath(tmp_path / "sub")

    def test_overflow_warns_and_still_executes(self, any_config, reporter, capfd):
        run_lines(any_config, reporter, "echo 1 2 3 4 5 6 7\n")

        assert "==> ERROR: Too many arguments!" in reporter.err.getvalue()
        assert capfd.readouterr().out == "1 2 3 4 5\n"
        assert len(reporter.terminated_pids()) == 1

    def test_exec_failure_does_not_stop_session(self, any_config, reporter, capfd):
        run_lines(any_config, reporter, "smallshell-no-such-program-xyz\necho after\n")

        captured = capfd.readouterr()
        assert "Could not execute command: smallshell-no-such-program-xyz" in captured.err
        assert captured.out == "after\n"
        assert len(reporter.terminated_pids()) == 2


class TestExactlyOnce:
    def test_every_child_reported_once(self, any_config, reporter):
        text = "true &\ntrue &\nsleep 0.5\ntrue\ntrue\n"
        run_lines(any_config, reporter, text)

        spawned = reporter.spawned_pids()
        terminated = reporter.terminated_pids()
        assert len(spawned) == 5
        assert sorted(terminated) == sorted(spawned)
        assert len(reporter.elapsed_times()) == 3


class TestPollingLatency:
    def test_background_reported_between_commands(self, app_config, reporter):
        start = time.monotonic()
        run_lines(app_config, reporter, "sleep 0.3 &\ntrue\nsleep 0.6\n")

        background, first, second = reporter.spawned_pids()
        lines = reporter.lines
        bg_report = lines.index(f"==> {background} - process terminated")
        assert bg_report > lines.index(f"==> {second} - spawned foreground process")
        assert reporter.terminated_pids().count(background) == 1
        assert reporter.terminated_at[background] - start >= 0.3


class TestSignalLatency:
    def test_background_reported_while_idle(self, signal_config, reporter):
        read_fd, write_fd = os.pipe()
        stream = os.fdopen(read_fd, "r")
        seen_before_exit = []

        def feed():
            os.write(write_fd, b"sleep 0.2 &\n")
            deadline = time.monotonic() + 5.0
            while time.monotonic() < deadline and not reporter.terminated_pids():
                time.sleep(0.05)
            seen_before_exit.extend(reporter.terminated_pids())
            os.write(write_fd, b"exit\n")
            os.close(write_fd)

        start = time.monotonic()
        feeder = threading.Thread(target=feed)
        feeder.start()
        try:
            assert run_session(signal_config, stream=stream, reporter=reporter) == 0
        finally:
            feeder.join()
            stream.close()

        assert seen_before_exit == reporter.spawned_pids()
        [background] = seen_before_exit
        assert reporter.terminated_at[background] - start >= 0.2


class TestSignalStrategy:
    @pytest.mark.skipif(not os.path.isdir("/proc/self"), reason="needs /proc")
    def test_background_reaped_during_foreground_job(self, signal_config, reporter):
        states = []

        def watch():
            deadline = time.monotonic() + 5.0
            while time.monotonic() < deadline and not reporter.spawned_pids():
                time.sleep(0.01)
            [background] = reporter.spawned_pids()[:1]
            time.sleep(0.6)
            states.append(os.path.exists(f"/proc/{background}"))

        watcher = threading.Thread(target=watch)
        watcher.start()
        try:
            run_lines(signal_config, reporter, "sleep 0.1 &\nsleep 1\n")
        finally:
            watcher.join()

        # Collected by the handler while the foreground sleep was still running.
        assert states == [False]
        spawned = reporter.spawned_pids()
        assert len(spawned) == 2
        assert sorted(reporter.terminated_pids()) == sorted(spawned)
        assert len(reporter.elapsed_times()) == 1

    def test_foreground_collected_by_handler_reported_once(self, signal_config, reporter):
        run_lines(signal_config, reporter, "true\ntrue\ntrue\n")

        spawned = reporter.spawned_pids()
        assert len(spawned) == 3
        assert reporter.terminated_pids() == spawned
        assert len(reporter.elapsed_times()) == 3


class TestSession:
    def test_sigint_ignored_during_session(self, app_config, reporter):
        before = signal.getsignal(signal.SIGINT)
        with Shell(app_config, reporter):
            assert signal.getsignal(signal.SIGINT) == signal.SIG_IGN
        assert signal.getsignal(signal.SIGINT) == before

    def test_signal_strategy_restores_sigchld(self, signal_config, reporter):
        before = signal.getsignal(signal.SIGCHLD)
        with Shell(signal_config, reporter):
            assert signal.getsignal(signal.SIGCHLD) != before
        assert signal.getsignal(signal.SIGCHLD) == before

    def test_unknown_detection(self, app_config, reporter):
        app_config.shell.detection = "epoll"
        with pytest.raises(ConfigurationError):
            Shell(app_config, reporter)

    def test_prompt_only_when_interactive(self, app_config, reporter):
        app_config.shell.prompt = "$ "
        with Shell(app_config, reporter) as shell:
            shell.run(shell.open_reader(io.StringIO("\n")), interactive=True)
        assert reporter.out.getvalue() == "$ $ "

    def test_long_lines_truncated(self, app_config, reporter, capfd):
        app_config.shell.max_line_length = 9
        run_lines(app_config, reporter, "echo abcdefghij\n")
        assert capfd.readouterr().out == "abcd\n"
        assert "==> ERROR: Input line too long, truncated to 9 characters" in reporter.err.getvalue()

    def test_long_background_line_stays_in_background(self, app_config, reporter):
        app_config.shell.max_line_length = 10
        run_lines(app_config, reporter, "sleep 0 0 0 0 &\nsleep 0.3\n")

        assert reporter.lines[0].endswith("spawned background process")
        assert "truncated to 10 characters" in reporter.err.getvalue()
        assert len(reporter.elapsed_times()) == 1

    def test_interrupt_stops_foreground_child_only(self, any_config, status_reporter, capfd):
        def interrupt():
            deadline = time.monotonic() + 5.0
            while time.monotonic() < deadline and not status_reporter.spawned_pids():
                time.sleep(0.01)
            time.sleep(0.1)
            os.kill(os.getpid(), signal.SIGINT)
            os.kill(status_reporter.spawned_pids()[0], signal.SIGINT)

        interrupter = threading.Thread(target=interrupt)
        interrupter.start()
        try:
            assert run_lines(any_config, status_reporter, "sleep 5\necho after\n") == 0
        finally:
            interrupter.join()

        first, second = status_reporter.spawned_pids()
        assert f"==> {first} - process terminated (killed by signal SIGINT)" in status_reporter.lines
        assert f"==> {second} - process terminated (exit status 0)" in status_reporter.lines
        assert status_reporter.elapsed_times()[0] < 2
        assert capfd.readouterr().out == "after\n"
