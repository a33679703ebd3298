"""
Tests for GnuPlot.run(): finalization and the gnuplot subprocess.

**Testing philosophy**: No test needs gnuplot installed.
  - subprocess.Popen is replaced with a fake process for ordering, timeout
    and cancellation tests (fast, deterministic).
  - The POSIX `true` / `false` programs stand in for a real binary where the
    exit status is all that matters (skipped if they are not on PATH).
  - A `sh` script that execs `sleep` stands in for a gnuplot that hangs, so
    Ctrl-C handling can be checked against a real child.
"""

import os
import shutil
import signal
import subprocess
import sys
import threading
from unittest.mock import patch

import pytest

from gnuplotter.config.settings import GnuPlotSettings
from gnuplotter.plotting.errors import RenderCancelledError, SessionClosedError
from gnuplotter.plotting.session import GnuPlot

TRUE_BIN = shutil.which("true")
FALSE_BIN = shutil.which("false")
SH_BIN = shutil.which("sh")


class FakeProcess:
    """
    Minimal stand-in for subprocess.Popen.

    Finishes with `returncode` after `finish_after` wait() calls; None means it
    never finishes on its own (only kill() ends it).
    """

    def __init__(self, cmd, returncode=0, finish_after=0):
        self.cmd = cmd
        self._exit_code = returncode
        self._finish_after = finish_after
        self.returncode = None
        self.killed = False
        self.wait_calls = []

    def wait(self, timeout=None):
        self.wait_calls.append(timeout)
        if self.killed:
            self.returncode = -9
            return self.returncode
        if self._finish_after is not None and len(self.wait_calls) > self._finish_after:
            self.returncode = self._exit_code
            return self.returncode
        raise subprocess.TimeoutExpired(self.cmd, timeout)

    def kill(self):
        self.killed = True


@pytest.fixture
def fake_popen():
    """
    Patch Popen inside the session module and record every process created.

    Yields a dict; set "returncode" / "finish_after" before calling run().
    """
    state = {"returncode": 0, "finish_after": 0, "procs": [], "handles_closed": None}

    def _popen(cmd, *args, **kwargs):
        proc = FakeProcess(cmd, state["returncode"], state["finish_after"])
        state["procs"].append(proc)
        if state.get("plot") is not None:
            plot = state["plot"]
            state["handles_closed"] = all(
                h.closed for h in list(plot._dat_files) + [plot._gplt_file]
            )
        return proc

    with patch("gnuplotter.plotting.session.subprocess.Popen", side_effect=_popen) as mock:
        state["mock"] = mock
        yield state


def test_run_invokes_binary_with_script_path(make_opts, fake_popen):
    """Test the command line is `<binary> -c <script>` with inherited streams."""
    settings = GnuPlotSettings(binary="/opt/gnuplot/bin/gnuplot")
    plot = GnuPlot(make_opts(n_dat=1), settings=settings)

    plot.run()

    fake_popen["mock"].assert_called_once_with(
        ["/opt/gnuplot/bin/gnuplot", "-c", plot.gplt_path]
    )


def test_run_closes_files_before_spawning(make_opts, settings, fake_popen):
    """Test that every handle is closed (and data flushed) before gnuplot starts."""
    plot = GnuPlot(make_opts(n_dat=2), settings=settings)
    plot.cmds("plot ${dat:0}, ${dat:1}")
    plot.data_row(0, "1", "2")
    fake_popen["plot"] = plot

    plot.run()

    assert fake_popen["handles_closed"] is True
    assert plot.closed
    with open(plot.dat_paths[0]) as f:
        assert f.read() == "1,2\n"


def test_run_non_zero_exit_raises_called_process_error(make_opts, settings, fake_popen):
    """Test that a failing gnuplot surfaces as CalledProcessError."""
    fake_popen["returncode"] = 1
    plot = GnuPlot(make_opts(), settings=settings)

    with pytest.raises(subprocess.CalledProcessError) as exc_info:
        plot.run()

    assert exc_info.value.returncode == 1
    assert exc_info.value.cmd == ["gnuplot", "-c", plot.gplt_path]
    assert plot.closed


def test_run_launch_failure_propagates(make_opts, settings):
    """Test that a missing binary raises the OSError from Popen unchanged."""
    plot = GnuPlot(make_opts(), settings=settings)

    with patch(
        "gnuplotter.plotting.session.subprocess.Popen",
        side_effect=FileNotFoundError(2, "No such file or directory", "gnuplot"),
    ):
        with pytest.raises(FileNotFoundError):
            plot.run()

    assert plot.closed


def test_run_twice_is_rejected(make_opts, settings, fake_popen):
    """Test that the session is consumed by the first run()."""
    plot = GnuPlot(make_opts(), settings=settings)
    plot.run()

    with pytest.raises(SessionClosedError):
        plot.run()
    with pytest.raises(SessionClosedError):
        plot.cmds("replot")
    assert len(fake_popen["procs"]) == 1


def test_run_timeout_kills_process(make_opts, settings, fake_popen):
    """Test that TimeoutExpired is raised and the child killed when time runs out."""
    fake_popen["finish_after"] = None
    plot = GnuPlot(make_opts(), settings=settings)

    with pytest.raises(subprocess.TimeoutExpired):
        plot.run(timeout=5)

    proc = fake_popen["procs"][0]
    assert proc.killed
    assert proc.wait_calls[0] == 5


def test_run_uses_settings_timeout_by_default(make_opts, fake_popen):
    """Test that run() without a timeout falls back to settings.timeout_seconds."""
    settings = GnuPlotSettings(timeout_seconds=12.5)
    plot = GnuPlot(make_opts(), settings=settings)

    plot.run()

    assert fake_popen["procs"][0].wait_calls == [12.5]


def test_run_cancel_event_kills_process(make_opts, settings, fake_popen):
    """Test that setting the cancel event kills gnuplot and raises RenderCancelledError."""
    fake_popen["finish_after"] = None
    cancel = threading.Event()
    plot = GnuPlot(make_opts(), settings=settings)

    original_wait = FakeProcess.wait

    def wait_then_cancel(self, timeout=None):
        # Cancel from "another thread" after the first poll
        if len(self.wait_calls) == 1:
            cancel.set()
        return original_wait(self, timeout)

    with patch.object(FakeProcess, "wait", wait_then_cancel):
        with pytest.raises(RenderCancelledError) as exc_info:
            plot.run(cancel=cancel)

    assert fake_popen["procs"][0].killed
    assert exc_info.value.cmd == ["gnuplot", "-c", plot.gplt_path]


def test_run_cancel_event_not_set_completes(make_opts, settings, fake_popen):
    """Test that an unset cancel event lets gnuplot finish normally."""
    fake_popen["finish_after"] = 3
    plot = GnuPlot(make_opts(), settings=settings)

    plot.run(cancel=threading.Event())

    proc = fake_popen["procs"][0]
    assert not proc.killed
    assert proc.returncode == 0
    assert len(proc.wait_calls) == 4


def test_run_cancel_with_timeout_expires(make_opts, settings, fake_popen):
    """Test that the timeout still applies while polling for cancellation."""
    fake_popen["finish_after"] = None
    plot = GnuPlot(make_opts(), settings=settings)

    with pytest.raises(subprocess.TimeoutExpired):
        plot.run(timeout=0.2, cancel=threading.Event())

    assert fake_popen["procs"][0].killed


@pytest.mark.skipif(TRUE_BIN is None, reason="POSIX 'true' not available")
def test_run_real_process_success(make_opts):
    """Test a real child process that exits 0."""
    plot = GnuPlot(make_opts(), settings=GnuPlotSettings(binary=TRUE_BIN))
    plot.cmds("set output ${out}")

    plot.run(timeout=10)

    assert plot.closed


@pytest.mark.skipif(FALSE_BIN is None, reason="POSIX 'false' not available")
def test_run_real_process_failure(make_opts):
    """Test a real child process that exits 1."""
    plot = GnuPlot(make_opts(), settings=GnuPlotSettings(binary=FALSE_BIN))

    with pytest.raises(subprocess.CalledProcessError) as exc_info:
        plot.run(timeout=10)

    assert exc_info.value.returncode == 1


def test_run_interrupt_kills_process(make_opts, settings, fake_popen):
    """Test that KeyboardInterrupt while waiting kills gnuplot and propagates."""
    fake_popen["finish_after"] = None
    plot = GnuPlot(make_opts(), settings=settings)

    original_wait = FakeProcess.wait

    def interrupted_wait(self, timeout=None):
        if not self.killed:
            self.wait_calls.append(timeout)
            raise KeyboardInterrupt
        return original_wait(self, timeout)

    with patch.object(FakeProcess, "wait", interrupted_wait):
        with pytest.raises(KeyboardInterrupt):
            plot.run()

    proc = fake_popen["procs"][0]
    assert proc.killed
    assert proc.returncode == -9


@pytest.mark.parametrize("cancel", [None, threading.Event()], ids=["plain", "cancellable"])
def test_run_unexpected_error_kills_process(make_opts, settings, fake_popen, cancel):
    """Test that any error raised while waiting kills gnuplot and is raised unchanged."""
    fake_popen["finish_after"] = None
    plot = GnuPlot(make_opts(), settings=settings)
    error = RuntimeError("wait failed")

    original_wait = FakeProcess.wait

    def failing_wait(self, timeout=None):
        if not self.killed:
            raise error
        return original_wait(self, timeout)

    with patch.object(FakeProcess, "wait", failing_wait):
        with pytest.raises(RuntimeError) as exc_info:
            plot.run(cancel=cancel)

    assert exc_info.value is error
    assert fake_popen["procs"][0].killed


@pytest.mark.skipif(
    sys.platform == "win32" or SH_BIN is None or shutil.which("sleep") is None,
    reason="needs a POSIX shell and sleep",
)
def test_run_sigint_kills_real_process(tmp_path, make_opts):
    """Test that Ctrl-C during a real render leaves no gnuplot process behind."""
    binary = tmp_path / "slow-gnuplot"
    binary.write_text(f"#!{SH_BIN}\nexec sleep 30\n")
    binary.chmod(0o755)
    plot = GnuPlot(make_opts(), settings=GnuPlotSettings(binary=str(binary)))

    procs = []
    real_popen = subprocess.Popen

    def spawn(cmd, *args, **kwargs):
        proc = real_popen(cmd, *args, **kwargs)
        procs.append(proc)
        return proc

    interrupt = threading.Timer(0.5, os.kill, args=(os.getpid(), signal.SIGINT))
    with patch("gnuplotter.plotting.session.subprocess.Popen", side_effect=spawn):
        interrupt.start()
        try:
            with pytest.raises(KeyboardInterrupt):
                plot.run(timeout=20)
        finally:
            interrupt.cancel()

    assert len(procs) == 1
    assert procs[0].poll() is not None
