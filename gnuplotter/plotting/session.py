"""
A gnuplot session: one script file, its data files, and the render step.

**Conceptual**: Building a plot with gnuplot means producing two kinds of
input files and then running the program on them:
  - a script (.gplt) with one command per line,
  - one delimited data file (.dat) per series.

GnuPlot owns all of these files from construction until run(). Callers add
script lines with cmds() (placeholders such as ${out} and ${dat:0} are
resolved to the session's paths, see templating.py) and data rows with
data_row(). run() flushes and closes everything, then hands the script to
gnuplot.

**Lifecycle**:
  1. GnuPlot(opts) creates every file up front (fails fast on bad paths).
  2. cmds() / data_row() / data_rows() / data_frame() append content.
  3. run() finalizes exactly once; close() finalizes without rendering.
  After step 3 every mutating method raises SessionClosedError.

**Usage**:
    opts = GnuPlotOpts(
        gplt_file="build/prices",
        dat_files=["build/qqq", "build/spy"],
        out_file="build/prices.png",
    )
    with GnuPlot(opts) as plot:
        plot.cmds(
            "set terminal pngcairo",
            "set output ${out}",
            'set datafile separator ","',
            "plot ${dat:0} using 1:2 with lines, ${dat:1} using 1:2 with lines",
        )
        plot.data_row(0, "1", "401.2")
        plot.data_row(1, "1", "470.9")
        plot.run(timeout=30)
"""

import csv
import logging
import os
import subprocess
import threading
import time
from contextlib import ExitStack
from dataclasses import dataclass
from typing import IO, Any, Iterable, Optional, Sequence

import pandas as pd

from gnuplotter.config.settings import GnuPlotSettings, get_settings
from gnuplotter.plotting.errors import (
    DatIndexOutOfRangeError,
    RenderCancelledError,
    SessionClosedError,
)
from gnuplotter.plotting.templating import resolve_cmd

lg = logging.getLogger(__name__)

GPLT_EXTENSION = ".gplt"
DAT_EXTENSION = ".dat"

# How often run() checks the cancel event while gnuplot is running.
CANCEL_POLL_SECONDS = 0.05


@dataclass(frozen=True)
class GnuPlotOpts:
    """
    Immutable configuration of a gnuplot session.

    Attributes:
        gplt_file: Path of the script file, without extension (".gplt" is
                   appended). Relative paths are relative to the working
                   directory.
        dat_files: Paths of the data files, without extension (".dat" is
                   appended). Order matters: placeholders and data_row()
                   address data files by position.
        out_file: Path where gnuplot writes the plot. Substituted verbatim
                  for ${out}; the session never creates this file itself.
        csv_sep: Single-character column separator for the data files.
    """
    gplt_file: str
    dat_files: Sequence[str]
    out_file: str
    csv_sep: str = ","

    def __post_init__(self):
        """Freeze dat_files and validate the separator."""
        object.__setattr__(self, "dat_files", tuple(self.dat_files))
        if len(self.csv_sep) != 1:
            raise ValueError(
                f"csv_sep must be a single character, got: {self.csv_sep!r}"
            )
        if self.csv_sep in ('"', "\r", "\n"):
            raise ValueError(
                f"csv_sep cannot be a quote or line break character, got: {self.csv_sep!r}"
            )


class GnuPlot:
    """
    Coordinates one script file, its data files and the gnuplot run.

    Not thread-safe; a session belongs to a single caller.

    Attributes:
        out_file: Output path passed through to gnuplot.
        gplt_path: Script path including ".gplt".
        dat_paths: Data file paths including ".dat", in index order.
        closed: True once run() or close() has been called.
    """

    def __init__(self, opts: GnuPlotOpts, settings: Optional[GnuPlotSettings] = None):
        """
        Create the script file and every data file.

        Existing files are truncated. If any file cannot be created the files
        already opened are closed and the OSError propagates; files that were
        created stay on disk.

        Args:
            opts: Session configuration.
            settings: gnuplot binary and default timeout. Defaults to
                      get_settings().

        Raises:
            OSError: If a file cannot be created.
        """
        self._opts = opts
        self._settings = settings or get_settings()
        self._closed = False

        gplt_path = os.fspath(opts.gplt_file) + GPLT_EXTENSION
        dat_paths = tuple(os.fspath(p) + DAT_EXTENSION for p in opts.dat_files)

        with ExitStack() as stack:
            gplt_handle = stack.enter_context(
                open(gplt_path, "w", encoding="utf-8", newline="")
            )
            dat_handles = [
                stack.enter_context(open(p, "w", encoding="utf-8", newline=""))
                for p in dat_paths
            ]
            # Construction succeeded, the session owns the handles from here.
            stack.pop_all()

        self._gplt_path = gplt_path
        self._dat_paths = dat_paths
        self._gplt_file: IO[str] = gplt_handle
        self._dat_files: list[IO[str]] = dat_handles
        self._csv_writers = [
            csv.writer(handle, delimiter=opts.csv_sep, lineterminator="\n")
            for handle in dat_handles
        ]
        lg.debug(
            "Created %s and %d data file(s): %s",
            gplt_path, len(dat_paths), ", ".join(dat_paths),
        )

    @property
    def out_file(self) -> str:
        return self._opts.out_file

    @property
    def gplt_path(self) -> str:
        return self._gplt_path

    @property
    def dat_paths(self) -> tuple[str, ...]:
        return self._dat_paths

    @property
    def closed(self) -> bool:
        return self._closed

    def __enter__(self) -> "GnuPlot":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _check_open(self) -> None:
        if self._closed:
            raise SessionClosedError(
                f"Session for {self._gplt_path} has already been run or closed"
            )

    def _check_index(self, file: int) -> None:
        if file < 0 or file >= len(self._csv_writers):
            raise DatIndexOutOfRangeError(file, len(self._csv_writers))

    def cmds(self, *cmds: str) -> None:
        """
        Resolve placeholders in cmds and append them to the script.

        Valid placeholders:
          - ${out}: the output file path, single-quoted.
          - ${dat:<idx>}: the path of data file <idx>, single-quoted. The
            index must be an integer in [0, len(dat_paths)).

        The batch is all-or-nothing: every command is resolved before any is
        written, so if one of them fails none of them reach the script.

        Raises:
            InvalidOpError, InvalidDatOpError, NonNumericDatIndexError,
            DatIndexOutOfRangeError: A placeholder could not be resolved.
            SessionClosedError: The session was already run or closed.
        """
        self._check_open()
        resolved = [
            resolve_cmd(cmd, self._opts.out_file, self._dat_paths) for cmd in cmds
        ]
        for line in resolved:
            self._gplt_file.write(line)
            self._gplt_file.write("\n")
        lg.debug("Wrote %d command(s) to %s", len(resolved), self._gplt_path)

    def data_row(self, file: int, *data: Any) -> None:
        """
        Append one row to the data file at index `file`.

        Calling with no data is a no-op and never raises, even for a bad
        index. A single empty string writes a blank line, which gnuplot reads
        as a separator between data blocks.

        Raises:
            DatIndexOutOfRangeError: `file` is outside [0, len(dat_paths)).
            SessionClosedError: The session was already run or closed.
        """
        if len(data) == 0:
            return
        self._check_open()
        self._check_index(file)
        self._write_row(file, data)

    def data_rows(self, file: int, rows: Iterable[Sequence[Any]]) -> None:
        """
        Append several rows to the data file at index `file`.

        Each row follows the data_row() rules: empty rows are skipped and
        [""] writes a blank line. An empty `rows` is a no-op.

        Raises:
            DatIndexOutOfRangeError: `file` is outside [0, len(dat_paths)).
            SessionClosedError: The session was already run or closed.
        """
        rows = [row for row in rows if len(row) > 0]
        if not rows:
            return
        self._check_open()
        self._check_index(file)
        for row in rows:
            self._write_row(file, row)

    def data_frame(self, file: int, frame: pd.DataFrame, header: bool = False) -> None:
        """
        Append the rows of a DataFrame to the data file at index `file`.

        Columns are written in frame order with the session separator; the
        index is not written. A frame without rows writes only the header
        line, and only when `header` is set and the frame has columns;
        otherwise it is a no-op.

        Args:
            file: Data file index.
            frame: Rows to write.
            header: Also write the column names as a first row. gnuplot
                    treats a non-numeric first row as a comment-like header
                    only with `set key autotitle columnhead`.

        Raises:
            DatIndexOutOfRangeError: `file` is outside [0, len(dat_paths)).
            SessionClosedError: The session was already run or closed.
        """
        if frame.empty and not (header and len(frame.columns) > 0):
            return
        self._check_open()
        self._check_index(file)
        frame.to_csv(
            self._dat_files[file],
            sep=self._opts.csv_sep,
            header=header,
            index=False,
            lineterminator="\n",
        )

    def _write_row(self, file: int, row: Sequence[Any]) -> None:
        # csv.writer quotes a lone "" to keep it distinct from an empty
        # record; gnuplot wants a truly empty line instead.
        if len(row) == 1 and row[0] == "":
            self._csv_writers[file].writerow([])
        else:
            self._csv_writers[file].writerow(row)

    def close(self) -> None:
        """
        Flush every data file, close the data files, then close the script.

        Idempotent. The session cannot be written to afterwards. Every handle
        is closed even if a flush or close fails; the error is then raised.

        Raises:
            OSError: A file could not be flushed or closed (e.g. disk full).
        """
        if self._closed:
            return
        self._closed = True
        with ExitStack() as stack:
            # Callbacks run last-in first-out: data files in order, script last.
            stack.callback(self._gplt_file.close)
            for handle in reversed(self._dat_files):
                stack.callback(handle.close)
            for handle in self._dat_files:
                handle.flush()
        lg.debug("Closed %s and %d data file(s)", self._gplt_path, len(self._dat_files))

    def run(
        self,
        timeout: Optional[float] = None,
        cancel: Optional[threading.Event] = None,
    ) -> None:
        """
        Finalize the session and render it with gnuplot.

        All files are flushed and closed first, then `<binary> -c <gplt_path>`
        runs with this process's stdout and stderr. The session is consumed
        whether or not gnuplot succeeds.

        Args:
            timeout: Seconds to wait for gnuplot. Defaults to the settings'
                     timeout_seconds; None waits forever.
            cancel: Event that, once set, kills gnuplot.

        Raises:
            SessionClosedError: run() or close() was already called.
            OSError: gnuplot could not be started.
            subprocess.TimeoutExpired: gnuplot ran longer than `timeout`.
            subprocess.CalledProcessError: gnuplot exited non-zero.
            RenderCancelledError: `cancel` was set before gnuplot finished.
        """
        self._check_open()
        self.close()

        if timeout is None:
            timeout = self._settings.timeout_seconds

        cmd = [self._settings.binary, "-c", self._gplt_path]
        lg.debug("Running %s", " ".join(cmd))
        proc = subprocess.Popen(cmd)
        try:
            _wait_for_render(proc, cmd, timeout, cancel)
        except BaseException:
            # Includes KeyboardInterrupt; gnuplot must not outlive run().
            _kill(proc)
            raise
        lg.debug("%s exited with status %d", cmd[0], proc.returncode)

        if proc.returncode != 0:
            raise subprocess.CalledProcessError(proc.returncode, cmd)


def _wait_for_render(
    proc: subprocess.Popen,
    cmd: list[str],
    timeout: Optional[float],
    cancel: Optional[threading.Event],
) -> None:
    """Wait for proc; the caller kills it if this raises."""
    if cancel is None:
        proc.wait(timeout=timeout)
        return

    deadline = None if timeout is None else time.monotonic() + timeout
    while True:
        if cancel.is_set():
            raise RenderCancelledError(cmd)
        wait_for = CANCEL_POLL_SECONDS
        if deadline is not None:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise subprocess.TimeoutExpired(cmd, timeout)
            wait_for = min(wait_for, remaining)
        try:
            proc.wait(timeout=wait_for)
            return
        except subprocess.TimeoutExpired:
            continue


def _kill(proc: subprocess.Popen) -> None:
    # Popen.kill() is a no-op once the child has been reaped.
    proc.kill()
    proc.wait()
