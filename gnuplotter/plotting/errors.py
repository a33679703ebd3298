"""
Error kinds raised while building and rendering a gnuplot session.

**Conceptual**: Every failure the session can detect on its own has a named
exception class here, so callers can tell "unknown placeholder" apart from
"bad data file index" without parsing messages. Each class also derives from
the closest builtin (ValueError, IndexError) so generic handlers keep working.

Failures that come from collaborators are not wrapped:
  - OSError from creating the .gplt/.dat files.
  - subprocess.CalledProcessError / subprocess.TimeoutExpired / OSError from
    running the gnuplot binary.
"""


class GnuPlotError(Exception):
    """Base class for all errors raised by gnuplotter itself."""
    pass


class InvalidOpError(GnuPlotError, ValueError):
    """
    Raised when a ${...} placeholder names an operation that does not exist.

    Attributes:
        op: The full text between "${" and "}".
    """

    def __init__(self, op: str):
        self.op = op
        super().__init__(f"Invalid op: Got: {op}")


class InvalidDatOpError(GnuPlotError, ValueError):
    """
    Raised when a ${dat...} placeholder is not of the form dat:<idx>.

    Attributes:
        op: The full text between "${" and "}".
    """

    def __init__(self, op: str, message: str | None = None):
        self.op = op
        super().__init__(
            message or f"Invalid dat op: Expected format: dat:<idx> Got: {op}"
        )


class NonNumericDatIndexError(InvalidDatOpError):
    """
    Raised when the <idx> of a ${dat:<idx>} placeholder is not an integer.

    The parse failure is chained as __cause__.

    Attributes:
        op: The full text between "${" and "}".
        raw_index: The text after "dat:".
    """

    def __init__(self, op: str, raw_index: str):
        self.raw_index = raw_index
        super().__init__(
            op,
            f"Invalid dat op: Index was not a valid number: "
            f"Expected format: dat:<idx> Got: {op}",
        )


class DatIndexOutOfRangeError(GnuPlotError, IndexError):
    """
    Raised when a data file index falls outside [0, count).

    Used both by placeholder resolution (${dat:<idx>}) and by data row
    emission (GnuPlot.data_row and friends).

    Attributes:
        index: The index that was requested.
        count: Number of data files in the session.
    """

    def __init__(self, index: int, count: int):
        self.index = index
        self.count = count
        super().__init__(
            f"Invalid data index: Dat file index out of range: "
            f"Got: {index} Allowed Range: [0, {count})"
        )


class SessionClosedError(GnuPlotError, ValueError):
    """Raised when a session is used after run() or close()."""
    pass


class RenderCancelledError(GnuPlotError):
    """
    Raised when the cancel event fires while gnuplot is running.

    The child process has already been killed and reaped when this is raised.

    Attributes:
        cmd: The argument list gnuplot was started with.
    """

    def __init__(self, cmd: list[str]):
        self.cmd = cmd
        super().__init__(f"Render cancelled: {' '.join(cmd)}")
