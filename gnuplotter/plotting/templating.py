"""
Placeholder resolution for gnuplot command strings.

**Conceptual**: Plot scripts need to reference the files the session created
(the output image, the .dat files) without hard-coding their paths. Command
strings carry placeholder tokens instead, which are swapped for quoted paths
right before the command is written to the script:

  - ${out}        -> 'path/to/output'
  - ${dat:<idx>}  -> 'path/to/data_file_<idx>.dat'

**Scanning rule**: Tokens are found with OP_PATTERN, one left-to-right pass of
non-overlapping matches. The token body cannot contain "{", so nested tokens
such as ${dat:${x}} are not supported and are never evaluated recursively.

Example:
    >>> resolve_cmd("plot ${dat:0} using 1:2", "out.png", ["series.dat"])
    "plot 'series.dat' using 1:2"
"""

import re
from typing import Sequence

from gnuplotter.plotting.errors import (
    DatIndexOutOfRangeError,
    InvalidDatOpError,
    InvalidOpError,
    NonNumericDatIndexError,
)

# Matches ${...} where the body contains no "{".
OP_PATTERN = re.compile(r"\$\{[^{]*\}")

_INDEX_PATTERN = re.compile(r"[+-]?[0-9]+")


def parse_dat_index(op: str, raw_index: str) -> int:
    """
    Parse the <idx> part of a dat:<idx> operation.

    Accepts an optionally signed run of ASCII digits and nothing else (no
    whitespace, no underscores). The sign is allowed so that "-1" is reported
    as out of range rather than as "not a number".

    Raises:
        NonNumericDatIndexError: If raw_index is not an integer literal.
    """
    try:
        if not _INDEX_PATTERN.fullmatch(raw_index):
            raise ValueError(f"invalid literal for dat index: {raw_index!r}")
        return int(raw_index)
    except ValueError as e:
        raise NonNumericDatIndexError(op, raw_index) from e


def resolve_op(op: str, out_file: str, dat_paths: Sequence[str]) -> str:
    """
    Resolve the body of a single ${...} token to its replacement text.

    Args:
        op: Text between "${" and "}" (e.g. "out", "dat:2").
        out_file: Path substituted for ${out}.
        dat_paths: Data file paths, addressed by position for ${dat:<idx>}.

    Returns:
        The single-quoted path the token stands for.

    Raises:
        InvalidOpError: Unknown operation.
        InvalidDatOpError: "dat" without ":<idx>".
        NonNumericDatIndexError: "<idx>" is not an integer.
        DatIndexOutOfRangeError: "<idx>" outside [0, len(dat_paths)).
    """
    name, sep, arg = op.partition(":")
    if name == "out":
        return f"'{out_file}'"
    if name == "dat":
        if not sep:
            raise InvalidDatOpError(op)
        idx = parse_dat_index(op, arg)
        if idx < 0 or idx >= len(dat_paths):
            raise DatIndexOutOfRangeError(idx, len(dat_paths))
        return f"'{dat_paths[idx]}'"
    raise InvalidOpError(op)


def resolve_cmd(cmd: str, out_file: str, dat_paths: Sequence[str]) -> str:
    """
    Replace every placeholder token in cmd.

    Text outside the tokens, including everything after the last token, is
    copied unchanged. A string without tokens is returned as is.

    Raises:
        The errors of resolve_op(), for the first token that fails.
    """
    parts = []
    prev_end = 0
    for match in OP_PATTERN.finditer(cmd):
        parts.append(cmd[prev_end:match.start()])
        parts.append(resolve_op(match.group()[2:-1], out_file, dat_paths))
        prev_end = match.end()
    if not parts:
        return cmd
    parts.append(cmd[prev_end:])
    return "".join(parts)
