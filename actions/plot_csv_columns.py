#!/usr/bin/env python3
"""
Plot one or more columns of a CSV file with gnuplot.

**Purpose**: This script shows end-to-end usage of a GnuPlot session. It reads
a CSV with a header row, writes one data file per plotted column, generates a
gnuplot script that references those files through placeholders, and renders
the plot.

**Usage**:
    python actions/plot_csv_columns.py data/results/equity.csv --x timestamp --y equity --out equity.png
    python actions/plot_csv_columns.py bench.csv --x size --y read --y write --out bench.svg --terminal svg

**What this script does**:
  1. Parse command line arguments (CSV path, columns, output path)
  2. Load gnuplot settings from environment (.env file)
  3. Read the requested columns from the CSV
  4. Build the session:
     a. One data file per y column, rows of "x<sep>y"
     b. Script: terminal, output, separator, one plot clause per series
  5. Run gnuplot and report where the plot was written

**Generated files** (in --work-dir, default: alongside --out):
  - <stem>.gplt: The gnuplot script.
  - <stem>_<column>.dat: One data file per y column.

**Requirements**:
  - gnuplot installed (or GNUPLOT_BINARY set in .env)

**Example output**:
    $ python actions/plot_csv_columns.py bench.csv --x size --y read --out bench.png
    Reading bench.csv...
    ✓ Loaded 120 rows, 1 series
    ✓ Wrote bench.gplt and 1 data file(s)
    Rendering with gnuplot...
    ✓ Plot written to bench.png
"""

import argparse
import re
import subprocess
import sys
from pathlib import Path
from typing import Optional, Sequence

import pandas as pd

# Add project root to Python path so we can import gnuplotter modules
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from gnuplotter.config.settings import GnuPlotSettings, get_settings
from gnuplotter.data.io import read_series_csv
from gnuplotter.plotting.errors import GnuPlotError, RenderCancelledError
from gnuplotter.plotting.session import GnuPlot, GnuPlotOpts
from gnuplotter.utils.logging import configure_logging


def parse_args(argv: Optional[Sequence[str]] = None):
    """
    Parse command line arguments.

    Returns:
        Namespace with attributes: csv_path, x, y (list), out, work_dir, sep,
        terminal, title, timeout, verbose.
    """
    parser = argparse.ArgumentParser(
        description="Plot columns of a CSV file with gnuplot",
        epilog="""
Examples:
  # Single series to PNG
  python actions/plot_csv_columns.py equity.csv --x timestamp --y equity --out equity.png

  # Two series, SVG output, generated files kept in build/
  python actions/plot_csv_columns.py bench.csv --x size --y read --y write \\
      --out bench.svg --terminal svg --work-dir build
        """,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument("csv_path", help="CSV file with a header row")
    parser.add_argument("--x", required=True, help="Column used for the x axis")
    parser.add_argument(
        "--y",
        action="append",
        required=True,
        help="Column to plot against x (repeat for several series)",
    )
    parser.add_argument("--out", required=True, help="Output file written by gnuplot")
    parser.add_argument(
        "--work-dir",
        default=None,
        help="Directory for the generated .gplt/.dat files (default: directory of --out)",
    )
    parser.add_argument(
        "--sep",
        default=None,
        help="Field separator for the generated data files (default: GNUPLOT_CSV_SEP or ',')",
    )
    parser.add_argument(
        "--terminal",
        default="pngcairo",
        help="gnuplot terminal (default: pngcairo)",
    )
    parser.add_argument("--title", default=None, help="Plot title")
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Seconds to wait for gnuplot (default: GNUPLOT_TIMEOUT_SECONDS or none)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log session details (files created, gnuplot command)",
    )

    return parser.parse_args(argv)


def series_file_stem(column: str) -> str:
    """Turn a column name into something safe to use in a file name."""
    return re.sub(r"[^A-Za-z0-9_.-]+", "_", column).strip("_") or "series"


def gnuplot_string(text: str) -> str:
    """Quote text as a double-quoted gnuplot string literal."""
    escaped = text.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def build_plot(
    df: pd.DataFrame,
    x_column: str,
    y_columns: Sequence[str],
    out: Path,
    work_dir: Path,
    settings: GnuPlotSettings,
    sep: str = ",",
    terminal: str = "pngcairo",
    title: Optional[str] = None,
) -> GnuPlot:
    """
    Create a session holding the script and data files for the plot.

    The session is returned unrendered so callers (and tests) can inspect the
    paths before calling run(). Rows with a missing x or y value are skipped
    for that series.

    Args:
        df: Frame with x_column and every column in y_columns.
        x_column: Column used for the x axis.
        y_columns: Columns plotted against x, one data file each.
        out: Output path for gnuplot.
        work_dir: Directory for the generated files (created if missing).
        settings: gnuplot settings for the session.
        sep: Field separator for the data files.
        terminal: gnuplot terminal name (plus options).
        title: Optional plot title.

    Returns:
        A GnuPlot session with all commands and rows written.
    """
    work_dir.mkdir(parents=True, exist_ok=True)
    stem = out.stem or "plot"

    opts = GnuPlotOpts(
        gplt_file=str(work_dir / stem),
        dat_files=[str(work_dir / f"{stem}_{series_file_stem(col)}") for col in y_columns],
        out_file=str(out),
        csv_sep=sep,
    )
    plot = GnuPlot(opts, settings=settings)

    try:
        cmds = [
            f"set terminal {terminal}",
            "set output ${out}",
            f"set datafile separator {gnuplot_string(sep)}",
            f"set xlabel {gnuplot_string(x_column)}",
        ]
        if title:
            cmds.append(f"set title {gnuplot_string(title)}")
        clauses = [
            f"${{dat:{i}}} using 1:2 with lines title {gnuplot_string(col)}"
            for i, col in enumerate(y_columns)
        ]
        cmds.append("plot " + ", ".join(clauses))
        plot.cmds(*cmds)

        for i, col in enumerate(y_columns):
            series = df[[x_column, col]].dropna()
            plot.data_frame(i, series)
    except Exception:
        plot.close()
        raise

    return plot


def main(argv: Optional[Sequence[str]] = None):
    """
    Main entry point for the script.

    **Exit codes**:
      - 0: Success (plot rendered)
      - 1: Input or configuration error (missing file/column, bad settings)
      - 2: Render error (gnuplot missing, failed, timed out or cancelled)
      - 130: Interrupted by user
    """
    try:
        args = parse_args(argv)
        configure_logging(args.verbose)

        try:
            settings = get_settings()
        except ValueError as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(1)

        sep = args.sep or settings.csv_sep
        out = Path(args.out)
        work_dir = Path(args.work_dir) if args.work_dir else out.parent

        print(f"Reading {args.csv_path}...")
        try:
            df = read_series_csv(args.csv_path, args.x, args.y)
        except (FileNotFoundError, KeyError, ValueError) as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(1)
        print(f"  ✓ Loaded {len(df)} rows, {len(args.y)} series")

        try:
            plot = build_plot(
                df,
                args.x,
                args.y,
                out=out,
                work_dir=work_dir,
                settings=settings,
                sep=sep,
                terminal=args.terminal,
                title=args.title,
            )
        except (OSError, ValueError, GnuPlotError) as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(1)
        print(f"  ✓ Wrote {plot.gplt_path} and {len(plot.dat_paths)} data file(s)")

        print("Rendering with gnuplot...")
        try:
            plot.run(timeout=args.timeout)
        except FileNotFoundError:
            print(f"Error: gnuplot binary not found: {settings.binary}", file=sys.stderr)
            print("Install gnuplot or set GNUPLOT_BINARY in your .env file.", file=sys.stderr)
            sys.exit(2)
        except subprocess.CalledProcessError as e:
            print(f"Error: gnuplot exited with status {e.returncode}", file=sys.stderr)
            sys.exit(2)
        except subprocess.TimeoutExpired as e:
            print(f"Error: gnuplot did not finish within {e.timeout} seconds", file=sys.stderr)
            sys.exit(2)
        except RenderCancelledError as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(2)

        print(f"  ✓ Plot written to {out}")
        sys.exit(0)

    except KeyboardInterrupt:
        print("\nInterrupted by user. Exiting...")
        sys.exit(130)  # Standard Unix exit code for Ctrl+C


if __name__ == "__main__":
    main()
