"""
CSV readers for plot input and generated data files.

**Conceptual**: A session writes data files one row at a time, but the data
usually starts life as a CSV with a header row (exports, backtest results,
benchmark logs). This module is the pandas boundary on both ends:
  - read_series_csv() loads the columns to plot from a source CSV.
  - read_dat_file() reads a generated .dat file back, exactly as written,
    for inspection and tests.
"""

from pathlib import Path
from typing import Sequence

import pandas as pd


def read_dat_file(path: Path | str, sep: str = ",") -> pd.DataFrame:
    """
    Read a generated data file back into a DataFrame of strings.

    No header row is assumed and no value conversion happens: every cell is
    the literal text gnuplot will see (empty cells stay "", not NaN). Blank
    lines are skipped, matching how pandas treats them.

    Args:
        path: Path to the .dat file (including the extension).
        sep: The separator the session wrote the file with.

    Returns:
        DataFrame with integer column labels 0..n-1.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        pd.errors.EmptyDataError: If the file has no rows.

    Example:
        >>> frame = read_dat_file("build/prices.dat", sep=";")
        >>> frame.values.tolist()
        [['1', '401.2'], ['2', '402.7']]
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Data file not found: {path}")

    return pd.read_csv(
        path,
        sep=sep,
        header=None,
        dtype=str,
        keep_default_na=False,
    )


def read_series_csv(
    path: Path | str,
    x_column: str,
    y_columns: Sequence[str],
    sep: str = ",",
) -> pd.DataFrame:
    """
    Load the x column and one or more y columns from a CSV with a header row.

    **Functionally**:
      - Reads the CSV with pandas.
      - Checks that every requested column exists.
      - Returns only the requested columns, x first, in the given y order.

    Args:
        path: Path to the CSV file.
        x_column: Name of the column used for the x axis.
        y_columns: Names of the columns plotted against x (one series each).
        sep: Field separator of the CSV.

    Returns:
        DataFrame with columns [x_column, *y_columns].

    Raises:
        FileNotFoundError: If the file doesn't exist.
        ValueError: If y_columns is empty.
        KeyError: If a requested column is missing.

    Example:
        >>> df = read_series_csv("results/equity.csv", "timestamp", ["equity"])
        >>> list(df.columns)
        ['timestamp', 'equity']
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(
            f"Series CSV not found: {path}. "
            f"Ensure the file exists and the path is correct."
        )
    if len(y_columns) == 0:
        raise ValueError("At least one y column is required.")

    df = pd.read_csv(path, sep=sep)

    wanted = [x_column, *y_columns]
    missing = [col for col in wanted if col not in df.columns]
    if missing:
        raise KeyError(
            f"{path}: Missing columns: {missing}. "
            f"Available columns: {list(df.columns)}"
        )

    return df[wanted].reset_index(drop=True)
