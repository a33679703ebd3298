"""
Pytest configuration file.

Ensures the repo root is on sys.path so that 'import gnuplotter...' works, and
provides shared session fixtures.
"""
import sys
from pathlib import Path

import pytest

# Add the repo root to sys.path
repo_root = Path(__file__).parent.parent
if str(repo_root) not in sys.path:
    sys.path.insert(0, str(repo_root))

from gnuplotter.config.settings import GnuPlotSettings, reset_settings
from gnuplotter.plotting.session import GnuPlotOpts


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch):
    """Keep GNUPLOT_* variables from the developer's shell out of tests."""
    for name in ("GNUPLOT_BINARY", "GNUPLOT_TIMEOUT_SECONDS", "GNUPLOT_CSV_SEP"):
        monkeypatch.delenv(name, raising=False)
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def settings():
    """Default settings (binary "gnuplot", no timeout)."""
    return GnuPlotSettings()


@pytest.fixture
def make_opts(tmp_path):
    """
    Build GnuPlotOpts with every path inside tmp_path.

    Usage: make_opts(n_dat=2, csv_sep=";")
    """
    def _make(n_dat: int = 1, csv_sep: str = ",") -> GnuPlotOpts:
        return GnuPlotOpts(
            gplt_file=str(tmp_path / "plot"),
            dat_files=[str(tmp_path / f"series{i}") for i in range(n_dat)],
            out_file=str(tmp_path / "plot.png"),
            csv_sep=csv_sep,
        )
    return _make
