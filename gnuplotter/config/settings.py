"""
Configuration settings for rendering plots with gnuplot.

**Conceptual**: This module provides a strongly-typed settings object loaded
from environment variables (via .env files). Settings are validated when they
are built, so a bad GNUPLOT_TIMEOUT_SECONDS fails at startup rather than in
the middle of a render.

**What is configurable**:
  - Which gnuplot binary to run (a full path, or a name looked up on PATH).
  - The default render timeout used by GnuPlot.run().
  - The default field separator used by scripts that build data files.

This module uses python-dotenv to load .env files and dataclasses for type safety.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load .env from project root (existing environment variables win)
env_path = Path(__file__).parent.parent.parent / ".env"
load_dotenv(dotenv_path=env_path)


@dataclass(frozen=True)
class GnuPlotSettings:
    """
    Configuration for invoking the external gnuplot program.

    **Conceptual**: A session only needs to know how to start gnuplot and how
    long to wait for it. Keeping that here (instead of hard-coding "gnuplot")
    lets tests and unusual installs point at a different binary.

    Attributes:
        binary: Executable to run as `<binary> -c <script>` (default "gnuplot").
        timeout_seconds: Default render timeout in seconds. None waits forever.
        csv_sep: Default single-character field separator for data files.
    """
    binary: str = "gnuplot"
    timeout_seconds: Optional[float] = None
    csv_sep: str = ","

    def __post_init__(self):
        """Validate settings after initialization."""
        if not self.binary:
            raise ValueError(
                "GNUPLOT_BINARY must not be empty. "
                "Unset it to use 'gnuplot' from PATH."
            )
        if self.timeout_seconds is not None and self.timeout_seconds <= 0:
            raise ValueError(
                f"timeout_seconds must be positive, got: {self.timeout_seconds}"
            )
        if len(self.csv_sep) != 1:
            raise ValueError(
                f"csv_sep must be a single character, got: {self.csv_sep!r}"
            )

    @classmethod
    def from_env(cls) -> "GnuPlotSettings":
        """
        Load gnuplot settings from environment variables.

        **Environment variables** (all optional):
          - GNUPLOT_BINARY: Executable name or path. Defaults to "gnuplot".
          - GNUPLOT_TIMEOUT_SECONDS: Render timeout in seconds (float).
            Unset or empty means no timeout.
          - GNUPLOT_CSV_SEP: Field separator for data files. Defaults to ",".

        Returns:
            GnuPlotSettings object with values loaded from environment.

        Raises:
            ValueError: If a variable is set to an invalid value.

        Usage example:
            >>> # In .env file:
            >>> # GNUPLOT_BINARY=/usr/local/bin/gnuplot
            >>> # GNUPLOT_TIMEOUT_SECONDS=30
            >>>
            >>> settings = GnuPlotSettings.from_env()
            >>> print(settings.timeout_seconds)  # 30.0
        """
        binary = os.getenv("GNUPLOT_BINARY", "gnuplot")
        timeout_str = os.getenv("GNUPLOT_TIMEOUT_SECONDS", "")
        csv_sep = os.getenv("GNUPLOT_CSV_SEP", ",")

        timeout_seconds = None
        if timeout_str.strip():
            try:
                timeout_seconds = float(timeout_str)
            except ValueError:
                raise ValueError(
                    f"GNUPLOT_TIMEOUT_SECONDS must be a number, got: {timeout_str}"
                )

        return cls(
            binary=binary,
            timeout_seconds=timeout_seconds,
            csv_sep=csv_sep,
        )


# Module-level cache; tests inject their own GnuPlotSettings instead.
_default_settings: Optional[GnuPlotSettings] = None


def get_settings() -> GnuPlotSettings:
    """
    Get the global settings singleton.

    Settings are loaded from the environment on first call, then cached.
    Call reset_settings() to force a reload.

    Returns:
        Global GnuPlotSettings singleton.

    Raises:
        ValueError: If the environment holds invalid values.
    """
    global _default_settings

    if _default_settings is None:
        _default_settings = GnuPlotSettings.from_env()

    return _default_settings


def reset_settings():
    """
    Reset the global settings singleton (for testing).

    **Testing pattern**:
      ```python
      def test_something(monkeypatch):
          monkeypatch.setenv("GNUPLOT_BINARY", "/opt/gnuplot/bin/gnuplot")
          reset_settings()
          assert get_settings().binary == "/opt/gnuplot/bin/gnuplot"
      ```
    """
    global _default_settings
    _default_settings = None
