"""
gnuplotter – Main entry point.

Renders a small demo plot (sine and cosine) to verify that gnuplot is
installed and the project structure is in place. Generated files go to
build/demo/.
"""

import math
from pathlib import Path

import numpy as np

from gnuplotter.plotting.session import GnuPlot, GnuPlotOpts
from gnuplotter.utils.logging import configure_logging


def main() -> None:
    """Write and render the demo plot."""
    configure_logging()

    out_dir = Path("build") / "demo"
    out_dir.mkdir(parents=True, exist_ok=True)

    opts = GnuPlotOpts(
        gplt_file=str(out_dir / "demo"),
        dat_files=[str(out_dir / "sin"), str(out_dir / "cos")],
        out_file=str(out_dir / "demo.png"),
        csv_sep=";",
    )
    xs = np.linspace(0.0, 2 * math.pi, 200)

    with GnuPlot(opts) as plot:
        plot.cmds(
            "set terminal pngcairo size 800,500",
            "set output ${out}",
            'set datafile separator ";"',
            "plot ${dat:0} using 1:2 with lines title 'sin', "
            "${dat:1} using 1:2 with lines title 'cos'",
        )
        plot.data_rows(0, ((f"{x:.6f}", f"{y:.6f}") for x, y in zip(xs, np.sin(xs))))
        plot.data_rows(1, ((f"{x:.6f}", f"{y:.6f}") for x, y in zip(xs, np.cos(xs))))
        plot.run()

    print(f"gnuplotter demo written to {opts.out_file}")


if __name__ == "__main__":
    main()
