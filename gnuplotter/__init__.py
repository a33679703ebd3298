"""
gnuplotter: generate gnuplot scripts and data files, then render them.

Entry point is gnuplotter.plotting.session.GnuPlot.
"""
