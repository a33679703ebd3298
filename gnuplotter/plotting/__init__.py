"""
gnuplot session management and command templating.

Creates the .gplt script and .dat data files for a plot, resolves ${out} and
${dat:<idx>} placeholders in plot commands, and runs the gnuplot binary.
"""
