"""
Data I/O for plot series and generated data files.

Reads source CSVs into DataFrames and reads generated .dat files back.
"""
