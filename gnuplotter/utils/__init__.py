"""
Generic utility functions shared across modules.

Includes logging setup for command line runs.
"""
