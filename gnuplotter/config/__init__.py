"""
Configuration loading and validation for gnuplot settings.

Provides a strongly typed settings object read from environment variables
(and .env files) with upfront validation.
"""
