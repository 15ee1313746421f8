"""Bioloop: recovery, sleep and strain scores from Apple Health data."""

__version__ = "0.1.0"
