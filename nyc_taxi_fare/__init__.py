"""Taxi fare prediction for New York City trip records."""

__version__ = "0.1.0"
