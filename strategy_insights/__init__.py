"""Correlation analytics for the strategy-tracking platform."""

__version__ = "0.1.0"
