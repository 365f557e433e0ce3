"""Batch trading-card generator for player rosters."""

__version__ = "0.1.0"
