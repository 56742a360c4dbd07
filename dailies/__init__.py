"""Dailies: count-up timers that stay in sync with a spreadsheet."""

__version__ = "0.1.0"
