#!/usr/bin/env python3
"""Dailies entry point.

Run with:
    python main.py [dailies-timer://toggle]
    python -m dailies
"""

from dailies.__main__ import main


if __name__ == "__main__":
    main()
