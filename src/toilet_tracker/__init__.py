"""Toilet Tracker client.

A command-line tool and local web UI for the Toilet Tracker service: log the
toilets you visit (by device location or manual coordinates), see them on a
map, follow your progress toward 400 unique toilets, and compare with others
on the leaderboard.
"""

__version__ = "0.1.0"

__author__ = "toilet-tracker contributors"
__license__ = "Apache-2.0"

__all__ = ["__version__"]
