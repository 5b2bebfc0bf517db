"""Periodic HTTP endpoint monitoring with persistent probe history."""

__version__ = "1.0.0"
