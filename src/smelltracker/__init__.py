"""Smell evolution tracking over Git commit histories."""

__version__ = "0.1.0"
