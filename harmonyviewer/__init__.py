"""Harmony viewer: step-by-step harmonic walkthroughs of rendered scores."""

__version__ = "0.1.0"
