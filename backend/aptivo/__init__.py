"""Aptivo learning core: practice sessions, attempt analytics and streaks."""

__version__ = "0.1.0"
