"""API routers."""

from aptivo.routers import analytics, auth, health, navigation, practice

__all__ = ["analytics", "auth", "health", "navigation", "practice"]
