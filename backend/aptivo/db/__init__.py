"""Database and cache connections."""
