"""Routers package."""

from . import analytics, health, patterns, projects

__all__ = [
    "analytics",
    "health",
    "patterns",
    "projects",
]
