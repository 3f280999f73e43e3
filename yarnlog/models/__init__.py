"""Database models package."""

from .base import Base
from .pattern import Pattern
from .project import Project, ProjectState
from .user import User

__all__ = [
    "Base",
    "Pattern",
    "Project",
    "ProjectState",
    "User",
]
