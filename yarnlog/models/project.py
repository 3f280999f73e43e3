"""Project model."""

from datetime import datetime
from enum import Enum

from sqlalchemy import JSON, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class ProjectState(str, Enum):
    """Project lifecycle state, derived from finished_at."""

    IN_PROGRESS = "in_progress"
    FINISHED = "finished"


class Project(Base):
    """Project model - one user's execution of (optionally) a pattern.

    ``finished_at`` is the lifecycle flag: NULL while the project is in
    progress, set once it is finished.
    """

    __tablename__ = "projects"
    __table_args__ = (
        Index("ix_projects_user_started", "user_id", "started_at"),
        Index("ix_projects_user_finished", "user_id", "finished_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)

    # Shared reference, the project does not own the pattern
    pattern_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("patterns.id", ondelete="SET NULL"), nullable=True, index=True
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    finished_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, default=None
    )

    # Embedded documents, always rewritten as a whole
    row_trackers: Mapped[list] = mapped_column(JSON, default=list)
    files: Mapped[list] = mapped_column(JSON, default=list)
    tags: Mapped[list] = mapped_column(JSON, default=list)

    # Bumped on every write, checked only when the client sends it back
    version: Mapped[int] = mapped_column(Integer, default=1, nullable=False)

    @property
    def state(self) -> ProjectState:
        return ProjectState.FINISHED if self.finished_at is not None else ProjectState.IN_PROGRESS
