"""Analytics report schemas.

Wire names match what the analytics dashboard consumes, including the
``_id`` grouping key of the monthly activity buckets.
"""

from pydantic import Field

from .common import CamelModel


class CompletionRate(CamelModel):
    percentage: int = 0
    completed: int = 0
    total: int = 0


class CurrentProjects(CamelModel):
    in_progress: int = 0
    completed: int = 0
    total: int = 0


class MonthKey(CamelModel):
    year: int
    month: int = Field(ge=1, le=12)


class MonthActivity(CamelModel):
    """Projects started in one calendar month, and how many of them are finished."""

    id: MonthKey = Field(alias="_id")
    started: int = 0
    finished: int = 0


class PatternUsage(CamelModel):
    pattern_id: int
    pattern_name: str
    project_count: int


class AverageDuration(CamelModel):
    """Duration statistics in fractional days. ``count == 0`` means no data."""

    avg_duration: float = 0
    min_duration: float = 0
    max_duration: float = 0
    count: int = 0


class RecentActivity(CamelModel):
    projects_started: int = 0
    projects_completed: int = 0
    patterns_created: int = 0


class UserAnalytics(CamelModel):
    """Full analytics report for one user."""

    user_id: int
    completion_rate: CompletionRate
    activity_by_month: list[MonthActivity] = []
    most_used_patterns: list[PatternUsage] = []
    average_duration: AverageDuration
    recent_activity: RecentActivity
    current_projects: CurrentProjects
