"""Analytics aggregation over one user's projects and patterns.

All functions are pure: they take the already loaded records and an explicit
``now`` so the trailing windows are reproducible. Records only need the
attributes read here (``started_at``, ``finished_at``, ``pattern_id`` on
projects; ``id``, ``name``, ``created_at`` on patterns).
"""

from collections import Counter
from collections.abc import Iterable, Sequence
from datetime import datetime, timedelta
from typing import Protocol

from ..logging_config import get_logger
from ..schemas.analytics import (
    AverageDuration,
    CompletionRate,
    CurrentProjects,
    MonthActivity,
    MonthKey,
    PatternUsage,
    RecentActivity,
    UserAnalytics,
)
from .dates import as_utc, days_between, months_before
from .formatting import round_half_up

logger = get_logger(__name__)

ACTIVITY_WINDOW_MONTHS = 12
RECENT_WINDOW_DAYS = 30
MOST_USED_LIMIT = 10


class ProjectLike(Protocol):
    pattern_id: int | None
    started_at: datetime | None
    finished_at: datetime | None


class PatternLike(Protocol):
    id: int
    name: str
    created_at: datetime | None


def completion_rate(projects: Sequence[ProjectLike]) -> CompletionRate:
    total = len(projects)
    completed = sum(1 for p in projects if p.finished_at is not None)
    percentage = round_half_up(completed / total * 100) if total else 0
    return CompletionRate(percentage=percentage, completed=completed, total=total)


def current_projects(projects: Sequence[ProjectLike]) -> CurrentProjects:
    completed = sum(1 for p in projects if p.finished_at is not None)
    return CurrentProjects(
        in_progress=len(projects) - completed,
        completed=completed,
        total=len(projects),
    )


def activity_by_month(projects: Iterable[ProjectLike], now: datetime) -> list[MonthActivity]:
    """Projects started in the trailing 12 months, bucketed by start month.

    ``finished`` counts projects of the bucket that are finished, whenever
    they were finished. Months without starts are left out.
    """
    since = months_before(as_utc(now), ACTIVITY_WINDOW_MONTHS)
    started: Counter[tuple[int, int]] = Counter()
    finished: Counter[tuple[int, int]] = Counter()

    for project in projects:
        started_at = as_utc(project.started_at)
        if started_at is None or started_at < since:
            continue
        key = (started_at.year, started_at.month)
        started[key] += 1
        if project.finished_at is not None:
            finished[key] += 1

    return [
        MonthActivity(
            id=MonthKey(year=year, month=month),
            started=started[(year, month)],
            finished=finished[(year, month)],
        )
        for year, month in sorted(started)
    ]


def most_used_patterns(
    projects: Iterable[ProjectLike],
    patterns: Iterable[PatternLike],
    limit: int = MOST_USED_LIMIT,
) -> list[PatternUsage]:
    """Patterns ranked by how many projects reference them.

    References to patterns that no longer exist are skipped. Ties keep the
    order in which the pattern was first referenced.
    """
    names = {pattern.id: pattern.name for pattern in patterns}
    counts = Counter(p.pattern_id for p in projects if p.pattern_id is not None)

    usages = [
        PatternUsage(pattern_id=pattern_id, pattern_name=names[pattern_id], project_count=count)
        for pattern_id, count in counts.items()
        if pattern_id in names
    ]
    # sorted() is stable, so ties stay in first-seen order
    usages.sort(key=lambda usage: usage.project_count, reverse=True)
    return usages[:limit]


def average_duration(projects: Iterable[ProjectLike]) -> AverageDuration:
    """Duration statistics in days over projects with both dates set."""
    durations = [
        days_between(p.started_at, p.finished_at)
        for p in projects
        if p.started_at is not None and p.finished_at is not None
    ]
    if not durations:
        return AverageDuration()
    return AverageDuration(
        avg_duration=sum(durations) / len(durations),
        min_duration=min(durations),
        max_duration=max(durations),
        count=len(durations),
    )


def recent_activity(
    projects: Sequence[ProjectLike], patterns: Iterable[PatternLike], now: datetime
) -> RecentActivity:
    since = as_utc(now) - timedelta(days=RECENT_WINDOW_DAYS)

    def in_window(value: datetime | None) -> bool:
        return value is not None and as_utc(value) >= since

    return RecentActivity(
        projects_started=sum(1 for p in projects if in_window(p.started_at)),
        projects_completed=sum(1 for p in projects if in_window(p.finished_at)),
        patterns_created=sum(1 for p in patterns if in_window(p.created_at)),
    )


def build_user_analytics(
    user_id: int,
    projects: Iterable[ProjectLike],
    patterns: Iterable[PatternLike],
    now: datetime,
) -> UserAnalytics:
    """Assemble the full analytics report for ``user_id``.

    The caller is responsible for passing only that user's records.
    """
    projects = list(projects)
    patterns = list(patterns)

    report = UserAnalytics(
        user_id=user_id,
        completion_rate=completion_rate(projects),
        activity_by_month=activity_by_month(projects, now),
        most_used_patterns=most_used_patterns(projects, patterns),
        average_duration=average_duration(projects),
        recent_activity=recent_activity(projects, patterns, now),
        current_projects=current_projects(projects),
    )

    logger.debug(
        "analytics_built",
        user_id=user_id,
        projects=len(projects),
        patterns=len(patterns),
        months=len(report.activity_by_month),
    )
    return report
