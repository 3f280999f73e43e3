"""API schemas."""

from .analytics import (
    AverageDuration,
    CompletionRate,
    CurrentProjects,
    MonthActivity,
    MonthKey,
    PatternUsage,
    RecentActivity,
    UserAnalytics,
)
from .common import AssetWarning, CamelModel, ImageFile, RowTrackerIn, RowTrackerRead
from .pattern import PatternCreate, PatternRead, PatternUpdate
from .project import (
    ProjectCreate,
    ProjectFilter,
    ProjectRead,
    ProjectUpdate,
    ProjectUpdateResult,
    TrackerProgressRead,
    TrackerUpdateBody,
)

__all__ = [
    "AssetWarning",
    "AverageDuration",
    "CamelModel",
    "CompletionRate",
    "CurrentProjects",
    "ImageFile",
    "MonthActivity",
    "MonthKey",
    "PatternCreate",
    "PatternRead",
    "PatternUpdate",
    "PatternUsage",
    "ProjectCreate",
    "ProjectFilter",
    "ProjectRead",
    "ProjectUpdate",
    "ProjectUpdateResult",
    "RecentActivity",
    "RowTrackerIn",
    "RowTrackerRead",
    "TrackerProgressRead",
    "TrackerUpdateBody",
    "UserAnalytics",
]
