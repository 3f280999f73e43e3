"""Analytics router."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from ...core.access import Principal, ensure_owner
from ...core.analytics import build_user_analytics
from ...core.dates import utcnow
from ...core.queries import list_patterns, list_projects
from ...schemas import UserAnalytics
from ..database import get_async_session
from ..dependencies import get_principal

logger = structlog.get_logger()

router = APIRouter(prefix="/analytics", tags=["analytics"])


@router.get("/{user_id}", response_model=UserAnalytics)
async def get_user_analytics(
    user_id: int,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_async_session),
) -> UserAnalytics:
    """Completion, activity and duration statistics for the caller."""
    ensure_owner(principal, user_id)

    projects = await list_projects(db, user_id)
    patterns = await list_patterns(db, user_id)
    report = build_user_analytics(user_id, projects, patterns, now=utcnow())

    logger.info(
        "analytics_served",
        user_id=user_id,
        total_projects=report.completion_rate.total,
        completed=report.completion_rate.completed,
    )
    return report
