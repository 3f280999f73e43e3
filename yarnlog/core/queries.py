"""Scoped read access to a user's patterns and projects.

Every query is filtered by the owning user id; a record owned by somebody
else is reported as missing rather than leaked.
"""

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..errors import NotFound, ValidationFailed
from ..models import Pattern, Project
from ..schemas import ProjectFilter
from .dates import to_datetime


def _contains(term: str) -> str:
    """LIKE pattern matching ``term`` literally anywhere in the value."""
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def _tag_matches(db: AsyncSession, tags, term: str):
    """EXISTS over the elements of a JSON tag array, each matched on its own.

    SQLite expands the array with ``json_each``; PostgreSQL with
    ``json_array_elements_text``. Both name the element column ``value``.
    """
    if db.bind.dialect.name == "postgresql":
        elements = func.json_array_elements_text(tags).table_valued("value")
    else:
        elements = func.json_each(tags).table_valued("value")
    return (
        select(1)
        .select_from(elements)
        .where(elements.c.value.ilike(term, escape="\\"))
        .exists()
    )


async def list_patterns(db: AsyncSession, user_id: int) -> list[Pattern]:
    query = select(Pattern).where(Pattern.user_id == user_id).order_by(Pattern.id)
    result = await db.execute(query)
    return list(result.scalars().all())


async def list_projects(db: AsyncSession, user_id: int) -> list[Project]:
    query = select(Project).where(Project.user_id == user_id).order_by(Project.id)
    result = await db.execute(query)
    return list(result.scalars().all())


async def get_pattern(db: AsyncSession, user_id: int, pattern_id: int) -> Pattern:
    pattern = await db.get(Pattern, pattern_id)
    if pattern is None or pattern.user_id != user_id:
        raise NotFound("pattern not found")
    return pattern


async def get_project(db: AsyncSession, user_id: int, project_id: int) -> Project:
    project = await db.get(Project, project_id)
    if project is None or project.user_id != user_id:
        raise NotFound("project not found")
    return project


async def search_patterns(
    db: AsyncSession, user_id: int, q: str | None, sort_by: str | None = None
) -> list[Pattern]:
    """Case-insensitive substring search over name, text and tags.

    Newest first, or alphabetical with ``sort_by="name"``.
    """
    if not q or not q.strip():
        raise ValidationFailed("q", "Query parameter q is required")

    term = _contains(q)
    query = select(Pattern).where(
        Pattern.user_id == user_id,
        or_(
            Pattern.name.ilike(term, escape="\\"),
            Pattern.text.ilike(term, escape="\\"),
            _tag_matches(db, Pattern.tags, term),
        ),
    )
    if sort_by == "name":
        query = query.order_by(Pattern.name.asc())
    else:
        query = query.order_by(Pattern.created_at.desc(), Pattern.id.desc())

    result = await db.execute(query)
    return list(result.scalars().all())


async def search_projects(db: AsyncSession, user_id: int, filters: ProjectFilter) -> list[Project]:
    """Filter a user's projects, most recently started first.

    ``q`` matches name, notes or tags case-insensitively. Date bounds are
    inclusive; a date-only upper bound covers that whole day.
    """
    conditions = [Project.user_id == user_id]

    if filters.q:
        term = _contains(filters.q)
        conditions.append(
            or_(
                Project.name.ilike(term, escape="\\"),
                Project.notes.ilike(term, escape="\\"),
                _tag_matches(db, Project.tags, term),
            )
        )
    if filters.started_after is not None:
        conditions.append(Project.started_at >= to_datetime(filters.started_after))
    if filters.started_before is not None:
        conditions.append(
            Project.started_at <= to_datetime(filters.started_before, end_of_day=True)
        )
    if filters.finished_after is not None:
        conditions.append(Project.finished_at >= to_datetime(filters.finished_after))
    if filters.finished_before is not None:
        conditions.append(
            Project.finished_at <= to_datetime(filters.finished_before, end_of_day=True)
        )

    query = (
        select(Project)
        .where(*conditions)
        .order_by(Project.started_at.desc(), Project.id.desc())
    )
    result = await db.execute(query)
    return list(result.scalars().all())
