"""Projects router."""

from datetime import date, datetime

from fastapi import APIRouter, Body, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from ...clients.assets import AssetStore
from ...core import lifecycle
from ...core.access import Principal, ensure_owner
from ...core.queries import get_project, list_projects, search_projects
from ...models import Project
from ...schemas import (
    ProjectCreate,
    ProjectFilter,
    ProjectRead,
    ProjectUpdate,
    ProjectUpdateResult,
    TrackerUpdateBody,
)
from ..database import get_async_session
from ..dependencies import get_asset_store, get_principal

logger = structlog.get_logger()

router = APIRouter(prefix="/projects", tags=["projects"])


@router.get("/search", response_model=list[ProjectRead])
async def search(
    q: str | None = None,
    started_after: date | datetime | None = Query(None, alias="startedAfter"),
    started_before: date | datetime | None = Query(None, alias="startedBefore"),
    finished_after: date | datetime | None = Query(None, alias="finishedAfter"),
    finished_before: date | datetime | None = Query(None, alias="finishedBefore"),
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_async_session),
) -> list[Project]:
    """Search the caller's projects by text and date ranges."""
    filters = ProjectFilter(
        q=q,
        started_after=started_after,
        started_before=started_before,
        finished_after=finished_after,
        finished_before=finished_before,
    )
    return await search_projects(db, principal.user_id, filters)


@router.post("/", response_model=ProjectRead, status_code=status.HTTP_201_CREATED)
async def create_project(
    project_in: ProjectCreate,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_async_session),
) -> Project:
    """Start a new project."""
    project = await lifecycle.start_project(db, principal, project_in)
    await db.commit()
    await db.refresh(project)
    return project


@router.get("/{user_id}", response_model=list[ProjectRead])
async def list_user_projects(
    user_id: int,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_async_session),
) -> list[Project]:
    """List a user's projects."""
    ensure_owner(principal, user_id)
    return await list_projects(db, user_id)


@router.get("/{user_id}/{project_id}", response_model=ProjectRead)
async def get_user_project(
    user_id: int,
    project_id: int,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_async_session),
) -> Project:
    """Get project by ID."""
    ensure_owner(principal, user_id)
    return await get_project(db, user_id, project_id)


@router.put("/{user_id}/{project_id}", response_model=ProjectUpdateResult)
async def update_project(
    user_id: int,
    project_id: int,
    project_in: ProjectUpdate,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_async_session),
    assets: AssetStore = Depends(get_asset_store),
) -> ProjectUpdateResult:
    """Edit a project, or finish it when the body carries ``finishedAt``."""
    ensure_owner(principal, user_id)
    project = await get_project(db, user_id, project_id)

    warnings = await lifecycle.update_project(db, principal, project, project_in, assets)
    await db.commit()
    await db.refresh(project)

    result = ProjectUpdateResult.model_validate(project)
    result.warnings = warnings
    return result


@router.delete("/{user_id}/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_project(
    user_id: int,
    project_id: int,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_async_session),
    assets: AssetStore = Depends(get_asset_store),
) -> Response:
    """Delete a project and, best effort, its images."""
    ensure_owner(principal, user_id)
    project = await get_project(db, user_id, project_id)

    await lifecycle.delete_project(db, project, assets)
    await db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# === Row trackers ===


@router.post("/{user_id}/{project_id}/trackers", response_model=ProjectRead)
async def add_tracker(
    user_id: int,
    project_id: int,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_async_session),
) -> Project:
    """Append an empty row tracker section."""
    ensure_owner(principal, user_id)
    project = await get_project(db, user_id, project_id)

    lifecycle.add_project_tracker(project)
    await db.commit()
    await db.refresh(project)
    return project


@router.patch("/{user_id}/{project_id}/trackers/{index}", response_model=ProjectRead)
async def update_tracker(
    user_id: int,
    project_id: int,
    index: int,
    change: TrackerUpdateBody = Body(...),
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_async_session),
) -> Project:
    """Rename a section or set its current or total row count."""
    ensure_owner(principal, user_id)
    project = await get_project(db, user_id, project_id)

    lifecycle.update_project_tracker(project, index, change.to_update())
    await db.commit()
    await db.refresh(project)

    logger.info("row_tracker_updated", project_id=project_id, index=index, op=change.op)
    return project


@router.delete("/{user_id}/{project_id}/trackers/{index}", response_model=ProjectRead)
async def remove_tracker(
    user_id: int,
    project_id: int,
    index: int,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_async_session),
) -> Project:
    """Remove a row tracker section."""
    ensure_owner(principal, user_id)
    project = await get_project(db, user_id, project_id)

    lifecycle.remove_project_tracker(project, index)
    await db.commit()
    await db.refresh(project)
    return project
