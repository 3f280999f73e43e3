"""Patterns router."""

from typing import Literal

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from ...clients.assets import AssetStore
from ...core import lifecycle
from ...core.access import Principal, ensure_owner
from ...core.queries import get_pattern, list_patterns, search_patterns
from ...models import Pattern
from ...schemas import PatternCreate, PatternRead, PatternUpdate
from ..database import get_async_session
from ..dependencies import get_asset_store, get_principal

logger = structlog.get_logger()

router = APIRouter(prefix="/patterns", tags=["patterns"])


@router.get("/search", response_model=list[PatternRead])
async def search(
    q: str | None = None,
    sort_by: Literal["name", "createdAt"] | None = Query(None, alias="sortBy"),
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_async_session),
) -> list[Pattern]:
    """Search the caller's patterns by name, text or tag."""
    return await search_patterns(db, principal.user_id, q, sort_by)


@router.post("/", response_model=PatternRead, status_code=status.HTTP_201_CREATED)
async def create_pattern(
    pattern_in: PatternCreate,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_async_session),
) -> Pattern:
    """Create a new pattern."""
    pattern = Pattern(
        user_id=principal.user_id,
        name=pattern_in.name.strip(),
        text=pattern_in.text,
        link=pattern_in.link,
        tags=list(pattern_in.tags),
        notes=pattern_in.notes,
        files=[f.model_dump(mode="json", by_alias=True) for f in pattern_in.files],
    )
    db.add(pattern)
    await db.commit()
    await db.refresh(pattern)

    logger.info("pattern_created", pattern_id=pattern.id, user_id=principal.user_id)
    return pattern


@router.get("/{user_id}", response_model=list[PatternRead])
async def list_user_patterns(
    user_id: int,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_async_session),
) -> list[Pattern]:
    """List a user's patterns."""
    ensure_owner(principal, user_id)
    return await list_patterns(db, user_id)


@router.get("/{user_id}/{pattern_id}", response_model=PatternRead)
async def get_user_pattern(
    user_id: int,
    pattern_id: int,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_async_session),
) -> Pattern:
    """Get pattern by ID."""
    ensure_owner(principal, user_id)
    return await get_pattern(db, user_id, pattern_id)


@router.put("/{user_id}/{pattern_id}", response_model=PatternRead)
async def update_pattern(
    user_id: int,
    pattern_id: int,
    pattern_in: PatternUpdate,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_async_session),
) -> Pattern:
    """Update pattern fields that are present in the body."""
    ensure_owner(principal, user_id)
    pattern = await get_pattern(db, user_id, pattern_id)

    changes = pattern_in.model_dump(exclude_unset=True)
    if pattern_in.files is not None:
        changes["files"] = [f.model_dump(mode="json", by_alias=True) for f in pattern_in.files]
    for field, value in changes.items():
        if value is None and field in ("name", "text", "tags", "files"):
            continue
        setattr(pattern, field, value)

    await db.commit()
    await db.refresh(pattern)

    logger.info("pattern_updated", pattern_id=pattern.id, fields=sorted(changes))
    return pattern


@router.delete("/{user_id}/{pattern_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_pattern(
    user_id: int,
    pattern_id: int,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_async_session),
    assets: AssetStore = Depends(get_asset_store),
) -> Response:
    """Delete a pattern; projects that used it keep running without one."""
    ensure_owner(principal, user_id)
    pattern = await get_pattern(db, user_id, pattern_id)

    await lifecycle.delete_pattern(db, pattern, assets)
    await db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
