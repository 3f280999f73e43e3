"""Project lifecycle.

A project is in progress while ``finished_at`` is NULL and finished once it is
set. Finishing is one-way; there is no reopen. While in progress everything
may be edited. Once finished, the row counters are frozen and the tracker list
can no longer grow or shrink, while name, notes, tags, pattern and images stay
editable.

Functions here mutate ORM rows and use the session for lookups, but never
commit: the caller owns the unit of work.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from ..clients.assets import AssetStore
from ..errors import Conflict, ProjectFinished, StorageCollaboratorFailure, ValidationFailed
from ..logging_config import get_logger
from ..models import Pattern, Project, ProjectState, User
from ..schemas import AssetWarning, ImageFile, ProjectCreate, ProjectUpdate, RowTrackerIn
from .access import Principal
from .dates import as_utc, to_datetime, utcnow
from .queries import get_pattern
from .row_trackers import (
    DEFAULT_SECTION,
    RowTracker,
    SetSection,
    TrackerUpdate,
    add_tracker,
    dump_trackers,
    load_trackers,
    normalize_for_save,
    remove_tracker,
    update_tracker,
)

logger = get_logger(__name__)


@dataclass
class FinishResult:
    """Outcome of a finish transition."""

    warnings: list[AssetWarning] = field(default_factory=list)
    freed_bytes: int = 0


def state_of(project: Project) -> ProjectState:
    return project.state


def is_editable(project: Project) -> bool:
    """Whether row counters may still change."""
    return project.state is ProjectState.IN_PROGRESS


def _dump_images(images: Iterable[ImageFile]) -> list[dict[str, Any]]:
    return [image.model_dump(mode="json", by_alias=True) for image in images]


def _without(files: list[dict[str, Any]], removed: list[dict[str, Any]]) -> list[dict[str, Any]]:
    gone = {f.get("publicId") for f in removed}
    return [f for f in files if f.get("publicId") not in gone]


def _submitted_trackers(trackers: Iterable[RowTrackerIn]) -> list[dict[str, Any]]:
    return [tracker.model_dump(by_alias=True) for tracker in trackers]


def _counters(trackers: Iterable[RowTracker]) -> list[tuple[int, int]]:
    return [(t.current_row, t.total_rows) for t in trackers]


def _ensure_in_progress(project: Project, action: str) -> None:
    if not is_editable(project):
        logger.warning("finished_project_edit_rejected", project_id=project.id, action=action)
        raise ProjectFinished(f"cannot {action}: project is finished")


def _check_finish_request(project: Project, changes: ProjectUpdate) -> None:
    _ensure_in_progress(project, "finish project")
    if changes.name is None or not changes.name.strip():
        raise ValidationFailed("name", "name is required to finish a project")


# === Assets ===


async def release_assets(
    files: Iterable[dict[str, Any]], assets: AssetStore
) -> tuple[list[AssetWarning], int]:
    """Delete every asset, best effort.

    A failing deletion is logged and reported as a warning; the remaining
    assets are still processed.

    Returns:
        Warnings for the failed deletions and the bytes freed by the rest.
    """
    warnings: list[AssetWarning] = []
    freed = 0

    for doc in files:
        public_id = doc.get("publicId") or doc.get("public_id")
        if not public_id:
            continue
        try:
            result = await assets.destroy(public_id)
        except StorageCollaboratorFailure as e:
            warnings.append(AssetWarning(public_id=public_id, message=e.message))
            continue
        except Exception:
            # Any collaborator failure is non-fatal here
            logger.exception("asset_destroy_failed", public_id=public_id)
            warnings.append(
                AssetWarning(public_id=public_id, message="asset storage request failed")
            )
            continue

        if not isinstance(result, dict) or result.get("result") != "ok":
            logger.warning("asset_destroy_not_ok", public_id=public_id, result=result)
            warnings.append(
                AssetWarning(public_id=public_id, message="asset storage did not confirm deletion")
            )
            continue
        freed += doc.get("size") or 0

    if warnings:
        logger.warning(
            "asset_cleanup_incomplete",
            failed=[w.public_id for w in warnings],
            failed_count=len(warnings),
        )
    return warnings, freed


async def _release_upload_bytes(db: AsyncSession, user_id: int, freed: int) -> None:
    if freed <= 0:
        return
    user = await db.get(User, user_id)
    if user is not None:
        user.upload_bytes = max(0, (user.upload_bytes or 0) - freed)


# === Transitions ===


async def start_project(db: AsyncSession, principal: Principal, data: ProjectCreate) -> Project:
    """Create an in-progress project owned by the caller.

    Submitted trackers are normalized with their progress reset; a project
    always starts with at least one tracker.
    """
    if data.pattern_id is not None:
        await get_pattern(db, principal.user_id, data.pattern_id)

    trackers = normalize_for_save(_submitted_trackers(data.row_trackers), reset_progress=True)
    if not trackers:
        trackers = [RowTracker(section=DEFAULT_SECTION)]

    project = Project(
        user_id=principal.user_id,
        pattern_id=data.pattern_id,
        name=data.name.strip(),
        notes=data.notes,
        started_at=to_datetime(data.started_at) if data.started_at is not None else utcnow(),
        finished_at=None,
        row_trackers=dump_trackers(trackers),
        files=_dump_images(data.files),
        tags=list(data.tags),
        version=1,
    )
    db.add(project)
    await db.flush()

    logger.info(
        "project_started",
        project_id=project.id,
        user_id=principal.user_id,
        pattern_id=project.pattern_id,
        trackers=len(trackers),
    )
    return project


async def edit_project(
    db: AsyncSession,
    principal: Principal,
    project: Project,
    changes: ProjectUpdate,
    include_notes: bool = True,
) -> None:
    """Apply the fields present in ``changes``.

    Trackers are re-normalized on every edit. On a finished project any change
    to a row counter raises ProjectFinished; everything else stays editable.
    """
    if changes.provided("name") and changes.name is not None:
        project.name = changes.name.strip()
    if include_notes and changes.provided("notes"):
        project.notes = changes.notes
    if changes.provided("tags") and changes.tags is not None:
        project.tags = list(changes.tags)
    if changes.provided("pattern_id"):
        if changes.pattern_id is not None:
            await get_pattern(db, principal.user_id, changes.pattern_id)
        project.pattern_id = changes.pattern_id
    if changes.provided("files") and changes.files is not None:
        project.files = _dump_images(changes.files)
    if changes.provided("row_trackers") and changes.row_trackers is not None:
        trackers = normalize_for_save(_submitted_trackers(changes.row_trackers))
        if not is_editable(project) and _counters(trackers) != _counters(
            normalize_for_save(load_trackers(project.row_trackers))
        ):
            _ensure_in_progress(project, "change row counts")
        project.row_trackers = dump_trackers(trackers)


async def finish_project(
    project: Project,
    changes: ProjectUpdate,
    assets: AssetStore,
    previous_files: list[dict[str, Any]] | None = None,
) -> FinishResult:
    """Move an in-progress project to finished.

    The request must carry a non-blank name. Notes are replaced only by
    non-blank text. With ``deleteExistingImages`` the previous images are
    destroyed in storage and replaced by the new ``images``; with
    ``keepExistingImages`` false they are just detached; otherwise the new
    images are appended. Asset failures never block the transition.

    ``previous_files`` are the images stored before this request; they default
    to ``project.files``. Only those are ever destroyed. Files submitted in the
    same request count as current, not previous.
    """
    _check_finish_request(project, changes)
    project.name = changes.name.strip()

    finished_at = (
        to_datetime(changes.finished_at) if changes.finished_at is not None else utcnow()
    )
    started_at = as_utc(project.started_at)
    if started_at is not None and finished_at < started_at:
        logger.warning(
            "project_finished_before_start",
            project_id=project.id,
            started_at=started_at.isoformat(),
            finished_at=finished_at.isoformat(),
        )

    if changes.notes is not None and changes.notes.strip():
        project.notes = changes.notes.strip()

    new_images = _dump_images(changes.images)
    current = list(project.files or [])
    previous = current if previous_files is None else list(previous_files)
    warnings: list[AssetWarning] = []
    freed = 0

    if changes.delete_existing_images:
        warnings, freed = await release_assets(previous, assets)
        project.files = _without(current, previous) + new_images
    elif not changes.keep_existing_images:
        project.files = _without(current, previous) + new_images
    else:
        project.files = current + new_images

    project.finished_at = finished_at

    logger.info(
        "project_finished",
        project_id=project.id,
        finished_at=finished_at.isoformat(),
        images_deleted=len(previous) - len(warnings) if changes.delete_existing_images else 0,
        images_added=len(new_images),
        warnings=len(warnings),
    )
    return FinishResult(warnings=warnings, freed_bytes=freed)


async def update_project(
    db: AsyncSession,
    principal: Principal,
    project: Project,
    changes: ProjectUpdate,
    assets: AssetStore,
) -> list[AssetWarning]:
    """Edit a project, finishing it when the body carries ``finishedAt``.

    Writes are last-write-wins unless the client sends back the ``version``
    it read, in which case a mismatch raises Conflict.
    """
    if changes.version is not None and changes.version != project.version:
        logger.warning(
            "project_version_conflict",
            project_id=project.id,
            expected=changes.version,
            stored=project.version,
        )
        raise Conflict()

    warnings: list[AssetWarning] = []
    if changes.is_finish:
        _check_finish_request(project, changes)
        stored_files = list(project.files or [])
        await edit_project(db, principal, project, changes, include_notes=False)
        result = await finish_project(project, changes, assets, previous_files=stored_files)
        await _release_upload_bytes(db, project.user_id, result.freed_bytes)
        warnings = result.warnings
    else:
        await edit_project(db, principal, project, changes)
        logger.info("project_updated", project_id=project.id, state=project.state.value)

    project.version = (project.version or 0) + 1
    return warnings


async def delete_project(
    db: AsyncSession, project: Project, assets: AssetStore
) -> list[AssetWarning]:
    """Delete a project in any state after releasing its images."""
    warnings, freed = await release_assets(project.files or [], assets)
    await _release_upload_bytes(db, project.user_id, freed)
    await db.delete(project)

    logger.info("project_deleted", project_id=project.id, warnings=len(warnings))
    return warnings


async def delete_pattern(
    db: AsyncSession, pattern: Pattern, assets: AssetStore
) -> list[AssetWarning]:
    """Delete a pattern, its images, and every project reference to it."""
    warnings, freed = await release_assets(pattern.files or [], assets)
    await _release_upload_bytes(db, pattern.user_id, freed)

    result = await db.execute(
        update(Project)
        .where(Project.pattern_id == pattern.id)
        .values(pattern_id=None)
        .execution_options(synchronize_session="fetch")
    )
    await db.delete(pattern)

    logger.info(
        "pattern_deleted",
        pattern_id=pattern.id,
        detached_projects=result.rowcount,
        warnings=len(warnings),
    )
    return warnings


# === Row tracker operations on a stored project ===


def add_project_tracker(project: Project) -> list[RowTracker]:
    _ensure_in_progress(project, "add row tracker")
    trackers = add_tracker(load_trackers(project.row_trackers))
    project.row_trackers = dump_trackers(trackers)
    project.version = (project.version or 0) + 1
    return trackers


def remove_project_tracker(project: Project, index: int) -> list[RowTracker]:
    _ensure_in_progress(project, "remove row tracker")
    trackers = remove_tracker(load_trackers(project.row_trackers), index)
    project.row_trackers = dump_trackers(trackers)
    project.version = (project.version or 0) + 1
    return trackers


def update_project_tracker(
    project: Project, index: int, change: TrackerUpdate
) -> list[RowTracker]:
    """Apply one tracker update. Finished projects only accept section renames."""
    if not isinstance(change, SetSection):
        _ensure_in_progress(project, "change row counts")
    trackers = update_tracker(load_trackers(project.row_trackers), index, change)
    project.row_trackers = dump_trackers(trackers)
    project.version = (project.version or 0) + 1
    return trackers
