"""Project schemas."""

from datetime import date, datetime
from typing import Annotated, Any, Literal

from pydantic import ConfigDict, Field, computed_field

from ..core.row_trackers import (
    SetCurrentRow,
    SetSection,
    SetTotalRows,
    TrackerUpdate,
    load_trackers,
    progress_summary,
)
from ..models import ProjectState
from .common import AssetWarning, CamelModel, ImageFile, NonBlankStr, RowTrackerIn, RowTrackerRead


class ProjectCreate(CamelModel):
    """Schema for starting a project."""

    name: NonBlankStr
    pattern_id: int | None = Field(None, alias="pattern")
    started_at: date | datetime | None = None
    notes: str | None = None
    tags: list[str] = []
    files: list[ImageFile] = []
    row_trackers: list[RowTrackerIn] = []


class ProjectUpdate(CamelModel):
    """Schema for editing or finishing a project.

    A body carrying ``finishedAt`` (even as null, meaning "now") is a finish
    request; ``images``, ``keepExistingImages`` and ``deleteExistingImages``
    only apply to it.
    """

    name: NonBlankStr | None = None
    pattern_id: int | None = Field(None, alias="pattern")
    notes: str | None = None
    tags: list[str] | None = None
    files: list[ImageFile] | None = None
    row_trackers: list[RowTrackerIn] | None = None

    finished_at: date | datetime | None = None
    images: list[ImageFile] = []
    keep_existing_images: bool = True
    delete_existing_images: bool = False

    version: int | None = Field(None, ge=1, description="Expected stored version")

    @property
    def is_finish(self) -> bool:
        return "finished_at" in self.model_fields_set

    def provided(self, field: str) -> bool:
        return field in self.model_fields_set


class TrackerProgressRead(CamelModel):
    sections: int
    targeted_sections: int
    completed_sections: int
    rows_done: int
    rows_total: int
    percentage: int


class ProjectRead(CamelModel):
    """Schema for reading a project."""

    id: int
    user_id: int = Field(alias="user")
    pattern_id: int | None = Field(None, alias="pattern")
    name: str
    notes: str | None = None
    started_at: datetime | None = None
    finished_at: datetime | None = None
    row_trackers: list[RowTrackerRead] = []
    files: list[ImageFile] = []
    tags: list[str] = []
    version: int = 1

    model_config = ConfigDict(from_attributes=True)

    @computed_field(alias="state")
    @property
    def state(self) -> ProjectState:
        return ProjectState.FINISHED if self.finished_at is not None else ProjectState.IN_PROGRESS

    @computed_field(alias="trackersEditable")
    @property
    def trackers_editable(self) -> bool:
        return self.finished_at is None

    @computed_field(alias="progress")
    @property
    def progress(self) -> TrackerProgressRead:
        summary = progress_summary(load_trackers(t.model_dump() for t in self.row_trackers))
        return TrackerProgressRead(
            sections=summary.sections,
            targeted_sections=summary.targeted_sections,
            completed_sections=summary.completed_sections,
            rows_done=summary.rows_done,
            rows_total=summary.rows_total,
            percentage=summary.percentage,
        )


class ProjectUpdateResult(ProjectRead):
    """Updated project plus non-fatal asset storage failures."""

    warnings: list[AssetWarning] = []


class ProjectFilter(CamelModel):
    """Search predicates, all ANDed. Date bounds are inclusive."""

    q: str | None = None
    started_after: date | datetime | None = None
    started_before: date | datetime | None = None
    finished_after: date | datetime | None = None
    finished_before: date | datetime | None = None


# === Row tracker updates ===


class SetSectionBody(CamelModel):
    op: Literal["setSection"]
    value: str = ""

    def to_update(self) -> TrackerUpdate:
        return SetSection(self.value)


class SetCurrentRowBody(CamelModel):
    op: Literal["setCurrentRow"]
    value: Any = None

    def to_update(self) -> TrackerUpdate:
        return SetCurrentRow.parse(self.value)


class SetTotalRowsBody(CamelModel):
    op: Literal["setTotalRows"]
    value: Any = None

    def to_update(self) -> TrackerUpdate:
        return SetTotalRows.parse(self.value)


TrackerUpdateBody = Annotated[
    SetSectionBody | SetCurrentRowBody | SetTotalRowsBody, Field(discriminator="op")
]
