"""Shared schema building blocks."""

from datetime import datetime
from typing import Annotated

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, computed_field
from pydantic.alias_generators import to_camel

from ..core.dates import utcnow
from ..core.row_trackers import RowTracker, is_complete


def _not_blank(value: str) -> str:
    if not value.strip():
        raise ValueError("must not be blank")
    return value


NonBlankStr = Annotated[str, AfterValidator(_not_blank)]


class CamelModel(BaseModel):
    """Base schema with camelCase wire names and snake_case attributes."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ImageFile(CamelModel):
    """Image attached to a pattern or project."""

    url: str = Field(description="Public URL of the asset")
    public_id: str = Field(description="Identifier assigned by asset storage")
    uploaded_at: datetime = Field(default_factory=utcnow)
    size: int | None = Field(None, ge=0, description="Size in bytes")


class RowTrackerIn(CamelModel):
    """Submitted row tracker. Counters are free-form and parsed on save."""

    section: str | None = ""
    current_row: int | float | str | None = 0
    total_rows: int | float | str | None = 0


class RowTrackerRead(CamelModel):
    """Stored row tracker."""

    section: str = ""
    current_row: int = 0
    total_rows: int = 0

    @computed_field(alias="complete")
    @property
    def complete(self) -> bool:
        return is_complete(RowTracker(self.section, self.current_row, self.total_rows))


class AssetWarning(CamelModel):
    """Non-fatal asset storage failure reported back to the caller."""

    public_id: str
    message: str
