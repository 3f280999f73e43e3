"""Pattern schemas."""

from datetime import datetime

from pydantic import ConfigDict, Field

from .common import CamelModel, ImageFile, NonBlankStr


class PatternBase(CamelModel):
    """Base pattern schema."""

    name: str
    text: str
    link: str | None = None
    tags: list[str] = []
    notes: str | None = None
    files: list[ImageFile] = []


class PatternCreate(PatternBase):
    """Schema for creating a pattern."""

    name: NonBlankStr
    text: NonBlankStr


class PatternUpdate(CamelModel):
    """Schema for updating a pattern."""

    name: NonBlankStr | None = None
    text: NonBlankStr | None = None
    link: str | None = None
    tags: list[str] | None = None
    notes: str | None = None
    files: list[ImageFile] | None = None


class PatternRead(PatternBase):
    """Schema for reading a pattern."""

    id: int
    user_id: int = Field(alias="user")
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
