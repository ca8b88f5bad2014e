from __future__ import annotations

from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel


class FileRecordOut(BaseModel):
    id: int
    filename: str
    key: str
    view_url: str
    download_url: str
    cover_image_url: str | None = None
    uploaded_at: datetime

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        alias_generator=to_camel,
    )

    @field_validator("uploaded_at")
    @classmethod
    def assume_utc(cls, value: datetime) -> datetime:
        # SQLite drops the offset on read; rows are always written in UTC.
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


class UploadOutcome(BaseModel):
    """Result of a single file inside an upload batch."""

    filename: str
    status: Literal["ok", "error"]
    file: FileRecordOut | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == "ok"
