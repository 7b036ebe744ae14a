"""Memo types (Pydantic models with camelCase JSON aliases)."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from daily_review.utils.helpers import to_time_ms


class Attachment(BaseModel):
    """Reference to a file attached to a memo."""

    name: str | None = None
    filename: str | None = None
    type: str | None = None
    external_link: str | None = Field(None, alias="externalLink")

    model_config = ConfigDict(frozen=True, populate_by_name=True)


class Memo(BaseModel):
    """A normalized memo. Replaced wholesale on edit, never mutated."""

    id: str = Field(min_length=1)
    name: str | None = None
    uid: str | None = None
    create_time: datetime | None = Field(None, alias="createTime")
    content: str = ""
    tags: tuple[str, ...] = ()
    attachments: tuple[Attachment, ...] = ()

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    @property
    def created_ms(self) -> int:
        """Creation time in epoch ms; missing times sort first."""
        return to_time_ms(self.create_time, 0)

    @property
    def is_eligible(self) -> bool:
        """Worth showing: has text or at least one attachment."""
        return bool(self.content.strip()) or len(self.attachments) > 0

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


@dataclass
class MemoPage:
    """One page of raw memo records from the source."""

    memos: list[dict[str, Any]] = field(default_factory=list)
    next_page_token: str = ""
