"""Convert raw Memos API records into Memo values."""

import re
from typing import Any

from daily_review.source.types import Attachment, Memo
from daily_review.utils.helpers import parse_timestamp

TAG_PATTERN = re.compile(r"#([^\s#]+)")


def get_memo_id(raw: dict[str, Any]) -> str:
    """Stable identifier: resource name, then id, then uid."""
    for key in ("name", "id", "uid"):
        value = raw.get(key)
        if value:
            return str(value)
    return ""


def extract_tags(content: str) -> tuple[str, ...]:
    """Unique ``#tag`` tokens in first-seen order."""
    return tuple(dict.fromkeys(TAG_PATTERN.findall(content or "")))


def _as_str(value: Any) -> str | None:
    return str(value) if value else None


def _normalize_attachments(raw: Any) -> tuple[Attachment, ...]:
    if not isinstance(raw, list):
        return ()
    return tuple(
        Attachment(
            name=_as_str(att.get("name")),
            filename=_as_str(att.get("filename")),
            type=_as_str(att.get("type")),
            external_link=_as_str(att.get("externalLink")),
        )
        for att in raw
        if isinstance(att, dict)
    )


def normalize_memo(raw: Any) -> Memo | None:
    """
    Build a Memo from a raw record, treating missing fields as empty.

    Returns None for records without any identifier.
    """
    if not isinstance(raw, dict):
        return None
    memo_id = get_memo_id(raw)
    if not memo_id:
        return None

    content = raw.get("content")
    content = content if isinstance(content, str) else ""
    return Memo(
        id=memo_id,
        name=_as_str(raw.get("name")),
        uid=_as_str(raw.get("uid")),
        create_time=parse_timestamp(raw.get("createTime")),
        content=content,
        tags=extract_tags(content),
        attachments=_normalize_attachments(raw.get("attachments")),
    )
