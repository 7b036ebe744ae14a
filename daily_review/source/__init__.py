"""Memo sources: interface, Memos HTTP client and record normalization."""

from daily_review.source.base import MemoSource
from daily_review.source.memos_client import MemosClient
from daily_review.source.normalize import extract_tags, get_memo_id, normalize_memo
from daily_review.source.retry import with_retry
from daily_review.source.types import Attachment, Memo, MemoPage

__all__ = [
    "Attachment",
    "Memo",
    "MemoPage",
    "MemoSource",
    "MemosClient",
    "extract_tags",
    "get_memo_id",
    "normalize_memo",
    "with_retry",
]
