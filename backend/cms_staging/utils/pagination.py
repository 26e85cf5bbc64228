# cms_staging/utils/pagination.py
from __future__ import annotations

from datetime import datetime
from typing import Any, List, Optional, Tuple, Type, TypedDict, TypeVar

from sqlalchemy.orm import Query
from sqlalchemy.sql import and_, or_
from werkzeug.exceptions import BadRequest

T = TypeVar("T")


def apply_window(
    items: List[T],
    *,
    offset: Optional[int] = None,
    limit: Optional[int] = None,
) -> List[T]:
    """
    Apply offset/limit to an already merged, ordered list.

    Offset is applied before limit. Negative values are rejected.
    """
    if (offset is not None and offset < 0) or (limit is not None and limit < 0):
        raise ValueError("offset and limit must be non-negative")

    start = offset or 0
    if limit is None:
        return items[start:]
    return items[start:start + limit]


class CursorMeta(TypedDict):
    has_more: bool
    next_cursor: Optional[str]


def encode_cursor(created_at: datetime, row_id: Any) -> str:
    """Format: ISO8601|<id>"""
    if not isinstance(created_at, datetime) or row_id is None:
        raise ValueError("created_at and row_id are required to encode cursor")

    return f"{created_at.isoformat()}|{row_id}"


def decode_cursor(cursor: str) -> Tuple[datetime, str]:
    """Raises BadRequest on a malformed cursor."""
    if not cursor or "|" not in cursor:
        raise BadRequest("Invalid cursor format")

    ts_str, row_id = cursor.split("|", 1)
    try:
        return datetime.fromisoformat(ts_str), row_id
    except ValueError as exc:
        raise BadRequest("Invalid cursor format") from exc


def paginate_cursor(
    query: Query,
    *,
    model: Type[Any],
    limit: int,
    cursor: Optional[str] = None,
) -> Tuple[List[Any], CursorMeta]:
    """
    Newest first: ORDER BY created_at DESC, id DESC.

    Fetches limit + 1 rows to detect whether another page exists.
    """
    if limit <= 0:
        raise BadRequest("Limit must be greater than zero")

    if cursor:
        cursor_ts, cursor_id = decode_cursor(cursor)
        query = query.filter(
            or_(
                model.created_at < cursor_ts,
                and_(model.created_at == cursor_ts, model.id < cursor_id),
            )
        )

    rows = (
        query.order_by(model.created_at.desc(), model.id.desc())
        .limit(limit + 1)
        .all()
    )

    has_more = len(rows) > limit
    items = rows[:limit]

    next_cursor = None
    if has_more and items:
        next_cursor = encode_cursor(items[-1].created_at, items[-1].id)

    return items, {"has_more": has_more, "next_cursor": next_cursor}
