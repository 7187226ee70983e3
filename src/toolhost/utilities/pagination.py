"""Cursor pagination for the list methods."""

from __future__ import annotations

import base64
import binascii
import logging
from typing import Sequence, TypeVar

from toolhost.lib import oj
from toolhost.utilities.types import PaginatedResult

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_PAGE_SIZE = 50


class PaginationError(Exception):
    """Error related to pagination operations."""

    pass


class InvalidCursorError(PaginationError):
    """The provided cursor is invalid or expired."""

    pass


def encode_cursor(offset: int) -> str:
    """Build an opaque cursor pointing at `offset`."""
    raw = oj.dumps_bytes({"offset": offset})
    return base64.urlsafe_b64encode(raw).decode("ascii")


def decode_cursor(cursor: str) -> int:
    """
    Recover the offset from a cursor.

    Raises:
        InvalidCursorError: If the cursor was not issued by encode_cursor.
    """
    try:
        data = oj.loads(base64.urlsafe_b64decode(cursor.encode("ascii")))
    except (binascii.Error, UnicodeEncodeError, ValueError, oj.JSONDecodeError, AttributeError):
        raise InvalidCursorError(f"Invalid cursor: {cursor!r}")

    offset = data.get("offset") if isinstance(data, dict) else None
    if not isinstance(offset, int) or isinstance(offset, bool) or offset < 0:
        raise InvalidCursorError(f"Invalid cursor: {cursor!r}")
    return offset


def paginate(
    items: Sequence[T],
    cursor: str | None = None,
    page_size: int = DEFAULT_PAGE_SIZE,
) -> PaginatedResult[T]:
    """
    Slice one page out of a snapshot.

    The cursor is an offset into the sequence, so entries registered
    between two page requests may shift later pages.

    Raises:
        InvalidCursorError: On a malformed cursor.
    """
    if page_size < 1:
        raise ValueError("page_size must be at least 1")

    offset = 0 if cursor is None else decode_cursor(cursor)
    page = list(items[offset:offset + page_size])
    end = offset + len(page)
    next_cursor = encode_cursor(end) if end < len(items) else None

    logger.debug(f"Page at offset {offset}: {len(page)} items, has_more={next_cursor is not None}")
    return PaginatedResult(items=page, next_cursor=next_cursor)
