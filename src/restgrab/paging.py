from __future__ import annotations

import typing as t

from .conversion import to_int
from .errors import ConversionError

PAGE_KEY = "page"
PAGE_SIZE_KEY = "page_size"


def _first(value: t.Any) -> t.Any:
    if isinstance(value, (list, tuple)):
        return value[0] if value else None
    return value


def parse_page(params: t.Mapping[str, t.Any], default_page_size: int) -> tuple[int, int]:
    """
    Read "page" and "page_size" from a set of parameters and return
    (offset, limit).

    Query parameters may arrive as lists; only the first value is used.
    Pages start at 1; a page below that raises ConversionError.
    """
    limit = default_page_size
    offset = 0

    size = _first(params.get(PAGE_SIZE_KEY))
    if size is not None:
        limit = to_int(size)

    page = _first(params.get(PAGE_KEY))
    if page is not None:
        number = to_int(page)
        if number < 1:
            raise ConversionError(f"page must be 1 or greater, got {number}", key=PAGE_KEY)
        offset = (number - 1) * limit

    return offset, limit
