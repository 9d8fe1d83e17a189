"""Zero-based page envelopes over in-memory result lists."""

from __future__ import annotations

import math
from typing import Any, TypeVar

from prompt_studio.config import get_settings

T = TypeVar("T")


def clamp_page_size(size: int | None) -> int:
    settings = get_settings()
    if not size or size < 1:
        return settings.default_page_size
    return min(size, settings.max_page_size)


def paginate(items: list[T], page: int = 0, size: int | None = None) -> dict[str, Any]:
    """Slice ``items`` into page ``page`` and describe it.

    Returns ``{content, total_elements, total_pages, size, number, first, last}``.
    A page past the end has empty content.
    """
    size = clamp_page_size(size)
    page = max(page, 0)
    total = len(items)
    total_pages = math.ceil(total / size) if total else 0
    start = page * size

    return {
        "content": items[start:start + size],
        "total_elements": total,
        "total_pages": total_pages,
        "size": size,
        "number": page,
        "first": page == 0,
        "last": page >= total_pages - 1,
    }
