"""Character offset <-> page number mapping.

Pages arrive from the extraction stage as an ordered list of per-page
character counts (``{"page": 1, "char_count": 1834}`` or bare ints); the
counts are trusted and never recomputed from the text.

Page spans are inclusive on both ends (``end_char = start + count - 1``),
so a page with ``char_count == 0`` owns no offsets at all.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

type PageEntry = Mapping[str, Any] | int
type PageIndex = dict[int, PageSpan]


@dataclass(frozen=True, slots=True)
class PageSpan:
    page_num: int        # 1-based
    start_char: int
    end_char: int        # Inclusive
    char_count: int


def _char_count(page: PageEntry) -> int:
    if isinstance(page, int):
        return max(0, page)
    return max(0, int(page.get("char_count", 0) or 0))


def build_page_index(pages: Sequence[PageEntry]) -> PageIndex:
    """Cumulative page spans keyed by 1-based page number."""
    index: PageIndex = {}
    cumulative = 0
    for page_num, page in enumerate(pages, start=1):
        count = _char_count(page)
        index[page_num] = PageSpan(
            page_num=page_num,
            start_char=cumulative,
            end_char=cumulative + count - 1,
            char_count=count,
        )
        cumulative += count
    return index


def find_page_by_offset(char_offset: int, page_index: PageIndex) -> int:
    """Page whose span contains *char_offset*.

    Offsets outside every page (undercounted page lists, empty index)
    resolve to page 1 instead of raising.
    """
    for page_num in sorted(page_index):
        span = page_index[page_num]
        if span.start_char <= char_offset <= span.end_char:
            return page_num
    return 1


def char_range_to_page_range(
    start_char: int,
    end_char: int,
    page_index: PageIndex,
) -> tuple[int, int]:
    return (
        find_page_by_offset(start_char, page_index),
        find_page_by_offset(end_char, page_index),
    )


def get_page_boundaries(page_num: int, page_index: PageIndex) -> tuple[int, int]:
    """Inclusive ``(start_char, end_char)`` of a page; ``(0, 0)`` if unknown."""
    span = page_index.get(page_num)
    if span is None:
        return (0, 0)
    return (span.start_char, span.end_char)


# ---------------------------------------------------------------------------
# List-walking helpers (no index needed)
# ---------------------------------------------------------------------------

def char_offset_to_page(char_offset: int, pages: Sequence[PageEntry]) -> int:
    """Walk the page list; offsets past the end map to the last page."""
    if char_offset < 0:
        raise ValueError(f"char_offset must be >= 0, got {char_offset}")
    cumulative = 0
    for page_num, page in enumerate(pages, start=1):
        cumulative += _char_count(page)
        if char_offset < cumulative:
            return page_num
    return max(1, len(pages))


def page_to_char_offset(page_num: int, pages: Sequence[PageEntry]) -> int:
    """Starting offset of *page_num*, or 0 if the page does not exist."""
    if page_num < 1:
        raise ValueError(f"page_num must be >= 1, got {page_num}")
    if page_num > len(pages):
        return 0
    return sum(_char_count(page) for page in pages[: page_num - 1])


def total_char_count(pages: Sequence[PageEntry]) -> int:
    return sum(_char_count(page) for page in pages)


def total_page_count(pages: Sequence[PageEntry]) -> int:
    return len(pages)


def valid_char_offset(char_offset: int, pages: Sequence[PageEntry]) -> bool:
    return 0 <= char_offset < total_char_count(pages)
