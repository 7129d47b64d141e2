"""Turn accepted candidates into contiguous clause spans.

Spans are half-open ``[start_char, end_char)`` over the normalized text.
Layout of the returned list:

  [leading block]   only when the first accepted boundary is past offset 0
  candidate clauses one per accepted candidate, in offset order
  final block       ``[last.end_char, len(text))``, always present, may be empty

With ``clause_end_mode="next_accepted"`` the list tiles the whole text.
With ``"rescan"`` each candidate clause instead ends at the next
heading-shaped line after it, whether or not that line was accepted, so
neighbouring spans can gap or overlap.
"""

from __future__ import annotations

import re
from collections.abc import Sequence

from clauseseg.anchors import PageIndex, char_range_to_page_range
from clauseseg.config import SegmentationConfig
from clauseseg.numbering import normalize_number_label
from clauseseg.seg_types import STYLE_UNHEADED, Candidate, Clause, detected_style_for

SNIPPET_MAX_CHARS = 200
SPACING_WINDOW = 100
BLOCK_CONFIDENCE_BOUNDARY = 0.5
BLOCK_CONFIDENCE_HEADING = 0.0

_HEADING_SHAPED_LINE_RE = re.compile(
    r"^(?:\d+\.|[IVXLCM]+\.|[A-Z][A-Z /&-]{2,100})$", re.MULTILINE,
)

_HEADING_BASE_CONFIDENCE = {
    "numbered_decimal": 0.9,
    "numbered_roman": 0.8,
    "all_caps_heading": 0.8,
    "title_case_heading": 0.7,
}


def _bounded(value: float) -> float:
    return max(0.0, min(1.0, float(value)))


# ---------------------------------------------------------------------------
# Span helpers
# ---------------------------------------------------------------------------

def text_snippet(text: str, start_char: int, end_char: int) -> str:
    """First 200 chars of the span on one line."""
    length = min(SNIPPET_MAX_CHARS, max(0, end_char - start_char))
    return text[start_char : start_char + length].replace("\n", " ").strip()


def span_pages(start_char: int, end_char: int, page_index: PageIndex) -> tuple[int, int]:
    last = end_char - 1 if end_char > start_char else start_char
    return char_range_to_page_range(start_char, last, page_index)


def find_next_heading_line(text: str, offset: int) -> int | None:
    """Offset of the first heading-shaped line starting after *offset*."""
    # search(pos=...) does not treat pos as a line start, so a match is
    # always a real line start.
    m = _HEADING_SHAPED_LINE_RE.search(text, offset + 1)
    return m.start() if m else None


# ---------------------------------------------------------------------------
# Confidence
# ---------------------------------------------------------------------------

def _spacing_adjustment(offset: int, text: str) -> float:
    before = "\n\n" in text[max(0, offset - SPACING_WINDOW) : offset]
    after = "\n\n" in text[offset : offset + SPACING_WINDOW]
    if before and after:
        return 0.1
    if before or after:
        return 0.05
    return 0.0


def boundary_confidence(candidate: Candidate, text: str) -> float:
    caps = 0.0
    if candidate.heading_text is not None:
        caps = 0.1 if candidate.heading_text[:1].isupper() else -0.1
    return _bounded(candidate.score + caps + _spacing_adjustment(candidate.char_offset, text))


def heading_confidence(candidate: Candidate) -> float:
    heading = candidate.heading_text
    if heading is None:
        return 0.0
    confidence = _HEADING_BASE_CONFIDENCE.get(candidate.type, 0.6)
    if len(heading) < 5:
        confidence -= 0.2
    elif len(heading) > 50:
        confidence -= 0.1
    return _bounded(confidence)


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------

def _block_clause(
    ordinal: int,
    start_char: int,
    end_char: int,
    text: str,
    page_index: PageIndex,
) -> Clause:
    start_page, end_page = span_pages(start_char, end_char, page_index)
    return Clause(
        ordinal=ordinal,
        number_label=None,
        number_label_normalized=None,
        heading_text=None,
        start_char=start_char,
        end_char=end_char,
        start_page=start_page,
        end_page=end_page,
        detected_style=STYLE_UNHEADED,
        confidence_boundary=BLOCK_CONFIDENCE_BOUNDARY,
        confidence_heading=BLOCK_CONFIDENCE_HEADING,
        text_snippet=text_snippet(text, start_char, end_char),
    )


def _candidate_clause(
    candidate: Candidate,
    ordinal: int,
    end_char: int,
    text: str,
    page_index: PageIndex,
) -> Clause:
    start_char = candidate.char_offset
    start_page, end_page = span_pages(start_char, end_char, page_index)
    label = candidate.number_label
    return Clause(
        ordinal=ordinal,
        number_label=label,
        number_label_normalized=normalize_number_label(label) if label is not None else None,
        heading_text=candidate.heading_text,
        start_char=start_char,
        end_char=end_char,
        start_page=start_page,
        end_page=end_page,
        detected_style=detected_style_for(candidate.type),
        confidence_boundary=boundary_confidence(candidate, text),
        confidence_heading=heading_confidence(candidate),
        text_snippet=text_snippet(text, start_char, end_char),
    )


def _candidate_end(
    index: int,
    ordered: Sequence[Candidate],
    text: str,
    config: SegmentationConfig,
) -> int:
    if config.clause_end_mode == "rescan":
        next_line = find_next_heading_line(text, ordered[index].char_offset)
        return next_line if next_line is not None else len(text)
    if index + 1 < len(ordered):
        return ordered[index + 1].char_offset
    return len(text)


def build_clauses(
    accepted: Sequence[Candidate],
    text: str,
    page_index: PageIndex,
    config: SegmentationConfig,
) -> list[Clause]:
    """Build the ordered clause list for one document (ordinals 1..N)."""
    ordered = sorted(accepted, key=lambda c: c.char_offset)
    clauses: list[Clause] = []

    if ordered and ordered[0].char_offset > 0:
        clauses.append(_block_clause(1, 0, ordered[0].char_offset, text, page_index))

    for i, candidate in enumerate(ordered):
        end_char = _candidate_end(i, ordered, text, config)
        clauses.append(
            _candidate_clause(candidate, len(clauses) + 1, end_char, text, page_index)
        )

    final_start = clauses[-1].end_char if clauses else 0
    clauses.append(
        _block_clause(len(clauses) + 1, final_start, len(text), text, page_index)
    )
    return clauses
