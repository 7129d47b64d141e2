"""Context scoring for boundary candidates.

A detector scores a line on its own shape; this pass adds what the
surrounding text says about it. Each candidate is scored independently,
so the result does not depend on input order.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Iterable

from clauseseg.config import SegmentationConfig
from clauseseg.seg_types import NUMBERED_TYPES, Candidate

LINE_START_BONUS = 0.15
BLANK_LINE_BONUS = 0.15
HEADING_TYPE_BONUS = 0.2
NUMBER_SEQUENCE_BONUS = 0.15
BLANK_LINE_WINDOW = 200

_HEADING_TYPES = frozenset({"title_case_heading", "all_caps_heading"})


def _bounded(value: float) -> float:
    return max(0.0, min(1.0, float(value)))


def _at_line_start(candidate: Candidate, text: str) -> bool:
    offset = candidate.char_offset
    return offset == 0 or text[offset - 1 : offset] == "\n"


def _blank_line_around(candidate: Candidate, text: str) -> bool:
    offset = candidate.char_offset
    before = text[max(0, offset - BLANK_LINE_WINDOW) : offset]
    after = text[offset : offset + BLANK_LINE_WINDOW]
    return "\n\n" in before and "\n\n" in after


def _in_number_sequence(candidate: Candidate) -> bool:
    # Any labelled numbered candidate counts; ordering is checked later as
    # the skipped/duplicate number anomalies.
    return candidate.number_label is not None


def context_score(
    candidate: Candidate,
    text: str,
    config: SegmentationConfig,
) -> float:
    score = candidate.score
    if _at_line_start(candidate, text):
        score += LINE_START_BONUS
    if _blank_line_around(candidate, text):
        score += BLANK_LINE_BONUS
    if candidate.type in _HEADING_TYPES:
        score += HEADING_TYPE_BONUS
    if candidate.type in NUMBERED_TYPES and _in_number_sequence(candidate):
        score += NUMBER_SEQUENCE_BONUS
    if config.ocr_used:
        score -= config.ocr_low_conf_penalty
    return _bounded(score)


def apply_context_scoring(
    candidates: Iterable[Candidate],
    text: str,
    config: SegmentationConfig,
) -> list[Candidate]:
    """Return new candidates whose ``score`` includes context adjustments."""
    return [
        dataclasses.replace(c, score=context_score(c, text, config))
        for c in candidates
    ]
