"""Boundary candidate detectors.

Six independent line-anchored scanners run over the normalized canvas:

  numbered_headings    — "1. DEFINITIONS", "II. TERM", "a) Scope"
  all_caps_headings    — "CONFIDENTIALITY"
  title_case_headings  — "Governing Law"
  bullet_points        — "(a) ", "1) ", "- ", "• "
  exhibit_markers      — "EXHIBIT A", "SCHEDULE 2"
  signature_anchors    — "IN WITNESS WHEREOF", "SIGNATURES", "DATED"

Each scanner assigns a base score with small shape bonuses; the context
scorer adjusts scores afterwards. Detectors never look at each other's
output, so one line can yield several candidates; the reconciler sorts
that out.
"""

from __future__ import annotations

import bisect
import logging
import re
from collections.abc import Callable, Sequence

from clauseseg.numbering import ROMAN_VALUES
from clauseseg.seg_types import ALL_DETECTOR_NAMES, Candidate, CandidateType, DetectorName

log = logging.getLogger(__name__)

type Detector = Callable[[str, list[int]], list[Candidate]]

# Heading bodies may not exceed 121 chars; longer lines are prose, not headings.
_DECIMAL_RE = re.compile(r"^(\d+(?:\.\d+)*)[.)][ \t]+([A-Z][^\n]{0,120})$", re.MULTILINE)
_ROMAN_RE = re.compile(
    r"^([IVXLCM]+(?:\.[IVXLCM]+)*)[.)][ \t]+([A-Z][^\n]{0,120})$", re.MULTILINE,
)
_ALPHA_RE = re.compile(r"^([a-z]+)[.)][ \t]+([A-Z][^\n]{0,120})$", re.MULTILINE)
_ALL_CAPS_RE = re.compile(r"^[A-Z][A-Z /&-]{2,100}$", re.MULTILINE)
_TITLE_CASE_RE = re.compile(r"^[A-Z][a-z]+(?:[ \t]+[A-Z][a-z]+)*$", re.MULTILINE)
_BULLET_RE = re.compile(r"^(?:\([a-z]\)|\d+\)|[-•])[ \t]+", re.MULTILINE)
_EXHIBIT_RE = re.compile(r"^(?:EXHIBIT|SCHEDULE|APPENDIX)[ \t]+[A-Z0-9]+$", re.MULTILINE)
_SIGNATURE_RE = re.compile(r"^(?:IN WITNESS WHEREOF|SIGNATURES?|EXECUTED|DATED)", re.MULTILINE)

_NEWLINE_RE = re.compile(r"\n")
_STRICT_TITLE_CASE_RE = re.compile(r"^[A-Z][a-z]+(?:[ \t]+[A-Z][a-z]+)*$")
_STRICT_EXHIBIT_RE = re.compile(r"^(?:EXHIBIT|SCHEDULE|APPENDIX)[ \t]+[A-Z0-9]+$")

_LEGAL_CAPS_TERMS = ("DEFINITIONS", "TERMS", "CONDITIONS", "AGREEMENT")

_NUMBERED_BASE: dict[CandidateType, float] = {
    "numbered_decimal": 0.8,
    "numbered_roman": 0.7,
    "numbered_alpha": 0.6,
}
_BULLET_BONUS = {"•": 0.1, "(": 0.1, "[": 0.1}


def _bounded(value: float) -> float:
    return max(0.0, min(1.0, float(value)))


def compute_line_starts(text: str) -> list[int]:
    """Offsets of every line start; position 0 is always one."""
    return [0, *(m.end() for m in _NEWLINE_RE.finditer(text))]


def _line_index(line_starts: list[int], offset: int) -> int:
    return bisect.bisect_right(line_starts, offset) - 1


# ---------------------------------------------------------------------------
# Scoring helpers
# ---------------------------------------------------------------------------

def _numbered_score(heading: str, candidate_type: CandidateType) -> float:
    score = _NUMBERED_BASE[candidate_type]
    if heading[:1].isupper():
        score += 0.1
    if len(heading) < 10 or len(heading) > 100:
        score -= 0.1
    return _bounded(score)


def _caps_score(heading: str) -> float:
    score = 0.7
    if len(heading) < 5:
        score -= 0.2
    elif len(heading) > 50:
        score -= 0.1
    else:
        score += 0.1
    if any(term in heading for term in _LEGAL_CAPS_TERMS):
        score += 0.1
    return _bounded(score)


def _title_case_score(heading: str) -> float:
    score = 0.6
    if _STRICT_TITLE_CASE_RE.match(heading):
        score += 0.1
    if len(heading) < 5:
        score -= 0.2
    elif len(heading) > 50:
        score -= 0.1
    return _bounded(score)


def _bullet_score(marker: str) -> float:
    return _bounded(0.5 + _BULLET_BONUS.get(marker[:1], 0.0))


def _exhibit_score(marker: str) -> float:
    return _bounded(0.9 + (0.1 if _STRICT_EXHIBIT_RE.match(marker) else 0.0))


def _signature_score(anchor: str) -> float:
    return _bounded(0.8 + (0.1 if "WITNESS" in anchor else 0.0))


def _valid_roman_label(label: str) -> bool:
    return all(part in ROMAN_VALUES for part in label.split("."))


# ---------------------------------------------------------------------------
# Detectors
# ---------------------------------------------------------------------------

def detect_numbered_headings(text: str, line_starts: list[int]) -> list[Candidate]:
    """Decimal, then roman (I-XX), then alpha numbered headings."""
    patterns: tuple[tuple[re.Pattern[str], CandidateType], ...] = (
        (_DECIMAL_RE, "numbered_decimal"),
        (_ROMAN_RE, "numbered_roman"),
        (_ALPHA_RE, "numbered_alpha"),
    )
    out: list[Candidate] = []
    for pattern, candidate_type in patterns:
        for m in pattern.finditer(text):
            label = m.group(1)
            if candidate_type == "numbered_roman" and not _valid_roman_label(label):
                continue
            heading = m.group(2).rstrip()
            out.append(Candidate(
                char_offset=m.start(),
                line_index=_line_index(line_starts, m.start()),
                type=candidate_type,
                detector="numbered_headings",
                score=_numbered_score(heading, candidate_type),
                number_label=label,
                heading_text=heading,
            ))
    return out


def detect_all_caps_headings(text: str, line_starts: list[int]) -> list[Candidate]:
    out: list[Candidate] = []
    for m in _ALL_CAPS_RE.finditer(text):
        heading = m.group(0).rstrip()
        out.append(Candidate(
            char_offset=m.start(),
            line_index=_line_index(line_starts, m.start()),
            type="all_caps_heading",
            detector="all_caps_headings",
            score=_caps_score(heading),
            heading_text=heading,
        ))
    return out


def detect_title_case_headings(text: str, line_starts: list[int]) -> list[Candidate]:
    out: list[Candidate] = []
    for m in _TITLE_CASE_RE.finditer(text):
        heading = m.group(0)
        out.append(Candidate(
            char_offset=m.start(),
            line_index=_line_index(line_starts, m.start()),
            type="title_case_heading",
            detector="title_case_headings",
            score=_title_case_score(heading),
            heading_text=heading,
        ))
    return out


def detect_bullet_points(text: str, line_starts: list[int]) -> list[Candidate]:
    out: list[Candidate] = []
    for m in _BULLET_RE.finditer(text):
        out.append(Candidate(
            char_offset=m.start(),
            line_index=_line_index(line_starts, m.start()),
            type="bullet_point",
            detector="bullet_points",
            score=_bullet_score(m.group(0)),
        ))
    return out


def detect_exhibit_markers(text: str, line_starts: list[int]) -> list[Candidate]:
    out: list[Candidate] = []
    for m in _EXHIBIT_RE.finditer(text):
        marker = m.group(0)
        out.append(Candidate(
            char_offset=m.start(),
            line_index=_line_index(line_starts, m.start()),
            type="exhibit_marker",
            detector="exhibit_markers",
            score=_exhibit_score(marker),
            heading_text=marker,
        ))
    return out


def detect_signature_anchors(text: str, line_starts: list[int]) -> list[Candidate]:
    out: list[Candidate] = []
    for m in _SIGNATURE_RE.finditer(text):
        anchor = m.group(0)
        out.append(Candidate(
            char_offset=m.start(),
            line_index=_line_index(line_starts, m.start()),
            type="signature_anchor",
            detector="signature_anchors",
            score=_signature_score(anchor),
            heading_text=anchor,
        ))
    return out


DETECTORS: dict[DetectorName, Detector] = {
    "numbered_headings": detect_numbered_headings,
    "all_caps_headings": detect_all_caps_headings,
    "title_case_headings": detect_title_case_headings,
    "bullet_points": detect_bullet_points,
    "exhibit_markers": detect_exhibit_markers,
    "signature_anchors": detect_signature_anchors,
}


def detect_candidates(
    text: str,
    detectors: Sequence[DetectorName] = ALL_DETECTOR_NAMES,
) -> list[Candidate]:
    """Run the selected detectors and merge their output by offset.

    The sort is stable, so candidates at the same offset keep detector
    order (numbered before all-caps before title-case, and so on).
    """
    unknown = [name for name in detectors if name not in DETECTORS]
    if unknown:
        raise ValueError(f"Unknown detectors: {unknown}")

    line_starts = compute_line_starts(text)
    candidates: list[Candidate] = []
    for name in detectors:
        found = DETECTORS[name](text, line_starts)
        log.debug("detector %s: %d candidates", name, len(found))
        candidates.extend(found)
    return sorted(candidates, key=lambda c: c.char_offset)
