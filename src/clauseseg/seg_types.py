"""Core types for the clause segmentation engine.

Every stage of the pipeline shares these types. All character offsets are
global positions in the *normalized* canvas text (see ``canvas.py``), and
every span is half-open: ``[start_char, end_char)``.

Type hierarchy:
  Candidate          — Unconfirmed, scored boundary proposal from one detector
  Clause             — Finalized contiguous segment of the document
  Anomaly            — Structural inconsistency found in the clause list
  Metrics            — Per-run counts and mean accepted-candidate score
  Event              — Audit-trail entry for one run
  SegmentationResult — The single immutable return value of a run

Tag sets (candidate types, detected styles, anomaly kinds, severities,
events) are closed ``Literal`` aliases. Each has an ``ALL_*`` tuple so
runtime checks and exhaustive iteration use the same source of truth.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Literal


# ---------------------------------------------------------------------------
# Closed tag sets
# ---------------------------------------------------------------------------

type CandidateType = Literal[
    "numbered_decimal",
    "numbered_roman",
    "numbered_alpha",
    "bullet_point",
    "all_caps_heading",
    "title_case_heading",
    "exhibit_marker",
    "signature_anchor",
]
type DetectedStyle = Literal[
    "numbered_decimal",
    "numbered_roman",
    "numbered_alpha",
    "bullet_point",
    "all_caps_heading",
    "title_case_heading",
    "exhibit_marker",
    "signature_anchor",
    "unheaded_block",
]
type DetectorName = Literal[
    "numbered_headings",
    "all_caps_headings",
    "title_case_headings",
    "bullet_points",
    "exhibit_markers",
    "signature_anchors",
]
type AnomalyType = Literal[
    "duplicate_number",
    "skipped_number",
    "unheaded_block",
    "excessive_short_clause",
    "page_regression",
    "mixed_roman_decimal",
    "all_lowercase_heading",
    "sparse_boundaries",
    "low_confidence_boundaries",
]
type Severity = Literal["low", "medium", "high"]
type EventType = Literal[
    "boundary_detected",
    "boundaries_accepted",
    "boundaries_suppressed",
    "anomaly_detected",
]
type EventDetailValue = str | int | float | bool

ALL_CANDIDATE_TYPES: tuple[CandidateType, ...] = (
    "numbered_decimal",
    "numbered_roman",
    "numbered_alpha",
    "bullet_point",
    "all_caps_heading",
    "title_case_heading",
    "exhibit_marker",
    "signature_anchor",
)
NUMBERED_TYPES: frozenset[CandidateType] = frozenset({
    "numbered_decimal",
    "numbered_roman",
    "numbered_alpha",
})
STYLE_UNHEADED: DetectedStyle = "unheaded_block"
ALL_DETECTED_STYLES: tuple[DetectedStyle, ...] = (*ALL_CANDIDATE_TYPES, STYLE_UNHEADED)

ALL_DETECTOR_NAMES: tuple[DetectorName, ...] = (
    "numbered_headings",
    "all_caps_headings",
    "title_case_headings",
    "bullet_points",
    "exhibit_markers",
    "signature_anchors",
)

ALL_ANOMALY_TYPES: tuple[AnomalyType, ...] = (
    "duplicate_number",
    "skipped_number",
    "unheaded_block",
    "excessive_short_clause",
    "page_regression",
    "mixed_roman_decimal",
    "all_lowercase_heading",
    "sparse_boundaries",
    "low_confidence_boundaries",
)
# Anomalies that describe the whole document rather than one clause.
DOCUMENT_SCOPED_ANOMALIES: frozenset[AnomalyType] = frozenset({
    "mixed_roman_decimal",
    "sparse_boundaries",
})

ALL_SEVERITIES: tuple[Severity, ...] = ("low", "medium", "high")
ALL_EVENT_TYPES: tuple[EventType, ...] = (
    "boundary_detected",
    "boundaries_accepted",
    "boundaries_suppressed",
    "anomaly_detected",
)


def valid_detected_style(style: str) -> bool:
    """True if *style* is one of the supported detected styles."""
    return style in ALL_DETECTED_STYLES


def valid_anomaly_type(anomaly_type: str) -> bool:
    """True if *anomaly_type* is one of the nine anomaly kinds."""
    return anomaly_type in ALL_ANOMALY_TYPES


def detected_style_for(candidate_type: str) -> DetectedStyle:
    """Map a candidate type onto the clause style it produces.

    Candidate types mirror detected styles one-to-one; anything unknown
    degrades to ``unheaded_block``.
    """
    for style in ALL_CANDIDATE_TYPES:
        if style == candidate_type:
            return style
    return STYLE_UNHEADED


def _check_unit_interval(name: str, value: float) -> None:
    if not 0.0 <= value <= 1.0:
        raise ValueError(f"{name} must be in [0.0, 1.0], got {value}")


# ---------------------------------------------------------------------------
# Candidate — unconfirmed boundary
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class Candidate:
    """A boundary proposal produced by a single detector.

    Only the context scorer changes ``score`` (by building a new instance);
    the reconciler filters candidates but never edits them.
    """
    char_offset: int             # Line-start offset in normalized text
    line_index: int              # 0-based line number of char_offset
    type: CandidateType
    detector: DetectorName
    score: float                 # 0.0-1.0
    number_label: str | None = None   # Raw matched label: "1", "II", "a"
    heading_text: str | None = None

    def __post_init__(self) -> None:
        if self.char_offset < 0:
            raise ValueError(
                f"Candidate.char_offset must be >= 0, got {self.char_offset}"
            )
        if self.line_index < 0:
            raise ValueError(
                f"Candidate.line_index must be >= 0, got {self.line_index}"
            )
        _check_unit_interval("Candidate.score", self.score)


# ---------------------------------------------------------------------------
# Clause — finalized segment
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class Clause:
    """A finalized clause span.

    Invariants (enforced in __post_init__):
        - ordinal >= 1
        - 0 <= start_char <= end_char   (end_char exclusive)
        - start_page, end_page >= 1
        - confidences in [0.0, 1.0]
        - len(text_snippet) <= 200

    ``start_page > end_page`` is representable on purpose: it is reported
    as a ``page_regression`` anomaly rather than rejected.
    """
    ordinal: int
    number_label: str | None
    number_label_normalized: str | None
    heading_text: str | None
    start_char: int
    end_char: int
    start_page: int
    end_page: int
    detected_style: DetectedStyle
    confidence_boundary: float
    confidence_heading: float
    text_snippet: str
    anomaly_flags: tuple[AnomalyType, ...] = ()

    def __post_init__(self) -> None:
        if self.ordinal < 1:
            raise ValueError(f"Clause.ordinal must be >= 1, got {self.ordinal}")
        if self.start_char < 0:
            raise ValueError(
                f"Clause.start_char must be >= 0, got {self.start_char}"
            )
        if self.end_char < self.start_char:
            raise ValueError(
                f"Clause.end_char ({self.end_char}) must be >= "
                f"start_char ({self.start_char})"
            )
        if self.start_page < 1 or self.end_page < 1:
            raise ValueError(
                f"Clause pages must be >= 1, got "
                f"{self.start_page}..{self.end_page}"
            )
        _check_unit_interval("Clause.confidence_boundary", self.confidence_boundary)
        _check_unit_interval("Clause.confidence_heading", self.confidence_heading)
        if len(self.text_snippet) > 200:
            raise ValueError(
                f"Clause.text_snippet must be <= 200 chars, got {len(self.text_snippet)}"
            )

    @property
    def length(self) -> int:
        """Number of characters covered by the clause."""
        return self.end_char - self.start_char


# ---------------------------------------------------------------------------
# Anomaly / Metrics / Event
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class Anomaly:
    """A structural inconsistency in the finalized clause list."""
    type: AnomalyType
    at: int              # Clause start_char, or 0 for document-scoped anomalies
    severity: Severity
    description: str

    def __post_init__(self) -> None:
        if self.type not in ALL_ANOMALY_TYPES:
            raise ValueError(f"Unknown anomaly type: {self.type!r}")
        if self.severity not in ALL_SEVERITIES:
            raise ValueError(f"Unknown anomaly severity: {self.severity!r}")
        if self.at < 0:
            raise ValueError(f"Anomaly.at must be >= 0, got {self.at}")


@dataclass(frozen=True, slots=True)
class Metrics:
    candidate_count: int
    accepted_count: int
    suppressed_count: int
    mean_conf_boundary: float
    ocr_used: bool

    def __post_init__(self) -> None:
        for name in ("candidate_count", "accepted_count", "suppressed_count"):
            value = getattr(self, name)
            if value < 0:
                raise ValueError(f"Metrics.{name} must be >= 0, got {value}")
        _check_unit_interval("Metrics.mean_conf_boundary", self.mean_conf_boundary)


@dataclass(frozen=True, slots=True)
class Event:
    """Append-only audit entry.

    ``detail`` is a small flat key/value map, copied into a read-only view
    on construction.
    """
    event: EventType
    timestamp: datetime
    detail: Mapping[str, EventDetailValue] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.event not in ALL_EVENT_TYPES:
            raise ValueError(f"Unknown event type: {self.event!r}")
        object.__setattr__(self, "detail", MappingProxyType(dict(self.detail)))


# ---------------------------------------------------------------------------
# SegmentationResult — aggregate return value
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class SegmentationResult:
    """Everything one segmentation run produces.

    Callers persist clauses/anomalies/metrics and branch on ``needs_review``.
    ``review_reasons`` names the review-gate rules that fired, in rule order.
    """
    clauses: tuple[Clause, ...]
    metrics: Metrics
    anomalies: tuple[Anomaly, ...]
    events: tuple[Event, ...]
    needs_review: bool
    review_reasons: tuple[str, ...] = ()
    segmentation_version: str = "seg-v1.0"
    normalized_text_length: int = 0
