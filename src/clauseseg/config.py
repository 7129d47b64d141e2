"""Per-run segmentation options.

One frozen ``SegmentationConfig`` is built per run and handed to every
stage. Defaults are the tuned production values; callers usually override
only the OCR fields and ``segmentation_version``.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import asdict, dataclass, fields
from typing import Any, Literal

type ClauseEndMode = Literal["next_accepted", "rescan"]

ALL_CLAUSE_END_MODES: tuple[ClauseEndMode, ...] = ("next_accepted", "rescan")

_UNIT_FIELDS = (
    "ocr_confidence",
    "accept_threshold",
    "review_threshold",
    "ocr_low_conf_penalty",
    "max_short_clause_ratio",
    "max_low_conf_ratio",
    "ocr_review_confidence",
)
_COUNT_FIELDS = (
    "overlap_window",
    "min_boundary_gap",
    "min_boundaries_for_large_doc",
    "large_doc_pages",
    "min_unheaded_block_size",
    "min_clause_size",
)


@dataclass(frozen=True, slots=True)
class SegmentationConfig:
    """Immutable options for one segmentation run.

    ``overlap_window`` and ``min_boundary_gap`` of 0 disable the matching
    reconcile pass. ``clause_end_mode`` picks how a clause's end is found:
    ``"next_accepted"`` bounds it by the next accepted boundary,
    ``"rescan"`` by the next heading-shaped line in the text.
    """
    segmentation_version: str = "seg-v1.0"
    ocr_used: bool = False
    ocr_confidence: float = 1.0
    # Reconciler
    overlap_window: int = 30
    min_boundary_gap: int = 80
    accept_threshold: float = 0.75
    # Scoring / review
    review_threshold: float = 0.4
    ocr_low_conf_penalty: float = 0.20
    ocr_review_confidence: float = 0.6
    # Anomalies
    min_boundaries_for_large_doc: int = 3
    large_doc_pages: int = 5
    min_unheaded_block_size: int = 500
    min_clause_size: int = 50
    max_short_clause_ratio: float = 0.3
    max_low_conf_ratio: float = 0.25
    # Clause builder
    clause_end_mode: ClauseEndMode = "next_accepted"

    def __post_init__(self) -> None:
        if not self.segmentation_version.strip():
            raise ValueError("segmentation_version must be non-empty")
        for name in _UNIT_FIELDS:
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must be in [0.0, 1.0], got {value}")
        for name in _COUNT_FIELDS:
            value = getattr(self, name)
            if value < 0:
                raise ValueError(f"{name} must be >= 0, got {value}")
        if self.clause_end_mode not in ALL_CLAUSE_END_MODES:
            raise ValueError(
                f"clause_end_mode must be one of {ALL_CLAUSE_END_MODES}, "
                f"got {self.clause_end_mode!r}"
            )

    @classmethod
    def from_options(
        cls,
        options: Mapping[str, Any] | None = None,
        **overrides: Any,
    ) -> SegmentationConfig:
        """Build a config from a loose options mapping plus keyword overrides.

        ``None`` values are ignored so callers can forward optional CLI or
        job fields as-is. Unknown keys raise ``ValueError``.
        """
        known = {f.name for f in fields(cls)}
        merged: dict[str, Any] = {}
        for source in (options or {}, overrides):
            for key, value in source.items():
                if key not in known:
                    raise ValueError(f"Unknown segmentation option: {key!r}")
                if value is not None:
                    merged[key] = value
        return cls(**merged)

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)
