"""Review gate: decide whether a segmentation needs a human look."""

from __future__ import annotations

from collections.abc import Sequence

from clauseseg.anomalies import is_sparse
from clauseseg.config import SegmentationConfig
from clauseseg.seg_types import Anomaly, Clause

REASON_SPARSE = "sparse_boundaries"
REASON_LOW_CONFIDENCE = "low_confidence_boundaries"
REASON_HIGH_SEVERITY = "high_severity_anomaly"
REASON_LOW_OCR = "low_ocr_confidence"


def review_reasons(
    clauses: Sequence[Clause],
    anomalies: Sequence[Anomaly],
    config: SegmentationConfig,
) -> list[str]:
    """Names of the gate rules that fired, in rule order."""
    reasons: list[str] = []
    if is_sparse(clauses, config):
        reasons.append(REASON_SPARSE)
    if any(a.type == "low_confidence_boundaries" for a in anomalies):
        reasons.append(REASON_LOW_CONFIDENCE)
    if any(a.severity == "high" for a in anomalies):
        reasons.append(REASON_HIGH_SEVERITY)
    if config.ocr_used and config.ocr_confidence < config.ocr_review_confidence:
        reasons.append(REASON_LOW_OCR)
    return reasons


def needs_review(
    clauses: Sequence[Clause],
    anomalies: Sequence[Anomaly],
    config: SegmentationConfig,
) -> bool:
    return bool(review_reasons(clauses, anomalies, config))
