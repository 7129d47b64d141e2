"""Tests for clauseseg.review."""
from __future__ import annotations

from clauseseg.config import SegmentationConfig
from clauseseg.review import (
    REASON_HIGH_SEVERITY,
    REASON_LOW_CONFIDENCE,
    REASON_LOW_OCR,
    REASON_SPARSE,
    needs_review,
    review_reasons,
)
from clauseseg.seg_types import Anomaly, Clause


def _clause(end_page: int = 1) -> Clause:
    return Clause(
        ordinal=1,
        number_label=None,
        number_label_normalized=None,
        heading_text=None,
        start_char=0,
        end_char=1000,
        start_page=1,
        end_page=end_page,
        detected_style="unheaded_block",
        confidence_boundary=0.5,
        confidence_heading=0.0,
        text_snippet="",
    )


class TestReviewGate:
    def test_clean(self) -> None:
        assert review_reasons([_clause()], [], SegmentationConfig()) == []
        assert not needs_review([_clause()], [], SegmentationConfig())

    def test_low_severity_only(self) -> None:
        anomalies = [Anomaly("skipped_number", 0, "low", "gap")]
        assert not needs_review([_clause()], anomalies, SegmentationConfig())

    def test_sparse(self) -> None:
        assert review_reasons([_clause(end_page=6)], [], SegmentationConfig()) == [
            REASON_SPARSE,
        ]

    def test_low_confidence_anomaly(self) -> None:
        anomalies = [Anomaly("low_confidence_boundaries", 0, "medium", "weak")]
        assert review_reasons([_clause()], anomalies, SegmentationConfig()) == [
            REASON_LOW_CONFIDENCE,
        ]

    def test_high_severity(self) -> None:
        anomalies = [Anomaly("page_regression", 0, "high", "regress")]
        assert review_reasons([_clause()], anomalies, SegmentationConfig()) == [
            REASON_HIGH_SEVERITY,
        ]

    def test_low_ocr(self) -> None:
        cfg = SegmentationConfig(ocr_used=True, ocr_confidence=0.5)
        assert review_reasons([_clause()], [], cfg) == [REASON_LOW_OCR]

    def test_ocr_confidence_ignored_without_ocr(self) -> None:
        cfg = SegmentationConfig(ocr_used=False, ocr_confidence=0.1)
        assert review_reasons([_clause()], [], cfg) == []

    def test_ocr_threshold_exclusive(self) -> None:
        cfg = SegmentationConfig(ocr_used=True, ocr_confidence=0.6)
        assert review_reasons([_clause()], [], cfg) == []

    def test_rule_order(self) -> None:
        cfg = SegmentationConfig(ocr_used=True, ocr_confidence=0.2)
        anomalies = [
            Anomaly("sparse_boundaries", 0, "high", "sparse"),
            Anomaly("low_confidence_boundaries", 0, "medium", "weak"),
        ]
        assert review_reasons([_clause(end_page=6)], anomalies, cfg) == [
            REASON_SPARSE,
            REASON_LOW_CONFIDENCE,
            REASON_HIGH_SEVERITY,
            REASON_LOW_OCR,
        ]
