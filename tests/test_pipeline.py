"""End-to-end tests for clauseseg.pipeline.run_segmentation."""
from __future__ import annotations

from datetime import UTC, datetime

import pytest

from clauseseg.config import SegmentationConfig
from clauseseg.pipeline import run_segmentation
from clauseseg.review import REASON_HIGH_SEVERITY, REASON_LOW_OCR, REASON_SPARSE

FIXED = datetime(2024, 6, 1, 12, 0, 0, tzinfo=UTC)

TWO_SECTIONS = "1. DEFINITIONS\n\nFoo.\n\n2. TERM\n\nBar."
BODY = (
    "The parties agree that this provision applies in full. "
    "The parties agree that this provision applies in full."
)
DUPLICATED = (
    "1. DEFINITIONS\n\n" + BODY
    + "\n\n5. CONFIDENTIALITY OBLIGATIONS\n\n" + BODY
    + "\n\n5. CONFIDENTIALITY OBLIGATIONS (DUPLICATE)\n\n" + BODY
)
CONTRACT = (
    "This agreement is made between the parties named below and is binding.\n\n"
    "1. DEFINITIONS\n\n" + BODY
    + "\n\n2. TERM AND TERMINATION\n\n" + BODY
    + "\n\nCONFIDENTIALITY\n\n" + BODY
    + "\n\nIN WITNESS WHEREOF, the parties have signed this agreement."
)


def _pages(text: str) -> list[dict[str, int]]:
    return [{"page": 1, "char_count": len(text)}]


def _spans(result) -> list[tuple[int, int]]:  # noqa: ANN001
    return [(c.start_char, c.end_char) for c in result.clauses]


# ── Scenarios ────────────────────────────────────────────────────────


class TestScenarios:
    def test_overlapping_headings_collapse(self) -> None:
        result = run_segmentation(TWO_SECTIONS, _pages(TWO_SECTIONS), clock=lambda: FIXED)
        assert _spans(result) == [(0, 35), (35, 35)]
        first = result.clauses[0]
        assert (first.number_label, first.heading_text) == ("1", "DEFINITIONS")
        assert first.confidence_boundary == pytest.approx(1.0)
        assert first.confidence_heading == pytest.approx(0.9)
        assert result.metrics.candidate_count == 2
        assert result.metrics.accepted_count == 1
        assert result.metrics.suppressed_count == 1
        assert result.metrics.mean_conf_boundary == pytest.approx(1.0)
        assert {a.type for a in result.anomalies} == {"excessive_short_clause"}
        assert result.needs_review is False
        assert result.review_reasons == ()
        assert first.anomaly_flags == ("excessive_short_clause",)

    def test_duplicate_and_skipped_numbers(self) -> None:
        result = run_segmentation(DUPLICATED, _pages(DUPLICATED))
        assert result.metrics.accepted_count == 3
        labels = [c.number_label for c in result.clauses]
        assert labels == ["1", "5", "5", None]
        fives = [c.start_char for c in result.clauses if c.number_label == "5"]
        dups = [a for a in result.anomalies if a.type == "duplicate_number"]
        assert [a.at for a in dups] == fives
        skipped = [a for a in result.anomalies if a.type == "skipped_number"]
        assert [a.at for a in skipped] == fives[:1]
        assert result.needs_review is False
        assert "duplicate_number" in result.clauses[1].anomaly_flags

    def test_low_ocr_confidence_needs_review(self) -> None:
        result = run_segmentation(
            TWO_SECTIONS, _pages(TWO_SECTIONS), ocr_used=True, ocr_confidence=0.5,
        )
        assert result.needs_review is True
        assert REASON_LOW_OCR in result.review_reasons
        assert result.metrics.ocr_used is True

    def test_sparse_large_document(self) -> None:
        raw = "the parties agree to keep all information confidential. " * 20
        text = raw.strip()
        result = run_segmentation(raw, [200] * 6)
        assert _spans(result) == [(0, len(text))]
        (clause,) = result.clauses
        assert clause.detected_style == "unheaded_block"
        assert (clause.start_page, clause.end_page) == (1, 6)
        types = [a.type for a in result.anomalies]
        assert "sparse_boundaries" in types
        assert "unheaded_block" in types
        assert clause.anomaly_flags == ("unheaded_block",)
        assert result.needs_review is True
        assert result.review_reasons == (REASON_SPARSE, REASON_HIGH_SEVERITY)

    def test_empty_text(self) -> None:
        result = run_segmentation("", [])
        assert _spans(result) == [(0, 0)]
        assert result.metrics.candidate_count == 0
        assert result.normalized_text_length == 0


# ── Invariants ───────────────────────────────────────────────────────


class TestInvariants:
    @pytest.mark.parametrize("text", [TWO_SECTIONS, DUPLICATED, CONTRACT])
    def test_clauses_tile_normalized_text(self, text: str) -> None:
        result = run_segmentation(text, _pages(text))
        clauses = result.clauses
        assert clauses[0].start_char == 0
        assert clauses[-1].end_char == result.normalized_text_length
        for prev, nxt in zip(clauses, clauses[1:]):
            assert prev.end_char == nxt.start_char
        assert [c.ordinal for c in clauses] == list(range(1, len(clauses) + 1))

    def test_preamble_becomes_leading_block(self) -> None:
        result = run_segmentation(CONTRACT, _pages(CONTRACT))
        lead = result.clauses[0]
        assert lead.detected_style == "unheaded_block"
        assert lead.end_char == CONTRACT.index("1. DEFINITIONS")

    @pytest.mark.parametrize("text", [TWO_SECTIONS, DUPLICATED, CONTRACT])
    def test_counts_and_bounds(self, text: str) -> None:
        result = run_segmentation(text, _pages(text), ocr_used=True)
        m = result.metrics
        assert m.accepted_count + m.suppressed_count <= m.candidate_count
        assert 0.0 <= m.mean_conf_boundary <= 1.0
        for clause in result.clauses:
            assert 0.0 <= clause.confidence_boundary <= 1.0
            assert 0.0 <= clause.confidence_heading <= 1.0
            assert len(clause.text_snippet) <= 200

    def test_deterministic_with_fixed_clock(self) -> None:
        first = run_segmentation(CONTRACT, _pages(CONTRACT), clock=lambda: FIXED)
        second = run_segmentation(CONTRACT, _pages(CONTRACT), clock=lambda: FIXED)
        assert first == second

    def test_crlf_input_normalized(self) -> None:
        crlf = TWO_SECTIONS.replace("\n", "\r\n")
        result = run_segmentation(crlf, _pages(crlf), clock=lambda: FIXED)
        expected = run_segmentation(TWO_SECTIONS, _pages(TWO_SECTIONS), clock=lambda: FIXED)
        assert _spans(result) == _spans(expected)

    def test_events_follow_metrics(self) -> None:
        result = run_segmentation(TWO_SECTIONS, _pages(TWO_SECTIONS), clock=lambda: FIXED)
        assert [e.event for e in result.events[:3]] == [
            "boundary_detected",
            "boundaries_accepted",
            "boundaries_suppressed",
        ]
        anomaly_events = [e for e in result.events if e.event == "anomaly_detected"]
        assert len(anomaly_events) == len(result.anomalies)


# ── Options ──────────────────────────────────────────────────────────


class TestOptions:
    TEXT = "1. DEFINITIONS\n\nFoo bar baz.\n\nNOTICE\n\nMore text here."

    def test_rescan_end_mode(self) -> None:
        result = run_segmentation(self.TEXT, _pages(self.TEXT), clause_end_mode="rescan")
        assert _spans(result) == [(0, 30), (30, len(self.TEXT))]

    def test_next_accepted_end_mode(self) -> None:
        result = run_segmentation(self.TEXT, _pages(self.TEXT))
        n = len(self.TEXT)
        assert _spans(result) == [(0, n), (n, n)]

    def test_config_with_overrides(self) -> None:
        cfg = SegmentationConfig(segmentation_version="seg-v2.0")
        result = run_segmentation(self.TEXT, _pages(self.TEXT), cfg, ocr_used=True)
        assert result.segmentation_version == "seg-v2.0"
        assert result.metrics.ocr_used is True

    def test_unknown_option(self) -> None:
        with pytest.raises(ValueError):
            run_segmentation(self.TEXT, _pages(self.TEXT), overlap=5)
