"""Segmentation pipeline entry point.

    result = run_segmentation(text, pages, ocr_used=True, ocr_confidence=0.82)

Stages: normalize -> detect -> score -> reconcile -> build clauses ->
anomalies -> metrics/events -> review gate. The run is pure: no I/O, no
shared state, and with a fixed ``clock`` the result is fully deterministic.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from clauseseg.anchors import PageEntry, build_page_index
from clauseseg.anomalies import attach_anomaly_flags, detect_anomalies
from clauseseg.canvas import normalize_canvas
from clauseseg.clause_builder import build_clauses
from clauseseg.config import SegmentationConfig
from clauseseg.detectors import detect_candidates
from clauseseg.metrics import Clock, compute_metrics, generate_events
from clauseseg.reconcile import reconcile_candidates
from clauseseg.review import review_reasons
from clauseseg.scoring import apply_context_scoring
from clauseseg.seg_types import SegmentationResult

log = logging.getLogger(__name__)


def run_segmentation(
    text: str,
    pages: Sequence[PageEntry],
    config: SegmentationConfig | None = None,
    *,
    clock: Clock | None = None,
    **overrides: Any,
) -> SegmentationResult:
    """Segment one document into clauses.

    Args:
        text: Full extracted document text (normalized here).
        pages: Per-page character counts, in page order.
        config: Run options; defaults to ``SegmentationConfig()``.
        clock: Timestamp source for events (default: current UTC time).
        **overrides: Option overrides applied on top of *config*.
    """
    if config is None:
        config = SegmentationConfig.from_options(overrides)
    elif overrides:
        config = SegmentationConfig.from_options(config.as_dict(), **overrides)

    log.info(
        "segmentation start: %d chars, %d pages, version=%s",
        len(text), len(pages), config.segmentation_version,
    )
    page_index = build_page_index(pages)
    normalized = normalize_canvas(text)

    candidates = detect_candidates(normalized)
    log.debug("detected %d candidates", len(candidates))

    scored = apply_context_scoring(candidates, normalized, config)
    outcome = reconcile_candidates(scored, config)

    clauses = build_clauses(outcome.accepted, normalized, page_index, config)
    log.debug("built %d clauses", len(clauses))

    anomalies = detect_anomalies(clauses, config)
    clauses = attach_anomaly_flags(clauses, anomalies)

    metrics = compute_metrics(
        candidates, outcome.accepted, outcome.suppressed, ocr_used=config.ocr_used,
    )
    events = generate_events(metrics, anomalies, clock)
    reasons = review_reasons(clauses, anomalies, config)

    log.info(
        "segmentation done: %d clauses, %d anomalies, needs_review=%s",
        len(clauses), len(anomalies), bool(reasons),
    )
    return SegmentationResult(
        clauses=tuple(clauses),
        metrics=metrics,
        anomalies=tuple(anomalies),
        events=tuple(events),
        needs_review=bool(reasons),
        review_reasons=tuple(reasons),
        segmentation_version=config.segmentation_version,
        normalized_text_length=len(normalized),
    )
