"""Run metrics and the audit event trail."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from datetime import UTC, datetime

from clauseseg.seg_types import Anomaly, Candidate, Event, Metrics

type Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(UTC)


def compute_metrics(
    candidates: Sequence[Candidate],
    accepted: Sequence[Candidate],
    suppressed: Sequence[Candidate],
    *,
    ocr_used: bool,
) -> Metrics:
    """``mean_conf_boundary`` is the mean score of accepted candidates."""
    mean = sum(c.score for c in accepted) / len(accepted) if accepted else 0.0
    return Metrics(
        candidate_count=len(candidates),
        accepted_count=len(accepted),
        suppressed_count=len(suppressed),
        mean_conf_boundary=max(0.0, min(1.0, mean)),
        ocr_used=ocr_used,
    )


def generate_events(
    metrics: Metrics,
    anomalies: Sequence[Anomaly],
    clock: Clock | None = None,
) -> list[Event]:
    """Three count events, then one event per anomaly, all sharing one timestamp."""
    timestamp = (clock or utc_now)()
    events = [
        Event("boundary_detected", timestamp, {"total_candidates": metrics.candidate_count}),
        Event("boundaries_accepted", timestamp, {"accepted_count": metrics.accepted_count}),
        Event("boundaries_suppressed", timestamp, {"suppressed_count": metrics.suppressed_count}),
    ]
    events.extend(
        Event(
            "anomaly_detected",
            timestamp,
            {"type": a.type, "severity": a.severity, "at": a.at},
        )
        for a in anomalies
    )
    return events
