"""Dict/JSON conversion for segmentation results and run artifacts.

The engine stays I/O free; these helpers are what callers use to persist a
result. Dict output is deterministic: keys are sorted on write and
timestamps are ISO-8601 strings.

Artifacts written per run:
  clauses.jsonl  — one clause per line (completed runs)
  preview.json   — clauses, anomalies, metrics and review reasons
                   (runs that need review)
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import orjson

from clauseseg.anchors import PageEntry
from clauseseg.seg_types import (
    Anomaly,
    Candidate,
    Clause,
    Event,
    Metrics,
    SegmentationResult,
)


def candidate_to_dict(candidate: Candidate) -> dict[str, Any]:
    return {
        "char_offset": candidate.char_offset,
        "line_index": candidate.line_index,
        "type": candidate.type,
        "detector": candidate.detector,
        "score": candidate.score,
        "number_label": candidate.number_label,
        "heading_text": candidate.heading_text,
    }


def clause_to_dict(clause: Clause) -> dict[str, Any]:
    return {
        "ordinal": clause.ordinal,
        "number_label": clause.number_label,
        "number_label_normalized": clause.number_label_normalized,
        "heading_text": clause.heading_text,
        "start_char": clause.start_char,
        "end_char": clause.end_char,
        "start_page": clause.start_page,
        "end_page": clause.end_page,
        "detected_style": clause.detected_style,
        "confidence_boundary": clause.confidence_boundary,
        "confidence_heading": clause.confidence_heading,
        "anomaly_flags": list(clause.anomaly_flags),
        "text_snippet": clause.text_snippet,
    }


def anomaly_to_dict(anomaly: Anomaly) -> dict[str, Any]:
    return {
        "type": anomaly.type,
        "at": anomaly.at,
        "severity": anomaly.severity,
        "description": anomaly.description,
    }


def metrics_to_dict(metrics: Metrics) -> dict[str, Any]:
    return {
        "candidate_count": metrics.candidate_count,
        "accepted_count": metrics.accepted_count,
        "suppressed_count": metrics.suppressed_count,
        "mean_conf_boundary": metrics.mean_conf_boundary,
        "ocr_used": metrics.ocr_used,
    }


def event_to_dict(event: Event) -> dict[str, Any]:
    return {
        "event": event.event,
        "timestamp": event.timestamp.isoformat(),
        "detail": {k: event.detail[k] for k in sorted(event.detail)},
    }


def result_to_dict(result: SegmentationResult) -> dict[str, Any]:
    """Full snapshot of a result, suitable for JSON."""
    return {
        "segmentation_version": result.segmentation_version,
        "normalized_text_length": result.normalized_text_length,
        "needs_review": result.needs_review,
        "review_reasons": list(result.review_reasons),
        "metrics": metrics_to_dict(result.metrics),
        "clauses": [clause_to_dict(c) for c in result.clauses],
        "anomalies": [anomaly_to_dict(a) for a in result.anomalies],
        "events": [event_to_dict(e) for e in result.events],
    }


def dumps_result(result: SegmentationResult, *, pretty: bool = False) -> bytes:
    option = orjson.OPT_SORT_KEYS
    if pretty:
        option |= orjson.OPT_INDENT_2
    return orjson.dumps(result_to_dict(result), option=option)


# ---------------------------------------------------------------------------
# Artifacts
# ---------------------------------------------------------------------------

def write_clauses_jsonl(path: Path, clauses: tuple[Clause, ...] | list[Clause]) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    lines = [orjson.dumps(clause_to_dict(c), option=orjson.OPT_SORT_KEYS) for c in clauses]
    path.write_bytes(b"\n".join(lines) + b"\n" if lines else b"")
    return path


def review_preview(result: SegmentationResult) -> dict[str, Any]:
    return {
        "segmentation_version": result.segmentation_version,
        "review_reasons": list(result.review_reasons),
        "metrics": metrics_to_dict(result.metrics),
        "clauses": [clause_to_dict(c) for c in result.clauses],
        "anomalies": [anomaly_to_dict(a) for a in result.anomalies],
    }


def write_review_preview(path: Path, result: SegmentationResult) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(orjson.dumps(
        review_preview(result),
        option=orjson.OPT_INDENT_2 | orjson.OPT_SORT_KEYS,
    ))
    return path


def load_text(path: Path) -> str:
    return path.read_text(encoding="utf-8")


def load_pages_jsonl(path: Path) -> list[PageEntry]:
    """Read ``pages.jsonl`` (one ``{"page": n, "char_count": c}`` per line).

    Blank lines are skipped. Rows are returned in file order.
    """
    pages: list[PageEntry] = []
    for line in path.read_bytes().split(b"\n"):
        line = line.strip()
        if not line:
            continue
        row = orjson.loads(line)
        if not isinstance(row, dict) or "char_count" not in row:
            raise ValueError(f"{path}: page row without char_count: {line[:80]!r}")
        try:
            int(row["char_count"])
        except (TypeError, ValueError):
            raise ValueError(
                f"{path}: non-numeric char_count in page row: {line[:80]!r}"
            ) from None
        pages.append(row)
    return pages
