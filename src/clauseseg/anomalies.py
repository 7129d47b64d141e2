"""Structural anomaly checks over a finalized clause list.

Nine checks run in a fixed order and their results are concatenated:

  duplicate_number           medium  same normalized label on 2+ clauses
  skipped_number             low     numeric gap > 1 between sorted labels
  unheaded_block             medium  no heading and longer than the block limit
  excessive_short_clause     low     too many clauses under the size limit
  page_regression            high    start_page > end_page
  mixed_roman_decimal        medium  roman and decimal numbering together
  all_lowercase_heading      low     heading has no uppercase letters
  sparse_boundaries          high    large document with very few clauses
  low_confidence_boundaries  medium  too many weak boundaries

Point anomalies carry the clause's ``start_char`` in ``at``; the two
document-scoped kinds use ``at=0``.
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Callable, Sequence

from clauseseg.config import SegmentationConfig
from clauseseg.numbering import extract_numeric_value
from clauseseg.seg_types import (
    DOCUMENT_SCOPED_ANOMALIES,
    Anomaly,
    AnomalyType,
    Clause,
)

log = logging.getLogger(__name__)

type AnomalyCheck = Callable[[Sequence[Clause], SegmentationConfig], list[Anomaly]]


def max_end_page(clauses: Sequence[Clause]) -> int:
    return max((c.end_page for c in clauses), default=1)


def is_sparse(clauses: Sequence[Clause], config: SegmentationConfig) -> bool:
    """Large document (by page) with fewer clauses than expected.

    Shared by the sparse_boundaries check and the review gate.
    """
    return (
        max_end_page(clauses) >= config.large_doc_pages
        and len(clauses) < config.min_boundaries_for_large_doc
    )


# ---------------------------------------------------------------------------
# Checks
# ---------------------------------------------------------------------------

def detect_duplicate_numbers(
    clauses: Sequence[Clause], config: SegmentationConfig,
) -> list[Anomaly]:
    groups: dict[str, list[Clause]] = {}
    for clause in clauses:
        if clause.number_label_normalized is not None:
            groups.setdefault(clause.number_label_normalized, []).append(clause)
    out: list[Anomaly] = []
    for label, group in groups.items():
        if len(group) < 2:
            continue
        out.extend(
            Anomaly(
                type="duplicate_number",
                at=clause.start_char,
                severity="medium",
                description=f"Duplicate number label '{label}'",
            )
            for clause in group
        )
    return out


def detect_skipped_numbers(
    clauses: Sequence[Clause], config: SegmentationConfig,
) -> list[Anomaly]:
    numbered = sorted(
        (c for c in clauses if c.number_label_normalized is not None),
        key=lambda c: extract_numeric_value(c.number_label_normalized or ""),
    )
    out: list[Anomaly] = []
    for prev, nxt in zip(numbered, numbered[1:], strict=False):
        prev_label = prev.number_label_normalized or ""
        next_label = nxt.number_label_normalized or ""
        if extract_numeric_value(next_label) - extract_numeric_value(prev_label) > 1:
            out.append(Anomaly(
                type="skipped_number",
                at=nxt.start_char,
                severity="low",
                description=f"Skipped number between '{prev_label}' and '{next_label}'",
            ))
    return out


def detect_unheaded_blocks(
    clauses: Sequence[Clause], config: SegmentationConfig,
) -> list[Anomaly]:
    return [
        Anomaly(
            type="unheaded_block",
            at=c.start_char,
            severity="medium",
            description=f"Large unheaded block ({c.length} chars)",
        )
        for c in clauses
        if not c.heading_text and c.length > config.min_unheaded_block_size
    ]


def detect_excessive_short_clauses(
    clauses: Sequence[Clause], config: SegmentationConfig,
) -> list[Anomaly]:
    short = [c for c in clauses if c.length < config.min_clause_size]
    if len(short) / max(len(clauses), 1) <= config.max_short_clause_ratio:
        return []
    return [
        Anomaly(
            type="excessive_short_clause",
            at=c.start_char,
            severity="low",
            description=f"Short clause ({c.length} chars)",
        )
        for c in short
    ]


def detect_page_regressions(
    clauses: Sequence[Clause], config: SegmentationConfig,
) -> list[Anomaly]:
    return [
        Anomaly(
            type="page_regression",
            at=c.start_char,
            severity="high",
            description=f"Page regression: starts page {c.start_page}, ends page {c.end_page}",
        )
        for c in clauses
        if c.start_page > c.end_page
    ]


def detect_mixed_numbering(
    clauses: Sequence[Clause], config: SegmentationConfig,
) -> list[Anomaly]:
    styles = {c.detected_style for c in clauses}
    if "numbered_roman" in styles and "numbered_decimal" in styles:
        return [Anomaly(
            type="mixed_roman_decimal",
            at=0,
            severity="medium",
            description="Mixed roman and decimal numbering styles detected",
        )]
    return []


def detect_all_lowercase_headings(
    clauses: Sequence[Clause], config: SegmentationConfig,
) -> list[Anomaly]:
    return [
        Anomaly(
            type="all_lowercase_heading",
            at=c.start_char,
            severity="low",
            description=f"All lowercase heading: '{c.heading_text}'",
        )
        for c in clauses
        if c.heading_text is not None
        and len(c.heading_text) > 3
        and c.heading_text == c.heading_text.lower()
    ]


def detect_sparse_boundaries(
    clauses: Sequence[Clause], config: SegmentationConfig,
) -> list[Anomaly]:
    if not is_sparse(clauses, config):
        return []
    return [Anomaly(
        type="sparse_boundaries",
        at=0,
        severity="high",
        description=(
            f"Large document ({max_end_page(clauses)} pages) "
            f"with only {len(clauses)} boundaries"
        ),
    )]


def detect_low_confidence_boundaries(
    clauses: Sequence[Clause], config: SegmentationConfig,
) -> list[Anomaly]:
    low = [c for c in clauses if c.confidence_boundary < config.review_threshold]
    if len(low) / max(len(clauses), 1) <= config.max_low_conf_ratio:
        return []
    return [
        Anomaly(
            type="low_confidence_boundaries",
            at=c.start_char,
            severity="medium",
            description=f"Low confidence boundary ({c.confidence_boundary:.2f})",
        )
        for c in low
    ]


ANOMALY_CHECKS: tuple[AnomalyCheck, ...] = (
    detect_duplicate_numbers,
    detect_skipped_numbers,
    detect_unheaded_blocks,
    detect_excessive_short_clauses,
    detect_page_regressions,
    detect_mixed_numbering,
    detect_all_lowercase_headings,
    detect_sparse_boundaries,
    detect_low_confidence_boundaries,
)


def detect_anomalies(
    clauses: Sequence[Clause],
    config: SegmentationConfig,
) -> list[Anomaly]:
    anomalies: list[Anomaly] = []
    for check in ANOMALY_CHECKS:
        anomalies.extend(check(clauses, config))
    log.debug("anomalies: %d found over %d clauses", len(anomalies), len(clauses))
    return anomalies


def attach_anomaly_flags(
    clauses: Sequence[Clause],
    anomalies: Sequence[Anomaly],
) -> list[Clause]:
    """Copy point anomaly types onto the clauses they were raised for.

    Flags stay unique and keep first-seen order; document-scoped
    anomalies attach to no clause.
    """
    flags_by_start: dict[int, list[AnomalyType]] = {}
    for anomaly in anomalies:
        if anomaly.type in DOCUMENT_SCOPED_ANOMALIES:
            continue
        flags = flags_by_start.setdefault(anomaly.at, [])
        if anomaly.type not in flags:
            flags.append(anomaly.type)

    out: list[Clause] = []
    for clause in clauses:
        flags = flags_by_start.get(clause.start_char)
        if flags:
            clause = dataclasses.replace(clause, anomaly_flags=tuple(flags))
        out.append(clause)
    return out
