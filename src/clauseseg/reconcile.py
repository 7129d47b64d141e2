"""Candidate reconciliation.

Three passes over offset-sorted candidates:

1. Overlap suppression: the first unconsumed candidate opens a cluster of
   everything within ``overlap_window`` chars after it; the best scorer of
   the cluster survives (ties keep the earliest), the rest are suppressed.
2. Minimum spacing, greedy: a survivor is kept only if it starts at least
   ``min_boundary_gap`` chars after the last kept one.
3. Acceptance threshold: ``score >= accept_threshold``.

Only pass 1 feeds ``suppressed`` (and so ``suppressed_count``). Pass 2 and
3 drops are reported separately for audit.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from clauseseg.config import SegmentationConfig
from clauseseg.seg_types import Candidate

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ReconcileOutcome:
    accepted: tuple[Candidate, ...]
    suppressed: tuple[Candidate, ...]
    spacing_dropped: tuple[Candidate, ...] = ()
    below_threshold: tuple[Candidate, ...] = ()


def suppress_overlaps(
    candidates: Sequence[Candidate],
    overlap_window: int,
) -> tuple[list[Candidate], list[Candidate]]:
    """Pass 1. Returns ``(kept, suppressed)``; a window <= 0 keeps everything."""
    if overlap_window <= 0:
        return list(candidates), []

    kept: list[Candidate] = []
    suppressed: list[Candidate] = []
    i = 0
    n = len(candidates)
    while i < n:
        anchor = candidates[i].char_offset
        j = i + 1
        while j < n and candidates[j].char_offset - anchor <= overlap_window:
            j += 1
        cluster = candidates[i:j]
        # max() returns the first maximal element, so ties keep the earliest.
        best = max(cluster, key=lambda c: c.score)
        kept.append(best)
        suppressed.extend(c for c in cluster if c is not best)
        i = j
    return kept, suppressed


def enforce_minimum_distance(
    candidates: Sequence[Candidate],
    min_gap: int,
) -> tuple[list[Candidate], list[Candidate]]:
    """Pass 2. Returns ``(kept, dropped)``; a gap <= 0 keeps everything."""
    if min_gap <= 0:
        return list(candidates), []

    kept: list[Candidate] = []
    dropped: list[Candidate] = []
    for candidate in candidates:
        if not kept or candidate.char_offset - kept[-1].char_offset >= min_gap:
            kept.append(candidate)
        else:
            dropped.append(candidate)
    return kept, dropped


def reconcile_candidates(
    candidates: Sequence[Candidate],
    config: SegmentationConfig,
) -> ReconcileOutcome:
    ordered = sorted(candidates, key=lambda c: c.char_offset)
    survivors, suppressed = suppress_overlaps(ordered, config.overlap_window)
    spaced, spacing_dropped = enforce_minimum_distance(survivors, config.min_boundary_gap)
    accepted = [c for c in spaced if c.score >= config.accept_threshold]
    below = [c for c in spaced if c.score < config.accept_threshold]

    log.debug(
        "reconcile: %d candidates -> %d accepted, %d suppressed, "
        "%d spacing-dropped, %d below threshold",
        len(ordered), len(accepted), len(suppressed),
        len(spacing_dropped), len(below),
    )
    return ReconcileOutcome(
        accepted=tuple(accepted),
        suppressed=tuple(suppressed),
        spacing_dropped=tuple(spacing_dropped),
        below_threshold=tuple(below),
    )
