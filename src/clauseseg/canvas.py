"""Canvas normalization.

Every offset the engine reports refers to the text returned by
``normalize_canvas``; it runs exactly once per segmentation run.
"""

from __future__ import annotations

import re

_LINE_ENDING_RE = re.compile(r"\r\n?")
_BLANK_RUN_RE = re.compile(r"\n{3,}")


def normalize_canvas(text: str) -> str:
    """Unify line endings, collapse 3+ newlines to 2, strip the ends."""
    normalized = _LINE_ENDING_RE.sub("\n", text)
    normalized = _BLANK_RUN_RE.sub("\n\n", normalized)
    return normalized.strip()


def canvas_stats(raw: str, normalized: str) -> dict[str, int]:
    """Summarize what normalization changed, for run logs."""
    return {
        "raw_length": len(raw),
        "normalized_length": len(normalized),
        "line_endings_rewritten": len(_LINE_ENDING_RE.findall(raw)),
        "blank_runs_collapsed": len(_BLANK_RUN_RE.findall(_LINE_ENDING_RE.sub("\n", raw))),
    }
