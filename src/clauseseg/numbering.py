"""Number label normalization and ordering.

Labels come from three numbering systems:
  decimal — "1", "2.1", "3.2.1"
  roman   — "I" .. "XX" (outside that range a label is not treated as roman)
  alpha   — "a", "b", ..., "aa"

``normalize_number_label`` maps each onto one comparable lowercase form and
is idempotent. ``extract_numeric_value`` gives the ordering key used by the
skipped-number check; dotted decimals collapse with decreasing powers of
ten ("3.2.1" -> 3.21), so "2.10" sorts like 3.0.
"""

from __future__ import annotations

import re
from typing import Literal

type LabelKind = Literal["decimal", "roman", "alpha", "unknown"]

ROMAN_VALUES: dict[str, int] = {
    "I": 1, "II": 2, "III": 3, "IV": 4, "V": 5,
    "VI": 6, "VII": 7, "VIII": 8, "IX": 9, "X": 10,
    "XI": 11, "XII": 12, "XIII": 13, "XIV": 14, "XV": 15,
    "XVI": 16, "XVII": 17, "XVIII": 18, "XIX": 19, "XX": 20,
}

_ROMAN_LABEL_RE = re.compile(r"^([IVXLCM]+)[.)\]]*$")
_TRAILING_PUNCT_RE = re.compile(r"[.)\]]+\s*$")
_PARENTHETICAL_RE = re.compile(r"^(\d+)\(([A-Za-z]+)\)?$")

_DECIMAL_RE = re.compile(r"^\d+(?:\.\d+)*$")
_ROMAN_RE = re.compile(r"^[IVXLCM]+$")
_ALPHA_RE = re.compile(r"^[a-z]+$")


def roman_to_int(s: str) -> int | None:
    """Roman numeral I-XX (any case) to int, or None."""
    return ROMAN_VALUES.get(s.strip().upper())


def normalize_number_label(label: str) -> str:
    """Normalize a raw label: "I." -> "1", "a)" -> "a", "7(a)" -> "7.a"."""
    result = label.strip()
    m = _ROMAN_LABEL_RE.match(result.upper())
    if m:
        value = ROMAN_VALUES.get(m.group(1))
        if value is not None:
            result = str(value)
    result = _TRAILING_PUNCT_RE.sub("", result)
    result = _PARENTHETICAL_RE.sub(r"\1.\2", result)
    return result.lower()


def classify_number_label(label: str) -> LabelKind:
    """Which numbering system a (normalized or raw) label belongs to.

    Roman-looking strings outside I-XX fall through to alpha, so "c" is the
    third letter rather than an unknown numeral.
    """
    if _DECIMAL_RE.match(label):
        return "decimal"
    if _ROMAN_RE.match(label.upper()) and label.upper() in ROMAN_VALUES:
        return "roman"
    if _ALPHA_RE.match(label.lower()):
        return "alpha"
    return "unknown"


def _decimal_value(label: str) -> float:
    return sum(int(part) * 10.0 ** -i for i, part in enumerate(label.split(".")))


def _alpha_value(label: str) -> int:
    value = 0
    for ch in label.lower():
        value = value * 26 + (ord(ch) - ord("a") + 1)
    return value


def extract_numeric_value(label: str) -> float:
    """Ordering key for *label*; 0 for anything unparseable."""
    kind = classify_number_label(label)
    if kind == "decimal":
        return _decimal_value(label)
    if kind == "roman":
        return ROMAN_VALUES[label.upper()]
    if kind == "alpha":
        return _alpha_value(label)
    return 0


def compare_number_labels(a: str, b: str) -> int:
    """-1, 0 or 1 by numeric value."""
    va = extract_numeric_value(a)
    vb = extract_numeric_value(b)
    if va < vb:
        return -1
    if va > vb:
        return 1
    return 0


def valid_number_label(label: str) -> bool:
    return classify_number_label(label) != "unknown"


def generate_snippet(label: str) -> str:
    """Normalized label for display, truncated past 20 chars."""
    normalized = normalize_number_label(label)
    if len(normalized) > 20:
        return normalized[:17] + "..."
    return normalized
