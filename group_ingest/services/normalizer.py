from __future__ import annotations

import math
import re
import unicodedata
from collections.abc import Iterable, Mapping
from typing import Any

from ..models.row_data import RawRow

"""Field normalizer: per-cell cleaning.

Every raw cell goes through normalize() before anything looks at it:
- Unicode NFKC (visually identical strings in different encodings compare equal)
- encoding artefacts stripped (BOM, zero width space, soft hyphen, U+FFFD)
- surrounding whitespace trimmed, internal runs collapsed
- sentinel placeholders ("Nil", "NIL", "-", "N/A", ...) mapped to None

None is the only representation of "absent"; normalize() never returns "".
"""

__all__ = [
    "DEFAULT_SENTINELS",
    "LABEL_PREFIXES",
    "NormalizedField",
    "build_sentinels",
    "clean_text",
    "normalize",
    "normalize_row",
    "is_empty",
    "parse_member_count",
]

NormalizedField = str | None

# casefold 済で比較する
DEFAULT_SENTINELS: frozenset[str] = frozenset({
    "",
    "nil",
    "nill",
    "null",
    "na",
    "n/a",
    "-",
    "not manation",
})

# ZWJ/ZWNJ are left alone: they are meaningful in Kannada conjuncts
_ARTIFACT_RE = re.compile("[\ufeff\u200b\u2060\u00ad\ufffd]")
_CONTROL_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")
_WS_RE = re.compile(r"\s+")

# エクスポート時に値の頭に付いてくる列見出し (casefold 済)
LABEL_PREFIXES: frozenset[str] = frozenset({"linked e-mail id"})

_COUNT_RE = re.compile(r"(\d[\d,]*(?:\.\d+)?)\s*(lakhs|lakh|k|m|l)?(?![a-z])", re.IGNORECASE)
_MULTIPLIERS = {
    "k": 1_000,
    "m": 1_000_000,
    "l": 100_000,
    "lakh": 100_000,
    "lakhs": 100_000,
}


def build_sentinels(extra: Iterable[str] | None = None) -> frozenset[str]:
    """Return DEFAULT_SENTINELS extended with configured tokens (casefolded)."""
    if not extra:
        return DEFAULT_SENTINELS
    return DEFAULT_SENTINELS | {clean_text(s).casefold() for s in extra}


def _render_scalar(raw: Any) -> str:
    if isinstance(raw, bool):
        return str(raw)
    if isinstance(raw, float) and raw.is_integer():
        return str(int(raw))
    return str(raw)


def clean_text(text: str) -> str:
    text = unicodedata.normalize("NFKC", text)
    text = _ARTIFACT_RE.sub("", text)
    text = _CONTROL_RE.sub(" ", text)
    return _WS_RE.sub(" ", text).strip()


def normalize(
    raw: Any,
    *,
    label: str | None = None,
    sentinels: frozenset[str] = DEFAULT_SENTINELS,
) -> NormalizedField:
    """Clean a raw scalar; return None when it carries no value.

    When `label` (the column label) is given, a cell that just repeats the
    label is treated as absent. Only labels listed in LABEL_PREFIXES are
    also stripped from the front of a cell ("Linked E-Mail ID foo@example.com");
    other cells keep a leading label word ("Name Change Trust" under "Name").
    Never raises.
    """
    if raw is None:
        return None
    if isinstance(raw, float) and math.isnan(raw):
        return None
    text = clean_text(raw if isinstance(raw, str) else _render_scalar(raw))
    if text.casefold() in sentinels:
        return None

    if label:
        clean_label = clean_text(label)
        if clean_label and text.casefold() == clean_label.casefold():
            return None
        if clean_label.casefold() not in LABEL_PREFIXES:
            return text
        head, rest = text[:len(clean_label)], text[len(clean_label):]
        if head.casefold() == clean_label.casefold() and rest[:1] in (" ", ":"):
            rest = rest.lstrip(" :").strip()
            if not rest or rest.casefold() in sentinels:
                return None
            return rest
    return text


def normalize_row(
    row: RawRow | Mapping[str, Any],
    sentinels: frozenset[str] = DEFAULT_SENTINELS,
) -> dict[str, NormalizedField]:
    """Normalize every cell of a row, keeping the literal column labels."""
    values = row.values if isinstance(row, RawRow) else row
    return {label: normalize(raw, label=label, sentinels=sentinels) for label, raw in values.items()}


def is_empty(values: Mapping[str, NormalizedField]) -> bool:
    return all(v is None for v in values.values())


def parse_member_count(value: Any) -> int:
    """Parse a member/follower count; malformed or absent input yields 0.

    Accepts "1,200", "1200+", "107.7K", "1.2M", "3 lakh".
    """
    if value is None:
        return 0
    if isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        if isinstance(value, float) and (math.isnan(value) or math.isinf(value)):
            return 0
        return max(int(round(value)), 0)
    text = normalize(value)
    if text is None:
        return 0
    match = _COUNT_RE.search(text)
    if match is None:
        return 0
    digits, suffix = match.groups()
    try:
        number = float(digits.replace(",", ""))
    except ValueError:
        return 0
    if suffix:
        number *= _MULTIPLIERS[suffix.lower()]
    return max(int(round(number)), 0)
