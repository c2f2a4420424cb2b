from __future__ import annotations

import re
from collections.abc import Mapping
from urllib.parse import parse_qs, urlsplit

from ..models.group import NameOrigin
from ..sources.columns import ColumnMapping
from .normalizer import NormalizedField, clean_text

"""Identity resolver: display name, name origin and stable id of a row.

Name resolution, in strict priority order:
1. explicit organisation/name column            -> EXPLICIT
2. name extracted from a social-profile URL     -> DERIVED_FROM_URL
3. "Unknown <sheet> #<row>"                     -> SYNTHETIC_PLACEHOLDER

The id is "<sheet slug>_<row ordinal>", unique within a sheet. The Sl No
column is not used for it (values repeat or are missing in hand-kept sheets).
"""

__all__ = [
    "URL_FIELDS",
    "extract_name_from_url",
    "placeholder_name",
    "resolve_identity",
    "sheet_slug",
    "make_group_id",
]

# URL 候補の優先順
URL_FIELDS: tuple[str, ...] = ("facebook", "twitter", "instagram", "youtube")

_NON_NAME_SEGMENTS = frozenset({
    "profile.php",
    "groups",
    "pages",
    "people",
    "home.php",
    "watch",
    "share",
    "permalink.php",
    "story.php",
    "channel",
    "hashtag",
    "intent",
    "search",
})

_PERCENT_SPACE_RE = re.compile(r"%20", re.IGNORECASE)
_PERCENT_RUN_RE = re.compile(r"(?:%[0-9A-Fa-f]{2})+")
_SEPARATOR_RE = re.compile(r"[-_.+]+")
_SLUG_RE = re.compile(r"\W+")


def _humanize_segment(segment: str) -> str:
    text = segment.lstrip("@")
    text = _PERCENT_SPACE_RE.sub(" ", text)
    # 残りの %XX 列 (エンコード済みカンナダ文字など) は除去
    text = _PERCENT_RUN_RE.sub("", text)
    text = _SEPARATOR_RE.sub(" ", text)
    return clean_text(text)


def extract_name_from_url(url: str | None) -> str | None:
    """Derive a display name from a social-profile URL.

    >>> extract_name_from_url("facebook.com/sample-group_page")
    'sample group page'
    >>> extract_name_from_url("https://www.facebook.com/groups/12345/")
    'Group: 12345'
    >>> extract_name_from_url("https://facebook.com/profile.php?id=987")
    'Facebook Profile 987'
    """
    if not url:
        return None
    text = url.strip()
    if "://" not in text:
        text = "//" + text.lstrip("/")
    try:
        parts = urlsplit(text)
        host = parts.hostname or ""
    except ValueError:
        return None
    if "." not in host:
        return None

    segments = [s for s in parts.path.split("/") if s.strip()]
    if not segments:
        return None
    head = segments[0].strip()
    lowered = head.lower()

    if lowered == "profile.php":
        ids = parse_qs(parts.query).get("id")
        if ids and ids[0].strip().isdigit():
            return f"Facebook Profile {ids[0].strip()}"
        return None
    if lowered == "groups":
        if len(segments) > 1:
            return f"Group: {segments[1].strip()}"
        return None
    if lowered in ("pages", "people") and len(segments) > 1:
        head = segments[1]
    elif lowered in _NON_NAME_SEGMENTS:
        return None

    return _humanize_segment(head) or None


def placeholder_name(sheet: str, ordinal: int) -> str:
    return f"Unknown {clean_text(sheet)} #{ordinal}"


def resolve_identity(
    values: Mapping[str, NormalizedField],
    sheet: str,
    ordinal: int,
    columns: ColumnMapping,
) -> tuple[str, NameOrigin]:
    """Return (name, name_origin) for a normalized row. The name is never empty."""
    name = columns.pick(values, "name")
    if name:
        return name, NameOrigin.EXPLICIT

    for platform in URL_FIELDS:
        url = columns.pick(values, platform)
        derived = extract_name_from_url(url)
        if derived:
            return derived, NameOrigin.DERIVED_FROM_URL

    return placeholder_name(sheet, ordinal), NameOrigin.SYNTHETIC_PLACEHOLDER


def sheet_slug(sheet: str) -> str:
    return _SLUG_RE.sub("_", clean_text(sheet).casefold()).strip("_") or "sheet"


def make_group_id(sheet: str, ordinal: int) -> str:
    return f"{sheet_slug(sheet)}_{ordinal}"
