from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, replace

from ..models.group import PLATFORMS, CanonicalGroup, Contact

"""Within-run deduplication by group id.

Records sharing an id are collapsed into one, in first-seen order:
- scalar fields: first non-absent value wins (member_count 0 is absent)
- social links: merged per platform, platforms recomputed from the result
- name / name_origin: highest confidence origin wins, first seen on ties

Input records are never mutated.
"""

__all__ = [
    "DedupResult",
    "merge_groups",
    "deduplicate",
]

logger = logging.getLogger(__name__)

Reclassify = Callable[[CanonicalGroup], CanonicalGroup]


@dataclass(frozen=True)
class DedupResult:
    groups: list[CanonicalGroup]
    collapsed: int  # 統合で消えたレコード数


def _first(*values):
    return next((v for v in values if v is not None), None)


def merge_groups(first: CanonicalGroup, other: CanonicalGroup) -> CanonicalGroup:
    """Merge `other` into `first` (first has priority). Ids must be equal."""
    if first.id != other.id:
        raise ValueError(f"cannot merge groups with different ids: {first.id!r} != {other.id!r}")

    social_links = dict(first.social_links)
    for platform, url in other.social_links.items():
        social_links.setdefault(platform, url)
    social_links = {p: social_links[p] for p in PLATFORMS if p in social_links}

    named = other if other.name_origin.confidence > first.name_origin.confidence else first

    return replace(
        first,
        name=named.name,
        name_origin=named.name_origin,
        member_count=first.member_count or other.member_count,
        platforms=frozenset(social_links),
        social_links=social_links,
        contact=Contact(
            phone=_first(first.contact.phone, other.contact.phone),
            email=_first(first.contact.email, other.contact.email),
            website=_first(first.contact.website, other.contact.website),
        ),
        location=_first(first.location, other.location),
        influencer_refs=_first(first.influencer_refs, other.influencer_refs),
    )


def deduplicate(groups: Iterable[CanonicalGroup], reclassify: Reclassify | None = None) -> DedupResult:
    """Collapse records sharing an id.

    Args:
        groups: records in emission order
        reclassify: applied to every merged record (name / size may have
            changed, so type, risk and category are recomputed)
    """
    merged: dict[str, CanonicalGroup] = {}
    touched: set[str] = set()
    collapsed = 0
    for group in groups:
        current = merged.get(group.id)
        if current is None:
            merged[group.id] = group
            continue
        merged[group.id] = merge_groups(current, group)
        touched.add(group.id)
        collapsed += 1
        logger.debug(
            "duplicate id=%s sheet=%s row=%d merged into row=%d",
            group.id, group.source_sheet, group.source_row, current.source_row,
        )

    result = list(merged.values())
    if reclassify is not None and touched:
        result = [reclassify(g) if g.id in touched else g for g in result]
    return DedupResult(groups=result, collapsed=collapsed)
