from __future__ import annotations

from dataclasses import dataclass, replace

from ..models.group import PLATFORMS, CanonicalGroup, Contact, NameOrigin
from ..models.row_data import RawRow
from ..sources.columns import ColumnMapping
from .classifier import DEFAULT_RULES, ClassificationRules, classify
from .identity import make_group_id, resolve_identity
from .normalizer import DEFAULT_SENTINELS, is_empty, normalize_row, parse_member_count

"""Row -> CanonicalGroup.

Ties the per-row stages together: normalize every cell, resolve the name,
pick the remaining logical fields, classify. A row that carries nothing at
all after normalization is malformed and yields no group; every other row
yields exactly one.
"""

__all__ = [
    "BuiltRow",
    "build_group",
    "describe",
    "reclassify",
]


@dataclass(frozen=True)
class BuiltRow:
    """Result of building one row. group is None for a malformed (empty) row."""
    group: CanonicalGroup | None
    origin: NameOrigin | None = None


def describe(member_count: int, category: str) -> str:
    if member_count > 0:
        return f"Group with {member_count} members"
    return f"{category} group"


def build_group(
    row: RawRow,
    columns: ColumnMapping,
    rules: ClassificationRules = DEFAULT_RULES,
    sentinels: frozenset[str] = DEFAULT_SENTINELS,
) -> BuiltRow:
    values = normalize_row(row, sentinels)
    if is_empty(values):
        return BuiltRow(group=None)

    name, origin = resolve_identity(values, row.sheet, row.ordinal, columns)

    social_links: dict[str, str] = {}
    for platform in PLATFORMS:
        url = columns.pick(values, platform)
        if url:
            social_links[platform] = url

    member_count = parse_member_count(columns.pick(values, "members"))
    result = classify(name, row.sheet, member_count, rules)

    group = CanonicalGroup(
        id=make_group_id(row.sheet, row.ordinal),
        name=name,
        name_origin=origin,
        source_sheet=row.sheet,
        source_row=row.ordinal,
        member_count=member_count,
        platforms=frozenset(social_links),
        social_links=social_links,
        contact=Contact(
            phone=columns.pick(values, "phone"),
            email=columns.pick(values, "email"),
            website=columns.pick(values, "website"),
        ),
        location=columns.pick(values, "address"),
        influencer_refs=columns.pick(values, "influencers"),
        group_type=result.group_type,
        risk_level=result.risk_level,
        category=result.category,
        monitoring_enabled=result.monitoring_enabled,
        description=describe(member_count, result.category),
    )
    return BuiltRow(group=group, origin=origin)


def reclassify(group: CanonicalGroup, rules: ClassificationRules = DEFAULT_RULES) -> CanonicalGroup:
    """Re-run classification (and the generated description) on a group."""
    result = classify(group.name, group.source_sheet, group.member_count, rules)
    return replace(
        group,
        group_type=result.group_type,
        risk_level=result.risk_level,
        category=result.category,
        monitoring_enabled=result.monitoring_enabled,
        description=describe(group.member_count, result.category),
    )
