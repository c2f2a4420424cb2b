from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field

from ..services.normalizer import NormalizedField, clean_text

"""Candidate column lookup per logical field.

Sources for the same kind of entity use different headers ("Organisation Type"
in one sheet, "Facebook Page Name" in another, a Kannada/English title row in a
third). Instead of per-sheet special casing, every logical field has an ordered
tuple of candidate labels; the first candidate that is present in the row and
non-absent wins.

Labels are compared after whitespace collapse and casefold, so
" Facebook Profile URL " and "Facebook Profile URL" are the same column.
"""

__all__ = [
    "DEFAULT_COLUMN_CANDIDATES",
    "ColumnMapping",
    "column_key",
]

DEFAULT_COLUMN_CANDIDATES: dict[str, tuple[str, ...]] = {
    "serial": ("Sl No", "SL No", "Sl. No", "S.No", "S No"),
    "name": (
        "Organisation Type",
        "Organisation Name",
        "Organization Name",
        "Facebook Page Name",
        "ORG",
        "POLITICAL AND RELEGIOUS ORGANIZATIONS KARNATAKA",
        "Name",
    ),
    "members": ("Total Members", "Members", "Followers"),
    "influencers": ("Top Influencer IDS", "Top Influencers"),
    "facebook": ("Facebook Profile URL", "Facebook Page Link", "Facebook"),
    "twitter": ("Twitter", "Twitter Link", "IN TWITTER"),
    "instagram": ("Instagram", "Instagram Link"),
    "youtube": ("Youtube ID", "Youtube", "Youtube Link"),
    "website": ("Website",),
    "address": ("Physical Address", "Location", "Address"),
    "phone": ("Linked Phone Number", "Mobile Nomber", "Mobile Number", "Phone"),
    "email": ("Linked E-Mail ID", "Email ID", "Email"),
}


def column_key(label: str) -> str:
    return clean_text(str(label)).casefold()


@dataclass(frozen=True)
class ColumnMapping:
    """Ordered candidate labels per logical field."""
    candidates: Mapping[str, tuple[str, ...]] = field(
        default_factory=lambda: dict(DEFAULT_COLUMN_CANDIDATES)
    )

    @classmethod
    def build(
        cls,
        global_overrides: Mapping[str, tuple[str, ...]] | None = None,
        source_overrides: Mapping[str, tuple[str, ...]] | None = None,
    ) -> ColumnMapping:
        """Defaults, replaced per field by global overrides, then source
        overrides tried first."""
        merged = dict(DEFAULT_COLUMN_CANDIDATES)
        for name, labels in (global_overrides or {}).items():
            merged[name] = tuple(labels)
        for name, labels in (source_overrides or {}).items():
            rest = tuple(c for c in merged.get(name, ()) if c not in labels)
            merged[name] = tuple(labels) + rest
        return cls(candidates=merged)

    def columns_for(self, name: str) -> tuple[str, ...]:
        return tuple(self.candidates.get(name, ()))

    def locate(self, values: Mapping[str, NormalizedField], name: str) -> tuple[str | None, NormalizedField]:
        """Return (actual column label, value) of the first usable candidate."""
        index = {column_key(label): label for label in values}
        for candidate in self.columns_for(name):
            label = index.get(column_key(candidate))
            if label is None:
                continue
            value = values[label]
            if value is not None:
                return label, value
        return None, None

    def pick(self, values: Mapping[str, NormalizedField], name: str) -> NormalizedField:
        return self.locate(values, name)[1]

    def known_labels(self) -> set[str]:
        return {column_key(c) for labels in self.candidates.values() for c in labels}
