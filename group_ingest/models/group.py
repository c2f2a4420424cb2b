from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

"""CanonicalGroup domain model and its enums.

CanonicalGroup is the persisted entity produced by the pipeline. It is
created fresh on every run from raw source data and never mutated in place;
merging (dedup) builds a new instance with dataclasses.replace.
"""

__all__ = [
    "NameOrigin",
    "GroupType",
    "RiskLevel",
    "GroupStatus",
    "Contact",
    "CanonicalGroup",
    "PLATFORMS",
]

# Canonical platform order (primary_platform = first present)
PLATFORMS: tuple[str, ...] = ("facebook", "twitter", "instagram", "youtube")


class NameOrigin(Enum):
    """How a group's display name was obtained.

    - EXPLICIT: taken from an organisation/name column
    - DERIVED_FROM_URL: extracted from a social-profile URL
    - SYNTHETIC_PLACEHOLDER: "Unknown <sheet> #<row>" when no signal exists
    """
    EXPLICIT = "explicit"
    DERIVED_FROM_URL = "derived_from_url"
    SYNTHETIC_PLACEHOLDER = "synthetic_placeholder"

    @property
    def confidence(self) -> int:
        return _ORIGIN_CONFIDENCE[self]


_ORIGIN_CONFIDENCE = {
    NameOrigin.EXPLICIT: 3,
    NameOrigin.DERIVED_FROM_URL: 2,
    NameOrigin.SYNTHETIC_PLACEHOLDER: 1,
}


class GroupType(Enum):
    RELIGIOUS = "religious"
    POLITICAL = "political"
    SOCIAL = "social"
    PROFESSIONAL = "professional"
    CULTURAL = "cultural"
    OTHER = "other"


class RiskLevel(Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class GroupStatus(Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    MONITORED = "monitored"


@dataclass(frozen=True)
class Contact:
    """Contact details; every part is independently optional."""
    phone: str | None = None
    email: str | None = None
    website: str | None = None

    def is_empty(self) -> bool:
        return self.phone is None and self.email is None and self.website is None

    def to_dict(self) -> dict[str, str]:
        return {k: v for k, v in (("phone", self.phone), ("email", self.email), ("website", self.website)) if v}


@dataclass(frozen=True)
class CanonicalGroup:
    """Canonical group record emitted by the pipeline.

    Invariants:
        - id is derived from (source sheet, row key) and is stable across runs
        - name is never empty
        - risk_level HIGH implies monitoring_enabled
    """
    id: str
    name: str
    name_origin: NameOrigin
    source_sheet: str
    source_row: int  # positional ordinal inside source_sheet
    member_count: int = 0
    platforms: frozenset[str] = frozenset()
    social_links: dict[str, str] = field(default_factory=dict)  # platform -> URL (present only)
    contact: Contact = field(default_factory=Contact)
    location: str | None = None
    influencer_refs: str | None = None
    group_type: GroupType = GroupType.OTHER
    risk_level: RiskLevel = RiskLevel.LOW
    category: str = "Other Groups"
    monitoring_enabled: bool = False
    status: GroupStatus = GroupStatus.ACTIVE
    description: str | None = None

    def __post_init__(self) -> None:
        if not self.name or not self.name.strip():
            raise ValueError(f"group {self.id!r} has an empty name")
        if self.member_count < 0:
            raise ValueError(f"group {self.id!r} has a negative member count")

    @property
    def primary_platform(self) -> str | None:
        for platform in PLATFORMS:
            if platform in self.platforms:
                return platform
        return None

    def to_dict(self) -> dict[str, Any]:
        """Plain JSON-compatible representation (enum values, sorted platforms)."""
        return {
            "id": self.id,
            "name": self.name,
            "name_origin": self.name_origin.value,
            "sheet": self.source_sheet,
            "source_row": self.source_row,
            "members": self.member_count,
            "platforms": [p for p in PLATFORMS if p in self.platforms],
            "primary_platform": self.primary_platform,
            "social_media": dict(self.social_links),
            "contact_info": self.contact.to_dict(),
            "location": self.location,
            "influencers": self.influencer_refs,
            "type": self.group_type.value,
            "risk_level": self.risk_level.value,
            "category": self.category,
            "monitoring_enabled": self.monitoring_enabled,
            "status": self.status.value,
            "description": self.description,
        }
