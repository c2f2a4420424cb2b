from __future__ import annotations

from dataclasses import replace

from group_ingest.models.group import GroupType, NameOrigin, RiskLevel
from group_ingest.models.row_data import RawRow
from group_ingest.services.builder import build_group, describe, reclassify
from group_ingest.services.normalizer import build_sentinels
from group_ingest.sources.columns import ColumnMapping

COLUMNS = ColumnMapping()


def _row(values: dict, sheet: str = "Right Hindu Groups", ordinal: int = 1) -> RawRow:
    return RawRow(sheet=sheet, ordinal=ordinal, values=values)


def test_end_to_end_example_row():
    row = _row({
        "Organisation Type": "Sample Trust",
        "Total Members": "1,200",
        "Facebook Profile URL": "https://facebook.com/sampletrust",
    })
    built = build_group(row, COLUMNS)
    g = built.group
    assert built.origin is NameOrigin.EXPLICIT
    assert g.name == "Sample Trust"
    assert g.name_origin is NameOrigin.EXPLICIT
    assert g.member_count == 1200
    assert g.platforms == frozenset({"facebook"})
    assert g.social_links == {"facebook": "https://facebook.com/sampletrust"}
    assert g.primary_platform == "facebook"
    assert g.group_type is GroupType.RELIGIOUS
    assert g.risk_level is RiskLevel.MEDIUM
    assert g.monitoring_enabled is False
    assert g.category == "Right Hindu Groups"
    assert g.id == "right_hindu_groups_1"
    assert g.source_row == 1
    assert g.description == "Group with 1200 members"


def test_empty_row_is_malformed():
    built = build_group(_row({"Organisation Type": "Nil", "Total Members": "-", "Email": None}), COLUMNS)
    assert built.group is None
    assert built.origin is None


def test_row_with_only_contact_still_emitted():
    built = build_group(_row({"Organisation Type": None, "Linked Phone Number": "98450 12345"}, ordinal=5), COLUMNS)
    g = built.group
    assert g is not None
    assert g.name == "Unknown Right Hindu Groups #5"
    assert g.name_origin is NameOrigin.SYNTHETIC_PLACEHOLDER
    assert g.platforms == frozenset()
    assert g.primary_platform is None
    assert g.contact.phone == "98450 12345"
    assert g.member_count == 0
    assert g.description == "Right Hindu Groups group"


def test_name_starting_with_column_label_is_kept():
    built = build_group(_row({"Name": "Name Change Trust", "Linked E-Mail ID": "Linked E-Mail ID info@nct.org"}), COLUMNS)
    assert built.group.name == "Name Change Trust"
    assert built.group.name_origin is NameOrigin.EXPLICIT
    assert built.group.contact.email == "info@nct.org"


def test_sentinels_never_reach_output_fields():
    row = _row({
        "Sl No": "3",
        "Organisation Type": "Seva Trust",
        "Twitter": "NIL",
        "Instagram": "-",
        "Physical Address": "Nil",
        "Linked E-Mail ID": "N/A",
        "Top Influencer IDS": "",
    })
    g = build_group(row, COLUMNS).group
    assert g.platforms == frozenset()
    assert g.social_links == {}
    assert g.location is None
    assert g.influencer_refs is None
    assert g.contact.is_empty()
    flat = repr(g.to_dict())
    for token in ("'NIL'", "'Nil'", "'-'", "'N/A'", "''"):
        assert token not in flat


def test_all_platforms_and_contact():
    row = _row(
        {
            "Facebook Page Name": "Kannada Yuva Vedike",
            "Followers": "107.7K",
            "Facebook Page Link": "https://facebook.com/kyv",
            "IN TWITTER": "https://twitter.com/kyv",
            "Instagram": "https://instagram.com/kyv",
            "Youtube ID": "https://youtube.com/@kyv",
            "Website": "https://kyv.example.org",
            "Email ID": "kyv@example.org",
            "Location": "Mysuru",
            "Top Influencers": "@a, @b",
        },
        sheet="Kannadda",
        ordinal=2,
    )
    g = build_group(row, COLUMNS).group
    assert g.platforms == frozenset({"facebook", "twitter", "instagram", "youtube"})
    assert list(g.social_links) == ["facebook", "twitter", "instagram", "youtube"]
    assert g.member_count == 107_700
    assert g.risk_level is RiskLevel.MEDIUM
    assert g.group_type is GroupType.CULTURAL
    assert g.contact.website == "https://kyv.example.org"
    assert g.contact.email == "kyv@example.org"
    assert g.location == "Mysuru"
    assert g.influencer_refs == "@a, @b"
    assert g.id == "kannadda_2"


def test_high_risk_sets_monitoring():
    g = build_group(_row({"Name": "Sri Rama Sena"}, sheet="Sheet1"), COLUMNS).group
    assert g.risk_level is RiskLevel.HIGH
    assert g.monitoring_enabled is True


def test_configured_sentinel_applies():
    row = _row({"Organisation Type": "Not Available"})
    assert build_group(row, COLUMNS, sentinels=build_sentinels(["not available"])).group is None


def test_reclassify_recomputes_from_name_and_size():
    g = build_group(_row({"Name": "Sample Trust"}, sheet="Sheet1"), COLUMNS).group
    assert g.risk_level is RiskLevel.LOW
    bigger = reclassify(replace(g, member_count=60_000, name="Sample Sena"))
    assert bigger.risk_level is RiskLevel.HIGH
    assert bigger.monitoring_enabled is True
    assert bigger.description == "Group with 60000 members"


def test_describe():
    assert describe(0, "Other Groups") == "Other Groups group"
    assert describe(5, "Other Groups") == "Group with 5 members"
