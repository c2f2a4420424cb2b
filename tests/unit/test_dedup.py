from __future__ import annotations

import pytest

from group_ingest.models.group import CanonicalGroup, Contact, NameOrigin, RiskLevel
from group_ingest.services.builder import reclassify
from group_ingest.services.dedup import deduplicate, merge_groups


def _group(gid: str = "s_1", **kw) -> CanonicalGroup:
    defaults = dict(
        id=gid,
        name="Unknown S #1",
        name_origin=NameOrigin.SYNTHETIC_PLACEHOLDER,
        source_sheet="S",
        source_row=1,
    )
    defaults.update(kw)
    return CanonicalGroup(**defaults)


def test_no_duplicates_passthrough_in_order():
    groups = [_group("a"), _group("b"), _group("c")]
    result = deduplicate(groups)
    assert [g.id for g in result.groups] == ["a", "b", "c"]
    assert result.collapsed == 0


def test_first_seen_non_absent_wins():
    first = _group(location=None, member_count=0, contact=Contact(phone="111"))
    second = _group(location="Mysuru", member_count=300, contact=Contact(phone="222", email="x@example.org"),
                    source_row=9, influencer_refs="@x")
    result = deduplicate([first, second])
    assert result.collapsed == 1
    (merged,) = result.groups
    assert merged.location == "Mysuru"
    assert merged.member_count == 300
    assert merged.contact == Contact(phone="111", email="x@example.org")
    assert merged.influencer_refs == "@x"
    assert merged.source_row == 1


def test_higher_confidence_name_wins():
    synthetic = _group()
    derived = _group(name="sample page", name_origin=NameOrigin.DERIVED_FROM_URL)
    explicit = _group(name="Sample Trust", name_origin=NameOrigin.EXPLICIT)
    merged = deduplicate([synthetic, derived, explicit]).groups[0]
    assert (merged.name, merged.name_origin) == ("Sample Trust", NameOrigin.EXPLICIT)


def test_name_tie_keeps_first_seen():
    a = _group(name="First Org", name_origin=NameOrigin.EXPLICIT)
    b = _group(name="Second Org", name_origin=NameOrigin.EXPLICIT)
    assert deduplicate([a, b]).groups[0].name == "First Org"


def test_social_links_merge_per_platform():
    a = _group(social_links={"twitter": "https://twitter.com/a"}, platforms=frozenset({"twitter"}))
    b = _group(
        social_links={"facebook": "https://facebook.com/b", "twitter": "https://twitter.com/b"},
        platforms=frozenset({"facebook", "twitter"}),
    )
    merged = deduplicate([a, b]).groups[0]
    assert merged.social_links == {"facebook": "https://facebook.com/b", "twitter": "https://twitter.com/a"}
    assert list(merged.social_links) == ["facebook", "twitter"]
    assert merged.platforms == frozenset({"facebook", "twitter"})
    assert merged.primary_platform == "facebook"


def test_inputs_not_mutated():
    a = _group(social_links={"twitter": "t"}, platforms=frozenset({"twitter"}))
    b = _group(social_links={"facebook": "f"}, platforms=frozenset({"facebook"}))
    deduplicate([a, b])
    assert a.social_links == {"twitter": "t"}
    assert b.social_links == {"facebook": "f"}


def test_merged_record_reclassified():
    small = _group(name="Sample Trust", name_origin=NameOrigin.EXPLICIT, source_sheet="Sheet1")
    big = _group(name="Sample Trust", name_origin=NameOrigin.EXPLICIT, source_sheet="Sheet1", member_count=90_000)
    untouched = _group("other", name="Sri Rama Sena", name_origin=NameOrigin.EXPLICIT, source_sheet="Sheet1")
    result = deduplicate([small, big, untouched], reclassify=reclassify)
    merged, other = result.groups
    assert merged.member_count == 90_000
    assert merged.risk_level is RiskLevel.MEDIUM
    # 統合されていないレコードは再分類しない
    assert other is untouched


def test_merge_rejects_different_ids():
    with pytest.raises(ValueError):
        merge_groups(_group("a"), _group("b"))
