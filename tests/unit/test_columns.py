from __future__ import annotations

from group_ingest.sources.columns import DEFAULT_COLUMN_CANDIDATES, ColumnMapping, column_key


def test_logical_fields():
    assert set(DEFAULT_COLUMN_CANDIDATES) == {
        "serial", "name", "members", "influencers", "facebook", "twitter",
        "instagram", "youtube", "website", "address", "phone", "email",
    }


def test_first_present_non_absent_candidate_wins():
    mapping = ColumnMapping()
    values = {"Organisation Type": None, "Facebook Page Name": "Page Name Org", "Name": "Other"}
    assert mapping.pick(values, "name") == "Page Name Org"
    assert mapping.locate(values, "name") == ("Facebook Page Name", "Page Name Org")


def test_label_matching_ignores_case_and_spacing():
    mapping = ColumnMapping()
    values = {" facebook  profile URL ": "https://facebook.com/x"}
    assert mapping.pick(values, "facebook") == "https://facebook.com/x"
    assert column_key("  Total\tMembers ") == "total members"


def test_missing_field_is_absent():
    mapping = ColumnMapping()
    assert mapping.pick({"Something": "x"}, "email") is None
    assert mapping.locate({}, "email") == (None, None)
    assert mapping.pick({}, "no_such_field") is None


def test_global_override_replaces_and_source_override_goes_first():
    mapping = ColumnMapping.build(
        {"members": ("Strength",)},
        {"name": ("ORG NAME", "Name")},
    )
    assert mapping.columns_for("members") == ("Strength",)
    name_candidates = mapping.columns_for("name")
    assert name_candidates[:2] == ("ORG NAME", "Name")
    assert name_candidates.count("Name") == 1
    assert "Organisation Type" in name_candidates
    # 既定値は変更されない
    assert DEFAULT_COLUMN_CANDIDATES["members"] == ("Total Members", "Members", "Followers")


def test_known_labels_casefolded():
    labels = ColumnMapping().known_labels()
    assert "organisation type" in labels
    assert "linked e-mail id" in labels
