import pytest

from fieldthemes.utils.record_validation import (
    format_issues,
    validate_template_refs,
    validate_theme_record,
)


def make_valid_record():
    return {
        "id": "meadow",
        "name": "Meadow",
        "description": "Grass, rocks and a few trees",
        "skip_ground_layer": True,
        "skip_bench_layer": True,
        "entries": [
            {
                "zone": "back_left",
                "template": "themes/Meadow/Rock",
                "position_offset": [-3.2, -4.6, 0.0],
                "rotation": [0.0, 0.0, 45.0],
                "scale": [1.0, 1.0, 1.0],
            },
            {
                "zone": "surrounding",
                "template": "themes/Meadow/Tree",
                "position_offset": [12, 0, 0],
                "rotation": [0, 0, 0],
                "scale": [2, 2, 2],
            },
        ],
    }


def test_valid_record_passes():
    ok, issues = validate_theme_record(make_valid_record())
    assert ok, f"Unexpected issues: {[str(i) for i in issues]}"


def test_empty_entries_are_allowed():
    data = make_valid_record()
    data["entries"] = []
    ok, _ = validate_theme_record(data)
    assert ok


def test_non_object_record():
    ok, issues = validate_theme_record(["not", "a", "record"])
    assert not ok
    assert issues[0].code == "type"


def test_missing_required_fields():
    ok, issues = validate_theme_record({"description": "x"})
    assert not ok
    msgs = [i.message for i in issues if i.code == "required"]
    assert any("id" in m for m in msgs)
    assert any("name" in m for m in msgs)
    assert any("entries" in m for m in msgs)


def test_id_must_be_slug():
    data = make_valid_record()
    data["id"] = "Meadow Theme"
    ok, issues = validate_theme_record(data)
    assert not ok
    assert any(i.path == "$.id" and i.code == "format" for i in issues)


def test_skip_flags_must_be_boolean():
    data = make_valid_record()
    data["skip_bench_layer"] = "yes"
    ok, issues = validate_theme_record(data)
    assert not ok
    assert any(i.path == "$.skip_bench_layer" for i in issues)


@pytest.mark.parametrize(
    "field, value",
    [
        ("position_offset", [1.0, 2.0]),
        ("rotation", [0.0, True, 0.0]),
        ("scale", [1.0, float("nan"), 1.0]),
        ("scale", "1,1,1"),
    ],
)
def test_entry_vectors_must_be_three_finite_numbers(field, value):
    data = make_valid_record()
    data["entries"][1][field] = value
    ok, issues = validate_theme_record(data)
    assert not ok
    assert any(i.path == f"$.entries[1].{field}" and i.code == "vec3" for i in issues)


def test_entry_zone_and_template_checked():
    data = make_valid_record()
    data["entries"][0]["zone"] = "moon"
    data["entries"][0]["template"] = "  "
    ok, issues = validate_theme_record(data)
    assert not ok
    paths = {i.path: i.code for i in issues}
    assert paths["$.entries[0].zone"] == "enum"
    assert paths["$.entries[0].template"] == "required"


def test_format_issues_lists_one_line_per_issue():
    data = make_valid_record()
    data["entries"] = "oops"
    data["name"] = ""
    ok, issues = validate_theme_record(data)
    assert not ok
    text = format_issues(issues)
    assert text.splitlines() == [f"- {i}" for i in issues]
    assert "- $.entries: entries must be an array, got: str (type)" in text


def test_template_refs_checked_against_library():
    known = {"themes/Meadow/Rock"}
    issues = validate_template_refs(make_valid_record(), known.__contains__)
    assert len(issues) == 1
    assert issues[0].path == "$.entries[1].template"
    assert issues[0].code == "dangling"
