from __future__ import annotations

import pytest

from woo_sync.models.product_data import AttributeSpec, IdentifyingAttribute
from woo_sync.services.attributes import (
    AttributeDefinitionError,
    attribute_options,
    format_attribute,
    identifying_attribute_entry,
    merge_attributes,
    split_escaped,
)


def test_split_escaped_keeps_escaped_commas() -> None:
    assert split_escaped("Acids\\, Bases,Solvents") == ["Acids, Bases", "Solvents"]


@pytest.mark.parametrize(
    "text,expected",
    [
        ("single", ["single"]),
        ("a,b,c", ["a", "b", "c"]),
        ("a\\,b\\,c", ["a,b,c"]),
        ("", [""]),
    ],
)
def test_split_escaped_cases(text, expected) -> None:
    assert split_escaped(text) == expected


def test_attribute_options_blank_is_sentinel() -> None:
    assert attribute_options(AttributeSpec("Storage", None)) == ["N/A"]
    assert attribute_options(AttributeSpec("Storage", "  ")) == ["N/A"]
    assert attribute_options(AttributeSpec("Storage", "-20C, dry")) == ["-20C", " dry"]


def test_format_attribute(definitions) -> None:
    spec = AttributeSpec("Functional Group", "Amine", visible=False, position=9)
    assert format_attribute(spec, definitions) == {
        "id": 10,
        "name": "Functional Group",
        "visible": False,
        "variation": False,
        "position": 9,
        "options": ["Amine"],
    }


def test_format_attribute_without_definition(definitions) -> None:
    with pytest.raises(AttributeDefinitionError, match="Unknown"):
        format_attribute(AttributeSpec("Unknown", "x"), definitions)


def test_identifying_attribute_entry(definitions) -> None:
    entry = identifying_attribute_entry(IdentifyingAttribute("Item #", "X1-A"), definitions, ["X1-A"])
    assert entry == {
        "id": 1,
        "name": "Item #",
        "options": ["X1-A"],
        "position": 0,
        "visible": False,
        "variation": True,
    }


def test_merge_overwrites_same_name_and_appends_new(definitions) -> None:
    remote = [
        {"id": 4, "name": "CAS Number", "options": ["1-1-1"], "visible": True},
        {"id": 1, "name": "Item #", "options": ["X1-A"], "variation": True},
    ]
    desired = [
        AttributeSpec("CAS Number", "2-2-2", position=3),
        AttributeSpec("Storage", "RT", position=7),
    ]

    merged, changed = merge_attributes(remote, desired, definitions)

    assert changed == ["CAS Number", "Storage"]
    assert [a["name"] for a in merged] == ["CAS Number", "Item #", "Storage"]
    assert merged[0]["options"] == ["2-2-2"]
    assert merged[0]["visible"] is True
    assert merged[2]["id"] == 8
    # input is not modified
    assert remote[0]["options"] == ["1-1-1"]


def test_merge_unchanged_reports_nothing(definitions) -> None:
    remote = [{"id": 4, "name": "CAS Number", "options": ["64-19-7"]}]
    merged, changed = merge_attributes(remote, [AttributeSpec("CAS Number", "64-19-7")], definitions)
    assert changed == []
    assert merged == remote
