from __future__ import annotations

import pytest

from hubprop.services.normalizer import field_type_choices, get_field_type, normalize_table


def test_normalize_inserts_field_type_and_hidden():
    table = normalize_table(
        ["Name", "Internal Name", "Type", "Group Name"],
        [["Email", "email", "string", "contactinformation"]],
        exclude_defaults=True,
    )
    assert table is not None
    assert list(table.headers) == ["Name", "Internal Name", "Type", "Field Type", "Group Name", "Hidden"]
    assert list(table.rows[0]) == ["Email", "email", "string", "text", "contactinformation", "false"]


def test_normalize_empty_input_returns_none():
    assert normalize_table([], [["a"]], exclude_defaults=True) is None
    assert normalize_table(["Name"], [], exclude_defaults=True) is None


def test_normalize_drops_excluded_columns_case_insensitive():
    headers = ["Name", "DELETED", "Usages", "Read Only Value", "External options", "Type"]
    rows = [["A", "false", "3", "x", "y", "number"]]
    table = normalize_table(headers, rows, exclude_defaults=False)
    assert list(table.headers) == ["Name", "Type", "Field Type", "Hidden"]
    assert list(table.rows[0]) == ["A", "number", "number", "false"]


def test_normalize_drops_blank_header_columns():
    table = normalize_table(["Name", "", "Hidden"], [["A", "junk", "true"]], exclude_defaults=False)
    assert list(table.headers) == ["Name", "Hidden"]
    assert list(table.rows[0]) == ["A", "true"]


def test_normalize_pads_short_rows():
    table = normalize_table(["Name", "Type", "Description"], [["A"]], exclude_defaults=False)
    assert list(table.rows[0]) == ["A", "", "text", "", "false"]
    assert all(len(r) == len(table.headers) for r in table.rows)


def test_normalize_keeps_existing_field_type_and_hidden():
    headers = ["Name", "Type", "Field type", "hidden"]
    rows = [["A", "enumeration", "radio", "true"]]
    table = normalize_table(headers, rows, exclude_defaults=False)
    assert list(table.headers) == headers
    assert list(table.rows[0]) == ["A", "enumeration", "radio", "true"]


def test_normalize_without_type_column_adds_only_hidden():
    table = normalize_table(["Name"], [["A"]], exclude_defaults=False)
    assert list(table.headers) == ["Name", "Hidden"]


def test_default_property_filter_uses_original_column():
    headers = ["Name", "HubSpot defined", "Type"]
    rows = [
        ["Email", "TRUE", "string"],
        ["Custom", "false", "number"],
        ["Other", "", "date"],
    ]
    table = normalize_table(headers, rows, exclude_defaults=True)
    assert [r[0] for r in table.rows] == ["Custom", "Other"]
    assert "HubSpot defined" not in table.headers


def test_default_property_filter_disabled_keeps_rows():
    headers = ["Name", "HubSpot defined"]
    rows = [["Email", "true"], ["Custom", "false"]]
    table = normalize_table(headers, rows, exclude_defaults=False)
    assert [r[0] for r in table.rows] == ["Email", "Custom"]


def test_normalize_is_idempotent():
    headers = ["Name", "Type", "HubSpot defined", "Options"]
    rows = [["A", "bool", "false", ""], ["B", "enumeration", "true", "[]"]]
    for exclude in (False, True):
        once = normalize_table(headers, rows, exclude_defaults=exclude)
        twice = normalize_table(once.headers, once.rows, exclude_defaults=exclude)
        assert twice == once


@pytest.mark.parametrize(
    "type_,expected",
    [
        ("string", "text"),
        ("NUMBER", "number"),
        ("date", "date"),
        ("DateTime", "date"),
        ("bool", "booleancheckbox"),
        ("boolean", "booleancheckbox"),
        ("enumeration", "select"),
        ("phone_number", "text"),
        ("", "text"),
    ],
)
def test_get_field_type(type_, expected):
    assert get_field_type(type_) == expected


def test_field_type_choices():
    assert field_type_choices("enumeration") == ("select", "radio", "checkbox")
    assert field_type_choices("string") == ("text", "textarea", "file", "calculation_equation")
    assert field_type_choices("datetime") == ("date",)
