from __future__ import annotations

from datetime import date

from fields import (
    get_field_value,
    get_field_value_by_priority,
    normalize_record,
    parse_date,
    resolve_record_ids,
    set_field_value,
    to_text,
)
from models import FieldMapping


def test_get_field_value_reads_both_record_shapes(map_records, list_records) -> None:
    assert get_field_value(map_records[0], "field3") == "Open"
    assert get_field_value(list_records[1], "title") == "Build"
    assert get_field_value({"title": "bare"}, "title") == "bare"


def test_missing_field_and_non_dict_records_read_as_none(map_records) -> None:
    assert get_field_value(map_records[0], "nope") is None
    assert get_field_value(None, "field1") is None
    assert get_field_value("garbage", "field1") is None
    assert get_field_value({"fields": ["junk", 3]}, "field1") is None


def test_priority_lookup_skips_empty_values() -> None:
    record = {
        "title": {"value": ""},
        "name": {"value": "   "},
        "subject": {"value": "Quarterly review"},
    }
    assert get_field_value_by_priority(record, ["title", "name", "subject"]) == "Quarterly review"
    assert get_field_value_by_priority(record, ["missing", "title"]) is None


def test_normalize_reads_type_and_allowed_values_from_either_place(map_records, list_records) -> None:
    view = normalize_record(map_records[0])
    assert view.shape == "map"
    assert view.fields["field3"].type == "dropdown"
    assert view.fields["field3"].allowed_values == ["Open", "Closed"]
    assert view.fields["field1"].label == "Id"

    listed = normalize_record(list_records[0])
    assert listed.shape == "list"
    assert listed.record_id == "a1"
    assert listed.keys()[:2] == ["title", "status"]
    assert listed.fields["status"].allowed_values == ["Todo", "Doing", "Done"]


def test_type_names_are_normalized() -> None:
    view = normalize_record({
        "a": {"type": "textArea", "value": "x"},
        "b": {"type": {"name": "Select", "allowedValues": [1, 2]}, "value": 1},
    })
    assert view.fields["a"].type == "textarea"
    assert view.fields["b"].type == "dropdown"
    assert view.fields["b"].allowed_values == ["1", "2"]


def test_set_field_value_copies_and_keeps_shape(map_records, list_records) -> None:
    updated = set_field_value(map_records[0], "field3", "Closed")
    assert updated["field3"]["value"] == "Closed"
    assert map_records[0]["field3"]["value"] == "Open"
    assert updated["field1"] == map_records[0]["field1"]

    listed = set_field_value(list_records[0], "status", "Done")
    assert get_field_value(listed, "status") == "Done"
    assert get_field_value(list_records[0], "status") == "Todo"

    added = set_field_value(list_records[0], "priority", "high")
    assert added["fields"][-1] == {"apiName": "priority", "label": "priority", "value": "high"}


def test_set_field_value_on_missing_map_field_uses_field_objects(map_records) -> None:
    updated = set_field_value(map_records[0], "field9", "x")
    assert updated["field9"] == {"apiName": "field9", "label": "field9", "value": "x"}
    flat = set_field_value({"title": "a"}, "owner", "b")
    assert flat == {"title": "a", "owner": "b"}


def test_resolved_ids_fall_back_and_stay_unique() -> None:
    mapping = FieldMapping(id_field="code")
    records = [
        {"code": {"value": "X"}},
        {"code": {"value": ""}},
        {"recordId": "rec-7", "fields": []},
        {"code": {"value": "X"}},
        "garbage",
    ]
    assert resolve_record_ids(records, mapping) == ["X", "item-1", "rec-7", "X#3", "item-4"]
    assert resolve_record_ids(None, mapping) == []


def test_parse_date_accepts_common_forms() -> None:
    assert parse_date("2024-01-01") == date(2024, 1, 1)
    assert parse_date("2024-01-01T10:30:00Z") == date(2024, 1, 1)
    assert parse_date("2024-03-05T00:00:00.000+02:00") == date(2024, 3, 5)
    assert parse_date(1704067200) == date(2024, 1, 1)
    assert parse_date(1704067200000) == date(2024, 1, 1)
    assert parse_date("next tuesday") is None
    assert parse_date("") is None
    assert parse_date(True) is None


def test_to_text() -> None:
    assert to_text(None) == ""
    assert to_text(3.0) == "3"
    assert to_text(False) == "false"
    assert to_text({"b": 1, "a": 2}) == '{"a": 2, "b": 1}'
