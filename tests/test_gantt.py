from __future__ import annotations

from datetime import date

from gantt import UNASSIGNED, transform_to_gantt
from models import CanvasMetadata
from roles import mapping_for_batch
from theme import MARKER_CLASSES

TODAY = date(2025, 6, 1)


def test_features_carry_date_spans_and_statuses(list_records) -> None:
    view = transform_to_gantt(list_records, today=TODAY)
    assert [f.id for f in view.features] == ["Design", "Build", "Ship"]
    design = view.features[0]
    assert (design.start_at, design.end_at) == (date(2024, 1, 1), date(2024, 1, 10))
    assert design.status.id == "Todo"
    assert design.description == "notes for Design"
    assert [s.id for s in view.statuses] == ["Todo", "Doing", "Done"]
    assert view.span() == (date(2024, 1, 1), date(2024, 2, 3))


def test_reference_tables_are_deduplicated_by_name(list_records) -> None:
    view = transform_to_gantt(list_records, today=TODAY)
    ada_design, ada_build, grace = (f.owner for f in view.features)
    assert ada_design is ada_build
    assert grace["name"] == "Grace Hopper"
    assert [o["name"] for o in view.owners] == ["Ada Lovelace", "Grace Hopper"]
    assert view.features[0].product is view.features[2].product
    assert view.products == [{"id": "product-0", "name": "Canvas"}]
    assert view.features[1].product is None
    assert view.initiatives == []
    assert view.releases == []


def test_groups_default_to_the_category_and_sort_by_name(list_records) -> None:
    view = transform_to_gantt(list_records, today=TODAY)
    assert [g["name"] for g in view.groups] == ["Todo", "Doing", "Done"]
    assert view.groups[0]["id"] == "group-0"
    assert list(view.grouped()) == ["Doing", "Done", "Todo"]


def test_group_by_field_from_metadata(list_records) -> None:
    metadata = CanvasMetadata.from_dict({
        "components": [{"type": "gantt", "startDateField": {"apiName": "start"},
                        "endDateField": {"apiName": "end"}, "groupByField": {"apiName": "product"}}],
    })
    mapping = mapping_for_batch(list_records, metadata)
    view = transform_to_gantt(list_records, mapping, metadata=metadata, today=TODAY)
    assert [f.group["name"] for f in view.features] == ["Canvas", "Default", "Canvas"]
    assert view.features[0].group is view.features[2].group


def test_milestones_become_markers(list_records) -> None:
    markers = transform_to_gantt(list_records, today=TODAY).markers
    assert len(markers) == 1
    assert markers[0].id == "marker-1"
    assert markers[0].date == date(2024, 2, 1)
    assert markers[0].label == "Beta"
    assert markers[0].class_name == MARKER_CLASSES[1]


def test_single_date_field_gives_zero_length_span(map_records) -> None:
    view = transform_to_gantt(map_records, today=TODAY)
    feature = view.features[1]
    assert feature.start_at == feature.end_at == date(2024, 2, 1)
    assert feature.owner["name"] == UNASSIGNED
    assert feature.group["name"] == "Closed"


def test_unknown_status_and_missing_dates_still_project(list_records) -> None:
    for item in list_records[2]["fields"]:
        if item["apiName"] == "status":
            item["value"] = "Blocked"
        if item["apiName"] in ("start", "end"):
            item["value"] = "sometime"
    view = transform_to_gantt(list_records, today=TODAY)
    assert [s.id for s in view.statuses] == ["Todo", "Doing", "Done", "Blocked"]
    assert view.features[2].start_at == view.features[2].end_at == TODAY


def test_empty_and_invalid_input_gives_empty_view() -> None:
    for bad in ([], None, 42):
        view = transform_to_gantt(bad)
        assert view.features == []
        assert view.groups == []
        assert view.markers == []
        assert view.span() is None


def test_to_dict_is_json_ready(list_records) -> None:
    data = transform_to_gantt(list_records, today=TODAY).to_dict()
    assert data["features"][0]["start_at"] == "2024-01-01"
    assert data["features"][0]["status"]["id"] == "Todo"
    assert data["markers"][0]["date"] == "2024-02-01"
