from __future__ import annotations

import copy

import pytest


def make_field(api_name, value, type_name=None, label=None, allowed=None):
    field = {"apiName": api_name, "label": label or api_name, "value": value}
    if type_name is not None:
        field["type"] = {"name": type_name}
        if allowed is not None:
            field["type"]["allowedValues"] = list(allowed)
    return field


@pytest.fixture
def map_records():
    """Two map-shaped records: id, dropdown status with declared values, date."""
    return [
        {
            "field1": make_field("field1", "R1", "text", "Id"),
            "field3": make_field("field3", "Open", "dropdown", "Status", ["Open", "Closed"]),
            "field4": make_field("field4", "2024-01-01", "date", "Due"),
        },
        {
            "field1": make_field("field1", "R2", "text", "Id"),
            "field3": make_field("field3", "Closed", "dropdown", "Status"),
            "field4": make_field("field4", "2024-02-01", "date", "Due"),
        },
    ]


@pytest.fixture
def list_records():
    """Three list-shaped records with a date span, owners and gantt extras."""
    def record(rid, title, status, start, end, owner, **extra):
        fields = [
            {"apiName": "title", "label": "Title", "value": title, "type": "text"},
            {"apiName": "status", "label": "Status", "value": status, "type": "dropdown",
             "allowedValues": ["Todo", "Doing", "Done"]},
            {"apiName": "start", "label": "Start", "value": start, "type": "date"},
            {"apiName": "end", "label": "End", "value": end, "type": "date"},
            {"apiName": "notes", "label": "Notes", "value": f"notes for {title}", "type": "textarea"},
            {"apiName": "owner", "label": "Owner", "value": owner, "type": "text"},
        ]
        for key, value in extra.items():
            fields.append({"apiName": key, "label": key, "value": value, "type": "text"})
        return {"recordId": rid, "fields": fields}

    return [
        record("a1", "Design", "Todo", "2024-01-01", "2024-01-10", "Ada Lovelace", product="Canvas"),
        record("a2", "Build", "Doing", "2024-01-05", "2024-02-01", "Ada Lovelace",
               milestone="2024-02-01", milestoneName="Beta"),
        record("a3", "Ship", "Done", "2024-02-02", "2024-02-03", "Grace Hopper", product="Canvas"),
    ]


@pytest.fixture
def frozen(map_records):
    return copy.deepcopy(map_records)
