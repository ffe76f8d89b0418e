from __future__ import annotations

import pytest

from models import CanvasMetadata
from store import CanvasStore


def test_update_merges_shallowly() -> None:
    store = CanvasStore(records=[{"a": 1}], selection=["x", "x", "y"])
    assert store.get_selection() == ["x", "y"]
    store.update(records=[{"a": 2}])
    assert store.get_records() == [{"a": 2}]
    assert store.get_selection() == ["x", "y"]
    assert store.get_metadata() is None
    assert store.version == 1


def test_listeners_see_fully_applied_state() -> None:
    store = CanvasStore()
    seen = []
    store.subscribe(lambda state: seen.append((state["records"], state["selection"])))
    store.set_records([{"a": 1}], selection=["r1"])
    assert seen == [([{"a": 1}], ["r1"])]


def test_update_from_listener_is_queued() -> None:
    store = CanvasStore()
    order = []

    def first(state):
        order.append(("first", state["selection"]))
        if state["selection"] == ["a"]:
            store.set_selection(["a", "b"])

    def second(state):
        order.append(("second", state["selection"]))

    store.subscribe(first)
    store.subscribe(second)
    store.set_selection(["a"])
    assert order == [
        ("first", ["a"]),
        ("second", ["a"]),
        ("first", ["a", "b"]),
        ("second", ["a", "b"]),
    ]
    assert store.get_selection() == ["a", "b"]


def test_unsubscribe_stops_notifications() -> None:
    store = CanvasStore()
    calls = []
    unsubscribe = store.subscribe(calls.append)
    store.update(records=[])
    unsubscribe()
    unsubscribe()
    store.update(records=[1])
    assert len(calls) == 1


def test_subscribe_rejects_non_callables() -> None:
    with pytest.raises(TypeError):
        CanvasStore().subscribe("not callable")


def test_snapshot_is_detached() -> None:
    store = CanvasStore(selection=["a"])
    snapshot = store.snapshot()
    snapshot["selection"].append("b")
    assert store.get_selection() == ["a"]


def test_reset_clears_selection() -> None:
    store = CanvasStore(records=[1], selection=["a"])
    store.reset([2, 3])
    assert store.get_records() == [2, 3]
    assert store.get_selection() == []
    assert repr(store) == "CanvasStore(records=2, selection=0, version=1)"


def test_set_metadata_keeps_records() -> None:
    store = CanvasStore(records=[1])
    metadata = CanvasMetadata(entity_type="task")
    store.set_metadata(metadata)
    assert store.get_metadata() is metadata
    assert store.get("records") == [1]
