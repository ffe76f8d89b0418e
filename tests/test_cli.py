from __future__ import annotations

import json
import sys
from datetime import date

import pytest

from canvas import CanvasSession
from cli import CLI
from render import visible_len
from main import main
from storage import Storage


@pytest.fixture
def cli(tmp_path, map_records):
    path = tmp_path / "canvas.json"
    session = CanvasSession.from_content({"data": map_records}, today=date(2025, 6, 1))
    return CLI(session, path)


def test_move_matches_columns_case_insensitively_and_saves(cli) -> None:
    assert cli.handle_command("mv R1 closed") is None
    saved = json.loads(cli.path.read_text())
    assert saved["data"][0]["field3"]["value"] == "Closed"
    assert "already in" in cli.handle_command("mv R1 Closed")


def test_set_add_and_remove(cli) -> None:
    assert cli.handle_command("set R2 field4 2024-03-01") is None
    assert cli.handle_command("add Third item") is None
    ids = [r.id for r in cli.session.table_view().rows]
    assert ids == ["R1", "R2", "Third item"]
    assert cli.handle_command("rm R1,") is None
    doc = Storage.load_canvas(cli.path)
    assert [r["field1"]["value"] for r in doc.records] == ["R2", "Third item"]
    assert doc.records[0]["field4"]["value"] == "2024-03-01"


def test_selection_then_remove(cli) -> None:
    assert cli.handle_command("sel R2") == "Selected: R2"
    assert cli.handle_command("rm") is None
    assert [r.id for r in cli.session.table_view().rows] == ["R1"]
    assert cli.session.store.get_selection() == []
    assert cli.handle_command("rm").startswith("Usage")


def test_views_render_record_ids(cli) -> None:
    for view in ("table", "k", "gantt"):
        assert cli.handle_command(f"view {view}") is None
        text = "\n".join(cli.render_lines(term_width=80))
        assert "R1" in text and "R2" in text
    assert cli.view == "gantt"
    assert all(visible_len(line) <= 80 for line in cli.render_lines(term_width=80))


def test_find_filters_the_table(cli) -> None:
    cli.handle_command("find closed")
    assert cli.view == "table"
    text = "\n".join(cli.render_lines(term_width=80))
    assert "R2" in text and "R1" not in text
    cli.handle_command("find")
    assert cli.query is None


def test_roles_and_bad_input(cli) -> None:
    assert "category: field3" in cli.handle_command("roles")
    assert cli.handle_command("frobnicate").startswith("Unknown command")
    assert cli.handle_command("view nowhere").startswith("Usage")
    assert cli.handle_command("mv R1").startswith("Usage")


def test_exit_leaves_an_unreadable_file_alone(tmp_path, monkeypatch) -> None:
    path = tmp_path / "canvas.json"
    path.write_text("this is not json")
    monkeypatch.setenv("CANVAS_ALT_SCREEN", "0")
    monkeypatch.setattr(sys, "argv", ["canvas-cli", str(path)])
    monkeypatch.setattr("builtins.input", lambda prompt="": "exit")
    main()
    assert path.read_text() == "this is not json"


def test_save_only_writes_after_a_change(cli) -> None:
    cli.save()
    assert not cli.path.exists()
    assert cli.handle_command("mv R1 Open").startswith("Record R1")
    assert not cli.path.exists()
    cli.handle_command("mv R1 Closed")
    assert cli.path.exists()


def test_add_puts_the_title_in_a_name_field(tmp_path) -> None:
    records = [{
        "field1": {"value": "R1", "type": "text"},
        "title": {"value": "Existing", "type": "text"},
    }]
    cli = CLI(CanvasSession.from_content(records), tmp_path / "canvas.json")
    assert cli.handle_command("add Write report") is None
    added = cli.session.records[1]
    assert added["title"]["value"] == "Write report"
    assert added["field1"]["value"] == ""
    assert [r.id for r in cli.session.table_view().rows] == ["R1", "item-1"]


def test_table_pages(cli) -> None:
    cli.page_size = 1
    text = "\n".join(cli.render_lines(term_width=80))
    assert "R1" in text and "R2" not in text and "page 1/2" in text
    assert cli.handle_command("next") is None
    text = "\n".join(cli.render_lines(term_width=80))
    assert "R2" in text and "page 2/2" in text
    assert cli.handle_command("next") == "No more pages."
    assert cli.handle_command("prev") is None
    assert cli.page == 0
    cli.handle_command("view kanban")
    assert cli.handle_command("next") == "Paging applies to the table view."
