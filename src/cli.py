"""Command-line interface loop over a canvas file.

One view (table, kanban or gantt) is shown at a time; every edit goes
through the session callbacks, so switching views afterwards shows the
same data. The canvas file is saved after each command that changes it.
"""
import logging
from pathlib import Path
from typing import List, Optional

from board import NAME_FIELDS
from canvas import CanvasSession, VIEW_KINDS
from fields import normalize_record
from render import render
from roles import describe_mapping
from storage import Storage
from table import PAGE_SIZE
from theme import setting, truthy


# --- terminal control helpers ---
# ESC[3J (scrollback), ESC[H (home), ESC[2J (screen), ESC[H (home); 3J first
def _clear_screen() -> None:
    print("\033[3J\033[H\033[2J\033[H", end="", flush=True)


def _enter_alt_screen() -> None:
    print("\033[?1049h", end="", flush=True)


def _leave_alt_screen() -> None:
    print("\033[?1049l", end="", flush=True)


VIEW_ALIASES = {
    't': 'table',
    'table': 'table',
    'k': 'kanban',
    'kanban': 'kanban',
    'g': 'gantt',
    'gantt': 'gantt',
}
MUTATING = {'mv', 'set', 'add', 'rm', 'sel'}


def _page_size() -> int:
    try:
        return int(setting("CANVAS_PAGE_SIZE") or PAGE_SIZE)
    except ValueError:
        return PAGE_SIZE


class CLI:
    def __init__(self, session: CanvasSession, path: Optional[Path] = None, load_error: Optional[str] = None):
        self.session: CanvasSession = session
        self.path = path
        # nothing is written back until the session changes; an unreadable file stays as it was
        self.saved_version: int = session.store.version
        self.page: int = 0
        self.page_size: int = _page_size()
        visible = session.visible_views()
        self.view: str = visible[0] if visible else 'table'
        self.query: Optional[str] = None
        self.message: Optional[str] = None if load_error is None else f"Could not read the canvas file: {load_error}"
        # Alt screen default ON; disable with CANVAS_ALT_SCREEN=0 (or false/no/off)
        self.alt_screen: bool = truthy(setting("CANVAS_ALT_SCREEN"), True)

    def run(self) -> None:
        """Main REPL loop; the current view is cleared/redrawn each cycle."""
        exit_message: Optional[str] = None
        if self.alt_screen:
            _enter_alt_screen()
        try:
            while True:
                _clear_screen()
                self.display()
                line = input("\n: ").strip()
                if not line:
                    continue
                lower = line.lower()
                if lower == 'help':
                    _clear_screen()
                    self._help()
                    input("\nPress Enter to return to the canvas...")
                    continue
                if lower == 'exit':
                    self.save()
                    exit_message = "Goodbye."
                    break
                self.message = self.handle_command(line)
        except (KeyboardInterrupt, EOFError):
            self.save()
            exit_message = "Interrupted. Goodbye."
        finally:
            if self.alt_screen:
                _leave_alt_screen()
            if exit_message:
                print(exit_message)

    def display(self) -> None:
        print(f"Canvas [{self.view}]" + (f"  filter: {self.query!r}" if self.query else ''))
        for line in self.render_lines():
            print(line)
        if self.message:
            print(f"\n{self.message}")
            self.message = None

    def render_lines(self, term_width: int = 0) -> List[str]:
        if not self.session.is_valid():
            return ['(invalid data: canvas records are not a list)']
        if self.view == 'table':
            view = self.session.table_view(self.query, page=self.page, page_size=self.page_size)
            self.page = view.page
        elif self.view == 'kanban':
            view = self.session.kanban_view()
        else:
            view = self.session.gantt_view()
        return render(self.view, view, self.session.store.get_selection(), term_width)

    def save(self) -> None:
        """Write the canvas file if the session changed since the last write."""
        if not self.session.is_valid() or self.session.store.version == self.saved_version:
            return
        Storage.save_canvas(self.session.to_document(), self.path)
        self.saved_version = self.session.store.version

    # -------------------- command dispatch --------------------
    def handle_command(self, line: str) -> Optional[str]:
        """Run one command line; returns a message to show, or None."""
        tokens = line.split()
        if not tokens:
            return None
        cmd = tokens[0].lower()
        handler = getattr(self, f'_cmd_{cmd}', None)
        if handler is None:
            return "Unknown command. Type 'help' for instructions."
        result = handler(tokens)
        if cmd in MUTATING:
            self.save()
        return result

    # ---- individual command helpers ----
    def _cmd_view(self, tokens: List[str]) -> Optional[str]:
        if len(tokens) != 2 or tokens[1].lower() not in VIEW_ALIASES:
            return f"Usage: view <{'|'.join(VIEW_KINDS)}>"
        self.view = VIEW_ALIASES[tokens[1].lower()]
        return None

    def _cmd_mv(self, tokens: List[str]) -> Optional[str]:
        if len(tokens) < 3:
            return "Usage: mv <id> <column>"
        record_id, bucket = tokens[1], ' '.join(tokens[2:])
        known = {b.id.lower(): b.id for b in self.session.kanban_view().columns}
        bucket = known.get(bucket.lower(), bucket)
        if not self.session.on_card_move(record_id, bucket):
            return f'Record {record_id} not found or already in "{bucket}".'
        return None

    def _cmd_set(self, tokens: List[str]) -> Optional[str]:
        if len(tokens) < 3:
            return "Usage: set <id> <field> <value...>"
        record_id, field_key, value = tokens[1], tokens[2], ' '.join(tokens[3:])
        if not self.session.on_cell_edit(record_id, field_key, value):
            return f'Record {record_id} not found or unchanged.'
        return None

    def _cmd_add(self, tokens: List[str]) -> Optional[str]:
        values = {}
        if len(tokens) > 1:  # inline title
            values[self._title_field()] = ' '.join(tokens[1:]).strip()
        if not self.session.on_add(values):
            return "Nothing to add to: the canvas has no record to copy fields from."
        return None

    def _title_field(self) -> str:
        """First name-like field of the record new ones are cloned from, else the id field."""
        records = self.session.records
        template = next((r for r in records if isinstance(r, dict)), None)
        keys = normalize_record(template).fields if template is not None else {}
        return next((k for k in NAME_FIELDS if k in keys), self.session.mapping.id_field)

    def _cmd_rm(self, tokens: List[str]) -> Optional[str]:
        ids = [t.rstrip('.,') for t in tokens[1:]]
        if not ids and not self.session.store.get_selection():
            return "Usage: rm <id...> (or select records first with 'sel')"
        if not self.session.on_delete(ids or None):
            return "No matching records."
        return None

    def _cmd_sel(self, tokens: List[str]) -> Optional[str]:
        if len(tokens) == 1:
            self.session.on_selection_change([])
            return "Selection cleared."
        for record_id in tokens[1:]:
            self.session.toggle_selection(record_id.rstrip('.,'))
        return f"Selected: {', '.join(self.session.store.get_selection()) or '(none)'}"

    def _cmd_find(self, tokens: List[str]) -> Optional[str]:
        self.query = ' '.join(tokens[1:]).strip() or None
        self.view = 'table'
        self.page = 0
        return None

    def _cmd_next(self, tokens: List[str]) -> Optional[str]:
        return self._turn_page(1)

    def _cmd_prev(self, tokens: List[str]) -> Optional[str]:
        return self._turn_page(-1)

    def _turn_page(self, step: int) -> Optional[str]:
        if self.view != 'table':
            return "Paging applies to the table view."
        view = self.session.table_view(self.query, page=self.page, page_size=self.page_size)
        target = view.page + step
        if target < 0 or target >= view.page_count:
            return "No more pages."
        self.page = target
        return None

    def _cmd_roles(self, tokens: List[str]) -> Optional[str]:
        return '\n'.join(describe_mapping(self.session.mapping))

    # -------------------- help --------------------
    def _help(self) -> None:
        print("Commands:")
        print("  view <table|kanban|gantt>   Switch view (aliases: t, k, g)")
        print("  mv <id> <column>            Move a record to another column")
        print("  set <id> <field> <value>    Edit one field of a record")
        print("  add [title...]              Add a record shaped like the first one")
        print("  rm [id...]                  Remove records (default: the selection)")
        print("  sel [id...]                 Toggle selection; 'sel' alone clears it")
        print("  find [text]                 Filter the table; 'find' alone clears it")
        print("  next / prev                 Page through the table")
        print("  roles                       Show which fields play which role")
        print("  help                        Show this help (press Enter to return)")
        print("  exit                        Save and exit")


def configure_logging() -> None:
    level = (setting("CANVAS_LOG_LEVEL") or "WARNING").upper()
    logging.basicConfig(level=getattr(logging, level, logging.WARNING),
                        format="%(asctime)s %(name)s %(levelname)s %(message)s")
