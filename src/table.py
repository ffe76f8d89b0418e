"""Table projection: one column per field key seen anywhere in the batch, one row per record."""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from fields import normalize_record, resolve_record_ids, get_field_value, is_empty, to_text
from models import FieldMapping
from roles import mapping_for_batch

PAGE_SIZE = 10


@dataclass
class TableColumn:
    key: str
    label: str
    type: str = "text"


@dataclass
class TableRow:
    id: str
    values: Dict[str, Any] = field(default_factory=dict)

    def get(self, key: str, default: Any = "") -> Any:
        return self.values.get(key, default)


@dataclass
class TableView:
    columns: List[TableColumn] = field(default_factory=list)
    rows: List[TableRow] = field(default_factory=list)
    page: int = 0
    page_count: int = 1

    def to_dict(self) -> Dict[str, Any]:
        # resolved id last: a record field named "id" must not shadow it
        return {
            'columns': [{'key': c.key, 'label': c.label, 'type': c.type} for c in self.columns],
            'rows': [{**r.values, 'id': r.id} for r in self.rows],
            'page': self.page,
            'page_count': self.page_count,
        }


def transform_to_table(records: Any, mapping: Optional[FieldMapping] = None, query: Optional[str] = None,
                       page: Optional[int] = None, page_size: int = PAGE_SIZE) -> TableView:
    """Build the table view model.

    Columns are collected across every record, not just the first, because
    later records may introduce fields the first one lacks. Missing cells
    read as "". When query is given only matching rows are kept; ids are
    resolved over the whole batch first so filtering never renumbers them.
    With page set, only that page of the (filtered) rows is returned.
    """
    if not isinstance(records, list) or not records:
        return TableView()
    if mapping is None:
        mapping = mapping_for_batch(records)

    columns: Dict[str, TableColumn] = {}
    views = [normalize_record(r) for r in records]
    for view in views:
        for key, fld in view.fields.items():
            if key not in columns:
                columns[key] = TableColumn(key=key, label=fld.label or key, type=fld.type or 'text')

    rows: List[TableRow] = []
    for rid, record, view in zip(resolve_record_ids(records, mapping), records, views):
        if query and not matches_query(record, mapping, query):
            continue
        values = {}
        for key in columns:
            fld = view.fields.get(key)
            values[key] = '' if fld is None or fld.value is None else fld.value
        rows.append(TableRow(id=rid, values=values))
    table = TableView(columns=list(columns.values()), rows=rows)
    return table if page is None else paginate(table, page, page_size)


def paginate(view: TableView, page: int, page_size: int = PAGE_SIZE) -> TableView:
    """One page of the view's rows; page is clamped into range, page_size < 1 keeps every row."""
    if page_size < 1:
        return view
    count = max(1, -(-len(view.rows) // page_size))
    page = min(max(page, 0), count - 1)
    start = page * page_size
    return TableView(columns=view.columns, rows=view.rows[start:start + page_size], page=page, page_count=count)


def matches_query(record: Any, mapping: FieldMapping, query: str) -> bool:
    """Case-insensitive substring search over the mapped id/date/category/description fields."""
    needle = query.strip().lower()
    if not needle:
        return True
    keys = (mapping.id_field, mapping.date_field, mapping.category_field, mapping.description_field)
    for key in keys:
        value = get_field_value(record, key)
        if not is_empty(value) and needle in to_text(value).lower():
            return True
    return False


def filter_records(records: Any, mapping: FieldMapping, query: str) -> List[Any]:
    if not isinstance(records, list):
        return []
    return [r for r in records if matches_query(r, mapping, query)]


def sort_rows(rows: List[TableRow], key: str, descending: bool = False) -> List[TableRow]:
    """Rows sorted by one column; numbers compare numerically, blanks always last."""
    def sort_key(row: TableRow):
        value = row.get(key)
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return (0, value, '')
        return (1, 0, to_text(value).lower())

    filled = [r for r in rows if not is_empty(r.get(key))]
    blanks = [r for r in rows if is_empty(r.get(key))]
    return sorted(filled, key=sort_key, reverse=descending) + blanks
