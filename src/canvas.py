"""Canvas session: the store plus the three views and their edit callbacks.

Views are recomputed from the store on every read (there are at most a few
hundred records), so table, kanban and gantt always come from the same
snapshot. Each callback reads one snapshot, runs one reconciler function and
writes the result back with a single store update.
"""
import copy
import logging
from datetime import date
from typing import Any, Dict, Iterable, List, Optional

import reconciler
from board import KanbanView, transform_to_kanban
from buckets import derive_buckets
from fields import resolve_record_ids
from gantt import GanttView, transform_to_gantt
from models import CanvasMetadata, CategoryBucket, FieldMapping, KanbanFeature
from roles import infer_field_mapping
from storage import CanvasDocument, Content, Storage
from store import CanvasStore
from table import PAGE_SIZE, TableView, transform_to_table

logger = logging.getLogger("canvas.session")

VIEW_KINDS = ('table', 'kanban', 'gantt')


class CanvasSession:
    def __init__(self, store: Optional[CanvasStore] = None, today: Optional[date] = None):
        self.store: CanvasStore = store or CanvasStore()
        self.today = today
        self._mapping_key: Any = None
        self._mapping: Optional[FieldMapping] = None

    @classmethod
    def from_document(cls, doc: CanvasDocument, today: Optional[date] = None) -> "CanvasSession":
        return cls(CanvasStore(doc.records, doc.metadata, doc.selection), today=today)

    @classmethod
    def from_content(cls, content: Content, today: Optional[date] = None) -> "CanvasSession":
        return cls.from_document(Storage.parse_canvas(content), today=today)

    def to_document(self) -> CanvasDocument:
        records = self.store.get_records()
        return CanvasDocument(
            records=records if isinstance(records, list) else [],
            raw_metadata=self._raw_metadata(),
            selection=self.store.get_selection(),
        )

    def _raw_metadata(self) -> Optional[Dict[str, Any]]:
        metadata = self.store.get_metadata()
        if metadata is None:
            return None
        components = []
        for comp in metadata.components:
            entry: Dict[str, Any] = {'type': comp.type, 'isVisible': comp.visible}
            if comp.column_field:
                entry['columnField'] = {'apiName': comp.column_field, 'allowedValues': list(comp.allowed_values)}
            for key, value in (('startDateField', comp.start_date_field), ('endDateField', comp.end_date_field),
                               ('groupByField', comp.group_by_field)):
                if value:
                    entry[key] = {'apiName': value}
            components.append(entry)
        return {'entityType': metadata.entity_type, 'components': components}

    # -------------------- derived state --------------------
    @property
    def records(self) -> Any:
        return self.store.get_records()

    @property
    def metadata(self) -> Optional[CanvasMetadata]:
        return self.store.get_metadata()

    @property
    def mapping(self) -> FieldMapping:
        """Field roles, recomputed only when the first record or metadata changes."""
        records = self.records
        first = records[0] if isinstance(records, list) and records else None
        key = (copy.deepcopy(first), self.metadata)
        if self._mapping is None or key != self._mapping_key:
            self._mapping = infer_field_mapping(first, self.metadata)
            self._mapping_key = key
        return self._mapping

    def buckets(self) -> List[CategoryBucket]:
        return derive_buckets(self.records, self.mapping, self.metadata)

    def table_view(self, query: Optional[str] = None, page: Optional[int] = None,
                   page_size: int = PAGE_SIZE) -> TableView:
        return transform_to_table(self.records, self.mapping, query=query, page=page, page_size=page_size)

    def kanban_view(self) -> KanbanView:
        return transform_to_kanban(self.records, self.mapping, self.buckets(), today=self.today)

    def gantt_view(self) -> GanttView:
        return transform_to_gantt(self.records, self.mapping, self.buckets(), today=self.today)

    def visible_views(self) -> List[str]:
        """Views the metadata enables; all of them when there is no metadata."""
        metadata = self.metadata
        if metadata is None or not metadata.components:
            return list(VIEW_KINDS)
        return [c.type for c in metadata.components if c.visible and c.type in VIEW_KINDS]

    def is_valid(self) -> bool:
        return isinstance(self.records, list)

    # -------------------- callbacks --------------------
    def _commit(self, records: Any, **siblings: Any) -> bool:
        before = self.records
        if records is before or (records == before and not siblings):
            return False
        logger.debug("records changed: %s", reconciler.changed_ids(before, records, self.mapping))
        self.store.set_records(records, **siblings)
        return True

    def on_cell_edit(self, record_id: str, field_key: str, value: Any) -> bool:
        return self._commit(reconciler.edit_cell(self.records, self.mapping, record_id, field_key, value))

    def on_record_edit(self, record_id: str, values: Dict[str, Any]) -> bool:
        return self._commit(reconciler.edit_record(self.records, self.mapping, record_id, values))

    def on_card_move(self, record_id: str, bucket_id: str) -> bool:
        return self._commit(reconciler.move_record(self.records, self.mapping, record_id, bucket_id))

    def on_feature_moves(self, features: Iterable[KanbanFeature]) -> bool:
        return self._commit(reconciler.apply_feature_moves(self.records, features, self.mapping, self.buckets()))

    def on_reschedule(self, record_id: str, start: date, end: Optional[date] = None) -> bool:
        return self._commit(reconciler.reschedule_record(self.records, self.mapping, record_id, start, end))

    def on_add(self, values: Optional[Dict[str, Any]] = None) -> bool:
        return self._commit(reconciler.add_record(self.records, values))

    def on_delete(self, ids: Optional[Iterable[str]] = None) -> bool:
        """Delete ids (default: the current selection); the selection follows the surviving records."""
        ids = list(self.store.get_selection() if ids is None else ids)
        if not ids:
            return False
        records = self.records
        updated = reconciler.delete_records(records, self.mapping, ids)
        if updated is records or updated == records:
            return False
        # deleting the first record can change the inferred roles
        after_mapping = infer_field_mapping(updated[0] if updated else None, self.metadata)
        selection = reconciler.remap_selection(
            self.store.get_selection(),
            resolve_record_ids(records, self.mapping),
            ids,
            resolve_record_ids(updated, after_mapping),
        )
        return self._commit(updated, selection=selection)

    def on_selection_change(self, ids: Iterable[str]) -> None:
        self.store.set_selection(ids)

    def toggle_selection(self, record_id: str) -> List[str]:
        selection = self.store.get_selection()
        if record_id in selection:
            selection.remove(record_id)
        else:
            selection.append(record_id)
        self.store.set_selection(selection)
        return selection
