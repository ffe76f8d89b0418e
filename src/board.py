"""Kanban projection: records grouped into category columns.

Every record becomes exactly one card. A card's column is its category
value; records with no value land in the first declared column, or in a
synthesized "Default" column when nothing is declared. Values that were
never declared get their own ad hoc column.
"""
from dataclasses import replace
from datetime import date
from typing import Any, Dict, List, Optional, Sequence, Tuple
from urllib.parse import quote
import re

from buckets import DEFAULT_BUCKET, derive_buckets, ensure_buckets
from fields import (get_field_value, get_field_value_by_priority, iter_fields, is_empty,
                    parse_date, resolve_record_ids, to_text)
from models import CanvasMetadata, CategoryBucket, FieldMapping, KanbanFeature
from roles import mapping_for_batch

NAME_FIELDS = ('title', 'name', 'subject')
DESCRIPTION_FIELDS = ('description', 'notes', 'details')
PRIORITY_FIELDS = ('priority', 'importance')
OWNER_FIELDS = ('assignee', 'owner', 'responsiblePerson')
START_FIELDS = ('startDate', 'createdDate')
END_FIELDS = ('dueDate', 'endDate', 'targetDate')
_SLUG_RE = re.compile(r"\s+")


class KanbanView:
    def __init__(self, columns: Optional[List[CategoryBucket]] = None, features: Optional[List[KanbanFeature]] = None):
        self.columns: List[CategoryBucket] = list(columns or [])
        self.features: List[KanbanFeature] = list(features or [])

    # -------------------- queries --------------------
    def column(self, bucket_id: str) -> Optional[CategoryBucket]:
        for col in self.columns:
            if col.id == bucket_id:
                return col
        return None

    def cards(self, bucket_id: str) -> List[KanbanFeature]:
        return [f for f in self.features if f.bucket_id == bucket_id]

    def grouped(self) -> Dict[str, List[KanbanFeature]]:
        """Cards by column name, names sorted for stable display order."""
        groups: Dict[str, List[KanbanFeature]] = {}
        for col in sorted(self.columns, key=lambda c: c.name):
            groups[col.name] = self.cards(col.id)
        return groups

    # -------------------- serialization --------------------
    def to_dict(self) -> Dict[str, Any]:
        return {
            'columns': [{'id': c.id, 'name': c.name, 'color': c.color} for c in self.columns],
            'features': [f.to_dict() for f in self.features],
        }

    def __len__(self) -> int:
        return len(self.features)

    def __str__(self) -> str:
        return ', '.join(f'{name}: {len(cards)} cards' for name, cards in self.grouped().items())


def owner_ref(name: str) -> Dict[str, str]:
    """Shared owner object: slug id, display name, generated avatar url."""
    return {
        'id': _SLUG_RE.sub('-', name.strip().lower()),
        'name': name,
        'image': f'https://ui-avatars.com/api/?name={quote(name)}&background=random',
    }


def bucket_for_record(record: Any, mapping: FieldMapping, buckets: Sequence[CategoryBucket]) -> str:
    """Column id a record projects into; the reconciler compares against this."""
    value = get_field_value(record, mapping.category_field)
    if not is_empty(value):
        return to_text(value)
    if buckets:
        return buckets[0].id
    return DEFAULT_BUCKET


def record_span(record: Any, mapping: FieldMapping, today: date) -> Tuple[date, date]:
    """(start, end) for a record; single-date records get start == end."""
    start = parse_date(get_field_value(record, mapping.date_field))
    if start is None:
        start = parse_date(get_field_value_by_priority(record, START_FIELDS + END_FIELDS))
    end = None
    if mapping.end_date_field:
        end = parse_date(get_field_value(record, mapping.end_date_field))
    if end is None:
        end = parse_date(get_field_value_by_priority(record, END_FIELDS))
    start = start or end or today
    end = end or start
    return start, end


def _record_name(record: Any, mapping: FieldMapping, index: int) -> str:
    value = get_field_value_by_priority(record, NAME_FIELDS + (mapping.id_field,))
    return f'Item {index + 1}' if value is None else to_text(value)


def _extra_metadata(record: Any, mapping: FieldMapping) -> Dict[str, str]:
    excluded = set(NAME_FIELDS + DESCRIPTION_FIELDS + PRIORITY_FIELDS + OWNER_FIELDS + START_FIELDS + END_FIELDS)
    excluded.update({mapping.id_field, mapping.category_field, mapping.date_field, mapping.description_field})
    if mapping.end_date_field:
        excluded.add(mapping.end_date_field)
    extra: Dict[str, str] = {}
    for fld in iter_fields(record):
        if fld.api_name not in excluded and not is_empty(fld.value):
            extra[fld.label or fld.api_name] = to_text(fld.value)
    return extra


def transform_to_kanban(records: Any, mapping: Optional[FieldMapping] = None,
                        buckets: Optional[List[CategoryBucket]] = None,
                        metadata: Optional[CanvasMetadata] = None,
                        today: Optional[date] = None) -> KanbanView:
    """Build the kanban view model; an empty or non-list batch gives an empty board."""
    if not isinstance(records, list) or not records:
        return KanbanView()
    if mapping is None:
        mapping = mapping_for_batch(records, metadata)
    if buckets is None:
        buckets = derive_buckets(records, mapping, metadata)
    today = today or date.today()

    features: List[KanbanFeature] = []
    for index, (rid, record) in enumerate(zip(resolve_record_ids(records, mapping), records)):
        start, end = record_span(record, mapping, today)
        description = get_field_value_by_priority(record, (mapping.description_field,) + DESCRIPTION_FIELDS)
        priority = get_field_value_by_priority(record, PRIORITY_FIELDS)
        owner = get_field_value_by_priority(record, OWNER_FIELDS)
        features.append(KanbanFeature(
            id=rid,
            name=_record_name(record, mapping, index),
            start_at=start,
            end_at=end,
            bucket_id=bucket_for_record(record, mapping, buckets),
            owner=None if owner is None else owner_ref(to_text(owner)),
            description=None if description is None else to_text(description),
            priority=None if priority is None else to_text(priority),
            metadata=_extra_metadata(record, mapping),
        ))
    columns = ensure_buckets(buckets, (f.bucket_id for f in features))
    return KanbanView(columns=columns, features=features)


def move_card(view: KanbanView, card_id: str, bucket_id: str) -> List[KanbanFeature]:
    """Features with one card moved to another column (a drag gesture).

    Returns copies; the view itself is left untouched. Unknown ids leave the
    list unchanged.
    """
    moved: List[KanbanFeature] = []
    for feature in view.features:
        if feature.id == card_id:
            feature = replace(feature, bucket_id=bucket_id)
        moved.append(feature)
    return moved
