"""Category buckets: kanban columns, gantt statuses.

Buckets come from the category field's declared allowedValues. Values seen
in the data but never declared get an ad hoc bucket of their own so no
record is ever dropped for lack of a column.
"""
from typing import Any, Dict, Iterable, List, Optional

from fields import raw_field, allowed_values, to_text
from models import CanvasMetadata, CategoryBucket, FieldMapping
from theme import color_for_value

DEFAULT_BUCKET = 'Default'


def make_bucket(value: Any) -> CategoryBucket:
    text = to_text(value)
    return CategoryBucket(id=text, name=text, color=color_for_value(text))


def declared_values(records: Any, mapping: FieldMapping, metadata: Optional[CanvasMetadata] = None) -> List[str]:
    """Declared enum of the category field: metadata first, then the first record declaring one."""
    if metadata is not None:
        kanban = metadata.component('kanban')
        if kanban is not None and kanban.allowed_values:
            return list(kanban.allowed_values)
    if not isinstance(records, list):
        return []
    for record in records:
        values = allowed_values(raw_field(record, mapping.category_field))
        if values:
            return values
    return []


def derive_buckets(records: Any, mapping: FieldMapping, metadata: Optional[CanvasMetadata] = None) -> List[CategoryBucket]:
    """Buckets for the declared category values, declaration order, no duplicates."""
    buckets: Dict[str, CategoryBucket] = {}
    for value in declared_values(records, mapping, metadata):
        if value not in buckets:
            buckets[value] = make_bucket(value)
    return list(buckets.values())


def ensure_buckets(buckets: Iterable[CategoryBucket], values: Iterable[Any]) -> List[CategoryBucket]:
    """buckets plus one ad hoc bucket per value not already covered, first-seen order."""
    result = list(buckets)
    known = {b.id for b in result}
    for value in values:
        text = to_text(value)
        if text and text not in known:
            known.add(text)
            result.append(make_bucket(text))
    return result
