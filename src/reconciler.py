"""Map view-local edits back onto the canonical record array.

Every function returns a new list and leaves its input alone. Records an
edit does not touch come back as deep copies equal to the originals; a
touched record changes only the one field the edit names. Input that is
not a list is returned as-is (the caller should treat that as an upstream
data problem), and an id that resolves to no record is ignored.
"""
import copy
import logging
from datetime import date
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from board import bucket_for_record
from buckets import derive_buckets
from fields import find_record_index, is_empty, resolve_record_ids, set_field_value
from models import CategoryBucket, FieldMapping, KanbanFeature
from roles import mapping_for_batch

logger = logging.getLogger("canvas.reconciler")


def _is_batch(records: Any, action: str) -> bool:
    if isinstance(records, list):
        return True
    logger.warning("%s skipped: canonical records are %s, not a list", action, type(records).__name__)
    return False


def apply_feature_moves(records: Any, features: Iterable[KanbanFeature], mapping: Optional[FieldMapping] = None,
                        buckets: Optional[List[CategoryBucket]] = None) -> Any:
    """Write each feature's bucket back as its record's category value.

    Only records whose projected column differs from the feature's bucket are
    touched, so feeding an unedited board back in reproduces records exactly.
    """
    if not _is_batch(records, 'apply_feature_moves'):
        return records
    if mapping is None:
        mapping = mapping_for_batch(records)
    if buckets is None:
        buckets = derive_buckets(records, mapping)
    by_id: Dict[str, KanbanFeature] = {f.id: f for f in features}
    updated: List[Any] = []
    for rid, record in zip(resolve_record_ids(records, mapping), records):
        feature = by_id.get(rid)
        if feature is not None and isinstance(record, dict) \
                and feature.bucket_id != bucket_for_record(record, mapping, buckets):
            updated.append(set_field_value(record, mapping.category_field, feature.bucket_id))
        else:
            updated.append(copy.deepcopy(record))
    return updated


def move_record(records: Any, mapping: FieldMapping, record_id: str, bucket_id: str) -> Any:
    """Set one record's category value (a single card drag or status change)."""
    return edit_cell(records, mapping, record_id, mapping.category_field, bucket_id)


def edit_cell(records: Any, mapping: FieldMapping, record_id: str, field_key: str, value: Any) -> Any:
    """Replace the value of one field of one record."""
    if not _is_batch(records, 'edit_cell'):
        return records
    target = find_record_index(records, mapping, record_id)
    if target is None or not isinstance(records[target], dict):
        logger.debug("edit_cell: no record with id %r", record_id)
        return copy.deepcopy(records)
    updated = copy.deepcopy(records)
    updated[target] = set_field_value(records[target], field_key, value)
    return updated


def edit_record(records: Any, mapping: FieldMapping, record_id: str, values: Mapping[str, Any]) -> Any:
    """Apply several field edits to one record in a single step (edit dialog save).

    Only keys present in values change; an unknown id leaves every record as is.
    """
    if not _is_batch(records, 'edit_record'):
        return records
    target = find_record_index(records, mapping, record_id)
    if target is None or not isinstance(records[target], dict):
        return copy.deepcopy(records)
    record = records[target]
    for key, value in values.items():
        record = set_field_value(record, key, value)
    updated = copy.deepcopy(records)
    updated[target] = record
    return updated


def blank_record(template: Mapping[str, Any]) -> Dict[str, Any]:
    """Structural clone of template with every value blanked."""
    clone = copy.deepcopy(dict(template))
    if isinstance(clone.get('fields'), list):
        for item in clone['fields']:
            if isinstance(item, dict):
                item['value'] = ''
        if 'recordId' in clone:
            clone['recordId'] = ''
        return clone
    for key, fld in clone.items():
        if isinstance(fld, dict):
            if 'value' in fld:
                fld['value'] = ''
        else:
            clone[key] = ''
    return clone


def add_record(records: Any, values: Optional[Mapping[str, Any]] = None) -> Any:
    """Append a blank record shaped like the first one, optionally prefilled.

    An empty batch has no shape to copy from and is returned unchanged.
    """
    if not _is_batch(records, 'add_record'):
        return records
    template = next((r for r in records if isinstance(r, dict)), None)
    if template is None:
        logger.debug("add_record: no record to clone a shape from")
        return copy.deepcopy(records)
    new_record = blank_record(template)
    for key, value in (values or {}).items():
        new_record = set_field_value(new_record, key, value)
    return copy.deepcopy(records) + [new_record]


def delete_records(records: Any, mapping: FieldMapping, ids: Iterable[str]) -> Any:
    """Drop every record whose resolved id is in ids."""
    if not _is_batch(records, 'delete_records'):
        return records
    doomed = set(ids)
    return [copy.deepcopy(r) for rid, r in zip(resolve_record_ids(records, mapping), records) if rid not in doomed]


def remap_selection(selection: Iterable[str], before_ids: Sequence[str], removed: Iterable[str],
                    after_ids: Sequence[str]) -> List[str]:
    """Selection after a delete: removed ids dropped, survivors renamed.

    Resolved ids can be positional ("item-<index>", "<id>#<index>"), so a
    surviving record may resolve to a different id once earlier records are
    gone. before_ids and after_ids are the resolved ids of the batch before
    and after the delete; ids matching no record are dropped.
    """
    gone = set(removed)
    survivors = [rid for rid in before_ids if rid not in gone]
    renamed = dict(zip(survivors, after_ids))
    return [renamed[rid] for rid in selection if rid in renamed]


def reschedule_record(records: Any, mapping: FieldMapping, record_id: str,
                      start: date, end: Optional[date] = None) -> Any:
    """Write a new date span into the mapped date fields (gantt drag).

    Without an end-date field only the start date is written.
    """
    changes: Dict[str, Any] = {mapping.date_field: start.isoformat()}
    if mapping.end_date_field and end is not None:
        changes[mapping.end_date_field] = end.isoformat()
    return edit_record(records, mapping, record_id, changes)


def changed_ids(before: Any, after: Any, mapping: FieldMapping) -> List[str]:
    """Ids present in both batches whose records differ; used for logging and tests."""
    if not isinstance(before, list) or not isinstance(after, list):
        return []
    old = dict(zip(resolve_record_ids(before, mapping), before))
    return [rid for rid, rec in zip(resolve_record_ids(after, mapping), after)
            if rid in old and not is_empty(rid) and old[rid] != rec]
