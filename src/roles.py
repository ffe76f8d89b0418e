"""Field-role inference.

Guesses which field of a record is the identifier, the date span, the
category (kanban column / gantt status) and the description. The guess is
made once per batch from its first record and shared by every view.
Explicit metadata wins over the heuristic for any role it names.
"""
from typing import Any, List, Optional

from fields import normalize_record, is_empty
from models import CanvasMetadata, FieldMapping

DEFAULT_ID_FIELD = 'field1'
DEFAULT_DESCRIPTION_FIELD = 'field2'
DEFAULT_CATEGORY_FIELD = 'field3'
DEFAULT_DATE_FIELD = 'field4'


def _first_of_type(fields, type_name: str, exclude: Optional[str] = None) -> Optional[str]:
    for key, fld in fields.items():
        if fld.type == type_name and key != exclude:
            return key
    return None


def infer_field_mapping(sample: Any, metadata: Optional[CanvasMetadata] = None) -> FieldMapping:
    """Infer a FieldMapping from one sample record. Never raises."""
    fields = normalize_record(sample).fields
    keys = list(fields)

    id_field = (_first_of_type(fields, 'id')
                or _first_of_type(fields, 'text')
                or (keys[0] if keys else DEFAULT_ID_FIELD))
    date_field = (_first_of_type(fields, 'date')
                  or _first_of_type(fields, 'text', exclude=id_field)
                  or DEFAULT_DATE_FIELD)
    end_date_field = _first_of_type(fields, 'date', exclude=date_field)
    category_field = _first_of_type(fields, 'dropdown')
    if category_field is None:
        category_field = next((k for k, f in fields.items() if f.allowed_values), DEFAULT_CATEGORY_FIELD)
    description_field = _first_of_type(fields, 'textarea') or DEFAULT_DESCRIPTION_FIELD
    group_field = None

    if metadata is not None:
        kanban = metadata.component('kanban')
        if kanban is not None and kanban.column_field:
            category_field = kanban.column_field
        gantt = metadata.component('gantt')
        if gantt is not None:
            date_field = gantt.start_date_field or date_field
            end_date_field = gantt.end_date_field or end_date_field
            group_field = gantt.group_by_field

    return FieldMapping(
        id_field=id_field,
        date_field=date_field,
        end_date_field=end_date_field,
        category_field=category_field,
        description_field=description_field,
        group_field=group_field,
    )


def mapping_for_batch(records: Any, metadata: Optional[CanvasMetadata] = None) -> FieldMapping:
    """Mapping for a whole batch, taken from its first record."""
    sample = records[0] if isinstance(records, list) and records else None
    return infer_field_mapping(sample, metadata)


def describe_mapping(mapping: FieldMapping) -> List[str]:
    """Human-readable role lines, used by the CLI's info command."""
    lines = [
        f'id: {mapping.id_field}',
        f'date: {mapping.date_field}',
        f'category: {mapping.category_field}',
        f'description: {mapping.description_field}',
    ]
    if not is_empty(mapping.end_date_field):
        lines.insert(2, f'end date: {mapping.end_date_field}')
    if not is_empty(mapping.group_field):
        lines.append(f'group: {mapping.group_field}')
    return lines
