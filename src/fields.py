"""Shape-agnostic access to record fields.

Two record shapes come out of the model:

    {"field1": {"apiName": "field1", "value": "R1", "type": {"name": "text"}}, ...}
    {"recordId": "R1", "fields": [{"apiName": "field1", "value": "R1", "type": "text"}, ...]}

Every other module reads records through this one boundary so nothing
downstream needs to care which shape it got. Values may also be stored as
bare primitives ({"title": "Write report"}); those read as untyped fields.
"""
import copy
import json
from datetime import date, datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional

from models import Field, FieldMapping, RecordView

TYPE_ALIASES = {'select': 'dropdown', 'text_area': 'textarea'}


def _is_list_shape(record: Any) -> bool:
    return isinstance(record, dict) and isinstance(record.get('fields'), list)


def raw_field(record: Any, api_name: str) -> Any:
    if not isinstance(record, dict):
        return None
    if _is_list_shape(record):
        for item in record['fields']:
            if isinstance(item, dict) and item.get('apiName') == api_name:
                return item
        return None
    return record.get(api_name)


def field_type(raw: Any) -> str:
    """Declared type name of a raw field, lower-cased; "" when undeclared."""
    if not isinstance(raw, dict):
        return ''
    declared = raw.get('type')
    if isinstance(declared, dict):
        declared = declared.get('name')
    if not isinstance(declared, str):
        return ''
    declared = declared.strip().lower()
    return TYPE_ALIASES.get(declared, declared)


def allowed_values(raw: Any) -> List[str]:
    """allowedValues declared on the field itself or on its nested type object."""
    if not isinstance(raw, dict):
        return []
    values = raw.get('allowedValues')
    if not isinstance(values, list):
        declared = raw.get('type')
        values = declared.get('allowedValues') if isinstance(declared, dict) else None
    if not isinstance(values, list):
        return []
    return [to_text(v) for v in values if v is not None]


def _to_field(key: str, raw: Any) -> Field:
    if not isinstance(raw, dict):
        return Field(api_name=key, label=key, value=raw)
    return Field(
        api_name=key,
        label=str(raw.get('label') or key),
        value=raw.get('value'),
        type=field_type(raw),
        allowed_values=allowed_values(raw),
    )


def normalize_record(record: Any) -> RecordView:
    """Normalize either record shape into a RecordView; non-dicts become empty."""
    if not isinstance(record, dict):
        return RecordView(shape='map')
    if _is_list_shape(record):
        fields: Dict[str, Field] = {}
        for item in record['fields']:
            if not isinstance(item, dict) or not item.get('apiName'):
                continue
            key = str(item['apiName'])
            if key not in fields:
                fields[key] = _to_field(key, item)
        rid = record.get('recordId')
        return RecordView(shape='list', fields=fields, record_id=None if is_empty(rid) else to_text(rid))
    return RecordView(shape='map', fields={str(k): _to_field(str(k), v) for k, v in record.items()})


def iter_fields(record: Any) -> List[Field]:
    return list(normalize_record(record).fields.values())


def get_field_value(record: Any, api_name: str) -> Any:
    """Value of api_name in record, or None when the record has no such field."""
    raw = raw_field(record, api_name)
    if isinstance(raw, dict):
        return raw.get('value')
    return raw


def get_field_value_by_priority(record: Any, api_names: Iterable[str]) -> Any:
    """First non-empty value among api_names, in order; None if all are empty."""
    for name in api_names:
        value = get_field_value(record, name)
        if not is_empty(value):
            return value
    return None


def is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, dict)):
        return not value
    return False


def to_text(value: Any) -> str:
    """Display string for a field value; None -> ""."""
    if value is None:
        return ''
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (list, dict)):
        return json.dumps(value, sort_keys=True)
    return str(value)


def parse_date(value: Any) -> Optional[date]:
    """Parse ISO date/datetime strings and epoch seconds or milliseconds; None if unusable."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        seconds = value / 1000 if abs(value) > 1e11 else value
        try:
            return datetime.fromtimestamp(seconds, tz=timezone.utc).date()
        except (OverflowError, OSError, ValueError):
            return None
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if text.endswith('Z'):
        text = text[:-1] + '+00:00'
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        pass
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return None


def set_field_value(record: Mapping[str, Any], api_name: str, value: Any) -> Dict[str, Any]:
    """Deep copy of record with only api_name's value replaced.

    A missing field is created in the record's own shape so the result still
    normalizes the same way as its siblings.
    """
    updated = copy.deepcopy(dict(record))
    if _is_list_shape(updated):
        for item in updated['fields']:
            if isinstance(item, dict) and item.get('apiName') == api_name:
                item['value'] = value
                return updated
        updated['fields'].append({'apiName': api_name, 'label': api_name, 'value': value})
        return updated
    current = updated.get(api_name)
    if isinstance(current, dict):
        current['value'] = value
    elif api_name in updated or not any(isinstance(v, dict) for v in updated.values()):
        updated[api_name] = value
    else:
        updated[api_name] = {'apiName': api_name, 'label': api_name, 'value': value}
    return updated


def resolve_record_ids(records: Any, mapping: FieldMapping) -> List[str]:
    """Resolved id of every record, positionally aligned with records.

    id field value -> recordId -> "item-<index>". A repeated id is suffixed
    with "#<index>" so each id maps back to exactly one record.
    """
    if not isinstance(records, list):
        return []
    ids: List[str] = []
    seen = set()
    for index, record in enumerate(records):
        value = get_field_value(record, mapping.id_field)
        if is_empty(value) and isinstance(record, dict):
            value = record.get('recordId')
        rid = f'item-{index}' if is_empty(value) else to_text(value)
        if rid in seen:
            rid = f'{rid}#{index}'
        seen.add(rid)
        ids.append(rid)
    return ids


def find_record_index(records: Any, mapping: FieldMapping, record_id: str) -> Optional[int]:
    for index, rid in enumerate(resolve_record_ids(records, mapping)):
        if rid == record_id:
            return index
    return None
