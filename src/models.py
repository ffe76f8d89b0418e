"""Data models for the canvas projection engine.

Canonical records stay plain dicts (that is what the LLM emits and what the
host document persists). Everything here is either a normalized read view
of such a dict or a derived view model; none of it is written back.
"""
from __future__ import annotations
from dataclasses import dataclass, field, asdict
from datetime import date
from typing import Any, Dict, List, Optional


@dataclass
class Field:
    """A single field of a record, whatever shape it was stored in.

    Fields:
        api_name: Stable machine key, unique within a record.
        label: Display name (falls back to api_name).
        value: Primitive value or None.
        type: Lower-cased type name, "" when undeclared.
        allowed_values: Enumerated values for dropdown-like fields.
    """
    api_name: str
    label: str = ""
    value: Any = None
    type: str = ""
    allowed_values: List[str] = field(default_factory=list)


@dataclass
class RecordView:
    """Normalized view of one canonical record.

    shape is "map" for {key: Field} records and "list" for {"fields": [...]}
    records; the reconciler uses it to write values back in the same shape.
    """
    shape: str
    fields: Dict[str, Field] = field(default_factory=dict)
    record_id: Optional[str] = None

    def keys(self) -> List[str]:
        return list(self.fields)


@dataclass(frozen=True)
class FieldMapping:
    """Field roles for one batch, inferred from its first record."""
    id_field: str = "field1"
    date_field: str = "field4"
    end_date_field: Optional[str] = None
    category_field: str = "field3"
    description_field: str = "field2"
    group_field: Optional[str] = None


@dataclass(frozen=True)
class CategoryBucket:
    """One distinct category value: a kanban column or gantt status."""
    id: str
    name: str
    color: str


@dataclass
class KanbanFeature:
    id: str
    name: str
    start_at: date
    end_at: date
    bucket_id: str
    owner: Optional[Dict[str, str]] = None
    description: Optional[str] = None
    priority: Optional[str] = None
    metadata: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['start_at'] = self.start_at.isoformat()
        data['end_at'] = self.end_at.isoformat()
        return data


@dataclass
class GanttFeature:
    id: str
    name: str
    start_at: date
    end_at: date
    status: CategoryBucket
    group: Dict[str, str]
    owner: Dict[str, str]
    description: str = ""
    product: Optional[Dict[str, str]] = None
    initiative: Optional[Dict[str, str]] = None
    release: Optional[Dict[str, str]] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['start_at'] = self.start_at.isoformat()
        data['end_at'] = self.end_at.isoformat()
        return data


@dataclass
class GanttMarker:
    id: str
    date: date
    label: str
    class_name: str

    def to_dict(self) -> Dict[str, Any]:
        return {'id': self.id, 'date': self.date.isoformat(), 'label': self.label, 'class_name': self.class_name}


@dataclass
class ComponentConfig:
    """One entry of the canvas metadata "components" list.

    Only the keys relevant to the component type are populated; a missing
    key means the role is left to heuristic inference.
    """
    type: str
    visible: bool = True
    column_field: Optional[str] = None
    allowed_values: List[str] = field(default_factory=list)
    start_date_field: Optional[str] = None
    end_date_field: Optional[str] = None
    group_by_field: Optional[str] = None


@dataclass
class CanvasMetadata:
    entity_type: str = ""
    components: List[ComponentConfig] = field(default_factory=list)

    def component(self, kind: str) -> Optional[ComponentConfig]:
        for comp in self.components:
            if comp.type == kind:
                return comp
        return None

    @classmethod
    def from_dict(cls, raw: Any) -> Optional["CanvasMetadata"]:
        """Parse the persisted metadata blob; None when it is not a mapping."""
        if not isinstance(raw, dict):
            return None
        comps: List[ComponentConfig] = []
        for entry in raw.get('components') or []:
            if not isinstance(entry, dict) or not entry.get('type'):
                continue
            column = entry.get('columnField') or {}
            allowed = column.get('allowedValues') if isinstance(column, dict) else None
            comps.append(ComponentConfig(
                type=str(entry['type']),
                visible=bool(entry.get('isVisible', True)),
                column_field=_api_name(column),
                allowed_values=[str(v) for v in allowed] if isinstance(allowed, list) else [],
                start_date_field=_api_name(entry.get('startDateField')),
                end_date_field=_api_name(entry.get('endDateField')),
                group_by_field=_api_name(entry.get('groupByField')),
            ))
        return cls(entity_type=str(raw.get('entityType') or ''), components=comps)


def _api_name(ref: Any) -> Optional[str]:
    if isinstance(ref, str):
        return ref or None
    if isinstance(ref, dict) and ref.get('apiName'):
        return str(ref['apiName'])
    return None
