"""Gantt projection: dated features in groups, plus shared reference tables.

Owner, product, initiative, release and milestone are optional roles. Each
is probed per record by field name and simply left out when absent; none of
them affect grouping or dates. Reference objects are deduplicated by display
name so every feature naming the same owner points at the same dict.
"""
from datetime import date
from typing import Any, Dict, List, Optional

from board import NAME_FIELDS, DESCRIPTION_FIELDS, OWNER_FIELDS, bucket_for_record, owner_ref, record_span
from buckets import DEFAULT_BUCKET, derive_buckets, make_bucket
from fields import get_field_value, get_field_value_by_priority, is_empty, parse_date, resolve_record_ids, to_text
from models import CanvasMetadata, CategoryBucket, FieldMapping, GanttFeature, GanttMarker
from roles import mapping_for_batch
from theme import MARKER_CLASSES

UNASSIGNED = 'Unassigned'

OPTIONAL_ROLES: Dict[str, tuple] = {
    'owner': OWNER_FIELDS,
    'product': ('product',),
    'initiative': ('initiative',),
    'release': ('release',),
    'milestone': ('milestone',),
}
MILESTONE_LABEL_FIELDS = ('milestoneName',) + NAME_FIELDS


class RefTable:
    """Name-keyed reference objects with sequential ids ("group-0", "group-1", ...)."""

    def __init__(self, prefix: str):
        self.prefix = prefix
        self._refs: Dict[str, Dict[str, str]] = {}

    def get(self, name: str) -> Dict[str, str]:
        ref = self._refs.get(name)
        if ref is None:
            ref = {'id': f'{self.prefix}-{len(self._refs)}', 'name': name}
            self._refs[name] = ref
        return ref

    def values(self) -> List[Dict[str, str]]:
        return list(self._refs.values())


class OwnerTable(RefTable):
    def get(self, name: str) -> Dict[str, str]:
        ref = self._refs.get(name)
        if ref is None:
            ref = owner_ref(name)
            self._refs[name] = ref
        return ref


class GanttView:
    def __init__(self, groups=None, features=None, markers=None, statuses=None,
                 owners=None, products=None, initiatives=None, releases=None):
        self.groups: List[Dict[str, str]] = list(groups or [])
        self.features: List[GanttFeature] = list(features or [])
        self.markers: List[GanttMarker] = list(markers or [])
        self.statuses: List[CategoryBucket] = list(statuses or [])
        self.owners: List[Dict[str, str]] = list(owners or [])
        self.products: List[Dict[str, str]] = list(products or [])
        self.initiatives: List[Dict[str, str]] = list(initiatives or [])
        self.releases: List[Dict[str, str]] = list(releases or [])

    def grouped(self) -> Dict[str, List[GanttFeature]]:
        """Features by group name, names sorted."""
        groups: Dict[str, List[GanttFeature]] = {}
        for feature in self.features:
            groups.setdefault(feature.group['name'], []).append(feature)
        return dict(sorted(groups.items()))

    def span(self) -> Optional[tuple]:
        """(earliest start, latest end) across all features, None when empty."""
        if not self.features:
            return None
        return min(f.start_at for f in self.features), max(f.end_at for f in self.features)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'groups': self.groups,
            'features': [f.to_dict() for f in self.features],
            'markers': [m.to_dict() for m in self.markers],
            'statuses': [{'id': s.id, 'name': s.name, 'color': s.color} for s in self.statuses],
            'owners': self.owners,
            'products': self.products,
            'initiatives': self.initiatives,
            'releases': self.releases,
        }

    def __len__(self) -> int:
        return len(self.features)


def _probe(record: Any, role: str) -> Optional[str]:
    value = get_field_value_by_priority(record, OPTIONAL_ROLES[role])
    return None if value is None else to_text(value)


def _marker(record: Any, index: int) -> Optional[GanttMarker]:
    when = parse_date(get_field_value_by_priority(record, OPTIONAL_ROLES['milestone']))
    if when is None:
        return None
    label = get_field_value_by_priority(record, MILESTONE_LABEL_FIELDS)
    return GanttMarker(
        id=f'marker-{index}',
        date=when,
        label='Milestone' if label is None else to_text(label),
        class_name=MARKER_CLASSES[index % len(MARKER_CLASSES)],
    )


def transform_to_gantt(records: Any, mapping: Optional[FieldMapping] = None,
                       buckets: Optional[List[CategoryBucket]] = None,
                       metadata: Optional[CanvasMetadata] = None,
                       today: Optional[date] = None) -> GanttView:
    """Build the gantt view model; an empty or non-list batch gives an empty view."""
    if not isinstance(records, list) or not records:
        return GanttView()
    if mapping is None:
        mapping = mapping_for_batch(records, metadata)
    if buckets is None:
        buckets = derive_buckets(records, mapping, metadata)
    today = today or date.today()

    statuses: Dict[str, CategoryBucket] = {b.id: b for b in buckets}
    groups, owners = RefTable('group'), OwnerTable('owner')
    products, initiatives, releases = RefTable('product'), RefTable('initiative'), RefTable('release')

    features: List[GanttFeature] = []
    markers: List[GanttMarker] = []
    for index, (rid, record) in enumerate(zip(resolve_record_ids(records, mapping), records)):
        start, end = record_span(record, mapping, today)

        status_id = bucket_for_record(record, mapping, buckets)
        if status_id not in statuses:
            statuses[status_id] = make_bucket(status_id)

        group_name = status_id
        if mapping.group_field:
            group_value = get_field_value(record, mapping.group_field)
            group_name = DEFAULT_BUCKET if is_empty(group_value) else to_text(group_value)

        name = get_field_value_by_priority(record, NAME_FIELDS + (mapping.id_field,))
        description = get_field_value_by_priority(record, (mapping.description_field,) + DESCRIPTION_FIELDS)
        product, initiative, release = _probe(record, 'product'), _probe(record, 'initiative'), _probe(record, 'release')

        features.append(GanttFeature(
            id=rid,
            name=f'Item {index + 1}' if name is None else to_text(name),
            start_at=start,
            end_at=end,
            status=statuses[status_id],
            group=groups.get(group_name),
            owner=owners.get(_probe(record, 'owner') or UNASSIGNED),
            description='' if description is None else to_text(description),
            product=products.get(product) if product else None,
            initiative=initiatives.get(initiative) if initiative else None,
            release=releases.get(release) if release else None,
        ))
        marker = _marker(record, index)
        if marker is not None:
            markers.append(marker)

    return GanttView(
        groups=groups.values(),
        features=features,
        markers=markers,
        statuses=list(statuses.values()),
        owners=owners.values(),
        products=products.values(),
        initiatives=initiatives.values(),
        releases=releases.values(),
    )
