"""Canonical store: the one owner of a canvas session's records and selection.

Views read snapshots; writes go through update() (normally called by the
session callbacks with a reconciler result). Listeners run only after an
update has been fully applied. An update issued from inside a listener is
queued and applied once the current notification round finishes, so no
listener ever sees a half-written state.
"""
from __future__ import annotations
import logging
from typing import Any, Callable, Dict, Iterable, List, Optional

from models import CanvasMetadata

logger = logging.getLogger("canvas.store")

Listener = Callable[[Dict[str, Any]], None]


def _ordered_ids(ids: Iterable[Any]) -> List[str]:
    seen: Dict[str, None] = {}
    for rid in ids or []:
        seen.setdefault(str(rid), None)
    return list(seen)


class CanvasStore:
    def __init__(self, records: Any = None, metadata: Optional[CanvasMetadata] = None,
                 selection: Optional[Iterable[str]] = None):
        self._state: Dict[str, Any] = {
            'records': records if records is not None else [],
            'metadata': metadata,
            'selection': _ordered_ids(selection or []),
        }
        self._listeners: List[Listener] = []
        self._pending: List[Dict[str, Any]] = []
        self._notifying = False
        self.version = 0

    # -------------------- reads --------------------
    def get_records(self) -> Any:
        return self._state['records']

    def get_selection(self) -> List[str]:
        return list(self._state['selection'])

    def get_metadata(self) -> Optional[CanvasMetadata]:
        return self._state['metadata']

    def get(self, key: str, default: Any = None) -> Any:
        return self._state.get(key, default)

    def snapshot(self) -> Dict[str, Any]:
        """Shallow copy of the current state; safe to hold across updates."""
        state = dict(self._state)
        state['selection'] = list(state['selection'])
        return state

    # -------------------- writes --------------------
    def update(self, **changes: Any) -> None:
        """Shallow-merge changes into the state, then notify listeners.

        Keys not named in changes are kept as they are.
        """
        if 'selection' in changes:
            changes['selection'] = _ordered_ids(changes['selection'])
        if self._notifying:
            self._pending.append(changes)
            return
        self._apply(changes)
        while self._pending:
            self._apply(self._pending.pop(0))

    def set_records(self, records: Any, **siblings: Any) -> None:
        self.update(records=records, **siblings)

    def set_selection(self, ids: Iterable[str]) -> None:
        self.update(selection=ids)

    def set_metadata(self, metadata: Optional[CanvasMetadata]) -> None:
        self.update(metadata=metadata)

    def reset(self, records: Any = None, metadata: Optional[CanvasMetadata] = None) -> None:
        """Start over for a new underlying document: new records, empty selection."""
        self.update(records=records if records is not None else [], metadata=metadata, selection=[])

    def _apply(self, changes: Dict[str, Any]) -> None:
        self._state = {**self._state, **changes}
        self.version += 1
        logger.debug("store update %d: %s", self.version, ', '.join(sorted(changes)))
        snapshot = self.snapshot()
        self._notifying = True
        try:
            for listener in list(self._listeners):
                listener(snapshot)
        finally:
            self._notifying = False

    # -------------------- subscription --------------------
    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register listener; returns a function that unregisters it."""
        if not callable(listener):
            raise TypeError("listener must be callable")
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)
        return unsubscribe

    def __repr__(self) -> str:
        records = self._state['records']
        count = len(records) if isinstance(records, list) else 'invalid'
        return f"CanvasStore(records={count}, selection={len(self._state['selection'])}, version={self.version})"
