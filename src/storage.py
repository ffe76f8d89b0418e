"""Canvas blob parsing and file persistence.

The host document stores the canvas as one opaque JSON blob holding the
record batch, the view metadata and (optionally) the selection. LLM output
is frequently not quite JSON, so parsing falls back to json_repair before
giving up; a blob that still cannot be read yields an empty document with
an error message instead of raising.
"""
import json
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from json_repair import repair_json

from models import CanvasMetadata
from theme import setting

logger = logging.getLogger("canvas.storage")

CANVAS_FILE = Path(setting('CANVAS_FILE') or Path(__file__).parent.parent / 'data' / 'canvas.json')
_FENCE_RE = re.compile(r'```[a-zA-Z]*\n?|```\n?')

Content = Union[str, bytes, bytearray, list, dict, None]


class CanvasParseError(ValueError):
    """Raised only by strict loads; normal parsing degrades to an empty document."""


@dataclass
class CanvasDocument:
    records: Any = field(default_factory=list)
    raw_metadata: Optional[Dict[str, Any]] = None
    selection: List[str] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def metadata(self) -> Optional[CanvasMetadata]:
        return CanvasMetadata.from_dict(self.raw_metadata)

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_blob(self) -> Dict[str, Any]:
        blob: Dict[str, Any] = {'data': self.records}
        if self.raw_metadata is not None:
            blob['metadata'] = self.raw_metadata
        if self.selection:
            blob['selectedItems'] = list(self.selection)
        return blob


def _decode(text: str) -> Any:
    try:
        return json.loads(text)
    except ValueError:
        pass
    cleaned = _FENCE_RE.sub('', text).strip()
    if not cleaned:
        raise CanvasParseError("empty canvas content")
    try:
        return json.loads(cleaned)
    except ValueError:
        repaired = repair_json(cleaned)
    try:
        data = json.loads(repaired) if isinstance(repaired, str) else repaired
    except ValueError as exc:
        raise CanvasParseError(f"unreadable canvas content: {exc}") from exc
    if not isinstance(data, (list, dict)):
        raise CanvasParseError("canvas content is not a JSON object or array")
    return data


def _batch_error(records: Any) -> Optional[str]:
    """Why records cannot be a record batch, or None when they can.

    Repaired prose tends to come back as a list of strings, so every item
    has to be an object (map shape or {recordId, fields: [...]}).
    """
    if not isinstance(records, list):
        return f"canvas records are {type(records).__name__}, not a list"
    for index, record in enumerate(records):
        if not isinstance(record, dict):
            return f"canvas record {index} is {type(record).__name__}, not an object"
    return None


def _unwrap(data: Any) -> CanvasDocument:
    """Find the record batch in any of the blob layouts seen in the wild."""
    if isinstance(data, list):
        return CanvasDocument(records=data, error=_batch_error(data))
    if not isinstance(data, dict):
        return CanvasDocument(records=[], error="canvas content is not a JSON object or array")
    metadata = data.get('metadata') if isinstance(data.get('metadata'), dict) else None
    selection = data.get('selectedItems') or data.get('selection') or []
    if 'entityRecords' in data:
        records = data['entityRecords']
    else:
        records = data.get('data', [])
        if isinstance(records, dict):
            inner = records
            records = inner.get('data', [])
            selection = selection or inner.get('selectedItems') or []
            metadata = metadata or (inner.get('metadata') if isinstance(inner.get('metadata'), dict) else None)
    doc = CanvasDocument(raw_metadata=metadata, selection=[str(s) for s in selection if s is not None]
                         if isinstance(selection, list) else [])
    doc.error = _batch_error(records)
    if doc.error is None:
        doc.records = records
    return doc


class Storage:
    @staticmethod
    def parse_canvas(content: Content) -> CanvasDocument:
        """Parse a canvas blob (text, bytes or already-decoded JSON).

        Never raises: unreadable content gives an empty document whose
        error explains what went wrong.
        """
        if content is None:
            return CanvasDocument(error="no canvas content")
        if isinstance(content, (bytes, bytearray)):
            content = content.decode('utf-8', errors='replace')
        if isinstance(content, str):
            try:
                content = _decode(content)
            except CanvasParseError as exc:
                logger.warning("canvas parse failed: %s", exc)
                return CanvasDocument(error=str(exc))
        doc = _unwrap(content)
        if doc.error:
            logger.warning("canvas parse failed: %s", doc.error)
            doc.records = []
        return doc

    @staticmethod
    def load_canvas(path: Optional[Path] = None, strict: bool = False) -> CanvasDocument:
        """Load the canvas blob from disk. Missing file -> empty document.

        With strict=True an unreadable blob raises CanvasParseError instead
        of degrading to an empty document.
        """
        path = Path(path or CANVAS_FILE)
        if not path.exists():
            return CanvasDocument()
        with open(path, 'r', encoding='utf-8') as f:
            doc = Storage.parse_canvas(f.read())
        if strict and doc.error:
            raise CanvasParseError(doc.error)
        return doc

    @staticmethod
    def save_canvas(doc: CanvasDocument, path: Optional[Path] = None) -> None:
        """Persist the canvas blob to disk (pretty-printed)."""
        path = Path(path or CANVAS_FILE)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w', encoding='utf-8') as f:
            json.dump(doc.to_blob(), f, indent=4)
