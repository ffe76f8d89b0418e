"""Plain-terminal rendering of the three view models for the CLI.

Kanban columns share the terminal width (each at least MIN_COL_WIDTH) and
card titles are word-wrapped inside them. Tables truncate cells to fit.
The gantt view draws one bar per feature on a day scale.
"""
from typing import Dict, Iterable, List, Mapping, Sequence
import re, shutil

from board import KanbanView
from gantt import GanttView
from table import TableView
from fields import to_text
from theme import color, from_hex, HEADER_COLOR, ID_COLOR, EMPTY_COLOR, BOLD, SELECTED_MARK

MIN_COL_WIDTH = 18
MIN_CELL_WIDTH = 6
SEP = " | "
ANSI_RE = re.compile(r"\x1b\[[0-9;]*m")


def terminal_width() -> int:
    return shutil.get_terminal_size((120, 30)).columns


def visible_len(s: str) -> int:
    return len(ANSI_RE.sub('', s))


def _pad(s: str, width: int) -> str:
    pad = width - visible_len(s)
    return s + ' ' * pad if pad > 0 else s


def _truncate(text: str, width: int) -> str:
    return text if len(text) <= width else text[:max(1, width - 1)] + '…'


# -------------------- width calculation --------------------
def compute_widths(desired: Mapping[str, int], term_width: int, minimum: int = MIN_COL_WIDTH) -> Dict[str, int]:
    """Shrink the widest columns (or spread spare space) until the row fits term_width."""
    keys = list(desired)
    if not keys:
        return {}
    sep_total = len(SEP) * (len(keys) - 1)
    widths = {k: max(minimum, desired[k]) for k in keys}
    total = sum(widths.values()) + sep_total
    if total > term_width:
        target_space = max(term_width - sep_total, len(keys) * minimum)
        while sum(widths.values()) > target_space:
            widest = max(keys, key=lambda k: widths[k])
            if widths[widest] <= minimum:
                break
            widths[widest] -= 1
    else:
        extra = term_width - total
        i = 0
        while extra > 0:
            widths[keys[i % len(keys)]] += 1
            extra -= 1
            i += 1
    return widths


# -------------------- wrapping --------------------
def wrap_words(text: str, limit: int) -> List[str]:
    lines: List[str] = []
    current = ''
    for w in text.split():
        candidate = w if not current else current + ' ' + w
        if len(candidate) <= limit:
            current = candidate
        else:
            if current:
                lines.append(current)
            current = w
    if current:
        lines.append(current)
    return lines


def _wrap_card(prefix: str, title: str, style: str, col_width: int) -> List[str]:
    limit = max(1, col_width - len(prefix))
    raw_lines = wrap_words(title or '<untitled>', limit) or ['<empty>']
    out: List[str] = []
    for idx, raw in enumerate(raw_lines):
        lead = color(prefix, ID_COLOR) if idx == 0 else ' ' * len(prefix)
        out.append(lead + color(raw, style))
    return out


# -------------------- kanban --------------------
def render_kanban(view: KanbanView, selection: Iterable[str] = (), term_width: int = 0) -> List[str]:
    if not view.columns:
        return [color('(no data)', EMPTY_COLOR)]
    selected = set(selection)
    groups = view.grouped()
    colors = {c.name: c.color for c in view.columns}
    desired = {}
    for name, cards in groups.items():
        longest = len(name) + 4
        for card in cards:
            longest = max(longest, len(card.id) + 3 + len(card.name))
        desired[name] = longest
    widths = compute_widths(desired, term_width or terminal_width())

    wrapped: Dict[str, List[str]] = {}
    for name, cards in groups.items():
        lines: List[str] = []
        for card in cards:
            mark = SELECTED_MARK if card.id in selected else ''
            lines.extend(_wrap_card(f'{mark}{card.id}. ', card.name, from_hex(colors[name]), widths[name]))
        wrapped[name] = lines or [color('(empty)', EMPTY_COLOR)]

    header = SEP.join(_pad(color(f'{name} ({len(groups[name])})', HEADER_COLOR, BOLD), widths[name]) for name in groups)
    out = [header, SEP.join(color('-' * widths[name], HEADER_COLOR) for name in groups)]
    for r in range(max(len(lines) for lines in wrapped.values())):
        cells = []
        for name in groups:
            col_lines = wrapped[name]
            cells.append(_pad(col_lines[r], widths[name]) if r < len(col_lines) else ' ' * widths[name])
        out.append(SEP.join(cells))
    return out


# -------------------- table --------------------
def render_table(view: TableView, selection: Iterable[str] = (), term_width: int = 0) -> List[str]:
    if not view.columns:
        return [color('(no data)', EMPTY_COLOR)]
    selected = set(selection)
    keys = ['id'] + [c.key for c in view.columns]
    labels = {'id': 'id', **{c.key: c.label for c in view.columns}}
    desired = {k: len(labels[k]) for k in keys}
    for row in view.rows:
        desired['id'] = max(desired['id'], len(row.id) + 1)
        for c in view.columns:
            desired[c.key] = max(desired[c.key], len(to_text(row.get(c.key))))
    widths = compute_widths(desired, term_width or terminal_width(), MIN_CELL_WIDTH)

    out = [SEP.join(_pad(color(_truncate(labels[k], widths[k]), HEADER_COLOR, BOLD), widths[k]) for k in keys),
           SEP.join(color('-' * widths[k], HEADER_COLOR) for k in keys)]
    for row in view.rows:
        mark = SELECTED_MARK if row.id in selected else ''
        cells = [_pad(color(_truncate(mark + row.id, widths['id']), ID_COLOR), widths['id'])]
        cells.extend(_pad(_truncate(to_text(row.get(c.key)), widths[c.key]), widths[c.key]) for c in view.columns)
        out.append(SEP.join(cells))
    if view.page_count > 1:
        out.append(color(f'page {view.page + 1}/{view.page_count}  (next / prev)', EMPTY_COLOR))
    return out


# -------------------- gantt --------------------
def render_gantt(view: GanttView, selection: Iterable[str] = (), term_width: int = 0) -> List[str]:
    span = view.span()
    if span is None:
        return [color('(no data)', EMPTY_COLOR)]
    selected = set(selection)
    first, last = span
    days = (last - first).days + 1
    label_width = min(32, max(len(f.name) + len(f.id) + 3 for f in view.features))
    bar_width = max(10, (term_width or terminal_width()) - label_width - len(SEP))

    def column(day) -> int:
        return min(bar_width - 1, (day - first).days * bar_width // days)

    out = [_pad(color(f'{first.isoformat()} .. {last.isoformat()}', HEADER_COLOR, BOLD), label_width + len(SEP) + bar_width)]
    markers = {column(m.date): m for m in view.markers if first <= m.date <= last}
    if markers:
        ruler = ''.join('^' if i in markers else ' ' for i in range(bar_width))
        out.append(' ' * (label_width + len(SEP)) + ruler)
    for group, features in view.grouped().items():
        out.append(color(group, HEADER_COLOR, BOLD))
        for f in features:
            mark = SELECTED_MARK if f.id in selected else ''
            label = _pad(_truncate(f'{mark}{f.id}. {f.name}', label_width), label_width)
            start, end = column(f.start_at), column(f.end_at)
            bar = ' ' * start + color('█' * max(1, end - start + 1), from_hex(f.status.color))
            out.append(label + SEP + bar)
    return out


RENDERERS = {'table': render_table, 'kanban': render_kanban, 'gantt': render_gantt}


def render(kind: str, view, selection: Sequence[str] = (), term_width: int = 0) -> List[str]:
    return RENDERERS[kind](view, selection, term_width)
