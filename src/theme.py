"""Palette, bucket colors and terminal styling.

Decisions:
- Bucket colors are picked by value (crc32 of the value into the palette),
  so the same category keeps its color across passes and processes.
- Truecolor preferred for terminal output; falls back to 256-color cube.
- Disables ANSI automatically when not a TTY unless FORCE_COLOR=1.
- Honors NO_COLOR for complete disable.
- Settings come from the real environment first, then a project .env file.
"""
from __future__ import annotations
import os, sys, zlib
from pathlib import Path

def read_env_file(path: Path) -> dict[str, str]:
    """KEY=value pairs from a .env file; an unreadable file gives no overrides."""
    entries: dict[str, str] = {}
    if not path.exists():
        return entries
    try:
        for line in path.read_text(encoding='utf-8').splitlines():
            line = line.strip()
            if not line or line.startswith('#') or '=' not in line:
                continue
            k, v = line.split('=', 1)
            entries[k.strip()] = v.strip().strip('"').strip("'")
    except (OSError, UnicodeDecodeError):
        return {}  # ignore unreadable .env files
    return entries


# Load overrides from optional .env file (real env vars still win)
_ENV_FILE = read_env_file(Path(__file__).resolve().parent.parent / '.env')


def setting(name: str, default: str | None = None) -> str | None:
    """Resolve a setting: real env var > .env entry > default."""
    value = os.environ.get(name)
    if value:
        return value
    return _ENV_FILE.get(name, default)


def truthy(value: str | None, default: bool = True) -> bool:
    if value is None:
        return default
    return value.strip().lower() not in {"0", "false", "no", "off", ""}


_FORCE = truthy(setting("FORCE_COLOR"), False)
_NO_COLOR = os.environ.get("NO_COLOR") is not None
_ENABLE = (_FORCE or sys.stdout.isatty()) and not _NO_COLOR
_COLORTERM = os.environ.get("COLORTERM", "").lower()
_USE_TRUECOLOR = _ENABLE and any(tok in _COLORTERM for tok in ("truecolor", "24bit"))

DEFAULT_PALETTE = (
    "#6B7280",  # gray
    "#F59E0B",  # amber
    "#10B981",  # green
    "#3B82F6",  # blue
    "#8B5CF6",  # purple
    "#EC4899",  # pink
    "#EF4444",  # red
    "#14B8A6",  # teal
)

MARKER_CLASSES = (
    "bg-blue-100 text-blue-900",
    "bg-green-100 text-green-900",
    "bg-purple-100 text-purple-900",
    "bg-red-100 text-red-900",
    "bg-orange-100 text-orange-900",
    "bg-teal-100 text-teal-900",
)


def _valid_hex(h: str) -> bool:
    h = h.lstrip('#')
    return len(h) == 6 and all(c in '0123456789abcdefABCDEF' for c in h)


def _load_palette() -> tuple[str, ...]:
    raw = setting("CANVAS_PALETTE")
    if not raw:
        return DEFAULT_PALETTE
    colors = tuple('#' + c.strip().lstrip('#').upper() for c in raw.split(',') if _valid_hex(c.strip()))
    return colors or DEFAULT_PALETTE


PALETTE = _load_palette()


def color_for_value(value: str, palette: tuple[str, ...] = PALETTE) -> str:
    """Deterministic palette color for a category value."""
    return palette[zlib.crc32(str(value).encode('utf-8')) % len(palette)]


# -------------------- ANSI --------------------
def _code(part: str) -> str:
    return f"\033[{part}m" if _ENABLE else ''


def _hex_to_rgb(hex_code: str) -> tuple[int, int, int]:
    h = hex_code.lstrip('#')
    return int(h[0:2], 16), int(h[2:4], 16), int(h[4:6], 16)


def _fg_256(r: int, g: int, b: int) -> str:
    """Approximate RGB to xterm 256-color cube."""
    def to_6(x: int) -> int:
        return int(round(x / 255 * 5))
    idx = 16 + 36 * to_6(r) + 6 * to_6(g) + to_6(b)
    return f"\033[38;5;{idx}m"


def from_hex(hex_code: str) -> str:
    """ANSI foreground sequence for a hex color ('' when color is off)."""
    if not _ENABLE or not _valid_hex(hex_code):
        return ''
    r, g, b = _hex_to_rgb(hex_code)
    if _USE_TRUECOLOR:
        return f"\033[38;2;{r};{g};{b}m"
    return _fg_256(r, g, b)


RESET = _code('0')
BOLD = _code('1')
DIM = _code('2')

HEADER_COLOR = from_hex(setting('CANVAS_PRIMARY', '#476EAE') or '#476EAE')
ID_COLOR = HEADER_COLOR + BOLD
EMPTY_COLOR = DIM + HEADER_COLOR
SELECTED_MARK = '*'


def color(text: str, *styles: str) -> str:
    """Apply ANSI styles to a given text."""
    if not _ENABLE:
        return text
    return ''.join(styles) + text + RESET


__all__ = [
    'setting', 'truthy', 'PALETTE', 'DEFAULT_PALETTE', 'MARKER_CLASSES',
    'color_for_value', 'from_hex', 'color',
    'RESET', 'BOLD', 'DIM', 'HEADER_COLOR', 'ID_COLOR', 'EMPTY_COLOR', 'SELECTED_MARK',
]
