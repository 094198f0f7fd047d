"""Diff and commit-message colorizing with tool fallbacks.

Tries the external diff colorizer, then the external highlighter, then
Pygments in-process. Commit text is sanitized first so hostile control bytes
in a message cannot move the cursor inside the picker.
"""

from __future__ import annotations

import re

from pygments import highlight as pygments_highlight
from pygments.formatters import TerminalFormatter
from pygments.lexers import DiffLexer
from pygments.styles import get_style_by_name
from pygments.util import ClassNotFound

from . import tools

_CONTROL_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f-\x9f]")
FALLBACK_STYLE = "monokai"

_FORMATTERS: dict[str, TerminalFormatter] = {}
_VALID_STYLES: set[str] = set()
_INVALID_STYLES: set[str] = set()


def sanitize_terminal_text(source: str) -> str:
    """Escape terminal control bytes to avoid side effects (bell, cursor moves, etc.)."""
    if _CONTROL_RE.search(source) is None:
        return source

    out: list[str] = []
    for ch in source:
        code = ord(ch)
        if ch in {"\n", "\r", "\t"}:
            out.append(ch)
            continue
        # C0 controls + DEL + C1 controls.
        if code < 32 or code == 127 or 0x80 <= code <= 0x9F:
            out.append(f"\\x{code:02x}")
            continue
        out.append(ch)
    return "".join(out)


def _normalize_style(style: str) -> str:
    if style in _VALID_STYLES:
        return style
    if style in _INVALID_STYLES:
        return FALLBACK_STYLE

    try:
        get_style_by_name(style)
    except ClassNotFound:
        _INVALID_STYLES.add(style)
        return FALLBACK_STYLE
    _VALID_STYLES.add(style)
    return style


def _formatter_for_style(style: str) -> TerminalFormatter:
    formatter = _FORMATTERS.get(style)
    if formatter is not None:
        return formatter
    formatter = TerminalFormatter(style=style)
    _FORMATTERS[style] = formatter
    return formatter


def pygments_colorize(source: str, style: str = FALLBACK_STYLE) -> str:
    try:
        return pygments_highlight(source, DiffLexer(), _formatter_for_style(_normalize_style(style)))
    except Exception:
        return source


def colorize_diff(diff_text: str, style: str = FALLBACK_STYLE, no_color: bool = False, width: int | None = None) -> str:
    """Colorize unified diff text using the best available tool."""
    diff_text = sanitize_terminal_text(diff_text)
    if no_color or not diff_text:
        return diff_text

    for command in (tools.diff_colorizer_command(width), tools.syntax_highlighter_command("diff")):
        if command is None:
            continue
        rendered = tools.pipe_through(command, diff_text)
        if rendered:
            return rendered

    return pygments_colorize(diff_text, style)
