"""Presentation of commits for previews and the pager.

All functions here return text and have no terminal side effects. A ``None``
from git becomes a short dimmed notice so a broken object never blanks the
preview pane.
"""

from __future__ import annotations

import os

from . import git
from .ansi import display_width, pad_ansi_line, strip_ansi
from .config import BrowserConfig
from .highlight import colorize_diff, sanitize_terminal_text

DEFAULT_PREVIEW_COLUMNS = 80

BOX_TOP_LEFT = "┌"
BOX_TOP_RIGHT = "┐"
BOX_BOTTOM_LEFT = "└"
BOX_BOTTOM_RIGHT = "┘"
BOX_HORIZONTAL = "─"
BOX_VERTICAL = "│"

_DIM = "\033[2m"
_RESET = "\033[0m"


def preview_columns(default: int = DEFAULT_PREVIEW_COLUMNS) -> int:
    """Return the preview pane width fzf exports, or ``default`` outside fzf."""
    raw = os.environ.get("FZF_PREVIEW_COLUMNS", "")
    try:
        columns = int(raw)
    except ValueError:
        return default
    return columns if columns > 0 else default


def _notice(text: str, no_color: bool) -> str:
    return f"{text}\n" if no_color else f"{_DIM}{text}{_RESET}\n"


def _ensure_trailing_newline(text: str) -> str:
    return text if text.endswith("\n") else f"{text}\n"


def format_commit_metadata(config: BrowserConfig, commit: str) -> str:
    metadata = git.commit_metadata(config.repo_root, commit, color=not config.no_color)
    if metadata is None:
        return _notice(f"cannot read commit {commit}", config.no_color)
    return _ensure_trailing_newline(sanitize_commit_text(metadata, config.no_color))


def format_commit_message(config: BrowserConfig, commit: str) -> str:
    message = git.commit_message(config.repo_root, commit)
    if message is None:
        return _notice(f"cannot read message of {commit}", config.no_color)
    return _ensure_trailing_newline(sanitize_terminal_text(message.rstrip("\n")))


def format_diff(config: BrowserConfig, commit: str, width: int | None = None) -> str:
    diff_text = git.commit_diff(config.repo_root, commit)
    if diff_text is None:
        return _notice(f"cannot read diff of {commit}", config.no_color)
    if not diff_text.strip():
        return _notice("(no changes)", config.no_color)
    return colorize_diff(diff_text, style=config.style, no_color=config.no_color, width=width)


def format_diffstat(config: BrowserConfig, commit: str, width: int = DEFAULT_PREVIEW_COLUMNS) -> str:
    """Return the commit's diff-stat without the leading oneline header."""
    stat = git.commit_diffstat(config.repo_root, commit, width=width, color=not config.no_color)
    if stat is None:
        return _notice(f"cannot read diff-stat of {commit}", config.no_color)
    lines = stat.splitlines()[1:]
    body = "\n".join(lines)
    return _ensure_trailing_newline(body) if body.strip() else _notice("(no changes)", config.no_color)


def sanitize_commit_text(text: str, no_color: bool) -> str:
    """Sanitize git output that may legitimately contain its own SGR codes.

    Commit metadata is rendered by git with color, so only the SGR sequences
    git emitted are kept; every other control byte is escaped.
    """
    if no_color:
        return sanitize_terminal_text(strip_ansi(text))
    parts: list[str] = []
    for line in text.split("\n"):
        segments = line.split("\x1b[")
        rebuilt = [sanitize_terminal_text(segments[0])]
        for segment in segments[1:]:
            rebuilt.append("\x1b[" + sanitize_terminal_text(segment))
        parts.append("".join(rebuilt))
    return "\n".join(parts)


def render_commit_preview(config: BrowserConfig, commit: str, width: int | None = None) -> str:
    """Render metadata followed by the diff-stat, boxed when configured."""
    columns = width or preview_columns()
    inner = columns - 4 if config.boxed else columns
    text = format_commit_metadata(config, commit) + "\n" + format_diffstat(config, commit, width=max(20, inner))
    if config.boxed:
        return boxed(text, columns, title=commit)
    return text


def _message_body(config: BrowserConfig, commit: str) -> str:
    message = git.commit_message(config.repo_root, commit) or ""
    body = message.strip("\n").split("\n")[1:]
    lines = [f"    {line}" if line else "" for line in body]
    text = "\n".join(lines).strip("\n")
    return f"\n{sanitize_terminal_text(text)}\n" if text else ""


def render_full_commit(config: BrowserConfig, commit: str, width: int | None = None) -> str:
    """Render metadata, the message body, the diff-stat and the full diff."""
    return (
        format_commit_metadata(config, commit)
        + _message_body(config, commit)
        + "\n"
        + format_diffstat(config, commit, width=width or DEFAULT_PREVIEW_COLUMNS)
        + "\n"
        + format_diff(config, commit, width=width)
    )


def boxed(text: str, width: int, title: str = "") -> str:
    """Draw a single-line border around ``text`` filling ``width`` columns.

    Lines longer than the interior are clipped; ANSI styling inside the box is
    reset before each right border so colors never leak into the frame.
    """
    width = max(4, width)
    interior = width - 4
    label = f" {title} " if title and display_width(title) + 2 <= width - 2 else ""
    top_fill = BOX_HORIZONTAL * (width - 2 - display_width(label))
    out = [f"{BOX_TOP_LEFT}{label}{top_fill}{BOX_TOP_RIGHT}"]
    for line in text.rstrip("\n").split("\n"):
        out.append(f"{BOX_VERTICAL} {pad_ansi_line(line, interior)} {BOX_VERTICAL}")
    out.append(f"{BOX_BOTTOM_LEFT}{BOX_HORIZONTAL * (width - 2)}{BOX_BOTTOM_RIGHT}")
    return "\n".join(out) + "\n"
