"""Detection and degraded fallbacks for optional external tools.

Each tool is probed once per process and the result is memoized. A missing
tool only narrows a feature (no colors, no clipboard, plain paging); it never
aborts a session.
"""

from __future__ import annotations

import logging
import os
import shlex
import shutil
import subprocess
import sys

logger = logging.getLogger(__name__)

PAGER_ENV = "LAZYLOG_PAGER"

_TOOL_PATHS: dict[str, str | None] = {}


def reset_tool_cache() -> None:
    """Forget every memoized probe result."""
    _TOOL_PATHS.clear()


def find_tool(name: str) -> str | None:
    """Return the absolute path of ``name`` on ``PATH``, probing at most once."""
    if name in _TOOL_PATHS:
        return _TOOL_PATHS[name]
    path = shutil.which(name)
    _TOOL_PATHS[name] = path
    logger.debug("tool %s -> %s", name, path or "missing")
    return path


def _first_available(*names: str) -> str | None:
    for name in names:
        path = find_tool(name)
        if path is not None:
            return path
    return None


def find_fuzzy_finder() -> str | None:
    return find_tool("fzf")


def pager_command(preferred: str = "") -> list[str] | None:
    """Return the pager argv, or ``None`` to write straight to the terminal.

    ``preferred`` (from config) wins over ``$LAZYLOG_PAGER``, then ``less -R``
    and ``more`` are tried in that order.
    """
    for raw in (preferred, os.environ.get(PAGER_ENV, "")):
        if not raw:
            continue
        cmd = shlex.split(raw)
        if cmd and find_tool(cmd[0]) is not None:
            return cmd
    less = find_tool("less")
    if less is not None:
        return [less, "-R"]
    more = find_tool("more")
    if more is not None:
        return [more]
    return None


def diff_colorizer_command(width: int | None = None) -> list[str] | None:
    """Return an argv that colorizes unified diff on stdin, if one is installed."""
    delta = find_tool("delta")
    if delta is not None:
        cmd = [delta, "--paging=never"]
        if width:
            cmd.append(f"--width={width}")
        return cmd
    fancy = find_tool("diff-so-fancy")
    if fancy is not None:
        return [fancy]
    return None


def syntax_highlighter_command(language: str = "diff") -> list[str] | None:
    """Return an argv for ``bat`` (``batcat`` on Debian) highlighting stdin."""
    bat = _first_available("bat", "batcat")
    if bat is None:
        return None
    return [bat, f"--language={language}", "--color=always", "--style=plain", "--paging=never"]


def pipe_through(command: list[str], text: str, timeout_seconds: float = 10.0) -> str | None:
    """Feed ``text`` to ``command`` and return its stdout, ``None`` on any failure."""
    try:
        proc = subprocess.run(
            command,
            input=text,
            stdout=subprocess.PIPE,
            stderr=subprocess.DEVNULL,
            text=True,
            encoding="utf-8",
            errors="replace",
            check=False,
            timeout=timeout_seconds,
        )
    except Exception as exc:
        logger.debug("pipe through %s failed: %s", command[0], exc)
        return None
    if proc.returncode != 0:
        return None
    return proc.stdout


def _clipboard_candidates() -> list[list[str]]:
    if sys.platform == "darwin":
        return [["pbcopy"]]
    if os.name == "nt":
        return [["clip"]]
    return [
        ["wl-copy"],
        ["xclip", "-selection", "clipboard"],
        ["xsel", "--clipboard", "--input"],
    ]


def copy_to_clipboard(text: str) -> bool:
    """Best-effort clipboard copy across macOS, Windows, and common Linux tools."""
    if not text:
        return False

    for command in _clipboard_candidates():
        if find_tool(command[0]) is None:
            continue
        try:
            proc = subprocess.run(
                command,
                input=text,
                text=True,
                check=False,
            )
        except Exception:
            continue
        if proc.returncode == 0:
            return True
    return False


def show_status(message: str) -> None:
    """Show a one-line status message in tmux, or on stderr outside tmux."""
    logger.info("status: %s", message)
    tmux = find_tool("tmux") if os.environ.get("TMUX") else None
    if tmux is not None:
        try:
            proc = subprocess.run(
                [tmux, "display-message", message],
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                check=False,
            )
        except Exception:
            proc = None
        if proc is not None and proc.returncode == 0:
            return
    sys.stderr.write(f"{message}\n")
    sys.stderr.flush()
