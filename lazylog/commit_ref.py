"""Identifier extraction from rendered log and menu lines.

Log lines arrive exactly as fzf displays them: colored, prefixed with graph
characters, and followed by refs and a subject that may also contain hex.
"""

from __future__ import annotations

import re

from .ansi import strip_ansi

COMMIT_ID_MIN_LENGTH = 7

_COMMIT_ID_RE = re.compile(
    rf"(?<![0-9A-Za-z_])[0-9a-f]{{{COMMIT_ID_MIN_LENGTH},}}(?![0-9A-Za-z_])"
)


def extract_commit_id(line: str) -> str | None:
    """Return the first standalone hex run of at least seven characters.

    Returns ``None`` when the line carries no such run, for example a pure
    graph continuation line like ``"| |/"``.
    """
    match = _COMMIT_ID_RE.search(strip_ansi(line))
    if match is None:
        return None
    return match.group(0)


def extract_action_id(line: str) -> str | None:
    """Return the tab-delimited leading field of a menu line."""
    head = strip_ansi(line).split("\t", 1)[0].strip()
    return head or None
