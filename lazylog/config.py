"""Immutable browser configuration and its persisted defaults.

User defaults come from a JSON file in the platform config directory. The
resolved ``BrowserConfig`` travels to helper processes through the environment
so every level of the picker tree sees the same value.
"""

from __future__ import annotations

import json
import os
import subprocess
import sys
from dataclasses import asdict, dataclass, replace
from pathlib import Path
from typing import Mapping

from platformdirs import user_config_dir

APP_NAME = "lazylog"
CONFIG_FILENAME = "config.json"
CONFIG_PATH = Path(user_config_dir(APP_NAME, appauthor=False)) / CONFIG_FILENAME
CONFIG_ENV = "LAZYLOG_CONFIG"

DEFAULT_REF = "HEAD"
DEFAULT_STYLE = "monokai"
DEFAULT_PREVIEW_HEIGHT = 60


@dataclass(frozen=True)
class BrowserConfig:
    """Everything a session or helper needs to know about what it browses."""

    repo_root: Path
    ref: str = DEFAULT_REF
    preview_height: int = DEFAULT_PREVIEW_HEIGHT
    style: str = DEFAULT_STYLE
    no_color: bool = False
    boxed: bool = False
    pager: str = ""
    program: tuple[str, ...] = ()
    depth: int = 0

    def nested(self) -> "BrowserConfig":
        """Return the config handed to helpers of a picker owned at this level."""
        return replace(self, depth=self.depth + 1)

    def to_json(self) -> str:
        data = asdict(self)
        data["repo_root"] = str(self.repo_root)
        data["program"] = list(self.program)
        return json.dumps(data, sort_keys=True)

    @classmethod
    def from_json(cls, raw: str) -> "BrowserConfig | None":
        """Decode a config serialized by ``to_json``; ``None`` when malformed."""
        try:
            data = json.loads(raw)
        except ValueError:
            return None
        if not isinstance(data, dict) or not isinstance(data.get("repo_root"), str):
            return None
        return cls(
            repo_root=Path(data["repo_root"]),
            ref=_as_str(data.get("ref"), DEFAULT_REF),
            preview_height=_as_percent(data.get("preview_height"), DEFAULT_PREVIEW_HEIGHT),
            style=_as_str(data.get("style"), DEFAULT_STYLE),
            no_color=_as_bool(data.get("no_color"), False),
            boxed=_as_bool(data.get("boxed"), False),
            pager=_as_str(data.get("pager"), "", allow_empty=True),
            program=_as_program(data.get("program")),
            depth=_as_nonnegative_int(data.get("depth")),
        )


def default_program() -> tuple[str, ...]:
    """Return the argv that re-invokes this program as a helper."""
    return (sys.executable, "-m", APP_NAME)


def load_config_file(path: Path | None = None) -> dict[str, object]:
    """Load the persisted JSON config object.

    Returns an empty dict when the file is missing, unreadable, malformed, or
    does not decode to a top-level JSON object.
    """
    config_path = path or CONFIG_PATH
    try:
        data = json.loads(config_path.read_text(encoding="utf-8"))
    except Exception:
        return {}
    return data if isinstance(data, dict) else {}


def load_user_defaults(data: Mapping[str, object] | None = None) -> dict[str, object]:
    """Validate persisted values, replacing anything malformed with defaults."""
    if data is None:
        data = load_config_file()
    return {
        "style": _as_str(data.get("style"), DEFAULT_STYLE),
        "preview_height": _as_percent(data.get("preview_height"), DEFAULT_PREVIEW_HEIGHT),
        "boxed": _as_bool(data.get("boxed"), False),
        "no_color": _as_bool(data.get("no_color"), False),
        "pager": _as_str(data.get("pager"), "", allow_empty=True),
        "log_file": _as_str(data.get("log_file"), "", allow_empty=True),
    }


def resolve_repo_root(start: Path, timeout_seconds: float = 2.0) -> Path | None:
    """Return the work-tree root containing ``start``, or ``None`` outside a repo."""
    try:
        proc = subprocess.run(
            ["git", "-C", str(start), "rev-parse", "--show-toplevel"],
            stdout=subprocess.PIPE,
            stderr=subprocess.DEVNULL,
            text=True,
            encoding="utf-8",
            errors="replace",
            check=False,
            timeout=timeout_seconds,
        )
    except Exception:
        return None
    if proc.returncode != 0 or not proc.stdout.strip():
        return None
    return Path(proc.stdout.strip()).resolve()


def config_from_environment(environ: Mapping[str, str] | None = None) -> BrowserConfig:
    """Rebuild the config a parent exported, or discover one from the cwd."""
    env = os.environ if environ is None else environ
    raw = env.get(CONFIG_ENV, "")
    if raw:
        config = BrowserConfig.from_json(raw)
        if config is not None:
            return config

    cwd = Path.cwd()
    defaults = load_user_defaults()
    return BrowserConfig(
        repo_root=resolve_repo_root(cwd) or cwd.resolve(),
        style=str(defaults["style"]),
        preview_height=int(defaults["preview_height"]),
        no_color=bool(defaults["no_color"]),
        boxed=bool(defaults["boxed"]),
        pager=str(defaults["pager"]),
        program=default_program(),
    )


def _as_str(value: object, default: str, allow_empty: bool = False) -> str:
    if not isinstance(value, str):
        return default
    if not value and not allow_empty:
        return default
    return value


def _as_bool(value: object, default: bool) -> bool:
    return value if isinstance(value, bool) else default


def _as_percent(value: object, default: object) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        return int(default)
    if value <= 0 or value >= 100:
        return int(default)
    return value


def _as_nonnegative_int(value: object) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        return 0
    return max(0, value)


def _as_program(value: object) -> tuple[str, ...]:
    if isinstance(value, list) and value and all(isinstance(part, str) for part in value):
        return tuple(value)
    return default_program()
