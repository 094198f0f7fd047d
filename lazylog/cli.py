"""Command-line front door for lazylog.

With ``LAZYLOG_MODE`` unset this parses options and starts the interactive
session. With it set, the process is a helper spawned by fzf: argv carries
positional arguments only and the selected line arrives on stdin.
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from collections.abc import Sequence
from dataclasses import replace
from pathlib import Path

from .config import (
    DEFAULT_REF,
    BrowserConfig,
    config_from_environment,
    default_program,
    load_user_defaults,
    resolve_repo_root,
)
from .errors import ConfigError, LazylogError
from .helper import HelperContext, HelperInvocation, HelperMode, dispatch
from .log_setup import configure_logging
from .picker import MODE_ENV
from .session import run_session

logger = logging.getLogger(__name__)


def _percent(value: str) -> int:
    """argparse type for a preview height between 1 and 99."""
    try:
        parsed = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid integer value: {value!r}") from exc
    if parsed <= 0 or parsed >= 100:
        raise argparse.ArgumentTypeError("value must be between 1 and 99")
    return parsed


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="lazylog",
        description="Browse git commit history in fzf with previews and an action menu.",
    )
    parser.add_argument("ref", nargs="?", default=DEFAULT_REF, help="Revision to browse. Defaults to HEAD.")
    parser.add_argument("--style", default=None, help="Pygments style for diffs when no external colorizer exists.")
    parser.add_argument("--no-color", action="store_true", default=None, help="Disable colors in log and previews.")
    parser.add_argument(
        "--boxed",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Draw a border around the commit preview.",
    )
    parser.add_argument(
        "--preview-height",
        type=_percent,
        default=None,
        help="Preview window height as a percentage of the screen.",
    )
    parser.add_argument("--log-file", default=None, help="Write debug logs to this file.")
    return parser


def resolve_config(args: argparse.Namespace, cwd: Path | None = None) -> tuple[BrowserConfig, str]:
    """Merge persisted defaults with command-line overrides.

    Returns the config and the log file path (empty when logging is off).
    Raises ``ConfigError`` outside a git work tree.
    """
    start = cwd or Path.cwd()
    repo_root = resolve_repo_root(start)
    if repo_root is None:
        raise ConfigError(f"not a git repository: {start}")

    defaults = load_user_defaults()
    config = BrowserConfig(
        repo_root=repo_root,
        ref=args.ref,
        preview_height=int(defaults["preview_height"]),
        style=str(defaults["style"]),
        no_color=bool(defaults["no_color"]),
        boxed=bool(defaults["boxed"]),
        pager=str(defaults["pager"]),
        program=default_program(),
    )
    overrides: dict[str, object] = {}
    if args.style is not None:
        overrides["style"] = args.style
    if args.no_color:
        overrides["no_color"] = True
    if args.boxed is not None:
        overrides["boxed"] = args.boxed
    if args.preview_height is not None:
        overrides["preview_height"] = args.preview_height
    if overrides:
        config = replace(config, **overrides)
    log_file = args.log_file if args.log_file is not None else str(defaults["log_file"])
    return config, log_file


def _read_selected_line() -> str:
    if sys.stdin is None or sys.stdin.isatty():
        return ""
    return sys.stdin.readline().rstrip("\r\n")


def run_helper(flag: str, argv: Sequence[str]) -> int:
    """Run one helper invocation and return its exit code."""
    configure_logging()
    try:
        mode = HelperMode.from_flag(flag)
        stdin_line = _read_selected_line() if mode.reads_selection else ""
        invocation = HelperInvocation(mode=mode, args=tuple(argv), stdin_line=stdin_line)
        ctx = HelperContext(config=config_from_environment(), out=sys.stdout)
        status = dispatch(invocation, ctx)
    except LazylogError as exc:
        logger.error("%s", exc)
        return exc.exit_code
    sys.stdout.flush()
    return status


def main(argv: Sequence[str] | None = None) -> None:
    """Entry point for both the interactive session and fzf helpers."""
    arguments = list(sys.argv[1:] if argv is None else argv)
    flag = os.environ.get(MODE_ENV, "")
    if flag:
        raise SystemExit(run_helper(flag, arguments))

    args = build_parser().parse_args(arguments)
    try:
        config, log_file = resolve_config(args)
    except ConfigError as exc:
        raise SystemExit(str(exc)) from None
    configure_logging(log_file or None)
    logger.debug("session start: repo=%s ref=%s", config.repo_root, config.ref)
    raise SystemExit(run_session(config))


if __name__ == "__main__":
    main()
