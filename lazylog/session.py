"""Top-level interactive session.

Runs the commit picker, then replays whatever its helpers deferred once fzf
has fully exited. The picker is relaunched after each replay until a helper
asks to ``exit`` or the user closes it without queueing anything.
"""

from __future__ import annotations

import contextlib
import logging
import subprocess

from . import git, tools
from .channel import replay, run_deferred_command
from .config import BrowserConfig
from .picker import PickerResult, deferred_interrupts, log_picker_args, run_picker
from .terminal import page_text

logger = logging.getLogger(__name__)


def _report_failure(line: str, status: int) -> None:
    tools.show_status(f"command failed (exit {status}): {line}")


def run_log_picker(fzf: str, config: BrowserConfig) -> PickerResult:
    """Stream ``git log --graph`` into one picker run."""
    log_proc = subprocess.Popen(
        git.log_graph_command(config.repo_root, config.ref, color=not config.no_color),
        stdout=subprocess.PIPE,
        stderr=subprocess.DEVNULL,
    )
    try:
        return run_picker(log_picker_args(fzf, config), config, stdin=log_proc.stdout)
    finally:
        if log_proc.stdout is not None:
            log_proc.stdout.close()
        if log_proc.poll() is None:
            with contextlib.suppress(ProcessLookupError):
                log_proc.terminate()
        log_proc.wait()


def show_plain_log(config: BrowserConfig) -> int:
    """Degraded mode without fzf: page the colored graph and return."""
    tools.show_status("fzf not found; showing the plain log")
    proc = git.run_git(
        config.repo_root,
        git.log_graph_args(config.ref, color=not config.no_color),
        timeout_seconds=60.0,
    )
    if proc is None:
        return 1
    if proc.returncode != 0:
        page_text(proc.stderr or proc.stdout, config)
        return proc.returncode
    page_text(proc.stdout, config)
    return 0


def run_session(config: BrowserConfig) -> int:
    """Run the interactive browser until the user or an action ends it.

    Returns the status of the last failed command replayed in the final round,
    or 0. Ctrl-C is left to the picker and to replayed commands for the whole
    session.
    """
    fzf = tools.find_fuzzy_finder()
    if fzf is None:
        return show_plain_log(config)

    with deferred_interrupts():
        while True:
            result = run_log_picker(fzf, config)
            if not result.commands:
                return 0
            outcome = replay(result.commands, runner=run_deferred_command, on_failure=_report_failure)
            if outcome.exit_requested:
                return outcome.failures[-1][1] if outcome.failures else 0
            logger.debug("relaunching picker after %d command(s)", len(outcome.executed))
