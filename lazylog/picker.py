"""fzf command lines and the picker process lifecycle.

Every key binding and preview re-invokes this program with ``LAZYLOG_MODE``
set. The selected line travels on the helper's stdin and the commit id or
action id travels as positional arguments.
"""

from __future__ import annotations

import contextlib
import logging
import os
import shlex
import signal
import subprocess
from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass
from typing import IO

from .channel import ChannelEndpoint, open_channel
from .config import CONFIG_ENV, BrowserConfig

logger = logging.getLogger(__name__)

MODE_ENV = "LAZYLOG_MODE"
PICKER_SHELL = "/bin/sh"

LOG_HEADER = "enter: actions  ctrl-d: diff  ctrl-y: copy hash  esc: quit"
MENU_HEADER = "enter: run  esc: back"


@dataclass
class PickerResult:
    """Outcome of one picker run, after its whole process tree has exited."""

    returncode: int
    commands: list[str]


def program_command(config: BrowserConfig) -> str:
    return shlex.join(list(config.program))


def helper_command(config: BrowserConfig, mode: str, args: Sequence[str] = (), pipe_selection: bool = False) -> str:
    """Return the shell command fzf runs to invoke a helper.

    ``args`` are inserted verbatim so fzf placeholders like ``{1}`` survive;
    callers quote literal values. With ``pipe_selection`` the current line
    ``{}`` is fed to the helper's stdin.
    """
    parts = ["env", f"{MODE_ENV}={mode}", program_command(config), *args]
    command = " ".join(parts)
    if pipe_selection:
        return f"printf '%s\\n' {{}} | {command}"
    return command


def log_picker_args(fzf: str, config: BrowserConfig) -> list[str]:
    """Return the argv for the top-level commit picker."""
    return [
        fzf,
        "--ansi",
        "--no-sort",
        "--reverse",
        "--tiebreak=index",
        "--no-multi",
        f"--prompt={config.ref}> ",
        f"--header={LOG_HEADER}",
        "--preview",
        helper_command(config, "preview", pipe_selection=True),
        f"--preview-window=down,{config.preview_height}%,border-top",
        "--bind",
        f"enter:execute:{helper_command(config, 'menu', pipe_selection=True)}",
        "--bind",
        f"ctrl-d:execute:{helper_command(config, 'diff', pipe_selection=True)}",
        # fzf keeps drawing during execute-silent, so stderr must not reach it.
        "--bind",
        f"ctrl-y:execute-silent:{helper_command(config, 'copy', pipe_selection=True)} 2>/dev/null",
    ]


def menu_picker_args(fzf: str, config: BrowserConfig, commit: str, nested: bool) -> list[str]:
    """Return the argv for the action menu of ``commit``.

    A nested menu keeps fzf from clearing the screen on exit; the picker that
    launched it redraws as soon as control returns.
    """
    quoted_commit = shlex.quote(commit)
    args = [
        fzf,
        "--ansi",
        "--no-sort",
        "--reverse",
        "--no-multi",
        "--delimiter=\t",
        "--with-nth=2..",
        f"--prompt={commit}> ",
        f"--header={MENU_HEADER}",
        "--preview",
        helper_command(config, "menu-preview", ["{1}", quoted_commit]),
        f"--preview-window=right,{config.preview_height}%,wrap",
        "--bind",
        f"enter:execute:{helper_command(config, 'menu-item', ['{1}', quoted_commit])}",
    ]
    if nested:
        args.append("--no-clear")
    return args


def picker_environment(config: BrowserConfig, endpoint: ChannelEndpoint, base: Mapping[str, str]) -> dict[str, str]:
    """Environment for a picker and, through it, for every helper it spawns."""
    env = endpoint.child_environment(base)
    env.pop(MODE_ENV, None)
    env[CONFIG_ENV] = config.nested().to_json()
    if os.path.exists(PICKER_SHELL):
        env["SHELL"] = PICKER_SHELL
    return env


@contextlib.contextmanager
def deferred_interrupts() -> Iterator[None]:
    """Swallow SIGINT in this process while a picker owns the terminal.

    A Python-level handler, unlike ``SIG_IGN``, is reset to the default in
    children on exec, so fzf still receives interrupts.
    """
    try:
        previous = signal.signal(signal.SIGINT, lambda _signum, _frame: None)
    except ValueError:
        yield
        return
    try:
        yield
    finally:
        signal.signal(signal.SIGINT, previous)


def run_picker(
    argv: Sequence[str],
    config: BrowserConfig,
    stdin: IO[bytes] | int | None = None,
    input_text: str | None = None,
    base_env: Mapping[str, str] | None = None,
) -> PickerResult:
    """Run fzf to completion and collect the commands its helpers deferred.

    The picker's pid is recorded so helpers can interrupt it. The channel is
    read until EOF, which only happens after fzf and all of its helpers exited.
    """
    env_base = os.environ if base_env is None else base_env
    with open_channel() as endpoint, deferred_interrupts():
        proc = subprocess.Popen(
            list(argv),
            stdin=subprocess.PIPE if input_text is not None else stdin,
            stdout=subprocess.DEVNULL,
            env=picker_environment(config, endpoint, env_base),
            pass_fds=(endpoint.write_fd,),
        )
        endpoint.record_picker(proc.pid)
        logger.debug("picker pid %d started at depth %d", proc.pid, config.depth)
        if input_text is not None and proc.stdin is not None:
            with contextlib.suppress(BrokenPipeError):
                proc.stdin.write(input_text.encode("utf-8"))
            with contextlib.suppress(BrokenPipeError):
                proc.stdin.close()
        commands = endpoint.collect()
        returncode = proc.wait()
    logger.debug("picker exited %d with %d deferred command(s)", returncode, len(commands))
    return PickerResult(returncode=returncode, commands=commands)
