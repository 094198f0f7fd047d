"""Deferred-command channel between helpers and the picker owner.

Helpers run inside fzf key bindings, where a command that touches the
terminal (an interactive rebase, an editor) would fight fzf for the screen.
They queue commands here instead. The owner of the picker reads the channel
only after every writer has exited and replays the commands in order.

``break`` closes the nearest picker, ``exit`` ends the whole session. Both
also interrupt that picker, because fzf cannot otherwise be told to close
from inside one of its own key bindings.
"""

from __future__ import annotations

import contextlib
import logging
import os
import shlex
import signal
import subprocess
import tempfile
from collections.abc import Callable, Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path

from .errors import InvariantViolation

logger = logging.getLogger(__name__)

CHANNEL_FD_ENV = "LAZYLOG_CHANNEL_FD"
PICKER_PIDFILE_ENV = "LAZYLOG_PICKER_PIDFILE"
PIDFILE_NAME = "picker.pid"

BREAK = "break"
EXIT = "exit"
CONTROL_COMMANDS = frozenset({BREAK, EXIT})


def encode_command(argv: Sequence[str]) -> str:
    """Join ``argv`` into one line with every argument shell-escaped."""
    if not argv:
        raise ValueError("deferred command must not be empty")
    line = shlex.join(list(argv))
    if "\n" in line:
        raise ValueError("deferred command must fit on one line")
    return line


def decode_command(line: str) -> list[str]:
    return shlex.split(line)


def interrupt_picker(pidfile: str | Path | None) -> bool:
    """Send SIGINT to the picker recorded in ``pidfile``.

    Returns whether a process was signalled. A missing pidfile, a stale pid or
    an already-exited picker is a no-op.
    """
    if not pidfile:
        return False
    try:
        pid = int(Path(pidfile).read_text(encoding="utf-8").strip())
    except (OSError, ValueError):
        return False
    if pid <= 0:
        return False
    try:
        os.kill(pid, signal.SIGINT)
    except (ProcessLookupError, PermissionError):
        return False
    logger.debug("interrupted picker pid %d", pid)
    return True


class DeferredCommandChannel:
    """Writer side of the channel, as seen from a helper process."""

    def __init__(self, fd: int, pidfile: str | Path | None = None) -> None:
        self.fd = fd
        self.pidfile = pidfile

    @classmethod
    def from_environment(cls, environ: Mapping[str, str] | None = None) -> "DeferredCommandChannel":
        """Attach to the channel exported by the picker owner.

        Raises ``InvariantViolation`` when no channel was exported, which means
        a helper-only entry point was run by hand instead of from a picker.
        """
        env = os.environ if environ is None else environ
        raw = env.get(CHANNEL_FD_ENV, "")
        try:
            fd = int(raw)
        except ValueError:
            raise InvariantViolation(f"{CHANNEL_FD_ENV} is not set; this entry point only runs inside a picker") from None
        if fd < 0:
            raise InvariantViolation(f"invalid {CHANNEL_FD_ENV}: {raw!r}")
        return cls(fd, env.get(PICKER_PIDFILE_ENV) or None)

    def send_line(self, line: str) -> None:
        logger.debug("deferred: %s", line)
        data = f"{line}\n".encode("utf-8")
        view = memoryview(data)
        while view:
            written = os.write(self.fd, view)
            view = view[written:]
        if line in CONTROL_COMMANDS:
            interrupt_picker(self.pidfile)

    def send(self, argv: Sequence[str]) -> None:
        self.send_line(encode_command(argv))

    def send_break(self) -> None:
        self.send_line(BREAK)

    def send_exit(self) -> None:
        self.send_line(EXIT)


def read_deferred_commands(fd: int) -> list[str]:
    """Read the channel until every writer has closed it.

    This is the owner's only synchronization point with its picker: EOF arrives
    once fzf and every helper it spawned have exited.
    """
    chunks: list[bytes] = []
    while True:
        chunk = os.read(fd, 65536)
        if not chunk:
            break
        chunks.append(chunk)
    text = b"".join(chunks).decode("utf-8", errors="replace")
    return [line for line in text.splitlines() if line.strip()]


@dataclass
class ReplayResult:
    """What happened while replaying one picker's deferred commands."""

    exit_requested: bool = False
    break_requested: bool = False
    executed: list[str] = field(default_factory=list)
    failures: list[tuple[str, int]] = field(default_factory=list)


def run_deferred_command(line: str) -> int:
    """Run one queued command in the foreground, without a shell."""
    try:
        argv = decode_command(line)
    except ValueError:
        logger.warning("malformed deferred command: %r", line)
        return 2
    if not argv:
        return 0
    try:
        return subprocess.run(argv, check=False).returncode
    except OSError as exc:
        logger.warning("deferred command %r failed to start: %s", line, exc)
        return 127


def replay(
    commands: Sequence[str],
    runner: Callable[[str], int] = run_deferred_command,
    on_failure: Callable[[str, int], None] | None = None,
) -> ReplayResult:
    """Execute ``commands`` in arrival order, stopping at ``exit``.

    ``break`` only records that the nearest picker was closed; commands after
    it still run. A failing command is reported through ``on_failure`` and the
    remaining commands continue.
    """
    result = ReplayResult()
    for line in commands:
        if line == EXIT:
            result.exit_requested = True
            break
        if line == BREAK:
            result.break_requested = True
            continue
        status = runner(line)
        result.executed.append(line)
        if status != 0:
            result.failures.append((line, status))
            if on_failure is not None:
                on_failure(line, status)
    return result


@dataclass
class ChannelEndpoint:
    """Owner side of a channel: the pipe, the pidfile and the child environment."""

    read_fd: int
    write_fd: int
    pidfile: Path

    def child_environment(self, base: Mapping[str, str]) -> dict[str, str]:
        env = dict(base)
        env[CHANNEL_FD_ENV] = str(self.write_fd)
        env[PICKER_PIDFILE_ENV] = str(self.pidfile)
        return env

    def record_picker(self, pid: int) -> None:
        self.pidfile.write_text(f"{pid}\n", encoding="utf-8")

    def close_write_end(self) -> None:
        if self.write_fd >= 0:
            with contextlib.suppress(OSError):
                os.close(self.write_fd)
            self.write_fd = -1

    def collect(self) -> list[str]:
        """Drop the owner's writer reference, then read until EOF."""
        self.close_write_end()
        return read_deferred_commands(self.read_fd)


@contextlib.contextmanager
def open_channel() -> Iterator[ChannelEndpoint]:
    """Create the channel pipe and a private directory for the picker pidfile."""
    read_fd, write_fd = os.pipe()
    endpoint = ChannelEndpoint(read_fd=read_fd, write_fd=write_fd, pidfile=Path())
    try:
        with tempfile.TemporaryDirectory(prefix="lazylog-") as control_dir:
            endpoint.pidfile = Path(control_dir) / PIDFILE_NAME
            yield endpoint
    finally:
        endpoint.close_write_end()
        with contextlib.suppress(OSError):
            os.close(read_fd)
