"""Terminal screen-buffer and mouse-reporting control.

Helpers that take over the whole screen run from an fzf ``execute`` binding.
fzf suspends its own screen first, so they start on the primary screen with
mouse reporting off. A takeover records that state and puts it back
afterwards, including on exceptions, ``exit()`` and SIGTERM/SIGHUP.
"""

from __future__ import annotations

import atexit
import contextlib
import logging
import os
import signal
import subprocess
import sys
import termios
from dataclasses import dataclass
from typing import Iterator

from . import tools
from .config import BrowserConfig

logger = logging.getLogger(__name__)

TTY_PATH = "/dev/tty"

_ENTER_ALTERNATE_SCREEN = b"\x1b[?1049h"
_LEAVE_ALTERNATE_SCREEN = b"\x1b[?1049l"
_MOUSE_ON = b"\x1b[?1000h\x1b[?1002h\x1b[?1006h"
_MOUSE_OFF = b"\x1b[?1000l\x1b[?1002l\x1b[?1006l"
_SHOW_CURSOR = b"\x1b[?25h"
_CLEAR_SCREEN = b"\x1b[H\x1b[2J"


@dataclass(frozen=True)
class TerminalState:
    """Global terminal modes a full-screen helper may change."""

    alternate_screen: bool = False
    mouse_reporting: bool = False


TAKEOVER_STATE = TerminalState(alternate_screen=True, mouse_reporting=False)


class TerminalController:
    """Write mode transitions to a terminal fd and remember the current state."""

    def __init__(self, fd: int, state: TerminalState | None = None) -> None:
        self.fd = fd
        self.state = state or TerminalState()
        try:
            self._saved_tty_state = termios.tcgetattr(fd)
        except termios.error:
            self._saved_tty_state = None

    @classmethod
    def open_tty(cls, state: TerminalState | None = None) -> "TerminalController | None":
        """Open the controlling terminal; ``None`` when there is none."""
        try:
            fd = os.open(TTY_PATH, os.O_RDWR | os.O_NOCTTY)
        except OSError:
            return None
        return cls(fd, state)

    def close(self) -> None:
        with contextlib.suppress(OSError):
            os.close(self.fd)

    def apply(self, target: TerminalState) -> None:
        """Emit only the sequences needed to move from the current state to ``target``."""
        payload = b""
        if target.alternate_screen != self.state.alternate_screen:
            payload += _ENTER_ALTERNATE_SCREEN if target.alternate_screen else _LEAVE_ALTERNATE_SCREEN
        if target.mouse_reporting != self.state.mouse_reporting:
            payload += _MOUSE_ON if target.mouse_reporting else _MOUSE_OFF
        if payload:
            os.write(self.fd, payload)
        self.state = target

    def clear(self) -> None:
        os.write(self.fd, _CLEAR_SCREEN + _SHOW_CURSOR)

    def restore_tty_attributes(self) -> None:
        if self._saved_tty_state is None:
            return
        with contextlib.suppress(termios.error):
            termios.tcsetattr(self.fd, termios.TCSAFLUSH, self._saved_tty_state)

    @contextlib.contextmanager
    def takeover(self, target: TerminalState = TAKEOVER_STATE) -> Iterator["TerminalController"]:
        """Switch to ``target`` and guarantee the prior state comes back.

        Restoration also runs from an ``atexit`` hook and SIGTERM/SIGHUP
        handlers, since a helper can be torn down while its picker is killed.
        """
        prior = self.state
        restored = False

        def restore() -> None:
            nonlocal restored
            if restored:
                return
            restored = True
            with contextlib.suppress(OSError):
                self.restore_tty_attributes()
                self.apply(prior)

        def on_signal(signum, _frame) -> None:
            restore()
            raise SystemExit(128 + signum)

        previous_handlers = {}
        for signum in (signal.SIGTERM, signal.SIGHUP):
            with contextlib.suppress(ValueError, OSError):
                previous_handlers[signum] = signal.signal(signum, on_signal)
        atexit.register(restore)
        try:
            self.apply(target)
            yield self
        finally:
            restore()
            atexit.unregister(restore)
            for signum, handler in previous_handlers.items():
                with contextlib.suppress(ValueError, OSError):
                    signal.signal(signum, handler)


def page_text(text: str, config: BrowserConfig) -> int:
    """Show ``text`` full-screen in the pager and return its exit status.

    Under a picker the pager writes to the controlling terminal directly and
    runs inside a takeover on the alternate screen, so the shell scrollback
    fzf returns to is left untouched.
    """
    controller = TerminalController.open_tty(TerminalState()) if config.depth > 0 else None
    if controller is None:
        return _run_pager(text, config, None)
    try:
        with controller.takeover():
            controller.clear()
            return _run_pager(text, config, controller.fd)
    finally:
        controller.close()


def _run_pager(text: str, config: BrowserConfig, tty_fd: int | None) -> int:
    command = tools.pager_command(config.pager)
    if command is None:
        return _print_and_wait(text, tty_fd)
    try:
        proc = subprocess.run(
            command,
            input=text,
            stdout=tty_fd,
            text=True,
            encoding="utf-8",
            errors="replace",
            check=False,
        )
    except OSError as exc:
        logger.debug("pager %s failed: %s", command[0], exc)
        return _print_and_wait(text, tty_fd)
    return proc.returncode


def _print_and_wait(text: str, tty_fd: int | None) -> int:
    """Plain fallback when no pager exists: dump the text and wait for Enter."""
    if not text.endswith("\n"):
        text += "\n"
    if tty_fd is None:
        sys.stdout.write(text)
        sys.stdout.flush()
        return 0
    _write_all(tty_fd, text.encode("utf-8", errors="replace") + b"\n-- press Enter to return --")
    with contextlib.suppress(OSError):
        os.read(tty_fd, 1024)
    return 0


def _write_all(fd: int, data: bytes) -> None:
    view = memoryview(data)
    while view:
        written = os.write(fd, view)
        view = view[written:]
