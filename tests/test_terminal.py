"""Tests for terminal screen-buffer and mouse-reporting transitions.

A takeover must hand the terminal back exactly as it found it, including when
the body raises.
"""

from __future__ import annotations

import io
import sys
import unittest
from pathlib import Path
from unittest import mock

from lazylog.config import BrowserConfig
from lazylog.terminal import TAKEOVER_STATE, TerminalController, TerminalState, page_text

MOUSE_SCREEN = TerminalState(alternate_screen=True, mouse_reporting=True)


def _controller(state: TerminalState) -> TerminalController:
    with mock.patch("lazylog.terminal.termios.tcgetattr", return_value=[0]):
        return TerminalController(fd=9, state=state)


class ApplyTests(unittest.TestCase):
    def test_only_changed_modes_are_written(self) -> None:
        controller = _controller(MOUSE_SCREEN)

        with mock.patch("lazylog.terminal.os.write") as write_mock:
            controller.apply(TAKEOVER_STATE)

        write_mock.assert_called_once_with(9, b"\x1b[?1000l\x1b[?1002l\x1b[?1006l")
        self.assertEqual(controller.state, TAKEOVER_STATE)

    def test_unchanged_state_writes_nothing(self) -> None:
        controller = _controller(TAKEOVER_STATE)

        with mock.patch("lazylog.terminal.os.write") as write_mock:
            controller.apply(TAKEOVER_STATE)

        write_mock.assert_not_called()

    def test_entering_from_primary_screen_switches_buffer(self) -> None:
        controller = _controller(TerminalState())

        with mock.patch("lazylog.terminal.os.write") as write_mock:
            controller.apply(TAKEOVER_STATE)

        write_mock.assert_called_once_with(9, b"\x1b[?1049h")


class TakeoverTests(unittest.TestCase):
    def test_prior_state_returns_after_normal_exit(self) -> None:
        controller = _controller(TerminalState())

        with mock.patch("lazylog.terminal.os.write") as write_mock, mock.patch(
            "lazylog.terminal.termios.tcsetattr"
        ):
            with controller.takeover():
                self.assertEqual(controller.state, TAKEOVER_STATE)

        self.assertEqual(controller.state, TerminalState())
        self.assertEqual(
            [call.args[1] for call in write_mock.call_args_list],
            [b"\x1b[?1049h", b"\x1b[?1049l"],
        )

    def test_prior_state_returns_after_exception(self) -> None:
        controller = _controller(MOUSE_SCREEN)

        with mock.patch("lazylog.terminal.os.write"), mock.patch(
            "lazylog.terminal.termios.tcsetattr"
        ) as setattr_mock, mock.patch("lazylog.terminal.atexit.unregister") as unregister:
            with self.assertRaises(RuntimeError):
                with controller.takeover():
                    raise RuntimeError("boom")

        self.assertEqual(controller.state, MOUSE_SCREEN)
        setattr_mock.assert_called_once()
        unregister.assert_called_once()

    def test_signal_handlers_are_restored(self) -> None:
        import signal

        controller = _controller(TerminalState())
        before = signal.getsignal(signal.SIGTERM)

        with mock.patch("lazylog.terminal.os.write"), mock.patch("lazylog.terminal.termios.tcsetattr"):
            with controller.takeover():
                self.assertIsNot(signal.getsignal(signal.SIGTERM), before)

        self.assertIs(signal.getsignal(signal.SIGTERM), before)


class PageTextTests(unittest.TestCase):
    def test_without_pager_text_is_written_to_stdout(self) -> None:
        stdout = io.StringIO()
        config = BrowserConfig(repo_root=Path("/repo"))

        with mock.patch("lazylog.terminal.tools.pager_command", return_value=None), mock.patch.object(
            sys, "stdout", stdout
        ):
            self.assertEqual(page_text("hello", config), 0)

        self.assertEqual(stdout.getvalue(), "hello\n")

    def test_nested_paging_enters_and_leaves_the_alternate_screen_itself(self) -> None:
        config = BrowserConfig(repo_root=Path("/repo"), depth=1)
        completed = mock.Mock(returncode=0)

        with mock.patch("lazylog.terminal.os.open", return_value=9), mock.patch(
            "lazylog.terminal.termios.tcgetattr", return_value=[0]
        ), mock.patch("lazylog.terminal.tools.pager_command", return_value=["less", "-R"]), mock.patch(
            "lazylog.terminal.subprocess.run", return_value=completed
        ) as run, mock.patch("lazylog.terminal.os.write") as write_mock, mock.patch(
            "lazylog.terminal.os.close"
        ) as close_mock, mock.patch("lazylog.terminal.termios.tcsetattr"):
            self.assertEqual(page_text("diff", config), 0)

        self.assertEqual(run.call_args.kwargs["stdout"], 9)
        written = [call.args[1] for call in write_mock.call_args_list]
        self.assertEqual(written[0], b"\x1b[?1049h")
        self.assertEqual(written[-1], b"\x1b[?1049l")
        self.assertFalse(any(b"\x1b[?1000h" in chunk for chunk in written))
        close_mock.assert_called_once_with(9)


if __name__ == "__main__":
    unittest.main()
