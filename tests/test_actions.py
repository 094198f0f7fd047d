"""Tests for the commit action registry and its handlers."""

from __future__ import annotations

import os
import shlex
import unittest
from pathlib import Path
from unittest import mock

from lazylog import actions
from lazylog.actions import ACTIONS, ActionContext, ActionId
from lazylog.channel import EXIT, DeferredCommandChannel, read_deferred_commands
from lazylog.config import BrowserConfig
from lazylog.errors import InvariantViolation

CONFIG = BrowserConfig(repo_root=Path("/repo"), no_color=True)


class _PipeChannel:
    """A real pipe-backed channel whose lines can be read back after close."""

    def __init__(self) -> None:
        self.read_fd, self.write_fd = os.pipe()
        self.channel = DeferredCommandChannel(self.write_fd)

    def lines(self) -> list[str]:
        os.close(self.write_fd)
        try:
            return read_deferred_commands(self.read_fd)
        finally:
            os.close(self.read_fd)


class RegistryTests(unittest.TestCase):
    def test_menu_lists_every_action_in_declaration_order(self) -> None:
        lines = actions.menu_lines()

        self.assertEqual([line.split("\t")[0] for line in lines], [action.value for action in ActionId])
        self.assertEqual(lines[0], "show\tShow commit")
        self.assertTrue(all(line.count("\t") == 1 for line in lines))

    def test_every_action_has_a_preview(self) -> None:
        self.assertTrue(all(descriptor.preview is not None for descriptor in ACTIONS.values()))

    def test_parse_action_rejects_unknown_names(self) -> None:
        self.assertIs(actions.parse_action("cherry-pick"), ActionId.CHERRY_PICK)
        self.assertIsNone(actions.parse_action("frobnicate"))
        self.assertIsNone(actions.parse_action(""))
        self.assertIsNone(actions.parse_action(None))

    def test_unknown_action_message_is_exact(self) -> None:
        self.assertEqual(actions.unknown_action_message("frobnicate"), "unknown commit browser action: frobnicate")


class DeferringActionTests(unittest.TestCase):
    def test_cherry_pick_queues_command_then_exit(self) -> None:
        pipe = _PipeChannel()

        status = ACTIONS[ActionId.CHERRY_PICK].invoke(ActionContext(CONFIG, "a1b2c3d", channel=pipe.channel))

        self.assertEqual(status, 0)
        self.assertEqual(pipe.lines(), [shlex.join(["git", "-C", "/repo", "cherry-pick", "a1b2c3d"]), EXIT])

    def test_fixup_declines_without_staged_changes(self) -> None:
        pipe = _PipeChannel()

        with mock.patch("lazylog.actions.git.has_staged_changes", return_value=False), mock.patch(
            "lazylog.actions.tools.show_status"
        ):
            status = ACTIONS[ActionId.FIXUP].invoke(ActionContext(CONFIG, "a1b2c3d", channel=pipe.channel))

        self.assertEqual(status, 1)
        self.assertEqual(pipe.lines(), [])

    def test_fixup_with_staged_changes_queues_commit(self) -> None:
        pipe = _PipeChannel()

        with mock.patch("lazylog.actions.git.has_staged_changes", return_value=True):
            status = ACTIONS[ActionId.FIXUP].invoke(ActionContext(CONFIG, "a1b2c3d", channel=pipe.channel))

        self.assertEqual(status, 0)
        self.assertEqual(pipe.lines(), ["git -C /repo commit --fixup=a1b2c3d", EXIT])

    def test_deferring_without_channel_is_an_invariant_violation(self) -> None:
        with self.assertRaises(InvariantViolation):
            ACTIONS[ActionId.REBASE].invoke(ActionContext(CONFIG, "a1b2c3d"))


class PreviewTests(unittest.TestCase):
    def test_rebase_preview_on_root_commit_explains_no_parent(self) -> None:
        with mock.patch("lazylog.actions.git.oneline_range", return_value=None):
            text = ACTIONS[ActionId.REBASE].preview(ActionContext(CONFIG, "a1b2c3d"))

        self.assertEqual(text, "Cannot rebase from a1b2c3d: it has no parent.\n")

    def test_rebase_preview_lists_replayed_commits(self) -> None:
        with mock.patch("lazylog.actions.git.oneline_range", return_value="b2c3d4e Second\n") as oneline:
            text = ACTIONS[ActionId.REBASE].preview(ActionContext(CONFIG, "a1b2c3d"))

        oneline.assert_called_once_with(Path("/repo"), "a1b2c3d^..HEAD", color=False)
        self.assertTrue(text.endswith("b2c3d4e Second\n"))

    def test_copy_preview_has_no_side_effects(self) -> None:
        with mock.patch("lazylog.actions.git.rev_parse", return_value="a1b2c3d4e5f6"), mock.patch(
            "lazylog.actions.tools.copy_to_clipboard"
        ) as copy:
            text = ACTIONS[ActionId.COPY].preview(ActionContext(CONFIG, "a1b2c3d"))

        copy.assert_not_called()
        self.assertEqual(text, "Copy a1b2c3d4e5f6 to the clipboard.\n")


class CopyTests(unittest.TestCase):
    def test_copy_uses_full_hash(self) -> None:
        with mock.patch("lazylog.actions.git.rev_parse", return_value="a1b2c3d4e5f6"), mock.patch(
            "lazylog.actions.tools.copy_to_clipboard", return_value=True
        ) as copy, mock.patch("lazylog.actions.tools.show_status") as status:
            self.assertEqual(actions.copy_commit_id(CONFIG, "a1b2c3d"), 0)

        copy.assert_called_once_with("a1b2c3d4e5f6")
        status.assert_called_once_with("copied a1b2c3d4e5f6")

    def test_copy_without_clipboard_reports_failure(self) -> None:
        with mock.patch("lazylog.actions.git.rev_parse", return_value=None), mock.patch(
            "lazylog.actions.tools.copy_to_clipboard", return_value=False
        ), mock.patch("lazylog.actions.tools.show_status") as status:
            self.assertEqual(actions.copy_commit_id(CONFIG, "a1b2c3d"), 1)

        status.assert_called_once_with("no clipboard utility found; commit is a1b2c3d")


if __name__ == "__main__":
    unittest.main()
