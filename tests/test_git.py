"""Git wrapper tests against a throwaway repository."""

from __future__ import annotations

import shutil
import subprocess
import tempfile
import unittest
from pathlib import Path

from lazylog import git


def _git(repo: Path, *args: str) -> str:
    return subprocess.run(
        ["git", "-C", str(repo), *args],
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True,
        check=True,
    ).stdout


@unittest.skipIf(shutil.which("git") is None, "git is not installed")
class GitWrapperTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.repo = Path(self._tmp.name)
        _git(self.repo, "init", "-q")
        _git(self.repo, "config", "user.email", "ada@example.com")
        _git(self.repo, "config", "user.name", "Ada")
        _git(self.repo, "config", "commit.gpgsign", "false")
        (self.repo / "a.txt").write_text("one\n", encoding="utf-8")
        _git(self.repo, "add", "a.txt")
        _git(self.repo, "commit", "-q", "-m", "First")
        self.root = _git(self.repo, "rev-parse", "HEAD").strip()

    def test_rev_parse_expands_short_ids_and_rejects_garbage(self) -> None:
        self.assertEqual(git.rev_parse(self.repo, self.root[:7]), self.root)
        self.assertIsNone(git.rev_parse(self.repo, "0000000"))

    def test_diffstat_starts_with_oneline_header(self) -> None:
        stat = git.commit_diffstat(self.repo, self.root, color=False)

        lines = stat.splitlines()
        self.assertEqual(lines[0], f"{self.root} First")
        self.assertIn("a.txt", lines[1])

    def test_range_from_root_commit_parent_fails(self) -> None:
        self.assertIsNone(git.oneline_range(self.repo, f"{self.root}^..HEAD", color=False))

    def test_staged_changes_are_detected(self) -> None:
        self.assertFalse(git.has_staged_changes(self.repo))
        (self.repo / "a.txt").write_text("two\n", encoding="utf-8")
        _git(self.repo, "add", "a.txt")

        self.assertTrue(git.has_staged_changes(self.repo))
        self.assertIn("a.txt", git.staged_diffstat(self.repo, color=False))

    def test_message_and_diff(self) -> None:
        self.assertEqual(git.commit_message(self.repo, self.root).strip(), "First")
        self.assertIn("+one", git.commit_diff(self.repo, self.root))

    def test_unsigned_commit_fails_verification(self) -> None:
        status, _output = git.verify_commit(self.repo, self.root)
        self.assertNotEqual(status, 0)

    def test_failures_return_none_instead_of_raising(self) -> None:
        self.assertIsNone(git.commit_metadata(self.repo, "does-not-exist"))


if __name__ == "__main__":
    unittest.main()
