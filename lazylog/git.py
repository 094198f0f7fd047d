"""Thin wrappers around the ``git`` CLI.

Every call runs against an explicit repository root and returns either the
completed process or ``None``; callers decide how a failure degrades.
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path

logger = logging.getLogger(__name__)

GIT_TIMEOUT_SECONDS = 10.0

LOG_FORMAT = "%C(auto)%h%d %s %C(black)%C(bold)%cr %C(reset)%C(dim)%an%C(reset)"
METADATA_FORMAT = (
    "%C(yellow)commit %H%C(reset)%C(auto)%d%C(reset)%n"
    "Author:     %an <%ae>%n"
    "AuthorDate: %ad%n"
    "Commit:     %cn <%ce>%n"
    "CommitDate: %cd%n"
    "Signature:  %G?%n"
    "%n"
    "    %s"
)


def run_git(
    repo_root: Path,
    args: list[str],
    timeout_seconds: float = GIT_TIMEOUT_SECONDS,
    input_text: str | None = None,
) -> subprocess.CompletedProcess[str] | None:
    """Execute a git subcommand with timeout and tolerant failure handling."""
    try:
        proc = subprocess.run(
            ["git", "-C", str(repo_root), *args],
            input=input_text,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            encoding="utf-8",
            errors="replace",
            check=False,
            timeout=timeout_seconds,
        )
    except Exception as exc:
        logger.debug("git %s failed to run: %s", " ".join(args), exc)
        return None
    if proc.returncode != 0:
        logger.debug("git %s exited %d: %s", " ".join(args), proc.returncode, proc.stderr.strip())
    return proc


def _stdout_or_none(proc: subprocess.CompletedProcess[str] | None) -> str | None:
    if proc is None or proc.returncode != 0:
        return None
    return proc.stdout


def log_graph_args(ref: str, color: bool = True) -> list[str]:
    """Return git arguments that list ``ref``'s history as a decorated graph."""
    return [
        "log",
        "--graph",
        f"--color={'always' if color else 'never'}",
        f"--format={LOG_FORMAT}",
        ref,
        "--",
    ]


def log_graph_command(repo_root: Path, ref: str, color: bool = True) -> list[str]:
    return ["git", "-C", str(repo_root), *log_graph_args(ref, color)]


def commit_metadata(repo_root: Path, commit: str, color: bool = True) -> str | None:
    proc = run_git(
        repo_root,
        ["show", "-s", f"--color={'always' if color else 'never'}", f"--format={METADATA_FORMAT}", commit, "--"],
    )
    return _stdout_or_none(proc)


def commit_message(repo_root: Path, commit: str) -> str | None:
    return _stdout_or_none(run_git(repo_root, ["show", "-s", "--format=%B", commit, "--"]))


def commit_subject(repo_root: Path, commit: str) -> str | None:
    out = _stdout_or_none(run_git(repo_root, ["show", "-s", "--format=%h %s", commit, "--"]))
    return out.strip() if out is not None else None


def commit_diff(repo_root: Path, commit: str) -> str | None:
    """Return the commit's patch as plain unified diff text."""
    return _stdout_or_none(
        run_git(repo_root, ["show", "--color=never", "--format=", "--patch", "--find-renames", commit, "--"])
    )


def commit_diffstat(repo_root: Path, commit: str, width: int = 80, color: bool = True) -> str | None:
    """Return ``git show --stat`` output, whose first line is the oneline header."""
    return _stdout_or_none(
        run_git(
            repo_root,
            [
                "show",
                f"--stat={max(20, width)}",
                f"--color={'always' if color else 'never'}",
                "--format=oneline",
                commit,
                "--",
            ],
        )
    )


def rev_parse(repo_root: Path, rev: str) -> str | None:
    out = _stdout_or_none(run_git(repo_root, ["rev-parse", "--verify", "--quiet", f"{rev}^{{commit}}"]))
    return out.strip() if out else None


def verify_commit(repo_root: Path, commit: str) -> tuple[int, str]:
    """Run ``git verify-commit`` and return ``(status, combined output)``."""
    proc = run_git(repo_root, ["verify-commit", "--verbose", commit])
    if proc is None:
        return 1, "git verify-commit could not be run\n"
    return proc.returncode, f"{proc.stdout}{proc.stderr}"


def oneline_range(repo_root: Path, rev_range: str, color: bool = True) -> str | None:
    return _stdout_or_none(
        run_git(repo_root, ["log", "--oneline", f"--color={'always' if color else 'never'}", rev_range, "--"])
    )


def has_staged_changes(repo_root: Path) -> bool:
    """Return whether the index differs from ``HEAD``."""
    proc = run_git(repo_root, ["diff", "--cached", "--quiet"])
    return proc is not None and proc.returncode == 1


def staged_diffstat(repo_root: Path, color: bool = True) -> str | None:
    return _stdout_or_none(
        run_git(repo_root, ["diff", "--cached", "--stat", f"--color={'always' if color else 'never'}"])
    )
