"""Commit actions offered by the nested menu.

The registry is a closed enum mapped to descriptors. Unknown identifiers are
rejected by ``parse_action`` at the helper boundary, so handlers never see
one. ``invoke`` returns an exit status; non-zero means the action declined
and the menu should close. ``preview`` must never have side effects.
"""

from __future__ import annotations

import enum
from collections.abc import Callable
from dataclasses import dataclass

from . import git, tools
from .channel import DeferredCommandChannel
from .config import BrowserConfig
from .errors import InvariantViolation
from .render import (
    format_commit_message,
    format_diff,
    format_diffstat,
    render_commit_preview,
    render_full_commit,
)
from .terminal import page_text

UNKNOWN_ACTION_MESSAGE = "unknown commit browser action: {name}"


class ActionId(enum.Enum):
    SHOW = "show"
    DIFF = "diff"
    MESSAGE = "message"
    COPY = "copy"
    VERIFY = "verify"
    CHERRY_PICK = "cherry-pick"
    REBASE = "rebase"
    FIXUP = "fixup"


@dataclass(frozen=True)
class ActionContext:
    """Inputs shared by every handler for one selected commit."""

    config: BrowserConfig
    commit: str
    channel: DeferredCommandChannel | None = None
    width: int | None = None

    def require_channel(self) -> DeferredCommandChannel:
        if self.channel is None:
            raise InvariantViolation("deferring actions need a picker channel")
        return self.channel


@dataclass(frozen=True)
class ActionDescriptor:
    action_id: ActionId
    label: str
    invoke: Callable[[ActionContext], int]
    preview: Callable[[ActionContext], str] | None = None


def parse_action(name: str | None) -> ActionId | None:
    if not name:
        return None
    try:
        return ActionId(name)
    except ValueError:
        return None


def unknown_action_message(name: str) -> str:
    return UNKNOWN_ACTION_MESSAGE.format(name=name)


def _git_prefix(config: BrowserConfig) -> list[str]:
    return ["git", "-C", str(config.repo_root)]


def _show(ctx: ActionContext) -> int:
    page_text(render_full_commit(ctx.config, ctx.commit, width=ctx.width), ctx.config)
    return 0


def _show_preview(ctx: ActionContext) -> str:
    return render_commit_preview(ctx.config, ctx.commit, width=ctx.width)


def _diff(ctx: ActionContext) -> int:
    page_text(format_diff(ctx.config, ctx.commit, width=ctx.width), ctx.config)
    return 0


def _diff_preview(ctx: ActionContext) -> str:
    return format_diffstat(ctx.config, ctx.commit, width=ctx.width or 80)


def _message(ctx: ActionContext) -> int:
    page_text(format_commit_message(ctx.config, ctx.commit), ctx.config)
    return 0


def _message_preview(ctx: ActionContext) -> str:
    return format_commit_message(ctx.config, ctx.commit)


def copy_commit_id(config: BrowserConfig, commit: str) -> int:
    """Copy the full hash of ``commit``; shared by the menu action and copy mode."""
    full = git.rev_parse(config.repo_root, commit) or commit
    if tools.copy_to_clipboard(full):
        tools.show_status(f"copied {full}")
        return 0
    tools.show_status(f"no clipboard utility found; commit is {full}")
    return 1


def _copy(ctx: ActionContext) -> int:
    return copy_commit_id(ctx.config, ctx.commit)


def _copy_preview(ctx: ActionContext) -> str:
    full = git.rev_parse(ctx.config.repo_root, ctx.commit) or ctx.commit
    return f"Copy {full} to the clipboard.\n"


def _verify(ctx: ActionContext) -> int:
    status, output = git.verify_commit(ctx.config.repo_root, ctx.commit)
    page_text(output or f"verify-commit exited {status}\n", ctx.config)
    return status


def _verify_preview(ctx: ActionContext) -> str:
    _status, output = git.verify_commit(ctx.config.repo_root, ctx.commit)
    return output or "no signature\n"


def _cherry_pick(ctx: ActionContext) -> int:
    channel = ctx.require_channel()
    channel.send([*_git_prefix(ctx.config), "cherry-pick", ctx.commit])
    channel.send_exit()
    return 0


def _cherry_pick_preview(ctx: ActionContext) -> str:
    subject = git.commit_subject(ctx.config.repo_root, ctx.commit) or ctx.commit
    return f"Cherry-pick onto the current branch:\n\n  {subject}\n"


def _rebase(ctx: ActionContext) -> int:
    channel = ctx.require_channel()
    channel.send([*_git_prefix(ctx.config), "rebase", "--interactive", f"{ctx.commit}^"])
    channel.send_exit()
    return 0


def _rebase_preview(ctx: ActionContext) -> str:
    commits = git.oneline_range(ctx.config.repo_root, f"{ctx.commit}^..HEAD", color=not ctx.config.no_color)
    if commits is None:
        return f"Cannot rebase from {ctx.commit}: it has no parent.\n"
    return f"Interactive rebase onto {ctx.commit}^ will replay:\n\n{commits}"


def _fixup(ctx: ActionContext) -> int:
    if not git.has_staged_changes(ctx.config.repo_root):
        tools.show_status("nothing staged to fix up")
        return 1
    channel = ctx.require_channel()
    channel.send([*_git_prefix(ctx.config), "commit", f"--fixup={ctx.commit}"])
    channel.send_exit()
    return 0


def _fixup_preview(ctx: ActionContext) -> str:
    if not git.has_staged_changes(ctx.config.repo_root):
        return "Nothing staged; stage changes before creating a fixup commit.\n"
    stat = git.staged_diffstat(ctx.config.repo_root, color=not ctx.config.no_color) or ""
    return f"Create a fixup! commit for {ctx.commit} from:\n\n{stat}"


ACTIONS: dict[ActionId, ActionDescriptor] = {
    ActionId.SHOW: ActionDescriptor(ActionId.SHOW, "Show commit", _show, _show_preview),
    ActionId.DIFF: ActionDescriptor(ActionId.DIFF, "Show diff", _diff, _diff_preview),
    ActionId.MESSAGE: ActionDescriptor(ActionId.MESSAGE, "Show full message", _message, _message_preview),
    ActionId.COPY: ActionDescriptor(ActionId.COPY, "Copy hash to clipboard", _copy, _copy_preview),
    ActionId.VERIFY: ActionDescriptor(ActionId.VERIFY, "Verify signature", _verify, _verify_preview),
    ActionId.CHERRY_PICK: ActionDescriptor(
        ActionId.CHERRY_PICK, "Cherry-pick onto current branch", _cherry_pick, _cherry_pick_preview
    ),
    ActionId.REBASE: ActionDescriptor(ActionId.REBASE, "Interactive rebase from here", _rebase, _rebase_preview),
    ActionId.FIXUP: ActionDescriptor(ActionId.FIXUP, "Create fixup commit for staged changes", _fixup, _fixup_preview),
}


def menu_lines() -> list[str]:
    """Return menu rows as ``<id>\\t<label>`` in declaration order."""
    return [f"{action_id.value}\t{ACTIONS[action_id].label}" for action_id in ActionId]
