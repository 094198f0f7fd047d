"""Helper dispatch for re-invoked instances of lazylog.

fzf can only talk to us by running shell commands, so each preview, menu and
key binding is a short-lived run of this program with ``LAZYLOG_MODE`` set.
Inside one run the mode never changes: ``dispatch`` picks exactly one handler
from a closed table and returns its exit status.
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import TextIO

from . import tools
from .actions import ACTIONS, ActionContext, copy_commit_id, menu_lines, parse_action, unknown_action_message
from .channel import BREAK, DeferredCommandChannel
from .commit_ref import extract_action_id, extract_commit_id
from .config import BrowserConfig
from .errors import UnknownHelperModeError
from .picker import menu_picker_args, run_picker
from .render import format_diff, preview_columns, render_commit_preview
from .terminal import page_text

logger = logging.getLogger(__name__)

ChannelFactory = Callable[[], DeferredCommandChannel]


class HelperMode(enum.Enum):
    PREVIEW = "preview"
    MENU = "menu"
    MENU_ITEM = "menu-item"
    MENU_PREVIEW = "menu-preview"
    DIFF = "diff"
    COPY = "copy"

    @classmethod
    def from_flag(cls, flag: str) -> "HelperMode":
        try:
            return cls(flag)
        except ValueError:
            raise UnknownHelperModeError(flag) from None

    @property
    def reads_selection(self) -> bool:
        """Whether the selected log line arrives on stdin for this mode."""
        return self not in {HelperMode.MENU_ITEM, HelperMode.MENU_PREVIEW}


@dataclass(frozen=True)
class HelperInvocation:
    mode: HelperMode
    args: tuple[str, ...] = ()
    stdin_line: str = ""


@dataclass(frozen=True)
class HelperContext:
    """What a handler may touch: config, its stdout, and a lazy channel."""

    config: BrowserConfig
    out: TextIO
    channel_factory: ChannelFactory = DeferredCommandChannel.from_environment


def _selected_commit(invocation: HelperInvocation) -> str | None:
    commit = extract_commit_id(invocation.stdin_line)
    if commit is None:
        logger.debug("%s: no commit id in %r", invocation.mode.value, invocation.stdin_line)
    return commit


def _action_args(invocation: HelperInvocation) -> tuple[str, str]:
    action_name = (extract_action_id(invocation.args[0]) or "") if invocation.args else ""
    commit = invocation.args[1] if len(invocation.args) > 1 else ""
    return action_name, commit


def _run_preview(invocation: HelperInvocation, ctx: HelperContext) -> int:
    commit = _selected_commit(invocation)
    if commit is None:
        return 0
    ctx.out.write(render_commit_preview(ctx.config, commit))
    return 0


def _run_diff(invocation: HelperInvocation, ctx: HelperContext) -> int:
    commit = _selected_commit(invocation)
    if commit is None:
        return 0
    page_text(format_diff(ctx.config, commit), ctx.config)
    return 0


def _run_copy(invocation: HelperInvocation, ctx: HelperContext) -> int:
    commit = _selected_commit(invocation)
    if commit is None:
        return 0
    copy_commit_id(ctx.config, commit)
    return 0


def forward_menu_commands(commands: Sequence[str], parent: DeferredCommandChannel) -> None:
    """Pass a closed menu's commands up one level.

    ``break`` only ever meant "close this menu" and stops here. ``exit`` and
    everything else are re-emitted in order, so ``exit`` keeps propagating
    until it reaches the top-level session.
    """
    for line in commands:
        if line == BREAK:
            continue
        parent.send_line(line)


def _run_menu(invocation: HelperInvocation, ctx: HelperContext) -> int:
    commit = _selected_commit(invocation)
    if commit is None:
        return 0
    fzf = tools.find_fuzzy_finder()
    if fzf is None:
        tools.show_status("fzf not found; the action menu is unavailable")
        return 0

    nested = ctx.config.depth > 0
    parent = ctx.channel_factory() if nested else None
    result = run_picker(
        menu_picker_args(fzf, ctx.config, commit, nested=nested),
        ctx.config,
        input_text="\n".join(menu_lines()) + "\n",
    )
    if parent is not None:
        forward_menu_commands(result.commands, parent)
    return 0


def _run_menu_item(invocation: HelperInvocation, ctx: HelperContext) -> int:
    action_name, commit = _action_args(invocation)
    action_id = parse_action(action_name)
    if action_id is None:
        if commit:
            ctx.out.write(unknown_action_message(action_name))
        return 0
    if not commit:
        return 0

    channel = ctx.channel_factory()
    descriptor = ACTIONS[action_id]
    try:
        status = descriptor.invoke(ActionContext(ctx.config, commit, channel=channel))
    except Exception:
        logger.exception("action %s failed for %s", action_id.value, commit)
        status = 1
    if status != 0:
        logger.debug("action %s declined with status %d", action_id.value, status)
        channel.send_break()
    return 0


def _run_menu_preview(invocation: HelperInvocation, ctx: HelperContext) -> int:
    action_name, commit = _action_args(invocation)
    action_id = parse_action(action_name)
    if action_id is None:
        if commit:
            ctx.out.write(unknown_action_message(action_name))
        return 0
    if not commit:
        return 0

    descriptor = ACTIONS[action_id]
    if descriptor.preview is None:
        ctx.out.write(f"{descriptor.label}\n")
        return 0
    ctx.out.write(descriptor.preview(ActionContext(ctx.config, commit, width=preview_columns())))
    return 0


_HANDLERS: dict[HelperMode, Callable[[HelperInvocation, HelperContext], int]] = {
    HelperMode.PREVIEW: _run_preview,
    HelperMode.MENU: _run_menu,
    HelperMode.MENU_ITEM: _run_menu_item,
    HelperMode.MENU_PREVIEW: _run_menu_preview,
    HelperMode.DIFF: _run_diff,
    HelperMode.COPY: _run_copy,
}


def dispatch(invocation: HelperInvocation, ctx: HelperContext) -> int:
    """Run the handler for ``invocation.mode`` and return its exit status."""
    logger.debug("helper %s args=%r depth=%d", invocation.mode.value, invocation.args, ctx.config.depth)
    return _HANDLERS[invocation.mode](invocation, ctx)
