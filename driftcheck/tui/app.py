"""Interactive review UI.

A single coroutine owns the controller: it drains the channel, where key
presses, spinner ticks and fix completions all arrive, and re-renders after
each event. Nothing else mutates review state.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from contextlib import AbstractContextManager, nullcontext

from rich.console import Console, Group, RenderableType
from rich.live import Live
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from driftcheck.core.exceptions import RemediationStateError
from driftcheck.core.models import IssueState
from driftcheck.services.remediation import (
    ControllerState,
    Event,
    FixFinished,
    KeyPressed,
    RemediationController,
    Tick,
)
from driftcheck.tui.keys import KeyReader
from driftcheck.tui.theme import Theme
from driftcheck.utils.logging import WarningBuffer

SPINNER = ("⠋", "⠙", "⠹", "⠸", "⠼", "⠴", "⠦", "⠧", "⠇", "⠏")

STATE_ICONS = {
    IssueState.PENDING: "○",
    IssueState.SKIPPED: "⊘",
    IssueState.APPLIED: "✓",
    IssueState.ERROR: "✗",
}

HELP_LINES = (
    ("a", "Apply fix (generates a replacement for the flagged lines)"),
    ("s", "Skip this issue"),
    ("j / Down", "Next issue"),
    ("k / Up", "Previous issue"),
    ("Enter", "Confirm all and continue push"),
    ("q / Esc", "Abort push"),
    ("?", "Show this help"),
)

FOOTER_KEYS = (
    ("a", "Apply"),
    ("s", "Skip"),
    ("j/k", "Nav"),
    ("Enter", "Done"),
    ("q", "Abort"),
    ("?", "Help"),
)

InputFactory = Callable[[asyncio.Queue[Event]], AbstractContextManager]


class ReviewApp:
    def __init__(
        self,
        controller: RemediationController,
        theme: Theme,
        console: Console,
        tick_ms: int = 80,
        warnings: WarningBuffer | None = None,
        input_factory: InputFactory | None = None,
    ):
        self.controller = controller
        self.theme = theme
        self.show_help = False
        self.status: str | None = None
        self._console = console
        self._tick = tick_ms / 1000
        self._warnings = warnings or WarningBuffer()
        self._input_factory = input_factory or KeyReader
        self._frame = 0

    # -- key handling -------------------------------------------------------

    def handle_key(self, key: str) -> None:
        controller = self.controller
        if self.show_help:
            self.show_help = False
            return
        self.status = None

        if key in ("q", "esc"):
            controller.abort()
        elif key in ("j", "down"):
            controller.select_next()
        elif key in ("k", "up"):
            controller.select_prev()
        elif key == "a":
            self._attempt(controller.apply_current, "Generating fix for {location}...")
        elif key == "s":
            self._attempt(controller.skip_current, "Skipped {location}")
        elif key == "enter":
            self._confirm()
        elif key == "?":
            self.show_help = True

    def _attempt(self, action, message: str) -> None:
        try:
            issue = action()
        except RemediationStateError as e:
            self.status = str(e)
        else:
            self.status = message.format(location=issue.location)

    def _confirm(self) -> None:
        controller = self.controller
        if controller.can_confirm:
            controller.confirm_all()
            return
        for index, issue in enumerate(controller.issues):
            if issue.state is IssueState.PENDING:
                controller.current_index = index
                self.status = "Resolve pending issues before confirming"
                return
        self.status = f"Waiting for {controller.count(IssueState.APPLYING)} fix(es) to finish"

    def handle_event(self, event: Event) -> None:
        if isinstance(event, KeyPressed):
            self.handle_key(event.key)
        elif isinstance(event, Tick):
            self._frame = (self._frame + 1) % len(SPINNER)
        elif isinstance(event, FixFinished):
            if self.controller.handle_event(event):
                issue = next(i for i in self.controller.issues if i.id == event.issue_id)
                if issue.state is IssueState.APPLIED:
                    self.status = f"Applied fix to {issue.location}"
                else:
                    self.status = f"Error: {issue.error}"

    # -- loop ---------------------------------------------------------------

    async def _ticker(self) -> None:
        while True:
            await asyncio.sleep(self._tick)
            self.controller.channel.put_nowait(Tick())

    async def run(self) -> ControllerState:
        controller = self.controller
        channel = controller.channel
        self._warnings.attach()
        ticker = asyncio.create_task(self._ticker(), name="driftcheck-review-ticker")
        try:
            with self._input_factory(channel), Live(
                self.render(),
                console=self._console,
                screen=self._console.is_terminal,
                auto_refresh=False,
                transient=True,
            ) as live:
                while controller.state is ControllerState.REVIEWING:
                    event = await channel.get()
                    self.handle_event(event)
                    live.update(self.render(), refresh=True)
        finally:
            ticker.cancel()
            await asyncio.gather(ticker, return_exceptions=True)
            self._warnings.detach()

        if controller.state is ControllerState.ABORTED:
            await controller.shutdown()
        else:
            # Leftover keys and ticks are dropped
            while not channel.empty():
                controller.handle_event(channel.get_nowait())
        return controller.state

    # -- rendering ----------------------------------------------------------

    def _status_line(self) -> Text:
        theme = self.theme
        controller = self.controller
        spinner = SPINNER[self._frame]
        if controller.in_flight:
            text = self.status or "Applying fix..."
            return Text(f"{spinner} {text}", style=theme.highlight)
        if self.status:
            return Text(self.status, style=theme.highlight)
        if self._warnings.latest:
            return Text(self._warnings.latest, style=theme.warning)
        if controller.count(IssueState.PENDING):
            return Text("Documentation issues detected", style=theme.warning)
        return Text("All issues addressed", style=theme.success)

    def _header(self) -> Panel:
        c = self.controller
        title = (
            f" driftcheck - {len(c.issues)} issues ({c.count(IssueState.PENDING)} pending, "
            f"{c.count(IssueState.APPLIED)} applied, {c.count(IssueState.SKIPPED)} skipped) "
        )
        return Panel(
            self._status_line(),
            title=Text(title, style=self.theme.title),
            title_align="left",
            border_style=self.theme.border,
        )

    def _issue_list(self) -> Panel:
        theme = self.theme
        styles = {
            IssueState.PENDING: theme.foreground,
            IssueState.APPLYING: theme.highlight,
            IssueState.SKIPPED: theme.muted,
            IssueState.APPLIED: theme.success,
            IssueState.ERROR: theme.warning,
        }
        lines = Text()
        for index, issue in enumerate(self.controller.issues):
            icon = STATE_ICONS.get(issue.state, SPINNER[self._frame])
            marker = "> " if index == self.controller.current_index else "  "
            name = issue.path.rsplit("/", 1)[-1]
            style = theme.selected if index == self.controller.current_index else styles[issue.state]
            lines.append(f"{marker}{icon} {name}:{issue.start_line}\n", style=style)
        return Panel(lines, title=" Issues ", border_style=theme.border)

    def _detail(self) -> RenderableType:
        theme = self.theme
        issue = self.controller.current
        if issue is None:
            return Panel("No issues", title=" Details ", border_style=theme.border)

        body = Text()
        body.append(f"{issue.location}\n\n", style=theme.highlight)
        body.append(f"{issue.description or issue.claim}\n")
        if issue.claim:
            body.append("\nDocumentation says:\n", style=theme.muted)
            for line in issue.claim.splitlines()[:5]:
                body.append(f"  {line}\n")
        if issue.evidence:
            body.append("\nCode evidence:\n", style=theme.muted)
            for line in issue.evidence.splitlines()[:5]:
                body.append(f"  {line}\n")
        if issue.state is IssueState.ERROR and issue.error:
            body.append(f"\nFix failed: {issue.error}\n", style=theme.error)

        position = f" Issue {self.controller.current_index + 1}/{len(self.controller.issues)} "
        if issue.state is IssueState.APPLYING:
            position += f"{SPINNER[self._frame]} Generating fix... "
        applying = issue.state is IssueState.APPLYING
        fix = Panel(
            issue.suggested_fix or "No fix suggestion available",
            title=" Suggested Fix ",
            border_style=theme.border,
        )
        return Group(
            Panel(
                body,
                title=position,
                border_style=theme.highlight if applying else theme.border,
            ),
            fix,
        )

    def _footer(self) -> Panel:
        line = Text()
        for key, action in FOOTER_KEYS:
            line.append(f" {key} ", style=self.theme.highlight)
            line.append(f"{action} ", style=self.theme.muted)
        return Panel(line, border_style=self.theme.border)

    def _help(self) -> Panel:
        body = Text()
        body.append("Keybindings\n\n", style=self.theme.title)
        for key, description in HELP_LINES:
            body.append(f"  {key:<9}{description}\n")
        body.append("\nReview changes with 'git diff' after exiting\n", style=self.theme.muted)
        body.append("Press any key to close", style=self.theme.muted)
        return Panel(body, title=" Help ", border_style=self.theme.highlight)

    def render(self) -> RenderableType:
        if self.show_help:
            content: RenderableType = self._help()
        else:
            grid = Table.grid(expand=True)
            grid.add_column(ratio=3)
            grid.add_column(ratio=7)
            grid.add_row(self._issue_list(), self._detail())
            content = grid
        return Group(self._header(), content, self._footer())


def make_review_runner(
    theme_name: str,
    console: Console,
    tick_ms: int = 80,
    input_factory: InputFactory | None = None,
) -> Callable[[RemediationController, list[str]], Awaitable[ControllerState]]:
    """Build the interactive review callback used by DriftCheckService."""

    async def run_review(
        controller: RemediationController, warnings: list[str]
    ) -> ControllerState:
        buffer = WarningBuffer()
        for warning in warnings:
            buffer.add(warning)
        app = ReviewApp(
            controller,
            Theme.from_name(theme_name),
            console,
            tick_ms=tick_ms,
            warnings=buffer,
            input_factory=input_factory,
        )
        return await app.run()

    return run_review


def headless_input(channel: asyncio.Queue[Event]) -> AbstractContextManager:
    """Input factory for scripted sessions: keys are posted to the channel directly."""
    return nullcontext()
