"""Reports issues and maps review outcomes to exit codes."""

from __future__ import annotations

from rich.console import Console
from rich.rule import Rule
from rich.text import Text

from driftcheck.core.models import DriftIssue, IssueState
from driftcheck.services.remediation import ControllerState

EXIT_OK = 0
EXIT_BLOCKED = 1

MAX_EXCERPT_LINES = 5


def unresolved(issues: list[DriftIssue]) -> list[DriftIssue]:
    return [issue for issue in issues if not issue.state.is_resolved]


def exit_code(issues: list[DriftIssue], allow_push_on_error: bool) -> int:
    """Non-interactive exit code: blocked while anything is unresolved."""
    if unresolved(issues) and not allow_push_on_error:
        return EXIT_BLOCKED
    return EXIT_OK


def review_exit_code(state: ControllerState) -> int:
    """Interactive exit code: an aborted review always blocks."""
    return EXIT_OK if state is ControllerState.CONFIRMED else EXIT_BLOCKED


class Reporter:
    def __init__(self, console: Console):
        self._console = console

    def print_issues(self, issues: list[DriftIssue]) -> None:
        pending = unresolved(issues)
        if not pending:
            return

        console = self._console
        console.print()
        console.print(Text("driftcheck: Documentation drift detected!", style="bold yellow"))
        console.print(Rule(style="dim"))

        for number, issue in enumerate(pending, start=1):
            console.print(Text(f"Issue {number}: {issue.location}", style="bold"))
            if issue.description:
                console.print(Text(f"  {issue.description}"))
            if issue.claim:
                console.print()
                console.print(Text("  Documentation says:", style="dim"))
                for line in issue.claim.splitlines()[:MAX_EXCERPT_LINES]:
                    console.print(Text(f"    {line}"))
            if issue.evidence:
                console.print()
                console.print(Text("  Code evidence:", style="dim"))
                for line in issue.evidence.splitlines()[:MAX_EXCERPT_LINES]:
                    console.print(Text(f"    {line}"))
            if issue.suggested_fix:
                console.print()
                console.print(Text(f"  Suggested fix: {issue.suggested_fix}", style="green"))
            if issue.state is IssueState.ERROR and issue.error:
                console.print(Text(f"  Fix failed: {issue.error}", style="red"))
            console.print()

        console.print(Rule(style="dim"))

    def print_error(self, message: str, hint: str | None = None) -> None:
        self._console.print(Text(f"Error: {message}", style="bold red"))
        if hint:
            self._console.print(Text(f"Hint: {hint}", style="dim"))

    def print_summary(self, issues: list[DriftIssue]) -> None:
        applied = sum(1 for i in issues if i.state is IssueState.APPLIED)
        skipped = sum(1 for i in issues if i.state is IssueState.SKIPPED)
        failed = sum(1 for i in issues if i.state is IssueState.ERROR)
        self._console.print(
            Text(f"driftcheck: {applied} applied, {skipped} skipped, {failed} failed", style="dim")
        )
