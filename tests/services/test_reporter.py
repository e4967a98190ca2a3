"""Unresolved-issue selection and exit codes."""

from driftcheck.core.models import DriftIssue, IssueState
from driftcheck.services.reporter import EXIT_BLOCKED, EXIT_OK, exit_code, unresolved


def _issue(line: int, *states: IssueState) -> DriftIssue:
    issue = DriftIssue.create(
        path="README.md",
        start_line=line,
        end_line=line,
        claim=f"claim {line}",
        evidence="def foo(a, b):",
    )
    for state in states:
        issue.transition(state)
    return issue


def test_only_applied_and_skipped_count_as_resolved():
    pending = _issue(1)
    applying = _issue(2, IssueState.APPLYING)
    failed = _issue(3, IssueState.APPLYING, IssueState.ERROR)
    applied = _issue(4, IssueState.APPLYING, IssueState.APPLIED)
    skipped = _issue(5, IssueState.SKIPPED)

    issues = [pending, applying, failed, applied, skipped]

    assert unresolved(issues) == [pending, applying, failed]


def test_exit_code_blocks_while_anything_is_unresolved():
    assert exit_code([_issue(1, IssueState.SKIPPED)], allow_push_on_error=False) == EXIT_OK
    assert exit_code([_issue(1)], allow_push_on_error=False) == EXIT_BLOCKED
    assert exit_code([_issue(1)], allow_push_on_error=True) == EXIT_OK
