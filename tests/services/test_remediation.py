"""RemediationController state machine and background fix tasks."""

import asyncio

import pytest

from driftcheck.core.exceptions import ApplyError, RemediationStateError
from driftcheck.core.models import DriftIssue, IssueState
from driftcheck.services.remediation import (
    ControllerState,
    FixFinished,
    RemediationController,
    Tick,
)


def _issues(count: int = 3) -> list[DriftIssue]:
    return [
        DriftIssue.create(
            path=f"docs/page{n}.md",
            start_line=1,
            end_line=1,
            claim=f"claim {n}",
            evidence="evidence",
            confidence=0.9,
        )
        for n in range(count)
    ]


class ControlledFixer:
    """Fixer whose calls block until released; failures configurable per path."""

    def __init__(self, failing: set[str] | None = None, gated: bool = False):
        self.failing = set(failing or ())
        self.started: list[str] = []
        self.aborted = False
        self.active = 0
        self.peak = 0
        self._gate = asyncio.Event()
        if not gated:
            self._gate.set()

    def release(self) -> None:
        self._gate.set()

    def abort(self) -> None:
        self.aborted = True

    async def apply(self, issue: DriftIssue) -> None:
        self.started.append(issue.path)
        self.active += 1
        self.peak = max(self.peak, self.active)
        try:
            await self._gate.wait()
            if issue.path in self.failing:
                raise ApplyError(issue.path, "disk full")
        finally:
            self.active -= 1


class TestNavigation:
    @pytest.mark.asyncio
    async def test_selection_wraps(self):
        controller = RemediationController(_issues(3), ControlledFixer())
        controller.select_prev()
        assert controller.current_index == 2
        controller.select_next()
        assert controller.current_index == 0

    @pytest.mark.asyncio
    async def test_empty_list_has_no_current(self):
        controller = RemediationController([], ControlledFixer())
        assert controller.current is None
        controller.select_next()
        with pytest.raises(RemediationStateError):
            controller.skip_current()
        controller.confirm_all()
        assert controller.state is ControllerState.CONFIRMED


class TestCommands:
    @pytest.mark.asyncio
    async def test_skip_advances_to_next_pending(self):
        issues = _issues(3)
        controller = RemediationController(issues, ControlledFixer())

        controller.skip_current()

        assert issues[0].state is IssueState.SKIPPED
        assert controller.current_index == 1

    @pytest.mark.asyncio
    async def test_apply_moves_through_applying_to_applied(self):
        issues = _issues(1)
        controller = RemediationController(issues, ControlledFixer())

        controller.apply_current()
        assert issues[0].state is IssueState.APPLYING

        await controller.drain()
        assert issues[0].state is IssueState.APPLIED

    @pytest.mark.asyncio
    async def test_skipping_an_applied_issue_is_rejected(self):
        issues = _issues(1)
        controller = RemediationController(issues, ControlledFixer())
        controller.apply_current()
        await controller.drain()

        with pytest.raises(RemediationStateError):
            controller.skip_current()

    @pytest.mark.asyncio
    async def test_failed_fix_can_be_retried(self):
        issues = _issues(1)
        fixer = ControlledFixer(failing={"docs/page0.md"})
        controller = RemediationController(issues, fixer)

        controller.apply_current()
        await controller.drain()
        assert issues[0].state is IssueState.ERROR
        assert "disk full" in issues[0].error

        # Error cannot be skipped, only retried
        with pytest.raises(RemediationStateError):
            controller.skip_current()

        fixer.failing.clear()
        controller.apply_current()
        await controller.drain()
        assert issues[0].state is IssueState.APPLIED
        assert issues[0].error is None

    @pytest.mark.asyncio
    async def test_unexpected_exception_becomes_error_state(self):
        class Exploding(ControlledFixer):
            async def apply(self, issue):
                raise KeyError("boom")

        issues = _issues(1)
        controller = RemediationController(issues, Exploding())
        controller.apply_current()
        await controller.drain()

        assert issues[0].state is IssueState.ERROR
        assert issues[0].error.startswith("KeyError")


class TestConfirm:
    @pytest.mark.asyncio
    async def test_confirm_requires_no_pending_or_applying(self):
        issues = _issues(2)
        fixer = ControlledFixer(gated=True)
        controller = RemediationController(issues, fixer)

        with pytest.raises(RemediationStateError):
            controller.confirm_all()

        controller.skip_current()
        controller.apply_current()
        with pytest.raises(RemediationStateError, match="1 applying"):
            controller.confirm_all()

        fixer.release()
        await controller.drain()
        controller.confirm_all()
        assert controller.state is ControllerState.CONFIRMED

    @pytest.mark.asyncio
    async def test_confirm_is_allowed_with_errors(self):
        issues = _issues(1)
        controller = RemediationController(issues, ControlledFixer(failing={"docs/page0.md"}))
        controller.apply_current()
        await controller.drain()

        controller.confirm_all()
        assert controller.state is ControllerState.CONFIRMED

    @pytest.mark.asyncio
    async def test_commands_after_confirm_are_rejected(self):
        controller = RemediationController(_issues(1), ControlledFixer())
        controller.skip_current()
        controller.confirm_all()
        with pytest.raises(RemediationStateError):
            controller.apply_current()


class TestConcurrency:
    @pytest.mark.asyncio
    async def test_fixes_for_different_files_run_concurrently(self):
        issues = _issues(3)
        fixer = ControlledFixer(gated=True)
        controller = RemediationController(issues, fixer, max_in_flight=2)

        controller.apply_current()
        controller.apply_current()
        controller.apply_current()
        await asyncio.sleep(0)

        assert controller.in_flight == 3
        assert fixer.peak == 2
        assert all(i.state is IssueState.APPLYING for i in issues)

        fixer.release()
        await controller.drain()
        assert all(i.state is IssueState.APPLIED for i in issues)
        assert fixer.peak == 2

    @pytest.mark.asyncio
    async def test_abort_cancels_in_flight_fixes(self):
        issues = _issues(2)
        fixer = ControlledFixer(gated=True)
        controller = RemediationController(issues, fixer)
        controller.apply_current()
        await asyncio.sleep(0)

        controller.abort()
        await controller.shutdown()

        assert controller.state is ControllerState.ABORTED
        assert fixer.aborted
        assert issues[0].state is IssueState.ERROR
        assert issues[0].error == "aborted"
        assert issues[1].state is IssueState.PENDING
        with pytest.raises(RemediationStateError):
            controller.apply_current()

    @pytest.mark.asyncio
    async def test_non_fix_events_do_not_change_state(self):
        controller = RemediationController(_issues(1), ControlledFixer())
        assert controller.handle_event(Tick()) is False
        assert controller.handle_event(FixFinished("unknown-id")) is False

    @pytest.mark.asyncio
    async def test_run_batch_applies_everything_and_confirms(self):
        issues = _issues(3)
        issues[1].transition(IssueState.SKIPPED)
        controller = RemediationController(issues, ControlledFixer(failing={"docs/page2.md"}))

        state = await controller.run_batch()

        assert state is ControllerState.CONFIRMED
        assert [i.state for i in issues] == [
            IssueState.APPLIED,
            IssueState.SKIPPED,
            IssueState.ERROR,
        ]
