"""Interactive remediation state machine.

The controller owns every issue's state. Fix tasks run in the background
(at most ``max_in_flight`` at once) and report back through the controller's
channel as ``FixFinished`` events; the owner of the channel folds them in
with ``handle_event``. All state mutation therefore happens on whichever
coroutine drains the channel, never inside the fix tasks.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from loguru import logger

from driftcheck.core.exceptions import DriftcheckError, RemediationStateError
from driftcheck.core.models import DriftIssue, IssueState


class ControllerState(str, Enum):
    REVIEWING = "reviewing"
    CONFIRMED = "confirmed"
    ABORTED = "aborted"


@dataclass(frozen=True)
class KeyPressed:
    key: str


@dataclass(frozen=True)
class Tick:
    pass


@dataclass(frozen=True)
class FixFinished:
    issue_id: str
    error: str | None = None


Event = KeyPressed | Tick | FixFinished


class Fixer(Protocol):
    async def apply(self, issue: DriftIssue) -> None: ...

    def abort(self) -> None: ...


class RemediationController:
    def __init__(
        self,
        issues: list[DriftIssue],
        fixer: Fixer,
        max_in_flight: int = 3,
        channel: asyncio.Queue[Event] | None = None,
    ):
        self.issues = list(issues)
        self.channel: asyncio.Queue[Event] = channel if channel is not None else asyncio.Queue()
        self.state = ControllerState.REVIEWING
        self.current_index = 0
        self._fixer = fixer
        self._semaphore = asyncio.Semaphore(max_in_flight)
        self._tasks: dict[str, asyncio.Task[None]] = {}

    # -- queries ------------------------------------------------------------

    @property
    def current(self) -> DriftIssue | None:
        if not self.issues:
            return None
        return self.issues[self.current_index]

    @property
    def in_flight(self) -> int:
        return sum(1 for task in self._tasks.values() if not task.done())

    def count(self, state: IssueState) -> int:
        return sum(1 for issue in self.issues if issue.state is state)

    @property
    def can_confirm(self) -> bool:
        return not any(
            issue.state in (IssueState.PENDING, IssueState.APPLYING) for issue in self.issues
        )

    def next_pending(self) -> int | None:
        """Index of the next Pending issue after the focused one (wrapping)."""
        total = len(self.issues)
        for step in range(1, total + 1):
            index = (self.current_index + step) % total
            if self.issues[index].state is IssueState.PENDING:
                return index
        return None

    def _get(self, issue_id: str) -> DriftIssue | None:
        for issue in self.issues:
            if issue.id == issue_id:
                return issue
        return None

    # -- navigation ---------------------------------------------------------

    def select_next(self) -> None:
        if self.issues:
            self.current_index = (self.current_index + 1) % len(self.issues)

    def select_prev(self) -> None:
        if self.issues:
            self.current_index = (self.current_index - 1) % len(self.issues)

    def _advance(self) -> None:
        index = self.next_pending()
        if index is not None:
            self.current_index = index

    # -- commands -----------------------------------------------------------

    def _require_reviewing(self) -> None:
        if self.state is not ControllerState.REVIEWING:
            raise RemediationStateError(f"Review is already {self.state.value}")

    def apply_current(self) -> DriftIssue:
        """Start fixing the focused issue in the background.

        Raises:
            RemediationStateError: If the issue is not Pending or Error
        """
        self._require_reviewing()
        issue = self.current
        if issue is None:
            raise RemediationStateError("No issue selected")
        self.apply(issue)
        self._advance()
        return issue

    def apply(self, issue: DriftIssue) -> None:
        issue.transition(IssueState.APPLYING)
        self._tasks[issue.id] = asyncio.create_task(
            self._run_fix(issue), name=f"driftcheck-fix-{issue.id}"
        )

    async def _run_fix(self, issue: DriftIssue) -> None:
        async with self._semaphore:
            try:
                await self._fixer.apply(issue)
            except DriftcheckError as e:
                error: str | None = str(e)
            except Exception as e:
                logger.exception(f"Unexpected failure fixing {issue.location}")
                error = f"{type(e).__name__}: {e}"
            else:
                error = None
        self.channel.put_nowait(FixFinished(issue.id, error))

    def skip_current(self) -> DriftIssue:
        """Mark the focused issue Skipped.

        Raises:
            RemediationStateError: If the issue is not Pending
        """
        self._require_reviewing()
        issue = self.current
        if issue is None:
            raise RemediationStateError("No issue selected")
        issue.transition(IssueState.SKIPPED)
        self._advance()
        return issue

    def confirm_all(self) -> None:
        """Finish the review.

        Raises:
            RemediationStateError: If any issue is Pending or Applying
        """
        self._require_reviewing()
        if not self.can_confirm:
            pending = self.count(IssueState.PENDING)
            applying = self.count(IssueState.APPLYING)
            raise RemediationStateError(
                f"Cannot confirm: {pending} pending, {applying} applying"
            )
        self.state = ControllerState.CONFIRMED

    def abort(self) -> None:
        """Cancel in-flight fixes and end the review; no further writes happen."""
        if self.state is ControllerState.ABORTED:
            return
        self.state = ControllerState.ABORTED
        self._fixer.abort()
        for issue_id, task in self._tasks.items():
            if task.done():
                # Its FixFinished event is already queued
                continue
            task.cancel()
            issue = self._get(issue_id)
            if issue is not None and issue.state is IssueState.APPLYING:
                issue.transition(IssueState.ERROR, error="aborted")

    # -- events -------------------------------------------------------------

    def handle_event(self, event: Event) -> bool:
        """Fold a FixFinished event into issue state. Returns True if state changed."""
        if not isinstance(event, FixFinished):
            return False
        self._tasks.pop(event.issue_id, None)
        issue = self._get(event.issue_id)
        if issue is None or issue.state is not IssueState.APPLYING:
            return False
        if event.error is None:
            issue.transition(IssueState.APPLIED)
            logger.debug(f"Fix applied at {issue.location}")
        else:
            issue.transition(IssueState.ERROR, error=event.error)
            logger.warning(f"Fix failed at {issue.location}: {event.error}")
        return True

    async def drain(self) -> None:
        """Wait for every in-flight fix and fold in its result."""
        if self.state is ControllerState.ABORTED:
            await self.shutdown()
            return
        while self.in_flight or not self.channel.empty():
            event = await self.channel.get()
            self.handle_event(event)

    async def shutdown(self) -> None:
        """Wait for cancelled tasks to unwind."""
        tasks = [t for t in self._tasks.values() if not t.done()]
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    async def run_batch(self) -> ControllerState:
        """Apply every Pending issue, wait for completion and confirm."""
        for issue in self.issues:
            if issue.state is IssueState.PENDING:
                self.apply(issue)
        await self.drain()
        self.confirm_all()
        return self.state
