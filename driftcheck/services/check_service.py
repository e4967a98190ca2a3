"""DriftCheckService: runs the full pre-push pipeline.

Stages run sequentially on one event loop:

1. resolve base ref (or use the explicit range)
2. build the bounded ChangeSet
3. plan search queries
4. search documentation
5. analyze consistency (with recent-commit suppression)
6. review: interactive app, batch auto-apply, or plain report

Query planning, search and analysis failures are recoverable: the stage
degrades with a warning unless strict mode is active. Resolution, config
and VCS failures end the run before any remote call.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from loguru import logger
from rich.console import Console

from driftcheck.core.config import Config
from driftcheck.core.exceptions import (
    DriftcheckError,
    EmptyChangeError,
    GenerationError,
    ParseError,
    SearchError,
    VCSError,
)
from driftcheck.core.models import ChangeSet, DriftIssue, RecentCommit
from driftcheck.interfaces.search_provider import SearchProvider
from driftcheck.interfaces.vcs_provider import VCSProvider
from driftcheck.services.base_resolver import BaseResolver, parse_range
from driftcheck.services.cache_store import CacheStore
from driftcheck.services.changeset_builder import ChangeSetBuilder
from driftcheck.services.consistency_analyzer import ConsistencyAnalyzer, parse_recent_log
from driftcheck.services.doc_search import DocSearchAggregator
from driftcheck.services.fix_service import DocFileWriter, DocFixer, FixGenerator
from driftcheck.services.generation import StructuredGenerator
from driftcheck.services.query_planner import QueryPlanner
from driftcheck.services.remediation import ControllerState, RemediationController
from driftcheck.services.reporter import (
    EXIT_BLOCKED,
    EXIT_OK,
    Reporter,
    exit_code,
    review_exit_code,
)
from driftcheck.utils.progress import StageProgress

ReviewRunner = Callable[[RemediationController, list[str]], Awaitable[ControllerState]]


@dataclass
class CheckOutcome:
    exit_code: int
    issues: list[DriftIssue] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    changeset: ChangeSet | None = None
    review_state: ControllerState | None = None


class DriftCheckService:
    def __init__(
        self,
        config: Config,
        vcs: VCSProvider,
        search_provider: SearchProvider,
        generator: StructuredGenerator,
        cache: CacheStore,
        console: Console,
        review_runner: ReviewRunner | None = None,
        show_progress: bool | None = None,
    ):
        self._config = config
        self._vcs = vcs
        self._cache = cache
        self._console = console
        self._review_runner = review_runner
        self._show_progress = show_progress
        self._reporter = Reporter(console)

        prompts = config.prompts
        self._planner = QueryPlanner(
            generator, cache, config.search.max_queries, prompts.search_queries
        )
        self._search = DocSearchAggregator(
            vcs.root, search_provider, config.search.max_workers, config.search.context_lines
        )
        self._analyzer = ConsistencyAnalyzer(
            generator, cache, config.analysis.confidence_threshold, prompts.analysis
        )
        self._fix_generator = FixGenerator(generator, cache, prompts.fix)

    async def check(self, range: str | None = None, interactive_allowed: bool = False) -> int:
        """Run the pipeline and return the process exit code (0 allow, 1 block)."""
        outcome = await self.run(range, interactive_allowed)
        return outcome.exit_code

    async def run(
        self, range: str | None = None, interactive_allowed: bool = False
    ) -> CheckOutcome:
        warnings: list[str] = []
        try:
            with StageProgress(self._console, self._show_progress) as progress:
                progress.step("Computing diff")
                changeset = self._build_changeset(range)
                if changeset is None:
                    logger.info("No changes to check")
                    return CheckOutcome(exit_code=EXIT_OK, warnings=warnings)

                progress.step("Planning searches")
                queries = await self._recoverable(self._planner.plan(changeset), [], warnings)

                progress.step("Searching documentation")
                hits = []
                if queries:
                    docs = self._config.docs
                    hits = await self._recoverable(
                        self._search.search(
                            queries, docs.paths, docs.ignore, docs.max_context_tokens
                        ),
                        [],
                        warnings,
                    )

                progress.step("Analyzing consistency")
                issues: list[DriftIssue] = []
                if hits:
                    log_text, recent = self._recent_commits(warnings)
                    issues = await self._recoverable(
                        self._analyzer.analyze(changeset, hits, recent, log_text),
                        [],
                        warnings,
                    )
        except DriftcheckError as e:
            return CheckOutcome(exit_code=self._fail(e), warnings=warnings)

        outcome = CheckOutcome(
            exit_code=EXIT_OK, issues=issues, warnings=warnings, changeset=changeset
        )
        if not issues:
            return outcome

        outcome.exit_code, outcome.review_state = await self._review(
            issues, warnings, interactive_allowed
        )
        return outcome

    def _build_changeset(self, range: str | None) -> ChangeSet | None:
        try:
            if range:
                base, head = parse_range(range)
            else:
                base = BaseResolver(self._vcs, self._config.general.fallback_base).resolve()
                head = "HEAD"
            return ChangeSetBuilder(self._vcs).build(base, head, self._config.diff.max_tokens)
        except EmptyChangeError:
            return None

    def _recent_commits(self, warnings: list[str]) -> tuple[str, list[RecentCommit]]:
        count = self._config.analysis.recent_commits
        if count <= 0:
            return "", []
        try:
            text = self._vcs.recent_log(count)
        except VCSError as e:
            warnings.append(f"Could not read recent commits: {e}")
            logger.warning(f"Could not read recent commits: {e}")
            return "", []
        commits = parse_recent_log(text)
        summary = "\n".join(f"{c.sha} {c.subject}" for c in commits)
        return summary, commits

    async def _recoverable(self, awaitable: Awaitable, fallback, warnings: list[str]):
        try:
            return await awaitable
        except (GenerationError, SearchError, ParseError) as e:
            if self._config.strict:
                raise
            message = f"{type(e).__name__}: {e}"
            if isinstance(e, GenerationError) and e.timed_out:
                message += " (timed out)"
            warnings.append(message)
            logger.warning(f"Continuing without this stage: {message}")
            return fallback

    async def _review(
        self, issues: list[DriftIssue], warnings: list[str], interactive_allowed: bool
    ) -> tuple[int, ControllerState | None]:
        tui = self._config.tui
        fixer = DocFixer(self._fix_generator, DocFileWriter(self._vcs.root))
        controller = RemediationController(issues, fixer, tui.max_concurrent_fixes)

        if interactive_allowed and self._review_runner is not None:
            state = await self._review_runner(controller, warnings)
            await controller.shutdown()
            if state is ControllerState.ABORTED:
                self._console.print("driftcheck: push aborted")
            else:
                self._reporter.print_summary(issues)
            return review_exit_code(state), state

        state = None
        if tui.auto_apply:
            state = await controller.run_batch()
            self._reporter.print_summary(issues)

        self._reporter.print_issues(issues)
        return exit_code(issues, self._config.general.allow_push_on_error), state

    def _fail(self, error: DriftcheckError) -> int:
        self._reporter.print_error(error.message, error.hint)
        if self._config.general.allow_push_on_error:
            self._console.print("driftcheck: allowing push (allow_push_on_error = true)")
            return EXIT_OK
        return EXIT_BLOCKED
