"""Discovery run orchestration.

This module provides the DiscoveryOrchestrator class that composes tab
resolution, capture, planning, scheduling, traffic analysis and artifact
generation into one discovery run, and guarantees that capture is disabled
before the run ends whatever happened along the way.
"""

import asyncio
import logging
import time
from typing import Any, Callable, Dict, List, Optional, Tuple
from urllib.parse import urljoin

from pydantic import ValidationError

from .analysis.clustering import cluster_requests
from .analysis.dependencies import infer_dependencies
from .artifacts.openapi import build_openapi, build_openapi_report
from .artifacts.postman import build_postman_collection
from .artifacts.templates import build_templates
from .artifacts.writer import ArtifactWriter
from .automation.tabs import find_tab, is_automatable_url, resolve_target_tab
from .config import DiscoveryOptions
from .errors import AutomationError, CaptureEnableError, DiscoveryRunError, TargetResolutionError
from .models.interaction import ActionPhase, CandidateAction, InteractableNode
from .models.run import (
    ArtifactPaths,
    DiscoveryRun,
    PhaseMetric,
    RunBudget,
    RunState,
    RunStats,
    RunSummary,
)
from .models.traffic import CapturedRequest, Marker, MarkerType
from .planning.planner import build_action_plan
from .scheduler import ActionScheduler, RunStateMachine
from .utils.path_normalizer import get_origin
from .utils.scope_matcher import ScopeMatcher

logger = logging.getLogger(__name__)

BASELINE_FRACTION = 0.2
BASELINE_MIN_MS = 1000
BASELINE_MAX_MS = 20000
MAX_COLLECT_PAGES = 50


def default_baseline_ms(remaining_ms: int) -> int:
    """20% of the remaining budget, clamped to [1 s, 20 s]."""
    return min(BASELINE_MAX_MS, max(BASELINE_MIN_MS, int(remaining_ms * BASELINE_FRACTION)))


class DiscoveryOrchestrator:
    """Runs one autonomous API discovery session against a browser tab."""

    def __init__(
        self,
        client,
        options: Optional[DiscoveryOptions] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize the orchestrator.

        Args:
            client: Browser automation API client
            options: Run options (uses defaults if None)
            clock: Monotonic clock in seconds, used for the run budget
        """
        self.client = client
        self.options = options or DiscoveryOptions()
        self._clock = clock
        self.state_machine: Optional[RunStateMachine] = None
        self.run_state: Optional[DiscoveryRun] = None

    async def run(self) -> RunSummary:
        """Execute a full discovery run and write its artifacts.

        Returns:
            The run summary

        Raises:
            DiscoveryRunError: If the run aborted; carries a failed summary
        """
        options = self.options
        run = DiscoveryRun(
            budget=RunBudget(options.budget_ms, clock=self._clock),
            output_dir=options.resolve_output_dir(),
        )
        self.run_state = run
        self.state_machine = RunStateMachine()
        logger.info(f"Starting discovery run {run.run_id} (budget {options.budget_ms}ms)")

        summary: Optional[RunSummary] = None
        failure: Optional[Exception] = None
        try:
            await self._setup(run)
            interactables, actions = await self._baseline(run)
            await self._explore(run, actions)
            captured, in_scope, marker_count = await self._collect(run)
            summary = await self._analyze(run, interactables, actions, captured, in_scope, marker_count)
        except Exception as e:
            failure = e
            self.state_machine.fail(e)
            logger.error(f"Discovery run {run.run_id} aborted: {e}")
        finally:
            self.state_machine.enter(RunState.CLEANUP)
            await self._cleanup(run)

        self.state_machine.enter(RunState.DONE)

        if failure is not None:
            failed = self._build_summary(run, success=False, error=str(failure) or type(failure).__name__)
            raise DiscoveryRunError(f"Discovery run failed: {failure}", summary=failed) from failure

        return summary.model_copy(update={"states": list(self.state_machine.history)})

    # States

    async def _setup(self, run: DiscoveryRun) -> None:
        self.state_machine.enter(RunState.SETUP)
        options = self.options

        run.tab_id = await resolve_target_tab(
            self.client,
            tab_id=options.tab_id,
            tab_url=options.tab_url,
            active=options.active,
        )

        tab = await find_tab(self.client, run.tab_id)
        tab_url = (tab or {}).get('url') or ''
        if not is_automatable_url(tab_url):
            raise TargetResolutionError(
                "Target tab URL is not automatable. Open a normal web app tab and retry."
            )
        run.tab_url = tab_url
        logger.info(f"Target tab {run.tab_id}: {tab_url}")

        if options.seed_path:
            origin = get_origin(tab_url)
            if origin:
                seeded_url = urljoin(f"{origin}/", options.seed_path)
                logger.info(f"Navigating to seed URL {seeded_url}")
                await self.client.navigate(run.tab_id, seeded_url)

        try:
            await self.client.enable_capture(
                run.tab_id,
                mode=options.capture_mode.value,
                max_requests=options.max_capture_requests,
                url_filter=options.url_filter,
            )
        except AutomationError as e:
            raise CaptureEnableError(f"Could not enable capture on tab {run.tab_id}: {e}") from e

        await self._mark(run, MarkerType.PHASE, "phase-1-non-mutating", {
            "runId": run.run_id,
            "budgetMs": options.budget_ms,
            "scope": options.scope.value,
        })

    async def _baseline(self, run: DiscoveryRun) -> Tuple[List[InteractableNode], List[CandidateAction]]:
        self.state_machine.enter(RunState.BASELINE)
        options = self.options

        started = time.monotonic()
        if options.baseline_ms is not None:
            baseline_ms = options.baseline_ms
        else:
            baseline_ms = default_baseline_ms(run.budget.remaining_ms())
        logger.info(f"Baseline wait of {baseline_ms}ms")
        await asyncio.sleep(baseline_ms / 1000.0)
        run.phase_metrics.append(PhaseMetric(
            phase="baseline",
            elapsed_ms=int((time.monotonic() - started) * 1000),
        ))

        started = time.monotonic()
        raw_items = await self.client.interactables(
            run.tab_id,
            max_nodes=options.interactables_max_nodes,
            include_hidden=False,
        )
        interactables = []
        for item in raw_items:
            try:
                interactables.append(InteractableNode.model_validate(item))
            except ValidationError as e:
                logger.debug(f"Ignoring malformed interactable {item!r}: {e}")
        run.phase_metrics.append(PhaseMetric(
            phase="interactables",
            elapsed_ms=int((time.monotonic() - started) * 1000),
            count=len(interactables),
        ))

        actions = build_action_plan(
            interactables,
            options.max_actions,
            node_limit=options.interactables_max_nodes,
            phase1_max_risk=options.phase1_max_risk,
        )
        logger.info(f"Discovered {len(interactables)} interactables, planned {len(actions)} actions")
        return interactables, actions

    async def _explore(self, run: DiscoveryRun, actions: List[CandidateAction]) -> None:
        options = self.options
        scheduler = ActionScheduler(
            self.client,
            run,
            actions,
            max_actions=options.max_actions,
            allow_phase2=options.allow_phase2,
            risk_cutoff=options.risk_cutoff,
            blocked_keywords=options.blocked_keywords,
            action_delay_ms=options.action_delay_ms,
            probe_text=options.probe_text,
        )

        self.state_machine.enter(RunState.PHASE1)
        run.phase_metrics.append(await scheduler.run_phase(ActionPhase.PHASE_1))

        if not run.budget.within_budget():
            logger.info("Budget exhausted after phase 1, skipping phase 2")
            return

        self.state_machine.enter(RunState.PHASE2)
        if options.allow_phase2:
            await self._mark(run, MarkerType.PHASE, "phase-2-controlled-mutation", {"runId": run.run_id})
        # With phase 2 disabled the walk only records skip reasons.
        run.phase_metrics.append(await scheduler.run_phase(ActionPhase.PHASE_2))

    async def _collect(self, run: DiscoveryRun) -> Tuple[List[CapturedRequest], List[CapturedRequest], int]:
        self.state_machine.enter(RunState.COLLECT)
        page_size = self.options.collect_page_size

        raw_requests: List[Dict[str, Any]] = []
        raw_markers: List[Any] = []
        offset = 0
        for _ in range(MAX_COLLECT_PAGES):
            page = await self.client.fetch_requests(run.tab_id, limit=page_size, offset=offset)
            batch = page.get('requests') or []
            raw_requests.extend(batch)
            raw_markers.extend(page.get('markers') or [])

            if len(batch) < page_size or page.get('hasMore') is False:
                break
            offset += len(batch)

        captured = []
        for item in raw_requests:
            try:
                captured.append(CapturedRequest.model_validate(item))
            except ValidationError as e:
                logger.debug(f"Ignoring malformed captured request: {e}")

        marker_count = 0
        for item in raw_markers:
            try:
                Marker.model_validate(item)
                marker_count += 1
            except ValidationError:
                continue

        matcher = ScopeMatcher(
            run.tab_url,
            scope=self.options.scope,
            include_hosts=self.options.include_hosts,
            exclude_hosts=self.options.exclude_hosts,
        )
        in_scope = [request for request in captured if matcher.is_in_scope(request.url)]
        in_scope.sort(key=lambda request: request.timestamp or 0)

        logger.info(f"Collected {len(captured)} requests, {len(in_scope)} in scope")
        return captured, in_scope, marker_count

    async def _analyze(
        self,
        run: DiscoveryRun,
        interactables: List[InteractableNode],
        actions: List[CandidateAction],
        captured: List[CapturedRequest],
        in_scope: List[CapturedRequest],
        marker_count: int,
    ) -> RunSummary:
        self.state_machine.enter(RunState.ANALYZE)

        clusters = cluster_requests(in_scope)
        dependencies = infer_dependencies(in_scope)
        templates = build_templates(clusters)

        origin = get_origin(run.tab_url or '')
        openapi_spec = build_openapi(clusters, origin)
        openapi_report = build_openapi_report(clusters)
        postman_collection = build_postman_collection(templates, origin)

        stats = RunStats(
            interactables_discovered=len(interactables),
            actions_planned=len(actions),
            actions_executed=len(run.executed_actions),
            actions_skipped=len(run.skipped_actions),
            errors=len(run.errors),
            requests_captured=len(captured),
            requests_in_scope=len(in_scope),
            markers_captured=marker_count,
            endpoint_clusters=len(clusters),
            session_auth_confidence=(
                "high" if dependencies.auth_signals.likely_authenticated_session else "low"
            ),
        )
        summary = self._build_summary(run, success=True, stats=stats)

        writer = ArtifactWriter(summary.artifacts)
        await writer.write(
            summary=summary,
            requests=in_scope,
            clusters=clusters,
            dependencies=dependencies,
            templates=templates,
            postman_collection=postman_collection,
            openapi_spec=openapi_spec,
            openapi_report=openapi_report,
        )
        logger.info(
            f"Discovery run {run.run_id} finished: {stats.actions_executed} executed, "
            f"{stats.actions_skipped} skipped, {stats.endpoint_clusters} endpoint clusters"
        )
        return summary

    async def _cleanup(self, run: DiscoveryRun) -> None:
        if run.tab_id is None:
            return
        try:
            await self.client.disable_capture(run.tab_id)
        except Exception as e:
            logger.warning(f"Failed to disable capture on tab {run.tab_id}: {e}")

    # Helpers

    async def _mark(self, run: DiscoveryRun, marker_type: MarkerType, label: str, meta: Dict[str, Any]) -> None:
        try:
            await self.client.post_marker(run.tab_id, marker_type, label, meta)
        except Exception as e:
            logger.debug(f"Marker {marker_type.value}:{label} not recorded: {e}")

    def _build_summary(
        self,
        run: DiscoveryRun,
        success: bool,
        stats: Optional[RunStats] = None,
        error: Optional[str] = None,
    ) -> RunSummary:
        if stats is None:
            stats = RunStats(
                actions_executed=len(run.executed_actions),
                actions_skipped=len(run.skipped_actions),
                errors=len(run.errors),
            )
        return RunSummary(
            success=success,
            run_id=run.run_id,
            tab_id=run.tab_id,
            tab_url=run.tab_url,
            elapsed_ms=run.budget.elapsed_ms(),
            error=error,
            phases=list(run.phase_metrics),
            states=list(self.state_machine.history),
            stats=stats,
            artifacts=ArtifactPaths.for_output_dir(run.output_dir) if success else None,
            executed_actions=list(run.executed_actions),
            skipped_actions=list(run.skipped_actions),
            errors=list(run.errors),
        )
