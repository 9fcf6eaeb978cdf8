"""Run state machine and the per-phase action execution loop.

A run moves strictly forward through :class:`RunState`. Within the two
exploration phases, the :class:`ActionScheduler` walks the planned actions
in planner order, applies the safety gates, and executes the survivors one
at a time through the automation API. Execution is strictly sequential:
actions mutate shared page state and must not race.
"""

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Set

from .errors import InvalidStateTransition
from .models.interaction import ActionKind, ActionPhase, CandidateAction
from .models.run import (
    ActionError,
    DiscoveryRun,
    ExecutedAction,
    PhaseMetric,
    RunState,
    SkipCode,
    SkippedAction,
    StateTransition,
)
from .models.traffic import MarkerType
from .planning.risk import find_blocked_keyword, is_safe_mutation_intent

logger = logging.getLogger(__name__)

_STATE_ORDER = list(RunState)


class RunStateMachine:
    """Forward-only state tracker for a discovery run.

    States may be passed over (PHASE2 is optional) but never revisited, so
    CLEANUP can be entered at most once per run.
    """

    def __init__(self):
        self._index = -1
        self.history: List[StateTransition] = []

    @property
    def current(self) -> Optional[RunState]:
        return _STATE_ORDER[self._index] if self._index >= 0 else None

    def enter(self, state: RunState) -> None:
        index = _STATE_ORDER.index(state)
        if index <= self._index:
            raise InvalidStateTransition(f"Cannot move from {self.current.value} to {state.value}")

        now = datetime.now(timezone.utc)
        self._close_current(now)
        self._index = index
        self.history.append(StateTransition(state=state, entered_at=now))
        logger.info(f"Discovery run entered state {state.value}")

    def fail(self, error: BaseException) -> None:
        """Attach an error to the current state."""
        if self.history:
            self.history[-1] = self.history[-1].model_copy(update={"error": str(error) or type(error).__name__})

    def _close_current(self, now: datetime) -> None:
        if self.history and self.history[-1].exited_at is None:
            self.history[-1] = self.history[-1].model_copy(update={"exited_at": now})


def skip_reason(code: SkipCode, detail: Optional[str] = None, risk_cutoff: int = 65) -> str:
    """Operator-visible reason string for a skip code."""
    if code == SkipCode.RISK_THRESHOLD:
        return f"risk-score>={risk_cutoff}"
    if code in (SkipCode.BLOCKED_KEYWORD, SkipCode.INTENT_NOT_ALLOWLISTED):
        return f"{code.value}:{detail}"
    return code.value


async def execute_action(client, tab_id: int, action: CandidateAction, probe_text: str = "test") -> Dict[str, Any]:
    """Carry out one action in the page.

    Search fields get the probe text typed (after clearing) and Enter
    pressed; everything else is hovered and then clicked in human-like mode.
    """
    selector = action.node.selector
    if action.kind == ActionKind.TYPE_SEARCH:
        await client.type_text(tab_id, selector, probe_text, clear=True, delay_ms=25)
        await client.press_key(tab_id, "Enter", [])
    else:
        await client.hover(tab_id, selector)
        await client.click(tab_id, selector, mode="human")
    return {"kind": action.kind.value, "selector": selector}


class ActionScheduler:
    """Executes planned actions phase by phase under the run's safety policy."""

    def __init__(
        self,
        client,
        run: DiscoveryRun,
        actions: Sequence[CandidateAction],
        max_actions: int,
        allow_phase2: bool = False,
        risk_cutoff: int = 65,
        blocked_keywords: Sequence[str] = (),
        action_delay_ms: int = 350,
        probe_text: str = "test",
    ):
        self.client = client
        self.run = run
        self.actions = list(actions)
        self.max_actions = max_actions
        self.allow_phase2 = allow_phase2
        self.risk_cutoff = risk_cutoff
        self.blocked_keywords = list(blocked_keywords)
        self.action_delay_ms = action_delay_ms
        self.probe_text = probe_text
        self.visited_signatures: Set[str] = set()

    def _should_stop(self) -> bool:
        if len(self.run.executed_actions) >= self.max_actions:
            logger.info(f"Executed-action cap of {self.max_actions} reached")
            return True
        if not self.run.budget.within_budget():
            logger.info("Discovery budget exhausted")
            return True
        return False

    def check_gates(self, action: CandidateAction, phase: ActionPhase) -> Optional[SkippedAction]:
        """Apply the safety gates in order; return a skip record or None."""
        code = None
        detail = None

        if action.signature in self.visited_signatures:
            code = SkipCode.DUPLICATE_SIGNATURE
        elif action.risk_score >= self.risk_cutoff:
            code = SkipCode.RISK_THRESHOLD
        else:
            keyword = find_blocked_keyword(action.node, self.blocked_keywords)
            if keyword:
                code, detail = SkipCode.BLOCKED_KEYWORD, keyword
            elif phase == ActionPhase.PHASE_2 and not self.allow_phase2:
                code = SkipCode.PHASE2_DISABLED
            elif phase == ActionPhase.PHASE_2 and not is_safe_mutation_intent(action.intent):
                code, detail = SkipCode.INTENT_NOT_ALLOWLISTED, action.intent.value

        if code is None:
            return None
        return SkippedAction(
            action_id=action.id,
            selector=action.selector,
            phase=phase,
            code=code,
            reason=skip_reason(code, detail, self.risk_cutoff),
            risk_score=action.risk_score,
        )

    async def mark(self, marker_type: MarkerType, label: str, meta: Optional[Dict[str, Any]] = None) -> Any:
        """Post a correlation marker; failures only cost traceability."""
        try:
            return await self.client.post_marker(self.run.tab_id, marker_type, label, meta or {})
        except Exception as e:
            logger.debug(f"Marker {marker_type.value}:{label} not recorded: {e}")
            return None

    async def run_phase(self, phase: ActionPhase) -> PhaseMetric:
        """Walk the actions of one phase in planner order.

        The budget and executed-action cap are checked between actions; an
        action that has started always completes.
        """
        started = time.monotonic()
        executed_before = self.run.executed_in_phase(phase)

        for action in self.actions:
            if action.phase != phase:
                continue
            if self._should_stop():
                break

            skipped = self.check_gates(action, phase)
            self.visited_signatures.add(action.signature)
            if skipped is not None:
                logger.debug(f"Skipping {action.id} ({action.selector}): {skipped.reason}")
                self.run.skipped_actions.append(skipped)
                continue

            await self._run_action(action, phase)
            if self.action_delay_ms:
                await asyncio.sleep(self.action_delay_ms / 1000.0)

        return PhaseMetric(
            phase=f"phase-{int(phase)}",
            elapsed_ms=int((time.monotonic() - started) * 1000),
            executed=self.run.executed_in_phase(phase) - executed_before,
        )

    async def _run_action(self, action: CandidateAction, phase: ActionPhase) -> None:
        step_start = time.monotonic()
        await self.mark(MarkerType.ACTION_START, action.id, {
            "selector": action.selector,
            "kind": action.kind.value,
            "riskScore": action.risk_score,
            "intent": action.intent.value,
            "phase": int(phase),
        })

        try:
            result = await execute_action(self.client, self.run.tab_id, action, self.probe_text)
            self.run.executed_actions.append(ExecutedAction(
                action_id=action.id,
                selector=action.selector,
                kind=action.kind,
                phase=phase,
                signature=action.signature,
                elapsed_ms=int((time.monotonic() - step_start) * 1000),
                result=result,
            ))
            logger.debug(f"Executed {action.id} ({action.kind.value} {action.selector})")
        except Exception as e:
            logger.warning(f"Action {action.id} ({action.selector}) failed: {e}")
            self.run.errors.append(ActionError(
                action_id=action.id,
                selector=action.selector,
                phase=phase,
                error=str(e) or type(e).__name__,
            ))
        finally:
            await self.mark(MarkerType.ACTION_END, action.id, {"phase": int(phase)})
