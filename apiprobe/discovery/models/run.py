"""Run-level records: action outcomes, phase metrics and the run summary."""

import time
import uuid
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .interaction import ActionKind, ActionPhase


class RunState(str, Enum):
    """States of a discovery run, in the only order they may occur."""
    SETUP = "setup"
    BASELINE = "baseline"
    PHASE1 = "phase1"
    PHASE2 = "phase2"
    COLLECT = "collect"
    ANALYZE = "analyze"
    CLEANUP = "cleanup"
    DONE = "done"


class SkipCode(str, Enum):
    """Why a planned action was not executed."""
    DUPLICATE_SIGNATURE = "duplicate-signature"
    RISK_THRESHOLD = "risk-threshold"
    BLOCKED_KEYWORD = "blocked-keyword"
    PHASE2_DISABLED = "phase2-disabled"
    INTENT_NOT_ALLOWLISTED = "intent-not-allowlisted"


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class ExecutedAction(_CamelModel):
    action_id: str
    selector: str
    kind: ActionKind
    phase: ActionPhase
    signature: str
    elapsed_ms: int
    result: Dict[str, Any] = Field(default_factory=dict)


class SkippedAction(_CamelModel):
    action_id: str
    selector: str
    phase: ActionPhase
    code: SkipCode
    reason: str = Field(description="Operator-visible reason, e.g. blocked-keyword:delete")
    risk_score: int


class ActionError(_CamelModel):
    action_id: str
    selector: str
    phase: ActionPhase
    error: str


class PhaseMetric(_CamelModel):
    phase: str
    elapsed_ms: int
    count: Optional[int] = None
    executed: Optional[int] = None


class StateTransition(_CamelModel):
    state: RunState
    entered_at: datetime
    exited_at: Optional[datetime] = None
    error: Optional[str] = None


class RunStats(_CamelModel):
    interactables_discovered: int = 0
    actions_planned: int = 0
    actions_executed: int = 0
    actions_skipped: int = 0
    errors: int = 0
    requests_captured: int = 0
    requests_in_scope: int = 0
    markers_captured: int = 0
    endpoint_clusters: int = 0
    session_auth_confidence: str = "low"


class ArtifactPaths(_CamelModel):
    output_dir: str
    summary: str
    requests: str
    endpoint_clusters: str
    dependencies: str
    templates: str
    postman_collection: str
    curl_dir: str
    python_dir: str
    openapi: str
    openapi_report: str

    @classmethod
    def for_output_dir(cls, output_dir: Path) -> "ArtifactPaths":
        replay = output_dir / "replay"
        return cls(
            output_dir=str(output_dir),
            summary=str(output_dir / "summary.json"),
            requests=str(output_dir / "requests.ndjson"),
            endpoint_clusters=str(output_dir / "endpoint-clusters.json"),
            dependencies=str(output_dir / "dependencies.json"),
            templates=str(replay / "templates.json"),
            postman_collection=str(replay / "postman-collection.json"),
            curl_dir=str(replay / "curl"),
            python_dir=str(replay / "python"),
            openapi=str(output_dir / "openapi.yaml"),
            openapi_report=str(output_dir / "openapi-report.json"),
        )


class RunSummary(_CamelModel):
    """Operator-facing outcome of one discovery run."""

    success: bool
    run_id: str
    tab_id: Optional[int] = None
    tab_url: Optional[str] = None
    elapsed_ms: int
    error: Optional[str] = None
    phases: List[PhaseMetric] = Field(default_factory=list)
    states: List[StateTransition] = Field(default_factory=list)
    stats: RunStats = Field(default_factory=RunStats)
    artifacts: Optional[ArtifactPaths] = None
    executed_actions: List[ExecutedAction] = Field(default_factory=list)
    skipped_actions: List[SkippedAction] = Field(default_factory=list)
    errors: List[ActionError] = Field(default_factory=list)

    def to_json_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class RunBudget:
    """Wall-clock budget of a run, checked cooperatively between actions."""

    def __init__(self, budget_ms: int, clock: Callable[[], float] = time.monotonic):
        self.budget_ms = budget_ms
        self._clock = clock
        self.started_at = clock()
        self.deadline = self.started_at + budget_ms / 1000.0

    def remaining_ms(self) -> int:
        return max(0, int((self.deadline - self._clock()) * 1000))

    def within_budget(self) -> bool:
        return self._clock() < self.deadline

    def elapsed_ms(self) -> int:
        return int((self._clock() - self.started_at) * 1000)


class DiscoveryRun:
    """Mutable state of one discovery run, owned by the orchestrator."""

    def __init__(self, budget: RunBudget, output_dir: Path):
        self.run_id = str(uuid.uuid4())
        self.budget = budget
        self.output_dir = output_dir

        self.tab_id: Optional[int] = None
        self.tab_url: Optional[str] = None

        self.executed_actions: List[ExecutedAction] = []
        self.skipped_actions: List[SkippedAction] = []
        self.errors: List[ActionError] = []
        self.phase_metrics: List[PhaseMetric] = []

    def executed_in_phase(self, phase: ActionPhase) -> int:
        return sum(1 for action in self.executed_actions if action.phase == phase)
