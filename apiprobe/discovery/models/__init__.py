"""Data models for the discovery engine."""

from .interaction import (
    ActionIntent,
    ActionKind,
    ActionPhase,
    CandidateAction,
    FormContext,
    InteractableNode,
)
from .traffic import (
    AuthSignals,
    CapturedRequest,
    ClusterSample,
    DependencyReport,
    EndpointCluster,
    Marker,
    MarkerType,
    RefreshChain,
    RequestTemplate,
    TokenEndpoint,
)
from .run import (
    ActionError,
    ArtifactPaths,
    DiscoveryRun,
    ExecutedAction,
    PhaseMetric,
    RunBudget,
    RunState,
    RunStats,
    RunSummary,
    SkipCode,
    SkippedAction,
    StateTransition,
)

__all__ = [
    # Interaction models
    'ActionIntent',
    'ActionKind',
    'ActionPhase',
    'CandidateAction',
    'FormContext',
    'InteractableNode',

    # Traffic models
    'AuthSignals',
    'CapturedRequest',
    'ClusterSample',
    'DependencyReport',
    'EndpointCluster',
    'Marker',
    'MarkerType',
    'RefreshChain',
    'RequestTemplate',
    'TokenEndpoint',

    # Run models
    'ActionError',
    'ArtifactPaths',
    'DiscoveryRun',
    'ExecutedAction',
    'PhaseMetric',
    'RunBudget',
    'RunState',
    'RunStats',
    'RunSummary',
    'SkipCode',
    'SkippedAction',
    'StateTransition',
]
