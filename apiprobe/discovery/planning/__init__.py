"""Risk classification and action planning."""

from .risk import (
    HIGH_RISK_KEYWORDS,
    SAFE_MUTATION_INTENTS,
    classify_intent,
    compute_risk_score,
    find_blocked_keyword,
    is_safe_mutation_intent,
)
from .planner import PHASE1_MAX_RISK, assign_phase, build_action_plan, derive_kind

__all__ = [
    'HIGH_RISK_KEYWORDS',
    'SAFE_MUTATION_INTENTS',
    'classify_intent',
    'compute_risk_score',
    'find_blocked_keyword',
    'is_safe_mutation_intent',
    'PHASE1_MAX_RISK',
    'assign_phase',
    'build_action_plan',
    'derive_kind',
]
