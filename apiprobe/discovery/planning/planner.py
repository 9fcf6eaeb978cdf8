"""Builds the candidate action queue from a page's interactable inventory."""

import logging
from typing import Iterable, List, Optional

from ..models.interaction import (
    ActionKind,
    ActionPhase,
    CandidateAction,
    InteractableNode,
)
from .risk import HIGH_RISK_KEYWORDS, classify_intent, compute_risk_score

logger = logging.getLogger(__name__)

PHASE1_MAX_RISK = 34
PLAN_OVERSIZE_FACTOR = 2

TEXT_INPUT_TYPES = frozenset({'search', 'text'})


def derive_kind(node: InteractableNode) -> ActionKind:
    """Pick how an element is exercised: typed into, followed, or clicked."""
    tag = node.tag.lower()
    if tag == 'input' and (node.type is None or node.type.lower() in TEXT_INPUT_TYPES):
        return ActionKind.TYPE_SEARCH
    if tag == 'a' and node.href:
        return ActionKind.CLICK_LINK
    return ActionKind.CLICK


def assign_phase(risk_score: int, phase1_max_risk: int = PHASE1_MAX_RISK) -> ActionPhase:
    return ActionPhase.PHASE_1 if risk_score <= phase1_max_risk else ActionPhase.PHASE_2


def build_action_plan(
    nodes: Iterable[InteractableNode],
    max_actions: int,
    node_limit: Optional[int] = None,
    phase1_max_risk: int = PHASE1_MAX_RISK,
    risk_keywords: Iterable[str] = HIGH_RISK_KEYWORDS,
) -> List[CandidateAction]:
    """Turn an interactable inventory into a phase-tagged action list.

    The plan holds up to twice ``max_actions`` entries so the scheduler can
    skip and dedupe without starving a phase.

    Args:
        nodes: Interactable inventory from the automation API
        max_actions: Execution cap of the run
        node_limit: Maximum number of inventory nodes to consider
        phase1_max_risk: Highest risk score still planned into phase 1
        risk_keywords: High-risk keywords used for scoring

    Returns:
        Candidate actions in inventory order
    """
    risk_keywords = tuple(risk_keywords)
    limit = max_actions * PLAN_OVERSIZE_FACTOR
    actions: List[CandidateAction] = []

    for position, node in enumerate(nodes):
        if node_limit is not None and position >= node_limit:
            break
        if not node.visible or not node.enabled:
            continue

        risk_score = compute_risk_score(node, risk_keywords)
        kind = derive_kind(node)
        actions.append(CandidateAction(
            id=f"action-{len(actions) + 1}",
            kind=kind,
            intent=classify_intent(node),
            risk_score=risk_score,
            phase=assign_phase(risk_score, phase1_max_risk),
            signature=f"{kind.value}|{node.selector}",
            node=node,
        ))

        if len(actions) >= limit:
            break

    logger.debug(
        f"Planned {len(actions)} actions "
        f"({sum(1 for a in actions if a.phase == ActionPhase.PHASE_1)} phase 1)"
    )
    return actions
