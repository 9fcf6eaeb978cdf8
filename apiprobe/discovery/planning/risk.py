"""Mutation risk scoring and intent classification for page elements.

Scores are additive heuristics in [0, 100]; a higher score means a click is
more likely to cause an irreversible or sensitive side effect.
"""

import re
from typing import Iterable, Optional

from ..models.interaction import ActionIntent, InteractableNode


HIGH_RISK_KEYWORDS = (
    'delete',
    'remove',
    'purchase',
    'checkout',
    'pay',
    'billing',
    'transfer',
    'invite',
    'upload',
    'create account',
)

KEYWORD_WEIGHT = 45
SENSITIVE_INPUT_WEIGHT = 35
SUBMIT_BUTTON_WEIGHT = 25
MUTATING_FORM_WEIGHT = 20
DISABLED_WEIGHT = 10
MAX_RISK = 100

SENSITIVE_INPUT_TYPES = frozenset({'password', 'file'})
READ_FORM_METHODS = frozenset({'get'})

_SUBMIT_RE = re.compile(r'submit|save|confirm')

# Checked top to bottom, first hit wins.
INTENT_KEYWORDS = (
    (ActionIntent.SEARCH, ('search',)),
    (ActionIntent.FILTER, ('filter',)),
    (ActionIntent.SORT, ('sort',)),
    (ActionIntent.NEXT, ('next', 'more')),
    (ActionIntent.EXPAND, ('expand', 'show')),
    (ActionIntent.REFRESH, ('refresh',)),
    (ActionIntent.VIEW, ('view',)),
    (ActionIntent.APPLY, ('apply',)),
)

SAFE_MUTATION_INTENTS = frozenset(intent for intent in ActionIntent if intent != ActionIntent.GENERIC)


def compute_risk_score(node: InteractableNode, keywords: Iterable[str] = HIGH_RISK_KEYWORDS) -> int:
    """Compute the additive mutation risk of an element, capped at 100."""
    text = node.haystack
    score = 0

    for keyword in keywords:
        if keyword in text:
            score += KEYWORD_WEIGHT

    if (node.type or '').lower() in SENSITIVE_INPUT_TYPES:
        score += SENSITIVE_INPUT_WEIGHT
    if node.tag.lower() == 'button' and _SUBMIT_RE.search(text):
        score += SUBMIT_BUTTON_WEIGHT

    method = node.form_context.method if node.form_context else None
    if method and method.lower() not in READ_FORM_METHODS:
        score += MUTATING_FORM_WEIGHT

    if not node.enabled:
        score += DISABLED_WEIGHT

    return min(MAX_RISK, score)


def classify_intent(node: InteractableNode) -> ActionIntent:
    """Classify the likely purpose of an element from its text."""
    text = node.haystack
    for intent, words in INTENT_KEYWORDS:
        if any(word in text for word in words):
            return intent
    return ActionIntent.GENERIC


def is_safe_mutation_intent(intent: ActionIntent) -> bool:
    return intent in SAFE_MUTATION_INTENTS


def find_blocked_keyword(node: InteractableNode, keywords: Iterable[str]) -> Optional[str]:
    """Return the first blocked keyword present in the element's text, if any."""
    text = node.haystack
    for keyword in keywords:
        if keyword in text:
            return keyword
    return None
