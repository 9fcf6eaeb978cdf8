"""Pydantic models for page interactables and the actions planned from them.

Interactables arrive from the automation API as camelCase JSON; the models
accept both camelCase and snake_case names and serialize back to camelCase
for run artifacts.
"""

from enum import Enum, IntEnum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ActionKind(str, Enum):
    """How a planned action is carried out in the page."""
    CLICK = "click"
    CLICK_LINK = "click-link"
    TYPE_SEARCH = "type-search"


class ActionIntent(str, Enum):
    """Likely purpose of an element, derived from its visible text."""
    SEARCH = "search"
    FILTER = "filter"
    SORT = "sort"
    NEXT = "next"
    EXPAND = "expand"
    REFRESH = "refresh"
    VIEW = "view"
    APPLY = "apply"
    GENERIC = "generic"


class ActionPhase(IntEnum):
    """Execution stage: low-risk actions first, gated actions second."""
    PHASE_1 = 1
    PHASE_2 = 2


class FormContext(BaseModel):
    """Owning form of an element, when there is one."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    method: Optional[str] = Field(default=None, description="Form submission method")
    action: Optional[str] = Field(default=None, description="Form action URL")


class InteractableNode(BaseModel):
    """Snapshot of one interactive element reported by the automation API."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
        frozen=True,
    )

    selector: str = Field(description="CSS selector resolving to the element")
    tag: str = Field(default="", description="Lower-case tag name")
    type: Optional[str] = Field(default=None, description="Input type attribute")
    text: Optional[str] = Field(default=None, description="Visible text content")
    aria_label: Optional[str] = Field(default=None, description="aria-label attribute")
    href: Optional[str] = Field(default=None, description="Link target for anchors")
    enabled: bool = Field(default=True, description="Element is not disabled")
    visible: bool = Field(default=True, description="Element is rendered and visible")
    form_context: Optional[FormContext] = Field(
        default=None,
        description="Owning form, if the element belongs to one"
    )

    @property
    def haystack(self) -> str:
        """Lower-cased text, label and href used for keyword matching."""
        return f"{self.text or ''} {self.aria_label or ''} {self.href or ''}".lower()


class CandidateAction(BaseModel):
    """One planned interaction, annotated with risk and phase."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str = Field(description="Action identifier, e.g. action-3")
    kind: ActionKind
    intent: ActionIntent
    risk_score: int = Field(ge=0, le=100, description="Additive mutation risk")
    phase: ActionPhase
    signature: str = Field(description="Dedup signature kind|selector")
    node: InteractableNode

    @property
    def selector(self) -> str:
        return self.node.selector
