"""Pydantic models for captured traffic and the analysis derived from it."""

from enum import Enum
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, field_validator, model_validator
from pydantic.alias_generators import to_camel


class MarkerType(str, Enum):
    """Correlation points posted into the capture buffer."""
    PHASE = "phase"
    ACTION_START = "action-start"
    ACTION_END = "action-end"


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Marker(_CamelModel):
    """A timestamped tag in the capture buffer."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    id: Optional[str] = None
    marker_type: MarkerType
    label: str
    timestamp: Optional[float] = None
    meta: Dict[str, Any] = Field(default_factory=dict)


class CapturedRequest(_CamelModel):
    """One observed network exchange, as returned by the capture buffer.

    Unknown fields are preserved so the raw request dump keeps everything
    the capture subsystem reported.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    url: str
    method: str = Field(default="GET")
    request_id: Optional[str] = None
    resource_type: Optional[str] = None
    request_headers: Dict[str, str] = Field(default_factory=dict)
    response_headers: Dict[str, str] = Field(default_factory=dict)
    request_body: Optional[str] = None
    response_body: Optional[str] = None
    status: Optional[int] = None
    timestamp: Optional[float] = None
    marker_ids: List[str] = Field(default_factory=list)
    request_fingerprint: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def fold_status_code(cls, data: Any) -> Any:
        """Accept ``statusCode`` as a fallback for ``status``."""
        if isinstance(data, dict) and not data.get("status") and data.get("statusCode"):
            data = {**data, "status": data["statusCode"]}
        return data

    @field_validator("request_headers", "response_headers", mode="before")
    @classmethod
    def coerce_headers(cls, v):
        if not v:
            return {}
        return {str(key): str(value) for key, value in dict(v).items()}

    @field_validator("method", mode="before")
    @classmethod
    def default_method(cls, v):
        return v or "GET"

    @property
    def host(self) -> str:
        try:
            return urlparse(self.url).hostname or ""
        except ValueError:
            return ""

    def header(self, name: str) -> Optional[str]:
        """Case-insensitive request header lookup."""
        wanted = name.lower()
        for key, value in self.request_headers.items():
            if key.lower() == wanted:
                return value
        return None

    def to_record(self) -> Dict[str, Any]:
        """Serialize for the NDJSON request dump."""
        return self.model_dump(by_alias=True, exclude_none=True)


class ClusterSample(_CamelModel):
    url: Optional[str] = None
    request_fingerprint: Optional[str] = None


class EndpointCluster(_CamelModel):
    """Captured requests believed to be the same logical API operation."""

    id: str
    key: str
    method: str
    normalized_path: str
    content_type: str
    graphql_operation: Optional[str] = None
    host: str = ""
    count: int = Field(ge=1)
    statuses: List[int] = Field(default_factory=list)
    confidence: float = Field(ge=0.0, lt=1.0)
    has_request_body: bool = False
    has_response_body: bool = False
    sample: ClusterSample = Field(default_factory=ClusterSample)

    _sample_request: Optional[CapturedRequest] = PrivateAttr(default=None)

    @property
    def sample_request(self) -> Optional[CapturedRequest]:
        return self._sample_request


class AuthSignals(_CamelModel):
    auth_request_count: int = 0
    token_endpoint_count: int = 0
    likely_authenticated_session: bool = False


class TokenEndpoint(_CamelModel):
    method: str
    url: str
    status: Optional[int] = None


class RefreshChain(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    from_url: str = Field(alias="from")
    to_url: str = Field(alias="to")


class DependencyReport(_CamelModel):
    """Authentication facts inferred from the captured traffic."""

    auth_signals: AuthSignals = Field(default_factory=AuthSignals)
    token_endpoints: List[TokenEndpoint] = Field(default_factory=list)
    refresh_chains: List[RefreshChain] = Field(default_factory=list)


class RequestTemplate(_CamelModel):
    """A redacted, parameterized rendering of one representative request."""

    cluster_id: str
    method: str
    normalized_path: str
    url_template: str
    path_template: str
    headers: Dict[str, str] = Field(default_factory=dict)
    body_template: Optional[str] = None
    graphql_operation: Optional[str] = None
