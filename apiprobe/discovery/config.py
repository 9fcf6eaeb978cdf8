"""Configuration system for discovery runs.

This module provides run options, automation API connection settings and
YAML config loading with environment-specific overrides. Precedence is:
CLI flags > environment variables > config file > defaults.
"""

import os
import re
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from .automation.client import DEFAULT_BASE_URL, DEFAULT_TIMEOUT_MS
from .errors import ConfigurationError
from .planning.planner import PHASE1_MAX_RISK
from .planning.risk import HIGH_RISK_KEYWORDS
from .utils.scope_matcher import ScopeMode

ENV_VAR_ENVIRONMENT = "APIPROBE_ENV"
ENV_VAR_URL = "APIPROBE_URL"
ENV_VAR_TOKEN = "APIPROBE_AUTH_TOKEN"
DEFAULT_TOKEN_FILE = Path("/tmp/apiprobe-auth-token")

MIN_BUDGET_MS = 60 * 1000


class CaptureMode(str, Enum):
    """What the capture subsystem records for each request."""
    FULL = "full"              # Headers and bodies
    HEADERS = "headers"        # Headers only


class DiscoveryOptions(BaseModel):
    """Options for a single discovery run."""

    # Target selection (at most one)
    tab_id: Optional[int] = Field(default=None, description="Explicit target tab id")
    tab_url: Optional[str] = Field(default=None, description="Regex matched against tab URLs")
    active: bool = Field(default=False, description="Use the active tab")

    # Budget and limits
    budget_minutes: float = Field(
        default=5.0,
        gt=0.0,
        le=240.0,
        description="Wall-clock budget in minutes (at least one minute is used)"
    )
    max_actions: int = Field(
        default=25,
        ge=1,
        le=500,
        description="Maximum number of actions executed across both phases"
    )

    # Scope
    scope: ScopeMode = Field(default=ScopeMode.FIRST_PARTY, description="Request scope mode")
    include_hosts: List[str] = Field(default_factory=list, description="Host regexes always in scope")
    exclude_hosts: List[str] = Field(default_factory=list, description="Host regexes never in scope")

    # Output
    output_dir: Optional[Path] = Field(default=None, description="Artifact output directory")

    # Exploration policy
    allow_phase2: bool = Field(default=False, description="Execute policy-gated phase 2 actions")
    seed_path: Optional[str] = Field(default=None, description="Path navigated to before exploring")
    baseline_ms: Optional[int] = Field(default=None, ge=0, description="Fixed baseline wait")
    action_delay_ms: int = Field(default=350, ge=0, description="Settle delay after each action")
    probe_text: str = Field(default="test", description="Text typed into search fields")
    risk_cutoff: int = Field(default=65, ge=1, le=100, description="Hard risk cutoff for execution")
    phase1_max_risk: int = Field(default=PHASE1_MAX_RISK, ge=0, le=100, description="Phase 1 risk ceiling")
    blocked_keywords: List[str] = Field(
        default_factory=lambda: list(HIGH_RISK_KEYWORDS),
        description="Keywords that always block execution"
    )

    # Capture
    capture_mode: CaptureMode = Field(default=CaptureMode.FULL, description="Capture mode")
    url_filter: Optional[str] = Field(default=None, description="URL allow-pattern for capture")
    collect_page_size: int = Field(default=5000, ge=1, description="Capture buffer page size")

    @field_validator('include_hosts', 'exclude_hosts')
    @classmethod
    def validate_host_patterns(cls, v):
        for pattern in v:
            try:
                re.compile(pattern)
            except re.error as e:
                raise ValueError(f"Invalid host pattern '{pattern}': {e}")
        return v

    @field_validator('blocked_keywords')
    @classmethod
    def normalize_keywords(cls, v):
        return [keyword.lower() for keyword in v if keyword and keyword.strip()]

    @model_validator(mode='after')
    def validate_single_tab_selector(self):
        selectors = sum([self.tab_id is not None, bool(self.tab_url), self.active])
        if selectors > 1:
            raise ValueError("Use only one of tab_id, tab_url, or active")
        return self

    @property
    def budget_ms(self) -> int:
        return max(MIN_BUDGET_MS, round(self.budget_minutes * 60 * 1000))

    @property
    def max_capture_requests(self) -> int:
        return max(1000, self.max_actions * 20)

    @property
    def interactables_max_nodes(self) -> int:
        return max(100, min(self.max_actions * 10, 2000))

    def resolve_output_dir(self, now: Optional[datetime] = None) -> Path:
        if self.output_dir:
            return Path(self.output_dir)
        stamp = (now or datetime.now()).strftime("%Y-%m-%d_%H-%M-%S-%f")
        return Path(".apiprobe") / "discovery" / stamp


class ConnectionSettings(BaseModel):
    """Where and how to reach the browser automation API."""

    url: str = Field(default=DEFAULT_BASE_URL, description="Automation API base URL")
    token: str = Field(default="", description="Auth token")
    token_source: str = Field(default="none", description="Where the token came from")
    timeout_ms: int = Field(default=DEFAULT_TIMEOUT_MS, gt=0, description="Request timeout")

    @property
    def is_local(self) -> bool:
        return bool(re.match(r'^https?://(localhost|127\.0\.0\.1|\[::1\])(:\d+)?(/|$)', self.url))

    @classmethod
    def resolve(
        cls,
        url: Optional[str] = None,
        token: Optional[str] = None,
        timeout_ms: Optional[int] = None,
        env: Optional[Mapping[str, str]] = None,
        token_file: Optional[Path] = None,
        defaults: Optional[Dict[str, Any]] = None,
    ) -> "ConnectionSettings":
        """Resolve settings from flags, environment, token file and defaults.

        Token precedence: flag > ``APIPROBE_AUTH_TOKEN`` > token file.
        """
        env = os.environ if env is None else env
        defaults = defaults or {}

        resolved_url = url or env.get(ENV_VAR_URL) or defaults.get('url') or DEFAULT_BASE_URL
        resolved_timeout = timeout_ms or defaults.get('timeout_ms') or DEFAULT_TIMEOUT_MS

        resolved_token = ""
        token_source = "none"
        if token:
            resolved_token, token_source = token, "flag"
        elif env.get(ENV_VAR_TOKEN):
            resolved_token, token_source = env[ENV_VAR_TOKEN], "env"
        elif defaults.get('token'):
            resolved_token, token_source = defaults['token'], "config"
        else:
            file_token = _read_token_file(token_file or DEFAULT_TOKEN_FILE)
            if file_token:
                resolved_token, token_source = file_token, "file"

        settings = cls(
            url=resolved_url,
            token=resolved_token,
            token_source=token_source,
            timeout_ms=resolved_timeout,
        )
        if not settings.token and settings.is_local:
            settings.token_source = "localhost_no_token"
        return settings


def _read_token_file(path: Path) -> Optional[str]:
    try:
        token = Path(path).read_text(encoding='utf-8').strip()
    except OSError:
        return None
    return token or None


class DiscoveryConfig(BaseModel):
    """Root configuration file model."""

    environment: str = Field(default="production", description="Environment name")
    connection: Dict[str, Any] = Field(default_factory=dict, description="Connection settings")
    discovery: Dict[str, Any] = Field(default_factory=dict, description="Discovery option defaults")
    environments: Dict[str, Dict[str, Any]] = Field(
        default_factory=dict,
        description="Environment-specific overrides"
    )

    @field_validator('environment')
    @classmethod
    def validate_environment(cls, v):
        valid_environments = {'production', 'staging', 'development', 'test'}
        if v not in valid_environments:
            raise ValueError(f"Environment must be one of: {valid_environments}")
        return v

    def _section(self, name: str) -> Dict[str, Any]:
        section = dict(getattr(self, name))
        env_config = self.environments.get(self.environment, {})
        if name in env_config:
            section.update(env_config[name])
        return section

    def get_discovery_options(self, **overrides) -> DiscoveryOptions:
        """Discovery options with environment overrides and explicit overrides applied."""
        values = self._section('discovery')
        values.update({key: value for key, value in overrides.items() if value is not None})
        return DiscoveryOptions(**values)

    def get_connection_defaults(self) -> Dict[str, Any]:
        return self._section('connection')


class DiscoveryConfigManager:
    """Manager for discovery configuration loading and caching."""

    def __init__(self, config_path: Optional[Union[str, Path]] = None):
        """Initialize configuration manager.

        Args:
            config_path: Path to config YAML file. Defaults to config/discovery.yaml
        """
        if config_path is None:
            project_root = Path(__file__).parent.parent.parent
            config_path = project_root / "config" / "discovery.yaml"

        self.config_path = Path(config_path)
        self._config: Optional[DiscoveryConfig] = None
        self._loaded_env = None

    def load_config(self, force_reload: bool = False) -> DiscoveryConfig:
        """Load configuration from the YAML file.

        A missing file yields the defaults.

        Raises:
            ConfigurationError: If YAML is invalid or validation fails
        """
        current_env = os.environ.get(ENV_VAR_ENVIRONMENT, 'production')

        if self._config is not None and not force_reload and current_env == self._loaded_env:
            return self._config

        config_data: Dict[str, Any] = {}
        if self.config_path.exists():
            try:
                with open(self.config_path, 'r') as f:
                    config_data = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigurationError(f"Invalid YAML in {self.config_path}: {e}")

        if current_env != 'production':
            config_data['environment'] = current_env

        try:
            self._config = DiscoveryConfig(**config_data)
        except ValueError as e:
            raise ConfigurationError(f"Configuration validation failed: {e}")
        self._loaded_env = current_env
        return self._config

    @property
    def config(self) -> DiscoveryConfig:
        if self._config is None:
            return self.load_config()
        return self._config

    @property
    def environment(self) -> str:
        return self.config.environment

