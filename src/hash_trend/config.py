"""
Session configuration.

A session is configured from, in increasing priority: built-in defaults, a
YAML file, the environment, and command-line flags.

The expected YAML format::

    api_key: 0f1e2d3c-...
    api_url: https://api.trongrid.io
    poll_interval: 3
    capacity: 2000
    backfill_count: 30
    min_visible: 15
    rules:
    - id: "20"
      label: 20 blocks
      stride: 20
    - id: anchored
      label: every 20 from 105
      stride: 20
      anchor_height: 105

Keys may also be written in camelCase (`pollInterval`, `anchorHeight`).
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import Field, field_validator, model_validator

from hash_trend.sampling import DEFAULT_RULES, SamplingRule, parse_rule
from hash_trend.store import DEFAULT_CAPACITY
from hash_trend.sync.config import (
    BACKFILL_COUNT,
    MAX_CONCURRENT_FETCHES,
    MAX_GAP_RETRIES,
    MIN_VISIBLE_BLOCKS,
    POLL_INTERVAL,
    REQUEST_TIMEOUT,
)
from hash_trend.tron import DEFAULT_API_URL
from hash_trend.types import CamelModel

API_KEY_ENV_VAR = "TRON_API_KEY"
"""Environment variable consulted when no credential is configured."""


class SessionConfig(CamelModel):
    """Everything a sync session needs to know before it starts."""

    model_config = CamelModel.model_config | {"extra": "forbid", "frozen": True}

    api_key: str = ""
    """TronGrid credential. Empty means the session stays idle."""

    api_url: str = DEFAULT_API_URL
    """TronGrid API root."""

    poll_interval: float = Field(default=POLL_INTERVAL, gt=0)
    """Seconds between live poll ticks."""

    capacity: int = Field(default=DEFAULT_CAPACITY, ge=1)
    """Maximum blocks held by the store."""

    backfill_count: int = Field(default=BACKFILL_COUNT, ge=1)
    """Aligned heights requested per backfill."""

    min_visible: int = Field(default=MIN_VISIBLE_BLOCKS, ge=0)
    """Sampled view size below which a backfill is triggered."""

    request_timeout: float = Field(default=REQUEST_TIMEOUT, gt=0)
    """Per-request timeout in seconds."""

    max_concurrent_fetches: int = Field(default=MAX_CONCURRENT_FETCHES, ge=1)
    """Upper bound on block fetches in flight per batch."""

    max_gap_retries: int = Field(default=MAX_GAP_RETRIES, ge=0)
    """Retries per failed gap height."""

    rules: list[SamplingRule] = Field(default_factory=lambda: list(DEFAULT_RULES))
    """Initial sampling rules, first one active unless `active_rule` says otherwise."""

    active_rule: str | None = None
    """Id of the rule to activate at start."""

    @field_validator("rules", mode="before")
    @classmethod
    def parse_rules(cls, value: Any) -> Any:
        """Validate raw rule mappings (YAML, JSON) into rules."""
        if not isinstance(value, list):
            return value
        return [parse_rule(item) if isinstance(item, Mapping) else item for item in value]

    @field_validator("active_rule", mode="before")
    @classmethod
    def rule_id_text(cls, value: Any) -> Any:
        """Read an unquoted numeric YAML id as its decimal text."""
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value

    @model_validator(mode="after")
    def validate_rules(self) -> SessionConfig:
        """Require at least one rule, unique ids, and a known active rule."""
        if not self.rules:
            raise ValueError("At least one sampling rule is required")

        ids = [rule.id for rule in self.rules]
        if len(ids) != len(set(ids)):
            raise ValueError(f"Duplicate sampling rule ids: {ids}")

        if self.active_rule is not None and self.active_rule not in ids:
            raise ValueError(f"Active rule {self.active_rule!r} is not defined")
        return self

    def with_overrides(self, **overrides: Any) -> SessionConfig:
        """
        Return a copy with every non-None override applied.

        SessionConfig is frozen, so overrides (command-line flags, the
        environment) produce a new instance. The result is validated again,
        so an override naming an undefined rule is rejected.

        Raises:
            pydantic.ValidationError: If the overridden config is invalid.
        """
        updates = {key: value for key, value in overrides.items() if value is not None}
        if not updates:
            return self
        return self.model_validate(self.model_dump() | updates)

    def with_env_credential(self) -> SessionConfig:
        """Fill an empty credential from the environment."""
        if self.api_key:
            return self
        return self.with_overrides(api_key=os.environ.get(API_KEY_ENV_VAR, "").strip() or None)

    @classmethod
    def from_yaml_file(cls, path: Path | str) -> SessionConfig:
        """
        Load configuration from a YAML file.

        Raises:
            FileNotFoundError: If the file does not exist.
            yaml.YAMLError: If the file is not valid YAML.
            pydantic.ValidationError: If the data fails validation.
        """
        path = Path(path)
        with path.open(encoding="utf-8") as f:
            data = yaml.safe_load(f)
        return cls.model_validate(data or {})

    @classmethod
    def from_yaml(cls, content: str) -> SessionConfig:
        """
        Load configuration from a YAML string.

        Useful for testing or programmatic config generation.
        """
        data = yaml.safe_load(content)
        return cls.model_validate(data or {})
