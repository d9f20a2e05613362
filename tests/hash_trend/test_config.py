"""Tests for session configuration loading."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from hash_trend.config import API_KEY_ENV_VAR, SessionConfig
from hash_trend.sampling import DEFAULT_RULES, SamplingRule
from hash_trend.store import DEFAULT_CAPACITY
from hash_trend.sync import BACKFILL_COUNT, POLL_INTERVAL
from hash_trend.tron import DEFAULT_API_URL


class TestSessionConfigDefaults:
    """Tests for built-in defaults."""

    def test_defaults(self) -> None:
        """An empty config uses the engine defaults."""
        config = SessionConfig()

        assert config.api_key == ""
        assert config.api_url == DEFAULT_API_URL
        assert config.poll_interval == POLL_INTERVAL
        assert config.capacity == DEFAULT_CAPACITY
        assert config.backfill_count == BACKFILL_COUNT
        assert config.rules == list(DEFAULT_RULES)
        assert config.active_rule is None


class TestSessionConfigYaml:
    """Tests for YAML loading."""

    def test_from_yaml(self) -> None:
        """Snake-case keys and nested rules are accepted."""
        config = SessionConfig.from_yaml(
            """
            api_key: abc
            poll_interval: 5
            capacity: 500
            rules:
            - id: "20"
              label: 20 blocks
              stride: 20
            - id: anchored
              stride: 20
              anchor_height: 105
            active_rule: anchored
            """
        )

        assert config.api_key == "abc"
        assert config.poll_interval == 5.0
        assert config.capacity == 500
        assert config.rules[1] == SamplingRule(id="anchored", stride=20, anchor_height=105)
        assert config.active_rule == "anchored"

    def test_unquoted_numeric_ids(self) -> None:
        """Rule ids written as bare YAML numbers are read as text."""
        config = SessionConfig.from_yaml(
            """
            rules:
            - id: 20
              stride: 20
            active_rule: 20
            """
        )

        assert config.rules == [SamplingRule(id="20", stride=20)]
        assert config.active_rule == "20"

    def test_camel_case_keys(self) -> None:
        """camelCase keys are accepted too."""
        config = SessionConfig.from_yaml("pollInterval: 2\nbackfillCount: 10\n")

        assert config.poll_interval == 2.0
        assert config.backfill_count == 10

    def test_empty_document(self) -> None:
        """An empty file means defaults."""
        assert SessionConfig.from_yaml("") == SessionConfig()

    def test_from_yaml_file(self, tmp_path: Path) -> None:
        """Files are read as UTF-8 YAML."""
        path = tmp_path / "hash-trend.yaml"
        path.write_text("api_url: https://tron.test\n", encoding="utf-8")

        assert SessionConfig.from_yaml_file(path).api_url == "https://tron.test"

    def test_missing_file(self, tmp_path: Path) -> None:
        """A missing file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            SessionConfig.from_yaml_file(tmp_path / "missing.yaml")

    @pytest.mark.parametrize(
        "content",
        [
            "capacity: 0\n",
            "poll_interval: 0\n",
            "unknown_key: 1\n",
            "rules: []\n",
            "rules:\n- {id: a, stride: 0}\n",
            "rules:\n- {id: a, stride: 2}\n- {id: a, stride: 3}\n",
            "active_rule: missing\n",
        ],
    )
    def test_invalid_config(self, content: str) -> None:
        """Invalid values are rejected at load time."""
        with pytest.raises(ValidationError):
            SessionConfig.from_yaml(content)


class TestSessionConfigOverrides:
    """Tests for flags and environment."""

    def test_overrides_skip_none(self) -> None:
        """Only provided overrides are applied."""
        config = SessionConfig(api_key="file-key").with_overrides(api_key=None, api_url="https://x")

        assert config.api_key == "file-key"
        assert config.api_url == "https://x"

    def test_env_fills_missing_credential(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """The environment supplies a key only when none is configured."""
        monkeypatch.setenv(API_KEY_ENV_VAR, " env-key ")

        assert SessionConfig().with_env_credential().api_key == "env-key"
        assert SessionConfig(api_key="file-key").with_env_credential().api_key == "file-key"

    def test_env_unset(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Without the variable the key stays empty."""
        monkeypatch.delenv(API_KEY_ENV_VAR, raising=False)

        assert SessionConfig().with_env_credential().api_key == ""
