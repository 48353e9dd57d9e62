"""Tests for comfyrunner.core.config — configuration management.

Tests cover:
- Default values for all configuration fields.
- Environment variable overrides via the COMFYRUNNER_ prefix.
- Pydantic validation constraints (timeouts, port range).
"""

from __future__ import annotations

from pathlib import Path

import pytest

from comfyrunner.core.config import ComfyRunnerConfig


class TestConfigDefaults:
    """Verify that ComfyRunnerConfig provides sensible defaults."""

    def test_default_server_settings(self, clean_env):
        cfg = ComfyRunnerConfig(_env_file=None)
        assert cfg.api_url == ""
        assert cfg.api_key is None
        assert cfg.credentials_file is None

    def test_default_polling_settings(self, clean_env):
        """30 minute budget, 5 s grace period, 1 s between polls."""
        cfg = ComfyRunnerConfig(_env_file=None)
        assert cfg.timeout_minutes == 30
        assert cfg.initial_delay_seconds == 5.0
        assert cfg.poll_interval_seconds == 1.0
        assert cfg.request_timeout_seconds == 30.0

    def test_default_outputs(self, clean_env):
        cfg = ComfyRunnerConfig(_env_file=None)
        assert cfg.save_outputs is False
        assert cfg.outputs_dir == Path("outputs")

    def test_default_server_port(self, clean_env):
        """Default server port should be 7860."""
        cfg = ComfyRunnerConfig(_env_file=None)
        assert cfg.server_host == "0.0.0.0"
        assert cfg.server_port == 7860


class TestConfigEnvironment:
    """Verify environment variable overrides."""

    def test_env_overrides(self, monkeypatch, clean_env):
        monkeypatch.setenv("COMFYRUNNER_API_URL", "http://gpu-box:8188")
        monkeypatch.setenv("COMFYRUNNER_API_KEY", "secret")
        monkeypatch.setenv("COMFYRUNNER_TIMEOUT_MINUTES", "5")
        monkeypatch.setenv("COMFYRUNNER_SAVE_OUTPUTS", "true")

        cfg = ComfyRunnerConfig(_env_file=None)

        assert cfg.api_url == "http://gpu-box:8188"
        assert cfg.api_key == "secret"
        assert cfg.timeout_minutes == 5
        assert cfg.save_outputs is True

    def test_env_is_case_insensitive(self, monkeypatch, clean_env):
        monkeypatch.setenv("comfyrunner_api_url", "http://lower:8188")
        cfg = ComfyRunnerConfig(_env_file=None)
        assert cfg.api_url == "http://lower:8188"

    def test_env_file(self, temp_dir, clean_env):
        env_file = temp_dir / ".env"
        env_file.write_text("COMFYRUNNER_API_URL=http://dotenv:8188\nCOMFYRUNNER_POLL_INTERVAL_SECONDS=2\n")

        cfg = ComfyRunnerConfig(_env_file=env_file)

        assert cfg.api_url == "http://dotenv:8188"
        assert cfg.poll_interval_seconds == 2


class TestConfigValidation:
    """Verify Pydantic validation constraints on config fields."""

    @pytest.mark.parametrize("minutes", [0, -1, float("inf")])
    def test_invalid_timeout(self, minutes, clean_env):
        with pytest.raises(Exception):
            ComfyRunnerConfig(_env_file=None, timeout_minutes=minutes)

    def test_negative_delay(self, clean_env):
        with pytest.raises(Exception):
            ComfyRunnerConfig(_env_file=None, initial_delay_seconds=-1)

    def test_invalid_port_too_low(self, clean_env):
        """Server port below 1024 should raise a validation error."""
        with pytest.raises(Exception):
            ComfyRunnerConfig(_env_file=None, server_port=80)

    def test_invalid_port_too_high(self, clean_env):
        """Server port above 65535 should raise a validation error."""
        with pytest.raises(Exception):
            ComfyRunnerConfig(_env_file=None, server_port=70000)

    def test_paths_are_path_objects(self, test_config: ComfyRunnerConfig):
        assert isinstance(test_config.outputs_dir, Path)
