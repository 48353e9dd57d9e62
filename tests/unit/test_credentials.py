"""Tests for comfyrunner.core.credentials — the credential fallback chain.

Tests cover:
- Explicit parameters winning over secret sources.
- Fallback through sources in order, and stored keys staying with stored addresses.
- Failing sources being tolerated.
- snake_case and camelCase secret keys.
- Built-in settings and file sources.
"""

from __future__ import annotations

import json

import pytest

from comfyrunner.core.config import ComfyRunnerConfig
from comfyrunner.core.credentials import (
    default_sources,
    file_source,
    mapping_source,
    resolve_endpoint,
    settings_source,
)
from comfyrunner.core.errors import ValidationError


def _failing_source():
    raise RuntimeError("no credential configured")


class TestResolveEndpoint:
    """Test resolve_endpoint() precedence rules."""

    def test_explicit_parameters_win(self):
        endpoint = resolve_endpoint(
            "http://explicit:8188",
            "explicit-key",
            [mapping_source({"apiUrl": "http://cred:8188", "apiKey": "cred-key"})],
        )
        assert endpoint.api_url == "http://explicit:8188"
        assert endpoint.api_key == "explicit-key"

    def test_empty_explicit_falls_back(self):
        endpoint = resolve_endpoint(
            "  ",
            "",
            [mapping_source({"apiUrl": "http://cred:8188", "apiKey": "cred-key"})],
        )
        assert endpoint.api_url == "http://cred:8188"
        assert endpoint.api_key == "cred-key"

    def test_explicit_url_never_takes_source_key(self):
        """A stored key is not sent to an address the caller chose."""
        endpoint = resolve_endpoint(
            "http://explicit:8188",
            None,
            [mapping_source({"api_url": "http://cred:8188", "api_key": "cred-key"})],
        )
        assert endpoint.api_url == "http://explicit:8188"
        assert endpoint.api_key is None

    def test_explicit_key_with_source_url(self):
        endpoint = resolve_endpoint(
            None,
            "explicit-key",
            [mapping_source({"api_url": "http://cred:8188", "api_key": "cred-key"})],
        )
        assert endpoint.api_url == "http://cred:8188"
        assert endpoint.api_key == "explicit-key"

    def test_non_mapping_source_is_ignored(self):
        endpoint = resolve_endpoint(
            sources=[
                mapping_source(object()),
                mapping_source(["http://list:8188"]),
                mapping_source({"apiUrl": "http://cred:8188"}),
            ]
        )
        assert endpoint.api_url == "http://cred:8188"

    def test_first_non_empty_source_wins(self):
        endpoint = resolve_endpoint(
            sources=[
                mapping_source({"apiUrl": ""}),
                mapping_source(None),
                mapping_source({"apiUrl": "http://second:8188"}),
                mapping_source({"apiUrl": "http://third:8188"}),
            ]
        )
        assert endpoint.api_url == "http://second:8188"
        assert endpoint.api_key is None

    def test_failing_source_is_tolerated(self):
        endpoint = resolve_endpoint(
            sources=[_failing_source, mapping_source({"apiUrl": "http://cred:8188"})]
        )
        assert endpoint.api_url == "http://cred:8188"

    def test_values_are_trimmed(self):
        endpoint = resolve_endpoint(" http://explicit:8188 ", " key ")
        assert endpoint.api_url == "http://explicit:8188"
        assert endpoint.api_key == "key"

    @pytest.mark.parametrize("url", [None, "", "   "])
    def test_missing_address_raises(self, url):
        with pytest.raises(ValidationError, match="API URL is required"):
            resolve_endpoint(url, "key", [_failing_source])


class TestBuiltinSources:
    """Test the settings, file and default sources."""

    def test_settings_source(self, clean_env):
        settings = ComfyRunnerConfig(_env_file=None, api_url="http://env:8188", api_key="env-key")
        endpoint = resolve_endpoint(sources=[settings_source(settings)])

        assert endpoint.api_url == "http://env:8188"
        assert endpoint.api_key == "env-key"

    def test_file_source(self, temp_dir):
        path = temp_dir / "comfy.json"
        path.write_text(json.dumps({"apiUrl": "http://file:8188", "apiKey": "file-key"}))

        assert file_source(path)() == {"apiUrl": "http://file:8188", "apiKey": "file-key"}

    def test_missing_file_is_tolerated(self, temp_dir):
        endpoint = resolve_endpoint(
            sources=[file_source(temp_dir / "missing.json"), mapping_source({"apiUrl": "http://x:1"})]
        )
        assert endpoint.api_url == "http://x:1"

    def test_file_with_non_object_raises(self, temp_dir):
        path = temp_dir / "comfy.json"
        path.write_text("[]")

        with pytest.raises(ValueError):
            file_source(path)()

    def test_default_sources_prefer_file_over_settings(self, temp_dir, clean_env):
        path = temp_dir / "comfy.json"
        path.write_text(json.dumps({"apiUrl": "http://file:8188"}))
        settings = ComfyRunnerConfig(
            _env_file=None,
            api_url="http://env:8188",
            api_key="env-key",
            credentials_file=path,
        )

        endpoint = resolve_endpoint(sources=default_sources(settings))

        assert endpoint.api_url == "http://file:8188"
        assert endpoint.api_key == "env-key"

    def test_default_sources_without_file(self, test_config):
        assert len(default_sources(test_config)) == 1
