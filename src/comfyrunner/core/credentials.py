"""Credential fallback chain for resolving the ComfyUI endpoint.

The server address and bearer token of a run can come from several places.
They are resolved with a simple precedence rule:

1. the explicit parameter, if it is non-empty after trimming;
2. each secret source, in the order given.

The first non-empty value wins.  An explicit address is the exception: it
pins the token to the explicit parameter as well, so a token held by a
secret source only ever goes to an address that also came from the secret
sources.

A secret source is any zero-argument callable returning a mapping of
secrets (or ``None`` when it has nothing to offer).  Sources are optional
by nature, so a source that raises or returns anything but a mapping is
treated exactly like a source returning ``None``.

Secret keys are accepted both in snake_case (``api_url``, ``api_key``) and
in the camelCase the automation host uses for its credential records
(``apiUrl``, ``apiKey``).

Usage
-----
::

    from comfyrunner.core.config import config
    from comfyrunner.core.credentials import file_source, resolve_endpoint, settings_source

    endpoint = resolve_endpoint(
        api_url=request_url,
        sources=[file_source("secrets/comfy.json"), settings_source(config)],
    )
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Iterable, Mapping
from pathlib import Path
from typing import Any

from comfyrunner.core.config import ComfyRunnerConfig
from comfyrunner.core.errors import ValidationError
from comfyrunner.core.models import Endpoint

logger = logging.getLogger(__name__)

SecretSource = Callable[[], Mapping[str, Any] | None]

# Field name -> keys looked up in a secret mapping, in order.
_SECRET_KEYS: dict[str, tuple[str, ...]] = {
    "api_url": ("api_url", "apiUrl"),
    "api_key": ("api_key", "apiKey"),
}

MISSING_URL_MESSAGE = (
    'API URL is required. Set it in parameter "API URL" or configure the ComfyUI credential.'
)


def _clean(value: Any) -> str | None:
    """Return ``value`` as a stripped string, or ``None`` when empty."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _lookup(secrets: Mapping[str, Any], field: str) -> str | None:
    for key in _SECRET_KEYS[field]:
        value = _clean(secrets.get(key))
        if value:
            return value
    return None


def _load_secrets(sources: Iterable[SecretSource]) -> list[Mapping[str, Any]]:
    """Call every source once and keep the mappings that came back."""
    loaded: list[Mapping[str, Any]] = []
    for source in sources:
        try:
            secrets = source()
        except Exception as e:
            logger.debug(f"Credential source {source!r} unavailable: {e}")
            continue
        if not secrets:
            continue
        if not isinstance(secrets, Mapping):
            logger.debug(f"Credential source {source!r} returned {type(secrets).__name__}, ignoring")
            continue
        loaded.append(secrets)
    return loaded


def resolve_value(explicit: str | None, field: str, secrets: Iterable[Mapping[str, Any]]) -> str | None:
    """Resolve one field: explicit value first, then each secret mapping.

    Args:
        explicit: Value passed directly by the caller.
        field: ``"api_url"`` or ``"api_key"``.
        secrets: Secret mappings in precedence order.

    Returns:
        The first non-empty value, or ``None``.
    """
    value = _clean(explicit)
    if value:
        return value
    for mapping in secrets:
        value = _lookup(mapping, field)
        if value:
            return value
    return None


def resolve_endpoint(
    api_url: str | None = None,
    api_key: str | None = None,
    sources: Iterable[SecretSource] = (),
) -> Endpoint:
    """Build the run's :class:`Endpoint` from parameters and secret sources.

    Args:
        api_url: Explicit server address.  Wins when non-empty, and then
            the token is taken from ``api_key`` alone.
        api_key: Explicit bearer token.  Wins when non-empty.
        sources: Secret sources tried in order for whichever field is
            still unresolved.  Not consulted when ``api_url`` is given.

    Returns:
        The resolved endpoint.

    Raises:
        ValidationError: If no server address could be resolved.
    """
    explicit_url = _clean(api_url)
    if explicit_url:
        # Configured tokens are never sent to a caller-chosen address.
        return Endpoint(api_url=explicit_url, api_key=_clean(api_key))

    secrets = _load_secrets(sources)
    resolved_url = resolve_value(None, "api_url", secrets)
    if not resolved_url:
        raise ValidationError(MISSING_URL_MESSAGE)
    resolved_key = resolve_value(api_key, "api_key", secrets)
    return Endpoint(api_url=resolved_url, api_key=resolved_key)


# ---------------------------------------------------------------------------
# Built-in secret sources.
# ---------------------------------------------------------------------------


def mapping_source(secrets: Mapping[str, Any] | None) -> SecretSource:
    """Wrap a fixed mapping (e.g. a host credential record) as a source."""

    def _source() -> Mapping[str, Any] | None:
        return secrets

    return _source


def settings_source(settings: ComfyRunnerConfig) -> SecretSource:
    """Expose ``COMFYRUNNER_API_URL`` / ``COMFYRUNNER_API_KEY`` as a source."""

    def _source() -> Mapping[str, Any]:
        return {"api_url": settings.api_url, "api_key": settings.api_key}

    return _source


def file_source(path: str | Path) -> SecretSource:
    """Read secrets from a JSON file holding a single object.

    The file is read on every resolution, so rotated secrets are picked up
    without a restart.  A missing or unreadable file makes the source
    unavailable.
    """
    secrets_path = Path(path)

    def _source() -> Mapping[str, Any]:
        with open(secrets_path, encoding="utf-8") as handle:
            data = json.load(handle)
        if not isinstance(data, dict):
            raise ValueError(f"{secrets_path} does not contain a JSON object")
        return data

    return _source


def default_sources(settings: ComfyRunnerConfig) -> list[SecretSource]:
    """The configured fallback chain: credentials file, then settings."""
    sources: list[SecretSource] = []
    if settings.credentials_file is not None:
        sources.append(file_source(settings.credentials_file))
    sources.append(settings_source(settings))
    return sources
