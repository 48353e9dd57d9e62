"""Async HTTP client for the ComfyUI server API.

Only the three endpoints the polling protocol depends on are wrapped:

========  ==========================  =====================================
Method    Path                        Purpose
========  ==========================  =====================================
GET       ``/system_stats``           Reachability probe
POST      ``/prompt``                 Queue a workflow, returns ``prompt_id``
GET       ``/history/{prompt_id}``    Status and outputs of a queued job
========  ==========================  =====================================

Every HTTP-level problem (connection refused, request timeout, non-2xx
status, body that is not JSON) is raised as
:class:`~comfyrunner.core.errors.TransportError`.  Nothing is retried here.

The client is an async context manager owning one ``httpx.AsyncClient``::

    async with ComfyClient(endpoint) as client:
        await client.system_stats()
        prompt_id = await client.queue_prompt(workflow)
        history = await client.get_history(prompt_id)

Tests inject an ``httpx.MockTransport`` through ``transport``.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from comfyrunner.core.errors import TransportError
from comfyrunner.core.models import Endpoint

logger = logging.getLogger(__name__)


class ComfyClient:
    """Thin wrapper around ``httpx.AsyncClient`` for one ComfyUI endpoint.

    Attributes:
        endpoint (Endpoint): Server address and credential.
        request_timeout (float): Timeout in seconds for every request.
    """

    def __init__(
        self,
        endpoint: Endpoint,
        request_timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.endpoint = endpoint
        self.request_timeout = request_timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> ComfyClient:
        try:
            self._client = httpx.AsyncClient(
                base_url=self.endpoint.base_url,
                headers=self.endpoint.headers(),
                timeout=httpx.Timeout(self.request_timeout),
                transport=self._transport,
            )
        except httpx.InvalidURL as exc:
            raise TransportError(f"ComfyUI API Error: invalid API URL: {exc}") from exc
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        """Send one request and return the decoded JSON body.

        Raises:
            TransportError: On any ``httpx`` error or a non-JSON body.
        """
        if self._client is None:
            raise RuntimeError("ComfyClient must be used as an async context manager")

        try:
            response = await self._client.request(method, path, **kwargs)
            response.raise_for_status()
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise TransportError(f"ComfyUI API Error: {exc}") from exc

        try:
            return response.json()
        except ValueError as exc:
            raise TransportError(
                f"ComfyUI API Error: {method} {path} returned a non-JSON body"
            ) from exc

    async def system_stats(self) -> Any:
        """Query ``/system_stats``; used as the reachability probe."""
        return await self._request("GET", "/system_stats")

    async def queue_prompt(self, prompt: dict[str, Any]) -> str:
        """Submit a workflow and return its job identifier.

        Args:
            prompt: Parsed workflow, sent as ``{"prompt": prompt}``.

        Returns:
            The ``prompt_id`` assigned by the server.

        Raises:
            TransportError: If submission fails or no ``prompt_id`` came back.
        """
        data = await self._request("POST", "/prompt", json={"prompt": prompt})
        prompt_id = data.get("prompt_id") if isinstance(data, dict) else None
        if not prompt_id:
            raise TransportError("Failed to get prompt ID from ComfyUI: no job identifier returned")
        return str(prompt_id)

    async def get_history(self, prompt_id: str) -> dict[str, Any]:
        """Fetch the history record for ``prompt_id``.

        Returns:
            The decoded mapping, keyed by prompt id.  Anything other than a
            JSON object is returned as an empty mapping, which the runner
            treats as "not recorded yet".
        """
        data = await self._request("GET", f"/history/{prompt_id}")
        if not isinstance(data, dict):
            logger.debug(f"Unexpected history payload for {prompt_id}: {type(data).__name__}")
            return {}
        return data
