"""Job runner: submit a ComfyUI workflow and poll until it completes.

This module provides :class:`JobRunner`, which drives one job through the
server's queue with a single sequential polling loop.

Run Protocol
------------
1. **Validate**: the endpoint must carry a non-empty address and the
   timeout must be positive and finite.  Nothing touches the network before this.
2. **Reachability check**: ``GET /system_stats``.  Any failure aborts the
   run with :class:`TransportError`; the job is never submitted.
3. **Submit**: the workflow text is parsed as a JSON object and queued with
   ``POST /prompt``.  The response must carry a ``prompt_id``.
4. **Grace period**: wait ``initial_delay_seconds`` so the server has
   registered the job before its history is queried.
5. **Poll**: up to ``max_attempts`` times (one per second of the timeout
   budget): wait ``poll_interval_seconds``, then ``GET /history/{id}``.

   - job missing from history, or its status not recorded yet: pending
   - ``completed`` and ``status_str == "error"``: :class:`ExecutionError`
   - ``completed`` without ``outputs``: :class:`ExecutionError`
   - ``completed`` with ``outputs``: return them unchanged

6. **Timeout**: budget exhausted: :class:`JobTimeoutError`.

Transport errors while polling are fatal as well; nothing is retried.

Waiting
-------
Runs are coroutines.  Every wait goes through the ``sleep`` coroutine given
to the runner (``asyncio.sleep`` by default), so the event loop is free
between polls and tests can substitute an instant sleep.  The runner keeps
no per-run state on the instance, so one runner can drive any number of
concurrent runs.

Usage
-----
::

    import asyncio

    from comfyrunner.core.models import Endpoint
    from comfyrunner.core.runner import JobRunner

    runner = JobRunner()
    outputs = asyncio.run(
        runner.run(Endpoint(api_url="http://127.0.0.1:8188"), workflow_json, timeout_minutes=5)
    )
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import Any

import httpx
from pydantic import ValidationError as PydanticValidationError

from comfyrunner.core.client import ComfyClient
from comfyrunner.core.config import ComfyRunnerConfig, config as default_config
from comfyrunner.core.errors import (
    ExecutionError,
    JobTimeoutError,
    TransportError,
    ValidationError,
)
from comfyrunner.core.models import Endpoint, HistoryEntry, JobResult, RunConfig
from comfyrunner.plugins.base import LoggingObserver, RunObserver

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[Any]]


def parse_workflow(workflow: str | dict[str, Any]) -> dict[str, Any]:
    """Parse workflow text into the object sent as ``prompt``.

    Args:
        workflow: JSON text, or an already-parsed mapping.

    Returns:
        The workflow as a dictionary.

    Raises:
        ValidationError: If the text is not JSON or not a JSON object.
    """
    if isinstance(workflow, dict):
        return workflow
    try:
        parsed = json.loads(workflow)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"Malformed workflow JSON: {exc}") from exc
    if not isinstance(parsed, dict):
        raise ValidationError(
            f"Malformed workflow JSON: expected an object, got {type(parsed).__name__}"
        )
    return parsed


class JobRunner:
    """Runs ComfyUI jobs through the submit-and-poll protocol.

    Attributes:
        config (ComfyRunnerConfig):
            Source of the default timeout, delays and request timeout.
        observers (list[RunObserver]):
            Notified at each phase of every run.
    """

    def __init__(
        self,
        config: ComfyRunnerConfig | None = None,
        observers: Sequence[RunObserver] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        """Initialise the runner.

        Args:
            config: Configuration object.  If None, uses the global config.
            observers: Run observers.  If None, a :class:`LoggingObserver`.
            transport: Optional ``httpx`` transport handed to every client.
            sleep: Coroutine used for every wait.
        """
        self.config = config or default_config
        self.observers: list[RunObserver] = (
            list(observers) if observers is not None else [LoggingObserver()]
        )
        self._transport = transport
        self._sleep = sleep

    def _notify(self, hook: str, *args: Any) -> None:
        for observer in self.observers:
            getattr(observer, hook)(*args)

    def _run_config(self, timeout_minutes: float | None) -> RunConfig:
        if timeout_minutes is None:
            timeout_minutes = self.config.timeout_minutes
        try:
            return RunConfig(
                timeout_minutes=timeout_minutes,
                initial_delay_seconds=self.config.initial_delay_seconds,
                poll_interval_seconds=self.config.poll_interval_seconds,
            )
        except PydanticValidationError as exc:
            raise ValidationError(
                f"Invalid timeout {timeout_minutes!r}: must be a positive, finite number"
            ) from exc

    async def run(
        self,
        endpoint: Endpoint,
        workflow: str | dict[str, Any],
        timeout_minutes: float | None = None,
    ) -> dict[str, Any]:
        """Run a workflow and return its outputs mapping.

        Args:
            endpoint: Server address and credential.
            workflow: Workflow JSON text (or a parsed mapping).
            timeout_minutes: Time budget.  If None, ``config.timeout_minutes``.

        Returns:
            Output slot name to result data, as reported by the server.

        Raises:
            ValidationError: Missing address, malformed workflow, bad timeout.
            TransportError: Server unreachable, submission failed, or a
                status query failed.
            ExecutionError: The job failed or completed without outputs.
            JobTimeoutError: The job did not finish within the budget.
        """
        result = await self.execute(endpoint, workflow, timeout_minutes)
        return result.outputs

    async def execute(
        self,
        endpoint: Endpoint,
        workflow: str | dict[str, Any],
        timeout_minutes: float | None = None,
    ) -> JobResult:
        """Run a workflow and return a :class:`JobResult`.

        Same protocol and errors as :meth:`run`.
        """
        try:
            if not endpoint.is_configured:
                raise ValidationError("API URL is required")
            run_config = self._run_config(timeout_minutes)

            async with ComfyClient(
                endpoint,
                request_timeout=self.config.request_timeout_seconds,
                transport=self._transport,
            ) as client:
                self._notify("on_connection_check", endpoint)
                await client.system_stats()

                prompt = parse_workflow(workflow)
                logger.debug(f"Submitting workflow with {len(prompt)} nodes")
                prompt_id = await client.queue_prompt(prompt)
                self._notify("on_job_queued", prompt_id)

                return await self._poll(client, prompt_id, run_config)
        except Exception as error:
            self._notify("on_run_failed", error)
            raise

    async def _poll(self, client: ComfyClient, prompt_id: str, run_config: RunConfig) -> JobResult:
        """Poll the history of ``prompt_id`` until a terminal state."""
        max_attempts = run_config.max_attempts
        await self._sleep(run_config.initial_delay_seconds)

        for attempt in range(1, max_attempts + 1):
            self._notify("on_poll_attempt", prompt_id, attempt, max_attempts)
            await self._sleep(run_config.poll_interval_seconds)

            history = await client.get_history(prompt_id)
            raw_entry = history.get(prompt_id)
            if not raw_entry:
                self._notify("on_job_pending", prompt_id, "Prompt not found in history")
                continue

            try:
                entry = HistoryEntry.model_validate(raw_entry)
            except PydanticValidationError as exc:
                raise TransportError(f"Unexpected history record for {prompt_id}: {exc}") from exc

            if entry.status is None:
                self._notify("on_job_pending", prompt_id, "Execution status not found")
                continue
            if not entry.status.completed:
                self._notify("on_job_pending", prompt_id, "Execution still running")
                continue

            if entry.status.outcome == "error":
                raise ExecutionError("[ComfyUI] Workflow execution failed")
            if entry.outputs is None:
                raise ExecutionError("[ComfyUI] No outputs found in workflow result")

            self._notify("on_job_completed", prompt_id, entry.outputs)
            return JobResult(prompt_id=prompt_id, outputs=entry.outputs, attempts=attempt)

        raise JobTimeoutError(run_config.timeout_minutes)
