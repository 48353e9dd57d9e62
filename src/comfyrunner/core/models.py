"""Pydantic data models for ComfyUI job runs.

Models
------
Endpoint
    Base URL of the ComfyUI instance plus an optional bearer token.  Frozen,
    so one run always talks to the same server with the same credential.
RunConfig
    Time budget of a run and the delays of the polling protocol.
JobStatus
    The ``status`` record of a history entry.
HistoryEntry
    One job's record inside a ``GET /history/{prompt_id}`` response.
JobResult
    Outcome of a successful run.
"""

from __future__ import annotations

import math
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class Endpoint(BaseModel):
    """Address and credential of a ComfyUI instance.

    Attributes:
        api_url: Base URL of the instance, e.g. ``http://127.0.0.1:8188``.
        api_key: Optional bearer token.  ``None`` or empty means no
            ``Authorization`` header is sent.
    """

    model_config = ConfigDict(frozen=True)

    api_url: str = Field(..., description="Base URL of the ComfyUI instance.")
    api_key: str | None = Field(default=None, description="Optional bearer token.")

    @property
    def base_url(self) -> str:
        """The trimmed URL without a trailing slash."""
        return self.api_url.strip().rstrip("/")

    @property
    def is_configured(self) -> bool:
        return bool(self.base_url)

    def headers(self) -> dict[str, str]:
        """Return the request headers for this endpoint."""
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers


class RunConfig(BaseModel):
    """Time budget and delays of one run.

    Attributes:
        timeout_minutes: How long to wait for the job to complete.
        initial_delay_seconds: Grace period before the first status poll, so
            the server has registered the job before it is queried.
        poll_interval_seconds: Wait before every status poll.
    """

    timeout_minutes: float = Field(default=30, gt=0, allow_inf_nan=False)
    initial_delay_seconds: float = Field(default=5.0, ge=0, allow_inf_nan=False)
    poll_interval_seconds: float = Field(default=1.0, ge=0, allow_inf_nan=False)

    @property
    def max_attempts(self) -> int:
        """Number of status polls allowed: one per second of budget."""
        return math.ceil(round(60 * self.timeout_minutes, 6))


class JobStatus(BaseModel):
    """Status record of a job in the server's history."""

    model_config = ConfigDict(extra="ignore")

    completed: bool = False
    status_str: str | None = None

    @property
    def outcome(self) -> Literal["ok", "error"]:
        return "error" if self.status_str == "error" else "ok"


class HistoryEntry(BaseModel):
    """A job's record in a ``/history`` response.

    ``status`` is ``None`` while the server has not recorded one yet, and
    ``outputs`` is ``None`` until the job has produced any.
    """

    model_config = ConfigDict(extra="ignore")

    status: JobStatus | None = None
    outputs: dict[str, Any] | None = None


class JobResult(BaseModel):
    """Result of a completed run.

    Attributes:
        prompt_id: Identifier the server assigned to the job.
        outputs: Output slot name to result data, exactly as reported.
        attempts: Number of status polls it took to observe completion.
    """

    prompt_id: str
    outputs: dict[str, Any]
    attempts: int
