"""Shared pytest fixtures for comfyrunner tests."""

import asyncio
import json
import os
import shutil
import tempfile
from pathlib import Path
from typing import Any, Generator

import httpx
import pytest

from comfyrunner.core.config import ComfyRunnerConfig
from comfyrunner.core.models import Endpoint
from comfyrunner.core.runner import JobRunner
from comfyrunner.plugins.base import RunObserver


class FakeComfyServer:
    """In-memory stand-in for a ComfyUI server behind ``httpx.MockTransport``.

    History responses are served in order; the last one repeats once the
    list is exhausted.  A response may be a plain mapping (served as JSON),
    an ``httpx.Response``, or an exception instance to raise.
    """

    def __init__(
        self,
        prompt_id: str = "abc",
        history: list[Any] | None = None,
        stats_response: Any = None,
        prompt_response: Any = None,
    ) -> None:
        self.prompt_id = prompt_id
        self.history = list(history or [{}])
        self.stats_response = stats_response
        self.prompt_response = (
            prompt_response
            if prompt_response is not None
            else {"prompt_id": prompt_id, "number": 1, "node_errors": {}}
        )
        self.requests: list[httpx.Request] = []
        self.submitted: list[dict] = []

    def _reply(self, request: httpx.Request, response: Any) -> httpx.Response:
        if isinstance(response, Exception):
            raise response
        if isinstance(response, httpx.Response):
            return response
        return httpx.Response(200, json=response)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if path.endswith("/system_stats"):
            if self.stats_response is None:
                return httpx.Response(200, json={"system": {"os": "posix"}, "devices": []})
            return self._reply(request, self.stats_response)

        if path.endswith("/prompt") and request.method == "POST":
            self.submitted.append(json.loads(request.content))
            return self._reply(request, self.prompt_response)

        if "/history/" in path:
            response = self.history.pop(0) if len(self.history) > 1 else self.history[0]
            return self._reply(request, response)

        return httpx.Response(404, json={"error": "not found"})

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    @property
    def paths(self) -> list[str]:
        return [r.url.path for r in self.requests]

    @property
    def history_polls(self) -> int:
        return sum(1 for p in self.paths if "/history/" in p)


class SleepRecorder:
    """Replacement for ``asyncio.sleep`` that records delays and yields once."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)
        await asyncio.sleep(0)


class RecordingObserver(RunObserver):
    """Observer that records every hook call as ``(hook, args)``."""

    name = "Recording"

    def __init__(self, **config: Any) -> None:
        super().__init__(**config)
        self.events: list[tuple[str, tuple]] = []

    def on_connection_check(self, endpoint):
        self.events.append(("on_connection_check", (endpoint,)))

    def on_job_queued(self, prompt_id):
        self.events.append(("on_job_queued", (prompt_id,)))

    def on_poll_attempt(self, prompt_id, attempt, max_attempts):
        self.events.append(("on_poll_attempt", (prompt_id, attempt, max_attempts)))

    def on_job_pending(self, prompt_id, reason):
        self.events.append(("on_job_pending", (prompt_id, reason)))

    def on_job_completed(self, prompt_id, outputs):
        self.events.append(("on_job_completed", (prompt_id, outputs)))

    def on_run_failed(self, error):
        self.events.append(("on_run_failed", (error,)))

    @property
    def hooks(self) -> list[str]:
        return [hook for hook, _ in self.events]


def completed_entry(outputs: Any = None, status_str: str = "success") -> dict:
    """Build a history record for a completed job."""
    entry: dict[str, Any] = {
        "prompt": [1, "abc", {}, {}, ["9"]],
        "status": {"status_str": status_str, "completed": True, "messages": []},
    }
    if outputs is not None:
        entry["outputs"] = outputs
    return entry


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files.

    Yields:
        Path to temporary directory

    Cleanup:
        Directory is removed after test completes
    """
    temp_path = Path(tempfile.mkdtemp())
    try:
        yield temp_path
    finally:
        shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def clean_env(monkeypatch) -> None:
    """Remove any COMFYRUNNER_* variables from the environment."""
    for key in list(os.environ):
        if key.upper().startswith("COMFYRUNNER_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture
def test_config(temp_dir: Path, clean_env) -> ComfyRunnerConfig:
    """Create a test configuration isolated from the environment.

    Args:
        temp_dir: Temporary directory from fixture

    Returns:
        ComfyRunnerConfig instance for testing
    """
    return ComfyRunnerConfig(
        _env_file=None,
        api_url="",
        api_key=None,
        timeout_minutes=30,
        initial_delay_seconds=5,
        poll_interval_seconds=1,
        outputs_dir=temp_dir / "outputs",
    )


@pytest.fixture
def endpoint() -> Endpoint:
    """Endpoint of the fake server."""
    return Endpoint(api_url="http://comfy.test:8188")


@pytest.fixture
def sleep_recorder() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def recording_observer() -> RecordingObserver:
    return RecordingObserver()


@pytest.fixture
def make_runner(test_config, sleep_recorder, recording_observer):
    """Factory building a JobRunner wired to a fake server.

    Returns:
        Callable taking a :class:`FakeComfyServer` and returning a runner
        that uses its transport, the sleep recorder and the recording
        observer.
    """

    def _make(server: FakeComfyServer) -> JobRunner:
        return JobRunner(
            test_config,
            observers=[recording_observer],
            transport=server.transport,
            sleep=sleep_recorder,
        )

    return _make
