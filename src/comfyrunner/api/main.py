"""ComfyUI Job Runner — FastAPI Application.

This module defines the FastAPI ``app`` instance, the REST API routes, and
the ``main()`` CLI function that launches the uvicorn server.

Architecture
------------
- **Job execution** is performed by :class:`~comfyrunner.core.runner.JobRunner`,
  created once at startup and stored on ``app.state.runner``.  The runner
  keeps no per-run state, so concurrent requests each drive their own job.
- **Credentials** missing from a request are resolved through the
  configured fallback chain (credentials file, then environment).
- **Node description** is served as data so a host can render the node's
  settings form without importing this package.

Endpoints
---------
========  ====================  ==========================================
Method    Path                  Purpose
========  ====================  ==========================================
GET       ``/api/health``       Liveness check
GET       ``/api/node``         Declarative node description
POST      ``/api/run``          Run a workflow and return its outputs
========  ====================  ==========================================

Error Mapping
-------------
==========================  ======
Error                       Status
==========================  ======
``ValidationError``         400
``TransportError``          502
``ExecutionError``          502
``JobTimeoutError``         504
==========================  ======

Usage
-----
CLI (installed entry point)::

    comfyrunner

Direct invocation::

    python -m comfyrunner.api.main
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request

from comfyrunner import __version__
from comfyrunner.api.models import ImageInfo, RunRequest, RunResponse
from comfyrunner.api.node import NODE_DESCRIPTION
from comfyrunner.core.config import ComfyRunnerConfig, config
from comfyrunner.core.credentials import default_sources, resolve_endpoint
from comfyrunner.core.errors import (
    ComfyRunnerError,
    ExecutionError,
    JobTimeoutError,
    TransportError,
    ValidationError,
)
from comfyrunner.core.outputs import iter_images, view_url
from comfyrunner.core.runner import JobRunner
from comfyrunner.plugins import LoggingObserver, RunObserver, observer_registry

logger = logging.getLogger(__name__)

_ERROR_STATUS: dict[type[ComfyRunnerError], int] = {
    ValidationError: 400,
    TransportError: 502,
    ExecutionError: 502,
    JobTimeoutError: 504,
}


def build_observers(settings: ComfyRunnerConfig) -> list[RunObserver]:
    """Create the observers enabled by ``settings``."""
    observers: list[RunObserver] = [LoggingObserver()]
    if settings.save_outputs:
        observers.append(
            observer_registry.instantiate("SaveOutputs", outputs_dir=settings.outputs_dir)
        )
    return observers


# ---------------------------------------------------------------------------
# Application lifecycle.
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Create the shared :class:`JobRunner` on startup.

    Args:
        app: The FastAPI application instance.

    Yields:
        Control back to the application for the duration of its lifetime.
    """
    app.state.runner = JobRunner(config, observers=build_observers(config))
    logger.info("JobRunner initialised.")

    yield


app = FastAPI(
    title="ComfyUI Job Runner",
    description="Submit ComfyUI workflows and wait for their outputs.",
    version=__version__,
    lifespan=lifespan,
)


def _status_for(error: ComfyRunnerError) -> int:
    for error_type, status in _ERROR_STATUS.items():
        if isinstance(error, error_type):
            return status
    return 500


# ---------------------------------------------------------------------------
# Routes.
# ---------------------------------------------------------------------------


@app.get("/api/health")
async def health() -> dict:
    """Return a static liveness payload with the package version."""
    return {"status": "ok", "version": __version__}


@app.get("/api/node")
async def get_node() -> dict:
    """Return the declarative node description consumed by the host."""
    return NODE_DESCRIPTION.model_dump()


@app.post("/api/run", response_model=RunResponse)
async def run_workflow(req: RunRequest, request: Request) -> RunResponse:
    """Run a workflow on the ComfyUI server and wait for its outputs.

    Args:
        req: Validated :class:`RunRequest` payload.
        request: Incoming request, used to reach the shared runner.

    Returns:
        :class:`RunResponse` with the outputs unchanged and the images
        found in them.

    Raises:
        HTTPException: With the status from the error mapping when the
            run fails.
    """
    runner: JobRunner = request.app.state.runner

    try:
        endpoint = resolve_endpoint(req.api_url, req.api_key, default_sources(runner.config))
        result = await runner.execute(endpoint, req.workflow, req.timeout)
    except ComfyRunnerError as e:
        raise HTTPException(status_code=_status_for(e), detail=str(e))

    images = [
        ImageInfo(node_id=node_id, url=view_url(endpoint, image), **image.model_dump())
        for node_id, image in iter_images(result.outputs)
    ]
    return RunResponse(
        prompt_id=result.prompt_id,
        outputs=result.outputs,
        images=images,
        attempts=result.attempts,
    )


# ---------------------------------------------------------------------------
# CLI entry point.
# ---------------------------------------------------------------------------


def main() -> None:
    """Launch the uvicorn ASGI server.

    Reads host and port from :data:`~comfyrunner.core.config.config` (which
    loads from ``COMFYRUNNER_SERVER_HOST`` and ``COMFYRUNNER_SERVER_PORT``
    environment variables).  Defaults to ``0.0.0.0:7860``.

    This function is registered as the ``comfyrunner`` console script in
    ``pyproject.toml``.
    """
    import uvicorn

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    uvicorn.run(
        "comfyrunner.api.main:app",
        host=config.server_host,
        port=config.server_port,
        reload=False,
    )


if __name__ == "__main__":
    main()
