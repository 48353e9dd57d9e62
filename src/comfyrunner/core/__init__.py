"""Core functionality for running ComfyUI jobs.

This module provides the core components of the ComfyUI job runner:

- **JobRunner**: Submit-and-poll protocol for one workflow run
- **ComfyClient**: Async HTTP client for the server endpoints
- **resolve_endpoint**: Credential fallback chain for address and token
- **ComfyRunnerConfig**: Configuration management using Pydantic Settings
- **config**: Global configuration instance (loads from environment variables)

Architecture Overview
---------------------
1. **Configuration Layer** (config.py):
   - Environment-based configuration using Pydantic Settings
   - All settings prefixed with COMFYRUNNER_ in .env files

2. **Protocol Layer** (runner.py, client.py):
   - Reachability probe, submission, history polling
   - Typed errors from errors.py for every failure

3. **Support Utilities**:
   - credentials.py: explicit parameter, then secret sources
   - models.py: Pydantic data model for endpoints and history records
   - outputs.py: image references and view URLs in job outputs

Usage Example
-------------
    import asyncio

    from comfyrunner.core import JobRunner, config, resolve_endpoint
    from comfyrunner.core.credentials import default_sources

    endpoint = resolve_endpoint(sources=default_sources(config))
    outputs = asyncio.run(JobRunner(config).run(endpoint, workflow_json))
"""

from comfyrunner.core.client import ComfyClient
from comfyrunner.core.config import ComfyRunnerConfig, config
from comfyrunner.core.credentials import resolve_endpoint
from comfyrunner.core.errors import (
    ComfyRunnerError,
    ExecutionError,
    JobTimeoutError,
    TransportError,
    ValidationError,
)
from comfyrunner.core.models import Endpoint, JobResult, RunConfig
from comfyrunner.core.runner import JobRunner

__all__ = [
    "ComfyClient",
    "ComfyRunnerConfig",
    "ComfyRunnerError",
    "Endpoint",
    "ExecutionError",
    "JobResult",
    "JobRunner",
    "JobTimeoutError",
    "RunConfig",
    "TransportError",
    "ValidationError",
    "config",
    "resolve_endpoint",
]
