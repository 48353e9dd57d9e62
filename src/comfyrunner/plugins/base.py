"""Base class and registry for run observers.

Observers receive notifications at each phase of a job run.  They are a
side channel: the runner never depends on what an observer does, and an
observer never changes the outcome of a run.

Lifecycle hooks, in the order they fire during a successful run:

1. ``on_connection_check(endpoint)``: before the reachability probe
2. ``on_job_queued(prompt_id)``: after the server accepted the job
3. ``on_poll_attempt(prompt_id, attempt, max_attempts)``: before each poll
4. ``on_job_pending(prompt_id, reason)``: a poll found no terminal state
5. ``on_job_completed(prompt_id, outputs)``: a poll found the outputs

``on_run_failed(error)`` fires instead of the remaining hooks when the run
fails for any reason.

Example
-------
    >>> class CountingObserver(RunObserver):
    ...     name = "Counting"
    ...
    ...     def __init__(self, **config):
    ...         super().__init__(**config)
    ...         self.polls = 0
    ...
    ...     def on_poll_attempt(self, prompt_id, attempt, max_attempts):
    ...         self.polls += 1
    >>> observer_registry.register(CountingObserver)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from comfyrunner.core.models import Endpoint

logger = logging.getLogger(__name__)


class RunObserver:
    """Base class for run observers.  Every hook is a no-op by default.

    Attributes
    ----------
    name : str
        Registry name of the observer
    description : str
        Brief description of what the observer does
    enabled : bool
        Disabled observers are skipped by their own hooks
    """

    name: str = "Base Observer"
    description: str = "Base class for run observers"
    version: str = "0.1.0"

    def __init__(self, **config: Any) -> None:
        self.config = config
        self.enabled: bool = config.get("enabled", True)

    def on_connection_check(self, endpoint: Endpoint) -> None:
        pass

    def on_job_queued(self, prompt_id: str) -> None:
        pass

    def on_poll_attempt(self, prompt_id: str, attempt: int, max_attempts: int) -> None:
        pass

    def on_job_pending(self, prompt_id: str, reason: str) -> None:
        pass

    def on_job_completed(self, prompt_id: str, outputs: dict[str, Any]) -> None:
        pass

    def on_run_failed(self, error: Exception) -> None:
        pass


class LoggingObserver(RunObserver):
    """Write run progress to the ``comfyrunner`` log."""

    name = "Logging"
    description = "Log progress lines at every phase of a run"

    def on_connection_check(self, endpoint: Endpoint) -> None:
        logger.info(f"[ComfyUI] Executing with API URL: {endpoint.base_url}")
        if endpoint.api_key:
            logger.info("[ComfyUI] Using API key authentication")
        logger.info("[ComfyUI] Checking API connection...")

    def on_job_queued(self, prompt_id: str) -> None:
        logger.info(f"[ComfyUI] Prompt queued with ID: {prompt_id}")

    def on_poll_attempt(self, prompt_id: str, attempt: int, max_attempts: int) -> None:
        logger.info(f"[ComfyUI] Checking execution status (attempt {attempt}/{max_attempts})...")

    def on_job_pending(self, prompt_id: str, reason: str) -> None:
        logger.debug(f"[ComfyUI] {reason}")

    def on_job_completed(self, prompt_id: str, outputs: dict[str, Any]) -> None:
        logger.info("[ComfyUI] Execution completed")
        logger.debug(f"[ComfyUI] All prompt outputs: {outputs}")

    def on_run_failed(self, error: Exception) -> None:
        logger.error(f"[ComfyUI] Execution error: {error}")


class ObserverRegistry:
    """Registry of observer classes, addressable by name."""

    def __init__(self) -> None:
        self._observers: dict[str, type[RunObserver]] = {}

    def register(self, observer_class: type[RunObserver]) -> None:
        """Register an observer class under its ``name``."""
        if observer_class.name in self._observers:
            logger.warning(f"Observer '{observer_class.name}' is already registered, overwriting")
        self._observers[observer_class.name] = observer_class
        logger.debug(f"Registered observer: {observer_class.name}")

    def instantiate(self, name: str, **config: Any) -> RunObserver:
        """Create an instance of a registered observer.

        Raises:
            KeyError: If ``name`` is not registered.
        """
        if name not in self._observers:
            available = ", ".join(self.list_available())
            raise KeyError(f"Observer '{name}' not found. Available observers: {available}")
        return self._observers[name](**config)

    def list_available(self) -> list[str]:
        return list(self._observers.keys())


# Global observer registry
observer_registry = ObserverRegistry()
observer_registry.register(LoggingObserver)
