"""ComfyUI job runner - submit workflows to a ComfyUI server and collect the outputs."""

__version__ = "0.1.0"

from comfyrunner.core.config import ComfyRunnerConfig, config
from comfyrunner.core.errors import ComfyRunnerError
from comfyrunner.core.models import Endpoint
from comfyrunner.core.runner import JobRunner

__all__ = [
    "ComfyRunnerConfig",
    "ComfyRunnerError",
    "Endpoint",
    "JobRunner",
    "config",
]
