"""Run observers for progress reporting and persistence of job outputs.

- **RunObserver**: Base class with no-op lifecycle hooks
- **LoggingObserver**: Progress lines through ``logging``
- **SaveOutputsObserver**: Writes outputs of completed jobs as JSON
- **observer_registry**: Registry for looking observers up by name
"""

from comfyrunner.plugins.base import LoggingObserver, ObserverRegistry, RunObserver, observer_registry
from comfyrunner.plugins.save_outputs import SaveOutputsObserver

__all__ = [
    "LoggingObserver",
    "ObserverRegistry",
    "RunObserver",
    "SaveOutputsObserver",
    "observer_registry",
]
