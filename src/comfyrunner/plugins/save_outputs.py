"""Observer for saving the outputs of completed jobs to JSON files."""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict

from comfyrunner.plugins.base import RunObserver, observer_registry

logger = logging.getLogger(__name__)


class SaveOutputsObserver(RunObserver):
    """
    Save the outputs of each completed job to ``<outputs_dir>/<prompt_id>.json``.

    The file holds the prompt id, a timestamp and the outputs mapping exactly
    as the server reported it.

    Configuration:
        outputs_dir: Directory to write into (default: ``outputs``)
        filename_prefix: Prefix for generated files (optional)
    """

    name = "SaveOutputs"
    description = "Save job outputs to .json files"
    version = "0.1.0"

    def __init__(self, **config):
        super().__init__(**config)
        self.outputs_dir = Path(config.get("outputs_dir", "outputs"))
        self.filename_prefix = config.get("filename_prefix", "")

    def output_path(self, prompt_id: str) -> Path:
        """Return the JSON path used for ``prompt_id``."""
        base_name = prompt_id
        if self.filename_prefix:
            base_name = f"{self.filename_prefix}_{base_name}"
        return self.outputs_dir / f"{base_name}.json"

    def on_job_completed(self, prompt_id: str, outputs: Dict[str, Any]) -> None:
        """
        Write the outputs file.

        Args:
            prompt_id: Identifier of the completed job
            outputs: Outputs mapping of the job
        """
        if not self.enabled:
            return

        try:
            self.outputs_dir.mkdir(parents=True, exist_ok=True)
            json_path = self.output_path(prompt_id)

            record = {
                "prompt_id": prompt_id,
                "timestamp": datetime.now().isoformat(),
                "outputs": outputs,
            }

            with open(json_path, "w", encoding="utf-8") as f:
                json.dump(record, f, indent=2, ensure_ascii=False)

            logger.info(f"Saved outputs to: {json_path}")

        except Exception as e:
            logger.error(f"Failed to save outputs: {e}", exc_info=True)


# Register the observer
observer_registry.register(SaveOutputsObserver)
