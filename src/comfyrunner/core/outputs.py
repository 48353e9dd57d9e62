"""Helpers for reading the outputs mapping of a completed ComfyUI job.

ComfyUI reports outputs per node id.  Image-producing nodes list their files
under ``images`` (animated outputs under ``gifs``), each entry naming a
``filename``, ``subfolder`` and storage ``type``::

    {
        "9": {"images": [{"filename": "ComfyUI_00001_.png", "subfolder": "", "type": "output"}]},
        "12": {"text": ["a caption"]}
    }

Other nodes report arbitrary data.  The helpers here only read the mapping;
the runner always hands it back to callers unchanged.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from typing import Any
from urllib.parse import urlencode

from pydantic import BaseModel, ConfigDict, ValidationError

from comfyrunner.core.models import Endpoint

logger = logging.getLogger(__name__)

# Output keys that hold file references.
IMAGE_KEYS: tuple[str, ...] = ("images", "gifs")


class ImageRef(BaseModel):
    """A file produced by a job, as referenced in its outputs."""

    model_config = ConfigDict(extra="ignore")

    filename: str
    subfolder: str = ""
    type: str = "output"


def iter_images(outputs: dict[str, Any]) -> Iterator[tuple[str, ImageRef]]:
    """Yield ``(node_id, ImageRef)`` for every file reference in ``outputs``.

    Entries that are not mappings, have no filename, or carry fields of the
    wrong type are skipped.
    """
    for node_id, node_output in outputs.items():
        if not isinstance(node_output, dict):
            continue
        for key in IMAGE_KEYS:
            entries = node_output.get(key)
            if not isinstance(entries, list):
                continue
            for entry in entries:
                if not (isinstance(entry, dict) and entry.get("filename")):
                    continue
                try:
                    image = ImageRef.model_validate(entry)
                except ValidationError as e:
                    logger.debug(f"Skipping malformed file reference in node {node_id}: {e}")
                    continue
                yield node_id, image


def view_url(endpoint: Endpoint, image: ImageRef) -> str:
    """Build the ``/view`` URL that serves ``image`` from the server."""
    query = urlencode(
        {"filename": image.filename, "subfolder": image.subfolder, "type": image.type}
    )
    return f"{endpoint.base_url}/view?{query}"


def to_items(outputs: dict[str, Any]) -> list[dict[str, Any]]:
    """Wrap ``outputs`` as the host's list of item records.

    The automation host passes data between nodes as a list of items, each
    with its payload under ``json``.  A job's outputs become one item.
    """
    return [{"json": outputs}]
