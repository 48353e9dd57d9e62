"""Pydantic request and response models for the job runner API.

These models define the JSON schema for every API endpoint.  FastAPI uses
them for automatic request validation, serialisation, and OpenAPI
documentation generation.

Models
------
RunRequest
    Payload for ``POST /api/run``: server address, credential, workflow
    and timeout of one job.
ImageInfo
    One image produced by a job, with the URL that serves it.
RunResponse
    Response of ``POST /api/run``: the job's outputs unchanged plus the
    images found in them.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class RunRequest(BaseModel):
    """Request body for the ``POST /api/run`` endpoint.

    Attributes:
        api_url: ComfyUI address.  When omitted or empty, the configured
            credential sources are used.
        api_key: Bearer token.  Same fallback as ``api_url``.
        workflow: Workflow in ComfyUI API format, as JSON text or an object.
        timeout: Minutes to wait for the job.  ``None`` uses the configured
            default.
    """

    api_url: str | None = Field(
        default=None,
        description="ComfyUI address; falls back to the configured credential.",
    )
    api_key: str | None = Field(
        default=None,
        description="Bearer token; falls back to the configured credential.",
    )
    workflow: str | dict[str, Any] = Field(
        ...,
        description="Workflow in ComfyUI API format (JSON text or object).",
    )
    timeout: float | None = Field(
        default=None,
        description="Minutes to wait for completion (default from config).",
    )


class ImageInfo(BaseModel):
    """An image referenced by the outputs of a job.

    Attributes:
        node_id: Output slot (workflow node id) that produced the image.
        filename: File name on the server.
        subfolder: Subfolder within the storage type.
        type: Storage type (``output``, ``temp``, ``input``).
        url: ``/view`` URL that serves the file.
    """

    node_id: str
    filename: str
    subfolder: str = ""
    type: str = "output"
    url: str


class RunResponse(BaseModel):
    """Response body for the ``POST /api/run`` endpoint.

    Attributes:
        prompt_id: Identifier the server assigned to the job.
        outputs: Job outputs, exactly as the server reported them.
        images: Images found in ``outputs``.
        attempts: Number of status polls performed.
    """

    prompt_id: str
    outputs: dict[str, Any]
    images: list[ImageInfo] = Field(default_factory=list)
    attempts: int
