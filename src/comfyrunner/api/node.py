"""Declarative node description for the workflow-automation host.

The host renders a node's settings form and stores its parameters from a
static description: display metadata, the credential type the node may use,
and one entry per parameter (name, type, default, required).  This module
holds that description as data (:data:`NODE_DESCRIPTION`) and the execute
hook the host calls with the stored parameter values (:func:`execute_node`).

Parameters
----------
==========  ========  ========  ==========================================
Name        Type      Default   Meaning
==========  ========  ========  ==========================================
apiUrl      string    ""        ComfyUI address (falls back to credential)
apiKey      string    ""        Bearer token (falls back to credential)
workflow    string    required  Workflow in ComfyUI API JSON format
timeout     number    30        Minutes to wait for the workflow to finish
==========  ========  ========  ==========================================
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field

from comfyrunner.core.config import ComfyRunnerConfig, config as default_config
from comfyrunner.core.credentials import SecretSource, default_sources, resolve_endpoint
from comfyrunner.core.errors import ValidationError
from comfyrunner.core.outputs import to_items
from comfyrunner.core.runner import JobRunner

ParameterType = Literal["string", "number", "boolean"]


class ParameterSpec(BaseModel):
    """One parameter of the node's settings form.

    Attributes:
        name: Key under which the host stores the value.
        display_name: Label shown in the host's form.
        type: Value type, used to coerce stored values.
        default: Value used when the host stores nothing.
        required: Whether an empty value is rejected.
        description: Help text shown next to the field.
        password: Render the field masked.
        rows: Render the field as a text area of this many rows.
    """

    name: str
    display_name: str
    type: ParameterType = "string"
    default: Any = ""
    required: bool = False
    description: str = ""
    password: bool = False
    rows: int | None = None

    def coerce(self, value: Any) -> Any:
        """Convert a stored value to this parameter's type.

        Raises:
            ValidationError: If the value cannot be converted.
        """
        if value is None:
            return None
        if self.type == "number":
            try:
                return float(value)
            except (TypeError, ValueError) as exc:
                raise ValidationError(
                    f'Parameter "{self.display_name}" must be a number, got {value!r}'
                ) from exc
        if self.type == "boolean":
            return bool(value)
        return str(value)


class CredentialSpec(BaseModel):
    """A credential type the node can read secrets from."""

    name: str
    required: bool = False


class NodeDescription(BaseModel):
    """Static description of a node, consumed by the host."""

    display_name: str
    name: str
    version: int = 1
    description: str = ""
    group: list[str] = Field(default_factory=list)
    credentials: list[CredentialSpec] = Field(default_factory=list)
    properties: list[ParameterSpec] = Field(default_factory=list)

    def defaults(self) -> dict[str, Any]:
        """Return ``{parameter name: default}`` for every parameter."""
        return {spec.name: spec.default for spec in self.properties}

    def resolve_parameters(self, values: dict[str, Any]) -> dict[str, Any]:
        """Apply defaults, coerce types and check required parameters.

        Unknown keys in ``values`` are ignored.

        Args:
            values: Parameter values stored by the host.

        Returns:
            One entry per declared parameter.

        Raises:
            ValidationError: If a required parameter is missing or empty, or
                a value does not match its declared type.
        """
        resolved: dict[str, Any] = {}
        for spec in self.properties:
            value = values.get(spec.name)
            if value is None or (isinstance(value, str) and not value.strip()):
                if spec.required:
                    raise ValidationError(f'Parameter "{spec.display_name}" is required')
                value = spec.default
            resolved[spec.name] = spec.coerce(value)
        return resolved


NODE_DESCRIPTION = NodeDescription(
    display_name="ComfyUI Output Any",
    name="comfyuiAny",
    version=1,
    description="Execute ComfyUI workflows and return promptResult outputs",
    group=["transform"],
    credentials=[CredentialSpec(name="comfyUIApi", required=False)],
    properties=[
        ParameterSpec(
            name="apiUrl",
            display_name="API URL",
            description="The URL of your ComfyUI instance",
        ),
        ParameterSpec(
            name="apiKey",
            display_name="API Key",
            password=True,
            description="API Key if authentication is enabled",
        ),
        ParameterSpec(
            name="workflow",
            display_name="Workflow JSON",
            required=True,
            rows=10,
            description="The ComfyUI workflow in JSON format",
        ),
        ParameterSpec(
            name="timeout",
            display_name="Timeout",
            type="number",
            default=30,
            description="Maximum time in minutes to wait for workflow completion",
        ),
    ],
)


async def execute_node(
    parameters: dict[str, Any],
    credentials: SecretSource | None = None,
    runner: JobRunner | None = None,
    settings: ComfyRunnerConfig | None = None,
) -> list[dict[str, Any]]:
    """Execute hook called by the host with the node's stored parameters.

    The endpoint is resolved from the ``apiUrl``/``apiKey`` parameters first,
    then from the host credential lookup, then from the configured fallback
    sources.

    Args:
        parameters: Stored parameter values, keyed as in
            :data:`NODE_DESCRIPTION`.
        credentials: Host lookup for the ``comfyUIApi`` credential.  It may
            raise when no credential is configured.
        runner: Runner to use.  If None, one built from ``settings``.
        settings: Configuration object.  If None, uses the global config.

    Returns:
        The job outputs as the host's list of items.
    """
    settings = settings or default_config
    params = NODE_DESCRIPTION.resolve_parameters(parameters)

    sources: list[SecretSource] = []
    if credentials is not None:
        sources.append(credentials)
    sources.extend(default_sources(settings))

    endpoint = resolve_endpoint(params["apiUrl"], params["apiKey"], sources)
    runner = runner or JobRunner(settings)
    outputs = await runner.run(endpoint, params["workflow"], params["timeout"])
    return to_items(outputs)
