"""Configuration management for the ComfyUI job runner.

This module provides centralized configuration management using Pydantic Settings.
All configuration is loaded from environment variables with the COMFYRUNNER_ prefix,
allowing easy customization without code changes.

Environment Variable Loading
-----------------------------
Configuration values are loaded in the following priority order:
1. Environment variables (COMFYRUNNER_* prefix)
2. .env file in the project root
3. Default values defined in ComfyRunnerConfig

Example .env file:
    COMFYRUNNER_API_URL=http://127.0.0.1:8188
    COMFYRUNNER_API_KEY=secret
    COMFYRUNNER_TIMEOUT_MINUTES=30
    COMFYRUNNER_SAVE_OUTPUTS=true

Global Configuration Instance
------------------------------
A global `config` instance is created automatically at module import time.
This ensures a single source of truth for all configuration values across
the application.

Usage Example
-------------
    from comfyrunner.core.config import config

    # Access configuration values
    print(config.api_url)
    print(config.timeout_minutes)

Credentials
-----------
``api_url`` and ``api_key`` are the last link of the credential fallback
chain: an address passed explicitly to a run always wins over the values
configured here (see :mod:`comfyrunner.core.credentials`).

Polling Settings
----------------
- initial_delay_seconds: grace period before the first status poll
- poll_interval_seconds: wait before every status poll
- timeout_minutes: default budget; one poll attempt per second of budget

See Also
--------
- ComfyRunnerConfig: Full configuration class documentation
"""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ComfyRunnerConfig(BaseSettings):
    """Main configuration for the ComfyUI job runner.

    Values are loaded from environment variables with the COMFYRUNNER_ prefix,
    with fallback to defaults defined here.

    Attributes
    ----------
    Server Settings:
        api_url : str
            Base URL of the ComfyUI instance (empty means "not configured")
        api_key : str | None
            Bearer token sent when the instance has authentication enabled
        credentials_file : Path | None
            Optional JSON file holding ``apiUrl``/``apiKey`` secrets

    Polling Settings:
        timeout_minutes : float
            Default time budget for a job to complete
        initial_delay_seconds : float
            Grace period before the first status poll
        poll_interval_seconds : float
            Wait before each status poll
        request_timeout_seconds : float
            Timeout applied to every individual HTTP request

    Outputs:
        save_outputs : bool
            Persist the outputs of completed jobs as JSON
        outputs_dir : Path
            Directory for persisted job outputs

    API Server Settings:
        server_host : str
            Server bind address (0.0.0.0 for local network)
        server_port : int
            Server port (1024-65535)

    Examples
    --------
    Create a custom configuration:

        >>> custom_config = ComfyRunnerConfig(
        ...     api_url="http://gpu-box:8188",
        ...     timeout_minutes=5,
        ... )
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="COMFYRUNNER_",
        case_sensitive=False,
    )

    # Server settings
    api_url: str = Field(
        default="",
        description="Base URL of the ComfyUI instance",
    )
    api_key: str | None = Field(
        default=None,
        description="Bearer token if authentication is enabled on the instance",
    )
    credentials_file: Path | None = Field(
        default=None,
        description="JSON file with apiUrl/apiKey used as a credential fallback",
    )

    # Polling settings
    timeout_minutes: float = Field(
        default=30,
        description="Maximum time in minutes to wait for workflow completion",
        gt=0,
        allow_inf_nan=False,
    )
    initial_delay_seconds: float = Field(
        default=5.0,
        description="Grace period before the first status poll",
        ge=0,
        allow_inf_nan=False,
    )
    poll_interval_seconds: float = Field(
        default=1.0,
        description="Wait before each status poll",
        ge=0,
        allow_inf_nan=False,
    )
    request_timeout_seconds: float = Field(
        default=30.0,
        description="Timeout for each HTTP request to the instance",
        gt=0,
    )

    # Outputs
    save_outputs: bool = Field(
        default=False,
        description="Write the outputs of completed jobs to outputs_dir",
    )
    outputs_dir: Path = Field(
        default=Path("outputs"),
        description="Directory to save job outputs",
    )

    # API server settings
    server_host: str = Field(
        default="0.0.0.0",
        description="Server bind address (0.0.0.0 for local network)",
    )
    server_port: int = Field(
        default=7860,
        description="Server port",
        ge=1024,
        le=65535,
    )


# Global configuration instance
# Loads values from environment variables (COMFYRUNNER_* prefix) and .env file.
config = ComfyRunnerConfig()
