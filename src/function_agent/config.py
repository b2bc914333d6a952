"""Configuration for the Azure Function agent.

Loads settings from environment variables or .env file. When running in
Azure Functions the values come from the app settings (locally from
``local.settings.json``).
See: https://learn.microsoft.com/en-us/azure/ai-foundry/agents/how-to/tools-classic/azure-functions
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

from .errors import ConfigurationError

load_dotenv()

# Queue names shared by the agent's tool definition and the queue-triggered
# function. Both sides must use these constants.
INPUT_QUEUE_NAME = "input"
OUTPUT_QUEUE_NAME = "output"

# App setting prefix the queue trigger and output binding resolve, e.g.
# STORAGE_CONNECTION__queueServiceUri for identity-based connections.
STORAGE_CONNECTION_SETTING = "STORAGE_CONNECTION"

DEFAULT_MODEL_DEPLOYMENT = "gpt-4o-mini"
DEFAULT_AGENT_NAME = "azure-function-agent-get-weather"
DEFAULT_INSTRUCTIONS = (
    "You are a helpful support agent. "
    "Answer the user's questions to the best of your ability."
)


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}.") from exc
    if value <= 0:
        raise ConfigurationError(f"{name} must be greater than zero, got {raw!r}.")
    return value


def log_level_from_env() -> int:
    """Level named by LOG_LEVEL; unknown names fall back to INFO."""
    name = os.getenv("LOG_LEVEL", "INFO").strip().upper()
    level = logging.getLevelName(name)
    if isinstance(level, int):
        return level
    logging.getLogger(__name__).warning("Unknown LOG_LEVEL %r, using INFO.", name)
    return logging.INFO


@dataclass
class FunctionAgentConfig:
    """Settings for the Prompt endpoint and the agent it drives.

    Required values are not enforced on construction so the Functions host
    can index the app without them; call :meth:`validate` before talking to
    the agent service.
    """

    # Foundry project endpoint
    # Format: https://<resource>.services.ai.azure.com/api/projects/<project>
    project_endpoint: str = field(
        default_factory=lambda: os.getenv("PROJECT_ENDPOINT", "")
    )
    # Storage queue service used by the GetWeather tool bindings
    queue_service_uri: str = field(
        default_factory=lambda: os.getenv(f"{STORAGE_CONNECTION_SETTING}__queueServiceUri", "")
    )
    # User-assigned managed identity, if any
    managed_identity_client_id: str | None = field(
        default_factory=lambda: os.getenv("AZURE_CLIENT_ID") or None
    )
    model_deployment: str = field(
        default_factory=lambda: os.getenv("MODEL_DEPLOYMENT_NAME") or DEFAULT_MODEL_DEPLOYMENT
    )
    agent_name: str = field(
        default_factory=lambda: os.getenv("AGENT_NAME") or DEFAULT_AGENT_NAME
    )
    instructions: str = DEFAULT_INSTRUCTIONS

    # Run polling
    poll_interval_seconds: float = field(
        default_factory=lambda: _float_env("RUN_POLL_INTERVAL_SECONDS", 0.5)
    )
    run_timeout_seconds: float = field(
        default_factory=lambda: _float_env("RUN_TIMEOUT_SECONDS", 120.0)
    )

    @property
    def max_poll_attempts(self) -> int:
        """Number of status polls that fit into the run timeout."""
        return max(1, int(self.run_timeout_seconds / self.poll_interval_seconds))

    def validate(self) -> None:
        """Raise :class:`ConfigurationError` if a required setting is missing."""
        if not self.project_endpoint:
            raise ConfigurationError("PROJECT_ENDPOINT is not set.")
        if not self.queue_service_uri:
            raise ConfigurationError(
                f"{STORAGE_CONNECTION_SETTING}__queueServiceUri is not set."
            )
