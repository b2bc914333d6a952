"""Azure Function agent - Foundry Agent Service with a queue-backed Azure Function tool."""

from .config import FunctionAgentConfig, INPUT_QUEUE_NAME, OUTPUT_QUEUE_NAME
from .errors import (
    ConfigurationError,
    FunctionAgentError,
    PlatformError,
    RunFailedError,
    RunTimeoutError,
)

__all__ = [
    "FunctionAgentConfig",
    "INPUT_QUEUE_NAME",
    "OUTPUT_QUEUE_NAME",
    "ConfigurationError",
    "FunctionAgentError",
    "PlatformError",
    "RunFailedError",
    "RunTimeoutError",
]
