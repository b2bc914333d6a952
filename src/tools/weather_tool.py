"""Weather tool executed by the queue-triggered Azure Function.

The Foundry agent never runs this code itself. It only knows the tool
definition built by :func:`build_weather_tool`; when the model decides to
call ``GetWeather`` the agent service writes the arguments to the input
queue, the Functions host runs :func:`get_weather` and the reply goes back
through the output queue.

Example scenario:
    User:  "What is the weather in Seattle?"
    Agent: → GetWeather(location="Seattle")
           → "It is 74 degrees and sunny in Seattle."

Docs: https://learn.microsoft.com/en-us/azure/ai-foundry/agents/how-to/tools-classic/azure-functions
"""

from __future__ import annotations

import logging
from typing import Annotated

from azure.ai.agents.models import AzureFunctionStorageQueue, AzureFunctionTool
from pydantic import Field

from src.function_agent.config import INPUT_QUEUE_NAME, OUTPUT_QUEUE_NAME

logger = logging.getLogger(__name__)

TOOL_NAME = "GetWeather"
TOOL_DESCRIPTION = "Get the weather in a location."

# JSON schema the model sees for the tool arguments
TOOL_PARAMETERS = {
    "type": "object",
    "properties": {
        "location": {
            "type": "string",
            "description": "The location to look up.",
        },
    },
}


def get_weather(
    location: Annotated[str, Field(description="The location to look up.")]
) -> str:
    """Get the weather in a location. Placeholder for a real weather lookup."""
    logger.info("Weather lookup for: %s", location)
    return f"Weather is 74 degrees and sunny in {location}"


def build_weather_tool(queue_service_uri: str) -> AzureFunctionTool:
    """Describe ``GetWeather`` as an Azure Function tool bound to the tool queues."""
    return AzureFunctionTool(
        name=TOOL_NAME,
        description=TOOL_DESCRIPTION,
        parameters=TOOL_PARAMETERS,
        input_queue=AzureFunctionStorageQueue(
            queue_name=INPUT_QUEUE_NAME,
            storage_service_endpoint=queue_service_uri,
        ),
        output_queue=AzureFunctionStorageQueue(
            queue_name=OUTPUT_QUEUE_NAME,
            storage_service_endpoint=queue_service_uri,
        ),
    )
