"""Tools for the Foundry Agent.

Tools here run outside the agent service: the agent only holds an Azure
Function tool definition and the Functions host executes the function when
the call arrives on the tool's input queue.

Docs: https://learn.microsoft.com/en-us/azure/ai-foundry/agents/how-to/tools-classic/azure-functions
"""

from .weather_tool import build_weather_tool, get_weather

__all__ = ["build_weather_tool", "get_weather"]
