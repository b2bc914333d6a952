"""Azure Functions app: a Foundry agent that calls back into this app through storage queues.

Functions:
- ``Prompt`` (HTTP POST /api/Prompt): runs the caller's prompt through a
  short-lived agent whose ``GetWeather`` tool is bound to the tool queues.
- ``GetWeather`` (queue trigger): answers the tool calls the agent service
  writes to the input queue and replies on the output queue.

Prerequisites: set ``PROJECT_ENDPOINT`` and ``STORAGE_CONNECTION__queueServiceUri``
(see local.settings.sample.json) before starting the Functions host.

Docs: https://learn.microsoft.com/en-us/azure/ai-foundry/agents/how-to/tools-classic/azure-functions
"""

import logging

import azure.functions as func

from src.function_agent.agent_client import FoundryAgentClient
from src.function_agent.config import (
    INPUT_QUEUE_NAME,
    OUTPUT_QUEUE_NAME,
    STORAGE_CONNECTION_SETTING,
    FunctionAgentConfig,
    log_level_from_env,
)
from src.function_agent.handlers import handle_function_call, handle_prompt

logging.getLogger("src").setLevel(log_level_from_env())
logger = logging.getLogger(__name__)

app = func.FunctionApp(http_auth_level=func.AuthLevel.FUNCTION)


def run_prompt(prompt_text: str) -> str:
    """Run one prompt with settings read at call time."""
    return FoundryAgentClient(FunctionAgentConfig()).run_prompt(prompt_text)


@app.function_name(name="Prompt")
@app.route(route="Prompt", methods=["POST"])
def prompt(req: func.HttpRequest) -> func.HttpResponse:
    logger.info("Python HTTP trigger function processed a request.")
    return handle_prompt(req, run_prompt)


@app.function_name(name="GetWeather")
@app.queue_trigger(arg_name="msg", queue_name=INPUT_QUEUE_NAME, connection=STORAGE_CONNECTION_SETTING)
@app.queue_output(arg_name="output", queue_name=OUTPUT_QUEUE_NAME, connection=STORAGE_CONNECTION_SETTING)
def get_weather(msg: func.QueueMessage, output: func.Out[str]) -> None:
    logger.info("Python queue trigger function processed a queue item: %s", msg.id)
    output.set(handle_function_call(msg.get_body()))
