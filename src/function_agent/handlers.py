"""Request handling for the Azure Functions triggers.

``function_app.py`` only declares triggers and bindings; the work happens
here so it can be exercised without the Functions host.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

import azure.functions as func
from pydantic import ValidationError

from src.tools.weather_tool import get_weather

from .config import OUTPUT_QUEUE_NAME
from .errors import IncomingRequestError, QueueMessageError, RunTimeoutError
from .messages import FunctionCallMessage, FunctionResultMessage, PromptRequest

logger = logging.getLogger(__name__)

MISSING_PROMPT_MESSAGE = "The 'Prompt' field is missing in the request body."
INVALID_JSON_MESSAGE = "Request body must be valid JSON."
SERVER_ERROR_MESSAGE = "An error occurred while processing the request."
TIMEOUT_MESSAGE = "The agent did not respond in time."


def parse_prompt_request(req: func.HttpRequest) -> PromptRequest:
    """Validate the request body and return the prompt it carries."""
    try:
        body: Any = req.get_json()
    except ValueError as exc:
        raise IncomingRequestError(INVALID_JSON_MESSAGE) from exc

    if not isinstance(body, dict):
        raise IncomingRequestError(MISSING_PROMPT_MESSAGE)
    try:
        return PromptRequest.model_validate(body)
    except ValidationError as exc:
        raise IncomingRequestError(MISSING_PROMPT_MESSAGE) from exc


def handle_prompt(req: func.HttpRequest, run_prompt: Callable[[str], str]) -> func.HttpResponse:
    """Run the prompt in ``req`` through ``run_prompt`` and build the HTTP reply.

    Client errors get a 400 with a description. Every other failure is
    logged with its traceback and answered with a fixed message so no
    internal detail reaches the caller.
    """
    try:
        request = parse_prompt_request(req)
    except IncomingRequestError as exc:
        logger.warning("Prompt request rejected: %s", exc)
        return func.HttpResponse(str(exc), status_code=exc.status_code, mimetype="text/plain")

    try:
        answer = run_prompt(request.prompt)
    except RunTimeoutError as exc:
        logger.error("Error processing prompt: %s", exc)
        return func.HttpResponse(TIMEOUT_MESSAGE, status_code=504, mimetype="text/plain")
    except Exception as exc:
        logger.error("Error processing prompt: %s", exc, exc_info=True)
        return func.HttpResponse(SERVER_ERROR_MESSAGE, status_code=500, mimetype="text/plain")

    return func.HttpResponse(answer or "", status_code=200, mimetype="text/plain")


def parse_function_call(body: str | bytes) -> FunctionCallMessage:
    """Decode a message from the input queue."""
    try:
        return FunctionCallMessage.model_validate_json(body)
    except ValidationError as exc:
        missing = {
            str(error["loc"][0])
            for error in exc.errors()
            if error["type"] == "missing" and error["loc"]
        }
        if "location" in missing:
            raise QueueMessageError("The 'location' field is missing in the message payload.") from exc
        if "CorrelationId" in missing:
            raise QueueMessageError("The 'CorrelationId' field is missing in the message payload.") from exc
        raise QueueMessageError(f"Invalid function call message: {exc}") from exc


def handle_function_call(body: str | bytes) -> str:
    """Execute one ``GetWeather`` call and return the JSON reply for the output queue.

    Errors are logged and re-raised so the invocation fails and the host's
    queue retry policy takes over.
    """
    try:
        call = parse_function_call(body)
        result = FunctionResultMessage(
            value=get_weather(call.location),
            correlation_id=call.correlation_id,
        )
    except Exception as exc:
        logger.error("Error processing queue message: %s", exc)
        raise

    logger.info("Sent message to queue: %s (correlation=%s)", OUTPUT_QUEUE_NAME, result.correlation_id)
    return result.to_json()
