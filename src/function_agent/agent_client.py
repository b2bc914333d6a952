"""Foundry Agent Service client for the Prompt endpoint.

Wraps the azure-ai-agents SDK to run one prompt through a short-lived
agent whose only tool is the queue-backed ``GetWeather`` Azure Function.

The agent service dispatches the tool call to the input queue on its own
and resumes the run when the reply shows up on the output queue, so this
client never submits tool outputs. It only polls until the run is done.

Docs:
- Overview: https://learn.microsoft.com/en-us/azure/ai-foundry/agents/overview
- Python SDK: https://learn.microsoft.com/en-us/python/api/overview/azure/ai-agents-readme
- Azure Functions tool: https://learn.microsoft.com/en-us/azure/ai-foundry/agents/how-to/tools-classic/azure-functions
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any

from azure.ai.agents import AgentsClient
from azure.ai.agents.models import ListSortOrder, MessageRole, RunStatus
from azure.core.exceptions import AzureError
from azure.identity import DefaultAzureCredential

from src.tools.weather_tool import build_weather_tool

from .config import FunctionAgentConfig
from .errors import PlatformError, RunFailedError, RunTimeoutError

logger = logging.getLogger(__name__)

# Statuses in which the run is still making progress. REQUIRES_ACTION is
# resolved by the agent service once the queue worker replies.
PENDING_STATUSES = (RunStatus.QUEUED, RunStatus.IN_PROGRESS, RunStatus.REQUIRES_ACTION)


@dataclass
class AgentSession:
    """Agent and thread created for a single prompt."""
    client: AgentsClient
    thread_id: str
    agent_id: str


class FoundryAgentClient:
    """Runs a prompt against a per-request Foundry agent.

    Usage::

        config = FunctionAgentConfig()
        agent_client = FoundryAgentClient(config)

        answer = agent_client.run_prompt("What is the weather in Seattle?")
        print(answer)  # "The weather in Seattle is 74 degrees and sunny."
    """

    def __init__(
        self,
        config: FunctionAgentConfig,
        client: AgentsClient | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._config = config
        self._client = client
        self._sleep = sleep

    def run_prompt(self, prompt: str) -> str:
        """Send ``prompt`` to a fresh agent and return its final text reply.

        Raises:
            ConfigurationError: required settings are missing.
            RunFailedError: the run ended in a state other than completed.
            RunTimeoutError: the run was still pending after the timeout.
            PlatformError: any other error from the agent service.
        """
        self._config.validate()

        try:
            with self.session() as session:
                session.client.messages.create(
                    thread_id=session.thread_id,
                    role=MessageRole.USER,
                    content=prompt,
                )
                run = session.client.runs.create(
                    thread_id=session.thread_id,
                    agent_id=session.agent_id,
                )
                logger.info("Run created: %s (thread=%s)", run.id, session.thread_id)

                run = self._wait_for_run(session, run)
                if run.status != RunStatus.COMPLETED:
                    logger.error("Agent run failed: status=%s, error=%s", run.status, run.last_error)
                    raise RunFailedError(run.id, getattr(run.status, "value", run.status), run.last_error)

                return self._latest_text(session)
        except AzureError as exc:
            logger.error("Agent service error: %s", exc)
            raise PlatformError(f"Agent service request failed: {exc}") from exc

    @contextmanager
    def session(self) -> Iterator[AgentSession]:
        """Create the agent and a thread; the agent is deleted on exit.

        Deletion runs on every exit path. A failed deletion is logged and
        does not replace an exception already propagating from the block.
        """
        owns_client = self._client is None
        credential = None
        if owns_client:
            credential = self._create_credential()
            client = self._create_client(credential)
        else:
            client = self._client
        agent = None
        try:
            tool = build_weather_tool(self._config.queue_service_uri)
            agent = client.create_agent(
                model=self._config.model_deployment,
                name=self._config.agent_name,
                instructions=self._config.instructions,
                tools=tool.definitions,
            )
            logger.info(
                "Agent created: id=%s, model=%s",
                agent.id,
                self._config.model_deployment,
            )

            thread = client.threads.create()
            logger.info("Thread created: %s", thread.id)

            yield AgentSession(client=client, thread_id=thread.id, agent_id=agent.id)
        finally:
            if agent is not None:
                self._delete_agent(client, agent.id)
            if owns_client:
                client.close()
                credential.close()

    def _create_credential(self) -> DefaultAzureCredential:
        return DefaultAzureCredential(
            managed_identity_client_id=self._config.managed_identity_client_id,
        )

    def _create_client(self, credential: DefaultAzureCredential) -> AgentsClient:
        # Docs: https://learn.microsoft.com/en-us/azure/ai-foundry/how-to/develop/sdk-overview
        return AgentsClient(
            endpoint=self._config.project_endpoint,
            credential=credential,
        )

    def _wait_for_run(self, session: AgentSession, run: Any) -> Any:
        """Poll the run until it leaves the pending statuses."""
        attempts = self._config.max_poll_attempts
        for _ in range(attempts):
            self._sleep(self._config.poll_interval_seconds)
            run = session.client.runs.get(thread_id=session.thread_id, run_id=run.id)
            logger.debug("Run %s status: %s", run.id, run.status)
            if run.status not in PENDING_STATUSES:
                logger.info("Agent run finished: status=%s", run.status)
                return run

        logger.error("Run %s still %s after %d polls", run.id, run.status, attempts)
        self._cancel_run(session, run.id)
        raise RunTimeoutError(run.id, self._config.run_timeout_seconds)

    def _latest_text(self, session: AgentSession) -> str:
        """Return the first text part of the newest message that has one."""
        messages = session.client.messages.list(
            thread_id=session.thread_id,
            order=ListSortOrder.DESCENDING,
        )
        for msg in messages:
            if msg.text_messages:
                response_text = msg.text_messages[0].text.value
                logger.info("Most recent message: %s", response_text[:100])
                return response_text

        logger.warning("No text message found on thread %s", session.thread_id)
        return ""

    @staticmethod
    def _cancel_run(session: AgentSession, run_id: str) -> None:
        try:
            session.client.runs.cancel(thread_id=session.thread_id, run_id=run_id)
            logger.info("Run cancelled: %s", run_id)
        except AzureError as exc:
            logger.warning("Could not cancel run %s: %s", run_id, exc)

    @staticmethod
    def _delete_agent(client: AgentsClient, agent_id: str) -> None:
        try:
            client.delete_agent(agent_id)
            logger.info("Agent deleted: %s", agent_id)
        except Exception as exc:
            logger.error("Could not delete agent %s: %s", agent_id, exc)
