"""Tests for the FoundryAgentClient prompt workflow."""

from unittest import mock
from unittest.mock import Mock

import pytest
from azure.ai.agents.models import ListSortOrder, MessageRole, RunStatus
from azure.core.exceptions import HttpResponseError

from src.function_agent.agent_client import AgentSession, FoundryAgentClient
from src.function_agent.config import FunctionAgentConfig
from src.function_agent.errors import (
    ConfigurationError,
    PlatformError,
    RunFailedError,
    RunTimeoutError,
)


def _config(**overrides) -> FunctionAgentConfig:
    values = {
        "project_endpoint": "https://myresource.services.ai.azure.com/api/projects/my-project",
        "queue_service_uri": "https://mystorage.queue.core.windows.net",
        "model_deployment": "gpt-4o-mini",
        "poll_interval_seconds": 0.5,
        "run_timeout_seconds": 2.0,
    }
    values.update(overrides)
    return FunctionAgentConfig(**values)


def _run(status, last_error=None):
    return Mock(id="run_1", status=status, last_error=last_error)


def _message(*texts):
    return Mock(text_messages=[Mock(text=Mock(value=t)) for t in texts])


def _client(statuses=(RunStatus.COMPLETED,), messages=None):
    client = Mock()
    client.create_agent.return_value = Mock(id="asst_1")
    client.threads.create.return_value = Mock(id="thread_1")
    client.runs.create.return_value = _run(RunStatus.QUEUED)
    client.runs.get.side_effect = [_run(s) for s in statuses]
    client.messages.list.return_value = messages if messages is not None else [
        _message("It is 74 degrees and sunny in Seattle."),
        _message("What is the weather in Seattle?"),
    ]
    return client


class TestRunPrompt:
    def test_returns_latest_text(self):
        client = _client()
        agent_client = FoundryAgentClient(_config(), client=client, sleep=Mock())

        answer = agent_client.run_prompt("What is the weather in Seattle?")

        assert answer == "It is 74 degrees and sunny in Seattle."

    def test_workflow_calls(self):
        client = _client()
        FoundryAgentClient(_config(), client=client, sleep=Mock()).run_prompt("Hi")

        client.create_agent.assert_called_once()
        kwargs = client.create_agent.call_args.kwargs
        assert kwargs["model"] == "gpt-4o-mini"
        assert kwargs["name"] == "azure-function-agent-get-weather"
        assert kwargs["tools"][0].azure_function.function.name == "GetWeather"

        client.messages.create.assert_called_once_with(
            thread_id="thread_1", role=MessageRole.USER, content="Hi"
        )
        client.runs.create.assert_called_once_with(thread_id="thread_1", agent_id="asst_1")
        client.messages.list.assert_called_once_with(
            thread_id="thread_1", order=ListSortOrder.DESCENDING
        )
        client.delete_agent.assert_called_once_with("asst_1")

    def test_polls_through_pending_statuses(self):
        statuses = [
            RunStatus.QUEUED,
            RunStatus.IN_PROGRESS,
            RunStatus.REQUIRES_ACTION,
            RunStatus.IN_PROGRESS,
            RunStatus.COMPLETED,
        ]
        client = _client(statuses=statuses)
        sleep = Mock()
        agent_client = FoundryAgentClient(
            _config(run_timeout_seconds=10.0), client=client, sleep=sleep
        )

        agent_client.run_prompt("Hi")

        assert client.runs.get.call_count == 5
        assert sleep.call_count == 5
        sleep.assert_called_with(0.5)
        client.runs.get.assert_called_with(thread_id="thread_1", run_id="run_1")

    def test_skips_messages_without_text(self):
        messages = [_message(), _message("first", "second")]
        client = _client(messages=messages)

        answer = FoundryAgentClient(_config(), client=client, sleep=Mock()).run_prompt("Hi")

        assert answer == "first"

    def test_no_text_returns_empty_string(self):
        client = _client(messages=[_message()])

        answer = FoundryAgentClient(_config(), client=client, sleep=Mock()).run_prompt("Hi")

        assert answer == ""

    @pytest.mark.parametrize("status", [RunStatus.FAILED, RunStatus.CANCELLED, RunStatus.EXPIRED])
    def test_terminal_failure_raises(self, status):
        client = _client(statuses=[RunStatus.IN_PROGRESS, status])
        agent_client = FoundryAgentClient(_config(), client=client, sleep=Mock())

        with pytest.raises(RunFailedError) as excinfo:
            agent_client.run_prompt("Hi")

        assert excinfo.value.status == status
        client.messages.list.assert_not_called()
        client.delete_agent.assert_called_once_with("asst_1")

    def test_timeout_cancels_run_and_deletes_agent(self):
        # 2s budget at 0.5s per poll = 4 polls
        client = _client(statuses=[RunStatus.IN_PROGRESS] * 4)
        agent_client = FoundryAgentClient(_config(), client=client, sleep=Mock())

        with pytest.raises(RunTimeoutError):
            agent_client.run_prompt("Hi")

        assert client.runs.get.call_count == 4
        client.runs.cancel.assert_called_once_with(thread_id="thread_1", run_id="run_1")
        client.delete_agent.assert_called_once_with("asst_1")

    def test_timeout_is_platform_error(self):
        assert issubclass(RunTimeoutError, PlatformError)
        assert issubclass(RunFailedError, PlatformError)

    def test_sdk_error_is_wrapped_and_agent_deleted(self):
        client = _client()
        client.runs.create.side_effect = HttpResponseError(message="boom")
        agent_client = FoundryAgentClient(_config(), client=client, sleep=Mock())

        with pytest.raises(PlatformError) as excinfo:
            agent_client.run_prompt("Hi")

        assert isinstance(excinfo.value.__cause__, HttpResponseError)
        client.delete_agent.assert_called_once_with("asst_1")

    def test_agent_creation_failure_skips_delete(self):
        client = _client()
        client.create_agent.side_effect = HttpResponseError(message="quota")
        agent_client = FoundryAgentClient(_config(), client=client, sleep=Mock())

        with pytest.raises(PlatformError):
            agent_client.run_prompt("Hi")

        client.threads.create.assert_not_called()
        client.delete_agent.assert_not_called()

    def test_delete_failure_does_not_hide_answer(self):
        client = _client()
        client.delete_agent.side_effect = HttpResponseError(message="gone")
        agent_client = FoundryAgentClient(_config(), client=client, sleep=Mock())

        assert agent_client.run_prompt("Hi") == "It is 74 degrees and sunny in Seattle."

    def test_non_azure_delete_failure_does_not_hide_answer(self):
        client = _client()
        client.delete_agent.side_effect = ConnectionResetError("reset by peer")
        agent_client = FoundryAgentClient(_config(), client=client, sleep=Mock())

        assert agent_client.run_prompt("Hi") == "It is 74 degrees and sunny in Seattle."

    def test_delete_failure_does_not_replace_run_error(self):
        client = _client(statuses=[RunStatus.FAILED])
        client.delete_agent.side_effect = ConnectionResetError("reset by peer")
        agent_client = FoundryAgentClient(_config(), client=client, sleep=Mock())

        with pytest.raises(RunFailedError):
            agent_client.run_prompt("Hi")

    def test_missing_config_fails_before_network(self):
        with mock.patch("src.function_agent.agent_client.AgentsClient") as agents_client:
            agent_client = FoundryAgentClient(_config(project_endpoint=""), sleep=Mock())
            with pytest.raises(ConfigurationError):
                agent_client.run_prompt("Hi")

        agents_client.assert_not_called()


class TestSession:
    def test_yields_session_and_deletes_agent(self):
        client = _client()
        agent_client = FoundryAgentClient(_config(), client=client)

        with agent_client.session() as session:
            assert session == AgentSession(client=client, thread_id="thread_1", agent_id="asst_1")
            client.delete_agent.assert_not_called()

        client.delete_agent.assert_called_once_with("asst_1")
        client.close.assert_not_called()

    def test_deletes_agent_when_block_raises(self):
        client = _client()
        agent_client = FoundryAgentClient(_config(), client=client)

        with pytest.raises(RuntimeError):
            with agent_client.session():
                raise RuntimeError("caller disconnected")

        client.delete_agent.assert_called_once_with("asst_1")

    def test_creates_and_closes_own_client(self):
        client = _client()
        with mock.patch(
            "src.function_agent.agent_client.AgentsClient", return_value=client
        ) as agents_client, mock.patch(
            "src.function_agent.agent_client.DefaultAzureCredential"
        ) as credential:
            agent_client = FoundryAgentClient(
                _config(managed_identity_client_id="client-id")
            )
            with agent_client.session():
                pass

        credential.assert_called_once_with(managed_identity_client_id="client-id")
        agents_client.assert_called_once_with(
            endpoint="https://myresource.services.ai.azure.com/api/projects/my-project",
            credential=credential.return_value,
        )
        client.close.assert_called_once()
        credential.return_value.close.assert_called_once()

    def test_each_prompt_closes_its_credential(self):
        with mock.patch(
            "src.function_agent.agent_client.AgentsClient",
            side_effect=lambda **kwargs: _client(),
        ), mock.patch(
            "src.function_agent.agent_client.DefaultAzureCredential"
        ) as credential:
            agent_client = FoundryAgentClient(_config(), sleep=Mock())
            for _ in range(3):
                agent_client.run_prompt("Hi")

        assert credential.call_count == 3
        assert credential.return_value.close.call_count == 3

    def test_credential_closed_when_agent_creation_fails(self):
        client = _client()
        client.create_agent.side_effect = HttpResponseError(message="quota")
        with mock.patch(
            "src.function_agent.agent_client.AgentsClient", return_value=client
        ), mock.patch(
            "src.function_agent.agent_client.DefaultAzureCredential"
        ) as credential:
            with pytest.raises(PlatformError):
                FoundryAgentClient(_config(), sleep=Mock()).run_prompt("Hi")

        client.close.assert_called_once()
        credential.return_value.close.assert_called_once()
