"""Payloads exchanged over HTTP and the tool queues.

Field names on the wire are fixed by the Foundry Agent Service's Azure
Function tool contract (``CorrelationId``, ``Value``) and by the public
``Prompt`` endpoint, so every model uses aliases.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class PromptRequest(BaseModel):
    """Body of ``POST /api/Prompt``."""

    prompt: str = Field(alias="Prompt", min_length=1)


class FunctionCallMessage(BaseModel):
    """Message the agent service puts on the input queue for a tool call."""

    location: str
    correlation_id: str = Field(alias="CorrelationId")


class FunctionResultMessage(BaseModel):
    """Reply the worker puts on the output queue.

    ``correlation_id`` must be copied from the originating
    :class:`FunctionCallMessage`; it is the only thing the agent service
    uses to match the result to the waiting run.
    """

    model_config = ConfigDict(populate_by_name=True)

    value: str = Field(alias="Value")
    correlation_id: str = Field(alias="CorrelationId")

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)

    @classmethod
    def from_json(cls, body: str | bytes) -> FunctionResultMessage:
        return cls.model_validate_json(body)
