"""
Language-model provider boundary.

The agent speaks to any object with ``complete(messages, tools) -> LLMReply``.
OpenAIToolProvider is the production implementation over the openai client.
"""

import json
import logging
from typing import List, Optional, Protocol

from openai import OpenAI, OpenAIError
from pydantic import BaseModel

from resource_wizard.errors import AgentError

logger = logging.getLogger(__name__)


class ToolInvocation(BaseModel):
    name: str
    arguments: dict


class LLMReply(BaseModel):
    text: str = ""
    tool_calls: List[ToolInvocation] = []


class LLMProvider(Protocol):
    def complete(self, messages: List[dict], tools: List[dict]) -> LLMReply:
        ...


class OpenAIToolProvider:
    """Tool-calling chat completions. Never retries; failures surface as AgentError."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "gpt-4o-mini",
        base_url: Optional[str] = None,
        temperature: float = 0.2,
    ):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url
        self.temperature = temperature
        self._client: Optional[OpenAI] = None

    @property
    def client(self) -> OpenAI:
        if self._client is None:
            self._client = OpenAI(api_key=self.api_key, base_url=self.base_url, max_retries=0)
        return self._client

    def complete(self, messages: List[dict], tools: List[dict]) -> LLMReply:
        try:
            completion = self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                tools=tools,
                tool_choice="auto",
                temperature=self.temperature,
            )
        except OpenAIError as e:
            logger.error("Language model call failed: %s", e)
            raise AgentError("The assistant is unavailable right now") from e

        if not completion.choices:
            raise AgentError("The assistant returned an empty response")
        message = completion.choices[0].message

        calls = []
        for call in message.tool_calls or []:
            try:
                arguments = json.loads(call.function.arguments or "{}")
            except json.JSONDecodeError as e:
                raise AgentError(
                    f"The assistant returned malformed arguments for {call.function.name}"
                ) from e
            if not isinstance(arguments, dict):
                raise AgentError(
                    f"The assistant returned malformed arguments for {call.function.name}"
                )
            calls.append(ToolInvocation(name=call.function.name, arguments=arguments))

        return LLMReply(text=message.content or "", tool_calls=calls)
