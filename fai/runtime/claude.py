"""Claude (Anthropic) Runtime"""

import importlib.util
import json
import os
from contextlib import contextmanager
from typing import Any, Iterator, Mapping, Sequence

from fai.errors import GenerationFailure, RuntimeUnavailable, ToolInvocationFailure
from fai.runtime.base import (
    MAX_TOOL_ROUNDS, Availability, Capability, Conversation, ModelRuntime, UnavailableReason,
)
from fai.tools import ToolHandle

STRUCTURED_TOOL_NAME = "structured_output"


class ClaudeRuntime(ModelRuntime):
    """Claude API runtime. Requires ANTHROPIC_API_KEY env var."""

    DEFAULT_MODEL = "claude-sonnet-4-20250514"
    DEFAULT_TAGGING_MODEL = "claude-3-5-haiku-latest"
    MAX_TOKENS = 1000
    TEMPERATURE = 0.4

    def __init__(self, model: str | None = None, tagging_model: str | None = None,
                 api_key: str | None = None, timeout: int | None = None, logger=None):
        super().__init__(model or self.DEFAULT_MODEL, tagging_model or self.DEFAULT_TAGGING_MODEL, logger)
        self.api_key = api_key or os.environ.get("ANTHROPIC_API_KEY")
        self.timeout = timeout
        self._client = None

    @property
    def name(self) -> str:
        return f"Claude ({self.model})"

    def availability(self, capability: Capability = Capability.DEFAULT) -> Availability:
        if importlib.util.find_spec("anthropic") is None:
            return Availability.unavailable(
                UnavailableReason.DEVICE_INELIGIBLE, "Anthropic SDK not installed. Run: pip install anthropic")
        if not self.api_key:
            return Availability.unavailable(
                UnavailableReason.FEATURE_DISABLED, "No API key found. Set ANTHROPIC_API_KEY.")
        return Availability.ok()

    @property
    def client(self):
        if self._client is None:
            if not self.api_key:
                raise RuntimeUnavailable(
                    "No API key found. Set ANTHROPIC_API_KEY environment variable:\n"
                    "  export ANTHROPIC_API_KEY='your-key-here'"
                )
            try:
                from anthropic import Anthropic
            except ImportError as e:
                raise RuntimeUnavailable("Anthropic SDK not installed. Run:\n  pip install anthropic") from e
            kwargs = {"api_key": self.api_key}
            if self.timeout:
                kwargs["timeout"] = float(self.timeout)
            self._client = Anthropic(**kwargs)
        return self._client

    @contextmanager
    def translate_errors(self):
        try:
            from anthropic import APIError, AuthenticationError
        except ImportError as e:
            raise RuntimeUnavailable("Anthropic SDK not installed. Run:\n  pip install anthropic") from e

        try:
            yield
        except AuthenticationError as e:
            raise GenerationFailure("Invalid API key. Check your ANTHROPIC_API_KEY.") from e
        except APIError as e:
            raise GenerationFailure(f"Claude API error: {e.message}") from e

    def request_kwargs(self, system: str | None, messages: list, tools: list[dict]) -> dict:
        kwargs: dict[str, Any] = {
            "model": self.model,
            "max_tokens": self.MAX_TOKENS,
            "temperature": self.TEMPERATURE,
            "messages": messages,
        }
        if system:
            kwargs["system"] = system
        if tools:
            kwargs["tools"] = tools
        return kwargs

    def start_conversation(self, instructions: str | None = None,
                           tools: Sequence[ToolHandle] = ()) -> 'ClaudeConversation':
        return ClaudeConversation(self, instructions, tools)


def _text_of(content) -> str:
    return "".join(block.text for block in content if block.type == "text")


class ClaudeConversation(Conversation):
    """Transcript kept as the Messages API message list."""

    def __init__(self, runtime: ClaudeRuntime, instructions: str | None, tools: Sequence[ToolHandle] = ()):
        super().__init__(instructions, tools)
        self.runtime = runtime

    def _tool_specs(self) -> list[dict]:
        return [
            {"name": tool.name, "description": tool.description, "input_schema": dict(tool.parameters)}
            for tool in self.tools
        ]

    def _tool_results(self, content) -> dict:
        results = []
        for block in content:
            if block.type != "tool_use":
                continue
            tool = self.find_tool(block.name)
            if tool is None:
                raise ToolInvocationFailure(block.name, "model requested a tool that is not enabled")
            self.runtime.logger.debug("Calling tool %s with %s", block.name, block.input)
            results.append({"type": "tool_result", "tool_use_id": block.id, "content": tool.call(block.input)})
        return {"role": "user", "content": results}

    def respond(self, prompt: str) -> str:
        mark = self._exchange_start = len(self.messages)
        self.messages.append({"role": "user", "content": prompt})
        try:
            with self.runtime.translate_errors():
                for _ in range(MAX_TOOL_ROUNDS + 1):
                    response = self.runtime.client.messages.create(
                        **self.runtime.request_kwargs(self.instructions, self.messages, self._tool_specs()))
                    self.messages.append({"role": "assistant", "content": response.content})
                    if response.stop_reason != "tool_use":
                        return _text_of(response.content).strip()
                    self.messages.append(self._tool_results(response.content))
            raise GenerationFailure(f"Gave up after {MAX_TOOL_ROUNDS} rounds of tool calls")
        except BaseException:
            del self.messages[mark:]
            raise

    def respond_structured(self, prompt: str, json_schema: Mapping[str, Any]) -> str:
        mark = self._exchange_start = len(self.messages)
        self.messages.append({"role": "user", "content": prompt})
        output_tool = {
            "name": STRUCTURED_TOOL_NAME,
            "description": "Return the answer as data matching this schema.",
            "input_schema": dict(json_schema),
        }
        try:
            with self.runtime.translate_errors():
                kwargs = self.runtime.request_kwargs(self.instructions, self.messages, [output_tool])
                kwargs["tool_choice"] = {"type": "tool", "name": STRUCTURED_TOOL_NAME}
                response = self.runtime.client.messages.create(**kwargs)
            for block in response.content:
                if block.type == "tool_use" and block.name == STRUCTURED_TOOL_NAME:
                    text = json.dumps(block.input)
                    # stored as text so the transcript never holds an unanswered tool_use
                    self.messages.append({"role": "assistant", "content": text})
                    return text
            raise GenerationFailure("Claude returned no structured output")
        except BaseException:
            del self.messages[mark:]
            raise

    def stream(self, prompt: str) -> Iterator[str]:
        mark = self._exchange_start = len(self.messages)
        self.messages.append({"role": "user", "content": prompt})
        text = ""
        try:
            with self.runtime.translate_errors():
                for _ in range(MAX_TOOL_ROUNDS + 1):
                    kwargs = self.runtime.request_kwargs(self.instructions, self.messages, self._tool_specs())
                    with self.runtime.client.messages.stream(**kwargs) as stream:
                        for piece in stream.text_stream:
                            if piece:
                                text += piece
                                yield text
                        final = stream.get_final_message()
                    self.messages.append({"role": "assistant", "content": final.content})
                    if final.stop_reason != "tool_use":
                        return
                    self.messages.append(self._tool_results(final.content))
            raise GenerationFailure(f"Gave up after {MAX_TOOL_ROUNDS} rounds of tool calls")
        except BaseException:
            del self.messages[mark:]
            raise
