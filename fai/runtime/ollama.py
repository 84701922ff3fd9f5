"""Ollama Runtime for Local Models"""

import http.client
import json
import socket
import urllib.error
import urllib.request
from contextlib import contextmanager
from typing import Any, Iterator, Mapping, Sequence

from fai.errors import GenerationFailure, ToolInvocationFailure
from fai.runtime.base import (
    MAX_TOOL_ROUNDS, Availability, Capability, Conversation, ModelRuntime, UnavailableReason,
)
from fai.tools import ToolHandle


class OllamaRuntime(ModelRuntime):
    """Ollama runtime for local models. Requires: ollama serve"""

    DEFAULT_MODEL = "llama3.2:3b"
    DEFAULT_HOST = "http://localhost:11434"
    DEFAULT_TIMEOUT = 300  # 5 minutes for CPU inference
    PROBE_TIMEOUT = 5
    KEEP_ALIVE = "10m"
    TEMPERATURE = 0.4

    def __init__(self, model: str | None = None, tagging_model: str | None = None,
                 host: str | None = None, timeout: int | None = None, logger=None):
        super().__init__(model or self.DEFAULT_MODEL, tagging_model, logger)
        host = host or self.DEFAULT_HOST
        if not host.startswith(('http://', 'https://')):
            host = f"http://{host}"
        self.host = host.rstrip('/')
        self.timeout = timeout or self.DEFAULT_TIMEOUT

    @property
    def name(self) -> str:
        return f"Ollama ({self.model})"

    # -- availability -------------------------------------------------------

    def _installed_models(self) -> list[str]:
        req = urllib.request.Request(f"{self.host}/api/tags")
        with urllib.request.urlopen(req, timeout=self.PROBE_TIMEOUT) as response:
            data = json.loads(response.read().decode('utf-8'))
        return [m.get('name', '') for m in data.get('models', [])]

    @staticmethod
    def _model_matches(wanted: str, installed: str) -> bool:
        return installed == wanted or (':' not in wanted and installed == f"{wanted}:latest")

    def availability(self, capability: Capability = Capability.DEFAULT) -> Availability:
        model = self.model if capability is Capability.DEFAULT else self.tagging_model
        try:
            installed = self._installed_models()
        except (urllib.error.URLError, OSError, http.client.HTTPException) as e:
            self.logger.debug("Ollama probe failed: %s", e)
            return Availability.unavailable(
                UnavailableReason.FEATURE_DISABLED, "Ollama not running. Start with: ollama serve")
        except (json.JSONDecodeError, AttributeError) as e:
            self.logger.debug("Unexpected /api/tags payload: %s", e)
            return Availability.unavailable(UnavailableReason.UNKNOWN, "Invalid response from Ollama")

        if not any(self._model_matches(model, name) for name in installed):
            return Availability.unavailable(
                UnavailableReason.ASSETS_PREPARING, f"Model '{model}' not found. Run: ollama pull {model}")
        return Availability.ok()

    # -- transport ----------------------------------------------------------

    def _payload(self, messages: list[dict], tools: Sequence[ToolHandle], stream: bool,
                 fmt: Mapping[str, Any] | None = None) -> bytes:
        payload: dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "stream": stream,
            "keep_alive": self.KEEP_ALIVE,
            "options": {"temperature": self.TEMPERATURE},
        }
        if tools:
            payload["tools"] = [
                {
                    "type": "function",
                    "function": {
                        "name": tool.name,
                        "description": tool.description,
                        "parameters": dict(tool.parameters),
                    },
                }
                for tool in tools
            ]
        if fmt is not None:
            payload["format"] = dict(fmt)
        return json.dumps(payload).encode('utf-8')

    def _request(self, data: bytes) -> urllib.request.Request:
        return urllib.request.Request(
            f"{self.host}/api/chat", data=data, headers={"Content-Type": "application/json"})

    @contextmanager
    def _translate_errors(self):
        """Turn transport failures into GenerationFailure."""
        try:
            yield
        except urllib.error.HTTPError as e:
            if e.code == 404:
                raise GenerationFailure(f"Model '{self.model}' not found. Run: ollama pull {self.model}") from e
            raise GenerationFailure(f"Ollama error ({e.code}): {e.reason}") from e
        except urllib.error.URLError as e:
            if isinstance(e.reason, socket.timeout):
                raise GenerationFailure(
                    f"Request timed out after {self.timeout}s. Increase timeout: set FAI_TIMEOUT=600") from e
            if "Connection refused" in str(e):
                raise GenerationFailure("Ollama not running. Start with: ollama serve") from e
            raise GenerationFailure(f"Ollama request failed: {e}") from e
        except socket.timeout as e:
            raise GenerationFailure(
                f"Request timed out after {self.timeout}s. Increase timeout: set FAI_TIMEOUT=600") from e
        except json.JSONDecodeError as e:
            raise GenerationFailure("Invalid response from Ollama.") from e
        except http.client.HTTPException as e:
            raise GenerationFailure(f"Incomplete response from Ollama: {e}. The model may have run out of memory.") from e
        except ConnectionError as e:
            raise GenerationFailure(f"Connection to Ollama lost: {e}. Check that 'ollama serve' is still running.") from e

    def chat(self, messages: list[dict], tools: Sequence[ToolHandle] = (),
             fmt: Mapping[str, Any] | None = None) -> dict:
        """Single non-streaming /api/chat call."""
        with self._translate_errors():
            req = self._request(self._payload(messages, tools, stream=False, fmt=fmt))
            with urllib.request.urlopen(req, timeout=self.timeout) as response:
                data = json.loads(response.read().decode('utf-8'))
        if data.get("error"):
            raise GenerationFailure(f"Ollama error: {data['error']}")
        return data

    def chat_stream(self, messages: list[dict], tools: Sequence[ToolHandle] = ()) -> Iterator[dict]:
        """Streaming /api/chat call, one decoded chunk per line."""
        with self._translate_errors():
            req = self._request(self._payload(messages, tools, stream=True))
            with urllib.request.urlopen(req, timeout=self.timeout) as response:
                for raw in response:
                    line = raw.decode('utf-8').strip()
                    if not line:
                        continue
                    chunk = json.loads(line)
                    if chunk.get("error"):
                        raise GenerationFailure(f"Ollama error: {chunk['error']}")
                    yield chunk
                    if chunk.get("done"):
                        return

    def start_conversation(self, instructions: str | None = None,
                           tools: Sequence[ToolHandle] = ()) -> 'OllamaConversation':
        return OllamaConversation(self, instructions, tools)


class OllamaConversation(Conversation):
    """Transcript kept as the /api/chat message list."""

    def __init__(self, runtime: OllamaRuntime, instructions: str | None, tools: Sequence[ToolHandle] = ()):
        super().__init__(instructions, tools)
        self.runtime = runtime
        if instructions:
            self.messages.append({"role": "system", "content": instructions})

    def _run_tool_calls(self, calls: list[dict]) -> None:
        for call in calls:
            function = call.get("function", {})
            name = function.get("name", "")
            arguments = function.get("arguments") or {}
            if isinstance(arguments, str):
                try:
                    arguments = json.loads(arguments)
                except json.JSONDecodeError as e:
                    raise ToolInvocationFailure(name, f"invalid arguments: {arguments}") from e
            tool = self.find_tool(name)
            if tool is None:
                raise ToolInvocationFailure(name, "model requested a tool that is not enabled")
            self.runtime.logger.debug("Calling tool %s with %s", name, arguments)
            result = tool.call(arguments)
            self.messages.append({"role": "tool", "content": result, "tool_name": name})

    def _exchange(self, prompt: str, fmt: Mapping[str, Any] | None = None) -> str:
        mark = self._exchange_start = len(self.messages)
        self.messages.append({"role": "user", "content": prompt})
        try:
            for _ in range(MAX_TOOL_ROUNDS + 1):
                data = self.runtime.chat(self.messages, self.tools, fmt=fmt)
                message = data.get("message") or {}
                reply = {"role": "assistant", "content": message.get("content", "")}
                calls = message.get("tool_calls") or []
                if calls:
                    reply["tool_calls"] = calls
                self.messages.append(reply)
                if not calls:
                    return reply["content"].strip()
                self._run_tool_calls(calls)
            raise GenerationFailure(f"Gave up after {MAX_TOOL_ROUNDS} rounds of tool calls")
        except BaseException:
            del self.messages[mark:]
            raise

    def respond(self, prompt: str) -> str:
        return self._exchange(prompt)

    def respond_structured(self, prompt: str, json_schema: Mapping[str, Any]) -> str:
        return self._exchange(prompt, fmt=json_schema)

    def stream(self, prompt: str) -> Iterator[str]:
        mark = self._exchange_start = len(self.messages)
        self.messages.append({"role": "user", "content": prompt})
        text = ""
        try:
            for _ in range(MAX_TOOL_ROUNDS + 1):
                round_text = ""
                calls: list[dict] = []
                for chunk in self.runtime.chat_stream(self.messages, self.tools):
                    message = chunk.get("message") or {}
                    piece = message.get("content", "")
                    calls.extend(message.get("tool_calls") or [])
                    if piece:
                        round_text += piece
                        text += piece
                        yield text
                reply = {"role": "assistant", "content": round_text}
                if calls:
                    reply["tool_calls"] = calls
                self.messages.append(reply)
                if not calls:
                    return
                self._run_tool_calls(calls)
            raise GenerationFailure(f"Gave up after {MAX_TOOL_ROUNDS} rounds of tool calls")
        except BaseException:
            del self.messages[mark:]
            raise
