"""Model Runtime Base Classes and Shared Code"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Generator, Mapping, Sequence

from fai.tools import ToolHandle

# Upper bound on model -> tool -> model round trips within one request
MAX_TOOL_ROUNDS = 5


class Capability(Enum):
    DEFAULT = "default"
    TAGGING = "tagging"


class UnavailableReason(Enum):
    DEVICE_INELIGIBLE = "deviceIneligible"
    FEATURE_DISABLED = "featureDisabled"
    ASSETS_PREPARING = "assetsPreparing"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class Availability:
    """Result of probing one capability. Absence is a normal result."""
    available: bool
    reason: UnavailableReason | None = None
    detail: str = ""

    @classmethod
    def ok(cls) -> 'Availability':
        return cls(available=True)

    @classmethod
    def unavailable(cls, reason: UnavailableReason, detail: str = "") -> 'Availability':
        return cls(available=False, reason=reason, detail=detail)


class Conversation(ABC):
    """One conversation with the runtime: instructions, bound tools, transcript.

    The tool set is fixed for the life of the conversation.
    """

    def __init__(self, instructions: str | None, tools: Sequence[ToolHandle] = ()):
        self.instructions = instructions
        self.tools = tuple(tools)
        self.messages: list = []
        self._exchange_start = 0

    @property
    def tool_names(self) -> list[str]:
        return [tool.name for tool in self.tools]

    def find_tool(self, name: str) -> ToolHandle | None:
        for tool in self.tools:
            if tool.name == name:
                return tool
        return None

    def discard_last_exchange(self) -> None:
        """Drop the most recent prompt and everything after it from the transcript."""
        del self.messages[self._exchange_start:]

    @abstractmethod
    def respond(self, prompt: str) -> str:
        """Single request/response exchange. Returns the full reply text."""

    @abstractmethod
    def respond_structured(self, prompt: str, json_schema: Mapping[str, Any]) -> str:
        """Ask for output conforming to json_schema. Returns raw JSON text."""

    @abstractmethod
    def stream(self, prompt: str) -> Generator[str, None, None]:
        """Yield cumulative snapshots of the reply; each extends the previous."""


class ModelRuntime(ABC):
    """Abstract base for generation runtimes."""

    def __init__(self, model: str, tagging_model: str | None = None, logger: logging.Logger | None = None):
        self.model = model
        self.tagging_model = tagging_model or model
        self.logger = logger or logging.getLogger(__name__)

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @abstractmethod
    def availability(self, capability: Capability = Capability.DEFAULT) -> Availability:
        """Probe a capability. Must not raise."""

    @abstractmethod
    def start_conversation(self, instructions: str | None = None,
                           tools: Sequence[ToolHandle] = ()) -> Conversation:
        pass
