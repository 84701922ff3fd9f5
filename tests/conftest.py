"""Shared fixtures: an in-memory runtime and a scripted command executor."""

import logging
import re

import pytest

from fai.errors import ExternalCommandFailure
from fai.runtime.base import Availability, Capability, Conversation, ModelRuntime, UnavailableReason
from fai.tools import ToolHandle

ANSI_RE = re.compile(r'\033\[[0-9;]*m')


class FakeConversation(Conversation):
    """Records prompts and answers from the runtime's scripted replies."""

    def __init__(self, runtime, instructions, tools=()):
        super().__init__(instructions, tools)
        self.runtime = runtime
        self.prompts = []
        self.schema = None

    def respond(self, prompt):
        self.prompts.append(prompt)
        if self.runtime.error is not None:
            raise self.runtime.error
        return self.runtime.reply

    def respond_structured(self, prompt, json_schema):
        self.prompts.append(prompt)
        self.schema = json_schema
        if self.runtime.error is not None:
            raise self.runtime.error
        return self.runtime.structured_reply

    def stream(self, prompt):
        self.prompts.append(prompt)
        for snapshot in self.runtime.snapshots:
            yield snapshot
        if self.runtime.error is not None:
            raise self.runtime.error


class FakeRuntime(ModelRuntime):

    def __init__(self, available=True, tagging_available=True,
                 reason=UnavailableReason.ASSETS_PREPARING, detail=""):
        super().__init__("fake-model")
        self.available = available
        self.tagging_available = tagging_available
        self.reason = reason
        self.detail = detail
        self.reply = "Hello from the model"
        self.structured_reply = "{}"
        self.snapshots = []
        self.error = None
        self.conversations = []

    @property
    def name(self):
        return "Fake (fake-model)"

    def availability(self, capability=Capability.DEFAULT):
        available = self.available if capability is Capability.DEFAULT else self.tagging_available
        if available:
            return Availability.ok()
        return Availability.unavailable(self.reason, self.detail)

    def start_conversation(self, instructions=None, tools=()):
        conversation = FakeConversation(self, instructions, tools)
        self.conversations.append(conversation)
        return conversation


class FakeExecutor:
    """Returns canned output per argv; records every call."""

    def __init__(self, outputs=None, failures=None):
        self.outputs = outputs or {}
        self.failures = failures or set()
        self.calls = []

    def run(self, argv):
        key = tuple(argv)
        self.calls.append(list(argv))
        if key in self.failures:
            raise ExternalCommandFailure(' '.join(argv), "fatal: not a git repository", 128)
        return self.outputs.get(key, "")


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def logger():
    log = logging.getLogger("tests.fai")
    log.setLevel(logging.NOTSET)
    return log


@pytest.fixture
def runtime():
    return FakeRuntime()


@pytest.fixture
def echo_tool():
    return ToolHandle(
        name="echo",
        description="Echo the given text back.",
        parameters={"type": "object", "properties": {"text": {"type": "string"}}},
        invoke=lambda text="": f"echo: {text}",
    )


@pytest.fixture
def strip_ansi():
    """Return a function that removes ANSI escape codes."""
    def _strip(text: str) -> str:
        return ANSI_RE.sub('', text)
    return _strip
