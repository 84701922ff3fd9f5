"""Generation Session - conversation lifecycle on top of a ModelRuntime.

Invariants:
    - A non-empty tool set always gets a fresh conversation; tools are
      fixed per conversation, so changing them means starting over
    - Without tools, an existing conversation is reused and new instructions
      are only logged, never applied to it
    - stream() hands on_update only the newly appended suffix, in arrival order
    - After cancellation no further updates are delivered and no final text is returned
"""

import logging
import threading
from typing import Callable, Sequence, Type, TypeVar

from pydantic import BaseModel, ValidationError

from fai.errors import GenerationCancelled, SchemaDecodeFailure
from fai.log import preview
from fai.runtime.base import Conversation, ModelRuntime
from fai.tools import ToolHandle

T = TypeVar("T", bound=BaseModel)


class GenerationSession:
    """Batch, structured and streaming generation over one conversation context."""

    def __init__(self, runtime: ModelRuntime, tools: Sequence[ToolHandle] = (),
                 logger: logging.Logger | None = None):
        self.runtime = runtime
        self.tools = tuple(tools)
        self.logger = logger or logging.getLogger(__name__)
        self.current: Conversation | None = None

    @property
    def enabled_tools(self) -> list[str]:
        return [tool.name for tool in self.tools]

    def create_session(self, instructions: str | None = None,
                       tools: Sequence[ToolHandle] | None = None) -> Conversation:
        tool_set = self.tools if tools is None else tuple(tools)

        if tool_set:
            conversation = self.runtime.start_conversation(instructions=instructions, tools=tool_set)
            self.logger.debug("Created session with %d tools: %s",
                              len(tool_set), ", ".join(t.name for t in tool_set))
        elif self.current is not None:
            conversation = self.current
            self.logger.debug("Reusing existing session")
        else:
            conversation = self.runtime.start_conversation(instructions=instructions)
            self.logger.debug("Created session without tools")

        if instructions is not None:
            self.logger.debug("Session instructions set: %s", instructions)

        self.current = conversation
        return conversation

    def _log_request(self, kind: str, prompt: str, instructions: str | None) -> None:
        self.logger.debug("Starting %s", kind)
        self.logger.debug("Prompt length: %d characters", len(prompt))
        self.logger.debug("Prompt preview: %s", preview(prompt))
        if instructions is not None:
            self.logger.debug("System instructions: %s", instructions)

    def generate(self, prompt: str, instructions: str | None = None) -> str:
        self._log_request("response generation", prompt, instructions)
        conversation = self.create_session(instructions)

        response = conversation.respond(prompt)

        self.logger.debug("Response received, length: %d characters", len(response))
        self.logger.debug("Response preview: %s", preview(response))
        self.logger.info("Response generation completed successfully")
        return response

    def generate_structured(self, prompt: str, schema: Type[T], instructions: str | None = None) -> T:
        self._log_request(f"structured data generation: {schema.__name__}", prompt, instructions)
        conversation = self.create_session(instructions)

        raw = conversation.respond_structured(prompt, schema.model_json_schema())

        try:
            value = schema.model_validate_json(raw)
        except ValidationError as e:
            self.logger.debug("Structured output rejected: %s", preview(raw))
            raise SchemaDecodeFailure(
                f"Model output does not match {schema.__name__}: {e.error_count()} validation error(s)"
            ) from e

        self.logger.info("Structured data generation completed successfully")
        return value

    def stream(self, prompt: str, instructions: str | None = None,
               on_update: Callable[[str], None] | None = None,
               cancel_event: threading.Event | None = None) -> str:
        """Stream a reply, calling on_update with each newly appended piece.

        Returns the final aggregated text. Raises GenerationCancelled if
        cancel_event is set (or Ctrl-C arrives) before the stream ends.
        """
        self._log_request("streaming response", prompt, instructions)
        conversation = self.create_session(instructions)
        self.logger.debug("Session created, starting stream...")

        snapshots = conversation.stream(prompt)
        emitted = ""
        count = 0
        try:
            for snapshot in snapshots:
                if cancel_event is not None and cancel_event.is_set():
                    raise GenerationCancelled("Streaming was cancelled")
                count += 1
                self.logger.debug("Received partial response #%d (length: %d)", count, len(snapshot))
                if not snapshot.startswith(emitted):
                    self.logger.debug("Partial response #%d revised earlier output", count)
                delta = snapshot[len(emitted):]
                emitted = snapshot
                if delta and on_update is not None:
                    on_update(delta)
                if cancel_event is not None and cancel_event.is_set():
                    raise GenerationCancelled("Streaming was cancelled")
            if cancel_event is not None and cancel_event.is_set():
                # the reply already landed in the transcript
                conversation.discard_last_exchange()
                raise GenerationCancelled("Streaming was cancelled")
        except KeyboardInterrupt:
            raise GenerationCancelled("Streaming was interrupted") from None
        finally:
            snapshots.close()

        self.logger.debug("Stream completed with %d partial responses", count)
        self.logger.debug("Final response length: %d characters", len(emitted))
        self.logger.info("Streaming response completed successfully")
        return emitted
