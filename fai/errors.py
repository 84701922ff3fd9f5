"""Error Types and User-Facing Classification"""

from dataclasses import dataclass
from enum import Enum


class FaiError(Exception):
    """Base for every error fai reports to the user."""
    pass


class GenerationError(FaiError):
    """Raised when the model runtime cannot produce a response."""
    pass


class RuntimeUnavailable(GenerationError):
    """Raised when the model capability is absent."""
    pass


class GenerationFailure(GenerationError):
    """Raised when the runtime reports an error (filtered content, context too large, ...)."""
    pass


class SchemaDecodeFailure(GenerationError):
    """Raised when structured output does not conform to the requested schema."""
    pass


class GenerationCancelled(GenerationError):
    """Raised when a streaming call is cancelled before it completes."""
    pass


class ToolInvocationFailure(FaiError):
    """Raised when a bound tool fails during a call."""

    def __init__(self, tool_name: str, message: str):
        super().__init__(f"{tool_name}: {message}")
        self.tool_name = tool_name


class UnknownToolError(ToolInvocationFailure):
    """Raised by strict tool resolution when a name is not registered."""

    def __init__(self, tool_name: str):
        super().__init__(tool_name, "no such tool")


class ExternalCommandFailure(FaiError):
    """Raised when an external process exits non-zero or cannot be started."""

    def __init__(self, command: str, output: str = "", exit_code: int | None = None):
        message = f"Command failed: {command}"
        if exit_code is not None:
            message += f" (exit {exit_code})"
        if output:
            message += f"\n{output}"
        super().__init__(message)
        self.command = command
        self.output = output
        self.exit_code = exit_code


class NoStagedChanges(FaiError):
    """Raised when there is nothing staged to describe."""

    def __init__(self):
        super().__init__("No staged changes. Run 'git add' first.")


class ErrorCategory(Enum):
    GENERATION = "generation"
    TOOL_INVOCATION = "tool_invocation"
    UNEXPECTED = "unexpected"


@dataclass(frozen=True)
class ErrorReport:
    """User-facing description of a failure. Never used to decide retries."""
    category: ErrorCategory
    message: str

    def __str__(self) -> str:
        if self.category is ErrorCategory.GENERATION:
            return f"Error: An error occurred during generation - {self.message}"
        if self.category is ErrorCategory.TOOL_INVOCATION:
            return f"Error: An error occurred during tool call - {self.message}"
        return f"Unexpected error: {self.message}"


def classify_error(error: BaseException) -> ErrorReport:
    """Map any exception onto one of the user-facing categories."""
    message = str(error) or type(error).__name__
    if isinstance(error, GenerationError):
        return ErrorReport(ErrorCategory.GENERATION, message)
    if isinstance(error, ToolInvocationFailure):
        return ErrorReport(ErrorCategory.TOOL_INVOCATION, message)
    return ErrorReport(ErrorCategory.UNEXPECTED, message)


__all__ = [
    "FaiError",
    "GenerationError",
    "RuntimeUnavailable",
    "GenerationFailure",
    "SchemaDecodeFailure",
    "GenerationCancelled",
    "ToolInvocationFailure",
    "UnknownToolError",
    "ExternalCommandFailure",
    "NoStagedChanges",
    "ErrorCategory",
    "ErrorReport",
    "classify_error",
]
