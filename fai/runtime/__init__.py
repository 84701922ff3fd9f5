"""Model Runtime Package"""

import logging

from fai.runtime.base import (
    MAX_TOOL_ROUNDS, Availability, Capability, Conversation, ModelRuntime, UnavailableReason,
)
from fai.runtime.claude import ClaudeRuntime
from fai.runtime.ollama import OllamaRuntime

PROVIDERS = {
    "ollama": OllamaRuntime,
    "claude": ClaudeRuntime,
}

AUTO_DETECT_ORDER = ["ollama", "claude"]


def get_runtime(provider: str = "auto", model: str | None = None, tagging_model: str | None = None,
                host: str | None = None, timeout: int | None = None,
                logger: logging.Logger | None = None) -> ModelRuntime:
    """Build a runtime. 'auto' picks the first available provider, else Ollama."""
    logger = logger or logging.getLogger(__name__)

    def build(name: str) -> ModelRuntime:
        if name == "ollama":
            return OllamaRuntime(model=model, tagging_model=tagging_model, host=host,
                                 timeout=timeout, logger=logger)
        return ClaudeRuntime(model=model, tagging_model=tagging_model, timeout=timeout, logger=logger)

    if provider in PROVIDERS:
        return build(provider)

    if provider == "auto":
        candidates = [build(name) for name in AUTO_DETECT_ORDER]
        for runtime in candidates:
            if runtime.availability(Capability.DEFAULT).available:
                logger.debug("Auto-detected runtime: %s", runtime.name)
                return runtime
        # nothing available; the first candidate reports why
        return candidates[0]

    raise ValueError(f"Unknown provider: {provider}. Use 'ollama', 'claude', or 'auto'.")


__all__ = [
    "MAX_TOOL_ROUNDS",
    "Availability",
    "Capability",
    "Conversation",
    "ModelRuntime",
    "UnavailableReason",
    "ClaudeRuntime",
    "OllamaRuntime",
    "PROVIDERS",
    "get_runtime",
]
