"""Tool Registry - named capabilities the model may call during generation.

Invariants:
    - Tool names are unique; a registry is immutable after construction
    - list_names() is sorted ascending
    - resolve_all() drops unknown names unless strict=True
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Mapping

from fai.errors import ToolInvocationFailure, UnknownToolError


@dataclass(frozen=True)
class ToolHandle:
    """A tool as the runtime sees it: name, description, JSON Schema parameters."""
    name: str
    description: str
    parameters: Mapping[str, Any]
    invoke: Callable[..., str] = field(compare=False, repr=False)

    def call(self, arguments: Mapping[str, Any] | None = None) -> str:
        """Invoke the tool, wrapping any failure in ToolInvocationFailure."""
        try:
            result = self.invoke(**dict(arguments or {}))
        except ToolInvocationFailure:
            raise
        except Exception as e:
            raise ToolInvocationFailure(self.name, str(e) or type(e).__name__) from e
        return result if isinstance(result, str) else str(result)


class ToolRegistry:
    """Fixed set of tools, looked up by name."""

    def __init__(self, tools: Iterable[ToolHandle] = (), logger: logging.Logger | None = None):
        self.logger = logger or logging.getLogger(__name__)
        self._tools: dict[str, ToolHandle] = {}
        for tool in tools:
            if tool.name in self._tools:
                raise ValueError(f"Duplicate tool name: {tool.name}")
            self._tools[tool.name] = tool

    def __len__(self) -> int:
        return len(self._tools)

    def list_names(self) -> list[str]:
        return sorted(self._tools)

    def find(self, name: str) -> ToolHandle | None:
        return self._tools.get(name)

    def resolve_all(self, names: Iterable[str], strict: bool = False) -> list[ToolHandle]:
        """Map names to handles in the order given.

        Unknown names are skipped (and logged) by default; strict=True raises
        UnknownToolError instead.
        """
        handles = []
        for name in names:
            tool = self.find(name)
            if tool is None:
                if strict:
                    raise UnknownToolError(name)
                self.logger.debug("Ignoring unknown tool: %s", name)
                continue
            handles.append(tool)
        return handles


def default_registry(git=None, logger: logging.Logger | None = None) -> ToolRegistry:
    """Registry holding the built-in tools."""
    from fai.tools.builtin import builtin_tools
    return ToolRegistry(builtin_tools(git=git), logger=logger)


__all__ = [
    "ToolHandle",
    "ToolRegistry",
    "default_registry",
]
