'''
Tool registry: a lookup table from tool name to descriptor and handler.

Tool sets are classes whose methods are marked with @tool. Instantiating a
tool set with its generator and the shared OutputPaths binds the handlers,
and ToolRegistry.register_all() adds them to the table.
'''

from dataclasses import dataclass
from typing import Any, Callable, Iterator, Optional

from .validation import check_schema

import logging
logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Tool:
    name: str
    description: str
    input_schema: dict
    handler: Callable[[dict], str]

    def descriptor(self) -> dict:
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema,
        }


def tool(name: str, description: str, input_schema: dict):
    """Mark a ToolSet method as the handler for tool `name`."""
    def decorator(func):
        func._tool_spec = (name, description, input_schema)
        return func
    return decorator


class ToolSet:
    """A group of tools sharing one generator and the output path policy."""

    def __init__(self, generator: Any, paths: Any):
        self.generator = generator
        self.paths = paths

    def tools(self) -> list[Tool]:
        """Bound tools in class definition order."""
        found = []
        for attr_name, attr in vars(type(self)).items():
            spec = getattr(attr, "_tool_spec", None)
            if spec is None:
                continue
            name, description, input_schema = spec
            found.append(Tool(name, description, input_schema, getattr(self, attr_name)))
        return found


class ToolRegistry:
    def __init__(self):
        self._tools: dict[str, Tool] = {}

    def register(self, item: Tool) -> None:
        if item.name in self._tools:
            raise ValueError(f"Tool already registered: {item.name}")
        check_schema(item.input_schema)
        self._tools[item.name] = item

    def register_all(self, toolset: ToolSet) -> int:
        tools = toolset.tools()
        for item in tools:
            self.register(item)
        logger.debug(f"Registered {len(tools)} tools from {type(toolset).__name__}")
        return len(tools)

    def get(self, name: str) -> Optional[Tool]:
        return self._tools.get(name)

    def names(self) -> list[str]:
        return list(self._tools)

    def list_tools(self) -> list[dict]:
        return [t.descriptor() for t in self._tools.values()]

    def __contains__(self, name: str) -> bool:
        return name in self._tools

    def __iter__(self) -> Iterator[Tool]:
        return iter(self._tools.values())

    def __len__(self) -> int:
        return len(self._tools)
