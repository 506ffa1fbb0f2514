"""Tool catalog adaptation, tool hosts and the tool execution loop."""

from chorus_server.tools.adapter import (
    ToolDescriptor,
    parse_arguments,
    to_function_schema,
    to_function_schemas,
)
from chorus_server.tools.host import (
    CompositeToolHost,
    McpToolHost,
    ToolHost,
    ToolInvocationError,
)
from chorus_server.tools.loop import LoopOutcome, ToolExecutionLoop

__all__ = [
    "CompositeToolHost",
    "LoopOutcome",
    "McpToolHost",
    "ToolDescriptor",
    "ToolExecutionLoop",
    "ToolHost",
    "ToolInvocationError",
    "parse_arguments",
    "to_function_schema",
    "to_function_schemas",
]
