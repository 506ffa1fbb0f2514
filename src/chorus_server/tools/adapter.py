"""Conversion between tool host descriptors and the function-calling schema.

Tool hosts describe tools as ``name``/``description``/``parameter_schema``/
``required_parameters``. Tool-calling providers expect the OpenAI-style
function schema:

{
    "type": "function",
    "function": {
        "name": "...",
        "description": "...",
        "parameters": {"type": "object", "properties": {...}, "required": [...]}
    }
}
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ToolDescriptor:
    """A tool as advertised by a tool host.

    Attributes:
        name: Unique tool name
        description: Human-readable description shown to the model
        parameter_schema: JSON-schema ``properties`` mapping
        required_parameters: Names of required parameters
    """

    name: str
    description: str = ""
    parameter_schema: dict[str, Any] = field(default_factory=dict)
    required_parameters: frozenset[str] = field(default_factory=frozenset)

    @classmethod
    def from_input_schema(
        cls, name: str, description: str | None, input_schema: dict[str, Any] | None
    ) -> "ToolDescriptor":
        """Build a descriptor from a JSON-schema object (e.g., MCP inputSchema)."""
        schema = input_schema or {}
        return cls(
            name=name,
            description=description or "",
            parameter_schema=dict(schema.get("properties") or {}),
            required_parameters=frozenset(schema.get("required") or ()),
        )


def to_function_schema(descriptor: ToolDescriptor) -> dict[str, Any]:
    """Convert a tool descriptor into the function-calling schema.

    Required parameters are emitted sorted so the output is deterministic.
    """
    return {
        "type": "function",
        "function": {
            "name": descriptor.name,
            "description": descriptor.description,
            "parameters": {
                "type": "object",
                "properties": descriptor.parameter_schema,
                "required": sorted(descriptor.required_parameters),
            },
        },
    }


def to_function_schemas(descriptors: list[ToolDescriptor]) -> list[dict[str, Any]]:
    return [to_function_schema(descriptor) for descriptor in descriptors]


def parse_arguments(raw_arguments: str | None) -> dict[str, Any]:
    """Parse tool call arguments emitted by the model.

    A malformed call is still dispatched to the tool host, which reports its
    own validation errors, so this never raises.

    Args:
        raw_arguments: JSON text produced by the model

    Returns:
        The decoded object, or an empty dict when the text is not a JSON object
    """
    if not raw_arguments or not raw_arguments.strip():
        return {}

    try:
        parsed = json.loads(raw_arguments)
    except (json.JSONDecodeError, TypeError) as e:
        logger.warning(f"Could not parse tool arguments, using empty map: {e}")
        return {}

    if not isinstance(parsed, dict):
        logger.warning(
            f"Tool arguments are not a JSON object ({type(parsed).__name__}), "
            "using empty map"
        )
        return {}

    return parsed
