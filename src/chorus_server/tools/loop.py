"""Bounded tool execution loop.

The loop alternates between asking a tool-calling provider for the next
assistant turn and executing the tool calls that turn requests:

    AwaitingModel -> ExecutingTools -> AwaitingModel -> ... -> Done

It stops as soon as the model answers without tool calls, when the provider
returns an error result, or after ``max_iterations`` provider round-trips.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, replace
from typing import Any

from chorus_server.providers.base import ToolCallingProviderClient, elapsed_ms
from chorus_server.providers.types import TimedResult, Usage
from chorus_server.sessions.types import Message, ToolCallRequest, ToolCallResult
from chorus_server.tools.adapter import parse_arguments
from chorus_server.tools.host import ToolHost

logger = logging.getLogger(__name__)

DEFAULT_MAX_ITERATIONS = 5
MAX_ITERATIONS_MESSAGE = (
    "Maximum tool calling iterations reached. Please try rephrasing your question."
)


@dataclass
class LoopOutcome:
    """Result of one run of the loop.

    Attributes:
        result: Final timed result with usage summed over all round-trips
        transcript: Working history sent on the last round-trip, including
            assistant tool-call turns and tool results
        iterations: Number of provider round-trips performed
    """

    result: TimedResult
    transcript: list[Message]
    iterations: int


class ToolExecutionLoop:
    """Drive a provider through tool calls until it produces final text."""

    def __init__(self, max_iterations: int = DEFAULT_MAX_ITERATIONS) -> None:
        if max_iterations < 1:
            raise ValueError("max_iterations must be at least 1")
        self.max_iterations = max_iterations

    async def run(
        self,
        client: ToolCallingProviderClient,
        history: list[Message],
        tools: list[dict[str, Any]],
        tool_host: ToolHost,
        system_prompt: str = "",
        temperature: float = 0.7,
        max_tokens: int | None = None,
        model_override: str | None = None,
    ) -> LoopOutcome:
        """Run the loop.

        The given history is not modified; tool turns accumulate in a
        working copy returned as ``LoopOutcome.transcript``.

        Args:
            client: Provider that supports tool calling
            history: Conversation so far, ending with the user turn
            tools: Tool catalog in function-calling schema
            tool_host: Host that executes the requested tools

        Returns:
            LoopOutcome with the final result
        """
        transcript = list(history)
        usage: Usage | None = None
        last_text = ""
        model_name = model_override or client.default_model
        start = time.perf_counter()

        for iteration in range(1, self.max_iterations + 1):
            logger.info(f"Tool iteration {iteration}/{self.max_iterations}")

            result, tool_calls = await client.send_with_tools(
                transcript,
                tools,
                system_prompt=system_prompt,
                temperature=temperature,
                max_tokens=max_tokens,
                model_override=model_override,
            )

            if result.is_error:
                logger.error(f"Provider failed during tool loop: {result.text}")
                return LoopOutcome(
                    replace(result, response_time_ms=elapsed_ms(start)),
                    transcript,
                    iteration,
                )

            usage = result.usage if usage is None else usage + result.usage
            model_name = result.model_name or model_name
            if result.text:
                last_text = result.text

            if not tool_calls:
                return LoopOutcome(
                    TimedResult(
                        text=result.text,
                        usage=usage,
                        response_time_ms=elapsed_ms(start),
                        model_name=model_name,
                    ),
                    transcript,
                    iteration,
                )

            transcript.append(Message.assistant(result.text, tool_calls))
            for call in tool_calls:
                content = await self._execute(tool_host, call)
                transcript.append(Message.tool(ToolCallResult(call.id, content)))

        logger.warning(
            f"Tool loop stopped after {self.max_iterations} iterations without a final answer"
        )
        return LoopOutcome(
            TimedResult(
                text=last_text or MAX_ITERATIONS_MESSAGE,
                usage=usage,
                response_time_ms=elapsed_ms(start),
                model_name=model_name,
            ),
            transcript,
            self.max_iterations,
        )

    async def _execute(self, tool_host: ToolHost, call: ToolCallRequest) -> str:
        """Invoke one tool call; failures become tool-result text.

        The call is shielded so a cancelled turn lets an already dispatched
        invocation finish. Its result is then discarded.
        """
        arguments = parse_arguments(call.raw_arguments)
        logger.info(f"Executing tool '{call.tool_name}' with arguments {arguments}")

        try:
            content = await asyncio.shield(tool_host.call_tool(call.tool_name, arguments))
        except Exception as e:
            logger.warning(f"Tool '{call.tool_name}' failed: {e}")
            return f"error invoking {call.tool_name}: {e}"

        logger.debug(f"Tool '{call.tool_name}' returned {len(content)} chars")
        return content
