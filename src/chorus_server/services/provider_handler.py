"""Per-provider conversation orchestrator.

A ProviderHandler owns the history of one (session, provider) pair and
drives one full user-turn-to-assistant-turn cycle: append the user message,
summarize when the threshold is reached, send (through the tool execution
loop when tools are enabled and supported), then append the reply.
"""

import logging

from chorus_server.providers.base import ProviderClient, supports_tool_calling
from chorus_server.providers.errors import ProviderErrorKind
from chorus_server.providers.types import AiProvider, TimedResult
from chorus_server.services.summarization import Summarizer
from chorus_server.sessions.history import ConversationHistory
from chorus_server.sessions.store import HistoryStore
from chorus_server.sessions.types import Message, Role
from chorus_server.tools.adapter import to_function_schemas
from chorus_server.tools.host import ToolHost
from chorus_server.tools.loop import ToolExecutionLoop

logger = logging.getLogger(__name__)


class ProviderHandler:
    """Conversation facade for one session on one provider.

    The handler is not reentrant. Callers must serialize calls per
    (session, provider), e.g. with the lock handed out by SessionRegistry.

    Attributes:
        session_id: Session this handler belongs to
        client: Provider client used for replies and summaries
        summarizer: Summarizer, or None when summarization is disabled
        tool_host: Tool host used when tools are requested
        tool_loop: Loop driving tool-calling providers
        store: Optional durable log receiving every history mutation
    """

    def __init__(
        self,
        session_id: str,
        client: ProviderClient,
        summarizer: Summarizer | None = None,
        tool_host: ToolHost | None = None,
        tool_loop: ToolExecutionLoop | None = None,
        store: HistoryStore | None = None,
    ) -> None:
        self.session_id = session_id
        self.client = client
        self.summarizer = summarizer
        self.tool_host = tool_host
        self.tool_loop = tool_loop or ToolExecutionLoop()
        self.store = store
        self.history = ConversationHistory()

    @property
    def provider(self) -> AiProvider:
        return self.client.provider

    async def process_message(
        self,
        user_text: str,
        system_prompt: str = "",
        temperature: float = 0.7,
        model_override: str | None = None,
        max_tokens: int | None = None,
        tools_enabled: bool = False,
    ) -> TimedResult:
        """Process one user message and return the assistant reply.

        Never raises: provider failures come back as error-flagged results
        and anything unexpected is logged and mapped the same way. The user
        message stays in history on failure; no assistant message is added.

        Args:
            user_text: The user's message
            system_prompt: System prompt for this turn
            temperature: Sampling temperature
            model_override: Model to use instead of the client default
            max_tokens: Maximum tokens to generate
            tools_enabled: Offer the tool catalog when the provider supports it

        Returns:
            TimedResult with the reply, usage and timing
        """
        logger.info(
            f"Processing message for {self.provider.display_name} "
            f"(session={self.session_id}): {user_text[:100]}"
        )

        try:
            self._append(Message.user(user_text))

            if self.summarizer and self.summarizer.should_summarize(
                self.history.message_count
            ):
                await self._summarize()

            result = await self._generate(
                system_prompt, temperature, model_override, max_tokens, tools_enabled
            )
        except Exception as e:
            logger.exception(f"Unexpected error processing message: {e}")
            return TimedResult(
                text=f"Unexpected error: {e}",
                usage=None,
                response_time_ms=0,
                model_name=model_override or self.client.default_model,
                is_error=True,
                error_kind=ProviderErrorKind.API_ERROR,
            )

        if result.is_error:
            logger.warning(f"{self.provider.display_name} returned an error: {result.text}")
            return result

        self._append(Message.assistant(result.text))
        logger.info(
            f"Received response from {self.provider.display_name} "
            f"in {result.response_time_ms}ms"
        )
        return result

    async def _generate(
        self,
        system_prompt: str,
        temperature: float,
        model_override: str | None,
        max_tokens: int | None,
        tools_enabled: bool,
    ) -> TimedResult:
        tools: list[dict] = []
        if tools_enabled and self.tool_host is not None:
            if supports_tool_calling(self.client):
                tools = await self._tool_catalog()
            else:
                logger.debug(
                    f"{self.provider.display_name} does not support tool calling, "
                    "sending without tools"
                )

        if not tools:
            return await self.client.send(
                self.history.snapshot(),
                system_prompt=system_prompt,
                temperature=temperature,
                max_tokens=max_tokens,
                model_override=model_override,
            )

        outcome = await self.tool_loop.run(
            self.client,  # type: ignore[arg-type]
            self.history.snapshot(),
            tools,
            self.tool_host,  # type: ignore[arg-type]
            system_prompt=system_prompt,
            temperature=temperature,
            max_tokens=max_tokens,
            model_override=model_override,
        )
        logger.info(f"Tool loop finished after {outcome.iterations} iteration(s)")
        return outcome.result

    async def _tool_catalog(self) -> list[dict]:
        try:
            descriptors = await self.tool_host.list_tools()  # type: ignore[union-attr]
        except Exception as e:
            logger.warning(f"Tool host unavailable, sending without tools: {e}")
            return []
        logger.debug(f"Offering {len(descriptors)} tools to {self.provider.display_name}")
        return to_function_schemas(descriptors)

    async def _summarize(self) -> None:
        """Summarize the history, keeping it intact on failure."""
        logger.info(
            f"{self.provider.display_name} message threshold reached "
            f"({self.history.message_count} messages). Triggering summarization..."
        )
        try:
            summary = await self.summarizer.summarize(self.history, self.client)  # type: ignore[union-attr]
        except Exception as e:
            logger.warning(f"Summarization failed, continuing with full history: {e}")
            return

        logger.info(
            f"Successfully summarized {self.provider.display_name} history. "
            f"New history size: {self.history.size()}"
        )
        self._emit(
            "replace_with_summary", self.session_id, self.provider.value,
            summary.role.value, summary.content,
        )

    def clear_history(self) -> None:
        """Empty the history unconditionally."""
        logger.info(f"Clearing {self.provider.display_name} message history")
        self.history.clear()
        self._emit("clear", self.session_id, self.provider.value)

    def load_history(self, messages: list[Message]) -> None:
        """Replace the in-memory history wholesale."""
        self.history.load(messages)
        logger.info(
            f"Loaded {len(messages)} messages for {self.provider.display_name} "
            f"(session={self.session_id})"
        )

    def restore_history(self) -> int:
        """Load the history back from the durable log.

        Returns:
            Number of messages restored
        """
        if self.store is None:
            return 0
        try:
            stored = self.store.get_history(self.session_id, self.provider.value)
        except Exception as e:
            logger.error(f"Failed to read stored history: {e}")
            return 0

        messages = [
            Message(role=Role(entry.role), content=entry.content, is_summary=entry.is_summary)
            for entry in stored
            if entry.role != Role.TOOL.value
        ]
        self.load_history(messages)
        return len(messages)

    def get_history_size(self) -> int:
        return self.history.size()

    def get_message_count(self) -> int:
        return self.history.message_count

    def _append(self, message: Message) -> None:
        self.history.append(message)
        self._emit(
            "save_message", self.session_id, self.provider.value,
            message.role.value, message.content,
        )

    def _emit(self, operation: str, *args: str) -> None:
        """Forward a history mutation to the store; failures are logged only."""
        if self.store is None:
            return
        try:
            getattr(self.store, operation)(*args)
        except Exception as e:
            logger.error(f"Failed to write history store ({operation}): {e}")
