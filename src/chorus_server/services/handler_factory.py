"""Construction of ProviderHandlers from the configured collaborators."""

import logging

from chorus_server.providers.base import ProviderClient
from chorus_server.providers.types import AiProvider
from chorus_server.services.provider_handler import ProviderHandler
from chorus_server.services.summarization import Summarizer
from chorus_server.sessions.store import HistoryStore
from chorus_server.tools.host import ToolHost
from chorus_server.tools.loop import ToolExecutionLoop

logger = logging.getLogger(__name__)


class ProviderNotConfiguredError(LookupError):
    """The requested provider has no client (e.g., missing credentials)."""

    def __init__(self, provider: AiProvider) -> None:
        super().__init__(f"Provider '{provider.value}' is not configured")
        self.provider = provider


class ProviderHandlerFactory:
    """Build one ProviderHandler per (session, provider).

    Provider clients, the tool host and the store are shared between all
    handlers; each handler gets its own history.

    Attributes:
        clients: Configured provider clients keyed by provider
        summarizer: Shared summarizer, or None to disable summarization
        summarized_providers: Providers whose histories are summarized
        tool_host: Tool host offered to tool-calling providers
        max_tool_iterations: Bound of the tool execution loop
        store: Optional durable history log
    """

    def __init__(
        self,
        clients: dict[AiProvider, ProviderClient],
        summarizer: Summarizer | None = None,
        summarized_providers: frozenset[AiProvider] | None = None,
        tool_host: ToolHost | None = None,
        max_tool_iterations: int = 5,
        store: HistoryStore | None = None,
    ) -> None:
        self.clients = dict(clients)
        self.summarizer = summarizer
        self.summarized_providers = (
            frozenset(AiProvider) if summarized_providers is None else summarized_providers
        )
        self.tool_host = tool_host
        self.max_tool_iterations = max_tool_iterations
        self.store = store

    @property
    def enabled_providers(self) -> list[AiProvider]:
        return [provider for provider in AiProvider if provider in self.clients]

    def client_for(self, provider: AiProvider) -> ProviderClient:
        """Return the client for a provider.

        Raises:
            ProviderNotConfiguredError: If the provider has no client
        """
        client = self.clients.get(provider)
        if client is None:
            raise ProviderNotConfiguredError(provider)
        return client

    def create(self, session_id: str, provider: AiProvider) -> ProviderHandler:
        """Create a fresh handler with an empty history."""
        client = self.client_for(provider)
        summarizer = self.summarizer if provider in self.summarized_providers else None

        logger.debug(
            f"Creating handler: session={session_id}, provider={provider.value}, "
            f"summarization={'on' if summarizer else 'off'}"
        )
        return ProviderHandler(
            session_id=session_id,
            client=client,
            summarizer=summarizer,
            tool_host=self.tool_host,
            tool_loop=ToolExecutionLoop(self.max_tool_iterations),
            store=self.store,
        )
