"""Business logic services for chorus-server.

This package contains the per-provider conversation orchestrator, its
factory, and the summarization service.
"""

from chorus_server.services.handler_factory import (
    ProviderHandlerFactory,
    ProviderNotConfiguredError,
)
from chorus_server.services.provider_handler import ProviderHandler
from chorus_server.services.summarization import SummarizationError, Summarizer

__all__ = [
    "ProviderHandler",
    "ProviderHandlerFactory",
    "ProviderNotConfiguredError",
    "SummarizationError",
    "Summarizer",
]
