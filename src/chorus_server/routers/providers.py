"""Providers router for listing configured providers and local models."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException

from chorus_server.dependencies import get_handler_factory, get_ollama_client
from chorus_server.models.providers import (
    LocalModelListResponse,
    ProviderInfo,
    ProviderListResponse,
)
from chorus_server.providers import OllamaProviderClient, ProviderError
from chorus_server.services import ProviderHandlerFactory

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["providers"])


@router.get("/providers", response_model=ProviderListResponse)
async def list_providers(
    factory: Annotated[ProviderHandlerFactory, Depends(get_handler_factory)],
) -> ProviderListResponse:
    """List the providers that are configured and usable."""
    providers = []
    for provider in factory.enabled_providers:
        client = factory.clients[provider]
        providers.append(
            ProviderInfo(
                name=provider.value,
                display_name=provider.display_name,
                default_model=client.default_model,
                supports_tools=client.supports_tools,
            )
        )
    return ProviderListResponse(providers=providers)


@router.get("/models/ollama", response_model=LocalModelListResponse)
async def list_local_models(
    ollama_client: Annotated[OllamaProviderClient, Depends(get_ollama_client)],
) -> LocalModelListResponse:
    """List models installed on the local Ollama backend.

    Raises:
        HTTPException: 502 if Ollama cannot be reached
    """
    try:
        models = await ollama_client.list_models()
    except ProviderError as e:
        logger.error(f"Failed to list models: {e.message}")
        raise HTTPException(
            status_code=502,
            detail={
                "error": {
                    "code": e.kind.value,
                    "message": e.message,
                    "details": {},
                }
            },
        )

    logger.info(f"Listed {len(models)} models")
    return LocalModelListResponse(models=models)
