"""Pydantic models for provider and model listing responses."""

from pydantic import BaseModel, Field


class ProviderInfo(BaseModel):
    """A configured provider.

    Attributes:
        name: Provider identifier used in requests
        display_name: Human-readable provider name
        default_model: Model used when a request names none
        supports_tools: Whether the provider takes part in tool calling
    """

    name: str = Field(..., description="Provider identifier")
    display_name: str = Field(..., description="Human-readable provider name")
    default_model: str = Field(..., description="Default model")
    supports_tools: bool = Field(..., description="Whether tool calling is supported")


class ProviderListResponse(BaseModel):
    """Response model for listing enabled providers."""

    providers: list[ProviderInfo] = Field(..., description="Enabled providers")


class LocalModelListResponse(BaseModel):
    """Response model for listing models installed on the local backend."""

    models: list[str] = Field(..., description="Installed model names")
