"""Health check response model."""

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Response model for the health check endpoint.

    Attributes:
        status: Health status indicator ("ok" or "error").
        version: The version of chorus-server.
        ollama_connected: Whether the local Ollama backend is reachable.
        ollama_host: The Ollama host URL.
        providers: Providers that are configured and usable.
        tool_count: Number of tools currently offered by the tool hosts.
    """

    status: str = Field(..., description="Health status of the service")
    version: str = Field(..., description="Version of chorus-server")
    ollama_connected: bool | None = Field(
        default=None,
        description="Whether Ollama is connected",
    )
    ollama_host: str | None = Field(
        default=None,
        description="Ollama host URL",
    )
    providers: list[str] = Field(
        default_factory=list,
        description="Enabled providers",
    )
    tool_count: int = Field(default=0, description="Number of available tools")
