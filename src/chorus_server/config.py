"""Configuration module for chorus-server using pydantic-settings."""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ChorusServerSettings(BaseSettings):
    """Main configuration settings for chorus-server.

    All settings can be overridden via environment variables with the CHORUS_ prefix.
    For example, CHORUS_OLLAMA_HOST will override the ollama_host setting.
    A cloud provider without credentials is disabled.
    """

    # Server
    host: str = "127.0.0.1"
    port: int = 8000

    # Data directories (relative to data_dir)
    data_dir: str = "."
    history_dir: str = "chat_history"
    history_log_enabled: bool = True

    # Ollama (local)
    ollama_host: str = "http://localhost:11434"
    ollama_model: str = "gemma3:1b"
    ollama_timeout: float = 120.0
    ollama_top_p: float = 0.9

    # GigaChat
    gigachat_base_url: str = "https://gigachat.devices.sberbank.ru/api/v1"
    gigachat_access_token: str | None = None
    gigachat_model: str = "GigaChat"
    gigachat_max_tokens: int | None = 1024
    gigachat_timeout: float = 60.0

    # OpenRouter
    openrouter_base_url: str = "https://openrouter.ai/api/v1"
    openrouter_api_key: str | None = None
    openrouter_model: str = "openai/gpt-4o-mini"
    openrouter_max_tokens: int | None = None
    openrouter_timeout: float = 60.0

    # Summarization
    summarization_enabled: bool = True
    summarization_threshold: int = Field(default=10, ge=1)
    summarization_temperature: float = Field(default=0.3, ge=0.0, le=2.0)
    ollama_summarization_enabled: bool = False

    # Tools
    tools_enabled: bool = True
    max_tool_iterations: int = Field(default=5, ge=1)
    mcp_server_urls: list[str] = Field(default_factory=list)

    # CORS
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])

    # Logging
    log_level: str = "INFO"

    model_config = SettingsConfigDict(env_prefix="CHORUS_")

    @property
    def resolved_history_dir(self) -> Path:
        """Get the full path to the chat history directory."""
        return Path(self.data_dir) / self.history_dir
