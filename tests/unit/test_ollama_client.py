"""Unit tests for the Ollama provider client."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import ollama
import pytest

from chorus_server.providers import OllamaProviderClient, ProviderError
from chorus_server.providers.errors import ProviderErrorKind
from chorus_server.sessions import Message, Role


@pytest.fixture
def mock_ollama_async_client():
    """Create a mock ollama.AsyncClient."""
    with patch("chorus_server.providers.ollama.ollama.AsyncClient") as mock_class:
        mock_instance = AsyncMock()
        mock_class.return_value = mock_instance
        yield mock_instance


@pytest.fixture
def ollama_client(mock_ollama_async_client):
    """Create an OllamaProviderClient with mocked AsyncClient."""
    return OllamaProviderClient(host="http://localhost:11434", model="llama3.2:latest")


def chat_response(content="Hello!", prompt_eval_count=12, eval_count=7):
    return {
        "model": "llama3.2:latest",
        "message": {"role": "assistant", "content": content},
        "done": True,
        "prompt_eval_count": prompt_eval_count,
        "eval_count": eval_count,
    }


@pytest.mark.asyncio
async def test_client_initialization():
    """Test that OllamaProviderClient initializes correctly."""
    with patch("chorus_server.providers.ollama.ollama.AsyncClient") as mock_class:
        client = OllamaProviderClient(host="http://test:11434", model="m", timeout=90.0)

    assert client.host == "http://test:11434"
    assert client.supports_tools is False
    mock_class.assert_called_once_with(host="http://test:11434", timeout=90.0)


@pytest.mark.asyncio
async def test_send_success_remaps_usage(ollama_client, mock_ollama_async_client):
    """Test that native usage counters are remapped."""
    mock_ollama_async_client.chat.return_value = chat_response()

    result = await ollama_client.send([Message.user("Hi")])

    assert result.is_error is False
    assert result.text == "Hello!"
    assert result.model_name == "llama3.2:latest"
    assert result.usage.prompt_tokens == 12
    assert result.usage.completion_tokens == 7
    assert result.usage.total_tokens == 19
    assert result.response_time_ms >= 0


@pytest.mark.asyncio
async def test_send_missing_counters_gives_no_usage(
    ollama_client, mock_ollama_async_client
):
    mock_ollama_async_client.chat.return_value = chat_response(
        prompt_eval_count=None, eval_count=None
    )

    result = await ollama_client.send([Message.user("Hi")])

    assert result.usage is None


@pytest.mark.asyncio
async def test_send_cached_prompt_keeps_completion_count(
    ollama_client, mock_ollama_async_client
):
    """Ollama omits prompt_eval_count when the prompt was served from cache."""
    mock_ollama_async_client.chat.return_value = chat_response(prompt_eval_count=None)

    result = await ollama_client.send([Message.user("Hi")])

    assert result.usage.prompt_tokens is None
    assert result.usage.completion_tokens == 7
    assert result.usage.total_tokens is None


@pytest.mark.asyncio
async def test_send_accepts_response_objects(ollama_client, mock_ollama_async_client):
    """Test that pydantic-style responses are normalized."""
    response = MagicMock()
    response.model_dump.return_value = chat_response(content="From object")
    mock_ollama_async_client.chat.return_value = response

    result = await ollama_client.send([Message.user("Hi")])

    assert result.text == "From object"


@pytest.mark.asyncio
async def test_send_request_options(ollama_client, mock_ollama_async_client):
    """Test model override, clamped temperature, num_predict and top_p."""
    mock_ollama_async_client.chat.return_value = chat_response()

    await ollama_client.send(
        [Message.user("Hi")],
        system_prompt="Be brief.",
        temperature=5.0,
        max_tokens=64,
        model_override="qwen3:14b",
    )

    kwargs = mock_ollama_async_client.chat.call_args.kwargs
    assert kwargs["model"] == "qwen3:14b"
    assert kwargs["stream"] is False
    assert kwargs["options"] == {"temperature": 2.0, "top_p": 0.9, "num_predict": 64}
    assert kwargs["messages"] == [
        {"role": "system", "content": "Be brief."},
        {"role": "user", "content": "Hi"},
    ]


@pytest.mark.asyncio
async def test_send_without_system_prompt(ollama_client, mock_ollama_async_client):
    """Test that a blank system prompt adds no system message."""
    mock_ollama_async_client.chat.return_value = chat_response()

    await ollama_client.send([Message.user("Hi")], system_prompt="   ")

    messages = mock_ollama_async_client.chat.call_args.kwargs["messages"]
    assert messages == [{"role": "user", "content": "Hi"}]


@pytest.mark.asyncio
async def test_send_empty_content(ollama_client, mock_ollama_async_client):
    mock_ollama_async_client.chat.return_value = chat_response(content=None)

    result = await ollama_client.send([Message.user("Hi")])

    assert result.text == ""


@pytest.mark.asyncio
async def test_send_unreachable(ollama_client, mock_ollama_async_client):
    mock_ollama_async_client.chat.side_effect = httpx.ConnectError("Connection refused")

    result = await ollama_client.send([Message.user("Hi")])

    assert result.is_error is True
    assert result.usage is None
    assert result.error_kind is ProviderErrorKind.UNREACHABLE
    assert result.text == (
        "Ollama (Local) is not running or unreachable at http://localhost:11434. "
        "Please start the backend and try again."
    )


@pytest.mark.asyncio
async def test_send_model_not_found(ollama_client, mock_ollama_async_client):
    mock_ollama_async_client.chat.side_effect = ollama.ResponseError(
        "model 'llama3.2:latest' not found", 404
    )

    result = await ollama_client.send([Message.user("Hi")])

    assert result.is_error is True
    assert result.usage is None
    assert result.error_kind is ProviderErrorKind.MODEL_NOT_FOUND
    assert "ollama pull llama3.2:latest" in result.text


@pytest.mark.asyncio
async def test_send_out_of_memory(ollama_client, mock_ollama_async_client):
    mock_ollama_async_client.chat.side_effect = ollama.ResponseError(
        "model requires more system memory than is available", 500
    )

    result = await ollama_client.send([Message.user("Hi")])

    assert result.error_kind is ProviderErrorKind.OUT_OF_MEMORY
    assert result.usage is None


@pytest.mark.asyncio
async def test_send_timeout(ollama_client, mock_ollama_async_client):
    mock_ollama_async_client.chat.side_effect = httpx.ReadTimeout("timed out")

    result = await ollama_client.send([Message.user("Hi")])

    assert result.error_kind is ProviderErrorKind.TIMEOUT
    assert result.text.startswith("Generation timed out after 120s.")
    assert result.usage is None


@pytest.mark.asyncio
async def test_check_connection(ollama_client, mock_ollama_async_client):
    mock_ollama_async_client.list.return_value = {"models": []}
    assert await ollama_client.check_connection() is True

    mock_ollama_async_client.list.side_effect = Exception("Connection refused")
    assert await ollama_client.check_connection() is False


@pytest.mark.asyncio
async def test_list_models(ollama_client, mock_ollama_async_client):
    mock_ollama_async_client.list.return_value = SimpleNamespace(
        models=[SimpleNamespace(model="llama3:8b"), SimpleNamespace(model="qwen3:14b")]
    )

    assert await ollama_client.list_models() == ["llama3:8b", "qwen3:14b"]


@pytest.mark.asyncio
async def test_list_models_unreachable(ollama_client, mock_ollama_async_client):
    mock_ollama_async_client.list.side_effect = httpx.ConnectError("refused")

    with pytest.raises(ProviderError) as exc_info:
        await ollama_client.list_models()

    assert exc_info.value.kind is ProviderErrorKind.UNREACHABLE


def test_localized_role_name(ollama_client):
    assert ollama_client.localized_role_name(Role.USER) == "User"
