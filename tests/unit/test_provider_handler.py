"""Unit tests for ProviderHandler, the per-provider conversation orchestrator."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from chorus_server.providers.errors import ProviderErrorKind, generation_timeout
from chorus_server.providers.types import AiProvider, TimedResult
from chorus_server.services import ProviderHandler, Summarizer
from chorus_server.services.summarization import SUMMARIZATION_PROMPTS
from chorus_server.sessions import JsonHistoryStore, Message, Role, ToolCallRequest
from chorus_server.tools import ToolDescriptor, ToolExecutionLoop


@pytest.fixture
def client(make_provider_client, make_result):
    client = make_provider_client(provider=AiProvider.OPENROUTER)
    client.send.return_value = make_result("Hello!")
    return client


@pytest.fixture
def handler(client):
    return ProviderHandler(session_id="s1", client=client)


@pytest.mark.asyncio
async def test_process_message_appends_user_and_assistant(handler, client):
    result = await handler.process_message("Hi", system_prompt="sys", temperature=0.4)

    assert result.text == "Hello!"
    assert [m.role for m in handler.history] == [Role.USER, Role.ASSISTANT]
    assert [m.content for m in handler.history] == ["Hi", "Hello!"]

    args, kwargs = client.send.call_args
    assert args[0] == [Message.user("Hi")]
    assert kwargs["system_prompt"] == "sys"
    assert kwargs["temperature"] == 0.4


@pytest.mark.asyncio
async def test_message_count_is_two_per_turn(handler):
    for n in range(1, 5):
        await handler.process_message(f"turn {n}")
        assert handler.get_message_count() == 2 * n
        assert handler.get_history_size() == 2 * n


@pytest.mark.asyncio
async def test_history_size_is_idempotent(handler):
    await handler.process_message("Hi")

    assert handler.get_history_size() == handler.get_history_size()


@pytest.mark.asyncio
async def test_clear_history(handler):
    await handler.process_message("hello")

    handler.clear_history()

    assert handler.get_history_size() == 0
    assert handler.get_message_count() == 0


@pytest.mark.asyncio
async def test_summarization_at_threshold(client, make_result):
    handler = ProviderHandler("s1", client, summarizer=Summarizer(threshold=10))

    for n in range(5):
        await handler.process_message(f"turn {n}")
    assert handler.get_message_count() == 10

    client.send.return_value = make_result("condensed")
    await handler.process_message("turn 5")

    assert handler.get_history_size() <= 2
    first = handler.history.snapshot()[0]
    assert first.role is Role.SYSTEM
    assert first.is_summary is True
    assert handler.get_message_count() == 2


@pytest.mark.asyncio
async def test_summarization_failure_keeps_full_history(client, make_result):
    def send(history, system_prompt="", **kwargs):
        if system_prompt == SUMMARIZATION_PROMPTS["en"]:
            return TimedResult.from_error(generation_timeout(60.0), "m")
        return make_result("reply")

    client.send.side_effect = send
    handler = ProviderHandler("s1", client, summarizer=Summarizer(threshold=4))

    for n in range(3):
        result = await handler.process_message(f"turn {n}")
        assert result.is_error is False

    assert handler.get_history_size() == 6
    assert not any(m.is_summary for m in handler.history)


@pytest.mark.asyncio
async def test_summarization_exception_does_not_fail_turn(client, make_result):
    def send(history, system_prompt="", **kwargs):
        if system_prompt == SUMMARIZATION_PROMPTS["en"]:
            raise ValueError("Expecting value: line 1 column 1 (char 0)")
        return make_result("ok")

    client.send.side_effect = send
    handler = ProviderHandler("s1", client, summarizer=Summarizer(threshold=4))

    for n in range(3):
        result = await handler.process_message(f"turn {n}")
        assert result.is_error is False
        assert result.text == "ok"

    assert handler.get_history_size() == 6
    assert handler.history.snapshot()[-1] == Message.assistant("ok")


@pytest.mark.asyncio
async def test_error_result_keeps_user_message_only(handler, client):
    client.send.return_value = TimedResult.from_error(generation_timeout(60.0), "m")

    result = await handler.process_message("Hi")

    assert result.is_error is True
    assert result.usage is None
    assert [m.role for m in handler.history] == [Role.USER]


@pytest.mark.asyncio
async def test_unexpected_exception_never_escapes(handler, client):
    client.send.side_effect = RuntimeError("boom")

    result = await handler.process_message("Hi")

    assert result.is_error is True
    assert result.error_kind is ProviderErrorKind.API_ERROR
    assert "boom" in result.text
    assert result.usage is None


@pytest.mark.asyncio
async def test_tools_use_execution_loop(make_provider_client, make_result):
    client = make_provider_client(supports_tools=True)
    client.send_with_tools.side_effect = [
        (
            make_result(""),
            [ToolCallRequest("call_1", "get_rate", '{"currency_code": "USD"}')],
        ),
        (make_result("USD is 95.50"), []),
    ]
    tool_host = AsyncMock()
    tool_host.list_tools.return_value = [ToolDescriptor(name="get_rate")]
    tool_host.call_tool.return_value = "95.50"

    handler = ProviderHandler(
        "s1", client, tool_host=tool_host, tool_loop=ToolExecutionLoop(5)
    )
    result = await handler.process_message("USD rate?", tools_enabled=True)

    assert result.text == "USD is 95.50"
    client.send.assert_not_awaited()
    # Tool turns stay out of the conversation history
    assert [m.role for m in handler.history] == [Role.USER, Role.ASSISTANT]
    assert handler.get_message_count() == 2


@pytest.mark.asyncio
async def test_tools_ignored_for_provider_without_tool_calling(
    make_provider_client, make_result
):
    client = make_provider_client(provider=AiProvider.OLLAMA, supports_tools=False)
    client.send.return_value = make_result("plain")
    tool_host = AsyncMock()

    handler = ProviderHandler("s1", client, tool_host=tool_host)
    result = await handler.process_message("Hi", tools_enabled=True)

    assert result.text == "plain"
    tool_host.list_tools.assert_not_awaited()
    client.send_with_tools.assert_not_awaited()


@pytest.mark.asyncio
async def test_unavailable_tool_host_falls_back_to_send(
    make_provider_client, make_result
):
    client = make_provider_client(supports_tools=True)
    client.send.return_value = make_result("plain")
    tool_host = AsyncMock()
    tool_host.list_tools.side_effect = RuntimeError("down")

    handler = ProviderHandler("s1", client, tool_host=tool_host)
    result = await handler.process_message("Hi", tools_enabled=True)

    assert result.text == "plain"
    client.send_with_tools.assert_not_awaited()


@pytest.mark.asyncio
async def test_mutations_are_emitted_to_store(client):
    store = MagicMock()
    handler = ProviderHandler("s1", client, store=store)

    await handler.process_message("Hi")
    handler.clear_history()

    store.save_message.assert_any_call("s1", "openrouter", "user", "Hi")
    store.save_message.assert_any_call("s1", "openrouter", "assistant", "Hello!")
    store.clear.assert_called_once_with("s1", "openrouter")


@pytest.mark.asyncio
async def test_store_failures_are_swallowed(client):
    store = MagicMock()
    store.save_message.side_effect = OSError("disk full")
    handler = ProviderHandler("s1", client, store=store)

    result = await handler.process_message("Hi")

    assert result.is_error is False
    assert handler.get_history_size() == 2


@pytest.mark.asyncio
async def test_summary_replaces_stored_log(client, make_result, tmp_path):
    store = JsonHistoryStore(tmp_path)
    handler = ProviderHandler(
        "s1", client, summarizer=Summarizer(threshold=2), store=store
    )

    await handler.process_message("first")
    await handler.process_message("second")

    stored = store.get_history("s1", "openrouter")
    assert stored[0].is_summary is True
    assert [m.role for m in stored] == ["system", "assistant"]


@pytest.mark.asyncio
async def test_restore_history(client, tmp_path):
    store = JsonHistoryStore(tmp_path)
    store.save_message("s1", "openrouter", "user", "earlier question")
    store.save_message("s1", "openrouter", "assistant", "earlier answer")

    handler = ProviderHandler("s1", client, store=store)
    restored = handler.restore_history()

    assert restored == 2
    assert [m.content for m in handler.history] == ["earlier question", "earlier answer"]
    assert handler.get_message_count() == 2


def test_load_history(handler):
    handler.load_history([Message.system("Be brief."), Message.user("Hi")])

    assert handler.get_history_size() == 2
    assert handler.get_message_count() == 2
