"""Unit tests for provider error classification and message templates."""

from chorus_server.providers.errors import (
    ProviderErrorKind,
    backend_unreachable,
    classify_status_error,
    generation_timeout,
    model_not_found,
    out_of_memory,
    policy_rejected,
)


def test_backend_unreachable_message():
    error = backend_unreachable("Ollama (Local)", "http://localhost:11434")

    assert error.kind is ProviderErrorKind.UNREACHABLE
    assert error.message == (
        "Ollama (Local) is not running or unreachable at http://localhost:11434. "
        "Please start the backend and try again."
    )


def test_model_not_found_message_with_hint():
    error = model_not_found("Ollama (Local)", "qwen3:14b", "ollama pull qwen3:14b")

    assert error.kind is ProviderErrorKind.MODEL_NOT_FOUND
    assert error.message == (
        "Model 'qwen3:14b' not found in Ollama (Local). "
        "Please pull or install it first (ollama pull qwen3:14b)."
    )


def test_out_of_memory_message():
    error = out_of_memory("Ollama (Local)")

    assert error.kind is ProviderErrorKind.OUT_OF_MEMORY
    assert "ran out of memory" in error.message
    assert "smaller model" in error.message


def test_generation_timeout_message():
    error = generation_timeout(120.0)

    assert error.kind is ProviderErrorKind.TIMEOUT
    assert error.message.startswith("Generation timed out after 120s.")


def test_policy_rejected_detail_is_verbatim_and_truncated():
    error = policy_rejected("OpenRouter", "No endpoints found matching your data policy")
    assert "No endpoints found matching your data policy" in error.message
    assert "policy settings" in error.message

    long_error = policy_rejected("OpenRouter", "x" * 2000)
    assert len(long_error.message) < 700


class TestClassifyStatusError:
    """Tests for classify_status_error."""

    def test_policy_markers_win_over_status(self):
        error = classify_status_error(
            "OpenRouter", 404, "No endpoints found matching your data policy", "m"
        )
        assert error.kind is ProviderErrorKind.POLICY_REJECTED

    def test_404_model(self):
        error = classify_status_error(
            "Ollama (Local)", 404, "model 'foo' not found", "foo", "ollama pull foo"
        )
        assert error.kind is ProviderErrorKind.MODEL_NOT_FOUND
        assert "ollama pull foo" in error.message

    def test_404_endpoint(self):
        error = classify_status_error("GigaChat", 404, "", "GigaChat")
        assert error.kind is ProviderErrorKind.API_ERROR
        assert "endpoint not found" in error.message

    def test_500_out_of_memory(self):
        error = classify_status_error(
            "Ollama (Local)", 500, "failed to allocate memory", "m"
        )
        assert error.kind is ProviderErrorKind.OUT_OF_MEMORY

    def test_503_service_unavailable(self):
        error = classify_status_error("OpenRouter", 503, "loading", "m")
        assert error.kind is ProviderErrorKind.SERVICE_UNAVAILABLE

    def test_other_status(self):
        error = classify_status_error("GigaChat", 401, "Unauthorized", "m")
        assert error.kind is ProviderErrorKind.API_ERROR
        assert error.message == "GigaChat API error (401): Unauthorized"
