"""Provider error taxonomy and user-facing message templates.

Provider clients never let raw transport exceptions reach their callers.
Failures are classified into a ProviderErrorKind and rendered with one of
the templates below so the user gets an actionable message.
"""

from enum import Enum

BACKEND_UNREACHABLE = (
    "{provider} is not running or unreachable at {url}. "
    "Please start the backend and try again."
)
MODEL_NOT_FOUND = (
    "Model '{model}' not found in {provider}. "
    "Please pull or install it first{hint}."
)
OUT_OF_MEMORY = (
    "{provider} ran out of memory. "
    "Try a smaller model or close other applications."
)
GENERATION_TIMEOUT = (
    "Generation timed out after {timeout}s. "
    "Try reducing conversation history or use a smaller model."
)
POLICY_REJECTED = (
    "{provider} rejected the request: {detail}. "
    "Adjust your account's data/usage policy settings to allow this model."
)
SERVICE_UNAVAILABLE = (
    "{provider} service unavailable. The model may be loading. Please try again."
)
API_ERROR = "{provider} API error ({status}): {detail}"

_POLICY_MARKERS = ("data policy", "usage policy", "privacy", "moderation")
_MEMORY_MARKERS = ("memory", "allocate", "oom")
_MAX_DETAIL_LENGTH = 500


class ProviderErrorKind(str, Enum):
    """Categories of provider failure."""

    UNREACHABLE = "unreachable"
    MODEL_NOT_FOUND = "model_not_found"
    OUT_OF_MEMORY = "out_of_memory"
    TIMEOUT = "timeout"
    POLICY_REJECTED = "policy_rejected"
    SERVICE_UNAVAILABLE = "service_unavailable"
    API_ERROR = "api_error"


class ProviderError(Exception):
    """A provider failure already mapped to user-facing text.

    Attributes:
        kind: Failure category
        message: Actionable message shown to the user
    """

    def __init__(self, kind: ProviderErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message


def backend_unreachable(provider: str, url: str) -> ProviderError:
    return ProviderError(
        ProviderErrorKind.UNREACHABLE,
        BACKEND_UNREACHABLE.format(provider=provider, url=url),
    )


def model_not_found(provider: str, model: str, hint: str = "") -> ProviderError:
    return ProviderError(
        ProviderErrorKind.MODEL_NOT_FOUND,
        MODEL_NOT_FOUND.format(
            provider=provider, model=model, hint=f" ({hint})" if hint else ""
        ),
    )


def out_of_memory(provider: str) -> ProviderError:
    return ProviderError(
        ProviderErrorKind.OUT_OF_MEMORY, OUT_OF_MEMORY.format(provider=provider)
    )


def generation_timeout(timeout: float) -> ProviderError:
    return ProviderError(
        ProviderErrorKind.TIMEOUT, GENERATION_TIMEOUT.format(timeout=f"{timeout:g}")
    )


def policy_rejected(provider: str, detail: str) -> ProviderError:
    return ProviderError(
        ProviderErrorKind.POLICY_REJECTED,
        POLICY_REJECTED.format(provider=provider, detail=truncate_detail(detail)),
    )


def truncate_detail(detail: str) -> str:
    detail = detail.strip()
    if len(detail) > _MAX_DETAIL_LENGTH:
        return detail[: _MAX_DETAIL_LENGTH - 3] + "..."
    return detail


def classify_status_error(
    provider: str,
    status_code: int,
    body: str,
    model: str,
    install_hint: str = "",
) -> ProviderError:
    """Map an HTTP error status and body to a ProviderError.

    Args:
        provider: Display name of the backend
        status_code: HTTP status returned by the backend
        body: Error body returned by the backend
        model: Model the request targeted
        install_hint: Backend-specific instruction for installing a model

    Returns:
        The classified ProviderError
    """
    lowered = body.lower()

    if any(marker in lowered for marker in _POLICY_MARKERS):
        return policy_rejected(provider, body)

    if status_code == 404:
        if "model" in lowered or "not found" in lowered:
            return model_not_found(provider, model, install_hint)
        return ProviderError(
            ProviderErrorKind.API_ERROR,
            API_ERROR.format(
                provider=provider,
                status=status_code,
                detail="endpoint not found, check your installation",
            ),
        )

    if status_code >= 500 and any(marker in lowered for marker in _MEMORY_MARKERS):
        return out_of_memory(provider)

    if status_code == 503:
        return ProviderError(
            ProviderErrorKind.SERVICE_UNAVAILABLE,
            SERVICE_UNAVAILABLE.format(provider=provider),
        )

    return ProviderError(
        ProviderErrorKind.API_ERROR,
        API_ERROR.format(provider=provider, status=status_code, detail=truncate_detail(body)),
    )
