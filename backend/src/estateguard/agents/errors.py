"""Classification of Gemini failures into user-facing categories."""

from estateguard.domain.enums import LLMErrorKind

QUOTA_MESSAGE = (
    "AI quota reached. Wait about 60 seconds and try again, or upgrade the "
    "Gemini API tier for this account."
)
MODEL_NOT_FOUND_MESSAGE = (
    "The configured Gemini model is not available for this API key or region. "
    "Try again later or check model availability."
)
AUTH_MESSAGE = (
    "Gemini rejected the API key. Update the key under Settings and try again."
)

_QUOTA_MARKERS = ("429", "too many requests", "quota", "resource exhausted", "resource_exhausted")
_NOT_FOUND_MARKERS = ("404", "not found", "not_found")
_AUTH_MARKERS = ("api key", "api_key", "401", "403", "permission denied", "permission_denied")


def classify_llm_error(error: str | None) -> tuple[LLMErrorKind, str]:
    """Map a raw error string to ``(kind, user_message)``.

    Quota is checked first so a 429 that mentions the key is still reported
    as a quota problem.
    """
    text = (error or "").lower()
    if any(marker in text for marker in _QUOTA_MARKERS):
        return LLMErrorKind.QUOTA, QUOTA_MESSAGE
    if any(marker in text for marker in _NOT_FOUND_MARKERS):
        return LLMErrorKind.MODEL_NOT_FOUND, MODEL_NOT_FOUND_MESSAGE
    if any(marker in text for marker in _AUTH_MARKERS):
        return LLMErrorKind.AUTH, AUTH_MESSAGE
    return LLMErrorKind.GENERIC, f"Sync failed: {error or 'unknown error'}"
