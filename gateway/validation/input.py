from dataclasses import dataclass
from typing import Any

MAX_MESSAGE_LENGTH = 1000
# Minimal denylist, not HTML sanitization.
BLOCKED_SUBSTRINGS = ("<script>", "javascript:")


def utf16_length(text: str) -> int:
    """Length in UTF-16 code units, as browsers count characters."""
    return len(text.encode("utf-16-le", errors="surrogatepass")) // 2


@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    error: str | None = None


def validate_chat_input(
    body: dict[str, Any], max_length: int = MAX_MESSAGE_LENGTH
) -> ValidationResult:
    message = body.get("message")
    if not message or not isinstance(message, str):
        return ValidationResult(valid=False, error="Invalid message")

    if utf16_length(message) > max_length:
        return ValidationResult(valid=False, error="Message too long")

    if any(blocked in message for blocked in BLOCKED_SUBSTRINGS):
        return ValidationResult(valid=False, error="Invalid content")

    return ValidationResult(valid=True)
