"""Exception classes for the SoundCloud API client."""

import re
from typing import Optional

# Fragments that may carry credentials in upstream bodies or log lines
SECRET_PATTERNS = [
    re.compile(r"(client_secret|secret|access_token|refresh_token|token|api_key|key|password)(\"?\s*[=:]\s*\"?)[^\s&\",}]+", re.IGNORECASE),
    re.compile(r"(authorization[=:]\s*)\S+(\s+\S+)?", re.IGNORECASE),
    re.compile(r"\b(bearer|oauth)(\s+)[A-Za-z0-9\-._~+/]+=*", re.IGNORECASE),
]

MAX_BODY_LENGTH = 200


def redact_secrets(text: str) -> str:
    """Replace credential-looking fragments with ``***``.

    Examples:
        >>> redact_secrets("refresh_token=abc123&x=1")
        'refresh_token=***&x=1'
        >>> redact_secrets("Authorization: OAuth 2-abc")
        'Authorization: ***'
    """
    if not text:
        return text

    redacted = SECRET_PATTERNS[1].sub(lambda m: f"{m.group(1)}***", text)
    redacted = SECRET_PATTERNS[0].sub(lambda m: f"{m.group(1)}{m.group(2)}***", redacted)
    redacted = SECRET_PATTERNS[2].sub(lambda m: f"{m.group(1)}{m.group(2)}***", redacted)
    return redacted


def sanitize_body(body: Optional[str], limit: int = MAX_BODY_LENGTH) -> str:
    """Truncate and redact an upstream response body before it is logged or stored.

    Args:
        body: Raw response text (may be None)
        limit: Maximum number of characters kept

    Returns:
        Redacted text of at most ``limit`` characters plus an ellipsis marker
    """
    if not body:
        return ""

    text = body.strip()
    if len(text) > limit:
        text = text[:limit] + "..."
    return redact_secrets(text)


class SoundCloudError(Exception):
    """Base exception for all SoundCloud API errors.

    Attributes:
        status_code: HTTP status code (None for transport failures)
        message: Human-readable error message
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        self.message = message
        if status_code is None:
            super().__init__(message)
        else:
            super().__init__(f"SoundCloud Error {status_code}: {message}")


class AuthError(SoundCloudError):
    """Authentication expired and the single refresh attempt failed.

    Callers should treat this as "session invalid, re-authenticate".
    """

    pass


class RateLimitError(SoundCloudError):
    """Upstream kept answering 429 after the configured number of retries.

    Attributes:
        retry_after: Last server-supplied delay in seconds, if any
        attempts: Number of retries performed before giving up
    """

    def __init__(self, message: str, retry_after: Optional[float] = None, attempts: int = 0):
        super().__init__(message, status_code=429)
        self.retry_after = retry_after
        self.attempts = attempts


class UpstreamError(SoundCloudError):
    """Any other non-success response, or a transport failure.

    Attributes:
        body: Sanitized, truncated response body
    """

    def __init__(self, message: str, status_code: Optional[int] = None, body: str = ""):
        super().__init__(message, status_code=status_code)
        self.body = sanitize_body(body)


class OperationCancelledError(Exception):
    """Raised at a suspension point after the caller's cancel signal fired."""

    def __init__(self, reason: str = "cancelled"):
        self.reason = reason
        super().__init__(f"Operation cancelled: {reason}")
