"""Tests for the exception taxonomy and secret redaction."""

import pytest

from scclient.exceptions import (
    AuthError,
    OperationCancelledError,
    RateLimitError,
    SoundCloudError,
    UpstreamError,
    redact_secrets,
    sanitize_body,
)


class TestRedactSecrets:
    @pytest.mark.parametrize(
        "text,secret",
        [
            ("refresh_token=abc123&grant_type=refresh_token", "abc123"),
            ('{"access_token": "tok-1", "scope": ""}', "tok-1"),
            ("client_secret=shh", "shh"),
            ("Authorization: OAuth 2-abcdef", "2-abcdef"),
            ("sent header Bearer eyJhbGciOi.xyz", "eyJhbGciOi.xyz"),
            ("password: hunter2", "hunter2"),
        ],
    )
    def test_secret_removed(self, text, secret):
        redacted = redact_secrets(text)
        assert secret not in redacted
        assert "***" in redacted

    def test_plain_text_unchanged(self):
        assert redact_secrets("Playlist 12 not found") == "Playlist 12 not found"

    def test_empty(self):
        assert redact_secrets("") == ""


class TestSanitizeBody:
    def test_truncates_to_limit(self):
        assert sanitize_body("a" * 500) == "a" * 200 + "..."

    def test_none_becomes_empty(self):
        assert sanitize_body(None) == ""

    def test_redacts(self):
        assert "s3cret" not in sanitize_body('{"error":"x","client_secret":"s3cret"}')


class TestExceptionTypes:
    def test_hierarchy(self):
        assert issubclass(AuthError, SoundCloudError)
        assert issubclass(RateLimitError, SoundCloudError)
        assert issubclass(UpstreamError, SoundCloudError)
        assert not issubclass(OperationCancelledError, SoundCloudError)

    def test_status_in_message(self):
        error = UpstreamError("API request failed: 503", status_code=503, body="down")
        assert error.status_code == 503
        assert "503" in str(error)
        assert error.body == "down"

    def test_rate_limit_error_fields(self):
        error = RateLimitError("gave up", retry_after=2.0, attempts=5)
        assert error.status_code == 429
        assert error.retry_after == 2.0
        assert error.attempts == 5

    def test_cancelled_reason(self):
        error = OperationCancelledError("timed out after 5s")
        assert error.reason == "timed out after 5s"
        assert "timed out" in str(error)
