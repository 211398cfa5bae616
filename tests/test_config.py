"""Tests for environment configuration and log redaction."""

from __future__ import annotations

import pytest

from sequentum_mcp.core.config import DEFAULT_API_URL, Settings
from sequentum_mcp.core.log import redact_headers


class TestSettingsFromEnv:
    """Tests for Settings.from_env."""

    def test_defaults(self) -> None:
        """Test settings from an empty environment."""
        settings = Settings.from_env({})

        assert settings.api_url == DEFAULT_API_URL
        assert settings.api_key is None
        assert settings.transport == "stdio"
        assert settings.port == 3000
        assert settings.host == "0.0.0.0"
        assert settings.require_auth is True
        assert settings.trust_proxy is True
        assert settings.max_sessions == 1000
        assert settings.max_retries == 3
        assert settings.debug is False

    def test_values_read(self) -> None:
        """Test that every variable is picked up."""
        settings = Settings.from_env(
            {
                "SEQUENTUM_API_URL": "https://sequentum.example.test/",
                "SEQUENTUM_API_KEY": "sk-abc",
                "SEQUENTUM_OAUTH_CLIENT_ID": "client-1",
                "TRANSPORT_MODE": "HTTP",
                "PORT": "8080",
                "HOST": "127.0.0.1",
                "DEBUG": "1",
                "MAX_SESSIONS": "5",
                "REQUEST_TIMEOUT_MS": "1000",
                "MAX_RETRIES": "0",
            }
        )

        assert settings.api_url == "https://sequentum.example.test"
        assert settings.api_key == "sk-abc"
        assert settings.oauth_client_id == "client-1"
        assert settings.transport == "http"
        assert settings.port == 8080
        assert settings.host == "127.0.0.1"
        assert settings.debug is True
        assert settings.max_sessions == 5
        assert settings.request_timeout_ms == 1000
        assert settings.max_retries == 0

    @pytest.mark.parametrize("value,expected", [("false", False), ("FALSE", False), ("0", True), ("no", True)])
    def test_require_auth_only_disabled_by_false(self, value: str, expected: bool) -> None:
        """Test that only the literal "false" turns off authentication."""
        assert Settings.from_env({"REQUIRE_AUTH": value}).require_auth is expected

    def test_trust_proxy_disabled(self) -> None:
        """Test TRUST_PROXY=false."""
        assert Settings.from_env({"TRUST_PROXY": "false"}).trust_proxy is False

    def test_invalid_transport(self) -> None:
        """Test that an unknown transport is rejected."""
        with pytest.raises(ValueError, match="TRANSPORT_MODE"):
            Settings.from_env({"TRANSPORT_MODE": "websocket"})

    def test_invalid_integer(self) -> None:
        """Test that a non-numeric port is rejected."""
        with pytest.raises(ValueError, match="PORT must be an integer"):
            Settings.from_env({"PORT": "eighty"})

    def test_negative_retries(self) -> None:
        """Test that a negative retry budget is rejected."""
        with pytest.raises(ValueError, match="MAX_RETRIES"):
            Settings.from_env({"MAX_RETRIES": "-1"})


class TestRedactHeaders:
    """Tests for redact_headers function."""

    def test_credentials_redacted(self) -> None:
        """Test that credential headers are masked and others kept."""
        redacted = redact_headers({"Authorization": "Bearer secret", "Content-Type": "application/json"})

        assert redacted == {"authorization": "[REDACTED]", "content-type": "application/json"}

    def test_pairs_accepted(self) -> None:
        """Test header pairs as found in an ASGI scope."""
        redacted = redact_headers([("cookie", "sid=1"), ("x-api-key", "k"), ("mcp-session-id", "abc")])

        assert redacted == {"cookie": "[REDACTED]", "x-api-key": "[REDACTED]", "mcp-session-id": "abc"}
