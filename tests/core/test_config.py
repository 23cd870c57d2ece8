"""Tests for core configuration classes."""

from __future__ import annotations

import pytest

from mcpsovereign.core.config import (
    DEFAULT_API_URL,
    DEFAULT_STORE_PATH,
    ENV_API_URL,
    ENV_STORE_PATH,
    ENV_TOKEN,
    ClientConfig,
)


class TestClientConfig:
    """Tests for ClientConfig class."""

    def test_defaults(self) -> None:
        """Should default to the public API and a local store file."""
        config = ClientConfig()
        assert config.api_url == DEFAULT_API_URL
        assert config.token is None
        assert config.store_path == DEFAULT_STORE_PATH
        assert config.timeout == 30.0
        assert config.verify_ssl is True

    def test_init_custom(self) -> None:
        """Should accept custom values."""
        config = ClientConfig(
            api_url="http://localhost:3100/api/v1",
            token="abc",
            store_path="/tmp/store.json",
            timeout=5.0,
            verify_ssl=False,
        )
        assert config.token == "abc"
        assert config.timeout == 5.0
        assert config.verify_ssl is False

    def test_url_trailing_slash_removed(self) -> None:
        """Should strip trailing slash from API URL."""
        config = ClientConfig(api_url="https://example.com/api/v1/")
        assert config.api_url == "https://example.com/api/v1"

    def test_is_secure_https(self) -> None:
        """Should return True for HTTPS URLs."""
        assert ClientConfig(api_url="https://example.com").is_secure is True

    def test_is_secure_http(self) -> None:
        """Should return False for HTTP URLs."""
        assert ClientConfig(api_url="http://localhost:3100").is_secure is False


class TestFromEnv:
    """Tests for ClientConfig.from_env."""

    @pytest.fixture(autouse=True)
    def clean_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        for name in (ENV_API_URL, ENV_TOKEN, ENV_STORE_PATH):
            monkeypatch.delenv(name, raising=False)

    def test_empty_environment(self) -> None:
        """Should fall back to defaults."""
        config = ClientConfig.from_env()
        assert config.api_url == DEFAULT_API_URL
        assert config.token is None
        assert config.store_path == DEFAULT_STORE_PATH

    def test_reads_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Should read MCPSOVEREIGN_* variables."""
        monkeypatch.setenv(ENV_API_URL, "http://localhost:3100/api/v1/")
        monkeypatch.setenv(ENV_TOKEN, "env-token")
        monkeypatch.setenv(ENV_STORE_PATH, "/data/store.json")

        config = ClientConfig.from_env()

        assert config.api_url == "http://localhost:3100/api/v1"
        assert config.token == "env-token"
        assert config.store_path == "/data/store.json"

    def test_empty_token_is_none(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv(ENV_TOKEN, "")
        assert ClientConfig.from_env().token is None

    def test_overrides_win(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Keyword arguments take precedence; None overrides are ignored."""
        monkeypatch.setenv(ENV_TOKEN, "env-token")

        config = ClientConfig.from_env(token="explicit", store_path=None, timeout=2.0)

        assert config.token == "explicit"
        assert config.store_path == DEFAULT_STORE_PATH
        assert config.timeout == 2.0
