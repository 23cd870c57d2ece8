"""Portable agent identity and configuration.

This module provides:
- AgentRuntime: persistent login, credential export/import, one-call sync
- RuntimeState: the persisted config.json
- CredentialsError: raised for invalid credential exports

The bearer token is kept in the OS keyring when one is available and
falls back to config.json otherwise.
"""

from __future__ import annotations

import base64
import binascii
import contextlib
import json
import logging
import os
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any

import keyring
from keyring.errors import PasswordDeleteError

from mcpsovereign.client.api import Agent, SignMessage, SovereignClient
from mcpsovereign.client.models import SyncResult, utc_now
from mcpsovereign.client.store import LocalStoreManager
from mcpsovereign.client.sync import SyncCoordinator
from mcpsovereign.core.config import (
    DEFAULT_API_URL,
    DEFAULT_STORE_PATH,
    ENV_API_URL,
    ENV_TOKEN,
    ClientConfig,
)
from mcpsovereign.core.result import Err, ErrorKind, Ok, Result

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = "config.json"
KEYRING_SERVICE = "mcpsovereign"
ENV_WALLET = "MCPSOVEREIGN_WALLET"
EXPORT_VERSION = "1.0"
TOKEN_LIFETIME = timedelta(days=7)

# JSON key in config.json -> RuntimeState attribute
_CONFIG_KEYS = {
    "apiUrl": "api_url",
    "walletAddress": "wallet_address",
    "authToken": "auth_token",
    "tokenExpiresAt": "token_expires_at",
    "agentId": "agent_id",
    "agentName": "agent_name",
    "trade": "trade",
    "storePath": "store_path",
    "lastLogin": "last_login",
    "lastSync": "last_sync",
}


class CredentialsError(Exception):
    """Exception raised for missing or invalid credentials."""


def default_config_dir() -> Path:
    """Default configuration directory (~/.mcpsovereign)."""
    return Path.home() / ".mcpsovereign"


def _parse_timestamp(value: str) -> datetime:
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


@dataclass
class RuntimeState:
    """Persisted runtime configuration."""

    api_url: str = field(default_factory=lambda: os.environ.get(ENV_API_URL, DEFAULT_API_URL))
    wallet_address: str | None = None
    auth_token: str | None = None
    token_expires_at: str | None = None
    agent_id: str | None = None
    agent_name: str | None = None
    trade: str | None = None
    store_path: str = DEFAULT_STORE_PATH
    last_login: str | None = None
    last_sync: str | None = None

    def to_dict(self, include_token: bool = True) -> dict[str, Any]:
        data = {key: getattr(self, attr) for key, attr in _CONFIG_KEYS.items()}
        if not include_token:
            data["authToken"] = None
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RuntimeState:
        state = cls()
        for key, attr in _CONFIG_KEYS.items():
            if data.get(key) is not None:
                setattr(state, attr, data[key])
        return state


@dataclass
class RuntimeStatus:
    """Summary returned by AgentRuntime.status()."""

    authenticated: bool
    token_valid: bool
    agent_id: str | None
    agent_name: str | None
    wallet_address: str | None
    api_url: str
    config_path: Path
    store_path: str
    last_login: str | None
    last_sync: str | None


class AgentRuntime:
    """Persistent identity for an agent.

    Usage:
        runtime = AgentRuntime()
        runtime.load()
        if not runtime.is_authenticated():
            await runtime.login(wallet, sign_message)
        await runtime.sync()
    """

    def __init__(
        self,
        config_dir: Path | None = None,
        api_url: str | None = None,
        store_path: str | None = None,
    ) -> None:
        """Initialize the runtime (call load() to read config.json).

        Overrides apply to this instance only and are never written to
        config.json.

        Args:
            config_dir: Configuration directory (default ~/.mcpsovereign).
            api_url: Overrides the API URL from the config file.
            store_path: Overrides the store path from the config file.
        """
        self._config_dir = Path(config_dir) if config_dir else default_config_dir()
        self._api_url_override = api_url
        self._store_path_override = store_path
        self._state = RuntimeState()

    @property
    def state(self) -> RuntimeState:
        """Current runtime state."""
        return self._state

    @property
    def config_path(self) -> Path:
        """Path of config.json."""
        return self._config_dir / CONFIG_FILE_NAME

    @property
    def api_url(self) -> str:
        """API URL in effect (override first, then config.json)."""
        return self._api_url_override or self._state.api_url

    @property
    def store_path(self) -> str:
        """Store path in effect (override first, then config.json)."""
        return self._store_path_override or self._state.store_path

    # === Persistence ===

    def load(self) -> None:
        """Load config.json and the cached token."""
        if self.config_path.exists():
            try:
                data = json.loads(self.config_path.read_text(encoding="utf-8"))
                if not isinstance(data, dict):
                    raise ValueError("config is not a JSON object")
                self._state = RuntimeState.from_dict(data)
            except (OSError, ValueError) as e:
                logger.warning("Ignoring unreadable config %s: %s", self.config_path, e)
                self._state = RuntimeState()

        if self._state.auth_token is None:
            with contextlib.suppress(Exception):
                self._state.auth_token = keyring.get_password(
                    KEYRING_SERVICE, self._keyring_user()
                )

    def save(self) -> None:
        """Write config.json, keeping the token in the keyring when possible."""
        in_keyring = self._cache_token(self._state.auth_token)
        self._config_dir.mkdir(parents=True, exist_ok=True)
        self.config_path.write_text(
            json.dumps(self._state.to_dict(include_token=not in_keyring), indent=2)
        )

    def _keyring_user(self) -> str:
        return str(self._config_dir.resolve())

    def _cache_token(self, token: str | None) -> bool:
        """Store (or clear) the token in the keyring.

        Returns:
            True if the keyring now holds the token.
        """
        try:
            if token is None:
                with contextlib.suppress(PasswordDeleteError):
                    keyring.delete_password(KEYRING_SERVICE, self._keyring_user())
                return False
            keyring.set_password(KEYRING_SERVICE, self._keyring_user(), token)
        except Exception as e:
            logger.debug("Keyring unavailable, token stays in config file: %s", e)
            return False
        return True

    # === Factories ===

    def client_config(self) -> ClientConfig:
        """Build the ClientConfig for this runtime."""
        return ClientConfig(
            api_url=self.api_url,
            token=self._state.auth_token,
            store_path=self.store_path,
        )

    def open_client(self) -> SovereignClient:
        """Create an API client carrying the current token."""
        return SovereignClient(self.client_config())

    def open_store(self) -> LocalStoreManager:
        """Create and load the local store manager."""
        store = LocalStoreManager(self.store_path)
        store.load()
        return store

    # === Authentication ===

    def is_authenticated(self, now: datetime | None = None) -> bool:
        """Check for a token that has not expired."""
        if not self._state.auth_token:
            return False
        if self._state.token_expires_at:
            now = now or datetime.now(UTC)
            try:
                if _parse_timestamp(self._state.token_expires_at) <= now:
                    return False
            except ValueError:
                return False
        return True

    def get_agent(self) -> dict[str, str | None] | None:
        """Cached agent info, or None if unknown."""
        if not self._state.agent_id or not self._state.wallet_address:
            return None
        return {
            "id": self._state.agent_id,
            "name": self._state.agent_name,
            "trade": self._state.trade,
            "wallet": self._state.wallet_address,
        }

    async def login(
        self, wallet_address: str, sign_message: SignMessage
    ) -> Result[dict[str, Any]]:
        """Authenticate with a wallet and persist the token.

        Returns:
            Ok with {"token", "agent", "is_new_agent"}, or Err.
        """
        async with self.open_client() as client:
            result = await client.authenticate(wallet_address, sign_message)
        if isinstance(result, Err):
            return result

        agent: Agent = result.value["agent"]
        self._state.wallet_address = wallet_address
        self._state.auth_token = result.value["token"]
        self._remember_agent(agent)
        self._state.last_login = utc_now()
        self._state.token_expires_at = (
            (datetime.now(UTC) + TOKEN_LIFETIME)
            .isoformat(timespec="milliseconds")
            .replace("+00:00", "Z")
        )
        self.save()
        return result

    async def load_credentials(
        self,
        token: str | None = None,
        wallet_address: str | None = None,
        from_env: bool = False,
    ) -> bool:
        """Adopt an existing token and verify it against /auth/me.

        Args:
            token: Bearer token.
            wallet_address: Wallet address to associate.
            from_env: Read MCPSOVEREIGN_TOKEN / MCPSOVEREIGN_WALLET first.

        Returns:
            True if the token is valid.
        """
        if from_env:
            if os.environ.get(ENV_TOKEN):
                self._state.auth_token = os.environ[ENV_TOKEN]
                self._state.token_expires_at = None
            if os.environ.get(ENV_WALLET):
                self._state.wallet_address = os.environ[ENV_WALLET]
        if token:
            self._state.auth_token = token
            self._state.token_expires_at = None
        if wallet_address:
            self._state.wallet_address = wallet_address

        if not self._state.auth_token:
            return False
        return await self._refresh_agent()

    def logout(self) -> None:
        """Forget the token and cached agent info."""
        self._state.auth_token = None
        self._state.token_expires_at = None
        self._state.agent_id = None
        self._state.agent_name = None
        self._state.trade = None
        self.save()

    def export_credentials(self) -> str:
        """Export credentials as a base64 string for use on another machine.

        Raises:
            CredentialsError: If there are no credentials to export.
        """
        if not self._state.auth_token or not self._state.wallet_address:
            raise CredentialsError("No credentials to export")
        payload = {
            "version": EXPORT_VERSION,
            "wallet": self._state.wallet_address,
            "token": self._state.auth_token,
            "agentId": self._state.agent_id,
            "apiUrl": self.api_url,
            "exportedAt": utc_now(),
        }
        return base64.b64encode(json.dumps(payload).encode()).decode()

    async def import_credentials(self, blob: str) -> bool:
        """Import credentials exported by export_credentials().

        Returns:
            True if the imported token is valid.

        Raises:
            CredentialsError: If the export string is malformed.
        """
        try:
            data = json.loads(base64.b64decode(blob, validate=True))
        except (binascii.Error, ValueError) as e:
            raise CredentialsError("Invalid credentials export") from e
        if not isinstance(data, dict) or data.get("version") != EXPORT_VERSION:
            raise CredentialsError("Unsupported export version")

        self._state.wallet_address = data.get("wallet")
        self._state.auth_token = data.get("token")
        self._state.agent_id = data.get("agentId")
        self._state.token_expires_at = None
        if data.get("apiUrl"):
            self._state.api_url = data["apiUrl"]
        return await self._refresh_agent()

    async def _refresh_agent(self) -> bool:
        async with self.open_client() as client:
            result = await client.get_agent_info()
        if isinstance(result, Err):
            logger.info("Token rejected: %s", result)
            return False
        self._remember_agent(result.value)
        self.save()
        return True

    def _remember_agent(self, agent: Agent) -> None:
        self._state.agent_id = agent.id
        self._state.agent_name = agent.display_name
        self._state.trade = agent.trade
        if agent.wallet_address and not self._state.wallet_address:
            self._state.wallet_address = agent.wallet_address

    # === Status / sync ===

    async def status(self) -> RuntimeStatus:
        """Summarize the runtime, checking the token against the API."""
        token_valid = False
        if self._state.auth_token:
            async with self.open_client() as client:
                token_valid = isinstance(await client.get_agent_info(), Ok)
        return RuntimeStatus(
            authenticated=self.is_authenticated(),
            token_valid=token_valid,
            agent_id=self._state.agent_id,
            agent_name=self._state.agent_name,
            wallet_address=self._state.wallet_address,
            api_url=self.api_url,
            config_path=self.config_path,
            store_path=self.store_path,
            last_login=self._state.last_login,
            last_sync=self._state.last_sync,
        )

    async def sync(self, store: LocalStoreManager | None = None) -> Result[SyncResult]:
        """Push the local store and record the sync time on success."""
        if not self.is_authenticated():
            return Err(
                ErrorKind.AUTHENTICATION,
                "Must be authenticated to push",
                code="NOT_AUTHENTICATED",
            )
        store = store or self.open_store()
        async with self.open_client() as client:
            result = await SyncCoordinator(store, client).push(self._state.agent_id)
        if isinstance(result, Ok):
            self._state.last_sync = utc_now()
            self.save()
        return result
