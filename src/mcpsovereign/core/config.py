"""Shared configuration classes for mcpsovereign.

The configuration object is passed explicitly to the API client, the
store manager and the sync coordinator. Nothing reads process-wide state
except ClientConfig.from_env().
"""

from __future__ import annotations

import os
from dataclasses import dataclass

DEFAULT_API_URL = "https://api.mcpsovereign.com/api/v1"
DEFAULT_STORE_PATH = "./sovereign-store.json"

ENV_API_URL = "MCPSOVEREIGN_API_URL"
ENV_TOKEN = "MCPSOVEREIGN_TOKEN"
ENV_STORE_PATH = "MCPSOVEREIGN_STORE_PATH"


@dataclass
class ClientConfig:
    """Configuration for talking to the marketplace API.

    Attributes:
        api_url: Base URL of the API (e.g., "https://api.mcpsovereign.com/api/v1").
        token: Bearer token returned by /auth/verify, if authenticated.
        store_path: Path of the local store JSON document.
        timeout: Request timeout in seconds.
        verify_ssl: Whether to verify SSL certificates (default True).
    """

    api_url: str = DEFAULT_API_URL
    token: str | None = None
    store_path: str = DEFAULT_STORE_PATH
    timeout: float = 30.0
    verify_ssl: bool = True

    def __post_init__(self) -> None:
        """Normalize API URL."""
        self.api_url = self.api_url.rstrip("/")

    @property
    def is_secure(self) -> bool:
        """Check if using HTTPS.

        Returns:
            True if the API uses HTTPS.
        """
        return self.api_url.startswith("https://")

    @classmethod
    def from_env(cls, **overrides: object) -> ClientConfig:
        """Build a config from MCPSOVEREIGN_* environment variables.

        Keyword arguments take precedence over the environment.
        """
        values: dict[str, object] = {
            "api_url": os.environ.get(ENV_API_URL, DEFAULT_API_URL),
            "token": os.environ.get(ENV_TOKEN) or None,
            "store_path": os.environ.get(ENV_STORE_PATH, DEFAULT_STORE_PATH),
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)  # type: ignore[arg-type]
