"""Shared pytest fixtures."""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path
from unittest.mock import patch

import pytest

from mcpsovereign.client.store import LocalStoreManager
from mcpsovereign.core.config import ClientConfig
from tests.helpers import API_URL


@pytest.fixture(autouse=True)
def fake_keyring() -> Iterator[dict[tuple[str, str], str]]:
    """Replace the OS keyring with an in-memory dict."""
    secrets: dict[tuple[str, str], str] = {}
    with patch("mcpsovereign.client.runtime.keyring") as mock_keyring:
        mock_keyring.get_password.side_effect = lambda s, u: secrets.get((s, u))
        mock_keyring.set_password.side_effect = (
            lambda s, u, p: secrets.__setitem__((s, u), p)
        )
        mock_keyring.delete_password.side_effect = lambda s, u: secrets.pop((s, u), None)
        yield secrets


@pytest.fixture
def config(tmp_path: Path) -> ClientConfig:
    """ClientConfig pointing at the mocked API."""
    return ClientConfig(
        api_url=API_URL,
        token="token123",
        store_path=str(tmp_path / "store.json"),
    )


@pytest.fixture
def store(tmp_path: Path) -> LocalStoreManager:
    """Empty store manager backed by a temp file."""
    return LocalStoreManager(tmp_path / "store.json")
