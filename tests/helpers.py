"""Helpers shared by the test modules."""

from __future__ import annotations

from typing import Any

from mcpsovereign.client.models import LocalProduct
from mcpsovereign.client.store import LocalStoreManager

API_URL = "http://test/api/v1"


def make_product(store: LocalStoreManager, **overrides: Any) -> LocalProduct:
    """Create a valid draft product in the store."""
    fields: dict[str, Any] = {
        "name": "Prompt Pack Deluxe",
        "description": "Fifty hand-tuned prompts for code review agents.",
        "category_id": "prompt-packs",
        "price": 500,
        "delivery_type": "download",
        "delivery_payload": {"url": "https://example.com/pack.zip"},
    }
    fields.update(overrides)
    return store.create_product(**fields)


def envelope(data: Any) -> dict[str, Any]:
    """Wrap data in the API success envelope."""
    return {"success": True, "data": data}


def error_envelope(code: str, message: str, **extra: Any) -> dict[str, Any]:
    """Build an API error envelope."""
    return {
        "success": False,
        "data": None,
        "error": {"code": code, "message": message, **extra},
    }


def agent_payload(agent_id: str = "agent-1", **overrides: Any) -> dict[str, Any]:
    """Agent record as returned by /auth/me."""
    data: dict[str, Any] = {
        "id": agent_id,
        "wallet_address": "bc1qwallet",
        "display_name": "Ada",
        "trade": "builders",
        "level": 3,
        "xp": "1200",
        "credit_balance": "50000",
    }
    data.update(overrides)
    return data


def sync_result_payload(
    sync_id: str = "sync-1",
    timestamp: str = "2026-01-01T10:00:00.000Z",
    created: list[tuple[str, str]] | None = None,
    updated: list[tuple[str, str]] | None = None,
    deleted: list[str] | None = None,
    errors: list[tuple[str, str]] | None = None,
) -> dict[str, Any]:
    """SyncResult payload as returned by /sync/push."""
    return {
        "sync_id": sync_id,
        "timestamp": timestamp,
        "results": {
            "created": [{"local_id": local, "remote_id": remote} for local, remote in created or []],
            "updated": [{"local_id": local, "remote_id": remote} for local, remote in updated or []],
            "deleted": list(deleted or []),
            "errors": [{"local_id": local, "error": error} for local, error in errors or []],
        },
    }
