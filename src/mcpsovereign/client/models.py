"""Data model for the local store and the sync protocol.

This module provides:
- LocalProduct, StoreProfile, SyncHistoryEntry, PendingDeletion, LocalStore:
  the persisted local store document
- ManifestEntry, SyncManifest: the diff sent on push
- SyncResult, PullResult: values returned by the remote service

Field names match the on-disk JSON document exactly. Optional fields that
are unset are omitted when serializing rather than written as null.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import UTC, datetime
from typing import Any

from mcpsovereign.core.types import (
    DeliveryType,
    ProductStatus,
    SyncAction,
    SyncDirection,
)

STORE_VERSION = "1.0.0"
MANIFEST_VERSION = "1.0.0"

# Fields a caller may change through update_product()
EDITABLE_FIELDS = (
    "name",
    "description",
    "category_id",
    "price",
    "delivery_type",
    "delivery_payload",
    "content_hash",
    "file_size_bytes",
)


def utc_now() -> str:
    """Current UTC time as an ISO-8601 string with millisecond precision."""
    return (
        datetime.now(UTC)
        .isoformat(timespec="milliseconds")
        .replace("+00:00", "Z")
    )


def _drop_none(data: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in data.items() if v is not None}


def _objects(data: dict[str, Any], key: str) -> list[dict[str, Any]]:
    """List of JSON objects stored under key (missing means empty).

    Raises:
        TypeError: If the value is not a list of objects.
    """
    items = data.get(key) or []
    if not isinstance(items, list) or not all(isinstance(i, dict) for i in items):
        raise TypeError(f"{key} must be a list of JSON objects")
    return items


@dataclass
class LocalProduct:
    """A sellable item as known locally.

    Attributes:
        local_id: Identifier assigned at creation, never reassigned.
        remote_id: Marketplace product ID, set once on first successful create.
        name: Product name.
        description: Product description.
        category_id: Marketplace category slug.
        price: Price in credits.
        delivery_type: How the product is fulfilled.
        delivery_payload: Free-form fulfillment data (meaning depends on delivery_type).
        content_hash: Optional hash of the delivered content.
        file_size_bytes: Optional size of the delivered content.
        status: Local lifecycle state.
        created_at: Creation timestamp.
        updated_at: Timestamp of the last local mutation.
        synced_at: Timestamp of the last successful sync.
    """

    local_id: str
    name: str
    description: str
    category_id: str
    price: float
    delivery_type: DeliveryType
    status: ProductStatus
    created_at: str
    updated_at: str
    remote_id: str | None = None
    delivery_payload: Any = None
    content_hash: str | None = None
    file_size_bytes: int | None = None
    synced_at: str | None = None

    def data_snapshot(self) -> dict[str, Any]:
        """Content fields sent with create/update manifest entries."""
        return _drop_none(
            {
                "name": self.name,
                "description": self.description,
                "category_id": self.category_id,
                "price": self.price,
                "delivery_type": self.delivery_type.value,
                "delivery_payload": self.delivery_payload,
                "content_hash": self.content_hash,
                "file_size_bytes": self.file_size_bytes,
            }
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize for the local store document."""
        return _drop_none(
            {
                "local_id": self.local_id,
                "remote_id": self.remote_id,
                "name": self.name,
                "description": self.description,
                "category_id": self.category_id,
                "price": self.price,
                "delivery_type": self.delivery_type.value,
                "delivery_payload": self.delivery_payload,
                "content_hash": self.content_hash,
                "file_size_bytes": self.file_size_bytes,
                "status": self.status.value,
                "created_at": self.created_at,
                "updated_at": self.updated_at,
                "synced_at": self.synced_at,
            }
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LocalProduct:
        """Create from a store document dictionary."""
        return cls(
            local_id=data["local_id"],
            remote_id=data.get("remote_id"),
            name=data["name"],
            description=data.get("description", ""),
            category_id=data.get("category_id", ""),
            price=data["price"],
            delivery_type=DeliveryType(data["delivery_type"]),
            delivery_payload=data.get("delivery_payload"),
            content_hash=data.get("content_hash"),
            file_size_bytes=data.get("file_size_bytes"),
            status=ProductStatus(data["status"]),
            created_at=data["created_at"],
            updated_at=data["updated_at"],
            synced_at=data.get("synced_at"),
        )


@dataclass
class StoreProfile:
    """Seller-facing metadata for the whole store."""

    name: str | None = None
    tagline: str | None = None
    description: str | None = None
    logo_url: str | None = None
    banner_url: str | None = None
    social_links: dict[str, str] | None = None

    def merge(self, partial: dict[str, Any]) -> None:
        """Update the profile in place with the known keys of partial."""
        known = {f.name for f in fields(self)}
        for key, value in partial.items():
            if key in known:
                setattr(self, key, value)

    def to_dict(self) -> dict[str, Any]:
        return _drop_none({f.name: getattr(self, f.name) for f in fields(self)})

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> StoreProfile:
        profile = cls()
        profile.merge(data)
        return profile


@dataclass
class SyncHistoryEntry:
    """One push or pull recorded in the store's sync history."""

    id: str
    direction: SyncDirection
    timestamp: str
    products_synced: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "direction": self.direction.value,
            "timestamp": self.timestamp,
            "products_synced": self.products_synced,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SyncHistoryEntry:
        return cls(
            id=data["id"],
            direction=SyncDirection(data["direction"]),
            timestamp=data["timestamp"],
            products_synced=data.get("products_synced", 0),
        )


@dataclass
class PendingDeletion:
    """Tombstone for a synced product deleted locally.

    Kept until the remote service confirms the deletion, so the delete
    action is resent on every push in the meantime.
    """

    local_id: str
    remote_id: str
    deleted_at: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "local_id": self.local_id,
            "remote_id": self.remote_id,
            "deleted_at": self.deleted_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PendingDeletion:
        return cls(
            local_id=data["local_id"],
            remote_id=data["remote_id"],
            deleted_at=data["deleted_at"],
        )


@dataclass
class LocalStore:
    """Aggregate root persisted as the local store document."""

    version: str = STORE_VERSION
    profile: StoreProfile = field(default_factory=StoreProfile)
    products: list[LocalProduct] = field(default_factory=list)
    sync_history: list[SyncHistoryEntry] = field(default_factory=list)
    last_sync: str | None = None
    pending_deletions: list[PendingDeletion] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the on-disk document."""
        data: dict[str, Any] = {
            "version": self.version,
            "profile": self.profile.to_dict(),
            "products": [p.to_dict() for p in self.products],
            "sync_history": [h.to_dict() for h in self.sync_history],
        }
        if self.last_sync is not None:
            data["last_sync"] = self.last_sync
        # Omitted when empty
        if self.pending_deletions:
            data["pending_deletions"] = [d.to_dict() for d in self.pending_deletions]
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LocalStore:
        """Parse the on-disk document.

        Raises:
            KeyError, TypeError, ValueError: If the document is malformed.
        """
        if not isinstance(data, dict):
            raise TypeError("Store document must be a JSON object")
        profile = data.get("profile") or {}
        if not isinstance(profile, dict):
            raise TypeError("profile must be a JSON object")
        return cls(
            version=data.get("version", STORE_VERSION),
            profile=StoreProfile.from_dict(profile),
            products=[
                LocalProduct.from_dict(p) for p in _objects(data, "products")
            ],
            sync_history=[
                SyncHistoryEntry.from_dict(h) for h in _objects(data, "sync_history")
            ],
            last_sync=data.get("last_sync"),
            pending_deletions=[
                PendingDeletion.from_dict(d)
                for d in _objects(data, "pending_deletions")
            ],
        )


@dataclass
class ManifestEntry:
    """One product line of a sync manifest."""

    local_id: str
    action: SyncAction
    local_updated_at: str
    remote_id: str | None = None
    data: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        return _drop_none(
            {
                "local_id": self.local_id,
                "remote_id": self.remote_id,
                "action": self.action.value,
                "data": self.data,
                "local_updated_at": self.local_updated_at,
            }
        )


@dataclass
class SyncManifest:
    """Diff of local product actions sent to the remote service on push."""

    agent_id: str
    timestamp: str
    products: list[ManifestEntry]
    checksum: str
    store_profile: StoreProfile | None = None
    version: str = MANIFEST_VERSION

    @property
    def actionable(self) -> list[ManifestEntry]:
        """Entries the remote service must act on."""
        return [e for e in self.products if e.action is not SyncAction.UNCHANGED]

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "version": self.version,
            "agent_id": self.agent_id,
            "timestamp": self.timestamp,
            "products": [e.to_dict() for e in self.products],
            "checksum": self.checksum,
        }
        if self.store_profile is not None:
            data["store_profile"] = self.store_profile.to_dict()
        return data


@dataclass
class SyncPair:
    """Mapping of a local product to its remote counterpart."""

    local_id: str
    remote_id: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SyncPair:
        return cls(local_id=data["local_id"], remote_id=data["remote_id"])


@dataclass
class SyncError:
    """Per-record rejection reported by the remote service."""

    local_id: str
    error: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SyncError:
        return cls(local_id=data["local_id"], error=str(data.get("error", "")))


@dataclass
class SyncResult:
    """Outcome of a push as reported by the remote service."""

    sync_id: str
    timestamp: str
    created: list[SyncPair] = field(default_factory=list)
    updated: list[SyncPair] = field(default_factory=list)
    deleted: list[str] = field(default_factory=list)
    errors: list[SyncError] = field(default_factory=list)

    @property
    def products_synced(self) -> int:
        return len(self.created) + len(self.updated)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SyncResult:
        """Create from the /sync/push response payload.

        Raises:
            ValueError: If the payload does not have the expected shape.
        """
        try:
            results = data.get("results") or {}
            return cls(
                sync_id=str(data["sync_id"]),
                timestamp=str(data["timestamp"]),
                created=[SyncPair.from_dict(c) for c in results.get("created", [])],
                updated=[SyncPair.from_dict(u) for u in results.get("updated", [])],
                deleted=[str(d) for d in results.get("deleted", [])],
                errors=[SyncError.from_dict(e) for e in results.get("errors", [])],
            )
        except (AttributeError, KeyError, TypeError) as e:
            raise ValueError(f"Malformed sync result: {e!r}") from e


@dataclass
class PullResult:
    """Remote-side activity returned by /sync/pull.

    Purchases, reviews and product updates are kept as opaque dictionaries;
    `raw` holds the untouched payload.
    """

    sync_id: str
    timestamp: str
    since: str | None
    sync_map: list[SyncPair]
    new_purchases: list[dict[str, Any]]
    new_reviews: list[dict[str, Any]]
    product_updates: list[dict[str, Any]]
    overall_stats: dict[str, Any]
    raw: dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PullResult:
        """Create from the /sync/pull response payload.

        Raises:
            ValueError: If the payload does not have the expected shape.
        """
        try:
            return cls(
                sync_id=str(data["sync_id"]),
                timestamp=str(data["timestamp"]),
                since=data.get("since"),
                sync_map=[SyncPair.from_dict(m) for m in data.get("sync_map", [])],
                new_purchases=list(data.get("new_purchases", [])),
                new_reviews=list(data.get("new_reviews", [])),
                product_updates=list(data.get("product_updates", [])),
                overall_stats=dict(data.get("overall_stats") or {}),
                raw=data,
            )
        except (AttributeError, KeyError, TypeError) as e:
            raise ValueError(f"Malformed pull result: {e!r}") from e
