"""Local-first product store.

This module provides:
- LocalStoreManager: file-backed CRUD store for product drafts
- SyncStats: product counts by sync state

Architecture:
    The whole store is one JSON document loaded into memory and written
    back as a unit. Each product carries an explicit lifecycle status:

        draft --mark_ready--> ready --push(create)--> synced
        synced --edit--> modified --push(update)--> synced

    Only products with a remote_id can be synced or modified, and a
    product with a remote_id never goes back to draft or ready.

    The manager is meant for a single caller at a time. Concurrent
    processes sharing the same file are last-write-wins.
"""

from __future__ import annotations

import copy
import hashlib
import json
import logging
import os
import secrets
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from mcpsovereign.client.models import (
    EDITABLE_FIELDS,
    LocalProduct,
    LocalStore,
    ManifestEntry,
    PendingDeletion,
    PullResult,
    StoreProfile,
    SyncHistoryEntry,
    SyncManifest,
    SyncResult,
    utc_now,
)
from mcpsovereign.core.types import (
    DeliveryType,
    ProductStatus,
    SyncAction,
    SyncDirection,
)

logger = logging.getLogger(__name__)

LOCAL_ID_PREFIX = "local_"


@dataclass
class SyncStats:
    """Product counts by sync state."""

    total: int
    synced: int
    pending: int
    drafts: int
    pending_deletions: int


def compute_checksum(entries: list[dict[str, Any]]) -> str:
    """Deterministic checksum of manifest entries.

    SHA-256 over canonical JSON (sorted keys, compact separators). Used by
    the remote side for drift detection, not for security.
    """
    canonical = json.dumps(entries, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


class LocalStoreManager:
    """File-backed store of local products.

    The manager exclusively owns the in-memory LocalStore and its file.
    Lookups of unknown local ids return None/False instead of raising.
    """

    def __init__(self, store_path: Path | str) -> None:
        """Initialize the manager with an empty store.

        Args:
            store_path: Path of the JSON document. Call load() to read it.
        """
        self._path = Path(store_path)
        self._store = LocalStore()

    @property
    def path(self) -> Path:
        """Path of the backing JSON document."""
        return self._path

    @property
    def store(self) -> LocalStore:
        """The in-memory store. Mutate it only through the manager."""
        return self._store

    # === Persistence ===

    def load(self) -> None:
        """Replace in-memory state with the document on disk.

        A missing, unreadable or corrupt file falls back to an empty store.
        Never raises.
        """
        if not self._path.exists():
            logger.debug("No store at %s, starting empty", self._path)
            self._store = LocalStore()
            return

        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
            self._store = LocalStore.from_dict(data)
        except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
            logger.warning("Could not load store from %s (%s), starting empty", self._path, e)
            self._store = LocalStore()
            return

        logger.debug(
            "Loaded %d products from %s", len(self._store.products), self._path
        )

    def save(self) -> bool:
        """Write the whole store to disk.

        The document is written to a temporary file in the same directory
        and moved into place, so readers see either the old or the new file.

        Returns:
            True if the store was written, False otherwise.
        """
        payload = json.dumps(self._store.to_dict(), indent=2)
        tmp_name: str | None = None
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self._path.name}.", suffix=".tmp", dir=self._path.parent
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
            os.replace(tmp_name, self._path)
        except OSError:
            logger.exception("Failed to save store to %s", self._path)
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            return False
        return True

    # === Products ===

    def get_products(self) -> list[LocalProduct]:
        """List all products in insertion order."""
        return list(self._store.products)

    def get_product(self, local_id: str) -> LocalProduct | None:
        """Get a product by local id.

        Returns:
            The product, or None if not found.
        """
        for product in self._store.products:
            if product.local_id == local_id:
                return product
        return None

    def create_product(
        self,
        *,
        name: str,
        description: str,
        category_id: str,
        price: float,
        delivery_type: DeliveryType | str,
        delivery_payload: Any = None,
        content_hash: str | None = None,
        file_size_bytes: int | None = None,
    ) -> LocalProduct:
        """Create a new draft product. Local only, no validation."""
        now = utc_now()
        product = LocalProduct(
            local_id=self._generate_id(),
            name=name,
            description=description,
            category_id=category_id,
            price=price,
            delivery_type=DeliveryType(delivery_type),
            delivery_payload=delivery_payload,
            content_hash=content_hash,
            file_size_bytes=file_size_bytes,
            status=ProductStatus.DRAFT,
            created_at=now,
            updated_at=now,
        )
        self._store.products.append(product)
        logger.debug("Created product %s (%s)", product.local_id, name)
        return product

    def update_product(
        self, local_id: str, changes: dict[str, Any]
    ) -> LocalProduct | None:
        """Merge content changes into a product.

        Only editable content fields are applied; identifiers, status and
        timestamps in `changes` are ignored, as are None values. A product
        that has a remote_id becomes MODIFIED. Changes are applied all or
        nothing.

        Returns:
            The updated product, or None if not found.

        Raises:
            ValueError: If delivery_type is not a known DeliveryType. The
                product is left unchanged.
        """
        product = self.get_product(local_id)
        if product is None:
            return None

        accepted: dict[str, Any] = {}
        for key, value in changes.items():
            if key not in EDITABLE_FIELDS:
                if key != "local_id":
                    logger.debug("Ignoring non-editable field %r on %s", key, local_id)
                continue
            if value is None:
                continue
            if key == "delivery_type":
                value = DeliveryType(value)
            accepted[key] = value

        for key, value in accepted.items():
            setattr(product, key, value)

        product.updated_at = utc_now()
        if product.remote_id is not None:
            product.status = ProductStatus.MODIFIED
        return product

    def delete_product(self, local_id: str) -> bool:
        """Remove a product.

        A product that already exists remotely leaves a tombstone so the
        next push sends a delete action for it.

        Returns:
            True if the product was removed, False if not found.
        """
        product = self.get_product(local_id)
        if product is None:
            return False

        self._store.products.remove(product)
        if product.remote_id is not None:
            self._store.pending_deletions.append(
                PendingDeletion(
                    local_id=product.local_id,
                    remote_id=product.remote_id,
                    deleted_at=utc_now(),
                )
            )
            logger.debug("Queued remote deletion of %s", product.remote_id)
        return True

    def mark_ready(self, local_id: str) -> LocalProduct | None:
        """Mark a draft as ready to publish.

        Products that already exist remotely keep their status.

        Returns:
            The product, or None if not found.
        """
        product = self.get_product(local_id)
        if product is None:
            return None
        if product.remote_id is None and product.status is ProductStatus.DRAFT:
            product.status = ProductStatus.READY
            product.updated_at = utc_now()
        return product

    def get_unsynced_products(self) -> list[LocalProduct]:
        """Products a push must act on (READY or MODIFIED)."""
        return [
            p
            for p in self._store.products
            if p.status in (ProductStatus.READY, ProductStatus.MODIFIED)
        ]

    def get_pending_deletions(self) -> list[PendingDeletion]:
        """Tombstones of synced products deleted locally."""
        return list(self._store.pending_deletions)

    def get_sync_stats(self) -> SyncStats:
        """Count products by sync state."""
        products = self._store.products
        return SyncStats(
            total=len(products),
            synced=sum(1 for p in products if p.status is ProductStatus.SYNCED),
            pending=len(self.get_unsynced_products()),
            drafts=sum(1 for p in products if p.status is ProductStatus.DRAFT),
            pending_deletions=len(self._store.pending_deletions),
        )

    # === Profile ===

    def get_profile(self) -> StoreProfile:
        """Get a copy of the store profile."""
        return copy.deepcopy(self._store.profile)

    def update_profile(self, changes: dict[str, Any]) -> StoreProfile:
        """Merge changes into the store profile."""
        self._store.profile.merge(changes)
        return self.get_profile()

    # === Sync ===

    def generate_sync_manifest(self, agent_id: str) -> SyncManifest:
        """Compute the diff to send on push.

        Drafts are left out entirely. READY products without a remote_id
        become CREATE, MODIFIED products with a remote_id become UPDATE,
        everything else is UNCHANGED and carries no data. Tombstones are
        appended as DELETE.
        """
        entries: list[ManifestEntry] = []
        for product in self._store.products:
            if product.status is ProductStatus.DRAFT:
                continue

            if product.remote_id is None and product.status is ProductStatus.READY:
                action = SyncAction.CREATE
            elif product.remote_id is not None and product.status is ProductStatus.MODIFIED:
                action = SyncAction.UPDATE
            else:
                action = SyncAction.UNCHANGED

            entries.append(
                ManifestEntry(
                    local_id=product.local_id,
                    remote_id=product.remote_id,
                    action=action,
                    data=(
                        product.data_snapshot()
                        if action is not SyncAction.UNCHANGED
                        else None
                    ),
                    local_updated_at=product.updated_at,
                )
            )

        for tombstone in self._store.pending_deletions:
            entries.append(
                ManifestEntry(
                    local_id=tombstone.local_id,
                    remote_id=tombstone.remote_id,
                    action=SyncAction.DELETE,
                    local_updated_at=tombstone.deleted_at,
                )
            )

        return SyncManifest(
            agent_id=agent_id,
            timestamp=utc_now(),
            products=entries,
            store_profile=copy.deepcopy(self._store.profile),
            checksum=compute_checksum([e.to_dict() for e in entries]),
        )

    def apply_sync_results(self, result: SyncResult) -> bool:
        """Apply a push result to local state.

        Applying the same result twice is a no-op the second time. Records
        listed in result.errors keep their status so the next push retries
        them.

        Returns:
            True if the result was applied, False if it was already applied.
        """
        if self._has_history(result.sync_id, SyncDirection.PUSH):
            logger.info("Sync %s already applied, skipping", result.sync_id)
            return False

        for pair in result.created:
            product = self.get_product(pair.local_id)
            if product is None:
                logger.warning("Created product %s not found locally", pair.local_id)
                continue
            if product.remote_id is not None or product.status is not ProductStatus.READY:
                continue
            product.remote_id = pair.remote_id
            product.status = ProductStatus.SYNCED
            product.synced_at = result.timestamp

        for pair in result.updated:
            product = self.get_product(pair.local_id)
            if product is None:
                logger.warning("Updated product %s not found locally", pair.local_id)
                continue
            if product.status is not ProductStatus.MODIFIED:
                continue
            product.status = ProductStatus.SYNCED
            product.synced_at = result.timestamp

        if result.deleted:
            confirmed = set(result.deleted)
            self._store.pending_deletions = [
                d for d in self._store.pending_deletions if d.local_id not in confirmed
            ]

        for error in result.errors:
            logger.warning("Remote rejected %s: %s", error.local_id, error.error)

        self._store.sync_history.append(
            SyncHistoryEntry(
                id=result.sync_id,
                direction=SyncDirection.PUSH,
                timestamp=result.timestamp,
                products_synced=result.products_synced,
            )
        )
        self._store.last_sync = result.timestamp
        return True

    def record_pull(self, result: PullResult) -> bool:
        """Record a pull in the sync history. Products are not touched.

        Returns:
            True if recorded, False if this pull was already recorded.
        """
        if self._has_history(result.sync_id, SyncDirection.PULL):
            return False
        self._store.sync_history.append(
            SyncHistoryEntry(
                id=result.sync_id,
                direction=SyncDirection.PULL,
                timestamp=result.timestamp,
                products_synced=len(result.product_updates),
            )
        )
        return True

    def last_pull_at(self) -> str | None:
        """Timestamp of the most recent pull, usable as a pull cursor."""
        for entry in reversed(self._store.sync_history):
            if entry.direction is SyncDirection.PULL:
                return entry.timestamp
        return None

    def get_sync_history(self) -> list[SyncHistoryEntry]:
        """Sync history, oldest first."""
        return list(self._store.sync_history)

    # === Helpers ===

    def _has_history(self, sync_id: str, direction: SyncDirection) -> bool:
        return any(
            h.id == sync_id and h.direction is direction
            for h in self._store.sync_history
        )

    def _generate_id(self) -> str:
        taken = {p.local_id for p in self._store.products}
        taken.update(d.local_id for d in self._store.pending_deletions)
        while True:
            local_id = LOCAL_ID_PREFIX + secrets.token_hex(8)
            if local_id not in taken:
                return local_id
