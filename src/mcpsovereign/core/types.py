"""Shared types for mcpsovereign.

This module defines the enums used by the local store, the manifest
and the API client.
"""

from __future__ import annotations

from enum import Enum


class ProductStatus(str, Enum):
    """Local lifecycle state of a product.

    draft -> ready -> synced <-> modified. Only products that have a
    remote_id can be synced or modified.
    """

    DRAFT = "draft"
    READY = "ready"
    SYNCED = "synced"
    MODIFIED = "modified"


class DeliveryType(str, Enum):
    """How a purchased product is delivered to the buyer."""

    DOWNLOAD = "download"
    REPO = "repo"
    API = "api"
    MANUAL = "manual"


class SyncAction(str, Enum):
    """Action attached to a product in a sync manifest."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    UNCHANGED = "unchanged"


class SyncDirection(str, Enum):
    """Direction of a sync history entry."""

    PUSH = "push"
    PULL = "pull"
