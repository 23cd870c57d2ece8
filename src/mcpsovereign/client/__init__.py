"""Client module - Local store, sync coordinator, API client and runtime."""

from mcpsovereign.client.api import Agent, SovereignClient
from mcpsovereign.client.models import (
    LocalProduct,
    LocalStore,
    PendingDeletion,
    PullResult,
    StoreProfile,
    SyncHistoryEntry,
    SyncManifest,
    SyncResult,
)
from mcpsovereign.client.runtime import AgentRuntime, CredentialsError
from mcpsovereign.client.store import LocalStoreManager, SyncStats
from mcpsovereign.client.sync import SyncCoordinator
from mcpsovereign.client.validation import ValidationReport, validate_product

__all__ = [
    # API
    "Agent",
    "SovereignClient",
    # Models
    "LocalProduct",
    "LocalStore",
    "PendingDeletion",
    "PullResult",
    "StoreProfile",
    "SyncHistoryEntry",
    "SyncManifest",
    "SyncResult",
    # Store
    "LocalStoreManager",
    "SyncStats",
    # Sync
    "SyncCoordinator",
    # Runtime
    "AgentRuntime",
    "CredentialsError",
    # Validation
    "ValidationReport",
    "validate_product",
]
