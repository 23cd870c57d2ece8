"""Core module - Shared config, result values and enums."""

from mcpsovereign.core.config import ClientConfig
from mcpsovereign.core.result import BillingInfo, Err, ErrorKind, Ok, Result
from mcpsovereign.core.types import (
    DeliveryType,
    ProductStatus,
    SyncAction,
    SyncDirection,
)

__all__ = [
    # Config
    "ClientConfig",
    # Results
    "BillingInfo",
    "Err",
    "ErrorKind",
    "Ok",
    "Result",
    # Types
    "DeliveryType",
    "ProductStatus",
    "SyncAction",
    "SyncDirection",
]
