"""
Core module exports.
"""
from .enums import (
    ProductSyncStatus,
    LedgerStatus,
    OutcomeStatus,
    SyncDirection,
    SyncType,
)

from .exceptions import (
    BaseServiceError,
    ProductServiceError,
    ProductNotFoundError,
    DeliveryItemNotFoundError,
    ValidationError,
    SyncError,
    IdentifierNotResolvable,
    MissingArticleRef,
    ArticleNotFound,
    RemoteUnavailable,
    NoOrderFound,
    VerificationMismatch,
    ConcurrentUpdateRisk,
)
