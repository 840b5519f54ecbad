from typing import List, Optional


class BaseServiceError(Exception):
    """Base exception for all service-related errors."""
    pass

class ProductServiceError(BaseServiceError):
    """Base exception for product lookups."""
    pass

class ProductNotFoundError(ProductServiceError):
    """Raised when product is not found."""
    pass

class DeliveryItemNotFoundError(BaseServiceError):
    """Raised when a delivery note item is not found."""
    pass

class ValidationError(BaseServiceError):
    """Raised when data validation fails."""
    pass

class SyncError(BaseServiceError):
    """Base exception for Sellus synchronization failures."""
    pass

class IdentifierNotResolvable(SyncError):
    """Raised when a product cannot be mapped to a Sellus numeric item id."""

    def __init__(self, message: str, article_ref: Optional[str] = None):
        super().__init__(message)
        self.article_ref = article_ref

class MissingArticleRef(IdentifierNotResolvable):
    """Raised when the product carries no Sellus article number."""
    pass

class ArticleNotFound(IdentifierNotResolvable):
    """Raised when the article number is not present in the Sellus catalog."""
    pass

class RemoteUnavailable(SyncError):
    """Raised when Sellus could not be reached or answered with a server error."""
    pass

class NoOrderFound(SyncError):
    """Raised when no strategy of the order resolution chain located an order."""

    def __init__(self, message: str, attempts: Optional[List[str]] = None):
        super().__init__(message)
        self.attempts = attempts or []

class VerificationMismatch(SyncError):
    """A write was accepted but the read-back disagrees with what was written."""

    def __init__(self, expected: int, observed: Optional[int]):
        super().__init__(f"Sellus reports stock {observed} after writing {expected}")
        self.expected = expected
        self.observed = observed

class ConcurrentUpdateRisk(SyncError):
    """
    Names the read-then-write race on purchase-order counters.

    Sellus offers no concurrency token, so this is never detected or raised.
    """
    pass
