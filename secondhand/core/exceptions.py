"""
Marketplace Exception Hierarchy

Every error raised by the services carries a human-readable message, a
machine-readable code, optional details for logging, and the HTTP status the
API layer renders it with.

Exception Hierarchy:
    MarketplaceError
    ├── ValidationError        400
    ├── AuthenticationError    401
    ├── AuthorizationError     403
    ├── NotFoundError          404
    └── UnexpectedError        500
"""
import logging
from typing import Optional, Dict, Any

logger = logging.getLogger(__name__)


class MarketplaceError(Exception):
    """
    Base exception for all marketplace errors.

    Attributes:
        message: Human-readable error description (returned to the client)
        code: Machine-readable error code for logs
        details: Additional context for debugging
        status_code: HTTP status used when rendered by the API
    """

    default_code: str = "MARKETPLACE_ERROR"
    status_code: int = 500

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.code = code or self.default_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "code": self.code,
            "message": self.message,
            "status_code": self.status_code,
            "details": self.details,
        }

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code!r}, message={self.message!r})"


class ValidationError(MarketplaceError):
    """Missing or malformed input."""
    default_code = "VALIDATION_FAILED"
    status_code = 400


class AuthenticationError(MarketplaceError):
    """Missing or unresolvable credential."""
    default_code = "NOT_AUTHENTICATED"
    status_code = 401


class AuthorizationError(MarketplaceError):
    """Authenticated, but not the owner of the resource."""
    default_code = "NOT_AUTHORIZED"
    status_code = 403


class NotFoundError(MarketplaceError):
    """Entity absent from the store."""
    default_code = "NOT_FOUND"
    status_code = 404

    def __init__(self, message: str, entity_key: Optional[str] = None, **kwargs):
        details = kwargs.pop("details", {})
        if entity_key:
            details["entity_key"] = entity_key
        super().__init__(message, details=details, **kwargs)


class UnexpectedError(MarketplaceError):
    """A collaborator (store, identity provider, blob storage) failed."""
    default_code = "UNEXPECTED"
    status_code = 500
