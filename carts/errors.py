# carts/errors.py
"""
Error kinds raised by the cart services.

Routers translate them to HTTP status codes; nothing below the service layer
should leak SQLAlchemy exceptions to callers.
"""

# shared messages so "absent", "soft-deleted" and "expired" look the same
CART_NOT_FOUND_OR_EXPIRED = "Cart not found or expired"
CART_NOT_FOUND = "Cart not found"
CART_ITEM_NOT_FOUND = "Cart item not found"
VERSION_MISMATCH = "Cart version mismatch, re-fetch the cart and retry"


class CartError(Exception):
    """Base class for every error the cart core raises."""


class InvalidArgument(CartError, ValueError):
    """Malformed identifier, non-positive quantity or bad pagination."""


class NotFound(CartError):
    """Row does not exist (admin operations)."""


class NotFoundOrExpired(NotFound):
    """Row absent, soft-deleted or past its expiry."""


class CartItemNotFound(NotFoundOrExpired):
    """Item id does not belong to the cart."""


class VersionConflict(CartError):
    """Optimistic-lock predicate failed on an otherwise active cart."""


class ConstraintViolation(CartError):
    """Storage rejected a write (uniqueness, foreign key, check)."""


class InternalError(CartError):
    """Transaction or connectivity failure."""
