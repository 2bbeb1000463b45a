"""Domain error taxonomy raised by the service layer.

Services raise these instead of HTTP exceptions; ``main.py`` maps each kind to a
status code at the boundary.
"""

from typing import Optional


class MarketplaceError(Exception):
    """Base class for all expected domain failures"""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(MarketplaceError):
    """Entity absent or not visible to the caller"""


class UnauthorizedError(MarketplaceError):
    """Missing or invalid credentials"""


class ForbiddenError(MarketplaceError):
    """Authenticated, but the caller does not own the resource or lacks the role"""


class ValidationError(MarketplaceError):
    """Malformed input: rating range, price, date or time format"""


class InvalidStateError(MarketplaceError):
    """Mutation attempted on a terminal or locked entity"""


class ConflictError(MarketplaceError):
    """Duplicate entity or a lost concurrent-update race"""


class InvalidTransitionError(MarketplaceError):
    """Booking status change not allowed from the current status"""

    def __init__(self, from_status: str, to_status: str, message: Optional[str] = None):
        super().__init__(message or f"Cannot transition from {from_status} to {to_status}")
        self.from_status = from_status
        self.to_status = to_status
