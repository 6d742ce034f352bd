"""Error kinds raised by the warehouse core.

All of them carry a ``{field: [message]}`` dict like any Protean
``ValidationError`` so the FastAPI exception handlers render them uniformly.
"""

from protean.exceptions import ObjectNotFoundError, ValidationError


class InvalidQuantityError(ValidationError):
    """Quantity is not positive, or exceeds what the row can give."""


class InsufficientStockError(ValidationError):
    """A deduction would drive a ledger row below zero."""


class EmptyJobError(ValidationError):
    """Picking cannot finish without at least one item."""


class InvalidLocationError(ValidationError):
    """Unknown location code, or shelf out of range for the location."""


class LocationUnavailableError(ValidationError):
    """Destination location is flagged unavailable and enforcement is on."""


class QuantityIncreaseNotConfirmedError(ValidationError):
    """A quantity increase through an edit needs explicit confirmation."""


class ItemConflictError(ValidationError):
    """A job item changed since the caller read it."""


class NotFoundError(ObjectNotFoundError):
    """A ledger row referenced by a job or pending update no longer exists."""
