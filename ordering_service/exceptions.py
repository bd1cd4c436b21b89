"""
exceptions.py — Error taxonomy of the data-access layer.

    OrderingServiceError
     ├── BackendUnavailable  no backend configured, or the transport call failed
     ├── NotFound            single-row lookup matched nothing
     ├── RowDecodeError      a stored row does not fit the fixed column schema
     ├── UnsupportedOperation  the configured store lacks the capability
     └── InvalidOrder        an order payload is missing or mistyped fields
"""


class OrderingServiceError(Exception):
    pass


class BackendUnavailable(OrderingServiceError):
    """Raised when the backing store cannot serve a request."""


class NotFound(OrderingServiceError):
    """Raised by adapters when a single-row lookup finds no row."""


class RowDecodeError(OrderingServiceError, ValueError):
    """Raised when a raw row cannot be decoded into a record."""

    def __init__(self, entity, row, reason):
        self.entity = entity
        self.row = row
        self.reason = reason
        super().__init__(f"Malformed {entity} row {row!r}: {reason}")


class UnsupportedOperation(OrderingServiceError, NotImplementedError):
    """Raised when a store lacks the capability for an operation."""


class InvalidOrder(OrderingServiceError, ValueError):
    """Raised before any write when an order payload cannot form a stored order."""
