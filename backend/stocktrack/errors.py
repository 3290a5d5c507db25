# Overview: Domain error taxonomy shared by services, routes and the CLI.

"""
Every service failure is a StockError subclass. Raising one aborts the
enclosing atomic unit (see services.concurrency.run_atomic); routes render it
as JSON using the class's status_code.
"""


class StockError(Exception):
    """Base class for domain failures surfaced to the caller."""

    status_code = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        return {
            "error": self.message,
            "code": type(self).__name__,
            "details": self.details,
        }


class InvalidQuantity(StockError):
    """Non-positive (or zero) quantity where it is not allowed."""
    status_code = 400


class InvalidRequest(StockError):
    """Malformed or inconsistent input."""
    status_code = 400


class Forbidden(StockError):
    """Actor is outside the scope the operation allows."""
    status_code = 403


class NotFound(StockError):
    status_code = 404


class InvalidState(StockError):
    """Transition attempted from a state that does not permit it."""
    status_code = 409


class ConflictingIdentity(StockError):
    """Uniqueness violation (SKU, names, email, document numbers)."""
    status_code = 409


class InsufficientStock(StockError):
    status_code = 409

    def __init__(self, *, warehouse_id: int, item_id: int, available: int, requested: int):
        super().__init__(
            f"Insufficient stock for item {item_id} in warehouse {warehouse_id}. "
            f"Available: {available}, requested: {requested}",
            details={
                "warehouse_id": warehouse_id,
                "item_id": item_id,
                "available": available,
                "requested": requested,
            },
        )
        self.warehouse_id = warehouse_id
        self.item_id = item_id
        self.available = available
        self.requested = requested
