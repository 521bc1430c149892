"""
Domain errors raised by the reservation and billing services.

Routes never build HTTP errors for business rules themselves; the handler
registered in app.main turns any PMSError into a JSON response using the
error's status code.
"""
from typing import Optional


class PMSError(Exception):
    """Base class for every error the core surfaces to its caller"""
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(PMSError):
    """Malformed, missing or out-of-range input"""
    status_code = 422


class ConflictError(PMSError):
    """Business-rule or concurrent-state conflict"""
    status_code = 409


class NotFoundError(PMSError):
    status_code = 404


class InternalError(PMSError):
    """Persistence or transaction failure unrelated to business rules"""
    status_code = 500


class CapacityError(ConflictError):
    def __init__(self, selection: str, required: int, available: int):
        super().__init__(
            f"Insufficient capacity for {selection}: {required} guests requested, "
            f"{available} available."
        )
        self.selection = selection
        self.required = required
        self.available = available


class CapacityConfigurationError(ValidationError):
    def __init__(self, label: str, capacity: Optional[int]):
        super().__init__(f"{label} has no usable capacity configured ({capacity}).")
        self.label = label
        self.capacity = capacity


class RoomUnavailableError(ConflictError):
    def __init__(self, room_label: str, reason: str = "for the selected dates"):
        super().__init__(f"Room {room_label} is not available {reason}.")
        self.room_label = room_label
