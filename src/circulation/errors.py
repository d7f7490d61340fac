"""Failure taxonomy for the lending desk.

Every error carries the identifiers and thresholds involved, so callers
can render their own message.  ``status_code`` is the status a transport
layer typically surfaces for the failure.
"""

from typing import Any


class CirculationError(Exception):
    """Base exception for lending desk failures."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(CirculationError):
    """An item or user does not exist."""

    status_code = 404

    def __init__(self, kind: str, id: Any):
        self.kind = kind
        self.id = str(id)
        super().__init__(f"{kind.capitalize()} with ID {id} not found")


class NotAvailableError(CirculationError):
    """The item is currently on loan."""

    status_code = 409

    def __init__(self, item_id: Any):
        self.item_id = str(item_id)
        super().__init__(f"Item with ID {item_id} is not available for borrowing")


class AlreadyReturnedError(CirculationError):
    """The item has no open loan to close."""

    status_code = 409

    def __init__(self, item_id: Any):
        self.item_id = str(item_id)
        super().__init__(
            f"Item with ID {item_id} is already available or has no open loan"
        )


class LimitExceededError(CirculationError):
    """The user already holds the maximum number of open loans."""

    status_code = 409

    def __init__(self, user_id: Any, limit: int):
        self.user_id = str(user_id)
        self.limit = limit
        super().__init__(
            f"User with ID {user_id} has reached the borrowing limit of {limit} items"
        )


class InvalidInputError(CirculationError):
    """Caller input was rejected before any store was touched."""

    status_code = 400

    def __init__(self, field: str, reason: str = "invalid value"):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid {field}: {reason}")
