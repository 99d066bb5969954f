"""
Error taxonomy of the order workflow.

Every error here is a recoverable, caller-visible condition.  The API layer
maps them to HTTP status codes in one place (``mytaxi.api.app``).
"""

from __future__ import annotations

from dataclasses import dataclass


class OrderWorkflowError(Exception):
    """Base class for all order / ledger errors."""


class InvalidStateTransition(OrderWorkflowError):
    """Raised when an order status change violates the state machine."""


class IllegalTransition(InvalidStateTransition):
    """The requested lifecycle step is not allowed from the current status."""


class DuplicateActiveOrder(OrderWorkflowError):
    """The client already owns an order in CREATED or ACTIVE status."""


class OrderNotFound(OrderWorkflowError):
    pass


class ClientNotFound(OrderWorkflowError):
    pass


class DriverNotFound(OrderWorkflowError):
    pass


class AlreadyRegistered(OrderWorkflowError):
    """Email or phone number already belongs to another account."""


class InvalidPhoneNumber(OrderWorkflowError):
    pass


class InsufficientBalance(OrderWorkflowError):
    pass


class InvalidAmount(OrderWorkflowError):
    pass


class InvalidRating(OrderWorkflowError):
    pass


class LockTimeout(OrderWorkflowError):
    """A per-client exclusive section could not be entered in time."""


@dataclass(frozen=True)
class FieldError:
    field: str
    message: str


class OrderValidationError(OrderWorkflowError):
    """Carries *all* field errors of a rejected order request."""

    def __init__(self, errors: list[FieldError]):
        self.errors = list(errors)
        super().__init__(
            "; ".join(f"{e.field}: {e.message}" for e in self.errors)
        )
