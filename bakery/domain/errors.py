from __future__ import annotations


class BakeryError(Exception):
    """Base class for order pipeline errors."""

    code = "bakery_error"


class ValidationError(BakeryError):
    code = "validation"


class InvalidTransitionError(BakeryError):
    code = "invalid_transition"

    def __init__(self, order_id: str, current: str, requested: str):
        self.order_id = order_id
        self.current = current
        self.requested = requested
        super().__init__(
            f"order {order_id} is {current}; transition to {requested} is not allowed from a terminal status"
        )


class NotFoundError(BakeryError):
    code = "not_found"


class PartialFailureError(BakeryError):
    code = "partial_failure"


class DownstreamError(BakeryError):
    code = "downstream"
