"""Error taxonomy for the delivery lifecycle and loyalty core.

Services raise these; route handlers translate them to HTTP responses using
``status_code``.
"""


class DeliveryCoreError(Exception):
    """Base class for every error the core surfaces to its callers."""

    status_code = 500

    def __init__(self, message: str = ""):
        self.message = message or self.__class__.__doc__ or ""
        super().__init__(self.message)


class DeliveryValidationError(DeliveryCoreError):
    """Malformed or incomplete input."""

    status_code = 400


class ClaimConflictError(DeliveryCoreError):
    """This delivery was just claimed by someone else."""

    status_code = 409


class ForbiddenError(DeliveryCoreError):
    """Caller is not allowed to act on this delivery."""

    status_code = 403


class InvalidTransitionError(DeliveryCoreError):
    """Raised when a delivery status transition is not allowed."""

    status_code = 400

    def __init__(self, current_status, target_status, reason: str):
        self.current_status = current_status
        self.target_status = target_status
        self.reason = reason
        super().__init__(
            f"Invalid transition from {_value(current_status)} to {_value(target_status)}: {reason}"
        )


class NotFoundError(DeliveryCoreError):
    """Record does not exist in the caller's tenant."""

    status_code = 404


class TransientStoreError(DeliveryCoreError):
    """The delivery store is unreachable. Try again."""

    status_code = 503


def _value(status) -> str:
    return getattr(status, "value", status) if status is not None else "none"
