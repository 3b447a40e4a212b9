"""Delivery state machine: validates driver-initiated status advances.

Claim (available -> claimed) and duty-off release (claimed -> available)
are not advances; the lifecycle service performs them with their own
conditional writes.
"""

from alltown_platform.domain.enums import DeliveryStatus
from alltown_platform.services.errors import InvalidTransitionError

S = DeliveryStatus

# from_status -> statuses a claimant may advance to
TRANSITION_MAP: dict[DeliveryStatus, set[DeliveryStatus]] = {
    S.CLAIMED: {S.IN_PROGRESS},
    S.IN_PROGRESS: {S.COMPLETED},
}

# Statuses that carry a claimant
ACTIVE_STATUSES: set[DeliveryStatus] = {S.CLAIMED, S.IN_PROGRESS}

TERMINAL_STATUSES: set[DeliveryStatus] = {S.COMPLETED}


def _coerce(status) -> DeliveryStatus:
    if isinstance(status, DeliveryStatus):
        return status
    return DeliveryStatus(status)


class DeliveryStateMachine:
    """Validates delivery status advances."""

    def validate_advance(self, current_status, target_status) -> bool:
        """Return True if the advance is valid. Raise InvalidTransitionError if not.

        ``target_status == current_status`` on an active delivery is a
        notes-only save and is allowed.
        """
        current = _coerce(current_status)
        target = _coerce(target_status)

        if current in TERMINAL_STATUSES:
            raise InvalidTransitionError(
                current, target, f"Delivery is {current.value} and can no longer change"
            )
        if current not in ACTIVE_STATUSES:
            raise InvalidTransitionError(
                current, target, f"No advances allowed from {current.value}"
            )

        if target == current:
            return True

        allowed = self.get_allowed_advances(current)
        if target not in allowed:
            raise InvalidTransitionError(
                current,
                target,
                f"Transition from {current.value} to {target.value} is not allowed "
                f"(allowed: {', '.join(s.value for s in allowed)})",
            )
        return True

    def get_allowed_advances(self, current_status) -> list[DeliveryStatus]:
        """Return the statuses a claimant can move to from ``current_status``."""
        return sorted(TRANSITION_MAP.get(_coerce(current_status), set()), key=lambda s: s.value)
