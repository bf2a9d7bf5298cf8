"""
status_machine.py
-----------------
The one place that decides which booking status changes are legal.

    PENDING   -> CONFIRMED, CANCELLED
    CONFIRMED -> CANCELLED, COMPLETED
    CANCELLED -> (terminal)
    COMPLETED -> (terminal)
"""

from ..models import BookingStatus
from .errors import InvalidTransition

ALLOWED_TRANSITIONS = {
    BookingStatus.PENDING: frozenset({BookingStatus.CONFIRMED, BookingStatus.CANCELLED}),
    BookingStatus.CONFIRMED: frozenset({BookingStatus.CANCELLED, BookingStatus.COMPLETED}),
    BookingStatus.CANCELLED: frozenset(),
    BookingStatus.COMPLETED: frozenset(),
}

TERMINAL_STATUSES = frozenset(
    status for status, targets in ALLOWED_TRANSITIONS.items() if not targets
)


def can_transition(current: str, new: str) -> bool:
    return new in ALLOWED_TRANSITIONS.get(current, frozenset())


def apply_transition(current: str, new: str) -> str:
    """Return the new status, or raise InvalidTransition."""
    if new not in BookingStatus.values:
        raise InvalidTransition(f"Unknown booking status {new!r}.")
    if not can_transition(current, new):
        raise InvalidTransition(f"Cannot change booking status from {current} to {new}.")
    return new
