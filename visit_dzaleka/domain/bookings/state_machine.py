"""
Booking status machine

pending -> confirmed -> in_progress -> completed, with cancelled reachable from
every non-terminal state. completed and cancelled are terminal.
"""

BOOKING_STATUSES = ("pending", "confirmed", "in_progress", "completed", "cancelled")

TERMINAL_STATUSES = ("completed", "cancelled")

VALID_TRANSITIONS = {
    "pending": ["confirmed", "cancelled"],
    "confirmed": ["in_progress", "cancelled"],
    "in_progress": ["completed", "cancelled"],
    "completed": [],  # Terminal state
    "cancelled": [],  # Terminal state
}

# Actions a client may offer for a booking in each status
AVAILABLE_ACTIONS = {
    "pending": ["confirm", "cancel", "reschedule", "assign_guide", "check_in"],
    "confirmed": ["start", "cancel", "no_show", "reschedule", "assign_guide"],
    "in_progress": ["complete", "cancel", "check_out"],
    "completed": [],
    "cancelled": [],
}

# Statuses in which the visit itself can still be moved or re-staffed
SCHEDULABLE_STATUSES = ("pending", "confirmed")


def is_valid_status(status: str) -> bool:
    return status in BOOKING_STATUSES


def validate_status_transition(current_status: str, new_status: str) -> bool:
    """
    Validate if a booking status transition is allowed

    Returns:
        bool: True if transition is valid, False otherwise
    """
    # Same status is a no-op
    if current_status == new_status:
        return True

    return new_status in VALID_TRANSITIONS.get(current_status, [])


def ensure_transition(current_status: str, new_status: str) -> None:
    """
    Raise ValueError naming both states when the edge is not allowed
    """
    if not is_valid_status(new_status):
        raise ValueError(
            f"Invalid status '{new_status}'. Must be one of: {', '.join(BOOKING_STATUSES)}"
        )
    if not validate_status_transition(current_status, new_status):
        raise ValueError(f"Cannot change booking status from '{current_status}' to '{new_status}'")


def available_actions(status: str) -> list[str]:
    return list(AVAILABLE_ACTIONS.get(status, []))


def is_terminal(status: str) -> bool:
    return status in TERMINAL_STATUSES
