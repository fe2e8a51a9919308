"""Subscription status of companies and clients."""
import logging

logger = logging.getLogger(__name__)

STATUSES = {"active", "pending", "cancelled", "failed"}

# pending only exists at creation; nothing moves back to it.
TRANSITIONS = {
    "pending": {"active", "cancelled", "failed"},
    "active": {"cancelled"},
    "cancelled": {"active"},
    "failed": {"active", "cancelled"},
}


class StatusTransitionError(ValueError):
    pass


def validate_status_transition(current: str, new: str):
    if new not in STATUSES:
        raise StatusTransitionError(f"Invalid status '{new}'. Must be one of: {sorted(STATUSES)}")
    if new not in TRANSITIONS.get(current, set()):
        raise StatusTransitionError(f"Cannot change status from {current} to {new}")


def change_status(subscriber, new: str):
    validate_status_transition(subscriber.status, new)
    logger.info("Subscription %s: %s -> %s", subscriber.id, subscriber.status, new)
    subscriber.status = new
