from __future__ import annotations

import logging

from django.utils import timezone

from bookings.models import Booking
from core.exceptions import InvalidTransition

logger = logging.getLogger(__name__)

BOOKING_TRANSITIONS: dict[str, frozenset[str]] = {
    Booking.PENDING: frozenset({Booking.CONFIRMED, Booking.CANCELLED}),
    Booking.CONFIRMED: frozenset({Booking.COMPLETED, Booking.CANCELLED}),
    Booking.CANCELLED: frozenset(),
    Booking.COMPLETED: frozenset(),
}

_TIMESTAMP_FIELDS = {
    Booking.CONFIRMED: "confirmed_at",
    Booking.CANCELLED: "cancelled_at",
    Booking.COMPLETED: "completed_at",
}


def can_transition(booking: Booking, new_status: str) -> bool:
    return new_status == booking.status or new_status in BOOKING_TRANSITIONS[booking.status]


def transition_booking(booking: Booking, new_status: str) -> bool:
    """
    Move a booking to `new_status`, stamping the matching timestamp.

    Returns False when the booking is already in `new_status`; raises
    InvalidTransition for moves the lifecycle does not allow.
    """
    if booking.status == new_status:
        return False
    if new_status not in BOOKING_TRANSITIONS[booking.status]:
        raise InvalidTransition(
            f"Booking {booking.pk} cannot move from {booking.status} to {new_status}."
        )

    previous = booking.status
    booking.status = new_status
    update_fields = ["status", "updated_at"]
    timestamp_field = _TIMESTAMP_FIELDS.get(new_status)
    if timestamp_field:
        setattr(booking, timestamp_field, timezone.now())
        update_fields.append(timestamp_field)
    booking.save(update_fields=update_fields)
    logger.info("Booking %s moved %s -> %s", booking.pk, previous, new_status)
    return True


def complete_booking(booking: Booking) -> bool:
    return transition_booking(booking, Booking.COMPLETED)
