import pytest
from django.contrib.admin.sites import AdminSite
from django.contrib.messages.storage.fallback import FallbackStorage

from bookings.admin import BookingAdmin
from bookings.models import Booking
from bookings.services.transitions import can_transition, complete_booking, transition_booking
from core.exceptions import InvalidTransition


@pytest.mark.django_db
def test_pending_booking_confirms_and_completes(make_booking):
    booking = make_booking(status=Booking.PENDING)

    assert transition_booking(booking, Booking.CONFIRMED) is True
    assert complete_booking(booking) is True

    booking.refresh_from_db()
    assert booking.status == Booking.COMPLETED
    assert booking.confirmed_at is not None
    assert booking.completed_at is not None


@pytest.mark.django_db
def test_repeated_transition_is_noop(make_booking):
    booking = make_booking(status=Booking.CONFIRMED)

    assert transition_booking(booking, Booking.CONFIRMED) is False
    assert booking.confirmed_at is None


@pytest.mark.django_db
@pytest.mark.parametrize(
    "start,target",
    [
        (Booking.PENDING, Booking.COMPLETED),
        (Booking.CANCELLED, Booking.CONFIRMED),
        (Booking.COMPLETED, Booking.CANCELLED),
        (Booking.COMPLETED, Booking.PENDING),
    ],
)
def test_disallowed_transitions_raise(make_booking, start, target):
    booking = make_booking(status=start)

    assert can_transition(booking, target) is False
    with pytest.raises(InvalidTransition):
        transition_booking(booking, target)

    booking.refresh_from_db()
    assert booking.status == start


@pytest.mark.django_db
def test_admin_action_completes_confirmed_bookings(make_booking, rf, staff_user):
    confirmed = make_booking(status=Booking.CONFIRMED)
    pending = make_booking(status=Booking.PENDING)
    request = rf.post("/admin/bookings/booking/")
    request.user = staff_user
    request.session = {}
    request._messages = FallbackStorage(request)

    BookingAdmin(Booking, AdminSite()).mark_completed(
        request,
        Booking.objects.filter(pk__in=[confirmed.pk, pending.pk]),
    )

    confirmed.refresh_from_db()
    pending.refresh_from_db()
    assert confirmed.status == Booking.COMPLETED
    assert pending.status == Booking.PENDING
