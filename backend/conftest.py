from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient

from activities.models import Activity
from bookings.models import Booking
from partners.models import ActivityProvider, Establishment


@pytest.fixture
def provider(db):
    return ActivityProvider.objects.create(
        name="Andaman Dive Center",
        contact_email="hello@andamandive.test",
        stripe_account_id="acct_provider_1",
    )


@pytest.fixture
def establishment(db):
    return Establishment.objects.create(
        name="Sea Breeze Hotel",
        slug="sea-breeze-hotel",
        contact_email="frontdesk@seabreeze.test",
    )


@pytest.fixture
def activity(provider):
    return Activity.objects.create(
        provider=provider,
        title="Two-Tank Reef Dive",
        price_per_participant=Decimal("1500.00"),
    )


@pytest.fixture
def staff_user(db):
    return get_user_model().objects.create_user(
        username="ops",
        email="ops@marketplace.test",
        password="examplepass",
        is_staff=True,
    )


@pytest.fixture
def staff_client(staff_user):
    client = APIClient()
    client.force_authenticate(staff_user)
    return client


@pytest.fixture
def make_booking(activity):
    counter = {"n": 0}

    def _make(status=Booking.CONFIRMED, establishment=None, base_amount="3000.00", **extra):
        counter["n"] += 1
        fields = {
            "activity": activity,
            "provider": activity.provider,
            "establishment": establishment,
            "participant_count": 2,
            "base_amount": Decimal(base_amount),
            "processing_fee": Decimal("87.30"),
            "total_amount": Decimal(base_amount) + Decimal("87.30"),
            "commission_percent": Decimal("20"),
            "status": status,
            "checkout_session_id": f"cs_test_{counter['n']}",
            "payment_intent_id": f"pi_test_{counter['n']}",
        }
        fields.update(extra)
        return Booking.objects.create(**fields)

    return _make
