from datetime import timedelta

import pytest
from django.urls import reverse
from django.utils import timezone
from rest_framework.test import APIClient

from referrals.models import ReferralVisit
from referrals.services.attribution import (
    clear_attribution,
    current_attribution,
    read_attribution_token,
    track_visit,
)


@pytest.fixture(autouse=True)
def ttl(settings):
    settings.REFERRAL_ATTRIBUTION_TTL_HOURS = 24


@pytest.mark.django_db
def test_track_visit_issues_readable_token(establishment):
    visit, token = track_visit(establishment=establishment, metadata={"campaign": "lobby-qr"})

    assert visit.metadata == {"campaign": "lobby-qr"}
    assert visit.expires_at - visit.visited_at == timedelta(hours=24)
    attribution = read_attribution_token(token, max_age=timedelta(hours=24))
    assert attribution.visit_id == visit.pk
    assert attribution.establishment_id == establishment.pk
    assert attribution.correlation_id == visit.session_correlation_id


@pytest.mark.django_db
def test_tampered_token_is_ignored(establishment):
    _, token = track_visit(establishment=establishment)

    assert read_attribution_token(token[:-2] + "xx", max_age=timedelta(hours=1)) is None
    assert read_attribution_token("", max_age=timedelta(hours=1)) is None
    assert read_attribution_token(None, max_age=timedelta(hours=1)) is None


@pytest.mark.django_db
def test_clear_prevents_second_attribution(establishment):
    visit, token = track_visit(establishment=establishment)
    assert current_attribution(token) is not None

    assert clear_attribution(visit.pk) is True
    assert clear_attribution(visit.pk) is False

    assert current_attribution(token) is None


@pytest.mark.django_db
def test_expired_visit_is_not_attributed(establishment):
    visit, token = track_visit(establishment=establishment)
    ReferralVisit.objects.filter(pk=visit.pk).update(expires_at=timezone.now() - timedelta(minutes=1))

    assert current_attribution(token) is None


@pytest.mark.django_db
def test_deleted_visit_is_not_attributed(establishment):
    visit, token = track_visit(establishment=establishment)
    visit.delete()

    assert current_attribution(token) is None


@pytest.mark.django_db
def test_track_visit_endpoint(establishment):
    client = APIClient()
    response = client.post(
        reverse("referral-visit"),
        {"establishmentId": establishment.pk, "metadata": {"source": "qr"}},
        format="json",
        HTTP_USER_AGENT="pytest-browser",
        REMOTE_ADDR="203.0.113.7",
    )

    assert response.status_code == 201
    data = response.json()
    visit = ReferralVisit.objects.get(pk=data["visitId"])
    assert data["establishmentId"] == establishment.pk
    assert visit.ip_address == "203.0.113.7"
    assert visit.user_agent == "pytest-browser"

    lookup = client.get(reverse("referral-attribution"), {"token": data["token"]})
    assert lookup.status_code == 200
    assert lookup.json() == {"visitId": visit.pk, "establishmentId": establishment.pk}


@pytest.mark.django_db
def test_inactive_establishment_cannot_be_tracked(establishment):
    establishment.is_active = False
    establishment.save()

    response = APIClient().post(
        reverse("referral-visit"),
        {"establishmentId": establishment.pk},
        format="json",
    )

    assert response.status_code == 400
    assert not ReferralVisit.objects.exists()


@pytest.mark.django_db
def test_attribution_lookup_without_token_is_not_found():
    response = APIClient().get(reverse("referral-attribution"))
    assert response.status_code == 404
