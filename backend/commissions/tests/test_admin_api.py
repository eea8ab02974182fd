from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from django.urls import reverse
from django.utils import timezone
from rest_framework.test import APIClient

from activities.models import Activity
from commissions.models import CommissionInvoice, CommissionPayment, PayoutRecord
from commissions.services.invoices import create_invoice_for_booking, update_invoice_status
from partners.models import ActivityProvider


@pytest.fixture
def invoice(make_booking):
    invoice, _ = create_invoice_for_booking(make_booking())
    return invoice


@pytest.fixture
def member_client(db):
    user = get_user_model().objects.create_user(
        username="guest",
        email="guest@example.com",
        password="examplepass",
    )
    client = APIClient()
    client.force_authenticate(user)
    return client


@pytest.mark.django_db
def test_invoice_status_requires_staff(member_client, invoice):
    response = member_client.put(
        reverse("commission-invoice-status"),
        {"invoiceId": invoice.pk, "status": "paid"},
        format="json",
    )
    assert response.status_code == 403

    anonymous = APIClient().put(
        reverse("commission-invoice-status"),
        {"invoiceId": invoice.pk, "status": "paid"},
        format="json",
    )
    assert anonymous.status_code == 401


@pytest.mark.django_db
def test_marking_paid_creates_one_payment(staff_client, invoice):
    url = reverse("commission-invoice-status")
    payload = {
        "invoiceId": invoice.pk,
        "status": "paid",
        "paymentData": {"method": "bank_transfer", "reference": "KBANK-778"},
    }

    first = staff_client.put(url, payload, format="json")
    second = staff_client.put(url, payload, format="json")

    assert first.status_code == 200
    assert second.status_code == 200
    data = first.json()
    assert data["status"] == "paid"
    assert data["payment"]["amount"] == "600.00"
    assert data["payment"]["reference"] == "KBANK-778"
    assert CommissionPayment.objects.filter(invoice=invoice).count() == 1


@pytest.mark.django_db
def test_illegal_transition_returns_conflict(staff_client, invoice):
    update_invoice_status(invoice.pk, CommissionInvoice.CANCELLED)

    response = staff_client.put(
        reverse("commission-invoice-status"),
        {"invoiceId": invoice.pk, "status": "paid"},
        format="json",
    )

    assert response.status_code == 409
    assert "cannot move" in response.json()["detail"]


@pytest.mark.django_db
def test_unknown_invoice_returns_not_found(staff_client):
    response = staff_client.put(
        reverse("commission-invoice-status"),
        {"invoiceId": 424242, "status": "overdue"},
        format="json",
    )
    assert response.status_code == 404


@pytest.mark.django_db
def test_invalid_status_is_rejected(staff_client, invoice):
    response = staff_client.put(
        reverse("commission-invoice-status"),
        {"invoiceId": invoice.pk, "status": "refunded"},
        format="json",
    )
    assert response.status_code == 400


@pytest.mark.django_db
def test_payout_endpoint_records_payout(staff_client, make_booking, establishment):
    booking = make_booking(establishment=establishment)
    create_invoice_for_booking(booking)

    response = staff_client.post(
        reverse("commission-payout"),
        {
            "establishmentId": establishment.pk,
            "bookingIds": [booking.pk],
            "payoutReference": "PP-0001",
            "payoutAmount": "300.00",
            "payoutDate": "2024-07-31",
            "payoutMethod": "promptpay",
            "notes": "July",
        },
        format="json",
    )

    assert response.status_code == 201
    data = response.json()
    assert data["payout_reference"] == "PP-0001"
    assert data["is_reconciled"] is True
    assert data["bookings"] == [booking.pk]


@pytest.mark.django_db
def test_payout_endpoint_reports_missing_bookings(staff_client, make_booking, establishment):
    booking = make_booking(establishment=establishment)

    response = staff_client.post(
        reverse("commission-payout"),
        {
            "establishmentId": establishment.pk,
            "bookingIds": [booking.pk, 5550001],
            "payoutReference": "PP-0002",
            "payoutAmount": "300.00",
            "payoutDate": "2024-07-31",
            "payoutMethod": "bank_transfer",
        },
        format="json",
    )

    assert response.status_code == 400
    assert response.json()["missing_booking_ids"] == [5550001]
    assert PayoutRecord.objects.count() == 0


@pytest.mark.django_db
def test_payout_endpoint_rejects_duplicate_reference(staff_client, make_booking, establishment):
    booking = make_booking(establishment=establishment)
    payload = {
        "establishmentId": establishment.pk,
        "bookingIds": [booking.pk],
        "payoutReference": "PP-0003",
        "payoutAmount": "0.00",
        "payoutDate": "2024-07-31",
        "payoutMethod": "check",
    }

    assert staff_client.post(reverse("commission-payout"), payload, format="json").status_code == 201
    duplicate = staff_client.post(reverse("commission-payout"), payload, format="json")

    assert duplicate.status_code == 409


@pytest.mark.django_db
def test_invoice_list_filters_by_status(staff_client, make_booking):
    pending, _ = create_invoice_for_booking(make_booking())
    paid, _ = create_invoice_for_booking(make_booking())
    update_invoice_status(paid.pk, CommissionInvoice.PAID)

    response = staff_client.get(reverse("commission-invoices"), {"status": "paid"})

    assert response.status_code == 200
    data = response.json()
    assert data["count"] == 1
    assert data["results"][0]["id"] == paid.pk


@pytest.mark.django_db
def test_stats_summarise_by_status(staff_client, make_booking, establishment):
    create_invoice_for_booking(make_booking())
    referred, _ = create_invoice_for_booking(make_booking(establishment=establishment))
    update_invoice_status(referred.pk, CommissionInvoice.PAID)

    response = staff_client.get(reverse("commission-stats"))

    assert response.status_code == 200
    data = response.json()
    assert data["total_invoices"] == 2
    assert data["referred_invoices"] == 1
    assert data["by_status"]["paid"]["count"] == 1
    assert data["by_status"]["pending"]["count"] == 1
    assert Decimal(str(data["platform_commission"])) == Decimal("1200.00")
    assert Decimal(str(data["partner_commission"])) == Decimal("300.00")


@pytest.mark.django_db
def test_report_as_json_and_csv(staff_client, make_booking, establishment):
    booking = make_booking(establishment=establishment)
    create_invoice_for_booking(booking)
    period = timezone.localdate().strftime("%Y-%m")

    response = staff_client.get(reverse("commission-report"), {"period": period})

    assert response.status_code == 200
    establishments = response.json()["establishments"]
    assert len(establishments) == 1
    assert establishments[0]["establishment_id"] == establishment.pk
    assert establishments[0]["booking_count"] == 1
    assert establishments[0]["bookings"][0]["paid_out"] is False

    csv_response = staff_client.get(reverse("commission-report"), {"period": period, "format": "csv"})

    assert csv_response.status_code == 200
    assert csv_response["Content-Type"].startswith("text/csv")
    lines = csv_response.content.decode().strip().splitlines()
    assert lines[0].startswith("establishment_id,establishment_name,booking_id")
    assert lines[1].startswith(f"{establishment.pk},Sea Breeze Hotel,{booking.pk}")


@pytest.mark.django_db
def test_report_rejects_bad_period(staff_client):
    response = staff_client.get(reverse("commission-report"), {"period": "July"})
    assert response.status_code == 400


@pytest.mark.django_db
def test_provider_summary_totals_per_provider(staff_client, make_booking, establishment, provider):
    other = ActivityProvider.objects.create(name="Phi Phi Kayaks", contact_email="paddle@kayaks.test")
    kayak = Activity.objects.create(provider=other, title="Sunset Paddle", price_per_participant=Decimal("800.00"))
    paid, _ = create_invoice_for_booking(make_booking(establishment=establishment))
    update_invoice_status(paid.pk, CommissionInvoice.PAID)
    create_invoice_for_booking(make_booking())
    cancelled, _ = create_invoice_for_booking(make_booking())
    update_invoice_status(cancelled.pk, CommissionInvoice.CANCELLED)
    create_invoice_for_booking(
        make_booking(activity=kayak, provider=other, base_amount="1600.00")
    )

    response = staff_client.get(reverse("commission-providers"))

    assert response.status_code == 200
    rows = {row["provider_id"]: row for row in response.json()}
    dive = rows[provider.pk]
    assert dive["provider_name"] == "Andaman Dive Center"
    assert dive["total_invoices"] == 3
    assert dive["paid_invoices"] == 1
    assert dive["pending_invoices"] == 1
    assert Decimal(str(dive["total_revenue"])) == Decimal("6000.00")
    assert Decimal(str(dive["platform_commission"])) == Decimal("1200.00")
    assert Decimal(str(dive["partner_commission"])) == Decimal("300.00")
    assert Decimal(str(dive["platform_commission_outstanding"])) == Decimal("600.00")
    kayaks = rows[other.pk]
    assert kayaks["total_invoices"] == 1
    assert Decimal(str(kayaks["platform_commission"])) == Decimal("320.00")


@pytest.mark.django_db
def test_provider_summary_requires_staff(member_client):
    assert member_client.get(reverse("commission-providers")).status_code == 403


@pytest.mark.django_db
def test_payment_link_endpoint_issues_link_once(staff_client, invoice):
    url = reverse("commission-payment-link")

    first = staff_client.post(url, {"invoiceId": invoice.pk}, format="json")
    second = staff_client.post(url, {"invoiceId": invoice.pk}, format="json")

    assert first.status_code == 201
    assert second.status_code == 200
    data = first.json()
    assert data["paymentLinkId"].startswith("plink_test_")
    assert data["paymentLinkUrl"].startswith("https://app.test/payments/link-preview?")
    assert second.json()["paymentLinkId"] == data["paymentLinkId"]
    invoice.refresh_from_db()
    assert invoice.payment_link_id == data["paymentLinkId"]


@pytest.mark.django_db
def test_payment_link_refused_for_paid_invoice(staff_client, invoice):
    update_invoice_status(invoice.pk, CommissionInvoice.PAID)

    response = staff_client.post(
        reverse("commission-payment-link"),
        {"invoiceId": invoice.pk},
        format="json",
    )

    assert response.status_code == 409
    invoice.refresh_from_db()
    assert invoice.payment_link_id == ""
