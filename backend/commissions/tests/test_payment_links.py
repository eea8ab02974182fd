import types

import pytest
import stripe

from commissions.models import CommissionInvoice
from commissions.services.invoices import create_invoice_for_booking
from commissions.services.payment_links import create_commission_payment_link
from core.exceptions import ProcessorError, UnknownEntity


@pytest.fixture
def invoice(make_booking):
    invoice, _ = create_invoice_for_booking(make_booking())
    return invoice


@pytest.fixture
def live_stripe(settings, monkeypatch):
    settings.STRIPE_USE_STUB = False
    settings.STRIPE_SECRET_KEY = "sk_test_123"
    settings.FRONTEND_URL = "https://app.test"
    monkeypatch.setattr(stripe, "api_key", stripe.api_key)


@pytest.mark.django_db
def test_link_carries_commission_metadata(live_stripe, monkeypatch, invoice):
    captured = {}

    def fake_price(**kwargs):
        captured["price"] = kwargs
        return types.SimpleNamespace(id="price_123")

    def fake_link(**kwargs):
        captured["link"] = kwargs
        return types.SimpleNamespace(id="plink_123", url="https://buy.stripe.test/plink_123")

    monkeypatch.setattr(stripe.Price, "create", fake_price)
    monkeypatch.setattr(stripe.PaymentLink, "create", fake_link)

    updated, created = create_commission_payment_link(invoice.pk)

    assert created is True
    assert updated.payment_link_id == "plink_123"
    assert updated.payment_link_url == "https://buy.stripe.test/plink_123"
    assert captured["price"]["unit_amount"] == 60000
    assert captured["price"]["currency"] == "thb"
    link = captured["link"]
    assert link["line_items"] == [{"price": "price_123", "quantity": 1}]
    metadata = link["payment_intent_data"]["metadata"]
    assert metadata["type"] == "commission_payment"
    assert metadata["invoice_id"] == str(invoice.pk)
    assert link["after_completion"]["redirect"]["url"] == (
        f"https://app.test/commission/payment-success?invoice_id={invoice.pk}"
    )


@pytest.mark.django_db
def test_stripe_failure_leaves_invoice_without_link(live_stripe, monkeypatch, invoice):
    def boom(**kwargs):
        raise stripe.APIConnectionError("network down")

    monkeypatch.setattr(stripe.Price, "create", boom)

    with pytest.raises(ProcessorError):
        create_commission_payment_link(invoice.pk)

    invoice.refresh_from_db()
    assert invoice.payment_link_id == ""
    assert invoice.status == CommissionInvoice.PENDING


@pytest.mark.django_db
def test_unknown_invoice_is_rejected():
    with pytest.raises(UnknownEntity):
        create_commission_payment_link(424242)
