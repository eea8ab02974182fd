"""
Stripe Payment Links that let a provider settle a commission invoice.

The link's PaymentIntent carries `type=commission_payment` and the invoice
id in its metadata; the `payment_intent.succeeded` webhook uses them to mark
the invoice paid.
"""

from __future__ import annotations

import logging

from django.conf import settings
from django.db import transaction

from commissions.models import CommissionInvoice
from core.exceptions import InvalidTransition, UnknownEntity
from core.money import to_minor_units
from payments.services.processor import create_payment_link

logger = logging.getLogger(__name__)

COMMISSION_PAYMENT_TYPE = "commission_payment"
PAYABLE_STATUSES = frozenset({CommissionInvoice.PENDING, CommissionInvoice.OVERDUE})


def commission_payment_metadata(invoice: CommissionInvoice) -> dict[str, str]:
    return {
        "type": COMMISSION_PAYMENT_TYPE,
        "invoice_id": str(invoice.pk),
        "booking_id": str(invoice.booking_id),
        "provider_id": str(invoice.provider_id),
    }


@transaction.atomic
def create_commission_payment_link(invoice_id: int, user=None) -> tuple[CommissionInvoice, bool]:
    """Issue (or return the existing) payment link for an unpaid invoice; returns (invoice, created)."""
    invoice = CommissionInvoice.objects.select_for_update().filter(pk=invoice_id).first()
    if invoice is None:
        raise UnknownEntity(f"Commission invoice {invoice_id} does not exist.")
    if invoice.status not in PAYABLE_STATUSES:
        raise InvalidTransition(
            f"Invoice {invoice.pk} is {invoice.status}; only pending or overdue invoices can be paid by link."
        )
    if invoice.payment_link_url:
        return invoice, False

    link = create_payment_link(
        amount_minor=to_minor_units(invoice.platform_commission_amount),
        currency=invoice.currency,
        product_name="Platform commission payment",
        description=f"Commission for booking {invoice.booking_id} (invoice {invoice.pk})",
        metadata=commission_payment_metadata(invoice),
        redirect_url=(
            f"{settings.FRONTEND_URL.rstrip('/')}/commission/payment-success?invoice_id={invoice.pk}"
        ),
    )
    invoice.payment_link_id = link.id
    invoice.payment_link_url = link.url
    invoice.save(update_fields=["payment_link_id", "payment_link_url", "updated_at"])
    logger.info(
        "Payment link %s issued for invoice %s by %s",
        link.id,
        invoice.pk,
        getattr(user, "pk", None) or "system",
    )
    return invoice, True
