from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta
from decimal import Decimal
from typing import Optional

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from bookings.models import Booking
from commissions.models import CommissionInvoice, CommissionPayment
from commissions.services.calculator import calculate_commission
from core.exceptions import InvalidRequest, InvalidTransition, UnknownEntity
from core.money import quantize_money
from partners.services.accounts import resolve_partner_percent

logger = logging.getLogger(__name__)

INVOICE_TRANSITIONS: dict[str, frozenset[str]] = {
    CommissionInvoice.PENDING: frozenset(
        {CommissionInvoice.PAID, CommissionInvoice.OVERDUE, CommissionInvoice.CANCELLED}
    ),
    CommissionInvoice.OVERDUE: frozenset(
        {CommissionInvoice.PAID, CommissionInvoice.CANCELLED, CommissionInvoice.PENDING}
    ),
    # A refund is the only way out of paid.
    CommissionInvoice.PAID: frozenset({CommissionInvoice.CANCELLED}),
    CommissionInvoice.CANCELLED: frozenset(),
}

ADMIN_STATUSES = frozenset(status for status, _ in CommissionInvoice.STATUSES)


@dataclass(frozen=True)
class PaymentDetails:
    amount: Optional[Decimal] = None
    method: str = CommissionPayment.METHOD_MANUAL
    reference: str = ""
    stripe_payout_id: str = ""
    stripe_payment_intent_id: str = ""


def create_invoice_for_booking(booking: Booking) -> tuple[CommissionInvoice, bool]:
    """Create the single commission invoice for a confirmed booking; returns (invoice, created)."""
    existing = CommissionInvoice.objects.filter(booking=booking).first()
    if existing is not None:
        return existing, False

    partner_percent = None
    if booking.establishment_id is not None:
        partner_percent = resolve_partner_percent(booking.establishment)

    split = calculate_commission(
        booking.base_amount,
        booking.commission_percent,
        has_partner_referral=booking.has_partner_referral,
        partner_percent=partner_percent,
    )
    invoice = CommissionInvoice.objects.create(
        booking=booking,
        provider_id=booking.provider_id,
        establishment_id=booking.establishment_id,
        payer_role=CommissionInvoice.ROLE_PROVIDER,
        payee_role=CommissionInvoice.ROLE_PLATFORM,
        total_booking_amount=split.booking_amount,
        commission_percent=split.commission_percent,
        platform_commission_amount=split.platform_amount,
        partner_commission_percent=split.partner_percent,
        partner_commission_amount=split.partner_amount,
        currency=booking.currency,
        due_date=timezone.localdate() + timedelta(days=settings.COMMISSION_INVOICE_DUE_DAYS),
    )
    logger.info(
        "Commission invoice %s created for booking %s: platform=%s partner=%s",
        invoice.pk,
        booking.pk,
        split.platform_amount,
        split.partner_amount,
    )
    return invoice, True


def transition_invoice(invoice: CommissionInvoice, new_status: str) -> bool:
    if invoice.status == new_status:
        return False
    if new_status not in INVOICE_TRANSITIONS[invoice.status]:
        raise InvalidTransition(
            f"Invoice {invoice.pk} cannot move from {invoice.status} to {new_status}."
        )

    previous = invoice.status
    invoice.status = new_status
    update_fields = ["status", "updated_at"]
    if new_status == CommissionInvoice.PAID:
        invoice.paid_at = timezone.now()
        update_fields.append("paid_at")
    elif new_status == CommissionInvoice.CANCELLED:
        invoice.cancelled_at = timezone.now()
        update_fields.append("cancelled_at")
    invoice.save(update_fields=update_fields)
    logger.info("Invoice %s moved %s -> %s", invoice.pk, previous, new_status)
    return True


def mark_invoice_paid(
    invoice: CommissionInvoice,
    payment: Optional[PaymentDetails] = None,
    user=None,
) -> CommissionPayment:
    """
    Move an invoice to paid and create its single CommissionPayment.

    Both the admin endpoint and the payout_paid webhook come through here, so
    an invoice is paid exactly when one payment row references it. Calling it
    again for a paid invoice returns the existing payment.
    """
    payment = payment or PaymentDetails()
    if invoice.status == CommissionInvoice.PAID:
        return invoice.payment

    transition_invoice(invoice, CommissionInvoice.PAID)
    amount = payment.amount if payment.amount is not None else invoice.platform_commission_amount
    record = CommissionPayment.objects.create(
        invoice=invoice,
        amount=quantize_money(amount),
        method=payment.method,
        reference=payment.reference,
        stripe_payout_id=payment.stripe_payout_id,
        stripe_payment_intent_id=payment.stripe_payment_intent_id,
        paid_at=invoice.paid_at,
        created_by=user,
    )
    logger.info(
        "Invoice %s paid: %s via %s (ref=%s)",
        invoice.pk,
        record.amount,
        record.method,
        record.reference or "-",
    )
    return record


def cancel_invoice_for_refund(invoice: CommissionInvoice, refund_reference: str) -> bool:
    """Refunds always cancel the invoice; a refund after payment is flagged for manual review."""
    if invoice.status == CommissionInvoice.CANCELLED:
        return False

    was_paid = invoice.status == CommissionInvoice.PAID
    transition_invoice(invoice, CommissionInvoice.CANCELLED)
    if was_paid:
        invoice.needs_review = True
        invoice.review_note = (
            f"Booking refunded ({refund_reference}) after commission was paid; "
            "reconcile the commission payment manually."
        )
        invoice.save(update_fields=["needs_review", "review_note", "updated_at"])
        logger.warning(
            "Reconciliation needed: invoice %s was paid before refund %s of booking %s",
            invoice.pk,
            refund_reference,
            invoice.booking_id,
        )
    return True


@transaction.atomic
def update_invoice_status(
    invoice_id: int,
    new_status: str,
    payment: Optional[PaymentDetails] = None,
    user=None,
) -> CommissionInvoice:
    """Administrative status change for an invoice."""
    if new_status not in ADMIN_STATUSES:
        raise InvalidRequest(
            f"Invalid status. Must be one of: {', '.join(sorted(ADMIN_STATUSES))}"
        )
    invoice = CommissionInvoice.objects.select_for_update().filter(pk=invoice_id).first()
    if invoice is None:
        raise UnknownEntity(f"Commission invoice {invoice_id} does not exist.")

    if invoice.status == CommissionInvoice.PAID and new_status == CommissionInvoice.CANCELLED:
        raise InvalidTransition(
            f"Invoice {invoice.pk} is paid; only a refund of its booking can cancel it."
        )
    if new_status == CommissionInvoice.PAID:
        mark_invoice_paid(invoice, payment, user=user)
    else:
        transition_invoice(invoice, new_status)
    logger.info(
        "Invoice %s status set to %s by %s",
        invoice.pk,
        new_status,
        getattr(user, "pk", None) or "system",
    )
    return invoice


def mark_overdue_invoices(today=None) -> int:
    today = today or timezone.localdate()
    overdue = 0
    candidates = CommissionInvoice.objects.filter(
        status=CommissionInvoice.PENDING,
        due_date__lt=today,
    )
    for invoice in candidates.iterator():
        with transaction.atomic():
            locked = CommissionInvoice.objects.select_for_update().get(pk=invoice.pk)
            if locked.status != CommissionInvoice.PENDING:
                continue
            transition_invoice(locked, CommissionInvoice.OVERDUE)
            overdue += 1
    if overdue:
        logger.info("Marked %s commission invoice(s) overdue", overdue)
    return overdue
