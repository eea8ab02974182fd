"""
Settlement state machine driven by verified processor events.

Every supported event kind has exactly one handler. A handler runs in the
same transaction that marks the ledger row processed, so either all of its
effects land together with the ledger update or none do and the event stays
open for redelivery. Handlers look rows up by processor ids and treat an
already-applied state as a no-op, which makes a redelivered event converge
on the same result.
"""

from __future__ import annotations

import enum
import logging
from typing import Any, Callable, Mapping, Optional

from django.core.exceptions import ImproperlyConfigured
from django.db import transaction

from activities.models import Activity
from bookings.models import Booking
from bookings.services.transitions import can_transition, transition_booking
from commissions.models import CommissionInvoice, CommissionPayment
from commissions.services.invoices import (
    PaymentDetails,
    cancel_invoice_for_refund,
    create_invoice_for_booking,
    mark_invoice_paid,
)
from commissions.services.payment_links import COMMISSION_PAYMENT_TYPE
from core.exceptions import EventHandlingError, InvalidRequest, PreconditionNotMet, UnknownEntity
from core.money import from_minor_units, quantize_money, to_decimal
from partners.models import ActivityProvider, Establishment
from partners.services.accounts import sync_provider_from_account
from payments.services import ledger
from payments.services.events import EventKind, InboundEvent
from referrals.models import ReferralVisit
from referrals.services.attribution import clear_attribution

logger = logging.getLogger(__name__)


class EventOutcome(str, enum.Enum):
    PROCESSED = "processed"
    ALREADY_PROCESSED = "already_processed"
    IN_FLIGHT = "in_flight"
    IGNORED = "ignored"


def _metadata_id(metadata: Mapping[str, Any], key: str) -> Optional[int]:
    value = metadata.get(key)
    if value in (None, ""):
        return None
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise InvalidRequest(f"Metadata field {key} is not an id: {value!r}") from exc


def _require(model, pk: Optional[int], label: str):
    if pk is None:
        raise UnknownEntity(f"Event metadata does not name a {label}.")
    instance = model.objects.filter(pk=pk).first()
    if instance is None:
        raise UnknownEntity(f"{label.capitalize()} {pk} does not exist.")
    return instance


def _visit_held_elsewhere(visit_id: int, session_id: str) -> bool:
    # Caller holds the visit row lock, so two sessions sharing a visit serialize here.
    return (
        Booking.objects.filter(referral_visit_id=visit_id)
        .exclude(checkout_session_id=session_id)
        .exclude(status=Booking.CANCELLED)
        .exists()
    )


def handle_checkout_completed(event: InboundEvent) -> None:
    session = event.data
    session_id = session.get("id")
    if not session_id:
        raise InvalidRequest("Checkout session payload has no id.")
    metadata = event.metadata

    activity = _require(Activity, _metadata_id(metadata, "activity_id"), "activity")
    provider = _require(ActivityProvider, _metadata_id(metadata, "provider_id"), "provider")
    establishment_id = _metadata_id(metadata, "establishment_id")
    establishment = (
        _require(Establishment, establishment_id, "establishment") if establishment_id else None
    )
    visit_id = _metadata_id(metadata, "referral_visit_id")
    if visit_id:
        visit = ReferralVisit.objects.select_for_update().filter(pk=visit_id).first()
        if visit is None:
            logger.info("Referral visit %s on session %s no longer exists", visit_id, session_id)
            visit_id = None
        elif _visit_held_elsewhere(visit_id, session_id):
            logger.warning(
                "Referral visit %s already attributed to another booking; session %s booked without partner share",
                visit_id,
                session_id,
            )
            visit_id = None
            establishment = None

    participants = _metadata_id(metadata, "participants") or 1
    base_amount = quantize_money(metadata.get("base_amount") or activity.price_for(participants))
    processing_fee = quantize_money(metadata.get("processing_fee") or 0)
    if session.get("amount_total") is not None:
        total_amount = from_minor_units(session["amount_total"])
    else:
        total_amount = base_amount + processing_fee

    booking, created = Booking.objects.select_for_update().get_or_create(
        checkout_session_id=session_id,
        defaults={
            "activity": activity,
            "provider": provider,
            "establishment": establishment,
            "referral_visit_id": visit_id,
            "customer_id": metadata.get("customer_id") or "",
            "participant_count": participants,
            "base_amount": base_amount,
            "processing_fee": processing_fee,
            "total_amount": total_amount,
            "currency": metadata.get("currency") or activity.currency,
            "commission_percent": to_decimal(metadata.get("commission_percent") or 0),
            "payment_intent_id": session.get("payment_intent") or "",
        },
    )
    if created:
        logger.info("Booking %s created from checkout session %s", booking.pk, session_id)
    elif session.get("payment_intent") and not booking.payment_intent_id:
        booking.payment_intent_id = session["payment_intent"]
        booking.save(update_fields=["payment_intent_id", "updated_at"])

    if session.get("payment_status") == "unpaid":
        logger.info("Checkout session %s completed but payment is still processing", session_id)
        return

    if not can_transition(booking, Booking.CONFIRMED) and booking.status != Booking.COMPLETED:
        logger.warning(
            "Payment succeeded for session %s but booking %s is %s; leaving it for manual review",
            session_id,
            booking.pk,
            booking.status,
        )
        return

    if booking.status == Booking.PENDING:
        transition_booking(booking, Booking.CONFIRMED)
    create_invoice_for_booking(booking)
    clear_attribution(booking.referral_visit_id)


def _booking_for_failed_payment(event: InboundEvent) -> Optional[Booking]:
    object_id = event.data.get("id")
    if not object_id:
        return None
    bookings = Booking.objects.select_for_update()
    if event.stripe_type.startswith("checkout.session."):
        return bookings.filter(checkout_session_id=object_id).first()
    return bookings.filter(payment_intent_id=object_id).first()


def handle_payment_failed(event: InboundEvent) -> None:
    booking = _booking_for_failed_payment(event)
    if booking is None:
        logger.info("%s %s has no booking; nothing to cancel", event.stripe_type, event.data.get("id"))
        return
    if booking.status != Booking.PENDING:
        logger.warning(
            "Ignoring %s for booking %s in status %s",
            event.stripe_type,
            booking.pk,
            booking.status,
        )
        return
    transition_booking(booking, Booking.CANCELLED)


def handle_charge_refunded(event: InboundEvent) -> None:
    charge = event.data
    payment_intent_id = charge.get("payment_intent")
    booking = None
    if payment_intent_id:
        booking = Booking.objects.select_for_update().filter(payment_intent_id=payment_intent_id).first()
    if booking is None:
        raise PreconditionNotMet(f"No booking for payment intent {payment_intent_id!r} yet.")

    invoice = CommissionInvoice.objects.select_for_update().filter(booking=booking).first()
    amount = charge.get("amount")
    refunded = charge.get("amount_refunded")
    if charge.get("refunded") is False and amount is not None and refunded is not None and refunded < amount:
        logger.warning(
            "Partial refund %s of %s on booking %s; booking kept, flagged for review",
            refunded,
            amount,
            booking.pk,
        )
        if invoice is not None and not invoice.needs_review:
            invoice.needs_review = True
            invoice.review_note = (
                f"Partial refund of {from_minor_units(refunded)} on charge {charge.get('id')}."
            )
            invoice.save(update_fields=["needs_review", "review_note", "updated_at"])
        return

    if can_transition(booking, Booking.CANCELLED):
        transition_booking(booking, Booking.CANCELLED)
    else:
        logger.warning("Refund on booking %s in status %s; booking left as is", booking.pk, booking.status)
    if invoice is not None:
        cancel_invoice_for_refund(invoice, charge.get("id") or payment_intent_id)


def _invoice_for_payout(metadata: Mapping[str, Any]) -> tuple[Optional[CommissionInvoice], str]:
    invoices = CommissionInvoice.objects.select_for_update()
    invoice_id = _metadata_id(metadata, "invoice_id")
    if invoice_id:
        return invoices.filter(pk=invoice_id).first(), f"invoice {invoice_id}"
    session_id = metadata.get("checkout_session_id")
    if session_id:
        return invoices.filter(booking__checkout_session_id=session_id).first(), f"session {session_id}"
    return None, ""


def handle_payout_paid(event: InboundEvent) -> None:
    payout_id = event.data.get("id") or ""
    invoice, reference = _invoice_for_payout(event.metadata)
    if not reference:
        logger.info("Payout %s carries no invoice reference; nothing to settle", payout_id)
        return
    if invoice is None:
        raise PreconditionNotMet(f"Payout {payout_id} references {reference}, which does not exist yet.")

    if invoice.status == CommissionInvoice.CANCELLED:
        logger.warning("Payout %s arrived for cancelled invoice %s", payout_id, invoice.pk)
        return
    mark_invoice_paid(
        invoice,
        PaymentDetails(
            method=CommissionPayment.METHOD_STRIPE_PAYOUT,
            reference=payout_id,
            stripe_payout_id=payout_id,
        ),
    )


def handle_payout_failed(event: InboundEvent) -> None:
    _, reference = _invoice_for_payout(event.metadata)
    logger.error(
        "Payout %s failed (%s: %s) for %s; invoice left pending for follow-up",
        event.data.get("id"),
        event.data.get("failure_code") or "unknown",
        event.data.get("failure_message") or "",
        reference or "no invoice reference",
    )


def handle_transfer_failed(event: InboundEvent) -> None:
    logger.warning(
        "Transfer %s to %s failed (%s)",
        event.data.get("id"),
        event.data.get("destination") or event.account or "unknown account",
        event.stripe_type,
    )


def handle_account_updated(event: InboundEvent) -> None:
    account_id = event.data.get("id") or event.account
    provider = None
    if account_id:
        provider = ActivityProvider.objects.select_for_update().filter(stripe_account_id=account_id).first()
    if provider is None:
        raise UnknownEntity(f"No provider is connected to Stripe account {account_id!r}.")
    sync_provider_from_account(provider, event.data)


def _flag_for_review(invoice: CommissionInvoice, note: str) -> None:
    invoice.needs_review = True
    invoice.review_note = note
    invoice.save(update_fields=["needs_review", "review_note", "updated_at"])


def handle_commission_payment_succeeded(event: InboundEvent) -> None:
    intent_id = event.data.get("id") or ""
    metadata = event.metadata
    if metadata.get("type") != COMMISSION_PAYMENT_TYPE:
        logger.info("Payment intent %s is not a commission payment; nothing to settle", intent_id)
        return

    invoice_id = _metadata_id(metadata, "invoice_id")
    invoice = None
    if invoice_id:
        invoice = CommissionInvoice.objects.select_for_update().filter(pk=invoice_id).first()
    if invoice is None:
        raise UnknownEntity(f"Commission payment {intent_id} names unknown invoice {invoice_id!r}.")

    if invoice.status == CommissionInvoice.CANCELLED:
        logger.warning("Commission payment %s arrived for cancelled invoice %s", intent_id, invoice.pk)
        _flag_for_review(invoice, f"Commission payment {intent_id} received after cancellation; refund it.")
        return
    if invoice.status == CommissionInvoice.PAID:
        if invoice.payment.stripe_payment_intent_id != intent_id:
            logger.warning(
                "Invoice %s already paid (%s); second commission payment %s needs refunding",
                invoice.pk,
                invoice.payment.reference or invoice.payment.method,
                intent_id,
            )
            _flag_for_review(invoice, f"Paid twice: duplicate commission payment {intent_id}.")
        return

    received = event.data.get("amount_received") or event.data.get("amount")
    mark_invoice_paid(
        invoice,
        PaymentDetails(
            amount=from_minor_units(received) if received is not None else None,
            method=CommissionPayment.METHOD_STRIPE_PAYMENT_LINK,
            reference=intent_id,
            stripe_payment_intent_id=intent_id,
        ),
    )


HANDLERS: dict[EventKind, Callable[[InboundEvent], None]] = {
    EventKind.CHECKOUT_COMPLETED: handle_checkout_completed,
    EventKind.PAYMENT_FAILED: handle_payment_failed,
    EventKind.CHARGE_REFUNDED: handle_charge_refunded,
    EventKind.PAYOUT_PAID: handle_payout_paid,
    EventKind.PAYOUT_FAILED: handle_payout_failed,
    EventKind.TRANSFER_FAILED: handle_transfer_failed,
    EventKind.ACCOUNT_UPDATED: handle_account_updated,
    EventKind.COMMISSION_PAYMENT_SUCCEEDED: handle_commission_payment_succeeded,
}

_unhandled = set(EventKind) - set(HANDLERS)
if _unhandled:
    raise ImproperlyConfigured(f"No settlement handler for: {sorted(kind.value for kind in _unhandled)}")


def process_event(event: InboundEvent) -> EventOutcome:
    """Apply a verified event at most once. Raises EventHandlingError when its handler fails."""
    if not event.supported:
        logger.info("Ignoring unsupported Stripe event %s (%s)", event.event_id, event.stripe_type)
        return EventOutcome.IGNORED

    if ledger.is_processed(event.event_id):
        logger.info("Event %s already processed; skipping", event.event_id)
        return EventOutcome.ALREADY_PROCESSED

    if not ledger.record(event):
        if ledger.is_processed(event.event_id):
            return EventOutcome.ALREADY_PROCESSED
        logger.info("Event %s is being processed by another delivery", event.event_id)
        return EventOutcome.IN_FLIGHT

    handler = HANDLERS[event.kind]
    try:
        with transaction.atomic():
            handler(event)
            ledger.mark_processed(event.event_id)
    except Exception as exc:
        logger.exception("Handling %s event %s failed", event.kind.value, event.event_id)
        ledger.mark_failed(event.event_id, f"{exc.__class__.__name__}: {exc}")
        raise EventHandlingError(event.event_id, event.kind.value, str(exc)) from exc

    logger.info("Processed %s event %s", event.kind.value, event.event_id)
    return EventOutcome.PROCESSED
