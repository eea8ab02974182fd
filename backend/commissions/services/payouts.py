from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional

from django.db import IntegrityError, transaction
from django.db.models import Sum

from bookings.models import Booking
from commissions.models import CommissionInvoice, PayoutRecord
from core.exceptions import DuplicatePayout, InvalidRequest, UnknownBooking, UnknownEntity
from core.money import quantize_money
from partners.models import Establishment

logger = logging.getLogger(__name__)


def expected_partner_amount(establishment: Establishment, bookings: Iterable[Booking]) -> Decimal:
    """Sum of the partner shares owed to `establishment` for the given bookings."""
    total = CommissionInvoice.objects.filter(
        booking__in=list(bookings),
        establishment=establishment,
    ).exclude(
        status=CommissionInvoice.CANCELLED,
    ).aggregate(total=Sum("partner_commission_amount"))["total"]
    return quantize_money(total or 0)


def record_payout(
    *,
    establishment_id: int,
    booking_ids: Iterable[int],
    payout_reference: str,
    payout_amount,
    payout_date: date,
    payout_method: str,
    notes: Optional[str] = None,
    user=None,
) -> PayoutRecord:
    """
    Persist an administrative payout to a partner establishment.

    Validation happens before anything is written: the establishment and every
    booking must exist and the reference must be new. The reconciliation
    result is stored on the record; a mismatch never blocks the payout.
    """
    ids = set(booking_ids)
    if not ids:
        raise InvalidRequest("At least one booking id is required.")
    if not payout_reference:
        raise InvalidRequest("payout_reference is required.")
    if payout_method not in {method for method, _ in PayoutRecord.METHODS}:
        raise InvalidRequest(f"Unsupported payout method: {payout_method}")

    establishment = Establishment.objects.filter(pk=establishment_id).first()
    if establishment is None:
        raise UnknownEntity(f"Establishment {establishment_id} does not exist.")

    bookings = list(Booking.objects.filter(pk__in=ids))
    missing = ids - {booking.pk for booking in bookings}
    if missing:
        raise UnknownBooking(missing)

    if PayoutRecord.objects.filter(payout_reference=payout_reference).exists():
        raise DuplicatePayout(f"Payout reference {payout_reference} has already been recorded.")

    foreign = [booking.pk for booking in bookings if booking.establishment_id != establishment.pk]
    if foreign:
        logger.warning(
            "Payout %s to establishment %s references bookings attributed elsewhere: %s",
            payout_reference,
            establishment.pk,
            sorted(foreign),
        )

    amount = quantize_money(payout_amount)
    expected = expected_partner_amount(establishment, bookings)
    reconciled = amount == expected
    if not reconciled:
        logger.warning(
            "Payout %s does not reconcile: paid %s, expected %s for establishment %s",
            payout_reference,
            amount,
            expected,
            establishment.pk,
        )

    try:
        with transaction.atomic():
            payout = PayoutRecord.objects.create(
                establishment=establishment,
                payout_reference=payout_reference,
                payout_amount=amount,
                expected_amount=expected,
                is_reconciled=reconciled,
                payout_date=payout_date,
                payout_method=payout_method,
                notes=notes or "",
                recorded_by=user,
            )
            payout.bookings.set(bookings)
    except IntegrityError as exc:
        # Lost a race with a concurrent request carrying the same reference.
        raise DuplicatePayout(
            f"Payout reference {payout_reference} has already been recorded."
        ) from exc

    logger.info(
        "Recorded payout %s of %s to establishment %s covering %s booking(s)",
        payout_reference,
        amount,
        establishment.pk,
        len(bookings),
    )
    return payout
