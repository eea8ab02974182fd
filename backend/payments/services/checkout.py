from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from django.conf import settings

from activities.models import Activity
from commissions.services.calculator import calculate_commission
from core.exceptions import InvalidRequest, UnknownEntity
from core.money import from_minor_units, quantize_money, to_decimal, to_minor_units
from partners.models import Establishment
from payments.services.processor import create_checkout_session
from referrals.services.attribution import current_attribution

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CheckoutIntent:
    activity_id: int
    provider_id: int
    participant_count: int
    base_amount: Decimal
    success_url: str
    cancel_url: str
    commission_percent: Optional[Decimal] = None
    establishment_id: Optional[int] = None
    customer_id: str = ""
    customer_email: str = ""
    attribution_token: Optional[str] = None


@dataclass(frozen=True)
class CheckoutSessionResult:
    session_id: str
    url: str
    base_amount: Decimal
    processing_fee: Decimal
    total_amount: Decimal
    currency: str
    establishment_id: Optional[int]
    referral_visit_id: Optional[int]


def calculate_processing_fee(amount) -> Decimal:
    """Card processing fee passed on to the customer: a percentage plus a fixed minor-unit amount."""
    percent = to_decimal(settings.PROCESSING_FEE_PERCENT)
    fixed = from_minor_units(settings.PROCESSING_FEE_FIXED_MINOR)
    return quantize_money(to_decimal(amount) * percent / Decimal("100") + fixed)


def _resolve_activity(intent: CheckoutIntent) -> Activity:
    activity = Activity.objects.select_related("provider").filter(pk=intent.activity_id).first()
    if activity is None:
        raise UnknownEntity(f"Activity {intent.activity_id} does not exist.")
    if not activity.is_active:
        raise InvalidRequest(f"Activity {activity.pk} is not available for booking.")
    if activity.provider_id != intent.provider_id:
        raise InvalidRequest(f"Activity {activity.pk} is not offered by provider {intent.provider_id}.")
    return activity


def _resolve_establishment(establishment_id: Optional[int]) -> Optional[Establishment]:
    if establishment_id is None:
        return None
    establishment = Establishment.objects.filter(pk=establishment_id).first()
    if establishment is None:
        raise UnknownEntity(f"Establishment {establishment_id} does not exist.")
    if not establishment.is_active:
        raise InvalidRequest(f"Establishment {establishment_id} is not an active partner.")
    return establishment


def build_checkout_session(intent: CheckoutIntent) -> CheckoutSessionResult:
    """
    Validate a checkout request against the catalog and open a hosted payment session.

    Client totals are never trusted: the amount must equal the activity price
    times the participant count. A live referral token overrides any
    establishment passed explicitly. Nothing is persisted locally; the session
    metadata is what the completion webhook rebuilds the booking from.
    """
    if intent.participant_count < 1:
        raise InvalidRequest("participantCount must be at least 1.")
    base_amount = quantize_money(intent.base_amount)
    if base_amount <= 0:
        raise InvalidRequest("baseAmount must be greater than zero.")

    commission_percent = to_decimal(
        intent.commission_percent
        if intent.commission_percent is not None
        else settings.DEFAULT_COMMISSION_PERCENT
    )
    if commission_percent < 0 or commission_percent > 100:
        raise InvalidRequest("commissionPercent must be between 0 and 100.")

    activity = _resolve_activity(intent)
    expected = quantize_money(activity.price_for(intent.participant_count))
    if base_amount != expected:
        logger.warning(
            "Checkout amount mismatch for activity %s: got %s, expected %s",
            activity.pk,
            base_amount,
            expected,
        )
        raise InvalidRequest(
            f"baseAmount {base_amount} does not match {intent.participant_count} x "
            f"{activity.price_per_participant}."
        )

    attribution = current_attribution(intent.attribution_token)
    establishment_id = attribution.establishment_id if attribution else intent.establishment_id
    establishment = _resolve_establishment(establishment_id)
    referral_visit_id = attribution.visit_id if attribution else None

    currency = (activity.currency or settings.PAYMENT_CURRENCY).lower()
    processing_fee = calculate_processing_fee(base_amount)
    total_amount = base_amount + processing_fee

    line_items = [
        {
            "quantity": intent.participant_count,
            "price_data": {
                "currency": currency,
                "unit_amount": to_minor_units(activity.price_per_participant),
                "product_data": {"name": activity.title},
            },
        },
        {
            "quantity": 1,
            "price_data": {
                "currency": currency,
                "unit_amount": to_minor_units(processing_fee),
                "product_data": {"name": "Processing fee"},
            },
        },
    ]
    metadata = {
        "activity_id": str(activity.pk),
        "provider_id": str(activity.provider_id),
        "establishment_id": str(establishment.pk) if establishment else "",
        "referral_visit_id": str(referral_visit_id) if referral_visit_id else "",
        "customer_id": intent.customer_id or "",
        "commission_percent": str(commission_percent),
        "participants": str(intent.participant_count),
        "base_amount": str(base_amount),
        "processing_fee": str(processing_fee),
        "currency": currency,
    }

    payment_intent_data = None
    provider = activity.provider
    if provider.stripe_account_id and provider.charges_enabled:
        split = calculate_commission(base_amount, commission_percent)
        payment_intent_data = {
            "application_fee_amount": to_minor_units(split.platform_amount + processing_fee),
            "transfer_data": {"destination": provider.stripe_account_id},
            "metadata": metadata,
        }

    session = create_checkout_session(
        line_items=line_items,
        metadata=metadata,
        success_url=intent.success_url,
        cancel_url=intent.cancel_url,
        payment_intent_data=payment_intent_data,
        customer_email=intent.customer_email,
    )
    logger.info(
        "Checkout session %s opened for activity %s: total=%s %s establishment=%s",
        session.id,
        activity.pk,
        total_amount,
        currency,
        metadata["establishment_id"] or "-",
    )
    return CheckoutSessionResult(
        session_id=session.id,
        url=session.url,
        base_amount=base_amount,
        processing_fee=processing_fee,
        total_amount=total_amount,
        currency=currency,
        establishment_id=establishment.pk if establishment else None,
        referral_visit_id=referral_visit_id,
    )
