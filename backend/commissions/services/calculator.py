from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from core.money import quantize_money, to_decimal

HUNDRED = Decimal("100")
ZERO = Decimal("0.00")


@dataclass(frozen=True)
class CommissionSplit:
    booking_amount: Decimal
    commission_percent: Decimal
    platform_amount: Decimal
    provider_amount: Decimal
    partner_percent: Optional[Decimal] = None
    partner_amount: Optional[Decimal] = None

    @property
    def platform_net_amount(self) -> Decimal:
        """What the platform keeps after handing the partner its share."""
        return self.platform_amount - (self.partner_amount or ZERO)


def _percent(value, name: str) -> Decimal:
    percent = to_decimal(value)
    if percent < 0 or percent > HUNDRED:
        raise ValueError(f"{name} must be between 0 and 100, got {value}")
    return percent


def calculate_commission(
    booking_amount,
    commission_percent,
    has_partner_referral: bool = False,
    partner_percent=None,
) -> CommissionSplit:
    """
    Split a booking amount between the platform, the provider and an optional referring partner.

    The platform takes `commission_percent` of the booking, rounded half-up to
    the currency's minor unit. A referring partner receives `partner_percent`
    of the booking out of the platform's cut, capped so that it never exceeds
    the platform amount and platform + partner never exceeds the booking.
    """
    amount = quantize_money(booking_amount)
    if amount < 0:
        raise ValueError(f"booking_amount must not be negative, got {booking_amount}")
    percent = _percent(commission_percent, "commission_percent")

    platform_amount = quantize_money(amount * percent / HUNDRED)
    split = CommissionSplit(
        booking_amount=amount,
        commission_percent=percent,
        platform_amount=platform_amount,
        provider_amount=amount - platform_amount,
    )
    if not has_partner_referral:
        return split

    if partner_percent is None:
        raise ValueError("partner_percent is required when a partner referral is attributed")
    partner_rate = _percent(partner_percent, "partner_percent")
    partner_amount = min(
        quantize_money(amount * partner_rate / HUNDRED),
        platform_amount,
        amount - platform_amount,
    )
    return CommissionSplit(
        booking_amount=amount,
        commission_percent=percent,
        platform_amount=platform_amount,
        provider_amount=split.provider_amount,
        partner_percent=partner_rate,
        partner_amount=partner_amount,
    )
