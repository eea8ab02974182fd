from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Mapping

from django.conf import settings
from django.utils import timezone

from core.money import to_decimal
from partners.models import ActivityProvider, Establishment

logger = logging.getLogger(__name__)


def resolve_partner_percent(establishment: Establishment) -> Decimal:
    """Partner share configured for an establishment, falling back to the platform default."""
    if establishment.partner_commission_percent is not None:
        return to_decimal(establishment.partner_commission_percent)
    return to_decimal(settings.PARTNER_COMMISSION_PERCENT)


def sync_provider_from_account(provider: ActivityProvider, account: Mapping[str, Any]) -> list[str]:
    """Copy payout eligibility flags from a Stripe account payload onto the provider."""
    changed_fields: list[str] = []
    field_mapping = {
        "charges_enabled": "charges_enabled",
        "payouts_enabled": "payouts_enabled",
        "details_submitted": "details_submitted",
    }
    for field, attr in field_mapping.items():
        value = bool(account.get(attr, False))
        if getattr(provider, field) != value:
            setattr(provider, field, value)
            changed_fields.append(field)

    provider.last_webhook_received_at = timezone.now()
    changed_fields.append("last_webhook_received_at")
    provider.save(update_fields=changed_fields + ["updated_at"])

    if "payouts_enabled" in changed_fields:
        logger.info(
            "Provider %s payouts_enabled is now %s (account %s)",
            provider.pk,
            provider.payouts_enabled,
            provider.stripe_account_id,
        )
    return changed_fields
