"""
Referral attribution carried in a signed token instead of browser storage.

A visit to a partner link produces a `ReferralVisit` row and a token the
client echoes back when it starts checkout. The token is signed and
time-limited, so reading it needs no server session; the visit row decides
whether the attribution is still claimable.
"""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Optional

from django.conf import settings
from django.core import signing
from django.utils import timezone

from partners.models import Establishment
from referrals.models import ReferralVisit

logger = logging.getLogger(__name__)

TOKEN_SALT = "referrals.attribution"


@dataclass(frozen=True)
class Attribution:
    visit_id: int
    establishment_id: int
    correlation_id: str


def attribution_ttl() -> timedelta:
    return timedelta(hours=settings.REFERRAL_ATTRIBUTION_TTL_HOURS)


def issue_attribution_token(visit: ReferralVisit) -> str:
    payload = {
        "v": visit.pk,
        "e": visit.establishment_id,
        "s": visit.session_correlation_id,
    }
    return signing.dumps(payload, salt=TOKEN_SALT, compress=True)


def read_attribution_token(token: Optional[str], max_age: timedelta) -> Optional[Attribution]:
    """Decode a token without touching the database; None when missing, tampered or too old."""
    if not token:
        return None
    try:
        payload = signing.loads(token, salt=TOKEN_SALT, max_age=max_age)
    except signing.SignatureExpired:
        logger.info("Referral attribution token expired.")
        return None
    except signing.BadSignature:
        logger.warning("Referral attribution token failed signature check.")
        return None

    try:
        return Attribution(
            visit_id=int(payload["v"]),
            establishment_id=int(payload["e"]),
            correlation_id=str(payload["s"]),
        )
    except (KeyError, TypeError, ValueError):
        logger.warning("Referral attribution token has an unexpected payload.")
        return None


def track_visit(
    *,
    establishment: Establishment,
    metadata: Optional[dict[str, Any]] = None,
    ip_address: Optional[str] = None,
    user_agent: str = "",
    referrer_url: str = "",
) -> tuple[ReferralVisit, str]:
    """Persist a visit and return it together with the attribution token for the client."""
    now = timezone.now()
    visit = ReferralVisit.objects.create(
        establishment=establishment,
        session_correlation_id=secrets.token_urlsafe(24),
        visited_at=now,
        expires_at=now + attribution_ttl(),
        ip_address=ip_address,
        user_agent=user_agent[:500],
        referrer_url=referrer_url[:500],
        metadata=metadata or {},
    )
    logger.info("Tracked referral visit %s for establishment %s", visit.pk, establishment.pk)
    return visit, issue_attribution_token(visit)


def current_attribution(token: Optional[str]) -> Optional[Attribution]:
    """Attribution for a token whose visit still exists, is unexpired and has not been claimed."""
    attribution = read_attribution_token(token, max_age=attribution_ttl())
    if attribution is None:
        return None

    visit = (
        ReferralVisit.objects.filter(
            pk=attribution.visit_id,
            establishment_id=attribution.establishment_id,
            session_correlation_id=attribution.correlation_id,
        )
        .only("claimed_at", "expires_at")
        .first()
    )
    if visit is None or not visit.is_active:
        return None
    return attribution


def clear_attribution(visit_id: Optional[int]) -> bool:
    """Claim the visit so it cannot be attributed to another booking. Safe to call twice."""
    if not visit_id:
        return False
    updated = ReferralVisit.objects.filter(pk=visit_id, claimed_at__isnull=True).update(
        claimed_at=timezone.now()
    )
    if updated:
        logger.info("Referral visit %s claimed", visit_id)
    return bool(updated)
