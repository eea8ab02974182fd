"""
Idempotency ledger for processor events.

Stripe delivers at least once. A delivery may only run side effects after it
has claimed the event row: the first insert wins, and a row can be claimed
again only after it failed or after its claim went stale.
"""

from __future__ import annotations

import logging
from datetime import timedelta

from django.conf import settings
from django.db import IntegrityError, transaction
from django.db.models import F, Q
from django.utils import timezone

from payments.models import ProcessorEvent
from payments.services.events import InboundEvent

logger = logging.getLogger(__name__)

MAX_ERROR_LENGTH = 2000


def is_processed(event_id: str) -> bool:
    return ProcessorEvent.objects.filter(event_id=event_id, processed=True).exists()


def record(event: InboundEvent) -> bool:
    """Claim `event` for processing. Returns False when another delivery owns it or it is done."""
    now = timezone.now()
    try:
        with transaction.atomic():
            ProcessorEvent.objects.create(
                event_id=event.event_id,
                event_type=event.kind.value,
                stripe_type=event.stripe_type,
                payload=dict(event.raw),
                claimed_at=now,
                attempts=1,
            )
        return True
    except IntegrityError:
        pass

    stale_before = now - timedelta(seconds=settings.WEBHOOK_EVENT_CLAIM_TIMEOUT_SECONDS)
    reclaimed = (
        ProcessorEvent.objects.filter(event_id=event.event_id, processed=False)
        .filter(Q(claimed_at__isnull=True) | Q(claimed_at__lt=stale_before))
        .update(claimed_at=now, attempts=F("attempts") + 1)
    )
    if reclaimed:
        logger.info("Re-claimed processor event %s for another attempt", event.event_id)
    return bool(reclaimed)


def mark_processed(event_id: str) -> None:
    ProcessorEvent.objects.filter(event_id=event_id).update(
        processed=True,
        processed_at=timezone.now(),
        processing_error="",
    )


def mark_failed(event_id: str, error_message: str) -> None:
    ProcessorEvent.objects.filter(event_id=event_id, processed=False).update(
        claimed_at=None,
        processing_error=error_message[:MAX_ERROR_LENGTH],
    )
