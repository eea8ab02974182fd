from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from core.exceptions import InvalidRequest
from payments.models import ProcessorEvent


class EventKind(str, enum.Enum):
    CHECKOUT_COMPLETED = ProcessorEvent.CHECKOUT_COMPLETED
    PAYMENT_FAILED = ProcessorEvent.PAYMENT_FAILED
    TRANSFER_FAILED = ProcessorEvent.TRANSFER_FAILED
    ACCOUNT_UPDATED = ProcessorEvent.ACCOUNT_UPDATED
    PAYOUT_PAID = ProcessorEvent.PAYOUT_PAID
    PAYOUT_FAILED = ProcessorEvent.PAYOUT_FAILED
    CHARGE_REFUNDED = ProcessorEvent.CHARGE_REFUNDED
    COMMISSION_PAYMENT_SUCCEEDED = ProcessorEvent.COMMISSION_PAYMENT_SUCCEEDED


STRIPE_TYPE_TO_KIND: dict[str, EventKind] = {
    "checkout.session.completed": EventKind.CHECKOUT_COMPLETED,
    "checkout.session.async_payment_succeeded": EventKind.CHECKOUT_COMPLETED,
    "checkout.session.async_payment_failed": EventKind.PAYMENT_FAILED,
    "checkout.session.expired": EventKind.PAYMENT_FAILED,
    "payment_intent.payment_failed": EventKind.PAYMENT_FAILED,
    "transfer.failed": EventKind.TRANSFER_FAILED,
    "transfer.reversed": EventKind.TRANSFER_FAILED,
    "account.updated": EventKind.ACCOUNT_UPDATED,
    "payout.paid": EventKind.PAYOUT_PAID,
    "payout.failed": EventKind.PAYOUT_FAILED,
    "charge.refunded": EventKind.CHARGE_REFUNDED,
    # Booking payments settle through checkout.session.*; only commission links act on this.
    "payment_intent.succeeded": EventKind.COMMISSION_PAYMENT_SUCCEEDED,
}


@dataclass(frozen=True)
class InboundEvent:
    event_id: str
    stripe_type: str
    kind: Optional[EventKind]
    data: Mapping[str, Any] = field(default_factory=dict)
    account: str = ""
    raw: Mapping[str, Any] = field(default_factory=dict)

    @property
    def supported(self) -> bool:
        return self.kind is not None

    @property
    def metadata(self) -> Mapping[str, Any]:
        return self.data.get("metadata") or {}


def parse_event(payload: Mapping[str, Any]) -> InboundEvent:
    """Normalise a verified Stripe event body; unknown types parse with `kind=None`."""
    if not isinstance(payload, Mapping):
        raise InvalidRequest("Event body must be a JSON object.")
    event_id = payload.get("id")
    stripe_type = payload.get("type")
    if not event_id or not stripe_type:
        raise InvalidRequest("Event is missing its id or type.")

    envelope = payload.get("data") or {}
    if not isinstance(envelope, Mapping):
        raise InvalidRequest("Event data must be a JSON object.")
    data = envelope.get("object") or {}
    if not isinstance(data, Mapping):
        raise InvalidRequest("Event data.object must be a JSON object.")
    return InboundEvent(
        event_id=str(event_id),
        stripe_type=str(stripe_type),
        kind=STRIPE_TYPE_TO_KIND.get(stripe_type),
        data=data,
        account=payload.get("account") or "",
        raw=payload,
    )
