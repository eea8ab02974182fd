"""Error taxonomy shared by the checkout, webhook and admin settlement flows."""

from __future__ import annotations

from typing import Iterable


class SettlementError(Exception):
    """Base class for every settlement failure surfaced to a caller."""

    status_code = 500

    def __init__(self, message: str = ""):
        super().__init__(message or self.__class__.__doc__ or self.__class__.__name__)

    @property
    def detail(self) -> str:
        return str(self)

    def as_payload(self) -> dict:
        return {"detail": self.detail}


class InvalidRequest(SettlementError):
    """Caller supplied data failed validation."""

    status_code = 400


class InvalidSignature(SettlementError):
    """Webhook body or signature header did not verify."""

    status_code = 400


class ProcessorError(SettlementError):
    """The payment processor rejected or failed a call."""

    status_code = 502


class UnknownEntity(SettlementError):
    """A referenced activity, provider, establishment or invoice could not be resolved."""

    status_code = 404


class UnknownBooking(UnknownEntity):
    """One or more booking ids do not exist."""

    status_code = 400

    def __init__(self, missing_ids: Iterable[int]):
        self.missing_ids = sorted(missing_ids)
        super().__init__(
            "Unknown booking ids: " + ", ".join(str(booking_id) for booking_id in self.missing_ids)
        )

    def as_payload(self) -> dict:
        return {"detail": self.detail, "missing_booking_ids": self.missing_ids}


class PreconditionNotMet(SettlementError):
    """The event arrived before the state it depends on; the processor should redeliver it."""

    status_code = 409


class InvalidTransition(SettlementError):
    """The requested status change is not allowed from the current status."""

    status_code = 409


class DuplicatePayout(SettlementError):
    """A payout with this reference has already been recorded."""

    status_code = 409


class EventHandlingError(SettlementError):
    """A recorded processor event failed; it stays marked failed for redelivery."""

    status_code = 500

    def __init__(self, event_id: str, event_type: str, message: str):
        self.event_id = event_id
        self.event_type = event_type
        super().__init__(f"{event_type} {event_id}: {message}")
