from datetime import timedelta

import pytest
from django.utils import timezone

from core.exceptions import EventHandlingError, InvalidRequest
from payments.models import ProcessorEvent
from payments.services import ledger
from payments.services.events import EventKind, parse_event
from payments.services.settlement import HANDLERS, EventOutcome, process_event


def _transfer_event(event_id="evt_1"):
    return parse_event(
        {
            "id": event_id,
            "type": "transfer.failed",
            "data": {"object": {"id": "tr_1", "destination": "acct_1"}},
        }
    )


def test_every_event_kind_has_a_handler():
    assert set(HANDLERS) == set(EventKind)


def test_stripe_types_map_onto_kinds():
    assert parse_event({"id": "e1", "type": "checkout.session.expired", "data": {"object": {}}}).kind == EventKind.PAYMENT_FAILED
    assert parse_event({"id": "e2", "type": "transfer.reversed", "data": {"object": {}}}).kind == EventKind.TRANSFER_FAILED
    assert parse_event({"id": "e3", "type": "invoice.paid", "data": {"object": {}}}).supported is False


def test_event_without_id_is_rejected():
    with pytest.raises(InvalidRequest):
        parse_event({"type": "payout.paid", "data": {"object": {}}})


@pytest.mark.django_db
def test_record_claims_only_once():
    event = _transfer_event()

    assert ledger.record(event) is True
    assert ledger.record(event) is False
    assert ledger.is_processed(event.event_id) is False

    row = ProcessorEvent.objects.get(event_id="evt_1")
    assert row.attempts == 1
    assert row.event_type == ProcessorEvent.TRANSFER_FAILED


@pytest.mark.django_db
def test_in_flight_event_is_not_run_twice(settings):
    settings.WEBHOOK_EVENT_CLAIM_TIMEOUT_SECONDS = 300
    event = _transfer_event()
    # Another delivery holds a fresh claim on this event.
    assert ledger.record(event) is True

    assert process_event(event) == EventOutcome.IN_FLIGHT
    assert ProcessorEvent.objects.get(event_id="evt_1").processed is False


@pytest.mark.django_db
def test_stale_claim_is_taken_over(settings):
    settings.WEBHOOK_EVENT_CLAIM_TIMEOUT_SECONDS = 300
    event = _transfer_event()
    ledger.record(event)
    ProcessorEvent.objects.filter(event_id="evt_1").update(
        claimed_at=timezone.now() - timedelta(seconds=301)
    )

    assert process_event(event) == EventOutcome.PROCESSED

    row = ProcessorEvent.objects.get(event_id="evt_1")
    assert row.processed is True
    assert row.attempts == 2


@pytest.mark.django_db
def test_processed_event_is_skipped():
    event = _transfer_event()

    assert process_event(event) == EventOutcome.PROCESSED
    assert process_event(event) == EventOutcome.ALREADY_PROCESSED


@pytest.mark.django_db
def test_failed_handler_marks_row_failed_and_can_be_retried(monkeypatch):
    event = _transfer_event()
    calls = []

    def flaky(evt):
        calls.append(evt.event_id)
        if len(calls) == 1:
            raise RuntimeError("database hiccup")

    monkeypatch.setitem(HANDLERS, EventKind.TRANSFER_FAILED, flaky)

    with pytest.raises(EventHandlingError) as excinfo:
        process_event(event)
    assert excinfo.value.status_code == 500

    row = ProcessorEvent.objects.get(event_id="evt_1")
    assert row.processed is False
    assert "database hiccup" in row.processing_error
    assert row.claimed_at is None

    assert process_event(event) == EventOutcome.PROCESSED
    row.refresh_from_db()
    assert row.processed is True
    assert row.processing_error == ""
    assert calls == ["evt_1", "evt_1"]


@pytest.mark.django_db
def test_unsupported_event_leaves_no_row():
    event = parse_event({"id": "evt_x", "type": "customer.created", "data": {"object": {}}})

    assert process_event(event) == EventOutcome.IGNORED
    assert not ProcessorEvent.objects.exists()


@pytest.mark.parametrize("data", ["not-an-object", ["evt"], {"object": "ch_1"}])
def test_event_with_malformed_data_is_rejected(data):
    with pytest.raises(InvalidRequest):
        parse_event({"id": "evt_bad", "type": "charge.refunded", "data": data})
