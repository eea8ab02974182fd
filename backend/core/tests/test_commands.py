from datetime import timedelta
from io import StringIO

import pytest
from django.core.management import call_command
from django.core.management.base import CommandError
from django.utils import timezone

from activities.models import Activity
from commissions.models import CommissionInvoice
from commissions.services.invoices import create_invoice_for_booking
from partners.models import ActivityProvider, Establishment


@pytest.mark.django_db
def test_devseed_is_idempotent(settings):
    settings.DEBUG = True

    call_command("devseed", stdout=StringIO())
    call_command("devseed", stdout=StringIO())

    assert ActivityProvider.objects.count() == 2
    assert Establishment.objects.count() == 2
    assert Activity.objects.count() == 3


@pytest.mark.django_db
def test_devseed_refuses_without_debug(settings):
    settings.DEBUG = False

    with pytest.raises(CommandError):
        call_command("devseed", stdout=StringIO())


@pytest.mark.django_db
def test_mark_overdue_invoices_command(make_booking):
    invoice, _ = create_invoice_for_booking(make_booking())
    CommissionInvoice.objects.filter(pk=invoice.pk).update(due_date=timezone.localdate() - timedelta(days=2))
    out = StringIO()

    call_command("mark_overdue_invoices", stdout=out)

    invoice.refresh_from_db()
    assert invoice.status == CommissionInvoice.OVERDUE
    assert "1 invoice(s) marked overdue." in out.getvalue()
