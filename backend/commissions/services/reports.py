from __future__ import annotations

import csv
import io
from calendar import monthrange
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from django.db.models import Count, Q, QuerySet, Sum

from commissions.models import CommissionInvoice
from core.exceptions import InvalidRequest
from core.money import quantize_money

ZERO = Decimal("0.00")


def parse_period(period: str) -> tuple[date, date]:
    """`YYYY-MM` to the first and last day of that month."""
    try:
        year_text, month_text = period.split("-")
        year, month = int(year_text), int(month_text)
        first = date(year, month, 1)
    except (ValueError, AttributeError) as exc:
        raise InvalidRequest("period must be formatted as YYYY-MM.") from exc
    return first, date(year, month, monthrange(year, month)[1])


def commission_stats(invoices: QuerySet) -> dict:
    by_status = {
        row["status"]: row
        for row in invoices.values("status").annotate(
            count=Count("id"),
            platform=Sum("platform_commission_amount"),
            partner=Sum("partner_commission_amount"),
        )
    }
    statuses = {}
    for status, _ in CommissionInvoice.STATUSES:
        row = by_status.get(status, {})
        statuses[status] = {
            "count": row.get("count", 0),
            "platform_commission": quantize_money(row.get("platform") or 0),
            "partner_commission": quantize_money(row.get("partner") or 0),
        }

    live = invoices.exclude(status=CommissionInvoice.CANCELLED).aggregate(
        bookings=Sum("total_booking_amount"),
        platform=Sum("platform_commission_amount"),
        partner=Sum("partner_commission_amount"),
        referred=Count("id", filter=Q(establishment__isnull=False)),
    )
    platform = quantize_money(live["platform"] or 0)
    partner = quantize_money(live["partner"] or 0)
    return {
        "total_invoices": invoices.count(),
        "referred_invoices": live["referred"] or 0,
        "total_booking_amount": quantize_money(live["bookings"] or 0),
        "platform_commission": platform,
        "partner_commission": partner,
        "platform_net_commission": platform - partner,
        "needs_review": invoices.filter(needs_review=True).count(),
        "by_status": statuses,
    }


@dataclass
class EstablishmentSummary:
    establishment_id: int
    establishment_name: str
    booking_count: int = 0
    total_booking_amount: Decimal = ZERO
    partner_commission: Decimal = ZERO
    paid_out: Decimal = ZERO
    bookings: list[dict] = field(default_factory=list)

    @property
    def outstanding(self) -> Decimal:
        return self.partner_commission - self.paid_out

    def as_dict(self) -> dict:
        return {
            "establishment_id": self.establishment_id,
            "establishment_name": self.establishment_name,
            "booking_count": self.booking_count,
            "total_booking_amount": self.total_booking_amount,
            "partner_commission": self.partner_commission,
            "paid_out": self.paid_out,
            "outstanding": self.outstanding,
            "bookings": self.bookings,
        }


def establishment_report(period: str) -> list[EstablishmentSummary]:
    """Partner commission per establishment for invoices created in the given month."""
    start, end = parse_period(period)
    invoices = (
        CommissionInvoice.objects.filter(
            establishment__isnull=False,
            created_at__date__gte=start,
            created_at__date__lte=end,
        )
        .exclude(status=CommissionInvoice.CANCELLED)
        .select_related("establishment", "booking")
        .prefetch_related("booking__payout_records")
        .order_by("establishment__name", "created_at")
    )

    summaries: dict[int, EstablishmentSummary] = {}
    for invoice in invoices:
        summary = summaries.get(invoice.establishment_id)
        if summary is None:
            summary = EstablishmentSummary(
                establishment_id=invoice.establishment_id,
                establishment_name=invoice.establishment.name,
            )
            summaries[invoice.establishment_id] = summary

        share = invoice.partner_commission_amount or ZERO
        paid_out = any(
            payout.establishment_id == invoice.establishment_id
            for payout in invoice.booking.payout_records.all()
        )
        summary.booking_count += 1
        summary.total_booking_amount += invoice.total_booking_amount
        summary.partner_commission += share
        if paid_out:
            summary.paid_out += share
        summary.bookings.append(
            {
                "booking_id": invoice.booking_id,
                "invoice_id": invoice.pk,
                "booking_amount": invoice.total_booking_amount,
                "partner_commission": share,
                "invoice_status": invoice.status,
                "paid_out": paid_out,
            }
        )
    return list(summaries.values())


CSV_COLUMNS = [
    "establishment_id",
    "establishment_name",
    "booking_id",
    "invoice_id",
    "booking_amount",
    "partner_commission",
    "invoice_status",
    "paid_out",
]


def report_to_csv(summaries: list[EstablishmentSummary]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(CSV_COLUMNS)
    for summary in summaries:
        for row in summary.bookings:
            writer.writerow(
                [
                    summary.establishment_id,
                    summary.establishment_name,
                    row["booking_id"],
                    row["invoice_id"],
                    row["booking_amount"],
                    row["partner_commission"],
                    row["invoice_status"],
                    "yes" if row["paid_out"] else "no",
                ]
            )
    return buffer.getvalue()


def provider_summary(invoices: QuerySet) -> list[dict]:
    """Per-provider invoice counts and commission totals, busiest provider first."""
    rows = (
        invoices.values("provider_id", "provider__name", "provider__contact_email")
        .annotate(
            total_invoices=Count("id"),
            paid_invoices=Count("id", filter=Q(status=CommissionInvoice.PAID)),
            pending_invoices=Count("id", filter=Q(status=CommissionInvoice.PENDING)),
            overdue_invoices=Count("id", filter=Q(status=CommissionInvoice.OVERDUE)),
            revenue=Sum("total_booking_amount", filter=~Q(status=CommissionInvoice.CANCELLED)),
            platform=Sum("platform_commission_amount", filter=~Q(status=CommissionInvoice.CANCELLED)),
            partner=Sum("partner_commission_amount", filter=~Q(status=CommissionInvoice.CANCELLED)),
            paid_platform=Sum("platform_commission_amount", filter=Q(status=CommissionInvoice.PAID)),
        )
        .order_by("-total_invoices", "provider__name")
    )
    summary = []
    for row in rows:
        platform = quantize_money(row["platform"] or 0)
        paid = quantize_money(row["paid_platform"] or 0)
        summary.append(
            {
                "provider_id": row["provider_id"],
                "provider_name": row["provider__name"],
                "contact_email": row["provider__contact_email"],
                "total_invoices": row["total_invoices"],
                "paid_invoices": row["paid_invoices"],
                "pending_invoices": row["pending_invoices"],
                "overdue_invoices": row["overdue_invoices"],
                "total_revenue": quantize_money(row["revenue"] or 0),
                "platform_commission": platform,
                "partner_commission": quantize_money(row["partner"] or 0),
                "platform_commission_paid": paid,
                "platform_commission_outstanding": platform - paid,
            }
        )
    return summary
