from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import generics, status
from rest_framework.filters import OrderingFilter
from rest_framework.permissions import IsAuthenticated
from rest_framework.renderers import JSONRenderer
from rest_framework.response import Response
from rest_framework.views import APIView

from core.exceptions import SettlementError

from .filters import CommissionInvoiceFilter
from .models import CommissionInvoice
from .permissions import IsPlatformAdmin
from .renderers import CSVTextRenderer
from .serializers import (
    CommissionInvoiceSerializer,
    InvoiceStatusUpdateSerializer,
    PaymentLinkRequestSerializer,
    PayoutRecordSerializer,
    PayoutRequestSerializer,
)
from .services.invoices import PaymentDetails, update_invoice_status
from .services.payment_links import create_commission_payment_link
from .services.payouts import record_payout
from .services.reports import commission_stats, establishment_report, provider_summary, report_to_csv


class CommissionAdminView(APIView):
    permission_classes = [IsAuthenticated, IsPlatformAdmin]


class InvoiceStatusView(CommissionAdminView):
    """Administrative invoice status change; `paid` records the settlement payment."""

    def put(self, request, *args, **kwargs):
        serializer = InvoiceStatusUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        payment = None
        payment_data = data.get("paymentData")
        if payment_data:
            payment = PaymentDetails(
                amount=payment_data.get("amount"),
                method=payment_data["method"],
                reference=payment_data["reference"],
            )

        try:
            invoice = update_invoice_status(
                data["invoiceId"],
                data["status"],
                payment=payment,
                user=request.user,
            )
        except SettlementError as exc:
            return Response(exc.as_payload(), status=exc.status_code)

        invoice.refresh_from_db()
        return Response(CommissionInvoiceSerializer(invoice).data)


class PaymentLinkView(CommissionAdminView):
    """Stripe Payment Link a provider can use to pay an invoice's platform commission."""

    def post(self, request, *args, **kwargs):
        serializer = PaymentLinkRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            invoice, created = create_commission_payment_link(
                serializer.validated_data["invoiceId"],
                user=request.user,
            )
        except SettlementError as exc:
            return Response(exc.as_payload(), status=exc.status_code)

        return Response(
            {
                "invoiceId": invoice.pk,
                "paymentLinkId": invoice.payment_link_id,
                "paymentLinkUrl": invoice.payment_link_url,
                "amount": invoice.platform_commission_amount,
                "currency": invoice.currency,
            },
            status=status.HTTP_201_CREATED if created else status.HTTP_200_OK,
        )


class PayoutView(CommissionAdminView):
    """Record money sent to a partner establishment outside the processor."""

    def post(self, request, *args, **kwargs):
        serializer = PayoutRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            payout = record_payout(
                establishment_id=data["establishmentId"],
                booking_ids=data["bookingIds"],
                payout_reference=data["payoutReference"],
                payout_amount=data["payoutAmount"],
                payout_date=data["payoutDate"],
                payout_method=data["payoutMethod"],
                notes=data["notes"],
                user=request.user,
            )
        except SettlementError as exc:
            return Response(exc.as_payload(), status=exc.status_code)

        return Response(PayoutRecordSerializer(payout).data, status=status.HTTP_201_CREATED)


class InvoiceListView(generics.ListAPIView):
    permission_classes = [IsAuthenticated, IsPlatformAdmin]
    serializer_class = CommissionInvoiceSerializer
    filter_backends = [DjangoFilterBackend, OrderingFilter]
    filterset_class = CommissionInvoiceFilter
    ordering_fields = ["created_at", "due_date", "platform_commission_amount", "status"]

    def get_queryset(self):
        return CommissionInvoice.objects.select_related(
            "provider",
            "establishment",
            "payment",
        )


class CommissionStatsView(CommissionAdminView):
    def get(self, request, *args, **kwargs):
        invoices = CommissionInvoiceFilter(
            request.query_params,
            queryset=CommissionInvoice.objects.all(),
        ).qs
        return Response(commission_stats(invoices))


class CommissionReportView(CommissionAdminView):
    """Monthly partner commission summary per establishment, as JSON or CSV."""

    renderer_classes = [JSONRenderer, CSVTextRenderer]

    def get(self, request, *args, **kwargs):
        period = request.query_params.get("period")
        if not period:
            return Response({"detail": "period is required (YYYY-MM)."}, status=status.HTTP_400_BAD_REQUEST)

        try:
            summaries = establishment_report(period)
        except SettlementError as exc:
            return Response(exc.as_payload(), status=exc.status_code)

        if request.accepted_renderer.format == "csv":
            return Response(
                report_to_csv(summaries),
                headers={"Content-Disposition": f'attachment; filename="partner-commissions-{period}.csv"'},
            )

        return Response(
            {
                "period": period,
                "establishments": [summary.as_dict() for summary in summaries],
            }
        )


class ProviderSummaryView(CommissionAdminView):
    def get(self, request, *args, **kwargs):
        invoices = CommissionInvoiceFilter(
            request.query_params,
            queryset=CommissionInvoice.objects.all(),
        ).qs
        return Response(provider_summary(invoices))
