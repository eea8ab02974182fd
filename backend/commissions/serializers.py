from rest_framework import serializers

from .models import CommissionInvoice, CommissionPayment, PayoutRecord


class PaymentDataSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0, required=False)
    method = serializers.ChoiceField(
        choices=CommissionPayment.METHODS,
        required=False,
        default=CommissionPayment.METHOD_MANUAL,
    )
    reference = serializers.CharField(required=False, allow_blank=True, default="", max_length=255)


class InvoiceStatusUpdateSerializer(serializers.Serializer):
    invoiceId = serializers.IntegerField(min_value=1)
    status = serializers.ChoiceField(choices=CommissionInvoice.STATUSES)
    paymentData = PaymentDataSerializer(required=False)


class PaymentLinkRequestSerializer(serializers.Serializer):
    invoiceId = serializers.IntegerField(min_value=1)


class PayoutRequestSerializer(serializers.Serializer):
    establishmentId = serializers.IntegerField(min_value=1)
    bookingIds = serializers.ListField(
        child=serializers.IntegerField(min_value=1),
        allow_empty=False,
    )
    payoutReference = serializers.CharField(max_length=255)
    payoutAmount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0)
    payoutDate = serializers.DateField()
    payoutMethod = serializers.ChoiceField(choices=PayoutRecord.METHODS)
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class CommissionPaymentSerializer(serializers.ModelSerializer):
    class Meta:
        model = CommissionPayment
        fields = [
            "id",
            "amount",
            "method",
            "reference",
            "stripe_payout_id",
            "stripe_payment_intent_id",
            "paid_at",
        ]


class CommissionInvoiceSerializer(serializers.ModelSerializer):
    payment = CommissionPaymentSerializer(read_only=True)
    provider_name = serializers.CharField(source="provider.name", read_only=True)
    establishment_name = serializers.CharField(source="establishment.name", read_only=True, default=None)

    class Meta:
        model = CommissionInvoice
        fields = [
            "id",
            "booking",
            "provider",
            "provider_name",
            "establishment",
            "establishment_name",
            "payer_role",
            "payee_role",
            "total_booking_amount",
            "commission_percent",
            "platform_commission_amount",
            "partner_commission_percent",
            "partner_commission_amount",
            "currency",
            "status",
            "due_date",
            "needs_review",
            "review_note",
            "created_at",
            "paid_at",
            "cancelled_at",
            "payment_link_url",
            "payment",
        ]
        read_only_fields = fields


class PayoutRecordSerializer(serializers.ModelSerializer):
    bookings = serializers.PrimaryKeyRelatedField(many=True, read_only=True)

    class Meta:
        model = PayoutRecord
        fields = [
            "id",
            "establishment",
            "bookings",
            "payout_reference",
            "payout_amount",
            "expected_amount",
            "is_reconciled",
            "payout_date",
            "payout_method",
            "status",
            "processed_at",
            "notes",
        ]
        read_only_fields = fields
