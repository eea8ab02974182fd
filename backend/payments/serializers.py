from rest_framework import serializers


class CheckoutRequestSerializer(serializers.Serializer):
    activityId = serializers.IntegerField(min_value=1)
    providerId = serializers.IntegerField(min_value=1)
    participantCount = serializers.IntegerField(min_value=1)
    amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    commissionPercent = serializers.DecimalField(
        max_digits=5,
        decimal_places=2,
        min_value=0,
        max_value=100,
        required=False,
        allow_null=True,
    )
    establishmentId = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    customerId = serializers.CharField(required=False, allow_blank=True, default="", max_length=255)
    customerEmail = serializers.EmailField(required=False, allow_blank=True, default="")
    referralToken = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    successUrl = serializers.URLField()
    cancelUrl = serializers.URLField()

    def validate_amount(self, value):
        if value <= 0:
            raise serializers.ValidationError("Amount must be greater than zero.")
        return value


class CheckoutSessionResponseSerializer(serializers.Serializer):
    sessionId = serializers.CharField(source="session_id")
    url = serializers.CharField()
    baseAmount = serializers.DecimalField(source="base_amount", max_digits=12, decimal_places=2)
    processingFee = serializers.DecimalField(source="processing_fee", max_digits=12, decimal_places=2)
    totalAmount = serializers.DecimalField(source="total_amount", max_digits=12, decimal_places=2)
    currency = serializers.CharField()
    establishmentId = serializers.IntegerField(source="establishment_id", allow_null=True)
