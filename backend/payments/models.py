from django.db import models


class ProcessorEvent(models.Model):
    """Inbound processor notification; the unique event id is the idempotency key. Never deleted."""

    CHECKOUT_COMPLETED = "checkout_completed"
    PAYMENT_FAILED = "payment_failed"
    TRANSFER_FAILED = "transfer_failed"
    ACCOUNT_UPDATED = "account_updated"
    PAYOUT_PAID = "payout_paid"
    PAYOUT_FAILED = "payout_failed"
    CHARGE_REFUNDED = "charge_refunded"
    COMMISSION_PAYMENT_SUCCEEDED = "commission_payment_succeeded"
    EVENT_TYPES = [
        (CHECKOUT_COMPLETED, "Checkout completed"),
        (PAYMENT_FAILED, "Payment failed"),
        (TRANSFER_FAILED, "Transfer failed"),
        (ACCOUNT_UPDATED, "Account updated"),
        (PAYOUT_PAID, "Payout paid"),
        (PAYOUT_FAILED, "Payout failed"),
        (CHARGE_REFUNDED, "Charge refunded"),
        (COMMISSION_PAYMENT_SUCCEEDED, "Commission payment succeeded"),
    ]

    event_id = models.CharField(max_length=255, unique=True)
    event_type = models.CharField(max_length=32, choices=EVENT_TYPES)
    stripe_type = models.CharField(max_length=100)
    payload = models.JSONField(default=dict)
    received_at = models.DateTimeField(auto_now_add=True)
    claimed_at = models.DateTimeField(null=True, blank=True)
    attempts = models.PositiveIntegerField(default=0)
    processed = models.BooleanField(default=False)
    processed_at = models.DateTimeField(null=True, blank=True)
    processing_error = models.TextField(blank=True)

    class Meta:
        ordering = ["-received_at"]
        indexes = [
            models.Index(fields=["event_type", "processed"], name="payments_event_type_idx"),
        ]

    def __str__(self):
        return f"{self.stripe_type} {self.event_id}"
