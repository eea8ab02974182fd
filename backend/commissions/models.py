from django.conf import settings
from django.db import models


class CommissionInvoice(models.Model):
    """What a provider owes the platform for one booking, including the partner's share if referred."""

    PENDING = "pending"
    PAID = "paid"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"
    STATUSES = [
        (PENDING, "Pending"),
        (PAID, "Paid"),
        (OVERDUE, "Overdue"),
        (CANCELLED, "Cancelled"),
    ]

    ROLE_PLATFORM = "platform"
    ROLE_PROVIDER = "provider"
    ROLE_PARTNER = "partner"
    PAYER_ROLES = [
        (ROLE_PLATFORM, "Platform"),
        (ROLE_PROVIDER, "Provider"),
    ]
    PAYEE_ROLES = [
        (ROLE_PLATFORM, "Platform"),
        (ROLE_PARTNER, "Partner"),
    ]

    booking = models.OneToOneField(
        "bookings.Booking",
        on_delete=models.PROTECT,
        related_name="commission_invoice",
    )
    provider = models.ForeignKey(
        "partners.ActivityProvider",
        on_delete=models.PROTECT,
        related_name="commission_invoices",
    )
    establishment = models.ForeignKey(
        "partners.Establishment",
        on_delete=models.PROTECT,
        related_name="commission_invoices",
        null=True,
        blank=True,
    )
    payer_role = models.CharField(max_length=10, choices=PAYER_ROLES, default=ROLE_PROVIDER)
    payee_role = models.CharField(max_length=10, choices=PAYEE_ROLES, default=ROLE_PLATFORM)
    total_booking_amount = models.DecimalField(max_digits=12, decimal_places=2)
    commission_percent = models.DecimalField(max_digits=5, decimal_places=2)
    platform_commission_amount = models.DecimalField(max_digits=12, decimal_places=2)
    partner_commission_percent = models.DecimalField(max_digits=5, decimal_places=2, null=True, blank=True)
    partner_commission_amount = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    currency = models.CharField(max_length=10, default="thb")
    status = models.CharField(max_length=10, choices=STATUSES, default=PENDING)
    due_date = models.DateField(null=True, blank=True)
    needs_review = models.BooleanField(default=False)
    review_note = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    paid_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    payment_link_id = models.CharField(max_length=255, blank=True)
    payment_link_url = models.URLField(max_length=500, blank=True)

    class Meta:
        ordering = ["-created_at", "id"]
        indexes = [
            models.Index(fields=["status", "due_date"], name="commissions_status_due_idx"),
        ]

    def __str__(self):
        return f"Commission invoice {self.pk} for booking {self.booking_id}"

    @property
    def has_partner_share(self) -> bool:
        return self.partner_commission_amount is not None


class CommissionPayment(models.Model):
    """Settlement of an invoice. An invoice is paid iff exactly one of these exists for it."""

    METHOD_MANUAL = "manual"
    METHOD_BANK_TRANSFER = "bank_transfer"
    METHOD_PROMPTPAY = "promptpay"
    METHOD_CHECK = "check"
    METHOD_STRIPE_PAYOUT = "stripe_payout"
    METHOD_STRIPE_PAYMENT_LINK = "stripe_payment_link"
    METHODS = [
        (METHOD_MANUAL, "Manual"),
        (METHOD_BANK_TRANSFER, "Bank transfer"),
        (METHOD_PROMPTPAY, "PromptPay"),
        (METHOD_CHECK, "Check"),
        (METHOD_STRIPE_PAYOUT, "Stripe payout"),
        (METHOD_STRIPE_PAYMENT_LINK, "Stripe payment link"),
    ]

    invoice = models.OneToOneField(
        CommissionInvoice,
        on_delete=models.PROTECT,
        related_name="payment",
    )
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    method = models.CharField(max_length=20, choices=METHODS, default=METHOD_MANUAL)
    reference = models.CharField(max_length=255, blank=True)
    stripe_payout_id = models.CharField(max_length=255, blank=True)
    stripe_payment_intent_id = models.CharField(max_length=255, blank=True)
    paid_at = models.DateTimeField()
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="commission_payments",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-paid_at"]

    def __str__(self):
        return f"Payment of {self.amount} for invoice {self.invoice_id}"


class PayoutRecord(models.Model):
    """Append-only audit row for money sent to a partner outside the processor."""

    METHOD_BANK_TRANSFER = "bank_transfer"
    METHOD_PROMPTPAY = "promptpay"
    METHOD_CHECK = "check"
    METHODS = [
        (METHOD_BANK_TRANSFER, "Bank transfer"),
        (METHOD_PROMPTPAY, "PromptPay"),
        (METHOD_CHECK, "Check"),
    ]

    STATUS_PAID = "paid"
    STATUSES = [
        (STATUS_PAID, "Paid"),
    ]

    establishment = models.ForeignKey(
        "partners.Establishment",
        on_delete=models.PROTECT,
        related_name="payouts",
    )
    bookings = models.ManyToManyField("bookings.Booking", related_name="payout_records")
    payout_reference = models.CharField(max_length=255, unique=True)
    payout_amount = models.DecimalField(max_digits=12, decimal_places=2)
    expected_amount = models.DecimalField(max_digits=12, decimal_places=2)
    is_reconciled = models.BooleanField(default=False)
    payout_date = models.DateField()
    payout_method = models.CharField(max_length=20, choices=METHODS)
    status = models.CharField(max_length=10, choices=STATUSES, default=STATUS_PAID)
    processed_at = models.DateTimeField(auto_now_add=True)
    notes = models.TextField(blank=True)
    recorded_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="recorded_payouts",
    )

    class Meta:
        db_table = "commission_payouts"
        ordering = ["-processed_at"]

    def __str__(self):
        return f"Payout {self.payout_reference} to {self.establishment}"

    def save(self, *args, **kwargs):
        if self.pk is not None and not self._state.adding:
            raise ValueError("Payout records are immutable once created.")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValueError("Payout records cannot be deleted.")
