from django.core.validators import MinValueValidator
from django.db import models


class Booking(models.Model):
    """Reservation created from a completed checkout session."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"
    STATUSES = [
        (PENDING, "Pending"),
        (CONFIRMED, "Confirmed"),
        (CANCELLED, "Cancelled"),
        (COMPLETED, "Completed"),
    ]

    activity = models.ForeignKey("activities.Activity", on_delete=models.PROTECT, related_name="bookings")
    provider = models.ForeignKey("partners.ActivityProvider", on_delete=models.PROTECT, related_name="bookings")
    establishment = models.ForeignKey(
        "partners.Establishment",
        on_delete=models.PROTECT,
        related_name="bookings",
        null=True,
        blank=True,
    )
    referral_visit = models.ForeignKey(
        "referrals.ReferralVisit",
        on_delete=models.SET_NULL,
        related_name="bookings",
        null=True,
        blank=True,
    )
    customer_id = models.CharField(max_length=255, blank=True)
    participant_count = models.PositiveIntegerField(default=1, validators=[MinValueValidator(1)])
    base_amount = models.DecimalField(max_digits=12, decimal_places=2)
    processing_fee = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    total_amount = models.DecimalField(max_digits=12, decimal_places=2)
    currency = models.CharField(max_length=10, default="thb")
    commission_percent = models.DecimalField(max_digits=5, decimal_places=2)
    status = models.CharField(max_length=12, choices=STATUSES, default=PENDING)
    checkout_session_id = models.CharField(max_length=255, unique=True)
    payment_intent_id = models.CharField(max_length=255, blank=True, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    confirmed_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at", "id"]

    def __str__(self):
        return f"{self.activity.title} booking ({self.participant_count})"

    @property
    def has_partner_referral(self) -> bool:
        return self.establishment_id is not None
