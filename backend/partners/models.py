from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models


class ActivityProvider(models.Model):
    """Business running activities; pays the platform commission on each booking."""

    name = models.CharField(max_length=200)
    contact_email = models.EmailField()
    stripe_account_id = models.CharField(max_length=255, blank=True)
    charges_enabled = models.BooleanField(default=False)
    payouts_enabled = models.BooleanField(default=False)
    details_submitted = models.BooleanField(default=False)
    last_webhook_received_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]
        constraints = [
            models.UniqueConstraint(
                fields=["stripe_account_id"],
                condition=~models.Q(stripe_account_id=""),
                name="unique_provider_stripe_account",
            ),
        ]

    def __str__(self):
        return self.name


class Establishment(models.Model):
    """Referring partner (hotel, cafe, ...) whose QR code or link brings customers in."""

    name = models.CharField(max_length=200)
    slug = models.SlugField(unique=True)
    contact_email = models.EmailField(blank=True)
    partner_commission_percent = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        null=True,
        blank=True,
        validators=[MinValueValidator(0), MaxValueValidator(100)],
        help_text="Overrides PARTNER_COMMISSION_PERCENT for this establishment.",
    )
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["name"]

    def __str__(self):
        return self.name
