from decimal import Decimal

from django.core.validators import MinValueValidator
from django.db import models


class Activity(models.Model):
    """Catalog entry a customer books; only the fields checkout pricing depends on live here."""

    provider = models.ForeignKey(
        "partners.ActivityProvider",
        on_delete=models.PROTECT,
        related_name="activities",
    )
    title = models.CharField(max_length=200)
    price_per_participant = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.01"))],
    )
    currency = models.CharField(max_length=10, default="thb")
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["title"]
        verbose_name_plural = "activities"

    def __str__(self):
        return self.title

    def price_for(self, participant_count: int) -> Decimal:
        return self.price_per_participant * participant_count
