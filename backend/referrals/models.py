from django.db import models
from django.utils import timezone


class ReferralVisit(models.Model):
    """A landing on a partner's tracked link or QR code, waiting to be attributed to a booking."""

    establishment = models.ForeignKey(
        "partners.Establishment",
        on_delete=models.CASCADE,
        related_name="referral_visits",
    )
    session_correlation_id = models.CharField(max_length=64, unique=True)
    visited_at = models.DateTimeField(default=timezone.now)
    expires_at = models.DateTimeField()
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    user_agent = models.CharField(max_length=500, blank=True)
    referrer_url = models.URLField(max_length=500, blank=True)
    metadata = models.JSONField(default=dict, blank=True)
    claimed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-visited_at"]

    def __str__(self):
        return f"Visit {self.pk} via {self.establishment}"

    @property
    def is_expired(self) -> bool:
        return timezone.now() > self.expires_at

    @property
    def is_active(self) -> bool:
        return self.claimed_at is None and not self.is_expired
