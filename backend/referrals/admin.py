from django.contrib import admin

from .models import ReferralVisit


@admin.register(ReferralVisit)
class ReferralVisitAdmin(admin.ModelAdmin):
    list_display = ("establishment", "visited_at", "expires_at", "claimed_at")
    list_filter = ("establishment",)
    search_fields = ("establishment__name", "session_correlation_id")
    readonly_fields = ("session_correlation_id", "metadata")
