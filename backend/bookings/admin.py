from django.contrib import admin, messages

from core.exceptions import InvalidTransition

from .models import Booking
from .services.transitions import complete_booking


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "activity",
        "provider",
        "establishment",
        "participant_count",
        "total_amount",
        "status",
        "created_at",
    )
    list_filter = ("status", "provider", "establishment")
    search_fields = ("checkout_session_id", "payment_intent_id", "customer_id", "activity__title")
    readonly_fields = (
        "checkout_session_id",
        "payment_intent_id",
        "base_amount",
        "processing_fee",
        "total_amount",
        "commission_percent",
        "created_at",
        "confirmed_at",
        "cancelled_at",
        "completed_at",
    )
    actions = ["mark_completed"]

    @admin.action(description="Mark selected bookings as completed")
    def mark_completed(self, request, queryset):
        completed = 0
        for booking in queryset:
            try:
                if complete_booking(booking):
                    completed += 1
            except InvalidTransition as exc:
                self.message_user(request, str(exc), level=messages.WARNING)
        self.message_user(request, f"{completed} booking(s) marked as completed.")
