from django.contrib import admin

from .models import ProcessorEvent


@admin.register(ProcessorEvent)
class ProcessorEventAdmin(admin.ModelAdmin):
    list_display = ("event_id", "event_type", "stripe_type", "processed", "attempts", "received_at")
    list_filter = ("event_type", "processed")
    search_fields = ("event_id", "stripe_type")
    readonly_fields = (
        "event_id",
        "event_type",
        "stripe_type",
        "payload",
        "received_at",
        "claimed_at",
        "attempts",
        "processed",
        "processed_at",
        "processing_error",
    )

    def has_delete_permission(self, request, obj=None):
        return False
