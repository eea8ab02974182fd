from django.contrib import admin

from .models import ActivityProvider, Establishment


@admin.register(ActivityProvider)
class ActivityProviderAdmin(admin.ModelAdmin):
    list_display = (
        "name",
        "contact_email",
        "stripe_account_id",
        "charges_enabled",
        "payouts_enabled",
        "updated_at",
    )
    readonly_fields = ("created_at", "updated_at", "last_webhook_received_at")
    search_fields = ("name", "contact_email", "stripe_account_id")


@admin.register(Establishment)
class EstablishmentAdmin(admin.ModelAdmin):
    list_display = ("name", "slug", "partner_commission_percent", "is_active")
    list_filter = ("is_active",)
    search_fields = ("name", "slug", "contact_email")
