from django.contrib import admin

from .models import Activity


@admin.register(Activity)
class ActivityAdmin(admin.ModelAdmin):
    list_display = ("title", "provider", "price_per_participant", "currency", "is_active")
    list_filter = ("is_active", "currency")
    search_fields = ("title", "provider__name")
