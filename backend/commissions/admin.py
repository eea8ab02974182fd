from django.contrib import admin

from .models import CommissionInvoice, CommissionPayment, PayoutRecord


class CommissionPaymentInline(admin.StackedInline):
    model = CommissionPayment
    extra = 0
    can_delete = False
    readonly_fields = (
        "amount",
        "method",
        "reference",
        "stripe_payout_id",
        "stripe_payment_intent_id",
        "paid_at",
        "created_by",
    )


@admin.register(CommissionInvoice)
class CommissionInvoiceAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "booking",
        "provider",
        "establishment",
        "platform_commission_amount",
        "partner_commission_amount",
        "status",
        "due_date",
        "needs_review",
    )
    list_filter = ("status", "needs_review", "provider", "establishment")
    search_fields = ("booking__checkout_session_id", "provider__name", "establishment__name")
    readonly_fields = (
        "booking",
        "total_booking_amount",
        "commission_percent",
        "platform_commission_amount",
        "partner_commission_percent",
        "partner_commission_amount",
        "created_at",
        "updated_at",
        "paid_at",
        "cancelled_at",
        "payment_link_id",
        "payment_link_url",
    )
    inlines = [CommissionPaymentInline]


@admin.register(PayoutRecord)
class PayoutRecordAdmin(admin.ModelAdmin):
    list_display = (
        "payout_reference",
        "establishment",
        "payout_amount",
        "expected_amount",
        "is_reconciled",
        "payout_date",
        "payout_method",
    )
    list_filter = ("is_reconciled", "payout_method", "establishment")
    search_fields = ("payout_reference", "establishment__name")

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
