from django.contrib import admin
from django.urls import path
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

from commissions.api import (
    CommissionReportView,
    CommissionStatsView,
    InvoiceListView,
    InvoiceStatusView,
    PaymentLinkView,
    PayoutView,
    ProviderSummaryView,
)
from payments.api import CheckoutSessionView, PaymentWebhookView
from referrals.api import CurrentAttributionView, TrackVisitView

urlpatterns = [
    path("admin/", admin.site.urls),
    path("api/auth/login/", TokenObtainPairView.as_view(), name="auth-login"),
    path("api/auth/refresh/", TokenRefreshView.as_view(), name="auth-refresh"),
    path("api/checkout/session/", CheckoutSessionView.as_view(), name="checkout-session"),
    path("api/webhooks/payment/", PaymentWebhookView.as_view(), name="payment-webhook"),
    path("api/referrals/visits/", TrackVisitView.as_view(), name="referral-visit"),
    path(
        "api/referrals/attribution/",
        CurrentAttributionView.as_view(),
        name="referral-attribution",
    ),
    path(
        "api/admin/commission/invoices/",
        InvoiceListView.as_view(),
        name="commission-invoices",
    ),
    path(
        "api/admin/commission/invoice-status/",
        InvoiceStatusView.as_view(),
        name="commission-invoice-status",
    ),
    path(
        "api/admin/commission/payment-link/",
        PaymentLinkView.as_view(),
        name="commission-payment-link",
    ),
    path(
        "api/admin/commission/payout/",
        PayoutView.as_view(),
        name="commission-payout",
    ),
    path(
        "api/admin/commission/stats/",
        CommissionStatsView.as_view(),
        name="commission-stats",
    ),
    path(
        "api/admin/commission/providers/",
        ProviderSummaryView.as_view(),
        name="commission-providers",
    ),
    path(
        "api/admin/commission/report/",
        CommissionReportView.as_view(),
        name="commission-report",
    ),
]
