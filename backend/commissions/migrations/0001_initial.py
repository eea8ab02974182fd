import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ("bookings", "0001_initial"),
        ("partners", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="CommissionInvoice",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                (
                    "payer_role",
                    models.CharField(
                        choices=[("platform", "Platform"), ("provider", "Provider")],
                        default="provider",
                        max_length=10,
                    ),
                ),
                (
                    "payee_role",
                    models.CharField(
                        choices=[("platform", "Platform"), ("partner", "Partner")],
                        default="platform",
                        max_length=10,
                    ),
                ),
                ("total_booking_amount", models.DecimalField(decimal_places=2, max_digits=12)),
                ("commission_percent", models.DecimalField(decimal_places=2, max_digits=5)),
                ("platform_commission_amount", models.DecimalField(decimal_places=2, max_digits=12)),
                (
                    "partner_commission_percent",
                    models.DecimalField(blank=True, decimal_places=2, max_digits=5, null=True),
                ),
                (
                    "partner_commission_amount",
                    models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True),
                ),
                ("currency", models.CharField(default="thb", max_length=10)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("paid", "Paid"),
                            ("overdue", "Overdue"),
                            ("cancelled", "Cancelled"),
                        ],
                        default="pending",
                        max_length=10,
                    ),
                ),
                ("due_date", models.DateField(blank=True, null=True)),
                ("needs_review", models.BooleanField(default=False)),
                ("review_note", models.TextField(blank=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("paid_at", models.DateTimeField(blank=True, null=True)),
                ("cancelled_at", models.DateTimeField(blank=True, null=True)),
                (
                    "booking",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="commission_invoice",
                        to="bookings.booking",
                    ),
                ),
                (
                    "establishment",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="commission_invoices",
                        to="partners.establishment",
                    ),
                ),
                (
                    "provider",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="commission_invoices",
                        to="partners.activityprovider",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at", "id"],
                "indexes": [
                    models.Index(fields=["status", "due_date"], name="commissions_status_due_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="CommissionPayment",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                ("amount", models.DecimalField(decimal_places=2, max_digits=12)),
                (
                    "method",
                    models.CharField(
                        choices=[
                            ("manual", "Manual"),
                            ("bank_transfer", "Bank transfer"),
                            ("promptpay", "PromptPay"),
                            ("check", "Check"),
                            ("stripe_payout", "Stripe payout"),
                        ],
                        default="manual",
                        max_length=20,
                    ),
                ),
                ("reference", models.CharField(blank=True, max_length=255)),
                ("stripe_payout_id", models.CharField(blank=True, max_length=255)),
                ("paid_at", models.DateTimeField()),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "created_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="commission_payments",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "invoice",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="payment",
                        to="commissions.commissioninvoice",
                    ),
                ),
            ],
            options={
                "ordering": ["-paid_at"],
            },
        ),
        migrations.CreateModel(
            name="PayoutRecord",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                ("payout_reference", models.CharField(max_length=255, unique=True)),
                ("payout_amount", models.DecimalField(decimal_places=2, max_digits=12)),
                ("expected_amount", models.DecimalField(decimal_places=2, max_digits=12)),
                ("is_reconciled", models.BooleanField(default=False)),
                ("payout_date", models.DateField()),
                (
                    "payout_method",
                    models.CharField(
                        choices=[
                            ("bank_transfer", "Bank transfer"),
                            ("promptpay", "PromptPay"),
                            ("check", "Check"),
                        ],
                        max_length=20,
                    ),
                ),
                (
                    "status",
                    models.CharField(choices=[("paid", "Paid")], default="paid", max_length=10),
                ),
                ("processed_at", models.DateTimeField(auto_now_add=True)),
                ("notes", models.TextField(blank=True)),
                (
                    "bookings",
                    models.ManyToManyField(related_name="payout_records", to="bookings.booking"),
                ),
                (
                    "establishment",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="payouts",
                        to="partners.establishment",
                    ),
                ),
                (
                    "recorded_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="recorded_payouts",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "db_table": "commission_payouts",
                "ordering": ["-processed_at"],
            },
        ),
    ]
