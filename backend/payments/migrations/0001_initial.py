from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="ProcessorEvent",
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
                ("event_id", models.CharField(max_length=255, unique=True)),
                (
                    "event_type",
                    models.CharField(
                        choices=[
                            ("checkout_completed", "Checkout completed"),
                            ("payment_failed", "Payment failed"),
                            ("transfer_failed", "Transfer failed"),
                            ("account_updated", "Account updated"),
                            ("payout_paid", "Payout paid"),
                            ("payout_failed", "Payout failed"),
                            ("charge_refunded", "Charge refunded"),
                        ],
                        max_length=32,
                    ),
                ),
                ("stripe_type", models.CharField(max_length=100)),
                ("payload", models.JSONField(default=dict)),
                ("received_at", models.DateTimeField(auto_now_add=True)),
                ("claimed_at", models.DateTimeField(blank=True, null=True)),
                ("attempts", models.PositiveIntegerField(default=0)),
                ("processed", models.BooleanField(default=False)),
                ("processed_at", models.DateTimeField(blank=True, null=True)),
                ("processing_error", models.TextField(blank=True)),
            ],
            options={
                "ordering": ["-received_at"],
                "indexes": [
                    models.Index(fields=["event_type", "processed"], name="payments_event_type_idx"),
                ],
            },
        ),
    ]
