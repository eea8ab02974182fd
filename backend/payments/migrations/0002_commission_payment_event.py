from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ("payments", "0001_initial"),
    ]

    operations = [
        migrations.AlterField(
            model_name="processorevent",
            name="event_type",
            field=models.CharField(
                choices=[
                    ("checkout_completed", "Checkout completed"),
                    ("payment_failed", "Payment failed"),
                    ("transfer_failed", "Transfer failed"),
                    ("account_updated", "Account updated"),
                    ("payout_paid", "Payout paid"),
                    ("payout_failed", "Payout failed"),
                    ("charge_refunded", "Charge refunded"),
                    ("commission_payment_succeeded", "Commission payment succeeded"),
                ],
                max_length=32,
            ),
        ),
    ]
