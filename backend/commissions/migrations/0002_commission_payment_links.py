from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ("commissions", "0001_initial"),
    ]

    operations = [
        migrations.AddField(
            model_name="commissioninvoice",
            name="payment_link_id",
            field=models.CharField(blank=True, max_length=255),
        ),
        migrations.AddField(
            model_name="commissioninvoice",
            name="payment_link_url",
            field=models.URLField(blank=True, max_length=500),
        ),
        migrations.AddField(
            model_name="commissionpayment",
            name="stripe_payment_intent_id",
            field=models.CharField(blank=True, max_length=255),
        ),
        migrations.AlterField(
            model_name="commissionpayment",
            name="method",
            field=models.CharField(
                choices=[
                    ("manual", "Manual"),
                    ("bank_transfer", "Bank transfer"),
                    ("promptpay", "PromptPay"),
                    ("check", "Check"),
                    ("stripe_payout", "Stripe payout"),
                    ("stripe_payment_link", "Stripe payment link"),
                ],
                default="manual",
                max_length=20,
            ),
        ),
    ]
