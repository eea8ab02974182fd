from decimal import Decimal

from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError
from django.db import transaction

from activities.models import Activity
from partners.models import ActivityProvider, Establishment

SUPERUSER_USERNAME = "admin"
SUPERUSER_EMAIL = "admin@marketplace.test"
SUPERUSER_PASSWORD = "AdminMarketplace123!"


class Command(BaseCommand):
    help = "Populate the local development database with sample providers, partners and activities."

    def handle(self, *args, **options):
        if not settings.DEBUG:
            raise CommandError("Refusing to seed data while DEBUG is False.")

        with transaction.atomic():
            self.stdout.write(self.style.MIGRATE_HEADING("Creating activity providers"))
            dive = self._ensure_provider(
                name="Andaman Dive Center",
                email="hello@andamandive.test",
                stripe_account_id="acct_test_andaman",
            )
            cooking = self._ensure_provider(
                name="Old Town Cooking School",
                email="info@oldtowncooking.test",
                stripe_account_id="",
            )

            self.stdout.write(self.style.MIGRATE_HEADING("Creating partner establishments"))
            self._ensure_establishment(slug="sea-breeze-hotel", name="Sea Breeze Hotel", percent=None)
            self._ensure_establishment(slug="riverside-hostel", name="Riverside Hostel", percent=Decimal("12.50"))

            self.stdout.write(self.style.MIGRATE_HEADING("Creating activities"))
            self._ensure_activity(dive, "Two-Tank Reef Dive", Decimal("3500.00"))
            self._ensure_activity(dive, "Snorkel Island Hop", Decimal("1800.00"))
            self._ensure_activity(cooking, "Thai Street Food Class", Decimal("1200.00"))

            self.stdout.write(self.style.MIGRATE_HEADING("Ensuring admin superuser"))
            self._ensure_superuser()

        self.stdout.write(self.style.SUCCESS("Development seed data created."))
        self.stdout.write(
            self.style.NOTICE(f"Admin superuser {SUPERUSER_USERNAME} password: {SUPERUSER_PASSWORD}")
        )

    def _ensure_provider(self, name: str, email: str, stripe_account_id: str) -> ActivityProvider:
        provider, created = ActivityProvider.objects.get_or_create(
            name=name,
            defaults={
                "contact_email": email,
                "stripe_account_id": stripe_account_id,
                "charges_enabled": bool(stripe_account_id),
                "payouts_enabled": bool(stripe_account_id),
            },
        )
        if created:
            self.stdout.write(self.style.NOTICE(f"Added provider {name}"))
        return provider

    def _ensure_establishment(self, slug: str, name: str, percent) -> Establishment:
        establishment, _ = Establishment.objects.update_or_create(
            slug=slug,
            defaults={"name": name, "partner_commission_percent": percent, "is_active": True},
        )
        return establishment

    def _ensure_activity(self, provider: ActivityProvider, title: str, price: Decimal) -> Activity:
        activity, _ = Activity.objects.update_or_create(
            provider=provider,
            title=title,
            defaults={
                "price_per_participant": price,
                "currency": settings.PAYMENT_CURRENCY,
                "is_active": True,
            },
        )
        return activity

    def _ensure_superuser(self):
        User = get_user_model()
        user, created = User.objects.get_or_create(
            username=SUPERUSER_USERNAME,
            defaults={"email": SUPERUSER_EMAIL, "is_staff": True, "is_superuser": True},
        )
        flag_updates = {}
        if not user.is_staff:
            flag_updates["is_staff"] = True
        if not user.is_superuser:
            flag_updates["is_superuser"] = True
        if flag_updates:
            for attr, value in flag_updates.items():
                setattr(user, attr, value)
            user.save(update_fields=list(flag_updates.keys()))
        if created or not user.has_usable_password():
            user.set_password(SUPERUSER_PASSWORD)
            user.save(update_fields=["password"])
        return user
