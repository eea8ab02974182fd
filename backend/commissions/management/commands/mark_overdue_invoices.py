from django.core.management.base import BaseCommand

from commissions.services.invoices import mark_overdue_invoices


class Command(BaseCommand):
    help = "Move pending commission invoices past their due date to overdue."

    def handle(self, *args, **options):
        count = mark_overdue_invoices()
        self.stdout.write(self.style.SUCCESS(f"{count} invoice(s) marked overdue."))
