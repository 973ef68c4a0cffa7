from django.core.management.base import BaseCommand
from django.db import transaction
from backoffice.customers.models import Customer
from backoffice.customers.services import calculate_customer_totals


class Command(BaseCommand):
    help = 'Recompute customer order counts and amount spent from their orders'

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Report differences without saving changes',
        )

    def handle(self, *args, **options):
        dry_run = options['dry_run']
        if dry_run:
            self.stdout.write(self.style.WARNING("DRY RUN MODE: No changes will be saved."))

        customers = Customer.objects.all().order_by('id')
        self.stdout.write(f"Checking totals for {customers.count()} customers...")
        updated = 0

        with transaction.atomic():
            for customer in customers:
                total_orders, total_spent = calculate_customer_totals(customer)
                if customer.total_orders == total_orders and customer.total_spent == total_spent:
                    continue
                updated += 1
                self.stdout.write(self.style.NOTICE(
                    f"  - {customer.full_name} (ID: {customer.id}): "
                    f"orders {customer.total_orders} -> {total_orders}, "
                    f"spent {customer.total_spent} -> {total_spent}"
                ))
                if not dry_run:
                    customer.total_orders = total_orders
                    customer.total_spent = total_spent
                    customer.save(update_fields=['total_orders', 'total_spent', 'updated_at'])

        if dry_run:
            self.stdout.write(self.style.WARNING(f"\nDry run complete. {updated} customers would change."))
        else:
            self.stdout.write(self.style.SUCCESS(f"\nUpdated totals for {updated} customers."))
