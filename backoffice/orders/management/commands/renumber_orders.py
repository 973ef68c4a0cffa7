from django.core.management.base import BaseCommand
from django.db import transaction
from backoffice.orders.models import Order
from backoffice.orders.services import parse_order_number, format_order_number


class Command(BaseCommand):
    help = 'Give orders with malformed or duplicated numbers a fresh ORD- number'

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Show the new numbers without saving changes',
        )

    def handle(self, *args, **options):
        dry_run = options['dry_run']
        if dry_run:
            self.stdout.write(self.style.WARNING("DRY RUN MODE: No changes will be saved."))

        orders = list(Order.objects.order_by('created_at', 'id').only('id', 'order_number', 'created_at'))
        seen = set()
        to_renumber = []
        for order in orders:
            sequence = parse_order_number(order.order_number)
            if sequence is None or sequence in seen:
                to_renumber.append(order)
            else:
                seen.add(sequence)

        if not to_renumber:
            self.stdout.write(self.style.SUCCESS("No orders need renumbering."))
            return

        next_sequence = max(seen, default=0) + 1
        with transaction.atomic():
            for order in to_renumber:
                new_number = format_order_number(next_sequence)
                next_sequence += 1
                self.stdout.write(self.style.NOTICE(
                    f"  - Order {order.id}: '{order.order_number}' -> '{new_number}'"
                ))
                if not dry_run:
                    order.order_number = new_number
                    order.save(update_fields=['order_number'])

        if dry_run:
            self.stdout.write(self.style.WARNING(f"\nDry run complete. {len(to_renumber)} orders would be renumbered."))
        else:
            self.stdout.write(self.style.SUCCESS(f"\nRenumbered {len(to_renumber)} orders."))
