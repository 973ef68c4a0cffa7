from collections import Counter
from django.core.management.base import BaseCommand
from backoffice.orders.models import Order
from backoffice.orders.services import parse_order_number, next_order_number


class Command(BaseCommand):
    help = 'Report order numbers that do not follow the ORD-000000 / #000 format'

    def handle(self, *args, **options):
        numbers = list(Order.objects.order_by('created_at').values_list('id', 'order_number'))
        self.stdout.write(f"Checking {len(numbers)} orders...")

        malformed = [(pk, number) for pk, number in numbers if parse_order_number(number) is None]
        sequences = Counter(parse_order_number(number) for _, number in numbers)
        duplicates = sorted(seq for seq, count in sequences.items() if seq is not None and count > 1)

        for pk, number in malformed:
            self.stdout.write(self.style.WARNING(f"  - Order {pk}: malformed number '{number}'"))
        for seq in duplicates:
            self.stdout.write(self.style.WARNING(f"  - Sequence {seq} is used by more than one order"))

        self.stdout.write(f"Next order number: {next_order_number()}")
        if malformed or duplicates:
            self.stdout.write(self.style.ERROR(
                f"\n{len(malformed)} malformed, {len(duplicates)} duplicated sequences. "
                "Run renumber_orders to repair."
            ))
        else:
            self.stdout.write(self.style.SUCCESS("\nAll order numbers are well formed."))
