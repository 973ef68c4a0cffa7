"""
Customer order totals
"""
import logging
from decimal import Decimal
from django.db.models import Count, Q, Sum

logger = logging.getLogger(__name__)

# Orders in these payment states do not count towards amount spent
NON_SPENDING_PAYMENT_STATUSES = ('refunded', 'failed')


def calculate_customer_totals(customer):
    """Return (order count, amount spent) for a customer from their orders"""
    totals = customer.orders.aggregate(
        order_count=Count('id'),
        spent=Sum('total', filter=~Q(payment_status__in=NON_SPENDING_PAYMENT_STATUSES)),
    )
    return totals['order_count'] or 0, totals['spent'] or Decimal('0.00')


def refresh_customer_totals(customer):
    """Recompute and store total_orders / total_spent; returns True when they changed"""
    total_orders, total_spent = calculate_customer_totals(customer)
    if customer.total_orders == total_orders and customer.total_spent == total_spent:
        return False
    customer.total_orders = total_orders
    customer.total_spent = total_spent
    customer.save(update_fields=['total_orders', 'total_spent', 'updated_at'])
    logger.debug(f"Customer {customer.id} totals: {total_orders} orders, {total_spent} spent")
    return True
