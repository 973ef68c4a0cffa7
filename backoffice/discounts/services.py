"""
Discount code validation, amount calculation and redemption
"""
import logging
from decimal import Decimal, ROUND_HALF_UP
from django.db.models import F, Q
from django.utils import timezone
from .models import Discount

logger = logging.getLogger(__name__)

CENT = Decimal('0.01')


class DiscountError(Exception):
    """A discount code cannot be applied"""


def to_money(value):
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def compute_discount_amount(discount, order_total):
    """
    Amount taken off `order_total`.

    Percentage discounts are capped by max_discount_amount when one is set;
    fixed amounts never exceed the order total.
    """
    order_total = to_money(order_total)
    if discount.discount_type == 'percentage':
        amount = order_total * discount.discount_value / Decimal('100')
        if discount.max_discount_amount and amount > discount.max_discount_amount:
            amount = discount.max_discount_amount
    else:
        amount = discount.discount_value
        if amount > order_total:
            amount = order_total
    return to_money(amount)


def eligible_subtotal(discount, items):
    """
    Part of an order the discount applies to.

    `items` yields (product, line_total) pairs; product may be None for
    custom line items, which only "all" discounts cover.
    """
    items = list(items)
    if discount.applies_to == 'all':
        return sum((to_money(total) for _, total in items), Decimal('0.00'))

    if discount.applies_to == 'products':
        product_ids = set(discount.products.values_list('id', flat=True))
        return sum((to_money(total) for product, total in items
                    if product is not None and product.id in product_ids), Decimal('0.00'))

    collection_ids = set(discount.collections.values_list('id', flat=True))
    return sum((to_money(total) for product, total in items
                if product is not None and product.collection_id in collection_ids), Decimal('0.00'))


def validate_discount(code, order_total, now=None):
    """
    Look up an active discount code and check it against an order total.

    Returns the Discount. Raises DiscountError with a customer-facing
    message when the code is unknown, inactive, below its minimum,
    used up, expired or not yet started.
    """
    now = now or timezone.now()
    discount = Discount.objects.filter(code=(code or '').strip().upper(), is_active=True).first()
    if discount is None:
        raise DiscountError('Invalid or inactive coupon code')

    if to_money(order_total) < discount.min_purchase_amount:
        raise DiscountError(f'Minimum order amount of ${discount.min_purchase_amount} required')

    if discount.usage_limit and discount.usage_count >= discount.usage_limit:
        raise DiscountError('Coupon usage limit exceeded')

    if discount.expires_at and discount.expires_at < now:
        raise DiscountError('This coupon has expired')

    if discount.starts_at and discount.starts_at > now:
        raise DiscountError('This coupon is not yet active')

    return discount


def redeem_discount(discount):
    """Count one use of the discount; raises DiscountError when the limit was reached meanwhile"""
    updated = Discount.objects.filter(pk=discount.pk).filter(
        Q(usage_limit__isnull=True) | Q(usage_limit=0) | Q(usage_count__lt=F('usage_limit'))
    ).update(usage_count=F('usage_count') + 1)
    if not updated:
        raise DiscountError('Coupon usage limit exceeded')
    discount.refresh_from_db(fields=['usage_count'])
    logger.info(f"Discount {discount.code} redeemed ({discount.usage_count} uses)")
    return discount


def filter_by_status(queryset, status_name, now=None):
    """Narrow a Discount queryset to active, inactive, scheduled or expired codes"""
    now = now or timezone.now()
    if status_name == 'inactive':
        return queryset.filter(is_active=False)
    if status_name == 'expired':
        return queryset.filter(is_active=True, expires_at__lt=now)
    if status_name == 'scheduled':
        return queryset.filter(is_active=True, starts_at__gt=now).exclude(expires_at__lt=now)
    if status_name == 'active':
        return queryset.filter(is_active=True).filter(
            Q(starts_at__isnull=True) | Q(starts_at__lte=now)
        ).filter(
            Q(expires_at__isnull=True) | Q(expires_at__gte=now)
        )
    return queryset
