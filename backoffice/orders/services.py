"""
Order workflows: numbering, creation, status changes, fulfillment and discounts
"""
import logging
import re
from decimal import Decimal
from django.conf import settings
from django.core.mail import send_mail
from django.db import IntegrityError, transaction
from backoffice.customers.services import refresh_customer_totals
from backoffice.discounts.services import (
    DiscountError, validate_discount, eligible_subtotal, compute_discount_amount, redeem_discount, to_money
)
from backoffice.notifications.services import notify_staff
from .models import Order, OrderItem, ShippingAddress, BillingAddress, OrderHistory

logger = logging.getLogger('backoffice.orders')

ZERO = Decimal('0.00')

ORDER_NUMBER_PREFIX = 'ORD-'
ORDER_NUMBER_DIGITS = 6
# "ORD-000123" and legacy "#123" both carry a sequence number
ORDER_NUMBER_RE = re.compile(r'^(?:ORD-|#)(\d+)$')

FULFILLED_STATUSES = ('fulfilled', 'shipped', 'delivered')
NUMBERING_ATTEMPTS = 5


class OrderError(Exception):
    """An order operation was rejected"""


class FulfillmentError(OrderError):
    """Fulfillment input is incomplete or the order cannot be fulfilled"""


def format_order_number(sequence):
    return f"{ORDER_NUMBER_PREFIX}{sequence:0{ORDER_NUMBER_DIGITS}d}"


def parse_order_number(order_number):
    """Sequence number of a well-formed order number, else None"""
    match = ORDER_NUMBER_RE.match((order_number or '').strip())
    return int(match.group(1)) if match else None


def next_order_number():
    """One past the highest sequence among existing ORD-/# order numbers"""
    highest = 0
    for order_number in Order.objects.values_list('order_number', flat=True).iterator():
        sequence = parse_order_number(order_number)
        if sequence is not None and sequence > highest:
            highest = sequence
    return format_order_number(highest + 1)


def calculate_total(subtotal, tax, shipping, discount):
    """subtotal + tax + shipping - discount, never below zero"""
    total = to_money(subtotal) + to_money(tax) + to_money(shipping) - to_money(discount)
    return total if total > ZERO else ZERO


def record_history(order, status_from, status_to, notes='', user=None):
    return OrderHistory.objects.create(
        order=order,
        status_from=status_from or '',
        status_to=status_to,
        notes=notes or '',
        created_by=user if user is not None and user.is_authenticated else None,
    )


def _apply_discount_code(code, subtotal, line_items):
    """Validate a code against the order and redeem it; returns (discount, amount)"""
    discount = validate_discount(code, subtotal)
    eligible = eligible_subtotal(discount, line_items)
    if eligible <= ZERO:
        raise DiscountError('This coupon does not apply to any items in this order')
    amount = compute_discount_amount(discount, eligible)
    redeem_discount(discount)
    return discount, amount


def _save_with_order_number(order):
    for attempt in range(NUMBERING_ATTEMPTS):
        order.order_number = next_order_number()
        try:
            with transaction.atomic():
                order.save()
            return order
        except IntegrityError:
            # Another order took the number first
            logger.warning(f"Order number {order.order_number} taken, retrying ({attempt + 1})")
    raise OrderError('Could not allocate an order number')


def create_order(data, user=None):
    """
    Create an order with its items, addresses and first history row.

    `data` is OrderCreateSerializer.validated_data. Item totals are
    price * quantity; the order total is subtotal + tax + shipping -
    discount (floored at zero). A discount_code overrides any explicit
    discount amount and is redeemed.
    """
    customer = data.get('customer')
    items = data['items']

    with transaction.atomic():
        line_items = []
        subtotal = ZERO
        for item in items:
            product = item.get('product')
            price = to_money(item['price'] if item.get('price') is not None else product.price)
            line_total = price * item['quantity']
            subtotal += line_total
            line_items.append((product, item, price, line_total))

        discount_amount = to_money(data.get('discount') or ZERO)
        discount_code = ''
        if data.get('discount_code'):
            discount, discount_amount = _apply_discount_code(
                data['discount_code'], subtotal, [(product, total) for product, _, _, total in line_items]
            )
            discount_code = discount.code

        tax = to_money(data.get('tax') or ZERO)
        shipping = to_money(data.get('shipping') or ZERO)
        payment_status = data.get('payment_status') or 'pending'

        order = Order(
            customer=customer,
            customer_name=data.get('customer_name') or (customer.full_name if customer else ''),
            customer_email=data.get('customer_email') or (customer.email if customer else ''),
            payment_status=payment_status,
            fulfillment_status=data.get('fulfillment_status') or 'unfulfilled',
            subtotal=subtotal,
            tax=tax,
            shipping=shipping,
            discount=discount_amount,
            total=calculate_total(subtotal, tax, shipping, discount_amount),
            discount_code=discount_code,
            notes=data.get('notes', ''),
            created_by=user if user is not None and user.is_authenticated else None,
        )
        _save_with_order_number(order)

        OrderItem.objects.bulk_create([
            OrderItem(
                order=order,
                product=product,
                product_name=item.get('product_name') or (product.title if product else ''),
                quantity=item['quantity'],
                price=price,
                total=line_total,
                options=item.get('options') or {},
            )
            for product, item, price, line_total in line_items
        ])

        if data.get('shipping_address'):
            ShippingAddress.objects.create(order=order, **data['shipping_address'])
        if data.get('billing_address'):
            BillingAddress.objects.create(order=order, **data['billing_address'])

        record_history(order, '', payment_status, 'Order created', user)

        if customer is not None:
            refresh_customer_totals(customer)

    logger.info(f"Order {order.order_number} created: {len(line_items)} items, total {order.total}")
    notify_staff(
        title=f"New order {order.order_number}",
        message=f"{order.customer_name or 'Guest'} placed an order for ${order.total:.2f}",
        type='info',
    )
    return order


def update_order_status(order, payment_status=None, fulfillment_status=None, notes='', user=None):
    """
    Change payment and/or fulfillment status.

    Writes one history row per status that actually changes and returns
    those rows (empty when nothing changed).
    """
    valid_payment = dict(Order.PAYMENT_STATUS_CHOICES)
    valid_fulfillment = dict(Order.FULFILLMENT_STATUS_CHOICES)
    if payment_status and payment_status not in valid_payment:
        raise OrderError(f"Invalid payment status: {payment_status}")
    if fulfillment_status and fulfillment_status not in valid_fulfillment:
        raise OrderError(f"Invalid fulfillment status: {fulfillment_status}")

    history = []
    with transaction.atomic():
        if payment_status and payment_status != order.payment_status:
            history.append(record_history(order, order.payment_status, payment_status, notes, user))
            order.payment_status = payment_status
        if fulfillment_status and fulfillment_status != order.fulfillment_status:
            history.append(record_history(order, order.fulfillment_status, fulfillment_status, notes, user))
            order.fulfillment_status = fulfillment_status
        if history:
            order.save(update_fields=['payment_status', 'fulfillment_status', 'updated_at'])
            if order.customer_id:
                refresh_customer_totals(order.customer)

    if history:
        logger.info(f"Order {order.order_number} status: payment={order.payment_status}, "
                    f"fulfillment={order.fulfillment_status}")
    return history


def mark_paid(order, user=None):
    if order.payment_status == 'paid':
        raise OrderError('Order is already paid')
    return update_order_status(order, payment_status='paid', notes='Marked as paid', user=user)


def clean_tracking_info(tracking_info):
    """
    Validate shipment tracking entries; each needs a tracking number and a
    carrier. Returns the entries trimmed to those two fields.
    """
    if not isinstance(tracking_info, list) or not tracking_info:
        raise FulfillmentError('At least one tracking entry is required')

    cleaned = []
    for index, entry in enumerate(tracking_info, start=1):
        if not isinstance(entry, dict):
            raise FulfillmentError(f'Tracking entry {index} is malformed')
        tracking_number = str(entry.get('tracking_number') or '').strip()
        carrier = str(entry.get('carrier') or '').strip()
        if not tracking_number or not carrier:
            raise FulfillmentError(f'Tracking number and carrier are required for shipment {index}')
        cleaned.append({'tracking_number': tracking_number, 'carrier': carrier})
    return cleaned


def send_fulfillment_email(order):
    """Email the customer their tracking numbers; returns True when sent"""
    if not order.customer_email:
        return False
    lines = [f"{entry['carrier']}: {entry['tracking_number']}" for entry in order.tracking_info]
    body = (
        f"Hi {order.customer_name or 'there'},\n\n"
        f"Your order {order.order_number} has shipped.\n\n"
        "Tracking:\n" + "\n".join(lines) + "\n\nThank you for your order!"
    )
    try:
        send_mail(
            subject=f"Your order {order.order_number} has shipped",
            message=body,
            from_email=settings.DEFAULT_FROM_EMAIL,
            recipient_list=[order.customer_email],
        )
    except Exception as e:
        # The fulfillment itself is already saved
        logger.error(f"Failed to send fulfillment email for {order.order_number}: {str(e)}")
        return False
    return True


def fulfill_order(order, tracking_info, notify_customer=False, user=None):
    """Mark an order fulfilled with its shipment tracking; returns (order, email_sent)"""
    if order.fulfillment_status in FULFILLED_STATUSES:
        raise FulfillmentError(f'Order is already {order.fulfillment_status}')

    entries = clean_tracking_info(tracking_info)
    with transaction.atomic():
        record_history(order, order.fulfillment_status, 'fulfilled',
                       f"Fulfilled with {len(entries)} shipment(s)", user)
        order.tracking_info = entries
        order.fulfillment_status = 'fulfilled'
        order.save(update_fields=['tracking_info', 'fulfillment_status', 'updated_at'])

    email_sent = send_fulfillment_email(order) if notify_customer else False
    logger.info(f"Order {order.order_number} fulfilled (email sent: {email_sent})")
    return order, email_sent


def apply_discount(order, code, user=None):
    """Apply a discount code to an existing order and recompute its total"""
    if order.discount_code:
        raise DiscountError(f'Discount {order.discount_code} is already applied to this order')

    line_items = [(item.product, item.total) for item in order.items.select_related('product')]
    with transaction.atomic():
        discount, amount = _apply_discount_code(code, order.subtotal, line_items)
        order.discount = amount
        order.discount_code = discount.code
        order.total = calculate_total(order.subtotal, order.tax, order.shipping, amount)
        order.save(update_fields=['discount', 'discount_code', 'total', 'updated_at'])
        record_history(order, order.payment_status, order.payment_status,
                       f"Discount {discount.code} applied (-${amount:.2f})", user)
        if order.customer_id:
            refresh_customer_totals(order.customer)
    return order
