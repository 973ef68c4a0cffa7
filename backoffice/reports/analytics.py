"""
Order analytics shared by the dashboard, finance and order list screens.

All helpers are single-pass computations over order rows (model instances
or any object with `created_at`, `total`, `payment_status` and
`fulfillment_status`).
"""
from calendar import month_name
from collections import OrderedDict
from datetime import timedelta
from decimal import Decimal
from django.utils import timezone

ZERO = Decimal('0.00')

TIMEFRAMES = ('all', 'today', 'yesterday', 'last7days', 'last30days', 'thisMonth', 'lastMonth')


def percent_change(current, previous):
    """
    Percentage change from `previous` to `current`.

    A zero previous value gives 100 when current is positive, else 0.
    """
    current = float(current or 0)
    previous = float(previous or 0)
    if previous == 0:
        return 100.0 if current > 0 else 0.0
    return (current - previous) / previous * 100


def sales_trend(current, previous):
    change = percent_change(current, previous)
    return {
        'percentage': round(abs(change), 1),
        'trending': 'up' if change >= 0 else 'down',
    }


def period_bounds(days, now=None):
    """(previous_start, start, end) for a trailing window of `days` and the window before it"""
    end = now or timezone.now()
    start = end - timedelta(days=days)
    return start - timedelta(days=days), start, end


def summarize_orders(orders):
    revenue = ZERO
    count = 0
    for order in orders:
        revenue += order.total or ZERO
        count += 1
    return {
        'revenue': revenue,
        'count': count,
        'average_order_value': (revenue / count).quantize(Decimal('0.01')) if count else ZERO,
    }


def _shift_month(year, month, delta):
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def monthly_buckets(orders, months=6, now=None):
    """
    Revenue and order count per calendar month for the last `months`
    months, oldest first. Orders outside the window are ignored.
    """
    now = timezone.localtime(now or timezone.now())
    buckets = OrderedDict()
    for offset in range(months - 1, -1, -1):
        year, month = _shift_month(now.year, now.month, -offset)
        buckets[(year, month)] = {'month': month_name[month], 'year': year, 'revenue': ZERO, 'orders': 0}

    for order in orders:
        created = timezone.localtime(order.created_at)
        bucket = buckets.get((created.year, created.month))
        if bucket is not None:
            bucket['revenue'] += order.total or ZERO
            bucket['orders'] += 1
    return list(buckets.values())


def daily_buckets(orders, days=7, now=None):
    """Revenue and order count per day for the last `days` days, oldest first"""
    today = timezone.localtime(now or timezone.now()).date()
    buckets = OrderedDict()
    for offset in range(days - 1, -1, -1):
        day = today - timedelta(days=offset)
        buckets[day] = {'date': day.isoformat(), 'revenue': ZERO, 'orders': 0}

    for order in orders:
        bucket = buckets.get(timezone.localtime(order.created_at).date())
        if bucket is not None:
            bucket['revenue'] += order.total or ZERO
            bucket['orders'] += 1
    return list(buckets.values())


def timeframe_bounds(timeframe, now=None):
    """
    (start, end) of a named timeframe in local time; end is exclusive.
    Either bound is None when open. Unknown names mean "all".
    """
    now = timezone.localtime(now or timezone.now())
    today = now.replace(hour=0, minute=0, second=0, microsecond=0)

    if timeframe == 'today':
        return today, None
    if timeframe == 'yesterday':
        return today - timedelta(days=1), today
    if timeframe == 'last7days':
        return now - timedelta(days=7), None
    if timeframe == 'last30days':
        return now - timedelta(days=30), None
    if timeframe == 'thisMonth':
        return today.replace(day=1), None
    if timeframe == 'lastMonth':
        first_of_month = today.replace(day=1)
        return (first_of_month - timedelta(days=1)).replace(day=1), first_of_month
    return None, None


def filter_by_timeframe(queryset, timeframe, now=None):
    start, end = timeframe_bounds(timeframe, now)
    if start is not None:
        queryset = queryset.filter(created_at__gte=start)
    if end is not None:
        queryset = queryset.filter(created_at__lt=end)
    return queryset


def compute_order_stats(orders):
    """Counts and amounts for the order list header cards"""
    stats = {
        'total': 0, 'pending': 0, 'processing': 0, 'fulfilled': 0, 'paid': 0,
        'total_amount': ZERO, 'pending_amount': ZERO, 'unfulfilled_amount': ZERO,
        'fulfilled_amount': ZERO, 'paid_amount': ZERO,
    }
    for order in orders:
        total = order.total or ZERO
        stats['total'] += 1
        stats['total_amount'] += total
        if order.payment_status == 'pending':
            stats['pending'] += 1
            stats['pending_amount'] += total
        if order.payment_status == 'paid':
            stats['paid'] += 1
            stats['paid_amount'] += total
        if order.fulfillment_status == 'unfulfilled':
            stats['processing'] += 1
            stats['unfulfilled_amount'] += total
        if order.fulfillment_status == 'fulfilled':
            stats['fulfilled'] += 1
            stats['fulfilled_amount'] += total
    return stats


def transaction_id(order):
    return f"TRX-{order.pk:06d}"
