import logging
from datetime import timedelta
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from rest_framework import serializers
from django.db.models import Q, Sum
from django.utils import timezone

from backoffice.catalog.models import Product
from backoffice.orders.models import Order, OrderItem
from backoffice.orders.serializers import OrderListSerializer
from backoffice.core.cache_utils import cached_query, DASHBOARD_CACHE_TTL, FINANCE_CACHE_TTL
from backoffice.core.exports import csv_response
from backoffice.core.utils import paginated_response, parse_int
from .analytics import (
    percent_change, sales_trend, period_bounds, summarize_orders, monthly_buckets, daily_buckets, transaction_id
)

logger = logging.getLogger('backoffice.reports')

TOP_PRODUCTS_LIMIT = 4
RECENT_ORDERS_LIMIT = 4
DAILY_SALES_MAX_DAYS = 31
# Ten years; longer periods overflow date arithmetic
MAX_PERIOD_DAYS = 3650
TRANSACTION_EXPORT_HEADERS = ['Transaction ID', 'Date', 'Type', 'Amount', 'Status', 'Customer', 'Order ID']


def parse_period(params, default):
    return min(parse_int(params.get('period'), default), MAX_PERIOD_DAYS)

def orders_between(start, end, include_end=True):
    queryset = Order.objects.filter(created_at__gte=start)
    if include_end:
        return queryset.filter(created_at__lte=end)
    return queryset.filter(created_at__lt=end)


def top_products(limit=TOP_PRODUCTS_LIMIT):
    """Best sellers across all orders, by units sold"""
    rows = OrderItem.objects.values('product_name').annotate(
        sales=Sum('quantity'),
        revenue=Sum('total'),
    ).order_by('-sales', '-revenue', 'product_name')[:limit]
    return [
        {'name': row['product_name'], 'sales': row['sales'], 'revenue': float(row['revenue'] or 0)}
        for row in rows
    ]


@cached_query(cache_ttl=DASHBOARD_CACHE_TTL, key_prefix="dashboard")
def build_dashboard(period_days):
    previous_start, start, end = period_bounds(period_days)
    period_orders = list(orders_between(start, end).only('id', 'total', 'customer_id', 'customer_name', 'created_at'))
    previous_orders = orders_between(previous_start, start, include_end=False).only('total')

    current = summarize_orders(period_orders)
    previous = summarize_orders(previous_orders)
    customers = {order.customer_id or order.customer_name for order in period_orders}

    six_months = Order.objects.filter(created_at__gte=end - timedelta(days=31 * 6)).only('created_at', 'total')
    recent = Order.objects.order_by('-created_at')[:RECENT_ORDERS_LIMIT]

    return {
        'period': period_days,
        'stats': {
            'total_revenue': float(current['revenue']),
            'total_orders': current['count'],
            'total_products': Product.objects.filter(status='active').count(),
            'active_customers': len(customers),
        },
        'sales_trend': sales_trend(current['revenue'], previous['revenue']),
        'recent_orders': OrderListSerializer(recent, many=True).data,
        'top_products': top_products(),
        'sales_chart': [
            {**bucket, 'revenue': float(bucket['revenue'])}
            for bucket in monthly_buckets(six_months, months=6, now=end)
        ],
        'daily_sales': [
            {**bucket, 'revenue': float(bucket['revenue'])}
            for bucket in daily_buckets(period_orders, days=min(period_days, DAILY_SALES_MAX_DAYS), now=end)
        ],
    }


@cached_query(cache_ttl=FINANCE_CACHE_TTL, key_prefix="finance")
def build_finance(period_days):
    previous_start, start, end = period_bounds(period_days)
    current = summarize_orders(orders_between(start, end).only('total'))
    previous = summarize_orders(orders_between(previous_start, start, include_end=False).only('total'))

    return {
        'period': period_days,
        'total_revenue': float(current['revenue']),
        'average_order_value': float(current['average_order_value']),
        'total_transactions': current['count'],
        'revenue_change': round(percent_change(current['revenue'], previous['revenue']), 1),
        'aov_change': round(percent_change(current['average_order_value'], previous['average_order_value']), 1),
        'transactions_change': round(percent_change(current['count'], previous['count']), 1),
    }


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def dashboard(request):
    """Dashboard stats for the last `period` days (default 7)"""
    period_days = parse_period(request.query_params, 7)
    return Response(build_dashboard(period_days))


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def finance_summary(request):
    """Revenue, average order value and transaction count vs the previous period"""
    period_days = parse_period(request.query_params, 30)
    return Response(build_finance(period_days))


class TransactionSerializer(serializers.Serializer):
    """Orders presented as payment transactions"""
    id = serializers.SerializerMethodField()
    created_at = serializers.DateTimeField()
    type = serializers.SerializerMethodField()
    amount = serializers.DecimalField(source='total', max_digits=12, decimal_places=2)
    status = serializers.CharField(source='payment_status')
    customer_name = serializers.SerializerMethodField()
    order_id = serializers.IntegerField(source='pk')
    order_number = serializers.CharField()

    def get_id(self, obj):
        return transaction_id(obj)

    def get_type(self, obj):
        return 'Sale'

    def get_customer_name(self, obj):
        return obj.customer_name or 'Guest'


def transaction_queryset(params):
    period_days = parse_period(params, 30)
    _, start, end = period_bounds(period_days)
    queryset = orders_between(start, end).order_by('-created_at')

    search = (params.get('search') or '').strip()
    if search:
        query = (
            Q(customer_name__icontains=search) |
            Q(order_number__icontains=search) |
            Q(payment_status__icontains=search)
        )
        # "TRX-000123" or a bare number matches the order id
        digits = search.upper().removeprefix('TRX-').lstrip('0')
        if digits.isdigit():
            query |= Q(pk=int(digits))
        if 'guest'.startswith(search.lower()):
            query |= Q(customer_name='')
        queryset = queryset.filter(query)
    return queryset


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def transaction_list(request):
    """Transactions derived from orders in the last `period` days"""
    return paginated_response(request, transaction_queryset(request.query_params), TransactionSerializer)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def transaction_export(request):
    orders = transaction_queryset(request.query_params)
    rows = (
        [
            transaction_id(order), timezone.localtime(order.created_at).strftime('%Y-%m-%d %H:%M'),
            'Sale', order.total, order.payment_status, order.customer_name or 'Guest', order.order_number,
        ]
        for order in orders
    )
    filename = f"transactions-{timezone.localdate().isoformat()}.csv"
    return csv_response(filename, TRANSACTION_EXPORT_HEADERS, rows)
