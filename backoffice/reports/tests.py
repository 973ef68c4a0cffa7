"""
Test suite for the Reports module
Tests: Analytics helpers, dashboard, finance summary, transactions and export
"""
from datetime import datetime, timedelta, timezone as dt_timezone
from decimal import Decimal
from types import SimpleNamespace
from django.core.cache import cache
from django.test import TestCase, SimpleTestCase
from django.utils import timezone
from rest_framework import status
from backoffice.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backoffice.reports.analytics import (
    compute_order_stats, daily_buckets, monthly_buckets, percent_change, sales_trend, summarize_orders, timeframe_bounds
)


def order_row(total, created_at=None, payment_status='pending', fulfillment_status='unfulfilled'):
    return SimpleNamespace(
        total=Decimal(total),
        created_at=created_at or timezone.now(),
        payment_status=payment_status,
        fulfillment_status=fulfillment_status,
    )


class AnalyticsHelperTests(SimpleTestCase):
    """Test the pure analytics helpers"""

    def test_percent_change(self):
        """Test percentage change including a zero baseline"""
        self.assertEqual(percent_change(150, 100), 50.0)
        self.assertEqual(percent_change(50, 100), -50.0)
        self.assertEqual(percent_change(5, 0), 100.0)
        self.assertEqual(percent_change(0, 0), 0.0)

    def test_sales_trend(self):
        """Test trend direction and rounded magnitude"""
        self.assertEqual(sales_trend(50, 100), {'percentage': 50.0, 'trending': 'down'})
        self.assertEqual(sales_trend(Decimal('120'), Decimal('90')), {'percentage': 33.3, 'trending': 'up'})
        self.assertEqual(sales_trend(0, 0), {'percentage': 0.0, 'trending': 'up'})

    def test_summarize_orders(self):
        """Test revenue, count and average order value"""
        summary = summarize_orders([order_row('10.00'), order_row('25.00')])
        self.assertEqual(summary['revenue'], Decimal('35.00'))
        self.assertEqual(summary['count'], 2)
        self.assertEqual(summary['average_order_value'], Decimal('17.50'))
        self.assertEqual(summarize_orders([])['average_order_value'], Decimal('0.00'))

    def test_monthly_buckets(self):
        """Test orders land in their calendar month and old ones are ignored"""
        now = datetime(2024, 3, 15, 12, tzinfo=dt_timezone.utc)
        orders = [
            order_row('5.00', datetime(2024, 2, 10, 12, tzinfo=dt_timezone.utc)),
            order_row('7.00', datetime(2024, 3, 2, 12, tzinfo=dt_timezone.utc)),
            order_row('3.00', datetime(2024, 3, 5, 12, tzinfo=dt_timezone.utc)),
            order_row('99.00', datetime(2023, 11, 10, 12, tzinfo=dt_timezone.utc)),
        ]
        buckets = monthly_buckets(orders, months=3, now=now)
        self.assertEqual([b['month'] for b in buckets], ['January', 'February', 'March'])
        self.assertEqual([b['revenue'] for b in buckets], [Decimal('0.00'), Decimal('5.00'), Decimal('10.00')])
        self.assertEqual([b['orders'] for b in buckets], [0, 1, 2])

    def test_daily_buckets(self):
        """Test one bucket per day, oldest first"""
        now = datetime(2024, 3, 15, 12, tzinfo=dt_timezone.utc)
        orders = [
            order_row('5.00', datetime(2024, 3, 15, 9, tzinfo=dt_timezone.utc)),
            order_row('6.00', datetime(2024, 3, 13, 9, tzinfo=dt_timezone.utc)),
            order_row('7.00', datetime(2024, 3, 1, 9, tzinfo=dt_timezone.utc)),
        ]
        buckets = daily_buckets(orders, days=3, now=now)
        self.assertEqual([b['date'] for b in buckets], ['2024-03-13', '2024-03-14', '2024-03-15'])
        self.assertEqual([b['orders'] for b in buckets], [1, 0, 1])
        self.assertEqual(buckets[2]['revenue'], Decimal('5.00'))

    def test_monthly_buckets_cross_year(self):
        """Test bucket keys include the year"""
        now = datetime(2024, 1, 20, 12, tzinfo=dt_timezone.utc)
        orders = [
            order_row('4.00', datetime(2023, 12, 5, 12, tzinfo=dt_timezone.utc)),
            order_row('8.00', datetime(2023, 1, 5, 12, tzinfo=dt_timezone.utc)),
        ]
        buckets = monthly_buckets(orders, months=3, now=now)
        self.assertEqual([(b['month'], b['year']) for b in buckets],
                         [('November', 2023), ('December', 2023), ('January', 2024)])
        self.assertEqual(buckets[1]['revenue'], Decimal('4.00'))
        self.assertEqual(buckets[2]['revenue'], Decimal('0.00'))

    def test_timeframe_bounds(self):
        """Test named timeframes resolve to local day and month boundaries"""
        now = datetime(2024, 3, 15, 12, tzinfo=dt_timezone.utc)

        start, end = timeframe_bounds('yesterday', now)
        self.assertEqual(end - start, timedelta(days=1))
        self.assertEqual((end.hour, end.minute), (0, 0))

        start, end = timeframe_bounds('today', now)
        self.assertIsNone(end)
        self.assertLessEqual(start, now)

        start, end = timeframe_bounds('lastMonth', now)
        self.assertEqual((start.month, start.day), (2, 1))
        self.assertEqual((end.month, end.day), (3, 1))

        start, _ = timeframe_bounds('last7days', now)
        self.assertEqual(now - start, timedelta(days=7))

        self.assertEqual(timeframe_bounds('all', now), (None, None))
        self.assertEqual(timeframe_bounds('someday', now), (None, None))

    def test_compute_order_stats(self):
        """Test header card counts and amounts"""
        stats = compute_order_stats([
            order_row('10.00'),
            order_row('20.00', payment_status='paid', fulfillment_status='fulfilled'),
            order_row('30.00', payment_status='paid'),
        ])
        self.assertEqual(stats['total'], 3)
        self.assertEqual(stats['pending'], 1)
        self.assertEqual(stats['paid'], 2)
        self.assertEqual(stats['processing'], 2)
        self.assertEqual(stats['fulfilled'], 1)
        self.assertEqual(stats['total_amount'], Decimal('60.00'))
        self.assertEqual(stats['paid_amount'], Decimal('50.00'))
        self.assertEqual(stats['unfulfilled_amount'], Decimal('40.00'))
        self.assertEqual(stats['fulfilled_amount'], Decimal('20.00'))


class DashboardAPITests(TestCase):
    """Test dashboard stats"""

    def setUp(self):
        cache.clear()
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        now = timezone.now()
        self.candle = TestDataFactory.create_product(title='Candle', price=Decimal('20.00'))
        self.soap = TestDataFactory.create_product(title='Soap', price=Decimal('5.00'))
        TestDataFactory.create_product(title='Draft Thing', status='draft')
        ada = TestDataFactory.create_customer(first_name='Ada')
        bob = TestDataFactory.create_customer(first_name='Bob')
        TestDataFactory.create_order(customer=ada, items=[(self.candle, 3)], created_at=now - timedelta(days=1))
        TestDataFactory.create_order(customer=bob, items=[(self.soap, 2)], created_at=now - timedelta(days=2))
        TestDataFactory.create_order(customer=ada, items=[(self.soap, 1)], created_at=now - timedelta(days=3))
        TestDataFactory.create_order(customer=bob, items=[(self.candle, 1)], created_at=now - timedelta(days=10))

    def test_dashboard(self):
        """Test stats, trend, recent orders, top products and chart"""
        response = self.client.get('/api/v1/reports/dashboard/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        data = response.data
        self.assertEqual(data['period'], 7)
        self.assertEqual(data['stats']['total_revenue'], 75.0)
        self.assertEqual(data['stats']['total_orders'], 3)
        self.assertEqual(data['stats']['total_products'], 2)
        self.assertEqual(data['stats']['active_customers'], 2)
        # 75 this week against 20 the week before
        self.assertEqual(data['sales_trend'], {'percentage': 275.0, 'trending': 'up'})
        self.assertEqual(len(data['recent_orders']), 4)
        self.assertEqual(data['top_products'][0], {'name': 'Candle', 'sales': 4, 'revenue': 80.0})
        self.assertEqual(data['top_products'][1]['name'], 'Soap')
        self.assertEqual(len(data['sales_chart']), 6)
        self.assertEqual(len(data['daily_sales']), 7)
        self.assertEqual(sum(day['orders'] for day in data['daily_sales']), 3)

    def test_dashboard_period(self):
        """Test the period parameter widens the window"""
        response = self.client.get('/api/v1/reports/dashboard/', {'period': 30})
        self.assertEqual(response.data['stats']['total_orders'], 4)

    def test_dashboard_huge_period_capped(self):
        """Test an oversized period is capped at ten years instead of overflowing"""
        response = self.client.get('/api/v1/reports/dashboard/', {'period': 10 ** 9})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['period'], 3650)
        self.assertEqual(response.data['stats']['total_orders'], 4)

    def test_dashboard_cache_invalidated_by_new_order(self):
        """Test a new order shows up despite the cached dashboard"""
        self.client.get('/api/v1/reports/dashboard/')
        TestDataFactory.create_order(items=[(self.soap, 1)])
        response = self.client.get('/api/v1/reports/dashboard/')
        self.assertEqual(response.data['stats']['total_orders'], 4)

    def test_requires_authentication(self):
        """Test anonymous access is rejected"""
        self.client.logout()
        response = self.client.get('/api/v1/reports/dashboard/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class FinanceAPITests(TestCase):
    """Test finance summary and transactions"""

    def setUp(self):
        cache.clear()
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        now = timezone.now()
        product = TestDataFactory.create_product(price=Decimal('10.00'))
        customer = TestDataFactory.create_customer(first_name='Ada', last_name='Lovelace')
        self.named = TestDataFactory.create_order(customer=customer, items=[(product, 3)], payment_status='paid',
                                                  created_at=now - timedelta(days=2))
        self.guest = TestDataFactory.create_order(items=[(product, 1)], created_at=now - timedelta(days=5))
        self.old = TestDataFactory.create_order(items=[(product, 1)], created_at=now - timedelta(days=40))

    def test_finance_summary(self):
        """Test totals and changes against the previous period"""
        response = self.client.get('/api/v1/reports/finance/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        data = response.data
        self.assertEqual(data['total_revenue'], 40.0)
        self.assertEqual(data['average_order_value'], 20.0)
        self.assertEqual(data['total_transactions'], 2)
        self.assertEqual(data['revenue_change'], 300.0)
        self.assertEqual(data['aov_change'], 100.0)
        self.assertEqual(data['transactions_change'], 100.0)

    def test_transaction_list(self):
        """Test orders are listed as sale transactions"""
        response = self.client.get('/api/v1/reports/transactions/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 2)
        first = response.data['results'][0]
        self.assertEqual(first['id'], f'TRX-{self.named.pk:06d}')
        self.assertEqual(first['type'], 'Sale')
        self.assertEqual(first['amount'], Decimal('30.00'))
        self.assertEqual(first['status'], 'paid')
        self.assertEqual(first['customer_name'], 'Ada Lovelace')
        self.assertEqual(response.data['results'][1]['customer_name'], 'Guest')

    def test_transaction_search(self):
        """Test search by guest and by transaction id"""
        response = self.client.get('/api/v1/reports/transactions/', {'search': 'guest'})
        self.assertEqual([t['order_id'] for t in response.data['results']], [self.guest.pk])

        response = self.client.get('/api/v1/reports/transactions/', {'search': f'TRX-{self.named.pk:06d}'})
        self.assertEqual([t['order_id'] for t in response.data['results']], [self.named.pk])

    def test_transaction_export(self):
        """Test transactions CSV export"""
        response = self.client.get('/api/v1/reports/transactions/export/', {'period': 90})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('transactions-', response['Content-Disposition'])
        lines = response.content.decode('utf-8').strip().splitlines()
        self.assertEqual(lines[0], 'Transaction ID,Date,Type,Amount,Status,Customer,Order ID')
        self.assertEqual(len(lines), 4)

    def test_huge_period_capped(self):
        """Test finance and transactions cap an oversized period instead of overflowing"""
        response = self.client.get('/api/v1/reports/finance/', {'period': 10 ** 9})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_transactions'], 3)

        response = self.client.get('/api/v1/reports/transactions/', {'period': 10 ** 9})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 3)

        response = self.client.get('/api/v1/reports/transactions/export/', {'period': 10 ** 9})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
