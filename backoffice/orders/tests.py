"""
Test suite for the Orders module
Tests: Numbering, creation, status changes, fulfillment, discounts, list filters, PDFs, export and commands
"""
from datetime import timedelta
from decimal import Decimal
from io import StringIO
from django.core import mail
from django.core.management import call_command
from django.test import TestCase
from django.utils import timezone
from rest_framework import status
from backoffice.core.models import AuditLog
from backoffice.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backoffice.discounts.models import Discount
from backoffice.notifications.models import Notification
from backoffice.orders.models import Order, OrderHistory
from backoffice.orders.services import (
    FulfillmentError, OrderError, calculate_total, clean_tracking_info, next_order_number,
    parse_order_number, update_order_status
)


class OrderNumberTests(TestCase):
    """Test order number parsing and sequencing"""

    def test_parse_order_number(self):
        """Test ORD- and # numbers parse, anything else does not"""
        self.assertEqual(parse_order_number('ORD-000042'), 42)
        self.assertEqual(parse_order_number('#17'), 17)
        self.assertIsNone(parse_order_number('ORD-ABC'))
        self.assertIsNone(parse_order_number(''))
        self.assertIsNone(parse_order_number(None))

    def test_first_order_number(self):
        """Test numbering starts at ORD-000001"""
        self.assertEqual(next_order_number(), 'ORD-000001')

    def test_next_order_number_uses_highest_sequence(self):
        """Test legacy and malformed numbers when picking the next number"""
        order = TestDataFactory.create_order()
        Order.objects.filter(pk=order.pk).update(order_number='ORD-000005')
        legacy = TestDataFactory.create_order()
        Order.objects.filter(pk=legacy.pk).update(order_number='#12')
        broken = TestDataFactory.create_order()
        Order.objects.filter(pk=broken.pk).update(order_number='weird-99')
        self.assertEqual(next_order_number(), 'ORD-000013')

    def test_calculate_total_never_negative(self):
        """Test the total is clamped at zero"""
        self.assertEqual(calculate_total(Decimal('100'), Decimal('8'), Decimal('5'), Decimal('10')), Decimal('103.00'))
        self.assertEqual(calculate_total(Decimal('10'), Decimal('0'), Decimal('0'), Decimal('25')), Decimal('0.00'))


class OrderServiceTests(TestCase):
    """Test status and tracking rules"""

    def setUp(self):
        self.user = TestDataFactory.create_user()

    def test_status_change_writes_one_history_row_per_change(self):
        """Test payment and fulfillment changes are recorded separately"""
        order = TestDataFactory.create_order()
        rows = update_order_status(order, payment_status='paid', fulfillment_status='shipped',
                                   notes='Shipped early', user=self.user)
        self.assertEqual(len(rows), 2)
        self.assertEqual({(r.status_from, r.status_to) for r in rows},
                         {('pending', 'paid'), ('unfulfilled', 'shipped')})

        # Unchanged status adds nothing
        self.assertEqual(update_order_status(order, payment_status='paid', user=self.user), [])
        self.assertEqual(OrderHistory.objects.filter(order=order).count(), 2)

    def test_invalid_status_rejected(self):
        """Test unknown statuses raise OrderError"""
        order = TestDataFactory.create_order()
        with self.assertRaises(OrderError):
            update_order_status(order, payment_status='lost')

    def test_status_change_refreshes_customer_totals(self):
        """Test refunding an order removes it from amount spent"""
        customer = TestDataFactory.create_customer()
        product = TestDataFactory.create_product(price=Decimal('40.00'))
        order = TestDataFactory.create_order(customer=customer, items=[(product, 1)], payment_status='paid')
        update_order_status(order, payment_status='refunded')
        customer.refresh_from_db()
        self.assertEqual(customer.total_orders, 1)
        self.assertEqual(customer.total_spent, Decimal('0.00'))

    def test_clean_tracking_info(self):
        """Test each shipment needs a tracking number and carrier"""
        self.assertEqual(
            clean_tracking_info([{'tracking_number': ' 1Z999 ', 'carrier': 'UPS', 'extra': 'x'}]),
            [{'tracking_number': '1Z999', 'carrier': 'UPS'}]
        )
        with self.assertRaisesMessage(FulfillmentError, 'shipment 2'):
            clean_tracking_info([{'tracking_number': 'A', 'carrier': 'UPS'}, {'tracking_number': 'B'}])
        with self.assertRaises(FulfillmentError):
            clean_tracking_info([])


class OrderCreateAPITests(TestCase):
    """Test creating orders through the API"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.staff = TestDataFactory.create_staff()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.product = TestDataFactory.create_product(title='Amber Candle', price=Decimal('50.00'))
        self.customer = TestDataFactory.create_customer(first_name='Ada', last_name='Lovelace')

    def test_create_order(self):
        """Test totals, copied item fields, history, customer totals and staff notification"""
        data = {
            'customer_id': self.customer.id,
            'items': [
                {'product_id': self.product.id, 'quantity': 2},
                {'product_name': 'Gift wrap', 'quantity': 1, 'price': '3.00'},
            ],
            'tax': '4.00',
            'shipping': '6.00',
            'discount': '5.00',
            'shipping_address': {'first_name': 'Ada', 'address_line1': '1 Main St', 'country': 'UK'},
        }
        response = self.client.post('/api/v1/orders/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['order_number'], 'ORD-000001')
        self.assertEqual(response.data['subtotal'], Decimal('103.00'))
        self.assertEqual(response.data['total'], Decimal('108.00'))
        self.assertEqual(response.data['customer_name'], 'Ada Lovelace')
        self.assertEqual([i['product_name'] for i in response.data['items']], ['Amber Candle', 'Gift wrap'])
        self.assertEqual(response.data['items'][0]['total'], Decimal('100.00'))
        self.assertEqual(response.data['shipping_address']['address_line1'], '1 Main St')
        self.assertIsNone(response.data['billing_address'])
        self.assertEqual(response.data['history'][0]['notes'], 'Order created')

        self.customer.refresh_from_db()
        self.assertEqual(self.customer.total_orders, 1)
        self.assertEqual(self.customer.total_spent, Decimal('108.00'))
        self.assertEqual(Notification.objects.filter(user=self.staff).count(), 1)
        self.assertFalse(Notification.objects.filter(user=self.user).exists())
        self.assertTrue(AuditLog.objects.filter(action='order_create').exists())

    def test_create_order_with_discount_code(self):
        """Test a discount code is applied to the subtotal and redeemed"""
        TestDataFactory.create_discount(code='TENOFF', discount_value=Decimal('10'))
        data = {
            'items': [{'product_id': self.product.id, 'quantity': 2}],
            'discount_code': 'tenoff',
            'discount': '99.00',
        }
        response = self.client.post('/api/v1/orders/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['discount'], Decimal('10.00'))
        self.assertEqual(response.data['discount_code'], 'TENOFF')
        self.assertEqual(response.data['total'], Decimal('90.00'))
        self.assertEqual(Discount.objects.get(code='TENOFF').usage_count, 1)

    def test_create_order_with_invalid_code_creates_nothing(self):
        """Test a rejected code fails the whole order"""
        data = {'items': [{'product_id': self.product.id, 'quantity': 1}], 'discount_code': 'NOPE'}
        response = self.client.post('/api/v1/orders/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['discount_code'], ['Invalid or inactive coupon code'])
        self.assertEqual(Order.objects.count(), 0)

    def test_create_order_code_not_covering_items(self):
        """Test a collection discount with no matching items is rejected"""
        discount = TestDataFactory.create_discount(code='COLL', applies_to='collections')
        discount.collections.add(TestDataFactory.create_collection())
        data = {'items': [{'product_id': self.product.id, 'quantity': 1}], 'discount_code': 'COLL'}
        response = self.client.post('/api/v1/orders/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(Discount.objects.get(code='COLL').usage_count, 0)

    def test_create_order_requires_items(self):
        """Test an order without items is rejected"""
        response = self.client.post('/api/v1/orders/', {'items': []}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('items', response.data)

    def test_custom_item_needs_name_and_price(self):
        """Test custom line items must carry their own name and price"""
        response = self.client.post('/api/v1/orders/', {'items': [{'quantity': 1}]}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_order_numbers_increase(self):
        """Test consecutive orders get consecutive numbers"""
        data = {'items': [{'product_id': self.product.id, 'quantity': 1}]}
        first = self.client.post('/api/v1/orders/', data, format='json')
        second = self.client.post('/api/v1/orders/', data, format='json')
        self.assertEqual(first.data['order_number'], 'ORD-000001')
        self.assertEqual(second.data['order_number'], 'ORD-000002')


class OrderListAPITests(TestCase):
    """Test order list tabs, timeframe, search and stats"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        product = TestDataFactory.create_product(price=Decimal('10.00'))
        self.pending = TestDataFactory.create_order(items=[(product, 1)], customer_name='Pat Pending')
        self.paid = TestDataFactory.create_order(items=[(product, 2)], payment_status='paid',
                                                 fulfillment_status='fulfilled', customer_name='Polly Paid',
                                                 is_open=False)
        self.old = TestDataFactory.create_order(items=[(product, 3)], payment_status='paid',
                                                customer_name='Olga Old',
                                                created_at=timezone.now() - timedelta(days=40))

    def test_tabs(self):
        """Test each tab narrows the list"""
        expected = {
            'all': 3,
            'open': 2,
            'unfulfilled': 2,
            'fulfilled': 1,
            'unpaid': 1,
            'paid': 2,
        }
        for tab, count in expected.items():
            response = self.client.get('/api/v1/orders/', {'tab': tab})
            self.assertEqual(response.data['count'], count, tab)

    def test_search_ignores_tab(self):
        """Test a search term replaces the tab filter"""
        response = self.client.get('/api/v1/orders/', {'tab': 'paid', 'search': 'pending'})
        self.assertEqual([o['id'] for o in response.data['results']], [self.pending.id])

    def test_stats_follow_timeframe_only(self):
        """Test stats cover the timeframe regardless of tab"""
        response = self.client.get('/api/v1/orders/', {'timeframe': 'last30days', 'tab': 'paid'})
        self.assertEqual(response.data['count'], 1)
        stats = response.data['stats']
        self.assertEqual(stats['total'], 2)
        self.assertEqual(stats['pending'], 1)
        self.assertEqual(stats['paid'], 1)
        self.assertEqual(stats['processing'], 1)
        self.assertEqual(stats['fulfilled'], 1)
        self.assertEqual(stats['total_amount'], Decimal('30.00'))
        self.assertEqual(stats['unfulfilled_amount'], Decimal('10.00'))

    def test_item_count(self):
        """Test list rows carry the number of units"""
        response = self.client.get('/api/v1/orders/', {'search': self.paid.order_number})
        self.assertEqual(response.data['results'][0]['item_count'], 2)

    def test_export(self):
        """Test CSV export of the filtered list"""
        response = self.client.get('/api/v1/orders/export/', {'tab': 'fulfilled'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        lines = response.content.decode('utf-8').strip().splitlines()
        self.assertTrue(lines[0].startswith('Order,Date,Customer,Email'))
        self.assertEqual(len(lines), 2)
        self.assertTrue(lines[1].startswith(self.paid.order_number))


class OrderDetailAPITests(TestCase):
    """Test order detail and workflow endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.customer = TestDataFactory.create_customer(first_name='Ada', email='ada@test.com')
        self.product = TestDataFactory.create_product(title='Amber Candle', price=Decimal('50.00'))
        self.order = TestDataFactory.create_order(customer=self.customer, items=[(self.product, 2)],
                                                  with_address=True)

    def test_get_detail(self):
        """Test detail includes items, shipping address and history"""
        response = self.client.get(f'/api/v1/orders/{self.order.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['items']), 1)
        self.assertEqual(response.data['shipping_address']['city'], 'Springfield')
        self.assertEqual(response.data['history'], [])

    def test_patch_notes(self):
        """Test updating notes and the open flag"""
        response = self.client.patch(f'/api/v1/orders/{self.order.id}/',
                                     {'notes': 'Leave at door', 'is_open': False}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['notes'], 'Leave at door')
        self.assertFalse(response.data['is_open'])

    def test_delete_refreshes_customer(self):
        """Test deleting an order updates the customer's totals"""
        self.customer.total_orders = 1
        self.customer.save()
        response = self.client.delete(f'/api/v1/orders/{self.order.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.customer.refresh_from_db()
        self.assertEqual(self.customer.total_orders, 0)

    def test_status_endpoint(self):
        """Test changing status through the API"""
        response = self.client.post(f'/api/v1/orders/{self.order.id}/status/',
                                    {'fulfillment_status': 'shipped', 'notes': 'Out the door'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['fulfillment_status'], 'shipped')
        self.assertEqual(response.data['history'][0]['status_to'], 'shipped')
        self.assertTrue(AuditLog.objects.filter(action='order_status').exists())

    def test_status_endpoint_requires_a_status(self):
        """Test an empty status change is rejected"""
        response = self.client.post(f'/api/v1/orders/{self.order.id}/status/', {'notes': 'x'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_mark_paid(self):
        """Test mark-paid and the already-paid error"""
        response = self.client.post(f'/api/v1/orders/{self.order.id}/mark-paid/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['payment_status'], 'paid')
        response = self.client.post(f'/api/v1/orders/{self.order.id}/mark-paid/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_fulfill_with_email(self):
        """Test fulfilling stores tracking and emails the customer"""
        data = {
            'tracking_info': [{'tracking_number': '1Z999', 'carrier': 'UPS'}],
            'notify_customer': True,
        }
        response = self.client.post(f'/api/v1/orders/{self.order.id}/fulfill/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['fulfillment_status'], 'fulfilled')
        self.assertEqual(response.data['tracking_info'], [{'tracking_number': '1Z999', 'carrier': 'UPS'}])
        self.assertTrue(response.data['email_sent'])
        self.assertEqual(len(mail.outbox), 1)
        self.assertIn(self.order.order_number, mail.outbox[0].subject)
        self.assertIn('UPS: 1Z999', mail.outbox[0].body)

        response = self.client.post(f'/api/v1/orders/{self.order.id}/fulfill/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_fulfill_missing_carrier(self):
        """Test a shipment without carrier is rejected"""
        data = {'tracking_info': [{'tracking_number': '1Z999', 'carrier': ''}]}
        response = self.client.post(f'/api/v1/orders/{self.order.id}/fulfill/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('carrier', response.data['error'])
        self.order.refresh_from_db()
        self.assertEqual(self.order.fulfillment_status, 'unfulfilled')

    def test_apply_discount(self):
        """Test applying a code recomputes the total once"""
        TestDataFactory.create_discount(code='FIVE', discount_type='fixed_amount', discount_value=Decimal('5.00'))
        response = self.client.post(f'/api/v1/orders/{self.order.id}/apply-discount/', {'code': 'five'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['discount'], Decimal('5.00'))
        self.assertEqual(response.data['total'], Decimal('95.00'))

        response = self.client.post(f'/api/v1/orders/{self.order.id}/apply-discount/', {'code': 'five'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_apply_discount_requires_code(self):
        """Test apply-discount without a code fails"""
        response = self.client.post(f'/api/v1/orders/{self.order.id}/apply-discount/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_receipt_pdf(self):
        """Test the receipt is a PDF"""
        response = self.client.get(f'/api/v1/orders/{self.order.id}/receipt/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response['Content-Type'], 'application/pdf')
        self.assertTrue(response.content.startswith(b'%PDF'))

    def test_packing_slip_pdf(self):
        """Test the packing slip is a PDF"""
        response = self.client.get(f'/api/v1/orders/{self.order.id}/packing-slip/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.content.startswith(b'%PDF'))
        self.assertIn(f'packing-slip-{self.order.order_number}.pdf', response['Content-Disposition'])


class OrderNumberCommandTests(TestCase):
    """Test check_order_numbers and renumber_orders"""

    def setUp(self):
        good = TestDataFactory.create_order()
        Order.objects.filter(pk=good.pk).update(order_number='ORD-000007')
        self.broken = TestDataFactory.create_order()
        Order.objects.filter(pk=self.broken.pk).update(order_number='draft-1')

    def test_check_reports_malformed(self):
        """Test malformed numbers are listed"""
        out = StringIO()
        call_command('check_order_numbers', stdout=out)
        self.assertIn("malformed number 'draft-1'", out.getvalue())
        self.assertIn('Next order number: ORD-000008', out.getvalue())

    def test_renumber_dry_run(self):
        """Test dry run leaves numbers alone"""
        call_command('renumber_orders', '--dry-run', stdout=StringIO())
        self.broken.refresh_from_db()
        self.assertEqual(self.broken.order_number, 'draft-1')

    def test_renumber(self):
        """Test malformed numbers continue the sequence"""
        call_command('renumber_orders', stdout=StringIO())
        self.broken.refresh_from_db()
        self.assertEqual(self.broken.order_number, 'ORD-000008')
