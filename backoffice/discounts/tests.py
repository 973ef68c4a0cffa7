"""
Test suite for the Discounts module
Tests: Discount CRUD, status filters, bulk actions, amount calculation and coupon validation
"""
from datetime import timedelta
from decimal import Decimal
from django.test import TestCase
from django.utils import timezone
from rest_framework import status
from backoffice.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backoffice.discounts.models import Discount
from backoffice.discounts.services import (
    DiscountError, compute_discount_amount, eligible_subtotal, validate_discount, redeem_discount
)


class DiscountServiceTests(TestCase):
    """Test discount calculation and validation rules"""

    def test_code_stored_upper_case(self):
        """Test codes are normalized on save"""
        discount = TestDataFactory.create_discount(code='  summer10 ')
        self.assertEqual(discount.code, 'SUMMER10')

    def test_percentage_amount_capped(self):
        """Test percentage discounts respect max_discount_amount"""
        discount = TestDataFactory.create_discount(discount_value=Decimal('20'))
        self.assertEqual(compute_discount_amount(discount, Decimal('50.00')), Decimal('10.00'))
        discount.max_discount_amount = Decimal('5.00')
        self.assertEqual(compute_discount_amount(discount, Decimal('50.00')), Decimal('5.00'))

    def test_fixed_amount_capped_at_total(self):
        """Test fixed discounts never exceed the order total"""
        discount = TestDataFactory.create_discount(discount_type='fixed_amount', discount_value=Decimal('30.00'))
        self.assertEqual(compute_discount_amount(discount, Decimal('100.00')), Decimal('30.00'))
        self.assertEqual(compute_discount_amount(discount, Decimal('12.50')), Decimal('12.50'))

    def test_eligible_subtotal_by_collection(self):
        """Test collection discounts only cover products in those collections"""
        collection = TestDataFactory.create_collection()
        inside = TestDataFactory.create_product(collection=collection)
        outside = TestDataFactory.create_product()
        discount = TestDataFactory.create_discount(applies_to='collections')
        discount.collections.add(collection)
        items = [(inside, Decimal('40.00')), (outside, Decimal('60.00')), (None, Decimal('5.00'))]
        self.assertEqual(eligible_subtotal(discount, items), Decimal('40.00'))

    def test_eligible_subtotal_all(self):
        """Test store-wide discounts cover every line including custom items"""
        discount = TestDataFactory.create_discount()
        items = [(TestDataFactory.create_product(), Decimal('40.00')), (None, Decimal('5.00'))]
        self.assertEqual(eligible_subtotal(discount, items), Decimal('45.00'))

    def test_validate_rejections_in_order(self):
        """Test each rejection message"""
        now = timezone.now()
        TestDataFactory.create_discount(code='OFF', is_active=False)
        TestDataFactory.create_discount(code='MIN', min_purchase_amount=Decimal('50.00'))
        TestDataFactory.create_discount(code='USED', usage_limit=2, usage_count=2)
        TestDataFactory.create_discount(code='OLD', expires_at=now - timedelta(days=1))
        TestDataFactory.create_discount(code='SOON', starts_at=now + timedelta(days=1))

        expected = {
            'NOPE': 'Invalid or inactive coupon code',
            'OFF': 'Invalid or inactive coupon code',
            'MIN': 'Minimum order amount of $50.00 required',
            'USED': 'Coupon usage limit exceeded',
            'OLD': 'This coupon has expired',
            'SOON': 'This coupon is not yet active',
        }
        for code, message in expected.items():
            with self.assertRaisesMessage(DiscountError, message):
                validate_discount(code, Decimal('20.00'), now=now)

    def test_validate_is_case_insensitive(self):
        """Test lower-case input finds the code"""
        discount = TestDataFactory.create_discount(code='WELCOME')
        self.assertEqual(validate_discount('welcome', Decimal('10.00')), discount)

    def test_zero_usage_limit_is_unlimited(self):
        """Test a usage limit of 0 does not block redemption"""
        discount = TestDataFactory.create_discount(usage_limit=0, usage_count=7)
        validate_discount(discount.code, Decimal('10.00'))
        redeem_discount(discount)
        self.assertEqual(discount.usage_count, 8)

    def test_redeem_stops_at_limit(self):
        """Test redemption fails once the limit is reached"""
        discount = TestDataFactory.create_discount(usage_limit=1)
        redeem_discount(discount)
        with self.assertRaises(DiscountError):
            redeem_discount(discount)
        discount.refresh_from_db()
        self.assertEqual(discount.usage_count, 1)


class DiscountAPITests(TestCase):
    """Test Discount API endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_create_discount(self):
        """Test creating a product discount"""
        product = TestDataFactory.create_product()
        data = {
            'code': 'candle15',
            'discount_type': 'percentage',
            'discount_value': '15.00',
            'applies_to': 'products',
            'products': [product.id],
        }
        response = self.client.post('/api/v1/discounts/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['code'], 'CANDLE15')
        self.assertEqual(response.data['products'], [product.id])
        self.assertEqual(response.data['status'], 'active')

    def test_create_duplicate_code_any_case(self):
        """Test codes are unique regardless of case"""
        TestDataFactory.create_discount(code='SPRING')
        response = self.client.post('/api/v1/discounts/',
                                    {'code': 'spring', 'discount_value': '5.00'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('code', response.data)

    def test_create_percentage_over_100(self):
        """Test percentage discounts above 100 are rejected"""
        response = self.client.post('/api/v1/discounts/',
                                    {'code': 'TOOMUCH', 'discount_value': '150.00'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('discount_value', response.data)

    def test_create_expiry_before_start(self):
        """Test the end date must be after the start date"""
        now = timezone.now()
        data = {
            'code': 'BACKWARDS',
            'discount_value': '5.00',
            'starts_at': (now + timedelta(days=5)).isoformat(),
            'expires_at': (now + timedelta(days=1)).isoformat(),
        }
        response = self.client.post('/api/v1/discounts/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('expires_at', response.data)

    def test_create_products_discount_without_products(self):
        """Test a product discount needs at least one product"""
        data = {'code': 'EMPTY', 'discount_value': '5.00', 'applies_to': 'products', 'products': []}
        response = self.client.post('/api/v1/discounts/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_status_filter(self):
        """Test filtering by derived status"""
        now = timezone.now()
        TestDataFactory.create_discount(code='LIVE')
        TestDataFactory.create_discount(code='OFF', is_active=False)
        TestDataFactory.create_discount(code='LATER', starts_at=now + timedelta(days=2))
        TestDataFactory.create_discount(code='GONE', expires_at=now - timedelta(days=2))

        for status_name, code in [('active', 'LIVE'), ('inactive', 'OFF'), ('scheduled', 'LATER'), ('expired', 'GONE')]:
            response = self.client.get('/api/v1/discounts/', {'status': status_name})
            self.assertEqual([d['code'] for d in response.data['results']], [code], status_name)

    def test_search(self):
        """Test q searches code and description"""
        TestDataFactory.create_discount(code='HOLIDAY', description='Winter sale')
        TestDataFactory.create_discount(code='OTHER')
        response = self.client.get('/api/v1/discounts/', {'q': 'winter'})
        self.assertEqual([d['code'] for d in response.data['results']], ['HOLIDAY'])

    def test_bulk_deactivate_and_delete(self):
        """Test bulk actions"""
        ids = [TestDataFactory.create_discount().id for _ in range(3)]
        response = self.client.post('/api/v1/discounts/bulk/', {'action': 'deactivate', 'ids': ids}, format='json')
        self.assertEqual(response.data, {'updated': 3})
        self.assertEqual(Discount.objects.filter(is_active=False).count(), 3)

        response = self.client.post('/api/v1/discounts/bulk/', {'action': 'delete', 'ids': ids[:1]}, format='json')
        self.assertEqual(response.data, {'deleted': 1})


class CouponValidateTests(TestCase):
    """Test the coupon validation endpoint"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_missing_input(self):
        """Test missing code or total is a 400"""
        response = self.client.post('/api/v1/coupons/validate/', {'code': 'X'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Coupon code and order total are required')

    def test_valid_coupon(self):
        """Test a usable coupon returns the discount amount"""
        discount = TestDataFactory.create_discount(code='TEN', discount_value=Decimal('10'), description='Ten off')
        response = self.client.post('/api/v1/coupons/validate/', {'code': 'ten', 'orderTotal': 80}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['valid'])
        self.assertEqual(response.data['coupon_id'], discount.id)
        self.assertEqual(response.data['discount_amount'], Decimal('8.00'))
        self.assertEqual(response.data['type'], 'percentage')
        self.assertEqual(response.data['description'], 'Ten off')

    def test_below_minimum(self):
        """Test a total under the minimum is reported, not rejected with 400"""
        TestDataFactory.create_discount(code='BIG', min_purchase_amount=Decimal('100.00'))
        response = self.client.post('/api/v1/coupons/validate/', {'code': 'BIG', 'order_total': '40'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data, {'valid': False, 'error': 'Minimum order amount of $100.00 required'})
