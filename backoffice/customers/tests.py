"""
Test suite for the Customers module
Tests: CRUD, search, totals, bulk delete, CSV export/import and the refresh command
"""
from decimal import Decimal
from io import StringIO
from django.core.files.uploadedfile import SimpleUploadedFile
from django.core.management import call_command
from django.test import TestCase
from rest_framework import status
from backoffice.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backoffice.customers.models import Customer
from backoffice.customers.services import calculate_customer_totals, refresh_customer_totals
from backoffice.customers.views import split_name


class CustomerModelTests(TestCase):
    """Test Customer properties and totals"""

    def test_full_name_and_location(self):
        """Test full name joins names and location falls back to Unknown"""
        customer = TestDataFactory.create_customer(first_name='Ada', last_name='Lovelace')
        self.assertEqual(customer.full_name, 'Ada Lovelace')
        self.assertEqual(customer.location, 'Unknown')
        customer.country = 'United Kingdom'
        self.assertEqual(customer.location, 'United Kingdom')

    def test_split_name(self):
        """Test splitting an imported name"""
        self.assertEqual(split_name('Ada King Lovelace'), ('Ada', 'King Lovelace'))
        self.assertEqual(split_name('Cher'), ('Cher', ''))
        self.assertEqual(split_name('  '), ('', ''))

    def test_totals_exclude_refunded_and_failed(self):
        """Test refunded and failed orders count as orders but not as spend"""
        customer = TestDataFactory.create_customer()
        product = TestDataFactory.create_product(price=Decimal('10.00'))
        TestDataFactory.create_order(customer=customer, items=[(product, 2)], payment_status='paid')
        TestDataFactory.create_order(customer=customer, items=[(product, 1)], payment_status='refunded')
        TestDataFactory.create_order(customer=customer, items=[(product, 3)], payment_status='failed')

        self.assertEqual(calculate_customer_totals(customer), (3, Decimal('20.00')))
        self.assertTrue(refresh_customer_totals(customer))
        self.assertFalse(refresh_customer_totals(customer))
        customer.refresh_from_db()
        self.assertEqual(customer.total_orders, 3)
        self.assertEqual(customer.total_spent, Decimal('20.00'))


class CustomerAPITests(TestCase):
    """Test Customer API endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_create_customer(self):
        """Test creating a customer"""
        data = {'first_name': 'Grace', 'last_name': 'Hopper', 'email': 'grace@test.com', 'country': 'USA'}
        response = self.client.post('/api/v1/customers/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['full_name'], 'Grace Hopper')
        self.assertEqual(response.data['location'], 'USA')
        self.assertEqual(response.data['total_orders'], 0)

    def test_create_customer_requires_first_name(self):
        """Test a blank first name is rejected"""
        response = self.client.post('/api/v1/customers/', {'first_name': '  ', 'last_name': 'X'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_totals_are_read_only(self):
        """Test clients cannot write order totals"""
        customer = TestDataFactory.create_customer()
        self.client.patch(f'/api/v1/customers/{customer.id}/', {'total_orders': 99, 'total_spent': '1000'},
                          format='json')
        customer.refresh_from_db()
        self.assertEqual(customer.total_orders, 0)

    def test_search_matches_every_word(self):
        """Test multi-word search narrows across name and email"""
        TestDataFactory.create_customer(first_name='Ada', last_name='Lovelace', email='ada@math.org')
        TestDataFactory.create_customer(first_name='Ada', last_name='Byron', email='byron@poet.org')
        TestDataFactory.create_customer(first_name='Alan', last_name='Turing', email='alan@math.org')

        response = self.client.get('/api/v1/customers/', {'search': 'ada'})
        self.assertEqual(response.data['count'], 2)
        response = self.client.get('/api/v1/customers/', {'search': 'ada math'})
        self.assertEqual([c['last_name'] for c in response.data['results']], ['Lovelace'])

    def test_subscribed_filter(self):
        """Test filtering by email subscription"""
        TestDataFactory.create_customer(email_subscription=True)
        TestDataFactory.create_customer(email_subscription=False)
        response = self.client.get('/api/v1/customers/', {'subscribed': 'true'})
        self.assertEqual(response.data['count'], 1)

    def test_detail_includes_recent_orders(self):
        """Test customer detail lists their orders"""
        customer = TestDataFactory.create_customer()
        order = TestDataFactory.create_order(customer=customer)
        response = self.client.get(f'/api/v1/customers/{customer.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([o['order_number'] for o in response.data['recent_orders']], [order.order_number])

    def test_delete_customer_keeps_orders(self):
        """Test deleting a customer leaves their orders as guest orders"""
        customer = TestDataFactory.create_customer()
        order = TestDataFactory.create_order(customer=customer)
        response = self.client.delete(f'/api/v1/customers/{customer.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        order.refresh_from_db()
        self.assertIsNone(order.customer)

    def test_bulk_delete(self):
        """Test bulk delete returns the number removed"""
        ids = [TestDataFactory.create_customer().id for _ in range(3)]
        response = self.client.post('/api/v1/customers/bulk-delete/', {'ids': ids[:2]}, format='json')
        self.assertEqual(response.data, {'deleted': 2})
        self.assertEqual(Customer.objects.count(), 1)

    def test_bulk_delete_requires_ids(self):
        """Test bulk delete without ids fails"""
        response = self.client.post('/api/v1/customers/bulk-delete/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class CustomerCSVTests(TestCase):
    """Test customer CSV export and import"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_export_selection(self):
        """Test exporting only the selected customers"""
        wanted = TestDataFactory.create_customer(first_name='Wanted', email_subscription=True, country='Canada')
        TestDataFactory.create_customer(first_name='Other')
        response = self.client.get('/api/v1/customers/export/', {'ids': str(wanted.id)})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('customers-', response['Content-Disposition'])
        lines = response.content.decode('utf-8').strip().splitlines()
        self.assertEqual(lines[0], 'Name,Email,Email Subscription,Location,Orders,Amount Spent,Date Joined')
        self.assertEqual(len(lines), 2)
        self.assertTrue(lines[1].startswith('Wanted Tester,wanted@test.com,Subscribed,Canada,0,0.00,'))

    def test_import(self):
        """Test importing customers with one bad row"""
        content = (
            'name,email,emailSubscription,location,orders,amountSpent\n'
            'Ada King Lovelace,ada@test.com,Subscribed,United Kingdom,3,120.50\n'
            'Bad Email,not-an-email,,,,\n'
            'Alan Turing,,Not subscribed,,x,\n'
        ).encode('utf-8')
        upload = SimpleUploadedFile('customers.csv', content, content_type='text/csv')
        response = self.client.post('/api/v1/customers/import/', {'file': upload}, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['created'], 1)
        self.assertEqual([e['row'] for e in response.data['errors']], [3, 4])

        customer = Customer.objects.get(email='ada@test.com')
        self.assertEqual(customer.first_name, 'Ada')
        self.assertEqual(customer.last_name, 'King Lovelace')
        self.assertTrue(customer.email_subscription)
        self.assertEqual(customer.total_spent, Decimal('120.50'))

    def test_import_nothing_valid(self):
        """Test an import with no valid rows fails"""
        upload = SimpleUploadedFile('customers.csv', b'name,email\n,missing@test.com\n', content_type='text/csv')
        response = self.client.post('/api/v1/customers/import/', {'file': upload}, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['created'], 0)

    def test_import_amount_out_of_range(self):
        """Test NaN, infinite and oversized amounts are reported per row"""
        content = (
            'name,email,orders,amountSpent\n'
            'Nan Row,nan@test.com,1,NaN\n'
            'Inf Row,inf@test.com,1,Infinity\n'
            'Huge Row,huge@test.com,1,1e30\n'
            'Many Orders,many@test.com,99999999999,5\n'
            'Fine Row,fine@test.com,2,10.005\n'
        ).encode('utf-8')
        upload = SimpleUploadedFile('customers.csv', content, content_type='text/csv')
        response = self.client.post('/api/v1/customers/import/', {'file': upload}, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['created'], 1)
        self.assertEqual([e['row'] for e in response.data['errors']], [2, 3, 4, 5])
        self.assertEqual(Customer.objects.get().email, 'fine@test.com')


class RefreshCustomerTotalsCommandTests(TestCase):
    """Test the refresh_customer_totals management command"""

    def test_dry_run_does_not_save(self):
        """Test dry run reports but keeps stale totals"""
        customer = TestDataFactory.create_customer()
        TestDataFactory.create_order(customer=customer, payment_status='paid')
        out = StringIO()
        call_command('refresh_customer_totals', '--dry-run', stdout=out)
        self.assertIn('1 customers would change', out.getvalue())
        customer.refresh_from_db()
        self.assertEqual(customer.total_orders, 0)

    def test_refresh_saves(self):
        """Test the command stores recomputed totals"""
        customer = TestDataFactory.create_customer()
        TestDataFactory.create_order(customer=customer, payment_status='paid')
        call_command('refresh_customer_totals', stdout=StringIO())
        customer.refresh_from_db()
        self.assertEqual(customer.total_orders, 1)
