"""
Test suite for the Core module
Tests: Authentication, users, audit logs, global search and shared helpers
"""
from decimal import Decimal
from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import TestCase, SimpleTestCase
from rest_framework import status
from backoffice.core.exports import CSVImportError, csv_response, read_csv_upload
from backoffice.core.models import AuditLog
from backoffice.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backoffice.core.utils import create_audit_log, parse_id_list, parse_int


class AuthTests(TestCase):
    """Test JWT login and the current-user endpoint"""

    def setUp(self):
        self.user = TestDataFactory.create_user(username='clerk', password='testpass123')
        self.client = AuthenticatedAPIClient()

    def test_login(self):
        """Test valid credentials return an access and refresh token"""
        response = self.client.post('/api/v1/auth/login/', {'username': 'clerk', 'password': 'testpass123'},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)
        self.assertIn('refresh', response.data)

        response = self.client.post('/api/v1/auth/refresh/', {'refresh': response.data['refresh']}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)

    def test_login_wrong_password(self):
        """Test bad credentials are rejected"""
        response = self.client.post('/api/v1/auth/login/', {'username': 'clerk', 'password': 'wrong'},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_refresh_with_garbage_token(self):
        """Test an invalid refresh token is rejected"""
        response = self.client.post('/api/v1/auth/refresh/', {'refresh': 'not-a-token'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_login_inactive_user(self):
        """Test a deactivated account cannot log in"""
        self.user.is_active = False
        self.user.save()
        response = self.client.post('/api/v1/auth/login/', {'username': 'clerk', 'password': 'testpass123'},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertNotIn('access', response.data)

    def test_refresh_after_user_deleted(self):
        """Test a refresh token stops working once its user is deleted"""
        response = self.client.post('/api/v1/auth/login/', {'username': 'clerk', 'password': 'testpass123'},
                                    format='json')
        refresh = response.data['refresh']
        self.user.delete()
        response = self.client.post('/api/v1/auth/refresh/', {'refresh': refresh}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(str(response.data['detail']), 'Token is invalid. User no longer exists.')
        self.assertNotIn('access', response.data)

    def test_me_without_role(self):
        """Test a plain user has no role and no permissions"""
        self.client.authenticate_user(self.user)
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['username'], 'clerk')
        self.assertIsNone(response.data['role'])
        self.assertEqual(response.data['permissions'], [])
        self.assertFalse(response.data['is_admin'])

    def test_me_with_role(self):
        """Test role name and permissions come from the store membership"""
        role = TestDataFactory.create_role(name='Clerk', permissions=['orders.view', 'orders.edit'])
        TestDataFactory.add_store_user(self.user, role=role)
        self.client.authenticate_user(self.user)
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.data['role'], 'Clerk')
        self.assertEqual(response.data['permissions'], ['orders.view', 'orders.edit'])

    def test_update_profile(self):
        """Test users can edit their own profile but not their username"""
        self.client.authenticate_user(self.user)
        response = self.client.patch('/api/v1/auth/me/', {'first_name': 'Clara', 'username': 'boss'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['first_name'], 'Clara')
        self.assertEqual(response.data['username'], 'clerk')

    def test_unauthenticated(self):
        """Test the API requires a token"""
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class UserAPITests(TestCase):
    """Test staff user management"""

    def setUp(self):
        self.staff = TestDataFactory.create_staff()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.staff)

    def test_create_user(self):
        """Test creating a user with matching passwords"""
        data = {
            'username': 'newclerk',
            'email': 'newclerk@test.com',
            'password': 'Sup3rSecret!pass',
            'password_confirm': 'Sup3rSecret!pass',
        }
        response = self.client.post('/api/v1/users/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertNotIn('password', response.data)
        self.assertTrue(AuditLog.objects.filter(action='create', model_name='User').exists())

    def test_password_mismatch(self):
        """Test password confirmation must match"""
        data = {
            'username': 'newclerk',
            'password': 'Sup3rSecret!pass',
            'password_confirm': 'different!pass1',
        }
        response = self.client.post('/api/v1/users/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_cannot_delete_self(self):
        """Test staff cannot delete their own account"""
        response = self.client.delete(f'/api/v1/users/{self.staff.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_non_staff_forbidden(self):
        """Test plain users cannot manage users"""
        self.client.authenticate_user(TestDataFactory.create_user())
        response = self.client.get('/api/v1/users/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class AuditLogAPITests(TestCase):
    """Test audit log visibility and filters"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.other = TestDataFactory.create_user()
        self.staff = TestDataFactory.create_staff()
        self.client = AuthenticatedAPIClient()
        self.mine = create_audit_log(action='create', model_name='Product', object_id=1, user=self.user)
        self.theirs = create_audit_log(action='delete', model_name='Order', object_id=2, user=self.other)

    def test_non_staff_see_own_entries(self):
        """Test plain users only list their own entries"""
        self.client.authenticate_user(self.user)
        response = self.client.get('/api/v1/audit-logs/')
        self.assertEqual([log['id'] for log in response.data['results']], [self.mine.id])
        response = self.client.get(f'/api/v1/audit-logs/{self.theirs.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_staff_filters(self):
        """Test staff see everything and can filter by action and model"""
        self.client.authenticate_user(self.staff)
        response = self.client.get('/api/v1/audit-logs/')
        self.assertEqual(response.data['count'], 2)
        response = self.client.get('/api/v1/audit-logs/', {'action': 'delete'})
        self.assertEqual([log['id'] for log in response.data['results']], [self.theirs.id])
        response = self.client.get('/api/v1/audit-logs/', {'model': 'Product'})
        self.assertEqual([log['id'] for log in response.data['results']], [self.mine.id])

    def test_date_filters(self):
        """Test date_from and date_to bound the listing by day"""
        self.client.authenticate_user(self.staff)
        response = self.client.get('/api/v1/audit-logs/', {'date_from': '2000-01-01'})
        self.assertEqual(response.data['count'], 2)
        response = self.client.get('/api/v1/audit-logs/', {'date_to': '2000-01-01'})
        self.assertEqual(response.data['count'], 0)

    def test_malformed_dates_rejected(self):
        """Test unparseable or impossible dates return 400"""
        self.client.authenticate_user(self.staff)
        for params in ({'date_from': 'yesterday'}, {'date_to': '2024-13-45'}):
            response = self.client.get('/api/v1/audit-logs/', params)
            self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST, params)
            self.assertIn('error', response.data)

    def test_pagination(self):
        """Test the listing is paginated with page and limit"""
        self.client.authenticate_user(self.staff)
        response = self.client.get('/api/v1/audit-logs/', {'limit': 1, 'page': 2})
        self.assertEqual(response.data['count'], 2)
        self.assertEqual(response.data['total_pages'], 2)
        self.assertEqual(response.data['previous'], 1)
        self.assertEqual(len(response.data['results']), 1)

    def test_missing_fields_skipped(self):
        """Test incomplete entries are not written"""
        self.assertIsNone(create_audit_log(action='create', model_name=None, object_id=1))
        self.assertEqual(AuditLog.objects.count(), 2)


class GlobalSearchTests(TestCase):
    """Test the global search endpoint"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_empty_query(self):
        """Test an empty query returns empty groups"""
        response = self.client.get('/api/v1/search/')
        self.assertEqual(response.data['products'], [])
        self.assertEqual(set(response.data), {'products', 'orders', 'customers', 'discounts', 'collections'})

    def test_search_across_models(self):
        """Test a term matches products, customers, orders, discounts and collections"""
        product = TestDataFactory.create_product(title='Amber Candle')
        customer = TestDataFactory.create_customer(first_name='Amber', last_name='Stone')
        TestDataFactory.create_order(customer=customer, items=[(product, 1)])
        TestDataFactory.create_discount(code='AMBER10')
        TestDataFactory.create_collection(name='Amber Collection')
        TestDataFactory.create_product(title='Blue Soap')

        response = self.client.get('/api/v1/search/', {'q': 'amber'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([p['title'] for p in response.data['products']], ['Amber Candle'])
        self.assertEqual(len(response.data['customers']), 1)
        self.assertEqual(len(response.data['orders']), 1)
        self.assertEqual(len(response.data['discounts']), 1)
        self.assertEqual(len(response.data['collections']), 1)


class PaginationTests(TestCase):
    """Test the shared list envelope"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        for _ in range(3):
            TestDataFactory.create_order()

    def test_page_and_limit(self):
        """Test page metadata"""
        response = self.client.get('/api/v1/orders/', {'limit': 2, 'page': 2})
        self.assertEqual(len(response.data['results']), 1)
        self.assertEqual(response.data['count'], 3)
        self.assertEqual(response.data['page'], 2)
        self.assertEqual(response.data['page_size'], 2)
        self.assertEqual(response.data['total_pages'], 2)
        self.assertEqual(response.data['previous'], 1)
        self.assertIsNone(response.data['next'])

    def test_out_of_range_page(self):
        """Test pages past the end resolve to the last page and junk falls back to defaults"""
        response = self.client.get('/api/v1/orders/', {'limit': 2, 'page': 99})
        self.assertEqual(response.data['page'], 2)
        response = self.client.get('/api/v1/orders/', {'limit': 'lots', 'page': 'first'})
        self.assertEqual(response.data['page'], 1)
        self.assertEqual(response.data['page_size'], 50)
        self.assertEqual(len(response.data['results']), 3)


class HelperTests(SimpleTestCase):
    """Test parsing and CSV helpers"""

    def test_parse_int(self):
        self.assertEqual(parse_int('5', 1), 5)
        self.assertEqual(parse_int('0', 7), 7)
        self.assertEqual(parse_int('-3', 7), 7)
        self.assertEqual(parse_int(None, 7), 7)
        self.assertEqual(parse_int('abc', 7), 7)

    def test_parse_id_list(self):
        """Test lists, comma strings and junk"""
        self.assertEqual(parse_id_list([1, '2', 'x']), [1, 2])
        self.assertEqual(parse_id_list('3,4, 5'), [3, 4, 5])
        self.assertEqual(parse_id_list(''), [])
        self.assertEqual(parse_id_list(None), [])

    def test_read_csv_upload(self):
        """Test BOM, whitespace and blank rows are handled"""
        upload = SimpleUploadedFile(
            'customers.csv',
            '\ufeffFirst Name , Email\n Ada ,ada@test.com\n,\nBob,bob@test.com\n'.encode('utf-8')
        )
        rows = read_csv_upload(upload)
        self.assertEqual(rows, [
            {'First Name': 'Ada', 'Email': 'ada@test.com'},
            {'First Name': 'Bob', 'Email': 'bob@test.com'},
        ])

    def test_read_csv_upload_errors(self):
        """Test missing, empty and undecodable uploads"""
        with self.assertRaises(CSVImportError):
            read_csv_upload(None)
        with self.assertRaises(CSVImportError):
            read_csv_upload(SimpleUploadedFile('empty.csv', b''))
        with self.assertRaisesMessage(CSVImportError, 'UTF-8'):
            read_csv_upload(SimpleUploadedFile('latin.csv', 'Name\nJos\xe9\n'.encode('latin-1')))

    def test_csv_response(self):
        """Test CSV download headers and None cells"""
        response = csv_response('things.csv', ['Name', 'Price'], [['Candle', Decimal('9.50')], ['Soap', None]])
        self.assertEqual(response['Content-Disposition'], 'attachment; filename="things.csv"')
        self.assertEqual(response.content.decode('utf-8').splitlines(), ['Name,Price', 'Candle,9.50', 'Soap,'])
