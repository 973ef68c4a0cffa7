"""
Test suite for the Store module
Tests: Settings, shipping/payment methods, visibility, permissions, roles and store users
"""
from io import StringIO
from django.conf import settings
from django.core.management import call_command
from django.test import TestCase
from rest_framework import status
from backoffice.core.models import AuditLog
from backoffice.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backoffice.store.models import Permission, Store, StoreRole, StoreSettings, StoreUser
from backoffice.store.services import (
    get_current_store, get_store_details, get_user_permissions, has_permission, seed_permissions
)


class StoreServiceTests(TestCase):
    """Test store creation and permission resolution"""

    def test_current_store_created_once(self):
        """Test the store and its settings are created on first use"""
        store = get_current_store()
        self.assertEqual(store.name, settings.STORE_NAME)
        self.assertEqual(get_current_store(), store)
        self.assertEqual(Store.objects.count(), 1)
        self.assertEqual(StoreSettings.objects.get(store=store).currency, settings.STORE_CURRENCY)

    def test_store_details_address(self):
        """Test receipt details skip empty address parts"""
        store_settings = get_current_store().settings
        store_settings.address = {'line1': '1 Main St', 'line2': '', 'city': 'Springfield', 'state': 'IL',
                                  'postcode': '62701', 'country': 'United States'}
        store_settings.save()
        self.assertEqual(get_store_details()['address_lines'],
                         ['1 Main St', 'Springfield IL 62701', 'United States'])

    def test_permissions_by_role(self):
        """Test superusers, owners, role members and outsiders"""
        superuser = TestDataFactory.create_user(is_superuser=True)
        owner = TestDataFactory.create_user()
        clerk = TestDataFactory.create_user()
        invited = TestDataFactory.create_user()
        outsider = TestDataFactory.create_user()

        TestDataFactory.add_store_user(owner, role=TestDataFactory.create_role(name='Owner'))
        clerk_role = TestDataFactory.create_role(name='Clerk', permissions=['orders.view'])
        TestDataFactory.add_store_user(clerk, role=clerk_role)
        TestDataFactory.add_store_user(invited, role=clerk_role, status='invited')

        self.assertTrue(has_permission(superuser, 'staff.manage'))
        self.assertEqual(len(get_user_permissions(owner)), 10)
        self.assertEqual(get_user_permissions(clerk), ['orders.view'])
        self.assertFalse(has_permission(clerk, 'orders.edit'))
        self.assertEqual(get_user_permissions(invited), [])
        self.assertEqual(get_user_permissions(outsider), [])

    def test_ui_only_permissions_described(self):
        """Test seeding refreshes descriptions and unchecked permissions say they only gate the admin UI"""
        Permission.objects.create(name='products.edit', description='stale', category='Products')
        seed_permissions()
        for name in ('products.edit', 'orders.edit', 'customers.edit', 'discounts.manage', 'reports.view'):
            self.assertIn('admin UI', Permission.objects.get(name=name).description, name)
        self.assertNotIn('admin UI', Permission.objects.get(name='settings.manage').description)

        # a member without products.edit can still write through the API
        clerk = TestDataFactory.create_user()
        viewer = TestDataFactory.create_role(name='Viewer', permissions=['products.view'])
        TestDataFactory.add_store_user(clerk, role=viewer)
        client = AuthenticatedAPIClient()
        client.authenticate_user(clerk)
        response = client.post('/api/v1/products/', {'title': 'Unchecked', 'price': '5.00'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)


class StoreSettingsAPITests(TestCase):
    """Test store settings endpoints"""

    def setUp(self):
        self.admin = TestDataFactory.create_user(is_superuser=True)
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)

    def test_get_settings(self):
        """Test settings are created with defaults"""
        response = self.client.get('/api/v1/store/settings/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['name'], settings.STORE_NAME)
        self.assertEqual(response.data['site_visibility'], 'live')
        self.assertEqual([m['id'] for m in response.data['shipping_methods']],
                         ['free-shipping', 'local-pickup', 'flat-rate', 'calculated'])

    def test_patch_settings(self):
        """Test renaming the store and setting its address"""
        data = {'name': 'Candle Co', 'currency': 'EUR', 'address': {'line1': '1 Main St', 'city': 'Paris'}}
        response = self.client.patch('/api/v1/store/settings/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['name'], 'Candle Co')
        self.assertEqual(response.data['address']['city'], 'Paris')
        self.assertEqual(response.data['address']['postcode'], '')
        self.assertEqual(get_current_store().name, 'Candle Co')
        self.assertTrue(AuditLog.objects.filter(action='settings_update').exists())

    def test_patch_unknown_address_field(self):
        """Test address keys are checked"""
        response = self.client.patch('/api/v1/store/settings/', {'address': {'street': 'x'}}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_patch_requires_permission(self):
        """Test users without settings.manage cannot change settings"""
        self.client.authenticate_user(self.user)
        response = self.client.patch('/api/v1/store/settings/', {'name': 'Nope'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        response = self.client.get('/api/v1/store/settings/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_review_settings(self):
        """Test review toggles use camelCase keys"""
        data = {'reviewsEnabled': False, 'starRatingsEnabled': True, 'starRatingsRequired': True}
        response = self.client.post('/api/v1/store/settings/reviews/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['success'])
        response = self.client.get('/api/v1/store/settings/reviews/')
        self.assertEqual(response.data, data)

    def test_shipping_methods(self):
        """Test replacing the shipping method list"""
        methods = [
            {'id': 'flat-rate', 'name': 'Flat Rate', 'enabled': True, 'settings': {'cost': 4.5}},
            {'id': 'local-pickup', 'name': 'Local Pickup', 'enabled': False},
        ]
        response = self.client.put('/api/v1/store/settings/shipping/', {'shipping_methods': methods}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['shipping_methods'][0]['settings'], {'cost': 4.5})
        self.assertEqual(response.data['shipping_methods'][1]['settings'], {})
        self.assertEqual(len(get_current_store().settings.shipping_methods), 2)

    def test_payment_methods_reject_duplicates(self):
        """Test method ids must be unique"""
        methods = [
            {'id': 'cod', 'name': 'Cash', 'enabled': True},
            {'id': 'cod', 'name': 'Cash again', 'enabled': False},
        ]
        response = self.client.put('/api/v1/store/settings/payments/', methods, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_visibility(self):
        """Test switching the storefront to coming soon"""
        response = self.client.put('/api/v1/store/settings/visibility/',
                                   {'site_visibility': 'coming-soon'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(get_current_store().settings.site_visibility, 'coming-soon')
        response = self.client.put('/api/v1/store/settings/visibility/', {'site_visibility': 'hidden'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class RoleAPITests(TestCase):
    """Test permissions, roles and store users"""

    def setUp(self):
        self.admin = TestDataFactory.create_user(is_superuser=True)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)
        self.store = get_current_store()

    def test_permission_catalog_grouped(self):
        """Test permissions are seeded and grouped by category"""
        response = self.client.get('/api/v1/store/permissions/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(Permission.objects.count(), 10)
        self.assertEqual({p['name'] for p in response.data['Orders']}, {'orders.view', 'orders.edit'})

    def test_create_role(self):
        """Test creating a role with permissions"""
        data = {'name': 'Packer', 'permissions': ['orders.view', 'orders.edit', 'orders.view']}
        response = self.client.post('/api/v1/store/roles/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['permissions'], ['orders.view', 'orders.edit'])
        self.assertEqual(response.data['member_count'], 0)

    def test_create_role_validation(self):
        """Test duplicate names and unknown permissions are rejected"""
        TestDataFactory.create_role(name='Packer')
        response = self.client.post('/api/v1/store/roles/', {'name': 'packer'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('name', response.data)

        response = self.client.post('/api/v1/store/roles/', {'name': 'Other', 'permissions': ['launch.rockets']},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('permissions', response.data)

    def test_update_role_is_audited(self):
        """Test changing a role's permissions"""
        role = TestDataFactory.create_role(name='Clerk', permissions=['orders.view'])
        response = self.client.patch(f'/api/v1/store/roles/{role.id}/',
                                     {'permissions': ['orders.view', 'customers.view']}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        log = AuditLog.objects.get(action='role_change')
        self.assertEqual(log.changes['after'], ['orders.view', 'customers.view'])

    def test_owner_role_cannot_be_deleted(self):
        """Test the Owner role is protected"""
        owner = TestDataFactory.create_role(name='Owner')
        response = self.client.delete(f'/api/v1/store/roles/{owner.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertTrue(StoreRole.objects.filter(pk=owner.id).exists())

    def test_delete_role_keeps_members(self):
        """Test members lose the role but stay in the store"""
        role = TestDataFactory.create_role(name='Temp')
        member = TestDataFactory.add_store_user(TestDataFactory.create_user(), role=role)
        response = self.client.delete(f'/api/v1/store/roles/{role.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        member.refresh_from_db()
        self.assertIsNone(member.role)

    def test_role_changes_require_staff_manage(self):
        """Test members without staff.manage cannot edit roles"""
        clerk = TestDataFactory.create_user()
        role = TestDataFactory.create_role(name='Clerk', permissions=['orders.view'])
        TestDataFactory.add_store_user(clerk, role=role)
        self.client.authenticate_user(clerk)

        response = self.client.post('/api/v1/store/roles/', {'name': 'Sneaky'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        response = self.client.patch(f'/api/v1/store/roles/{role.id}/', {'permissions': []}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        response = self.client.get('/api/v1/store/roles/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_add_and_update_store_user(self):
        """Test adding a member and changing their role"""
        user = TestDataFactory.create_user()
        clerk = TestDataFactory.create_role(name='Clerk')
        manager = TestDataFactory.create_role(name='Manager')

        response = self.client.post('/api/v1/store/users/', {'user_id': user.id, 'role_id': clerk.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['role_name'], 'Clerk')
        member_id = response.data['id']

        response = self.client.post('/api/v1/store/users/', {'user_id': user.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.patch(f'/api/v1/store/users/{member_id}/',
                                     {'role_id': manager.id, 'status': 'disabled'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['role_name'], 'Manager')
        self.assertEqual(response.data['status'], 'disabled')

        response = self.client.get('/api/v1/store/users/', {'status': 'active'})
        self.assertEqual(response.data, [])

    def test_cannot_remove_yourself(self):
        """Test deleting your own membership is refused"""
        member = TestDataFactory.add_store_user(self.admin)
        response = self.client.delete(f'/api/v1/store/users/{member.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertTrue(StoreUser.objects.filter(pk=member.id).exists())

    def test_create_default_roles_command(self):
        """Test seeding is idempotent"""
        out = StringIO()
        call_command('create_default_roles', stdout=out)
        self.assertIn('Created 3 roles', out.getvalue())
        self.assertEqual(set(StoreRole.objects.values_list('name', flat=True)), {'Owner', 'Admin', 'Staff'})

        out = StringIO()
        call_command('create_default_roles', stdout=out)
        self.assertIn('Default roles already exist', out.getvalue())
        self.assertEqual(StoreRole.objects.count(), 3)
