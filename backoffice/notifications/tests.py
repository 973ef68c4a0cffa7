"""
Test suite for the Notifications module
"""
from django.test import TestCase
from rest_framework import status
from backoffice.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backoffice.notifications.models import Notification
from backoffice.notifications.services import notify_staff


class NotificationServiceTests(TestCase):
    """Test staff fan-out"""

    def test_notify_staff(self):
        """Test only active staff users are notified"""
        staff = TestDataFactory.create_staff()
        inactive = TestDataFactory.create_staff()
        inactive.is_active = False
        inactive.save()
        TestDataFactory.create_user()

        created = notify_staff('Low stock', 'Candle is running low', type='warning')
        self.assertEqual(created, 1)
        notification = Notification.objects.get()
        self.assertEqual(notification.user, staff)
        self.assertEqual(notification.type, 'warning')
        self.assertFalse(notification.read)


class NotificationAPITests(TestCase):
    """Test notification endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.other = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.first = Notification.objects.create(user=self.user, title='First')
        self.second = Notification.objects.create(user=self.user, title='Second', read=True)
        self.foreign = Notification.objects.create(user=self.other, title='Not yours')

    def test_list_own_notifications(self):
        """Test listing only shows the caller's notifications, newest first"""
        response = self.client.get('/api/v1/notifications/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([n['title'] for n in response.data['results']], ['Second', 'First'])
        self.assertEqual(response.data['unread_count'], 1)

    def test_list_unread(self):
        """Test the unread filter"""
        response = self.client.get('/api/v1/notifications/', {'unread': 'true'})
        self.assertEqual([n['id'] for n in response.data['results']], [self.first.id])

    def test_create(self):
        """Test creating a notification for a user"""
        data = {'user': self.other.id, 'title': 'Hello', 'message': 'Welcome aboard', 'type': 'success'}
        response = self.client.post('/api/v1/notifications/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertFalse(response.data['read'])
        self.assertEqual(Notification.objects.filter(user=self.other).count(), 2)

    def test_create_invalid_type(self):
        """Test unknown types are rejected"""
        data = {'user': self.user.id, 'title': 'Hello', 'type': 'shout'}
        response = self.client.post('/api/v1/notifications/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_mark_read(self):
        """Test marking one notification read"""
        response = self.client.post(f'/api/v1/notifications/{self.first.id}/read/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['read'])

    def test_cannot_touch_others(self):
        """Test other users' notifications are not found"""
        response = self.client.post(f'/api/v1/notifications/{self.foreign.id}/read/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        response = self.client.delete(f'/api/v1/notifications/{self.foreign.id}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_read_all(self):
        """Test marking everything read"""
        Notification.objects.create(user=self.user, title='Third')
        response = self.client.post('/api/v1/notifications/read-all/')
        self.assertEqual(response.data, {'updated': 2})
        self.assertFalse(Notification.objects.filter(user=self.user, read=False).exists())
        self.foreign.refresh_from_db()
        self.assertFalse(self.foreign.read)

    def test_delete(self):
        """Test deleting a notification"""
        response = self.client.delete(f'/api/v1/notifications/{self.first.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Notification.objects.filter(pk=self.first.id).exists())
