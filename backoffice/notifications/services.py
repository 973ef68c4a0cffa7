import logging
from django.contrib.auth import get_user_model
from .models import Notification

logger = logging.getLogger(__name__)


def notify_staff(title, message='', type='info'):
    """Create one notification per active staff user; returns the number created"""
    User = get_user_model()
    staff = User.objects.filter(is_active=True, is_staff=True)
    created = Notification.objects.bulk_create([
        Notification(user=user, title=title, message=message, type=type)
        for user in staff
    ])
    logger.debug(f"Notified {len(created)} staff users: {title}")
    return len(created)
