"""
Current store lookup and role-based permission checks
"""
import logging
from django.conf import settings
from django.db import transaction
from .defaults import PERMISSIONS, DEFAULT_ROLES, OWNER_ROLE
from .models import Store, StoreSettings, Permission, StoreRole, StoreUser

logger = logging.getLogger(__name__)

ALL_PERMISSIONS = [name for name, _, _ in PERMISSIONS]


def get_current_store():
    """The single store this back-office manages, created with default settings on first use"""
    store = Store.objects.order_by('id').first()
    if store is None:
        with transaction.atomic():
            store = Store.objects.create(name=settings.STORE_NAME)
            StoreSettings.objects.create(
                store=store, currency=settings.STORE_CURRENCY, time_zone=settings.STORE_TIME_ZONE
            )
        logger.info(f"Created default store '{store.name}'")
    return store


def get_store_settings(store=None):
    store = store or get_current_store()
    store_settings, created = StoreSettings.objects.get_or_create(
        store=store,
        defaults={'currency': settings.STORE_CURRENCY, 'time_zone': settings.STORE_TIME_ZONE},
    )
    if created:
        logger.info(f"Created default settings for store {store.id}")
    return store_settings


def get_store_details():
    """Name and printable address of the store, for receipts"""
    store_settings = get_store_settings()
    return {
        'name': store_settings.store.name,
        'address_lines': store_settings.address_lines(),
    }


def get_store_user(user, store=None):
    """Active membership of `user` in the store, or None"""
    if user is None or not user.is_authenticated:
        return None
    store = store or get_current_store()
    return StoreUser.objects.select_related('role').filter(store=store, user=user, status='active').first()


def get_user_permissions(user):
    """Permission names granted to `user`"""
    if user is None or not user.is_authenticated:
        return []
    if user.is_superuser:
        return list(ALL_PERMISSIONS)
    store_user = get_store_user(user)
    if store_user is None or store_user.role is None:
        return []
    if store_user.role.name == OWNER_ROLE:
        return list(ALL_PERMISSIONS)
    return list(store_user.role.permissions or [])


def has_permission(user, name):
    return name in get_user_permissions(user)


def seed_permissions():
    """Create or refresh the permission catalog; returns the number created"""
    created = 0
    for name, description, category in PERMISSIONS:
        _, was_created = Permission.objects.update_or_create(
            name=name, defaults={'description': description, 'category': category}
        )
        created += was_created
    return created


def seed_default_roles(store=None):
    """Create any missing built-in roles; returns the names created"""
    store = store or get_current_store()
    created = []
    for name, (description, permissions) in DEFAULT_ROLES.items():
        _, was_created = StoreRole.objects.get_or_create(
            store=store, name=name, defaults={'description': description, 'permissions': permissions}
        )
        if was_created:
            created.append(name)
    return created
