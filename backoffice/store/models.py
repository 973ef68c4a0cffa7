from django.conf import settings
from django.db import models
from .defaults import (
    SITE_VISIBILITY_CHOICES, default_address, default_shipping_methods, default_payment_methods
)


class Store(models.Model):
    name = models.CharField(max_length=255)
    owner = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='owned_stores')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'stores'


class StoreSettings(models.Model):
    """Store-wide settings edited from the settings screens"""
    store = models.OneToOneField(Store, on_delete=models.CASCADE, related_name='settings')

    # General
    logo_url = models.URLField(max_length=1000, blank=True)
    hero_image_url = models.URLField(max_length=1000, blank=True)
    address = models.JSONField(default=default_address, blank=True)
    time_zone = models.CharField(max_length=64, default='America/New_York')
    auto_dst = models.BooleanField(default=True)
    currency = models.CharField(max_length=3, default='USD')
    language = models.CharField(max_length=10, default='en')

    # Products
    reviews_enabled = models.BooleanField(default=True)
    star_ratings_enabled = models.BooleanField(default=True)
    star_ratings_required = models.BooleanField(default=True)

    shipping_methods = models.JSONField(default=default_shipping_methods, blank=True)
    payment_methods = models.JSONField(default=default_payment_methods, blank=True)
    site_visibility = models.CharField(max_length=20, choices=SITE_VISIBILITY_CHOICES, default='live')
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"Settings for {self.store}"

    def address_lines(self):
        address = self.address or {}
        city_line = ' '.join(part for part in [address.get('city'), address.get('state'), address.get('postcode')] if part)
        lines = [address.get('line1'), address.get('line2'), city_line, address.get('country')]
        return [line for line in lines if line]

    class Meta:
        db_table = 'store_settings'
        verbose_name_plural = 'Store settings'


class Permission(models.Model):
    """Catalog of permission names a role can grant"""
    name = models.CharField(max_length=100, unique=True)
    description = models.CharField(max_length=255, blank=True)
    category = models.CharField(max_length=100)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'permissions'
        ordering = ['category', 'name']


class StoreRole(models.Model):
    store = models.ForeignKey(Store, on_delete=models.CASCADE, related_name='roles')
    name = models.CharField(max_length=100)
    description = models.TextField(blank=True)
    permissions = models.JSONField(default=list, blank=True)  # permission names
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.store} - {self.name}"

    class Meta:
        db_table = 'store_roles'
        ordering = ['id']
        constraints = [
            models.UniqueConstraint(fields=['store', 'name'], name='unique_role_name_per_store'),
        ]


class StoreUser(models.Model):
    STATUS_CHOICES = [
        ('active', 'Active'),
        ('invited', 'Invited'),
        ('disabled', 'Disabled'),
    ]

    store = models.ForeignKey(Store, on_delete=models.CASCADE, related_name='members')
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='store_memberships')
    role = models.ForeignKey(StoreRole, on_delete=models.SET_NULL, null=True, blank=True, related_name='members')
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='active')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.user} @ {self.store}"

    class Meta:
        db_table = 'store_users'
        ordering = ['id']
        constraints = [
            models.UniqueConstraint(fields=['store', 'user'], name='unique_store_user'),
        ]
