from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone
from decimal import Decimal


class Discount(models.Model):
    """Discount codes"""
    TYPE_CHOICES = [
        ('percentage', 'Percentage'),
        ('fixed_amount', 'Fixed Amount'),
    ]
    APPLIES_TO_CHOICES = [
        ('all', 'All Products'),
        ('products', 'Specific Products'),
        ('collections', 'Specific Collections'),
    ]

    code = models.CharField(max_length=50, unique=True)  # Stored upper-case
    description = models.TextField(blank=True)
    discount_type = models.CharField(max_length=20, choices=TYPE_CHOICES, default='percentage')
    discount_value = models.DecimalField(max_digits=10, decimal_places=2,
                                         validators=[MinValueValidator(Decimal('0.00'))])
    min_purchase_amount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'),
                                              validators=[MinValueValidator(Decimal('0.00'))])
    max_discount_amount = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True,
                                              validators=[MinValueValidator(Decimal('0.00'))])
    starts_at = models.DateTimeField(null=True, blank=True)
    expires_at = models.DateTimeField(null=True, blank=True)
    usage_limit = models.PositiveIntegerField(null=True, blank=True)
    usage_count = models.PositiveIntegerField(default=0)
    is_active = models.BooleanField(default=True, db_index=True)
    applies_to = models.CharField(max_length=20, choices=APPLIES_TO_CHOICES, default='all')
    products = models.ManyToManyField('catalog.Product', blank=True, related_name='discounts')
    collections = models.ManyToManyField('catalog.Collection', blank=True, related_name='discounts')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.code

    def save(self, *args, **kwargs):
        self.code = (self.code or '').strip().upper()
        super().save(*args, **kwargs)

    @property
    def status(self):
        """active, inactive, scheduled or expired at the current time"""
        if not self.is_active:
            return 'inactive'
        now = timezone.now()
        if self.expires_at and self.expires_at < now:
            return 'expired'
        if self.starts_at and self.starts_at > now:
            return 'scheduled'
        return 'active'

    class Meta:
        db_table = 'discounts'
        ordering = ['-created_at']
